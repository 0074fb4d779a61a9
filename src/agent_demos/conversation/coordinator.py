"""
Turn-taking coordinator: drives participants round-robin over a shared
log until a termination policy says stop.
"""

import asyncio
import logging
from contextlib import aclosing
from dataclasses import dataclass, replace
from enum import Enum
from typing import TYPE_CHECKING, Any, AsyncIterator, Dict, Iterable, List, Optional, Sequence, Tuple

from agent_demos.conversation.errors import (
    ConversationBusy,
    ConversationClosed,
    ParticipantFailure,
    PolicyError,
)
from agent_demos.conversation.messages import ConversationLog, Message, validate_message
from agent_demos.conversation.participant import Participant
from agent_demos.conversation.termination import NeverStop, TerminationPolicy

if TYPE_CHECKING:
    from agent_demos.observability.event_logger import EventLogger

logger = logging.getLogger(__name__)


class ConversationState(str, Enum):
    IDLE = "idle"
    SELECTING = "selecting"
    INVOKING = "invoking"
    APPENDING = "appending"
    EVALUATING = "evaluating"
    TERMINATED = "terminated"


@dataclass
class ChatResult:
    """Outcome of a conversation run."""
    messages: Tuple[Message, ...]
    is_complete: bool
    turns: int
    cancelled: bool = False
    error: Optional[BaseException] = None
    stop_reason: Optional[TerminationPolicy] = None


class TurnCoordinator:
    """
    Runs one conversation.

    Participants take turns in strict round-robin order. A turn's output is
    buffered while the participant is producing it and committed to the log
    in one step, so the policy (and any reader of the log) never sees a
    half-finished turn, and a cancelled turn leaves no trace.

    Any failure terminates the conversation and is re-raised to the caller;
    the log keeps everything committed before the failure.

    ``is_complete`` is set only when the policy that fired marks a real
    completion (an approval, say). Stopping on an iteration cap terminates
    the conversation with ``is_complete`` left False; ``stop_reason`` tells
    which policy fired.
    """

    def __init__(
        self,
        participants: Sequence[Participant],
        policy: Optional[TerminationPolicy] = None,
        log: Optional[ConversationLog] = None,
        seed: Iterable[Message] = (),
        event_logger: Optional["EventLogger"] = None,
        conversation_id: str = "conversation",
    ):
        if not participants:
            raise ValueError("A conversation needs at least one participant")
        names = [p.name for p in participants]
        if len(set(names)) != len(names):
            raise ValueError(f"Participant names must be unique: {names}")

        self.participants: List[Participant] = list(participants)
        self.policy = policy or NeverStop()
        self.log = log if log is not None else ConversationLog()
        self.log.extend(seed)
        self.conversation_id = conversation_id
        self._event_logger = event_logger

        self.state = ConversationState.IDLE
        self.turns = 0
        self.is_complete = False
        self.cancelled = False
        self.error: Optional[BaseException] = None
        self.stop_reason: Optional[TerminationPolicy] = None
        self._next_index = 0
        self._in_flight = False

    @property
    def is_terminated(self) -> bool:
        return self.state == ConversationState.TERMINATED

    def add_message(self, message: Message) -> None:
        """Append an outside message (e.g. user input) between turns."""
        self._ensure_open()
        if self._in_flight:
            raise ConversationBusy("Cannot add a message while a turn is in flight")
        self.log.append(message)

    def select_next(self) -> Participant:
        participant = self.participants[self._next_index]
        self._next_index = (self._next_index + 1) % len(self.participants)
        return participant

    async def take_turn(self, participant: Optional[Participant] = None) -> List[Message]:
        """
        Run exactly one turn and evaluate the termination policy.

        Args:
            participant: Force a specific participant; by default the next
                one in round-robin order is used.

        Returns:
            The messages committed for this turn.

        Raises:
            ValueError: If ``participant`` is not part of this conversation.
        """
        self._ensure_open()
        if participant is not None and not any(p is participant for p in self.participants):
            raise ValueError(f"'{participant.name}' is not a participant in this conversation")
        if self._in_flight:
            raise ConversationBusy("Another turn is already in flight")
        self._in_flight = True
        try:
            self.state = ConversationState.SELECTING
            if participant is None:
                participant = self.select_next()
            turn = self.turns + 1
            self._log_event("TURN_START", participant.name, {"turn": turn})
            logger.info(f"[{self.conversation_id}] turn {turn}: {participant.name}")

            self.state = ConversationState.INVOKING
            produced = await self._invoke(participant, turn)

            self.state = ConversationState.APPENDING
            self.log.record_turn(participant.name, produced)
            self.turns = turn
            self._log_event("TURN_END", participant.name, {
                "turn": turn,
                "messages": len(produced),
                "log_length": len(self.log),
            })

            self.state = ConversationState.EVALUATING
            reason = self._stop_reason(participant)
            if reason is not None:
                logger.info(
                    f"[{self.conversation_id}] terminated after turn {turn} by {reason!r}"
                )
                self.stop_reason = reason
                self._terminate(complete=reason.completes)
            else:
                self.state = ConversationState.SELECTING
            return produced
        finally:
            self._in_flight = False

    async def _invoke(self, participant: Participant, turn: int) -> List[Message]:
        produced: List[Message] = []
        try:
            async with aclosing(participant.produce(self.log.snapshot())) as stream:
                async for message in stream:
                    validate_message(message)
                    produced.append(replace(message, author=participant.name, turn=turn))
        except asyncio.CancelledError:
            logger.warning(
                f"[{self.conversation_id}] turn {turn} cancelled; "
                f"discarding {len(produced)} buffered message(s)"
            )
            self.cancelled = True
            self._terminate(complete=False)
            raise
        except ParticipantFailure as e:
            self._fail(e)
            raise
        except Exception as e:
            failure = ParticipantFailure(participant.name, str(e), e)
            self._fail(failure)
            raise failure from e
        return produced

    def _stop_reason(self, participant: Participant) -> Optional[TerminationPolicy]:
        try:
            return self.policy.stop_reason(participant, self.log.snapshot())
        except Exception as e:
            error = PolicyError(f"Termination policy {self.policy!r} failed: {e}")
            self._fail(error)
            raise error from e

    async def invoke(self) -> AsyncIterator[Message]:
        """Take turns until the policy stops the conversation, yielding each committed message."""
        self._ensure_open()
        while not self.is_terminated:
            for message in await self.take_turn():
                yield message

    async def run(self) -> ChatResult:
        async for _ in self.invoke():
            pass
        return self.result()

    def result(self) -> ChatResult:
        return ChatResult(
            messages=self.log.snapshot(),
            is_complete=self.is_complete,
            turns=self.turns,
            cancelled=self.cancelled,
            error=self.error,
            stop_reason=self.stop_reason,
        )

    def _ensure_open(self) -> None:
        if self.is_terminated:
            raise ConversationClosed(f"Conversation '{self.conversation_id}' has terminated")

    def _fail(self, error: BaseException) -> None:
        logger.error(f"[{self.conversation_id}] {error}")
        self.error = error
        self._log_event("ERROR", None, {"error": str(error), "type": type(error).__name__})
        self._terminate(complete=False)

    def _terminate(self, complete: bool) -> None:
        self.state = ConversationState.TERMINATED
        self.is_complete = complete
        self._log_event("CONVERSATION_END", None, {
            "turns": self.turns,
            "is_complete": complete,
            "cancelled": self.cancelled,
            "stop_reason": repr(self.stop_reason) if self.stop_reason else None,
            "log_length": len(self.log),
        })

    def _log_event(self, event_type: str, agent_id: Optional[str], payload: Dict[str, Any]) -> None:
        if self._event_logger is None:
            return

        from agent_demos.observability.event_logger import Event, EventType

        self._event_logger.log(Event(
            type=EventType[event_type],
            conversation_id=self.conversation_id,
            agent_id=agent_id,
            payload=payload,
        ))
