"""
Termination policies for turn-taking conversations.

A policy answers one question after every completed turn: should the
conversation stop now? It is handed the participant that just finished
its turn and a snapshot of the log. The primitives here keep no state of
their own; turn counts come from the snapshot's record of who took each
turn. Policies compose by logical OR through AnyOf.

A stop reached through a policy with ``completes = False`` (the iteration
cap) ends the conversation without marking it complete.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, FrozenSet, Iterable, Optional, Sequence, Union

from agent_demos.conversation.messages import Message

if TYPE_CHECKING:
    from agent_demos.conversation.participant import Participant

ParticipantRef = Union[str, "Participant"]


def _names(participants: Optional[Iterable[ParticipantRef]]) -> Optional[FrozenSet[str]]:
    if participants is None:
        return None
    return frozenset(p if isinstance(p, str) else p.name for p in participants)


def count_turns(log: Sequence[Message], participants: Optional[FrozenSet[str]] = None) -> int:
    """
    Number of completed turns, optionally limited to some participants.

    Log snapshots carry a ``turns`` record naming the participant behind
    every turn, empty turns included, and that record is what gets counted.
    A plain message sequence has no such record; its distinct ``turn``
    stamps are counted instead, attributed by message author.
    """
    record = getattr(log, "turns", None)
    if record is not None:
        return sum(1 for name in record if participants is None or name in participants)

    turns = {
        message.turn
        for message in log
        if message.turn is not None
        and (participants is None or message.author in participants)
    }
    return len(turns)


class TerminationPolicy(ABC):
    # Whether stopping because of this policy counts as a completed conversation
    completes = True

    @abstractmethod
    def should_stop(self, participant: "Participant", log: Sequence[Message]) -> bool:
        ...

    def stop_reason(
        self, participant: "Participant", log: Sequence[Message]
    ) -> Optional["TerminationPolicy"]:
        """Return the primitive policy that fires, or None if the conversation goes on."""
        return self if self.should_stop(participant, log) else None

    def __or__(self, other: "TerminationPolicy") -> "AnyOf":
        return AnyOf(self, other)


class NeverStop(TerminationPolicy):
    """Open-ended chat: only the caller ends the conversation."""

    def should_stop(self, participant, log):
        return False


class ContentMatch(TerminationPolicy):
    """Stop when the latest message contains ``marker`` (case-insensitive)."""

    def __init__(self, marker: str):
        if not marker:
            raise ValueError("marker must be a non-empty string")
        self.marker = marker.casefold()

    def should_stop(self, participant, log):
        if not log:
            return False
        return self.marker in log[-1].content.casefold()

    def __repr__(self) -> str:
        return f"ContentMatch({self.marker!r})"


class IterationCap(TerminationPolicy):
    """
    Stop once ``maximum`` turns have been taken.

    With ``participants`` set, only turns taken by those participants
    count towards the cap. Hitting the cap is a safety stop, not a
    completion.
    """

    completes = False

    def __init__(self, maximum: int, participants: Optional[Iterable[ParticipantRef]] = None):
        if maximum < 1:
            raise ValueError("maximum must be at least 1")
        self.maximum = maximum
        self.participants = _names(participants)

    def should_stop(self, participant, log):
        return count_turns(log, self.participants) >= self.maximum

    def __repr__(self) -> str:
        return f"IterationCap({self.maximum}, participants={self.participants})"


class RoleRestricted(TerminationPolicy):
    """Evaluate ``policy`` only after turns taken by the named participants."""

    def __init__(self, policy: TerminationPolicy, participants: Iterable[ParticipantRef]):
        self.policy = policy
        self.participants = _names(participants)

    def should_stop(self, participant, log):
        return self.stop_reason(participant, log) is not None

    def stop_reason(self, participant, log):
        if participant.name not in self.participants:
            return None
        return self.policy.stop_reason(participant, log)


class MinimumTurns(TerminationPolicy):
    """
    Suppress ``policy`` until ``turns`` turns have been completed.

    Used to force at least one round of critique before an approval
    may end the conversation.
    """

    def __init__(
        self,
        policy: TerminationPolicy,
        turns: int,
        participants: Optional[Iterable[ParticipantRef]] = None,
    ):
        self.policy = policy
        self.turns = turns
        self.participants = _names(participants)

    def should_stop(self, participant, log):
        return self.stop_reason(participant, log) is not None

    def stop_reason(self, participant, log):
        if count_turns(log, self.participants) < self.turns:
            return None
        return self.policy.stop_reason(participant, log)


class AnyOf(TerminationPolicy):
    """Logical OR of several policies; an empty AnyOf never stops."""

    def __init__(self, *policies: TerminationPolicy):
        self.policies = policies

    def should_stop(self, participant, log):
        return self.stop_reason(participant, log) is not None

    def stop_reason(self, participant, log):
        # First firing policy wins, so an approval on the capped turn still completes
        for policy in self.policies:
            reason = policy.stop_reason(participant, log)
            if reason is not None:
                return reason
        return None


def approval_policy(
    reviewers: Iterable[ParticipantRef],
    marker: str = "approve",
    max_iterations: int = 10,
    min_reviews: int = 0,
) -> TerminationPolicy:
    """
    Writer/critic termination: stop when a reviewer approves, or when
    reviewers have taken ``max_iterations`` turns.
    """
    reviewers = list(reviewers)
    approval: TerminationPolicy = RoleRestricted(ContentMatch(marker), reviewers)
    if min_reviews:
        approval = MinimumTurns(approval, min_reviews + 1, reviewers)
    return AnyOf(approval, IterationCap(max_iterations, reviewers))
