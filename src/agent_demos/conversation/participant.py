"""
Participants: anything that can produce messages from a conversation log.
"""

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, AsyncIterator, Dict, Iterable, List, Optional, Sequence

from agent_demos.conversation.errors import ParticipantFailure
from agent_demos.conversation.messages import Message, Role
from agent_demos.models.provider import ModelError, ModelProvider
from agent_demos.plugins.registry import PluginError, PluginRegistry

if TYPE_CHECKING:
    from agent_demos.observability.event_logger import EventLogger

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOOL_ROUNDS = 5

_OPENAI_ROLES = {
    Role.USER: "user",
    Role.AGENT: "assistant",
    Role.SYSTEM: "system",
}


class Participant(ABC):
    """
    Base class for conversation participants.

    Subclasses implement produce() as an async generator. Each call is a
    fresh interaction: the coordinator drains the generator completely
    before the turn counts as done.
    """

    def __init__(self, name: str):
        self.name = name

    @abstractmethod
    def produce(self, log: Sequence[Message]) -> AsyncIterator[Message]:
        """Yield the messages for one turn, given the log so far."""
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class ScriptedParticipant(Participant):
    """Replays canned replies, one per turn; the last reply repeats once exhausted."""

    def __init__(self, name: str, replies: Iterable[str], role: Role = Role.AGENT):
        super().__init__(name)
        self.replies = list(replies)
        if not self.replies:
            raise ValueError("ScriptedParticipant needs at least one reply")
        self.role = role
        self.calls = 0

    async def produce(self, log: Sequence[Message]) -> AsyncIterator[Message]:
        reply = self.replies[min(self.calls, len(self.replies) - 1)]
        self.calls += 1
        yield Message(role=self.role, content=reply, author=self.name)


class ChatAgent(Participant):
    """
    Model-backed participant.

    Sends its instructions plus the whole log to the model. When plugins
    are attached, tool calls requested by the model are executed and fed
    back privately until the model answers in plain text; only that final
    answer is yielded.
    """

    def __init__(
        self,
        name: str,
        instructions: str,
        model: ModelProvider,
        plugins: Optional[PluginRegistry] = None,
        max_tool_rounds: int = DEFAULT_MAX_TOOL_ROUNDS,
        temperature: Optional[float] = None,
        event_logger: Optional["EventLogger"] = None,
        conversation_id: str = "",
    ):
        super().__init__(name)
        self.instructions = instructions
        self.model = model
        self.plugins = plugins
        self.max_tool_rounds = max_tool_rounds
        self.temperature = temperature
        self._event_logger = event_logger
        self._conversation_id = conversation_id

    def _build_messages(self, log: Sequence[Message]) -> List[Dict[str, Any]]:
        messages: List[Dict[str, Any]] = [{"role": "system", "content": self.instructions}]
        for entry in log:
            item: Dict[str, Any] = {"role": _OPENAI_ROLES[entry.role], "content": entry.content}
            if entry.role == Role.AGENT and entry.author:
                item["name"] = entry.author
            messages.append(item)
        return messages

    async def produce(self, log: Sequence[Message]) -> AsyncIterator[Message]:
        messages = self._build_messages(log)
        tools = self.plugins.declarations() if self.plugins else None

        for _ in range(self.max_tool_rounds + 1):
            try:
                response = await self.model.complete(
                    messages,
                    tools=tools,
                    temperature=self.temperature,
                    agent_id=self.name,
                )
            except ModelError as e:
                raise ParticipantFailure(self.name, str(e), e) from e

            try:
                reply = response.choices[0].message
            except (AttributeError, IndexError, TypeError) as e:
                raise ParticipantFailure(self.name, "malformed model response", e) from e

            tool_calls = getattr(reply, "tool_calls", None) if self.plugins else None
            if not tool_calls:
                yield Message.agent((reply.content or "").strip(), self.name)
                return

            messages.append({
                "role": "assistant",
                "content": reply.content,
                "tool_calls": [
                    {
                        "id": call.id,
                        "type": "function",
                        "function": {
                            "name": call.function.name,
                            "arguments": call.function.arguments,
                        },
                    }
                    for call in tool_calls
                ],
            })
            for call in tool_calls:
                result = await self._run_tool(call.function.name, call.function.arguments)
                messages.append({"role": "tool", "tool_call_id": call.id, "content": result})

        raise ParticipantFailure(
            self.name, f"no final answer after {self.max_tool_rounds} tool rounds"
        )

    async def _run_tool(self, name: str, arguments: Any) -> str:
        """Run one tool call; failures are reported back to the model as text."""
        success = True
        try:
            result = await self.plugins.invoke(name, arguments)
        except PluginError as e:
            logger.warning(f"[{self.name}] tool call {name} failed: {e}")
            result = f"Error: {e}"
            success = False
        else:
            logger.debug(f"[{self.name}] tool call {name} -> {result}")

        if self._event_logger is not None:
            from agent_demos.observability.event_logger import Event, EventType

            self._event_logger.log(Event(
                type=EventType.TOOL_CALL,
                conversation_id=self._conversation_id,
                agent_id=self.name,
                payload={"function": name, "success": success},
            ))
        return result
