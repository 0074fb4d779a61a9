"""
Messages and the append-only conversation log.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator, Optional, Tuple

from agent_demos.conversation.errors import InvalidMessage


class Role(str, Enum):
    USER = "user"
    AGENT = "agent"
    SYSTEM = "system"


@dataclass(frozen=True)
class Message:
    """
    One utterance in a conversation.

    ``turn`` is stamped by the coordinator when the message is committed as
    part of a participant's turn; messages added from outside a turn
    (seed prompts, console input) keep ``turn=None``.
    """

    role: Role
    content: str
    author: Optional[str] = None
    turn: Optional[int] = None

    @classmethod
    def user(cls, content: str, author: Optional[str] = None) -> "Message":
        return cls(role=Role.USER, content=content, author=author)

    @classmethod
    def agent(cls, content: str, author: str) -> "Message":
        return cls(role=Role.AGENT, content=content, author=author)

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role=Role.SYSTEM, content=content)


def validate_message(message: Message) -> None:
    """Raise InvalidMessage unless ``message`` is a well-formed Message."""
    if not isinstance(message, Message):
        raise InvalidMessage(f"Expected Message, got {type(message).__name__}")
    if not isinstance(message.role, Role):
        raise InvalidMessage(f"Message has no valid role: {message.role!r}")
    if not isinstance(message.content, str):
        raise InvalidMessage(
            f"Message content must be text, got {type(message.content).__name__}"
        )


class LogSnapshot(tuple):
    """
    Immutable view of a log at one point in time.

    Behaves as a tuple of messages. ``turns`` lists, in order, the name of
    the participant behind every completed turn, including turns that
    produced no messages.
    """

    turns: Tuple[str, ...]

    def __new__(cls, messages: Iterable[Message] = (), turns: Iterable[str] = ()):
        snapshot = super().__new__(cls, messages)
        snapshot.turns = tuple(turns)
        return snapshot


class ConversationLog:
    """
    Ordered, append-only history shared by every participant.

    The backing store is an immutable snapshot that is replaced wholesale on
    every write, so a snapshot taken by a reader is never affected by later
    writes.
    """

    def __init__(self, messages: Iterable[Message] = ()):
        self._snapshot = LogSnapshot()
        self.extend(messages)

    def append(self, message: Message) -> None:
        validate_message(message)
        self._snapshot = LogSnapshot(self._snapshot + (message,), self._snapshot.turns)

    def extend(self, messages: Iterable[Message]) -> None:
        """Append several messages; all are validated first, so either all land or none do."""
        batch = tuple(messages)
        for message in batch:
            validate_message(message)
        self._snapshot = LogSnapshot(self._snapshot + batch, self._snapshot.turns)

    def record_turn(self, participant_name: str, messages: Iterable[Message] = ()) -> None:
        """
        Commit one completed turn: its messages (possibly none) and who took it.

        Raises:
            InvalidMessage: If any message is malformed; nothing is committed.
        """
        batch = tuple(messages)
        for message in batch:
            validate_message(message)
        self._snapshot = LogSnapshot(
            self._snapshot + batch, self._snapshot.turns + (participant_name,)
        )

    @property
    def turns(self) -> Tuple[str, ...]:
        return self._snapshot.turns

    def snapshot(self) -> LogSnapshot:
        return self._snapshot

    def latest(self) -> Optional[Message]:
        return self._snapshot[-1] if self._snapshot else None

    def __len__(self) -> int:
        return len(self._snapshot)

    def __iter__(self) -> Iterator[Message]:
        return iter(self._snapshot)

    def __getitem__(self, index):
        return self._snapshot[index]
