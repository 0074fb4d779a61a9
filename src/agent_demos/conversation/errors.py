"""
Exceptions raised by the conversation layer.
"""

from typing import Optional


class ConversationError(Exception):
    """Base exception for conversation errors."""

    pass


class InvalidMessage(ConversationError):
    """Raised when a malformed message is appended to a log."""

    pass


class ParticipantFailure(ConversationError):
    """Raised when the call backing a participant fails."""

    def __init__(self, participant: str, message: str, cause: Optional[BaseException] = None):
        self.participant = participant
        self.cause = cause
        super().__init__(f"Participant '{participant}' failed: {message}")


class PolicyError(ConversationError):
    """Raised when a termination policy fails while evaluating."""

    pass


class ConversationClosed(ConversationError):
    """Raised when a terminated conversation is asked to take another turn."""

    pass


class ConversationBusy(ConversationError):
    """Raised when a turn is started while another one is still in flight."""

    pass
