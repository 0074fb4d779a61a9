"""
Turn-taking conversations: messages, participants, termination policies
and the coordinator that ties them together.
"""

from agent_demos.conversation.errors import (
    ConversationBusy,
    ConversationClosed,
    ConversationError,
    InvalidMessage,
    ParticipantFailure,
    PolicyError,
)
from agent_demos.conversation.messages import ConversationLog, LogSnapshot, Message, Role
from agent_demos.conversation.participant import ChatAgent, Participant, ScriptedParticipant
from agent_demos.conversation.termination import (
    AnyOf,
    ContentMatch,
    IterationCap,
    MinimumTurns,
    NeverStop,
    RoleRestricted,
    TerminationPolicy,
    approval_policy,
)
from agent_demos.conversation.coordinator import ChatResult, ConversationState, TurnCoordinator
