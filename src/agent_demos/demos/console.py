"""
Console I/O for the demos: message formatting and the interactive chat loop.

Presentation lives here only; the conversation layer tags messages with a
role and author and never formats them.
"""

import logging
from typing import Callable, Optional

from agent_demos.conversation.coordinator import TurnCoordinator
from agent_demos.conversation.messages import Message, Role
from agent_demos.conversation.participant import Participant
from agent_demos.demos.base import DemoContext

logger = logging.getLogger(__name__)

EXIT_COMMAND = "exit"
GOODBYE = "Banana!!"

Formatter = Callable[[Message], Optional[str]]


def format_transcript(message: Message) -> str:
    """Every message, tagged with its role (and author when known)."""
    if message.author:
        return f"# {message.role.value} ({message.author}): {message.content}"
    return f"# {message.role.value}: {message.content}"


def format_persona(message: Message) -> Optional[str]:
    """Agent replies prefixed by the agent's name; user input is not echoed."""
    if message.role == Role.USER:
        return None
    if message.role == Role.AGENT:
        return f"{message.author}: {message.content}"
    return format_transcript(message)


def format_plain(message: Message) -> Optional[str]:
    if message.role == Role.USER:
        return None
    return message.content


class ConsoleDisplay:
    """Display sink writing formatted messages to the console."""

    def __init__(self, write: Callable[[str], None] = print, formatter: Formatter = format_transcript):
        self.write = write
        self.formatter = formatter

    def show(self, message: Message) -> None:
        text = self.formatter(message)
        if text is not None:
            self.write(text)


async def chat_loop(
    context: DemoContext,
    agent: Participant,
    display: ConsoleDisplay,
    greeting: str,
    prompt: str = "User: ",
    greet_every_turn: bool = False,
) -> TurnCoordinator:
    """
    Interactive single-agent chat.

    Reads user lines until ``exit`` (or end of input), adding each to the
    log and giving the agent one turn to answer. The exit keyword is a
    console concern; the coordinator itself never stops on its own here.
    """
    coordinator = TurnCoordinator(
        [agent],
        event_logger=context.event_logger,
        conversation_id=f"{agent.name.lower()}-chat",
    )

    if not greet_every_turn:
        context.write(greeting)

    while True:
        if greet_every_turn:
            context.write(greeting)
        try:
            line = await context.read_line(prompt)
        except EOFError:
            line = EXIT_COMMAND

        if line.strip() == EXIT_COMMAND:
            context.write(GOODBYE)
            break
        if not line.strip():
            continue

        coordinator.add_message(Message.user(line))
        for message in await coordinator.take_turn():
            display.show(message)

    logger.info(f"Chat with {agent.name} ended after {coordinator.turns} turn(s)")
    return coordinator
