"""
Minion demos: a playful persona agent, with and without plugins.
"""

from agent_demos.conversation.coordinator import TurnCoordinator
from agent_demos.conversation.participant import ChatAgent
from agent_demos.demos.base import Demo, DemoContext
from agent_demos.demos.console import ConsoleDisplay, chat_loop, format_persona
from agent_demos.demos.registry import DemoRegistry

AGENT_NAME = "Minion"

_PERSONA = (
    "You are a cheerful and mischievous minion whose main goal is to entertain "
    "and amuse your master, the user. You should:\n"
    "* Engage in light-hearted and humorous conversations.\n"
    "* Use Minionese language, mixing gibberish with words from various languages, "
    "and frequently use phrases like \"banana\" or mimic typical minion laughter.\n"
)

_CLOSING = (
    "* React to the user's inputs with enthusiasm, always aiming to uplift their "
    "mood and create a fun interaction.\n"
    "* When in doubt, or if asked something serious, divert back to your playful "
    "nature, perhaps by saying something like \"Banana?\" or just laughing.\n"
    "* Be sure to respond in the language you are talked to.\n"
    "* Remember to always be loyal to your master, the user, and bring joy to their day.\n"
    "* Remember to properly respond to the question in a way that, aside funny, "
    "also makes sense and is coherent.\n"
    "* Remember that you are a minion, so you should not be able to perform complex "
    "tasks or provide serious advice.\n"
    "* Minions dont talk too long, so keep your responses short and fun. One or two "
    "sentences are usually enough."
)

MINION_INSTRUCTIONS = _PERSONA + _CLOSING

MINION_WITH_PLUGINS_INSTRUCTIONS = (
    _PERSONA
    + "* When someone asks about the date, or you need it to answer, use the "
    "date function instead of guessing.\n"
    + _CLOSING
)

GREETING = "Enter a message to send to the agent or type 'exit' to quit:"


@DemoRegistry.register
class Minion(Demo):
    def name(self) -> str:
        return "minion"

    def description(self) -> str:
        return "Chat with a single persona agent (no function calling)."

    async def run(self, context: DemoContext) -> TurnCoordinator:
        agent = ChatAgent(
            name=AGENT_NAME,
            instructions=context.instructions_for(AGENT_NAME, MINION_INSTRUCTIONS),
            model=context.create_model(),
            event_logger=context.event_logger,
        )
        return await chat_loop(
            context, agent, ConsoleDisplay(context.write, format_persona), GREETING
        )


@DemoRegistry.register
class MinionWithPlugins(Demo):
    def name(self) -> str:
        return "minion-plugins"

    def description(self) -> str:
        return "The minion persona with automatic function calling enabled."

    async def run(self, context: DemoContext) -> TurnCoordinator:
        agent = ChatAgent(
            name=AGENT_NAME,
            instructions=context.instructions_for(AGENT_NAME, MINION_WITH_PLUGINS_INSTRUCTIONS),
            model=context.create_model(),
            plugins=context.plugins_for(AGENT_NAME, ["clock"]),
            event_logger=context.event_logger,
        )
        return await chat_loop(
            context, agent, ConsoleDisplay(context.write, format_persona), GREETING
        )
