"""
BasicChat: a plain assistant with the clock plugin, answering one question at a time.
"""

from agent_demos.conversation.coordinator import TurnCoordinator
from agent_demos.conversation.participant import ChatAgent
from agent_demos.demos.base import Demo, DemoContext
from agent_demos.demos.console import ConsoleDisplay, chat_loop, format_plain
from agent_demos.demos.registry import DemoRegistry

AGENT_NAME = "Assistant"
INSTRUCTIONS = (
    "You are a helpful assistant. Use the available functions when a question "
    "depends on information you cannot know, such as today's date."
)


@DemoRegistry.register
class BasicChat(Demo):
    def name(self) -> str:
        return "basic-chat"

    def description(self) -> str:
        return "Question/answer chat with automatic function calling (clock plugin)."

    async def run(self, context: DemoContext) -> TurnCoordinator:
        agent = ChatAgent(
            name=AGENT_NAME,
            instructions=context.instructions_for(AGENT_NAME, INSTRUCTIONS),
            model=context.create_model(),
            plugins=context.plugins_for(AGENT_NAME, ["clock"]),
            event_logger=context.event_logger,
        )
        return await chat_loop(
            context,
            agent,
            ConsoleDisplay(context.write, format_plain),
            greeting="Enter your question or type 'exit' to quit:",
            prompt="",
            greet_every_turn=True,
        )
