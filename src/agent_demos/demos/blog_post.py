"""
BlogPostWorkflow: a writer and a critic take turns on a blog post until the
critic approves it or runs out of review rounds.
"""

import logging

from agent_demos.conversation.coordinator import ChatResult, TurnCoordinator
from agent_demos.conversation.messages import Message
from agent_demos.conversation.participant import ChatAgent
from agent_demos.conversation.termination import approval_policy
from agent_demos.demos.base import Demo, DemoContext
from agent_demos.demos.console import ConsoleDisplay, format_transcript
from agent_demos.demos.registry import DemoRegistry

logger = logging.getLogger(__name__)

CRITIC_NAME = "CriticAgent"
CRITIC_INSTRUCTIONS = """\
You are an expert critic with years of experience reviewing blog posts.
Evaluate the blog post article for clarity, engagement, factual accuracy, and style.
Always begin your response with the iteration number and the blog post content.
If the blog post meets your high standards, conclude your critique with the word "approve".
Otherwise, provide concise suggestions for improvement.
Also, always provide feedback on the first critic, even if the blog post is perfect. Think very carefully and provide feedback to improve the article no matter what for the first iteration.
"""

WRITER_NAME = "WriterAgent"
WRITER_INSTRUCTIONS = """\
You are a seasoned writer with expertise in technology and events.
Your task is to write an engaging and informative blog post article about a provided topic.
The article should include a captivating title, a brief introduction, main content sections, and a conclusion.
Provide a complete draft in one response, and incorporate creativity and clarity throughout.
You will receive critic feedback and you will revise the article accordingly.
"""

DEFAULT_TOPIC = "the Global AI Barcelona event"


def build_request(topic: str) -> str:
    return (
        f"Please write a blog post article about {topic}. "
        "The article should be engaging and informative, include a captivating title, "
        "an introduction, main content sections, and a conclusion tailored for a "
        "tech-savvy audience."
    )


@DemoRegistry.register
class BlogPostWorkflow(Demo):
    def name(self) -> str:
        return "blog-post"

    def description(self) -> str:
        return "Writer/critic group chat that stops when the critic approves."

    async def run(self, context: DemoContext) -> ChatResult:
        config = context.demo_config
        topic = (config.topic if config and config.topic else DEFAULT_TOPIC)
        marker = config.approval_marker if config else "approve"
        max_iterations = config.max_iterations if config else 10
        min_reviews = config.min_reviews if config else 0

        writer = ChatAgent(
            name=WRITER_NAME,
            instructions=context.instructions_for(WRITER_NAME, WRITER_INSTRUCTIONS),
            model=context.create_model(),
            event_logger=context.event_logger,
            conversation_id=self.name(),
        )
        critic = ChatAgent(
            name=CRITIC_NAME,
            instructions=context.instructions_for(CRITIC_NAME, CRITIC_INSTRUCTIONS),
            model=context.create_model(),
            event_logger=context.event_logger,
            conversation_id=self.name(),
        )

        coordinator = TurnCoordinator(
            [writer, critic],
            policy=approval_policy(
                [critic], marker=marker, max_iterations=max_iterations, min_reviews=min_reviews
            ),
            event_logger=context.event_logger,
            conversation_id=self.name(),
        )

        display = ConsoleDisplay(context.write, format_transcript)
        request = Message.user(build_request(topic))
        coordinator.add_message(request)
        display.show(request)

        async for message in coordinator.invoke():
            display.show(message)

        result = coordinator.result()
        context.write(f"\n[IS COMPLETED: {result.is_complete}]")
        logger.info(
            f"Blog post workflow finished after {result.turns} turns "
            f"({len(result.messages)} messages)"
        )
        return result
