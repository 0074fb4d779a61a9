"""
CLI entry point for running the console demos.

Usage:
    agent-demos <demo> [--model NAME] [--config PATH] [--events DIR] [-v]
    agent-demos --list
"""

import argparse
import asyncio
import logging
import sys
from datetime import datetime

from agent_demos.core.config import (
    DEFAULT_MODELS_DIR,
    ConfigError,
    load_demo_config,
)
from agent_demos.conversation.errors import ConversationError
from agent_demos.demos.registry import DemoNotFoundError, DemoRegistry
from agent_demos.demos.base import DemoContext
from agent_demos.models.registry import ModelNotFoundError, ModelRegistry
from agent_demos.observability.event_logger import EventLogger

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="agent-demos",
        description="Run a chat agent console demo.",
    )
    parser.add_argument(
        "demo",
        nargs="?",
        default=None,
        help="Name of the demo to run (see --list). Defaults to the one named in --config.",
    )
    parser.add_argument(
        "--list",
        action="store_true",
        help="List available demos and exit.",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to a demo config YAML file.",
    )
    parser.add_argument(
        "--model",
        default=None,
        help="Model config name (default: gpt-4o, or the one in --config).",
    )
    parser.add_argument(
        "--models-dir",
        default=str(DEFAULT_MODELS_DIR),
        help="Directory holding model config YAML files.",
    )
    parser.add_argument(
        "--events",
        default=None,
        help="Write conversation events as JSONL under this directory.",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging.",
    )
    return parser.parse_args(argv)


def build_context(args: argparse.Namespace) -> tuple[str, DemoContext]:
    """Resolve the demo name and assemble its context from the arguments."""
    demo_config = None
    if args.config:
        demo_config = load_demo_config(args.config, models_dir=args.models_dir)

    demo_name = args.demo or (demo_config.name if demo_config else None)
    if demo_name is None:
        raise ConfigError("No demo given. Pass a demo name or --config.")

    models = ModelRegistry()
    models.load_from_yaml(args.models_dir)
    if args.model:
        model_config = models.get_config(args.model)
    elif demo_config is not None:
        model_config = demo_config.model
    else:
        model_config = models.get_config("gpt-4o")

    event_logger = None
    if args.events:
        run_id = f"{demo_name}-{datetime.now():%Y%m%d-%H%M%S}"
        event_logger = EventLogger(run_id, output_dir=args.events)

    context = DemoContext(
        model_config=model_config,
        demo_config=demo_config,
        event_logger=event_logger,
    )
    return demo_name, context


async def async_main(args: argparse.Namespace) -> int:
    """Run the selected demo asynchronously."""
    demo_name, context = build_context(args)
    demo = DemoRegistry.get(demo_name)

    print("Hello, agents!")
    logger.info(f"Running demo '{demo_name}' with model {context.model_config.name}")
    await demo.run(context)

    if context.event_logger is not None and context.event_logger.output_path:
        print(f"Events:     {context.event_logger.output_path}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    args = parse_args(argv)

    level = logging.DEBUG if args.verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )

    if args.list:
        for name in DemoRegistry.list_available():
            print(f"{name:<16} {DemoRegistry.get(name).description()}")
        return 0

    try:
        return asyncio.run(async_main(args))
    except (ConfigError, ModelNotFoundError, DemoNotFoundError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    except ConversationError as e:
        print(f"conversation failed: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
