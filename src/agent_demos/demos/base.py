"""
Abstract base class for console demos and the context they run in.

Every demo subclasses Demo and implements run(). A DemoContext carries the
collaborators a demo needs (model config, console I/O, event logger) so
demos can be driven from tests without a terminal or a live model.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional

from agent_demos.core.config import DEFAULT_MODEL_CONFIG, DemoConfig, ModelConfig
from agent_demos.models.provider import ModelProvider
from agent_demos.observability.event_logger import EventLogger
from agent_demos.plugins.clock import WhatDateIsIt
from agent_demos.plugins.registry import PluginError, PluginRegistry

# Plugins that demos may enable by name
AVAILABLE_PLUGINS: Dict[str, Callable[[], Any]] = {
    "clock": WhatDateIsIt,
}


def build_plugins(names: Iterable[str]) -> PluginRegistry:
    """Create a PluginRegistry holding the named plugins."""
    registry = PluginRegistry()
    for name in names:
        if name not in AVAILABLE_PLUGINS:
            raise PluginError(
                f"Unknown plugin '{name}'. Available: {sorted(AVAILABLE_PLUGINS)}"
            )
        registry.add_plugin(AVAILABLE_PLUGINS[name]())
    return registry


async def _read_console(prompt: str) -> str:
    return await asyncio.to_thread(input, prompt)


@dataclass
class DemoContext:
    """Collaborators handed to a running demo."""

    model_config: ModelConfig = field(default_factory=lambda: DEFAULT_MODEL_CONFIG)
    demo_config: Optional[DemoConfig] = None
    event_logger: Optional[EventLogger] = None
    read_line: Callable[[str], Awaitable[str]] = _read_console
    write: Callable[[str], None] = print
    model_factory: Optional[Callable[[ModelConfig], ModelProvider]] = None

    def create_model(self) -> ModelProvider:
        """Each agent gets its own provider so token usage is tracked per agent."""
        if self.model_factory is not None:
            return self.model_factory(self.model_config)
        return ModelProvider(
            self.model_config,
            event_logger=self.event_logger,
            conversation_id=self.event_logger.run_id if self.event_logger else "",
        )

    def instructions_for(self, agent_name: str, default: str) -> str:
        """Instructions from the demo config when it overrides this agent, else ``default``."""
        for agent in self._configured_agents():
            if agent.name == agent_name:
                return agent.instructions
        return default

    def plugins_for(self, agent_name: str, default: Iterable[str] = ()) -> PluginRegistry:
        for agent in self._configured_agents():
            if agent.name == agent_name:
                return build_plugins(agent.plugins)
        return build_plugins(default)

    def _configured_agents(self):
        return self.demo_config.agents if self.demo_config else []


class Demo(ABC):
    """
    Plugin contract for demos.

    Subclasses must implement name(), description() and run().
    """

    @abstractmethod
    def name(self) -> str:
        """Return the unique name of this demo."""
        ...

    @abstractmethod
    def description(self) -> str:
        ...

    @abstractmethod
    async def run(self, context: DemoContext) -> Any:
        """Run the demo against the given context."""
        ...
