"""
Registry for managing and instantiating model providers.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, TYPE_CHECKING, Union

from agent_demos.core.config import DEFAULT_MODEL_CONFIG, ModelConfig, load_model_config
from agent_demos.models.provider import ModelProvider

if TYPE_CHECKING:
    from agent_demos.observability.event_logger import EventLogger

logger = logging.getLogger(__name__)


class ModelNotFoundError(Exception):
    """Exception raised when a model is not found in the registry."""
    pass


class ModelRegistry:
    """
    Registry for model configurations.

    Starts with the built-in Azure gpt-4o config; YAML files loaded later
    override entries with the same name.
    """

    def __init__(self):
        self._configs: Dict[str, ModelConfig] = {DEFAULT_MODEL_CONFIG.name: DEFAULT_MODEL_CONFIG}

    def load_from_yaml(self, directory: Union[str, Path]):
        """
        Load all YAML model configs from a directory.

        Files that fail to load are skipped with a warning; a missing
        directory is ignored.

        Args:
            directory: Path to the directory containing model YAML files.
        """
        dir_path = Path(directory)
        if not dir_path.is_dir():
            return

        for yaml_file in sorted(dir_path.glob("*.yaml")):
            try:
                self.register(load_model_config(yaml_file))
            except Exception as e:
                logger.warning(f"Skipping invalid model config {yaml_file}: {e}")

    def register(self, config: ModelConfig):
        """Register a model configuration, replacing any with the same name."""
        self._configs[config.name] = config

    def get_config(self, name: str) -> ModelConfig:
        """
        Look up a registered model configuration.

        Raises:
            ModelNotFoundError: If the model name is not registered.
        """
        if name not in self._configs:
            raise ModelNotFoundError(
                f"Model not found in registry: {name}. Available: {self.list_available()}"
            )
        return self._configs[name]

    def get(
        self,
        name: str,
        event_logger: Optional["EventLogger"] = None,
        conversation_id: str = "",
    ) -> ModelProvider:
        """
        Get a new ModelProvider instance for the given model name.

        Args:
            name: The name of the model.
            event_logger: Optional logger handed to the provider for LLM_CALL events.
            conversation_id: Conversation the provider's events belong to.

        Returns:
            A fresh ModelProvider instance.

        Raises:
            ModelNotFoundError: If the model name is not registered.
        """
        return ModelProvider(
            self.get_config(name),
            event_logger=event_logger,
            conversation_id=conversation_id,
        )

    def list_available(self) -> List[str]:
        """Return a list of available model names."""
        return sorted(self._configs.keys())
