"""
Configuration and environment loading utilities.
"""

import os
from typing import List, Optional, Union, Dict, Any
from pathlib import Path
import yaml
from pydantic import BaseModel, Field
from dotenv import load_dotenv

# Load environment variables from .env file if it exists
load_dotenv()

DEFAULT_MODELS_DIR = Path("configs/models")


class ConfigError(Exception):
    """Exception raised for configuration errors."""

    pass


def get_env(key: str, default: str = None) -> str:
    """
    Get an environment variable or raise ConfigError if it's missing and no default is provided.
    """
    value = os.getenv(key, default)
    if value is None:
        raise ConfigError(f"Missing required environment variable: {key}")
    return value


# --- Config Models ---


class ModelConfig(BaseModel):
    name: str
    litellm_model: str
    api_key_env: str
    api_base_env: Optional[str] = None
    api_version: Optional[str] = None
    max_tokens: int = 4096
    temperature: float = 0.7
    timeout_seconds: float = 120.0


# The original demos all talk to an Azure OpenAI "gpt-4o" deployment
DEFAULT_MODEL_CONFIG = ModelConfig(
    name="gpt-4o",
    litellm_model="azure/gpt-4o",
    api_key_env="AZUREOPENAI_APIKEY",
    api_base_env="AZUREOPENAI_ENDPOINT",
    api_version="2024-08-01-preview",
)


class AgentConfig(BaseModel):
    name: str
    instructions: str
    plugins: List[str] = Field(default_factory=list)


class DemoConfig(BaseModel):
    name: str
    model: ModelConfig = Field(default_factory=lambda: DEFAULT_MODEL_CONFIG)
    agents: List[AgentConfig] = Field(default_factory=list)
    approval_marker: str = "approve"
    max_iterations: int = 10
    min_reviews: int = 0
    topic: Optional[str] = None


# --- Loaders ---


def _load_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")

    try:
        with open(path, "r") as f:
            return yaml.safe_load(f)
    except Exception as e:
        raise ConfigError(f"Failed to parse YAML file {path}: {e}")


def load_model_config(path: Union[str, Path]) -> ModelConfig:
    data = _load_yaml(path)
    return ModelConfig(**data)


def resolve_model_config(
    name: str, models_dir: Union[str, Path] = DEFAULT_MODELS_DIR
) -> ModelConfig:
    """
    Look up a model config by name in the models directory.

    Falls back to the built-in Azure gpt-4o config when no file matches
    and the requested name is the default one.
    """
    model_path = Path(models_dir) / f"{name}.yaml"
    if model_path.exists():
        return load_model_config(model_path)
    if name == DEFAULT_MODEL_CONFIG.name:
        return DEFAULT_MODEL_CONFIG
    raise ConfigError(f"Model config not found for: {name}")


def load_demo_config(
    path: Union[str, Path], models_dir: Union[str, Path] = DEFAULT_MODELS_DIR
) -> DemoConfig:
    """
    Load a demo config, resolving its model name against the models directory.

    A config without a ``model`` key gets the default model config.

    Raises:
        ConfigError: If the file is missing, empty, not a mapping, or names an unknown model.
    """
    data = _load_yaml(path)
    if not data:
        raise ConfigError(f"Demo config is empty: {path}")
    if not isinstance(data, dict):
        raise ConfigError(f"Demo config must be a mapping: {path}")

    # Resolve nested model config if it's a string (name)
    data.setdefault("model", DEFAULT_MODEL_CONFIG.name)
    if isinstance(data["model"], str):
        data["model"] = resolve_model_config(data["model"], models_dir)

    return DemoConfig(**data)
