"""
Chat model client built on LiteLLM.
"""

import asyncio
import logging
import time
from typing import TYPE_CHECKING, List, Dict, Any, Optional

import litellm
from litellm import acompletion

from agent_demos.core.config import ModelConfig, get_env

if TYPE_CHECKING:
    from agent_demos.observability.event_logger import EventLogger

logger = logging.getLogger(__name__)

DEFAULT_RETRIES = 3


class ModelError(Exception):
    """Exception raised for model-related errors."""
    pass


class ModelProvider:
    """
    Async chat completion client for one configured model.

    Resolves the endpoint and credential from the environment, retries
    transient failures with exponential backoff and keeps running
    token/cost totals.
    """

    def __init__(
        self,
        config: ModelConfig,
        event_logger: Optional["EventLogger"] = None,
        conversation_id: str = "",
        retries: int = DEFAULT_RETRIES,
    ):
        """
        Args:
            config: The model to call and where its credentials live.
            event_logger: Optional logger that receives an LLM_CALL event per completion.
            conversation_id: Conversation the logged events belong to.
            retries: Total attempts per completion before giving up.

        Raises:
            ConfigError: If the API key or endpoint variable is not set.
        """
        self.config = config
        self.api_key = get_env(config.api_key_env)
        self.api_base = get_env(config.api_base_env) if config.api_base_env else None
        self.retries = retries
        self._event_logger = event_logger
        self._conversation_id = conversation_id

        self.prompt_tokens = 0
        self.completion_tokens = 0
        self.total_cost = 0.0

    def _build_params(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]],
        max_tokens: Optional[int],
        temperature: Optional[float],
    ) -> Dict[str, Any]:
        """Build the keyword arguments for one acompletion call."""
        params: Dict[str, Any] = {
            "model": self.config.litellm_model,
            "messages": messages,
            "max_tokens": max_tokens or self.config.max_tokens,
            "temperature": temperature if temperature is not None else self.config.temperature,
            "timeout": self.config.timeout_seconds,
            "api_key": self.api_key,
        }
        if self.api_base:
            params["api_base"] = self.api_base
        if self.config.api_version:
            params["api_version"] = self.config.api_version
        if tools:
            params["tools"] = tools
            params["tool_choice"] = "auto"
        return params

    async def complete(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        agent_id: Optional[str] = None,
    ) -> Any:
        """
        Request one chat completion.

        Args:
            messages: OpenAI-style message dicts.
            tools: Optional function tool declarations the model may call.
            max_tokens: Override config max_tokens.
            temperature: Override config temperature.
            agent_id: Name of the calling agent, used for event logging.

        Returns:
            The raw LiteLLM response.

        Raises:
            ModelError: If the call fails after all retries.
        """
        params = self._build_params(messages, tools, max_tokens, temperature)
        delay = 1

        for attempt in range(self.retries):
            try:
                call_start = time.time()
                response = await acompletion(**params)
                call_duration_ms = (time.time() - call_start) * 1000
                self._update_usage(response)
                self._log_llm_call(response, call_duration_ms, agent_id)
                return response
            except Exception as e:
                # LiteLLM raises various exceptions for transient errors
                # (RateLimitError, Timeout, ServiceUnavailableError, etc.)
                if attempt < self.retries - 1:
                    logger.warning(f"Attempt {attempt + 1} failed: {e}. Retrying in {delay}s...")
                    await asyncio.sleep(delay)
                    delay *= 2
                else:
                    logger.error(f"All {self.retries} attempts failed for model {self.config.name}")
                    raise ModelError(f"Model call failed: {e}") from e

    def _update_usage(self, response: Any):
        """Add the response's token counts and, when LiteLLM can price it, its cost."""
        try:
            usage = response.usage
            self.prompt_tokens += usage.prompt_tokens
            self.completion_tokens += usage.completion_tokens
        except AttributeError:
            logger.warning("Response missing usage information")
            return

        try:
            cost = litellm.completion_cost(completion_response=response)
            if cost:
                self.total_cost += float(cost)
        except Exception as e:
            # Unknown deployments (e.g. Azure aliases) have no price entry
            logger.debug(f"Cost lookup failed for {self.config.litellm_model}: {e}")

    def get_total_tokens(self) -> int:
        """Return cumulative token count."""
        return self.prompt_tokens + self.completion_tokens

    def get_usage(self) -> Dict[str, Any]:
        """Return current usage statistics."""
        return {
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.get_total_tokens(),
            "total_cost_usd": self.total_cost,
        }

    def reset_usage(self):
        """Reset usage statistics to zero."""
        self.prompt_tokens = 0
        self.completion_tokens = 0
        self.total_cost = 0.0

    def _log_llm_call(
        self, response: Any, duration_ms: float, agent_id: Optional[str] = None
    ) -> None:
        """Log an LLM_CALL event if event_logger is configured."""
        if self._event_logger is None:
            return

        from agent_demos.observability.event_logger import Event, EventType

        payload: Dict[str, Any] = {
            "model": self.config.litellm_model,
            "duration_ms": round(duration_ms, 1),
        }
        usage = getattr(response, "usage", None)
        if usage is not None:
            payload.update({
                "prompt_tokens": usage.prompt_tokens,
                "completion_tokens": usage.completion_tokens,
                "total_tokens": usage.total_tokens,
            })

        self._event_logger.log(Event(
            type=EventType.LLM_CALL,
            conversation_id=self._conversation_id,
            agent_id=agent_id,
            payload=payload,
        ))
