"""
Remote reasoning gateway backed by Google GenAI.

Every call passes through the shared rate limiter and is made exactly once;
failures surface as ``RemoteGatewayError`` subclasses so the router can fall
back to local knowledge.
"""

import asyncio
import logging
import time
from typing import Any, Callable, Dict, Optional

from google import genai
from google.genai import errors as genai_errors

from mila_assistant.core.config import GeminiConfig
from mila_assistant.core.constants import MILA_PROMPT
from mila_assistant.core.exceptions import (
    RemoteConfigurationError,
    RemoteEmptyResponse,
    RemoteGatewayError,
    RemoteRateLimitError,
    RemoteTransportError,
)
from mila_assistant.schemas import AssistantContext
from mila_assistant.services.rate_limiter import SlidingWindowRateLimiter

logger = logging.getLogger(__name__)

CONNECTION_TEST_PROMPT = "Reply with the single word OK."


def default_client_factory(api_key: str) -> Any:
    return genai.Client(api_key=api_key)


class RemoteGateway:
    """Calls the remote model with the assistant prompt and the user's context."""

    def __init__(
        self,
        config: GeminiConfig,
        rate_limiter: SlidingWindowRateLimiter,
        client_factory: Callable[[str], Any] = default_client_factory,
    ):
        self.config = config
        self.rate_limiter = rate_limiter
        self._client_factory = client_factory
        self._client = None
        self._calls = 0
        self._failures = 0
        self._last_call_at: Optional[float] = None

    def is_configured(self) -> bool:
        return bool(self.config.api_key and self.config.api_key.strip())

    def _get_client(self) -> Any:
        if not self.is_configured():
            raise RemoteConfigurationError("GEMINI_API_KEY is not set")
        if self._client is None:
            self._client = self._client_factory(self.config.api_key)
            logger.info(f"GenAI client initialized for model {self.config.model_name}")
        return self._client

    def build_prompt(self, query: str, context: Optional[AssistantContext] = None) -> str:
        context = context or AssistantContext()
        return MILA_PROMPT.format(
            form_type=context.form_type or "Unknown",
            current_field=context.current_field or "None",
            current_step=context.current_step if context.current_step is not None else "Unknown",
            device_type=context.device_type,
            query=query,
        )

    async def generate(self, query: str, context: Optional[AssistantContext] = None) -> str:
        """
        Ask the remote model for an answer.

        Raises:
            RemoteConfigurationError: No usable credential
            RemoteRateLimitError: The service refused the call for quota reasons
            RemoteTransportError: Network failure, timeout or other service error
            RemoteEmptyResponse: The model returned no text
        """
        client = self._get_client()
        prompt = self.build_prompt(query, context)

        await self.rate_limiter.acquire()
        self._calls += 1
        self._last_call_at = time.time()
        start = time.time()

        try:
            response = await asyncio.wait_for(
                client.aio.models.generate_content(
                    model=self.config.model_name,
                    contents=[{"role": "user", "parts": [{"text": prompt}]}],
                    config={
                        "temperature": self.config.temperature,
                        "max_output_tokens": self.config.max_output_tokens,
                        "candidate_count": 1,
                    },
                ),
                timeout=self.config.request_timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            self._failures += 1
            logger.warning(f"Remote call timed out after {self.config.request_timeout_seconds}s")
            raise RemoteTransportError("Remote call timed out") from e
        except genai_errors.APIError as e:
            self._failures += 1
            raise self._map_api_error(e) from e
        except Exception as e:
            self._failures += 1
            logger.error(f"Failed to generate content: {e}", exc_info=True)
            raise RemoteTransportError(str(e)) from e

        text = getattr(response, "text", None)
        if not text or not text.strip():
            self._failures += 1
            logger.error("Model returned no candidates or empty response.")
            raise RemoteEmptyResponse("Remote model returned no text")

        logger.info(f"Remote response generated in {time.time() - start:.3f}s")
        return text.strip()

    def _map_api_error(self, error: "genai_errors.APIError"):
        code = getattr(error, "code", None)
        logger.warning(f"Remote service returned error {code}: {error}")
        if code in (401, 403):
            return RemoteConfigurationError(f"Credential rejected ({code})")
        if code == 429:
            return RemoteRateLimitError("Remote quota exceeded")
        return RemoteTransportError(f"Remote service error ({code})")

    async def test_connection(self) -> Dict[str, Any]:
        """One small round trip; reports failure instead of raising."""
        if not self.is_configured():
            return {"success": False, "message": "GEMINI_API_KEY is not set"}
        try:
            await self.generate(CONNECTION_TEST_PROMPT)
            return {"success": True, "message": f"Connected to {self.config.model_name}"}
        except RemoteGatewayError as e:
            logger.warning(f"Remote connection test failed: {e}")
            return {"success": False, "message": e.user_message}

    def usage_stats(self) -> Dict[str, Any]:
        window = self.rate_limiter.snapshot()
        return {
            "configured": self.is_configured(),
            "model": self.config.model_name,
            "total_calls": self._calls,
            "failed_calls": self._failures,
            "last_call_at": self._last_call_at,
            "requests_this_window": window.requests_this_window,
            "max_requests": self.rate_limiter.max_requests,
            "window_seconds": self.rate_limiter.window_seconds,
            "time_to_reset": window.time_to_reset,
            "pending": window.pending,
        }
