"""Gemini request dispatcher: one prompt, one key, one HTTP call."""

from typing import Any

import httpx

from app.core.logging import get_logger
from app.generation.errors import (
    EmptyResponseError,
    GenerationHTTPError,
    GenerationNetworkError,
    GenerationTimeoutError,
    MalformedResponseError,
)
from app.generation.key_pool import KeyPool

logger = get_logger(__name__)

DEFAULT_GENERATION_CONFIG: dict[str, Any] = {
    "temperature": 0.2,
    "topK": 20,
    "topP": 0.8,
    "maxOutputTokens": 4096,
}

DEFAULT_SAFETY_SETTINGS: list[dict[str, str]] = [
    {"category": category, "threshold": "BLOCK_MEDIUM_AND_ABOVE"}
    for category in (
        "HARM_CATEGORY_HARASSMENT",
        "HARM_CATEGORY_HATE_SPEECH",
        "HARM_CATEGORY_SEXUALLY_EXPLICIT",
        "HARM_CATEGORY_DANGEROUS_CONTENT",
    )
]


def extract_text(data: Any) -> str:
    """Pull ``candidates[0].content.parts[0].text`` out of a response body."""
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError) as e:
        raise MalformedResponseError("Invalid response structure") from e
    if not isinstance(text, str):
        raise MalformedResponseError("Response text is not a string")
    if not text.strip():
        raise EmptyResponseError("Empty response content")
    return text


class GeminiDispatcher:
    """Sends single generateContent requests and reports outcomes to the key pool.

    There are no retries here; callers decide what to do with a failure.
    """

    def __init__(
        self,
        key_pool: KeyPool,
        *,
        api_url: str,
        timeout: float = 30.0,
        generation_config: dict[str, Any] | None = None,
        safety_settings: list[dict[str, str]] | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.key_pool = key_pool
        self.api_url = api_url
        self.timeout = timeout
        self.generation_config = generation_config or dict(DEFAULT_GENERATION_CONFIG)
        self.safety_settings = safety_settings or list(DEFAULT_SAFETY_SETTINGS)
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    def build_body(self, prompt: str) -> dict[str, Any]:
        return {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": self.generation_config,
            "safetySettings": self.safety_settings,
        }

    async def dispatch(self, prompt: str, key_id: int, *, request_id: str) -> str:
        """Send ``prompt`` with key ``key_id`` and return the generated text.

        Raises:
            GenerationError: on timeout, network failure, non-2xx status,
                malformed or empty payload. The failure is recorded against
                the key before raising.
        """
        key_label = self.key_pool.label(key_id)
        logger.debug("Dispatching request", request_id=request_id, key=key_label)

        try:
            text = await self._send(prompt, key_id)
        except Exception as e:
            self.key_pool.record_failure(key_id)
            logger.warning(
                "Request failed",
                request_id=request_id,
                key=key_label,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise

        self.key_pool.record_success(key_id)
        logger.info("Request succeeded", request_id=request_id, key=key_label)
        return text

    async def _send(self, prompt: str, key_id: int) -> str:
        try:
            response = await self._client.post(
                self.api_url,
                params={"key": self.key_pool.secret(key_id)},
                json=self.build_body(prompt),
                timeout=self.timeout,
            )
        except httpx.TimeoutException as e:
            raise GenerationTimeoutError(f"Request timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            # str(e) may embed the request URL, which carries the key
            raise GenerationNetworkError(type(e).__name__) from e

        if not response.is_success:
            raise GenerationHTTPError(response.status_code, response.text)

        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResponseError("Response body is not JSON") from e

        return extract_text(data)

    async def aclose(self) -> None:
        await self._client.aclose()
