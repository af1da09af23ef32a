"""Generation error types."""


class GenerationError(Exception):
    """Base class for failures talking to the generative-text API."""


class NoCredentialsConfiguredError(GenerationError):
    """No API keys are configured at all (configuration error)."""

    def __init__(self) -> None:
        super().__init__(
            "No valid Gemini API keys configured. Set GEMINI_API_KEYS to a comma separated list."
        )


class CredentialsExhaustedError(GenerationError):
    """Keys are configured but none is eligible right now (transient)."""

    def __init__(self, retry_after: float = 0.0) -> None:
        self.retry_after = retry_after
        super().__init__(
            f"All API keys are currently busy or suspended. Retry in {retry_after:.1f}s."
        )


class GenerationTimeoutError(GenerationError):
    pass


class GenerationNetworkError(GenerationError):
    pass


class GenerationHTTPError(GenerationError):
    def __init__(self, status_code: int, body: str) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"HTTP {status_code}: {body[:200]}")


class MalformedResponseError(GenerationError):
    pass


class EmptyResponseError(GenerationError):
    pass


class RoadmapGenerationError(Exception):
    """Structure generation failed; the roadmap flow cannot continue."""
