"""Generation client: the key pool, dispatcher and orchestrator as one unit."""

from dataclasses import dataclass

import httpx

from app.core.config import Settings
from app.core.logging import get_logger
from app.generation.dispatcher import DEFAULT_SAFETY_SETTINGS, GeminiDispatcher
from app.generation.key_pool import KeyPool
from app.generation.orchestrator import BatchOrchestrator

logger = get_logger(__name__)


@dataclass
class GenerationClient:
    """Everything needed to talk to the generation API.

    Built once per application (see ``app.main``) and passed down to the
    generation service; tests build their own.
    """

    key_pool: KeyPool
    dispatcher: GeminiDispatcher
    orchestrator: BatchOrchestrator

    async def aclose(self) -> None:
        await self.dispatcher.aclose()


def build_generation_client(
    settings: Settings,
    http_client: httpx.AsyncClient | None = None,
) -> GenerationClient:
    """Build a generation client from settings."""
    keys = settings.gemini_api_keys
    if not keys:
        logger.warning("No Gemini API keys configured; generation requests will fail")

    key_pool = KeyPool(
        keys,
        max_requests_per_key=settings.KEY_MAX_REQUESTS_PER_WINDOW,
        time_window=settings.KEY_TIME_WINDOW,
        min_interval=settings.KEY_MIN_INTERVAL,
        max_consecutive_errors=settings.KEY_MAX_CONSECUTIVE_ERRORS,
        cooldown=settings.KEY_COOLDOWN,
    )
    dispatcher = GeminiDispatcher(
        key_pool,
        api_url=settings.GEMINI_API_URL,
        timeout=settings.GEMINI_TIMEOUT,
        generation_config=settings.generation_config,
        safety_settings=DEFAULT_SAFETY_SETTINGS,
        http_client=http_client,
    )
    orchestrator = BatchOrchestrator(
        key_pool,
        dispatcher,
        batch_pause=settings.BATCH_PAUSE,
    )
    logger.info("Generation client ready", keys=len(key_pool), api_url=settings.GEMINI_API_URL)
    return GenerationClient(key_pool=key_pool, dispatcher=dispatcher, orchestrator=orchestrator)
