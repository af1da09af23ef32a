"""Gemini generation: key pool, dispatcher, batch orchestrator."""

from app.generation.client import GenerationClient, build_generation_client

__all__ = ["GenerationClient", "build_generation_client"]
