"""API routes."""

from app.api.routes import courses, generation, history, roadmaps, users, websocket

__all__ = ["users", "roadmaps", "courses", "history", "generation", "websocket"]
