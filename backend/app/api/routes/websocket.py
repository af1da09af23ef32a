"""WebSocket route streaming detailed course generation progress."""

import asyncio

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from app.api.deps import SessionScopeDep
from app.core.auth import get_auth_user_from_ws
from app.core.logging import get_logger
from app.generation.errors import CredentialsExhaustedError, GenerationError
from app.schemas.course import DetailedCourseResponse
from app.services import generation_service

logger = get_logger(__name__)
router = APIRouter(prefix="/ws", tags=["websocket"])


async def _send_error(websocket: WebSocket, message: str, **extra) -> None:
    await websocket.send_json({"type": "error", "message": message, **extra})


@router.websocket("/roadmaps/{roadmap_id}/course")
async def detailed_course_endpoint(
    websocket: WebSocket, roadmap_id: str, session_scope: SessionScopeDep
):
    """Generate a detailed course and stream its progress.

    No database session is held while chapters are generated; one is opened
    to load the roadmap and another to save the course.

    Messages sent to the client, in order:

    - ``{"type": "progress", "data": {"progress", "status", "current_chapter"}}``
      any number of times
    - ``{"type": "course", "data": <detailed course>}`` once generation and
      saving are done, or ``{"type": "error", "message": ...}``
    """
    await websocket.accept()
    user_id = get_auth_user_from_ws(websocket)
    generation = websocket.app.state.generation
    store = websocket.app.state.learning_store
    logger.info("WebSocket connected", roadmap_id=roadmap_id, user_id=user_id)

    task: asyncio.Task[DetailedCourseResponse] | None = None
    try:
        async with session_scope() as db:
            roadmap = await store.get_roadmap(db, user_id, roadmap_id)
        if not roadmap:
            await _send_error(websocket, "Roadmap not found")
            await websocket.close()
            return

        queue: asyncio.Queue[dict | None] = asyncio.Queue()

        def on_progress(percent: int, status: str, chapter: str | None) -> None:
            queue.put_nowait({
                "type": "progress",
                "data": {"progress": percent, "status": status, "current_chapter": chapter},
            })

        async def produce() -> DetailedCourseResponse:
            try:
                return await generation_service.generate_detailed_course(
                    generation, roadmap, on_progress
                )
            finally:
                # End of stream
                queue.put_nowait(None)

        task = asyncio.create_task(produce())
        while True:
            event = await queue.get()
            if event is None:
                break
            await websocket.send_json(event)

        try:
            course = await task
        except CredentialsExhaustedError as e:
            await _send_error(websocket, str(e), retry_after=e.retry_after)
            await websocket.close()
            return
        except GenerationError as e:
            logger.error("Detailed course generation failed", roadmap_id=roadmap_id, error=str(e))
            await _send_error(websocket, str(e))
            await websocket.close()
            return

        async with session_scope() as db:
            course = await store.save_detailed_course(db, user_id, course)
        await websocket.send_json(
            {"type": "course", "data": course.model_dump(mode="json", by_alias=True)}
        )
        await websocket.close()

    except WebSocketDisconnect:
        logger.info("WebSocket disconnected", roadmap_id=roadmap_id, user_id=user_id)
    finally:
        if task is not None and not task.done():
            task.cancel()
