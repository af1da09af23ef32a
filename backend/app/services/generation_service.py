"""Roadmap and course generation pipeline."""

import time
import uuid
from collections.abc import Callable
from datetime import datetime
from typing import Any

from app.core.logging import get_logger
from app.generation.client import GenerationClient
from app.generation.errors import (
    CredentialsExhaustedError,
    GenerationError,
    NoCredentialsConfiguredError,
    RoadmapGenerationError,
)
from app.generation.llm_utils import parse_json_object
from app.generation.orchestrator import GenerationTask, new_request_id
from app.generation.prompts import chapter_content_prompt, quiz_prompt, roadmap_structure_prompt
from app.schemas.course import DetailedChapter, DetailedCourseResponse
from app.schemas.roadmap import RoadmapResponse, RoadmapSkeleton

logger = get_logger(__name__)

# (percent 0-100, status message, chapter title being generated)
ProgressCallback = Callable[[int, str, str | None], None]


def _report(
    on_progress: ProgressCallback | None,
    percent: int,
    status: str,
    chapter: str | None = None,
) -> None:
    if on_progress is not None:
        on_progress(percent, status, chapter)


def new_roadmap_id() -> str:
    """Roadmap ids look like ``roadmap_<epoch ms>_<9 random chars>``."""
    return f"roadmap_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


# ============================================================================
# Roadmap structure
# ============================================================================


def _normalize_chapters(chapters_raw: Any) -> list[dict]:
    """Fill in ids and positions the model left out.

    Raises:
        ValueError: If there is no usable chapter
    """
    if not isinstance(chapters_raw, list):
        raise ValueError("'chapters' must be a list")

    chapters = []
    for i, chapter in enumerate(chapters_raw):
        if not isinstance(chapter, dict):
            logger.warning("Skipping invalid chapter", index=i)
            continue
        chapter = dict(chapter)
        chapter.setdefault("id", f"chapter-{i + 1}")
        if chapter.get("position") not in ("left", "right"):
            chapter["position"] = "left" if i % 2 == 0 else "right"
        # A fresh roadmap never starts with completed chapters
        chapter["completed"] = False
        chapters.append(chapter)

    if not chapters:
        raise ValueError("Roadmap has no chapters")
    return chapters


def build_skeleton(data: dict[str, Any], subject: str, difficulty: str) -> RoadmapSkeleton:
    """Validate a parsed structure response into a roadmap skeleton."""
    data = dict(data)
    data.setdefault("subject", subject)
    data.setdefault("difficulty", difficulty)
    data["chapters"] = _normalize_chapters(data.get("chapters"))
    return RoadmapSkeleton.model_validate(data)


async def generate_roadmap(
    client: GenerationClient,
    subject: str,
    difficulty: str,
    on_progress: ProgressCallback | None = None,
) -> RoadmapSkeleton:
    """Generate a roadmap skeleton with a single structure call.

    Raises:
        RoadmapGenerationError: If the call fails or the response cannot be
            parsed into a roadmap. Nothing is salvaged from a bad skeleton.
        NoCredentialsConfiguredError: If no API key is configured.
        CredentialsExhaustedError: If no API key is eligible right now.
    """
    logger.info("Generating roadmap", subject=subject, difficulty=difficulty)
    _report(on_progress, 10, "Initializing roadmap generation...")

    prompt = roadmap_structure_prompt(subject, difficulty)
    _report(on_progress, 30, "Generating roadmap structure...")

    try:
        text = await client.orchestrator.generate(prompt, request_id=new_request_id("roadmap-structure"))
        skeleton = build_skeleton(parse_json_object(text), subject, difficulty)
    except (NoCredentialsConfiguredError, CredentialsExhaustedError):
        raise
    except (GenerationError, ValueError) as e:
        logger.error("Roadmap generation failed", subject=subject, error=str(e))
        raise RoadmapGenerationError("Failed to generate roadmap. Please try again.") from e

    _report(on_progress, 100, "Roadmap generated successfully!")
    logger.info("Roadmap generated", subject=subject, chapters=len(skeleton.chapters))
    return skeleton


# ============================================================================
# Detailed course
# ============================================================================


async def generate_detailed_course(
    client: GenerationClient,
    roadmap: RoadmapResponse,
    on_progress: ProgressCallback | None = None,
) -> DetailedCourseResponse:
    """Generate long-form content for every chapter of a roadmap.

    One content request per chapter goes through the batch orchestrator.
    A chapter whose request fails or whose response does not parse is kept
    with ``content=None``; the course is still produced.
    """
    chapters = roadmap.chapters
    logger.info(
        "Generating detailed course",
        roadmap_id=roadmap.roadmap_id,
        chapters=len(chapters),
    )
    _report(on_progress, 5, "Starting detailed course generation...")

    tasks = [
        GenerationTask(
            id=f"{roadmap.roadmap_id}:{chapter.id}",
            prompt=chapter_content_prompt(
                chapter.title,
                roadmap.subject,
                description=chapter.description,
                estimated_time=chapter.estimated_hours or "4-6 hours",
            ),
        )
        for chapter in chapters
    ]

    def on_batch(done: int, total: int) -> None:
        _report(
            on_progress,
            10 + round(done / total * 80),
            "Generating chapter content...",
            chapters[done - 1].title,
        )

    results = await client.orchestrator.run(tasks, on_batch=on_batch)

    detailed_chapters = []
    for chapter, result in zip(chapters, results):
        content = None
        if result.ok:
            try:
                content = parse_json_object(result.result)
            except ValueError as e:
                logger.error("Failed to parse chapter content", chapter_id=chapter.id, error=str(e))
        else:
            logger.error(
                "Failed to generate chapter content",
                chapter_id=chapter.id,
                error=str(result.error),
            )
        detailed_chapters.append(
            DetailedChapter.model_validate({**chapter.model_dump(), "content": content, "quiz": None})
        )

    _report(on_progress, 95, "Finalizing detailed course...")
    course = DetailedCourseResponse(
        roadmap_id=roadmap.roadmap_id,
        title=f"Complete {roadmap.subject} Course",
        description=f"Comprehensive {roadmap.subject} course with detailed content",
        chapters=detailed_chapters,
        generated_at=datetime.utcnow(),
    )
    _report(on_progress, 100, "Detailed course generated successfully!")

    generated = sum(1 for c in detailed_chapters if c.content is not None)
    logger.info(
        "Detailed course generated",
        roadmap_id=roadmap.roadmap_id,
        chapters=len(detailed_chapters),
        with_content=generated,
    )
    return course


# ============================================================================
# Single chapter helpers
# ============================================================================


async def generate_course_content(
    client: GenerationClient,
    chapter_title: str,
    subject: str,
    difficulty: str,
) -> dict[str, Any]:
    """Generate content for one chapter outside of a full course run.

    Raises:
        GenerationError: If the request fails
        ValueError: If the response is not a JSON object
    """
    prompt = chapter_content_prompt(chapter_title, subject, difficulty=difficulty)
    text = await client.orchestrator.generate(prompt, request_id=new_request_id("course"))
    return parse_json_object(text)


async def generate_quiz(
    client: GenerationClient,
    chapter_title: str,
    subject: str,
    difficulty: str,
) -> dict[str, Any]:
    """Generate a quiz for one chapter.

    Raises:
        GenerationError: If the request fails
        ValueError: If the response is not a JSON object
    """
    prompt = quiz_prompt(chapter_title, subject, difficulty)
    text = await client.orchestrator.generate(prompt, request_id=new_request_id("quiz"))
    return parse_json_object(text)
