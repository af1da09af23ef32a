"""Learning data access with a local fallback.

Every operation goes to the database first. If the database fails with
anything other than a constraint violation, the transaction is rolled
back, a warning is logged and the same operation is served from the
local store instead. Callers never see the backend failure.

Constraint violations are not backend failures: a duplicate
(user, roadmap id) insert surfaces as ``DuplicateRoadmapError``.
"""

from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_logger
from app.schemas.course import DetailedCourseResponse
from app.schemas.history import HistoryCreate, HistoryResponse
from app.schemas.roadmap import RoadmapResponse, RoadmapSkeleton
from app.schemas.user import UserProfileCreate, UserResponse, UserUpdate
from app.services import course_service, history_service, roadmap_service, user_service
from app.services.local_store import LocalStore

logger = get_logger(__name__)

T = TypeVar("T")


class DuplicateRoadmapError(Exception):
    def __init__(self, roadmap_id: str) -> None:
        self.roadmap_id = roadmap_id
        super().__init__(f"Roadmap {roadmap_id} already exists")


def _user_key(external_id: str) -> str:
    return f"user_{external_id}"


def _history_key(external_id: str) -> str:
    return f"history_{external_id}"


def _roadmaps_key(external_id: str) -> str:
    return f"roadmaps_{external_id}"


def _courses_key(external_id: str) -> str:
    return f"detailed_courses_{external_id}"


class LearningStore:
    """Users, roadmaps, detailed courses and history behind one interface."""

    def __init__(self, local: LocalStore) -> None:
        self.local = local

    async def _with_fallback(
        self,
        db: AsyncSession,
        operation: str,
        backend: Callable[[], Awaitable[T]],
        fallback: Callable[[], T],
    ) -> T:
        try:
            result = await backend()
            await db.commit()
            return result
        except SQLAlchemyError as e:
            await self._rollback(db)
            if isinstance(e, IntegrityError):
                raise
            logger.warning(
                "Backend unavailable, using local store",
                operation=operation,
                error_type=type(e).__name__,
                error=str(e),
            )
            return fallback()
        except Exception:
            await self._rollback(db)
            raise

    @staticmethod
    async def _rollback(db: AsyncSession) -> None:
        try:
            await db.rollback()
        except SQLAlchemyError as e:
            logger.warning("Rollback failed", error=str(e))

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def get_or_create_user(
        self,
        db: AsyncSession,
        external_id: str,
        profile: UserProfileCreate | None = None,
    ) -> UserResponse:
        async def backend() -> UserResponse:
            user = await user_service.get_or_create_user(db, external_id, profile)
            return UserResponse.model_validate(user)

        def fallback() -> UserResponse:
            stored = self.local.get(_user_key(external_id))
            if stored:
                return UserResponse.model_validate(stored)
            now = datetime.utcnow()
            user = UserResponse(
                external_id=external_id,
                **(profile or UserProfileCreate()).model_dump(),
                created_at=now,
                updated_at=now,
            )
            self.local.set(_user_key(external_id), user.model_dump(mode="json"))
            return user

        return await self._with_fallback(db, "get_or_create_user", backend, fallback)

    async def update_user(
        self,
        db: AsyncSession,
        external_id: str,
        data: UserUpdate,
    ) -> UserResponse | None:
        async def backend() -> UserResponse | None:
            user = await user_service.update_user(db, external_id, data)
            return UserResponse.model_validate(user) if user else None

        def fallback() -> UserResponse | None:
            stored = self.local.get(_user_key(external_id))
            if not stored:
                return None
            stored.update(data.model_dump(exclude_unset=True, mode="json"))
            stored["updated_at"] = datetime.utcnow().isoformat()
            self.local.set(_user_key(external_id), stored)
            return UserResponse.model_validate(stored)

        return await self._with_fallback(db, "update_user", backend, fallback)

    # ------------------------------------------------------------------
    # Roadmaps
    # ------------------------------------------------------------------

    async def save_roadmap(
        self,
        db: AsyncSession,
        external_id: str,
        roadmap_id: str,
        skeleton: RoadmapSkeleton,
    ) -> RoadmapResponse:
        """Store a generated roadmap.

        Raises:
            DuplicateRoadmapError: If the user already has this roadmap id
        """

        async def backend() -> RoadmapResponse:
            user = await user_service.get_or_create_user(db, external_id)
            roadmap = await roadmap_service.save_roadmap(
                db, user_id=user.id, roadmap_id=roadmap_id, skeleton=skeleton
            )
            return RoadmapResponse.model_validate(roadmap)

        def fallback() -> RoadmapResponse:
            roadmaps = self.local.get(_roadmaps_key(external_id)) or {}
            if roadmap_id in roadmaps:
                raise DuplicateRoadmapError(roadmap_id)
            roadmap = RoadmapResponse(
                roadmap_id=roadmap_id,
                **skeleton.model_dump(),
                generated_at=datetime.utcnow(),
            )
            roadmaps[roadmap_id] = roadmap.model_dump(mode="json")
            self.local.set(_roadmaps_key(external_id), roadmaps)
            return roadmap

        try:
            return await self._with_fallback(db, "save_roadmap", backend, fallback)
        except IntegrityError as e:
            logger.warning("Duplicate roadmap rejected", roadmap_id=roadmap_id)
            raise DuplicateRoadmapError(roadmap_id) from e

    async def get_roadmap(
        self,
        db: AsyncSession,
        external_id: str,
        roadmap_id: str,
    ) -> RoadmapResponse | None:
        async def backend() -> RoadmapResponse | None:
            user = await user_service.get_user_by_external_id(db, external_id)
            if not user:
                return None
            roadmap = await roadmap_service.get_roadmap(db, user.id, roadmap_id)
            return RoadmapResponse.model_validate(roadmap) if roadmap else None

        def fallback() -> RoadmapResponse | None:
            stored = (self.local.get(_roadmaps_key(external_id)) or {}).get(roadmap_id)
            return RoadmapResponse.model_validate(stored) if stored else None

        return await self._with_fallback(db, "get_roadmap", backend, fallback)

    async def list_roadmaps(self, db: AsyncSession, external_id: str) -> list[RoadmapResponse]:
        async def backend() -> list[RoadmapResponse]:
            user = await user_service.get_user_by_external_id(db, external_id)
            if not user:
                return []
            roadmaps = await roadmap_service.list_user_roadmaps(db, user.id)
            return [RoadmapResponse.model_validate(r) for r in roadmaps]

        def fallback() -> list[RoadmapResponse]:
            stored = self.local.get(_roadmaps_key(external_id)) or {}
            return [RoadmapResponse.model_validate(r) for r in stored.values()]

        return await self._with_fallback(db, "list_roadmaps", backend, fallback)

    async def set_chapter_completed(
        self,
        db: AsyncSession,
        external_id: str,
        roadmap_id: str,
        chapter_id: str,
        completed: bool,
    ) -> RoadmapResponse | None:
        """Flip one chapter's completion flag and mirror it into the history.

        Returns:
            Updated roadmap, or None if the roadmap does not exist

        Raises:
            ValueError: If the roadmap has no chapter with this id
        """

        async def backend() -> RoadmapResponse | None:
            user = await user_service.get_user_by_external_id(db, external_id)
            if not user:
                return None
            roadmap = await roadmap_service.set_chapter_completed(
                db,
                user_id=user.id,
                roadmap_id=roadmap_id,
                chapter_id=chapter_id,
                completed=completed,
            )
            if not roadmap:
                return None
            history = await history_service.get_history_for_roadmap(db, user.id, roadmap_id)
            if history:
                await history_service.update_chapter_progress(
                    db,
                    user_id=user.id,
                    history_id=history.id,
                    chapter_id=chapter_id,
                    completed=completed,
                )
            return RoadmapResponse.model_validate(roadmap)

        def fallback() -> RoadmapResponse | None:
            roadmaps = self.local.get(_roadmaps_key(external_id)) or {}
            stored = roadmaps.get(roadmap_id)
            if not stored:
                return None
            roadmap = RoadmapResponse.model_validate(stored)
            if not any(c.id == chapter_id for c in roadmap.chapters):
                raise ValueError(f"Chapter {chapter_id} not found in roadmap {roadmap_id}")
            for chapter in roadmap.chapters:
                if chapter.id == chapter_id:
                    chapter.completed = completed
            roadmaps[roadmap_id] = roadmap.model_dump(mode="json")
            self.local.set(_roadmaps_key(external_id), roadmaps)

            entries = self.local.get(_history_key(external_id)) or []
            for entry in reversed(entries):
                if entry.get("roadmap_id") == roadmap_id:
                    self._apply_local_progress(entry, chapter_id, completed)
                    self.local.set(_history_key(external_id), entries)
                    break
            return roadmap

        return await self._with_fallback(db, "set_chapter_completed", backend, fallback)

    # ------------------------------------------------------------------
    # Detailed courses
    # ------------------------------------------------------------------

    async def save_detailed_course(
        self,
        db: AsyncSession,
        external_id: str,
        course: DetailedCourseResponse,
    ) -> DetailedCourseResponse:
        async def backend() -> DetailedCourseResponse:
            user = await user_service.get_or_create_user(db, external_id)
            record = await course_service.save_detailed_course(db, user_id=user.id, course=course)
            return DetailedCourseResponse.model_validate(record)

        def fallback() -> DetailedCourseResponse:
            courses = self.local.get(_courses_key(external_id)) or {}
            courses[course.roadmap_id] = course.model_dump(mode="json")
            self.local.set(_courses_key(external_id), courses)
            return course

        return await self._with_fallback(db, "save_detailed_course", backend, fallback)

    async def get_detailed_course(
        self,
        db: AsyncSession,
        external_id: str,
        roadmap_id: str,
    ) -> DetailedCourseResponse | None:
        async def backend() -> DetailedCourseResponse | None:
            user = await user_service.get_user_by_external_id(db, external_id)
            if not user:
                return None
            record = await course_service.get_detailed_course(db, user.id, roadmap_id)
            return DetailedCourseResponse.model_validate(record) if record else None

        def fallback() -> DetailedCourseResponse | None:
            stored = (self.local.get(_courses_key(external_id)) or {}).get(roadmap_id)
            return DetailedCourseResponse.model_validate(stored) if stored else None

        return await self._with_fallback(db, "get_detailed_course", backend, fallback)

    async def list_detailed_courses(
        self,
        db: AsyncSession,
        external_id: str,
    ) -> list[DetailedCourseResponse]:
        async def backend() -> list[DetailedCourseResponse]:
            user = await user_service.get_user_by_external_id(db, external_id)
            if not user:
                return []
            records = await course_service.list_user_detailed_courses(db, user.id)
            return [DetailedCourseResponse.model_validate(r) for r in records]

        def fallback() -> list[DetailedCourseResponse]:
            stored = self.local.get(_courses_key(external_id)) or {}
            return [DetailedCourseResponse.model_validate(c) for c in stored.values()]

        return await self._with_fallback(db, "list_detailed_courses", backend, fallback)

    # ------------------------------------------------------------------
    # Learning history
    # ------------------------------------------------------------------

    @staticmethod
    def _apply_local_progress(entry: dict, chapter_id: str, completed: bool) -> None:
        now = datetime.utcnow()
        entry["chapter_progress"] = history_service.apply_chapter_progress(
            entry.get("chapter_progress", []), chapter_id, completed, now
        )
        entry["last_accessed_at"] = now.isoformat()

    async def add_to_history(
        self,
        db: AsyncSession,
        external_id: str,
        data: HistoryCreate,
    ) -> HistoryResponse:
        async def backend() -> HistoryResponse:
            user = await user_service.get_or_create_user(db, external_id)
            history = await history_service.add_to_history(db, user_id=user.id, data=data)
            return HistoryResponse.model_validate(history)

        def fallback() -> HistoryResponse:
            now = datetime.utcnow()
            history = HistoryResponse(
                id=f"history_{int(now.timestamp() * 1000)}",
                roadmap_id=data.roadmap_id,
                subject=data.subject,
                difficulty=data.difficulty,
                chapter_progress=data.chapter_progress,
                learning_preferences=data.learning_preferences,
                started_at=now,
                last_accessed_at=now,
            )
            entries = self.local.get(_history_key(external_id)) or []
            entry = history.model_dump(mode="json")
            # Stored progress keeps the camelCase keys used in the database
            entry["chapter_progress"] = [
                cp.model_dump(by_alias=True, mode="json") for cp in history.chapter_progress
            ]
            entries.append(entry)
            self.local.set(_history_key(external_id), entries)
            return history

        return await self._with_fallback(db, "add_to_history", backend, fallback)

    async def get_user_history(self, db: AsyncSession, external_id: str) -> list[HistoryResponse]:
        async def backend() -> list[HistoryResponse]:
            user = await user_service.get_user_by_external_id(db, external_id)
            if not user:
                return []
            entries = await history_service.get_user_history(db, user.id)
            return [HistoryResponse.model_validate(h) for h in entries]

        def fallback() -> list[HistoryResponse]:
            entries = self.local.get(_history_key(external_id)) or []
            return [HistoryResponse.model_validate(h) for h in reversed(entries)]

        return await self._with_fallback(db, "get_user_history", backend, fallback)

    async def update_chapter_progress(
        self,
        db: AsyncSession,
        external_id: str,
        history_id: str,
        chapter_id: str,
        completed: bool,
    ) -> HistoryResponse | None:
        def fallback() -> HistoryResponse | None:
            entries = self.local.get(_history_key(external_id)) or []
            for entry in entries:
                if entry.get("id") == history_id:
                    self._apply_local_progress(entry, chapter_id, completed)
                    self.local.set(_history_key(external_id), entries)
                    return HistoryResponse.model_validate(entry)
            return None

        # Entries created while the backend was down only exist locally
        if not history_id.isdigit():
            return fallback()

        async def backend() -> HistoryResponse | None:
            user = await user_service.get_user_by_external_id(db, external_id)
            if not user:
                return None
            history = await history_service.update_chapter_progress(
                db,
                user_id=user.id,
                history_id=int(history_id),
                chapter_id=chapter_id,
                completed=completed,
            )
            return HistoryResponse.model_validate(history) if history else None

        return await self._with_fallback(db, "update_chapter_progress", backend, fallback)
