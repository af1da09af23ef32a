"""Learning history routes."""

from fastapi import APIRouter, HTTPException, status

from app.api.deps import CurrentUser, DBDep, StoreDep
from app.schemas.history import ChapterProgressUpdate, HistoryResponse

router = APIRouter(prefix="/history", tags=["history"])


@router.get("", response_model=list[HistoryResponse])
async def get_history(
    user_id: CurrentUser,
    db: DBDep,
    store: StoreDep,
) -> list[HistoryResponse]:
    """List the user's history, most recently accessed first."""
    return await store.get_user_history(db, user_id)


@router.patch("/{history_id}/chapters/{chapter_id}", response_model=HistoryResponse)
async def update_chapter_progress(
    history_id: str,
    chapter_id: str,
    data: ChapterProgressUpdate,
    user_id: CurrentUser,
    db: DBDep,
    store: StoreDep,
) -> HistoryResponse:
    history = await store.update_chapter_progress(
        db, user_id, history_id, chapter_id, data.completed
    )
    if not history:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="History entry not found",
        )
    return history
