"""Flashcard scheduling API used by the learn, practice and progress views."""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import Response
from pydantic import BaseModel
from slowapi import Limiter
from slowapi.util import get_remote_address

from ..models.card import Card, CardRead, Category, SortCriterion, SRSStats
from ..services.progress_export import EXPORT_FILENAME
from ..services.srs_session import SRSSession
from .deps import get_srs_session


class ReviewRequest(BaseModel):
    # Left raw for Rating.parse, which refuses booleans and floats
    rating: Any


def create_catalog_router() -> APIRouter:
    router = APIRouter(prefix="/api/catalog", tags=["catalog"])

    @router.get("")
    async def list_catalog(category: Category | None = None, srs: SRSSession = Depends(get_srs_session)) -> list[dict[str, Any]]:
        return [entry.model_dump(mode="json") for entry in srs.catalog.filter(category)]

    return router


def create_srs_router() -> APIRouter:
    router = APIRouter(prefix="/api/srs", tags=["srs"])
    limiter = Limiter(key_func=get_remote_address)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @router.get("/cards")
    async def list_cards(sort: str = SortCriterion.DUE.value, srs: SRSSession = Depends(get_srs_session)) -> list[CardRead]:
        try:
            criterion = SortCriterion(sort)
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Unknown sort criterion: {sort}") from None
        return [_to_read(c) for c in srs.get_all_cards_sorted(criterion)]

    @router.get("/cards/due")
    async def list_due_cards(limit: int | None = None, srs: SRSSession = Depends(get_srs_session)) -> list[CardRead]:
        if limit is not None and limit < 0:
            raise HTTPException(status_code=400, detail="limit must be >= 0")
        return [_to_read(c) for c in srs.get_due_cards(limit=limit)]

    @router.get("/cards/due/count")
    async def due_count(srs: SRSSession = Depends(get_srs_session)) -> dict[str, int]:
        return {"due": srs.get_due_count()}

    @router.get("/cards/{item_id}")
    async def get_card(item_id: str, srs: SRSSession = Depends(get_srs_session)) -> CardRead:
        return _to_read(srs.get_card(item_id))

    @router.get("/stats")
    async def stats(srs: SRSSession = Depends(get_srs_session)) -> SRSStats:
        return srs.get_srs_stats()

    # ------------------------------------------------------------------
    # Review & reset
    # ------------------------------------------------------------------

    @router.post("/cards/{item_id}/review")
    async def review_card(item_id: str, body: ReviewRequest, srs: SRSSession = Depends(get_srs_session)) -> CardRead:
        return _to_read(srs.rate_card(item_id, body.rating))

    @router.post("/cards/{item_id}/reset")
    async def reset_card(item_id: str, srs: SRSSession = Depends(get_srs_session)) -> CardRead:
        return _to_read(srs.reset_card(item_id))

    @router.post("/review-all")
    async def review_all(srs: SRSSession = Depends(get_srs_session)) -> dict[str, int]:
        return {"scheduled": srs.force_review_all()}

    @router.post("/reset")
    async def reset_all(srs: SRSSession = Depends(get_srs_session)) -> dict[str, int]:
        return {"reset": srs.reset_all()}

    # ------------------------------------------------------------------
    # Backup & Restore
    # ------------------------------------------------------------------

    @router.get("/export")
    async def export_progress(srs: SRSSession = Depends(get_srs_session)) -> Response:
        return Response(
            content=srs.export_progress(),
            media_type="application/json",
            headers={"Content-Disposition": f'attachment; filename="{EXPORT_FILENAME}"'},
        )

    @router.post("/import")
    @limiter.limit("10/minute")
    async def import_progress(request: Request, srs: SRSSession = Depends(get_srs_session)) -> dict[str, int]:
        raw = await request.body()
        return {"imported": srs.import_progress(raw)}

    return router


def _to_read(card: Card) -> CardRead:
    return CardRead.model_validate(card.model_dump())
