from fastapi import APIRouter, Depends

from ..config import settings
from ..dates import now_ms, today_bounds
from ..models.review import DashboardResponse
from ..permissions import get_user_id
from ..store import store

router = APIRouter(tags=["dashboard"])


@router.get("/dashboard", response_model=DashboardResponse, summary="ダッシュボード情報")
def dashboard(user_id: str = Depends(get_user_id)) -> DashboardResponse:
    start, end = today_bounds(now_ms(), settings.day_boundary_utc_offset_hours)
    return DashboardResponse(
        today_review_count=store.count_due(user_id, end),
        total_cards=store.count_cards(user_id),
        reviewed_today=store.count_reviewed_between(user_id, start, end),
        streak=0,
    )
