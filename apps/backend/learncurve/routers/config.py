from dataclasses import asdict

from fastapi import APIRouter

from ..config import settings
from ..srs import DEFAULT_WEIGHTS, KEYWORD_PRIORITY_WEIGHTS, MAX_STAGE, STAGE_INTERVALS


router = APIRouter()


@router.get("/config")
def get_runtime_config() -> dict[str, object]:
    """Expose runtime config needed by the frontend.

    出題数の既定値・上限や間隔表など、画面表示に必要な値だけを返す。
    """
    return {
        "new_cards_per_day": settings.new_cards_per_day,
        "review_default_limit": settings.review_default_limit,
        "review_max_limit": settings.review_max_limit,
        "day_boundary_utc_offset_hours": settings.day_boundary_utc_offset_hours,
        "max_stage": MAX_STAGE,
        "stage_intervals": {str(k): v for k, v in STAGE_INTERVALS.items()},
        "weights": {
            "default": asdict(DEFAULT_WEIGHTS),
            "keyword": asdict(KEYWORD_PRIORITY_WEIGHTS),
        },
        "embedding_provider": settings.embedding_provider,
    }
