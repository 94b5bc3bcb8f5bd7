from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..config import settings
from ..dates import now_ms
from ..flows import ReviewSessionFlow
from ..models.review import ReviewCard, ReviewSubmitRequest, ReviewSubmitResponse
from ..permissions import get_user_id
from ..store import store

router = APIRouter(tags=["review"])


def _parse_exclude_ids(raw: Optional[str]) -> list[int]:
    """Parse the comma separated ``excludeIds`` query value; junk entries are skipped."""

    ids: list[int] = []
    for part in (raw or "").split(","):
        part = part.strip()
        if part.isdigit():
            ids.append(int(part))
    return ids


@router.get("/today", response_model=list[ReviewCard], summary="本日の復習カードを取得")
def review_today(
    limit: Optional[int] = Query(default=None, ge=1),
    current_card_id: Optional[int] = Query(default=None, alias="currentCardId"),
    exclude_ids: Optional[str] = Query(default=None, alias="excludeIds"),
    keyword: Optional[str] = Query(default=None, max_length=200),
    user_id: str = Depends(get_user_id),
) -> list[ReviewCard]:
    """Return today's cards in presentation order.

    - 期限切れ（今日の終わりまで）のカードと新規カード（1 日の上限付き）が対象
    - ``currentCardId`` を起点に、直前のカードへ似ていて難易度の近いものを優先
    - ``excludeIds`` で既に出題したカードを除外
    """
    effective_limit = min(limit or settings.review_default_limit, settings.review_max_limit)
    session = ReviewSessionFlow(store).run(
        user_id,
        now=now_ms(),
        limit=effective_limit,
        current_card_id=current_card_id,
        exclude_ids=_parse_exclude_ids(exclude_ids),
        keyword=keyword,
    )
    return [ReviewCard.from_session_card(card) for card in session]


@router.post("/submit", response_model=ReviewSubmitResponse, summary="採点して次回出題時刻を更新")
def review_submit(req: ReviewSubmitRequest, user_id: str = Depends(get_user_id)) -> ReviewSubmitResponse:
    """Record a rating; the stage scheduler decides the next review time."""
    outcome = store.record_review(user_id, req.card_id, req.rating, now_ms())
    if outcome is None:
        raise HTTPException(status_code=404, detail="Card state not found")
    return ReviewSubmitResponse(
        ok=True,
        stage=outcome.stage_state.stage,
        next_review_at=outcome.stage_state.next_review_at,
        ease=outcome.ease_state.ease,
        interval_days=outcome.ease_state.interval_days,
        rep_count=outcome.ease_state.rep_count,
    )
