from __future__ import annotations

from typing import Optional

from pydantic import BaseModel

from ..srs import Rating, SessionCard


class ReviewCard(BaseModel):
    """A single review card to display on the frontend.

    未レビューのカードは ease=2.3 / interval_days=1 / stage=0 などの表示用既定値で埋める。
    """

    card_id: int
    question: str
    answer: str
    category: Optional[str] = None
    difficulty: Optional[int] = None
    ease: float
    interval_days: int
    rep_count: int
    stage: int
    next_review_at: int
    last_reviewed_at: Optional[int] = None

    @classmethod
    def from_session_card(cls, card: SessionCard) -> "ReviewCard":
        return cls(
            card_id=card.card_id,
            question=card.question,
            answer=card.answer,
            category=card.category,
            difficulty=card.difficulty,
            ease=card.ease,
            interval_days=card.interval_days,
            rep_count=card.rep_count,
            stage=card.stage,
            next_review_at=card.next_review_at,
            last_reviewed_at=card.last_reviewed_at,
        )


class ReviewSubmitRequest(BaseModel):
    """Request model for submitting a review rating.

    - card_id: 採点するカード
    - rating: again | hard | good
    """

    card_id: int
    rating: Rating


class ReviewSubmitResponse(BaseModel):
    ok: bool
    stage: int
    next_review_at: int
    ease: float
    interval_days: int
    rep_count: int


class DashboardResponse(BaseModel):
    """ダッシュボード用の集計。

    - today_review_count: 今日の終わりまでに復習期限が来るカード数
    - total_cards: 全カード数
    - reviewed_today: 今日レビューした回数
    - streak: 連続学習日数（未実装のため常に 0）
    """

    today_review_count: int
    total_cards: int
    reviewed_today: int
    streak: int = 0
