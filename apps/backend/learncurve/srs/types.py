"""Value types shared by the schedulers, the scorer and the pool assembler.

ストレージ層から渡される行（カード + 状態の結合）を ``CardRow`` として受け取り、
選択処理の直前に ``CardCandidate`` へ正規化する。復習対象クエリ由来か新規カード
クエリ由来かで行の形が揺れないよう、変換はここに一本化している。
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

MS_PER_DAY = 24 * 60 * 60 * 1000


class Rating(str, Enum):
    """User-reported recall quality / 回答時の自己評価。"""

    again = "again"
    hard = "hard"
    good = "good"


@dataclass(frozen=True)
class CardRow:
    """A card joined with its (possibly missing) scheduling state."""

    id: int
    question: str
    answer: str
    category: Optional[str] = None
    difficulty: Optional[int] = None
    embedding: Optional[str] = None
    ease: Optional[float] = None
    interval_days: Optional[int] = None
    rep_count: Optional[int] = None
    stage: Optional[int] = None
    next_review_at: Optional[int] = None
    last_reviewed_at: Optional[int] = None

    @property
    def is_new(self) -> bool:
        return self.stage is None or self.stage == 0


@dataclass(frozen=True)
class CardCandidate:
    """Scoring view of a card for one selection pass."""

    id: int
    embedding: Optional[str]
    difficulty: Optional[int]
    category: Optional[str]
    next_review_at: Optional[int]
    stage: int

    @classmethod
    def from_row(cls, row: CardRow) -> "CardCandidate":
        return cls(
            id=row.id,
            embedding=row.embedding,
            difficulty=row.difficulty,
            category=row.category,
            next_review_at=row.next_review_at,
            stage=row.stage or 0,
        )


@dataclass(frozen=True)
class CurrentCard:
    """Anchor card (the one just answered) for similarity and difficulty fit."""

    id: int
    embedding: Optional[str]
    difficulty: Optional[int]

    @classmethod
    def from_row(cls, row: CardRow) -> "CurrentCard":
        return cls(id=row.id, embedding=row.embedding, difficulty=row.difficulty)


@dataclass(frozen=True)
class SessionCard:
    """A card as presented in a review session, with display defaults applied."""

    card_id: int
    question: str
    answer: str
    category: Optional[str]
    difficulty: Optional[int]
    ease: float
    interval_days: int
    rep_count: int
    stage: int
    next_review_at: int
    last_reviewed_at: Optional[int]
