from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..srs import CardRow


class CardCreateRequest(BaseModel):
    """カード作成リクエスト。

    - question/answer: 必須のテキスト
    - category: 任意のカテゴリ（アルゴリズム / DB / ネットワークなど）
    - difficulty: 任意の難易度（1〜5）
    """

    question: str = Field(min_length=1, max_length=10000)
    answer: str = Field(min_length=1, max_length=10000)
    category: Optional[str] = Field(default=None, max_length=100)
    difficulty: Optional[int] = Field(default=None, ge=1, le=5)


class CardUpdateRequest(BaseModel):
    """カード更新リクエスト。送られたフィールドだけを更新する（null はクリア）。"""

    question: Optional[str] = Field(default=None, min_length=1, max_length=10000)
    answer: Optional[str] = Field(default=None, min_length=1, max_length=10000)
    category: Optional[str] = Field(default=None, max_length=100)
    difficulty: Optional[int] = Field(default=None, ge=1, le=5)


class CardResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    question: str
    answer: str
    category: Optional[str] = None
    difficulty: Optional[int] = None
    has_embedding: bool = False
    stage: Optional[int] = None
    next_review_at: Optional[int] = None

    @classmethod
    def from_row(cls, row: CardRow) -> "CardResponse":
        return cls(
            id=row.id,
            question=row.question,
            answer=row.answer,
            category=row.category,
            difficulty=row.difficulty,
            has_embedding=bool(row.embedding),
            stage=row.stage,
            next_review_at=row.next_review_at,
        )


class SimilarCardItem(BaseModel):
    """類似カード。``similarityScore`` は生のコサイン類似度（-1〜1）。"""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    question: str
    answer: str
    category: Optional[str] = None
    difficulty: Optional[int] = None
    similarity_score: float = Field(serialization_alias="similarityScore")


class SimilarSearchRequest(BaseModel):
    """テキストから類似カードを探すリクエスト。"""

    question: str = Field(min_length=1)
    answer: str = Field(min_length=1)
    limit: int = Field(default=5, ge=1, le=20)
