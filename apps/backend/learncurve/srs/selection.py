"""Next-card selection ("today's card" algorithm).

候補カードごとに 4 つの部分スコアを 0〜1 で求め、重み付き和で総合スコアを出す。

- urgency: 復習予定日時をどれだけ過ぎているか（30 日超過で 1.0）
- similarity: 直前に解いたカードとの埋め込み類似度
- difficultyFit: 直前のカードとの難易度差（近いほど高い）
- keywordRelevance: 指定キーワードの埋め込みとの類似度

埋め込みの欠落や破損は例外にせず、その部分スコアを 0（難易度は中立の 0.5）に
落として選択を続行する。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from .types import MS_PER_DAY, CardCandidate, CurrentCard
from .vectors import VectorLengthMismatchError, cosine_similarity, parse_embedding

URGENCY_SATURATION_DAYS = 30
NEUTRAL_DIFFICULTY_FIT = 0.5

EmbeddingLike = Optional[str | Sequence[float]]


@dataclass(frozen=True)
class ScoringWeights:
    """Linear-combination coefficients of the four sub-scores (α, β, γ, δ)."""

    urgency: float
    similarity: float
    difficulty_fit: float
    keyword_relevance: float


# 復習重視モード（既定）
DEFAULT_WEIGHTS = ScoringWeights(
    urgency=0.5,
    similarity=0.3,
    difficulty_fit=0.2,
    keyword_relevance=0.0,
)

# キーワード優先モード
KEYWORD_PRIORITY_WEIGHTS = ScoringWeights(
    urgency=0.3,
    similarity=0.2,
    difficulty_fit=0.1,
    keyword_relevance=0.4,
)


def _as_vector(value: EmbeddingLike) -> Optional[list[float]]:
    if value is None:
        return None
    if isinstance(value, (str, bytes)):
        return parse_embedding(value)
    vec = [float(v) for v in value]
    return vec or None


def _normalized_cosine(left: EmbeddingLike, right: EmbeddingLike) -> float:
    """Cosine similarity remapped from [-1, 1] to [0, 1]; 0 when unavailable."""

    left_vec = _as_vector(left)
    right_vec = _as_vector(right)
    if not left_vec or not right_vec:
        return 0.0
    try:
        similarity = cosine_similarity(left_vec, right_vec)
    except VectorLengthMismatchError:
        return 0.0
    return (similarity + 1) / 2


def calculate_urgency_score(next_review_at: Optional[int], now: int) -> float:
    """Return how overdue a card is, normalised to [0, 1].

    ``next_review_at`` が未設定のカードは未学習とみなし最優先（1.0）。
    """

    if next_review_at is None:
        return 1.0
    days_overdue = max(0.0, (now - next_review_at) / MS_PER_DAY)
    return min(1.0, days_overdue / URGENCY_SATURATION_DAYS)


def calculate_similarity_score(current_embedding: EmbeddingLike, candidate_embedding: EmbeddingLike) -> float:
    return _normalized_cosine(current_embedding, candidate_embedding)


def calculate_keyword_relevance_score(
    keyword_embedding: Optional[Sequence[float]], candidate_embedding: EmbeddingLike
) -> float:
    return _normalized_cosine(keyword_embedding, candidate_embedding)


def calculate_difficulty_fit_score(current_difficulty: Optional[int], candidate_difficulty: Optional[int]) -> float:
    """Step function of the difficulty gap; ±1 is a perfect fit."""

    if current_difficulty is None or candidate_difficulty is None:
        return NEUTRAL_DIFFICULTY_FIT

    diff = abs(current_difficulty - candidate_difficulty)
    if diff <= 1:
        return 1.0
    if diff <= 2:
        return 0.7
    if diff <= 3:
        return 0.4
    return 0.1


def calculate_card_score(
    candidate: CardCandidate,
    current_card: Optional[CurrentCard],
    now: int,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
    keyword_embedding: Optional[Sequence[float]] = None,
) -> float:
    urgency = calculate_urgency_score(candidate.next_review_at, now)
    if current_card is not None:
        similarity = calculate_similarity_score(current_card.embedding, candidate.embedding)
        difficulty_fit = calculate_difficulty_fit_score(current_card.difficulty, candidate.difficulty)
    else:
        similarity = 0.0
        difficulty_fit = NEUTRAL_DIFFICULTY_FIT
    keyword_relevance = (
        calculate_keyword_relevance_score(keyword_embedding, candidate.embedding)
        if keyword_embedding is not None
        else 0.0
    )

    return (
        weights.urgency * urgency
        + weights.similarity * similarity
        + weights.difficulty_fit * difficulty_fit
        + weights.keyword_relevance * keyword_relevance
    )


def select_next_card(
    candidates: Sequence[CardCandidate],
    current_card: Optional[CurrentCard],
    now: int,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
    keyword_embedding: Optional[Sequence[float]] = None,
) -> Optional[CardCandidate]:
    """Return the highest-scoring candidate, or None when there is none.

    同点の場合はカード ID の小さい方を選ぶ。入力順に依存しないため、
    上流のクエリ順が揺れても同じ結果になる。
    """

    best: Optional[CardCandidate] = None
    best_score = 0.0
    for candidate in candidates:
        score = calculate_card_score(candidate, current_card, now, weights, keyword_embedding)
        if best is None or score > best_score or (score == best_score and candidate.id < best.id):
            best = candidate
            best_score = score
    return best
