"""Scheduling core: memory-state updates, card scoring and session assembly.

I/O を一切行わない純粋関数の集まり。時刻（epoch ミリ秒）や当日の境界は
呼び出し側から注入する。
"""

from .ease import CardState, create_initial_card_state, update_card_state
from .pool import assemble_review_session, build_candidate_pool
from .selection import (
    DEFAULT_WEIGHTS,
    KEYWORD_PRIORITY_WEIGHTS,
    ScoringWeights,
    calculate_card_score,
    calculate_difficulty_fit_score,
    calculate_keyword_relevance_score,
    calculate_similarity_score,
    calculate_urgency_score,
    select_next_card,
)
from .stage import MAX_STAGE, STAGE_INTERVALS, StageState, create_initial_stage_state, update_card_state_by_stage
from .types import MS_PER_DAY, CardCandidate, CardRow, CurrentCard, Rating, SessionCard
from .vectors import VectorLengthMismatchError, cosine_similarity, parse_embedding, serialize_embedding

__all__ = [
    "CardCandidate",
    "CardRow",
    "CardState",
    "CurrentCard",
    "DEFAULT_WEIGHTS",
    "KEYWORD_PRIORITY_WEIGHTS",
    "MAX_STAGE",
    "MS_PER_DAY",
    "Rating",
    "STAGE_INTERVALS",
    "ScoringWeights",
    "SessionCard",
    "StageState",
    "VectorLengthMismatchError",
    "assemble_review_session",
    "build_candidate_pool",
    "calculate_card_score",
    "calculate_difficulty_fit_score",
    "calculate_keyword_relevance_score",
    "calculate_similarity_score",
    "calculate_urgency_score",
    "cosine_similarity",
    "create_initial_card_state",
    "create_initial_stage_state",
    "parse_embedding",
    "select_next_card",
    "serialize_embedding",
    "update_card_state",
    "update_card_state_by_stage",
]
