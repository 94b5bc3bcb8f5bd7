"""Ease-factor scheduler (SM-2 style).

stage モデル導入前から使われている互換用のスケジューラ。``next_review_at`` の
正はステージモデル側にあり、こちらは ease/間隔/回数の表示と後方互換のために
維持している。
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Optional

from .types import MS_PER_DAY, Rating

INITIAL_EASE = 2.3
MIN_EASE = 1.2
INITIAL_INTERVAL_DAYS = 1

_DRIFT_DIGITS = 9


@dataclass(frozen=True)
class CardState:
    ease: float
    interval_days: int
    rep_count: int
    next_review_at: int
    last_reviewed_at: Optional[int] = None


def create_initial_card_state(now: int) -> CardState:
    """Return the state of a freshly created card (due immediately)."""

    return CardState(
        ease=INITIAL_EASE,
        interval_days=INITIAL_INTERVAL_DAYS,
        rep_count=0,
        next_review_at=now,
        last_reviewed_at=None,
    )


def _floor_days(days: float) -> int:
    # 2382.9999999999995 のような乗算誤差だけを吸収してから切り捨てる
    return math.floor(round(days, _DRIFT_DIGITS))


def update_card_state(state: CardState, rating: Rating | str, now: int) -> CardState:
    """Apply one review to ``state`` and return the new state.

    - again: ease -0.3, 間隔は 1 日にリセット
    - hard: ease -0.05, 間隔 ×1.2（切り捨て）
    - good: ease +0.05, 間隔 ×(更新後の ease)（切り捨て）

    ease は全評価で ``MIN_EASE`` を下限とする。丸めは浮動小数点の誤差を
    打ち消す桁（``_DRIFT_DIGITS``）に留め、呼び出し側の ease の精度は保つ。
    """

    rating = Rating(rating)

    if rating is Rating.again:
        ease = state.ease - 0.3
    elif rating is Rating.hard:
        ease = state.ease - 0.05
    else:
        ease = state.ease + 0.05
    ease = max(MIN_EASE, round(ease, _DRIFT_DIGITS))

    if rating is Rating.again:
        interval = 1
    elif rating is Rating.hard:
        interval = _floor_days(state.interval_days * 1.2)
    else:
        interval = _floor_days(state.interval_days * ease)

    return replace(
        state,
        ease=ease,
        interval_days=interval,
        rep_count=state.rep_count + 1,
        next_review_at=now + interval * MS_PER_DAY,
        last_reviewed_at=now,
    )
