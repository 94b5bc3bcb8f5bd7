"""Stage-based learning-curve scheduler.

0（新規）〜5（マスター）の離散ステージと固定の間隔表で次回復習日時を決める。
保存される ``next_review_at`` はこのモジュールの出力が正となる。
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from .types import MS_PER_DAY, Rating

# ステージごとの復習間隔（日）
STAGE_INTERVALS: dict[int, int] = {
    0: 0,
    1: 1,
    2: 3,
    3: 7,
    4: 14,
    5: 30,
}

MAX_STAGE = 5
# ステージ 3/4 で good のときはステージを据え置き、間隔をこの比率で短縮する
HOLD_INTERVAL_RATIO = 0.7


@dataclass(frozen=True)
class StageState:
    stage: int
    next_review_at: int


def create_initial_stage_state(now: int) -> StageState:
    return StageState(stage=0, next_review_at=now)


def _clamp_stage(stage: int) -> int:
    return max(0, min(MAX_STAGE, int(stage)))


def update_card_state_by_stage(current_stage: int, rating: Rating | str, now: int) -> StageState:
    """Compute the next stage and review time for one answer.

    - again: 2 段階戻し（下限 0）、当日中に再出題（``now``）
    - hard: 1 段階戻し（下限 1）、間隔はそのステージの間隔 -1 日（最低 1 日）
    - good: ステージ 0〜2 は +1、3〜4 は据え置きで間隔を 70% に短縮、5 は 30 日
    """

    rating = Rating(rating)
    stage = _clamp_stage(current_stage)

    if rating is Rating.again:
        return StageState(stage=max(0, stage - 2), next_review_at=now)

    if rating is Rating.hard:
        new_stage = max(1, stage - 1)
        interval_days = max(1, STAGE_INTERVALS[new_stage] - 1)
    elif stage <= 2:
        new_stage = min(stage + 1, MAX_STAGE)
        interval_days = STAGE_INTERVALS[new_stage]
    elif stage < MAX_STAGE:
        new_stage = stage
        interval_days = max(1, math.floor(STAGE_INTERVALS[new_stage] * HOLD_INTERVAL_RATIO))
    else:
        new_stage = MAX_STAGE
        interval_days = STAGE_INTERVALS[MAX_STAGE]

    return StageState(stage=new_stage, next_review_at=now + interval_days * MS_PER_DAY)
