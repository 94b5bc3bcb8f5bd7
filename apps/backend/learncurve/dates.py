"""Day-boundary helpers in a fixed UTC offset (JST = UTC+9 by default).

スケジューラ本体はタイムゾーンを扱わない。「今日の終わり」はここで計算し、
境界のタイムスタンプ（epoch ミリ秒）として渡す。
"""

from __future__ import annotations

import time

from .srs.types import MS_PER_DAY

_MS_PER_HOUR = 60 * 60 * 1000


def now_ms() -> int:
    return int(time.time() * 1000)


def today_bounds(now: int, offset_hours: int = 9) -> tuple[int, int]:
    """Return (start, end) of the local day containing ``now``, in UTC ms.

    end は翌日 0:00 の 1 ミリ秒前（23:59:59.999）。
    """

    offset_ms = offset_hours * _MS_PER_HOUR
    local_start = ((now + offset_ms) // MS_PER_DAY) * MS_PER_DAY
    start = local_start - offset_ms
    return start, start + MS_PER_DAY - 1

