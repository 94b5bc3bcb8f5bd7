"""Daily review pool assembly.

1. 復習期限（``end_of_today`` 以前）のカードと新規カード（上限付き）を集める
2. カード ID で重複排除（復習対象を先に入れるので、両方に該当するカードは復習扱い）
3. 除外 ID を取り除く
4. 直前に選んだカードを基準（anchor）にしながら、スコア最大のカードを順に取り出す

基準カードは選ぶたびに直前のカードへ移るため、出題順は「類似度の鎖」になる。
"""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

from .ease import INITIAL_EASE, INITIAL_INTERVAL_DAYS
from .selection import DEFAULT_WEIGHTS, ScoringWeights, select_next_card
from .types import CardCandidate, CardRow, CurrentCard, SessionCard


def _due_rows(rows: Sequence[CardRow], end_of_today: int) -> list[CardRow]:
    due = [r for r in rows if r.next_review_at is not None and r.next_review_at <= end_of_today]
    due.sort(key=lambda r: (r.next_review_at, r.id))
    return due


def _new_rows(rows: Sequence[CardRow], new_card_limit: int) -> list[CardRow]:
    if new_card_limit <= 0:
        return []
    fresh = sorted((r for r in rows if r.is_new), key=lambda r: r.id)
    return fresh[:new_card_limit]


def build_candidate_pool(
    rows: Iterable[CardRow],
    *,
    end_of_today: int,
    new_card_limit: int,
    exclude_ids: Iterable[int] = (),
) -> dict[int, CardRow]:
    """Merge due and new cards into an id-keyed pool, first occurrence wins."""

    rows = list(rows)
    pool: dict[int, CardRow] = {}
    for row in [*_due_rows(rows, end_of_today), *_new_rows(rows, new_card_limit)]:
        pool.setdefault(row.id, row)
    for card_id in exclude_ids:
        pool.pop(card_id, None)
    return pool


def to_session_card(row: CardRow, now: int) -> SessionCard:
    """Fill display defaults for cards that were never reviewed."""

    return SessionCard(
        card_id=row.id,
        question=row.question,
        answer=row.answer,
        category=row.category,
        difficulty=row.difficulty,
        ease=row.ease if row.ease is not None else INITIAL_EASE,
        interval_days=row.interval_days if row.interval_days is not None else INITIAL_INTERVAL_DAYS,
        rep_count=row.rep_count if row.rep_count is not None else 0,
        stage=row.stage if row.stage is not None else 0,
        next_review_at=row.next_review_at if row.next_review_at is not None else now,
        last_reviewed_at=row.last_reviewed_at,
    )


def assemble_review_session(
    rows: Iterable[CardRow],
    *,
    now: int,
    end_of_today: int,
    limit: int,
    new_card_limit: int,
    current_card: Optional[CurrentCard] = None,
    exclude_ids: Iterable[int] = (),
    weights: ScoringWeights = DEFAULT_WEIGHTS,
    keyword_embedding: Optional[Sequence[float]] = None,
) -> list[SessionCard]:
    """Return up to ``limit`` cards in presentation order."""

    pool = build_candidate_pool(
        rows,
        end_of_today=end_of_today,
        new_card_limit=new_card_limit,
        exclude_ids=exclude_ids,
    )
    remaining = [CardCandidate.from_row(row) for row in pool.values()]
    anchor = current_card
    session: list[SessionCard] = []

    for _ in range(min(limit, len(remaining))):
        picked = select_next_card(remaining, anchor, now, weights, keyword_embedding)
        if picked is None:
            break
        remaining.remove(picked)
        row = pool[picked.id]
        session.append(to_session_card(row, now))
        anchor = CurrentCard.from_row(row)

    return session
