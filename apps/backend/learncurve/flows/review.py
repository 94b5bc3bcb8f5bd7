from __future__ import annotations

from typing import Iterable, Optional

from ..config import settings
from ..dates import today_bounds
from ..logging import logger
from ..providers import embed_text
from ..srs import (
    DEFAULT_WEIGHTS,
    KEYWORD_PRIORITY_WEIGHTS,
    CurrentCard,
    SessionCard,
    assemble_review_session,
)
from ..store import CardStore


class ReviewSessionFlow:
    """Builds today's review sequence for a user.

    - 「今日の終わり」は設定の UTC オフセット（既定 JST）で計算してから渡す
    - 直前に解いたカード（``current_card_id``）を最初の基準カードにする
    - キーワードの埋め込みが得られた場合だけキーワード優先の重みに切り替える
    """

    def __init__(self, store: CardStore) -> None:
        self._store = store

    def _keyword_vector(self, keyword: Optional[str]) -> Optional[list[float]]:
        text = (keyword or "").strip()
        if not text:
            return None
        vector = embed_text(text)
        if vector is None:
            logger.warning("keyword_embedding_failed", keyword_length=len(text))
        return vector

    def run(
        self,
        user_id: str,
        *,
        now: int,
        limit: int,
        current_card_id: Optional[int] = None,
        exclude_ids: Iterable[int] = (),
        keyword: Optional[str] = None,
    ) -> list[SessionCard]:
        _, end_of_today = today_bounds(now, settings.day_boundary_utc_offset_hours)
        rows = self._store.list_cards_with_state(user_id)

        anchor: Optional[CurrentCard] = None
        if current_card_id is not None:
            anchor_row = next((r for r in rows if r.id == current_card_id), None)
            if anchor_row is not None:
                anchor = CurrentCard.from_row(anchor_row)

        keyword_vector = self._keyword_vector(keyword)
        weights = KEYWORD_PRIORITY_WEIGHTS if keyword_vector is not None else DEFAULT_WEIGHTS

        exclude = list(exclude_ids)
        session = assemble_review_session(
            rows,
            now=now,
            end_of_today=end_of_today,
            limit=limit,
            new_card_limit=settings.new_cards_per_day,
            current_card=anchor,
            exclude_ids=exclude,
            weights=weights,
            keyword_embedding=keyword_vector,
        )
        logger.info(
            "review_session_built",
            user_id=user_id,
            requested=limit,
            returned=len(session),
            excluded=len(exclude),
            keyword_mode=keyword_vector is not None,
        )
        return session
