from __future__ import annotations

from typing import Optional

from ..logging import logger
from ..providers import embed_text, get_embedding_provider
from ..srs import CardRow, parse_embedding, serialize_embedding
from ..srs.similar import SimilarCard, rank_similar_cards
from ..store import CardStore


class EmbeddingUnavailableError(RuntimeError):
    """Raised when an explicit similarity search cannot embed its query text."""


def _embedding_text(question: str, answer: str) -> str:
    return f"{question}\n{answer}"


class CardFlow:
    """Card creation/update with embedding generation, and similar-card search.

    埋め込み生成の失敗はカードの保存を妨げない（embedding=NULL で保存し、
    出題時は類似度 0 として扱われる）。
    """

    def __init__(self, store: CardStore) -> None:
        self._store = store

    def _embed(self, user_id: str, question: str, answer: str) -> Optional[str]:
        vector = embed_text(_embedding_text(question, answer))
        if vector is None:
            logger.warning("card_embedding_failed", user_id=user_id)
            return None
        return serialize_embedding(vector)

    def create(
        self,
        user_id: str,
        *,
        question: str,
        answer: str,
        now: int,
        category: Optional[str] = None,
        difficulty: Optional[int] = None,
    ) -> CardRow:
        embedding = self._embed(user_id, question, answer)
        card = self._store.create_card(
            user_id,
            question=question,
            answer=answer,
            now=now,
            category=category,
            difficulty=difficulty,
            embedding=embedding,
        )
        logger.info("card_created", user_id=user_id, card_id=card.id, has_embedding=embedding is not None)
        return card

    def update(self, user_id: str, card_id: int, *, now: int, changes: dict) -> Optional[CardRow]:
        """Apply ``changes`` (fields explicitly sent by the client) to a card.

        question/answer が変わった場合は埋め込みを作り直す。
        """

        current = self._store.get_card(user_id, card_id)
        if current is None:
            return None

        fields = dict(changes)
        # question/answer は NOT NULL のため null 指定は無視する
        for key in ("question", "answer"):
            if key in fields and fields[key] is None:
                fields.pop(key)
        question = fields.get("question", current.question)
        answer = fields.get("answer", current.answer)
        if question != current.question or answer != current.answer:
            fields["embedding"] = self._embed(user_id, question, answer)

        return self._store.update_card(user_id, card_id, now=now, **fields)

    def similar_to_card(self, user_id: str, card_id: int, limit: int) -> Optional[list[SimilarCard]]:
        """Cards in the same category most similar to ``card_id``.

        基準カードが存在しない・埋め込みが無い（壊れている）場合は None。
        """

        base = self._store.get_card(user_id, card_id)
        if base is None:
            return None
        base_vector = parse_embedding(base.embedding)
        if not base_vector:
            return None
        rows = self._store.list_embedded_cards(user_id, category=base.category)
        return rank_similar_cards(base_vector, rows, limit, exclude_id=base.id)

    def similar_to_text(self, user_id: str, *, question: str, answer: str, limit: int) -> list[SimilarCard]:
        """Rank all embedded cards against free text; empty when no provider is configured."""

        if get_embedding_provider() is None:
            return []
        query = embed_text(_embedding_text(question, answer))
        if query is None:
            raise EmbeddingUnavailableError("Failed to generate embedding")
        rows = self._store.list_embedded_cards(user_id)
        if len(rows) > 1000:
            logger.warning("similar_search_large_pool", user_id=user_id, cards=len(rows))
        return rank_similar_cards(query, rows, limit)
