"""Similar-card ranking by raw cosine similarity."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from .types import CardRow
from .vectors import VectorLengthMismatchError, cosine_similarity, parse_embedding


@dataclass(frozen=True)
class SimilarCard:
    row: CardRow
    similarity: float


def rank_similar_cards(
    query: Sequence[float],
    rows: Iterable[CardRow],
    limit: int,
    *,
    exclude_id: Optional[int] = None,
) -> list[SimilarCard]:
    """Return the ``limit`` rows most similar to ``query`` (descending, -1..1).

    埋め込みが無い・壊れている・次元が合わないカードは黙って除外する。
    """

    ranked: list[SimilarCard] = []
    for row in rows:
        if exclude_id is not None and row.id == exclude_id:
            continue
        vec = parse_embedding(row.embedding)
        if not vec:
            continue
        try:
            similarity = cosine_similarity(query, vec)
        except VectorLengthMismatchError:
            continue
        ranked.append(SimilarCard(row=row, similarity=similarity))

    ranked.sort(key=lambda item: (-item.similarity, item.row.id))
    return ranked[: max(0, limit)]
