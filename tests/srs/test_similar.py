import pytest

from learncurve.srs import CardRow, serialize_embedding
from learncurve.srs.similar import rank_similar_cards


def _row(card_id, embedding):
    raw = embedding if isinstance(embedding, str) or embedding is None else serialize_embedding(embedding)
    return CardRow(id=card_id, question=f"q{card_id}", answer=f"a{card_id}", embedding=raw)


def test_ranks_by_descending_cosine():
    rows = [_row(1, [0.0, 1.0]), _row(2, [1.0, 0.0]), _row(3, [1.0, 1.0]), _row(4, [-1.0, 0.0])]
    ranked = rank_similar_cards([1.0, 0.0], rows, 10)
    assert [item.row.id for item in ranked] == [2, 3, 1, 4]
    assert ranked[0].similarity == pytest.approx(1.0)
    assert ranked[-1].similarity == pytest.approx(-1.0)


def test_limit_and_self_exclusion():
    rows = [_row(i, [1.0, float(i)]) for i in range(1, 6)]
    ranked = rank_similar_cards([1.0, 1.0], rows, 2, exclude_id=1)
    assert len(ranked) == 2
    assert all(item.row.id != 1 for item in ranked)


def test_unusable_embeddings_are_skipped():
    rows = [_row(1, None), _row(2, "not json"), _row(3, [1.0, 0.0, 0.0]), _row(4, [0.5, 0.5])]
    ranked = rank_similar_cards([1.0, 0.0], rows, 10)
    assert [item.row.id for item in ranked] == [4]


def test_equal_scores_are_ordered_by_id():
    rows = [_row(9, [2.0, 0.0]), _row(3, [1.0, 0.0])]
    assert [item.row.id for item in rank_similar_cards([1.0, 0.0], rows, 10)] == [3, 9]
