import sqlite3
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

from learncurve.srs import MS_PER_DAY, Rating, serialize_embedding
from learncurve.store import CardStore

NOW = 1_700_000_000_000


def _review_log(store: CardStore, card_id: int) -> list[tuple[str, int]]:
    conn = sqlite3.connect(store.db_path)
    try:
        rows = conn.execute(
            "SELECT rating, reviewed_at FROM reviews WHERE card_id = ? ORDER BY id ASC;", (card_id,)
        ).fetchall()
    finally:
        conn.close()
    return [(rating, int(at)) for rating, at in rows]


@pytest.fixture()
def store(tmp_path: Path) -> CardStore:
    return CardStore(str(tmp_path / "nested" / "store.sqlite3"))


def test_create_card_initialises_state(store: CardStore):
    card = store.create_card("u1", question="What is TCP?", answer="A transport protocol", now=NOW, difficulty=2)

    assert card.id > 0
    assert card.stage == 0
    assert card.ease == 2.3
    assert card.interval_days == 1
    assert card.rep_count == 0
    assert card.next_review_at == NOW
    assert card.last_reviewed_at is None
    assert card.is_new


def test_cards_are_scoped_per_user(store: CardStore):
    card = store.create_card("u1", question="q", answer="a", now=NOW)
    store.create_card("u2", question="q2", answer="a2", now=NOW)

    assert store.get_card("u2", card.id) is None
    assert [c.question for c in store.list_cards("u1")] == ["q"]
    assert store.count_cards("u1") == 1
    assert store.delete_card("u2", card.id) is False


def test_list_cards_filters_by_category_newest_first(store: CardStore):
    store.create_card("u1", question="a", answer="a", now=NOW, category="db")
    store.create_card("u1", question="b", answer="b", now=NOW + 1, category="net")
    store.create_card("u1", question="c", answer="c", now=NOW + 2, category="db")

    assert [c.question for c in store.list_cards("u1", category="db")] == ["c", "a"]
    assert [c.question for c in store.list_cards_with_state("u1")] == ["a", "b", "c"]


def test_list_embedded_cards_skips_cards_without_embedding(store: CardStore):
    store.create_card("u1", question="a", answer="a", now=NOW, embedding=serialize_embedding([1.0, 0.0]))
    store.create_card("u1", question="b", answer="b", now=NOW)

    assert [c.question for c in store.list_embedded_cards("u1")] == ["a"]


def test_update_card_keeps_omitted_fields_and_clears_explicit_none(store: CardStore):
    card = store.create_card("u1", question="q", answer="a", now=NOW, category="db", difficulty=3)

    updated = store.update_card("u1", card.id, now=NOW + 1, answer="new answer", category=None)

    assert updated is not None
    assert updated.question == "q"
    assert updated.answer == "new answer"
    assert updated.category is None
    assert updated.difficulty == 3
    assert store.update_card("u1", 9999, now=NOW, answer="x") is None


def test_record_review_applies_both_schedulers(store: CardStore):
    card = store.create_card("u1", question="q", answer="a", now=NOW)

    outcome = store.record_review("u1", card.id, "good", NOW)

    assert outcome is not None
    assert outcome.rating is Rating.good
    assert outcome.stage_state.stage == 1
    assert outcome.stage_state.next_review_at == NOW + MS_PER_DAY
    assert outcome.ease_state.ease == 2.35
    assert outcome.ease_state.interval_days == 2
    assert outcome.ease_state.rep_count == 1

    reloaded = store.get_card("u1", card.id)
    assert reloaded.stage == 1
    # the stage model owns the persisted next review time
    assert reloaded.next_review_at == NOW + MS_PER_DAY
    assert reloaded.ease == 2.35
    assert reloaded.last_reviewed_at == NOW
    assert _review_log(store, card.id) == [("good", NOW)]


def test_record_review_again_resets_to_now(store: CardStore):
    card = store.create_card("u1", question="q", answer="a", now=NOW)
    for i in range(3):
        store.record_review("u1", card.id, Rating.good, NOW + i)

    outcome = store.record_review("u1", card.id, Rating.again, NOW + 10)

    assert outcome.stage_state.stage == 1
    assert outcome.stage_state.next_review_at == NOW + 10
    assert outcome.ease_state.interval_days == 1
    assert len(_review_log(store, card.id)) == 4


def test_record_review_for_unknown_card_returns_none(store: CardStore):
    assert store.record_review("u1", 42, Rating.good, NOW) is None


def test_record_review_rejects_unknown_rating(store: CardStore):
    card = store.create_card("u1", question="q", answer="a", now=NOW)
    with pytest.raises(ValueError):
        store.record_review("u1", card.id, "easy", NOW)
    assert _review_log(store, card.id) == []


def test_delete_card_cascades(store: CardStore):
    card = store.create_card("u1", question="q", answer="a", now=NOW)
    store.record_review("u1", card.id, Rating.hard, NOW)

    assert store.delete_card("u1", card.id) is True
    assert store.get_card("u1", card.id) is None
    assert _review_log(store, card.id) == []
    assert store.count_due("u1", NOW + 365 * MS_PER_DAY) == 0


def test_counts_for_dashboard(store: CardStore):
    a = store.create_card("u1", question="a", answer="a", now=NOW)
    store.create_card("u1", question="b", answer="b", now=NOW)
    store.record_review("u1", a.id, Rating.good, NOW + 5)

    # b is due now, a moved to tomorrow
    assert store.count_due("u1", NOW + 10) == 1
    assert store.count_due("u1", NOW + 2 * MS_PER_DAY) == 2
    assert store.count_reviewed_between("u1", NOW, NOW + 10) == 1
    assert store.count_reviewed_between("u1", NOW + 6, NOW + 10) == 0


def test_create_card_returns_the_row_it_inserted(store: CardStore):
    first = store.create_card("u1", question="q1", answer="a1", now=NOW, category="db", difficulty=4)
    second = store.create_card("u1", question="q2", answer="a2", now=NOW)

    assert second.id == first.id + 1
    assert (first.question, first.category, first.difficulty) == ("q1", "db", 4)
    assert store.get_card("u1", first.id) == first


def test_concurrent_reviews_of_one_card_are_serialised(store: CardStore):
    card = store.create_card("u1", question="q", answer="a", now=NOW)
    submissions = 24

    def _submit(i: int):
        return store.record_review("u1", card.id, Rating.good if i % 2 else Rating.hard, NOW + i)

    with ThreadPoolExecutor(max_workers=8) as pool:
        outcomes = list(pool.map(_submit, range(submissions)))

    assert all(outcome is not None for outcome in outcomes)
    # 各採点は直前の状態を読んでから書くため、回数が取りこぼされない
    assert sorted(outcome.ease_state.rep_count for outcome in outcomes) == list(range(1, submissions + 1))
    reloaded = store.get_card("u1", card.id)
    assert reloaded.rep_count == submissions
    assert len(_review_log(store, card.id)) == submissions
    assert store.count_reviewed_between("u1", NOW, NOW + submissions) == submissions
