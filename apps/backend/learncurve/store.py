from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, List, Optional

from .config import settings
from .logging import logger
from .srs import (
    CardRow,
    CardState,
    Rating,
    StageState,
    create_initial_card_state,
    create_initial_stage_state,
    update_card_state,
    update_card_state_by_stage,
)

_UNSET: Any = object()

_CARD_WITH_STATE_SELECT = """
    SELECT c.id, c.question, c.answer, c.category, c.difficulty, c.embedding,
           s.ease, s.interval_days, s.rep_count, s.stage, s.next_review_at, s.last_reviewed_at
    FROM cards c
    LEFT JOIN card_states s ON s.card_id = c.id
"""


@dataclass(frozen=True)
class ReviewOutcome:
    """Result of recording one review: both scheduler outputs as persisted."""

    card_id: int
    rating: Rating
    ease_state: CardState
    stage_state: StageState


class CardStore:
    """SQLite-backed persistence for cards, their scheduling state and the review log.

    - cards: 質問/回答・カテゴリ・難易度・埋め込み（JSON 文字列）
    - card_states: ease モデルと stage モデルの両方のフィールドを 1 行に保持
    - reviews: 評価の履歴（追記のみ）

    状態更新は ``BEGIN IMMEDIATE`` で直列化し、同一カードへの同時採点で
    後勝ちの上書きが起きないようにする。
    """

    def __init__(self, db_path: str) -> None:
        self.db_path = db_path
        self._ensure_dirs()
        self._init_db()

    # --- low-level helpers ---
    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=10.0, isolation_level=None, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        with conn:  # autocommit on pragma
            conn.execute("pragma journal_mode=WAL;")
            conn.execute("pragma foreign_keys=ON;")
        return conn

    @contextmanager
    def _conn(self) -> Iterator[sqlite3.Connection]:
        conn = self._connect()
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def _immediate(self) -> Iterator[sqlite3.Connection]:
        """Run the block inside ``BEGIN IMMEDIATE``; roll back on any error."""

        with self._conn() as conn:
            conn.execute("BEGIN IMMEDIATE;")
            try:
                yield conn
            except Exception:
                conn.execute("ROLLBACK;")
                raise
            conn.execute("COMMIT;")

    def _ensure_dirs(self) -> None:
        p = Path(self.db_path)
        if p.parent and not p.parent.exists():
            p.parent.mkdir(parents=True, exist_ok=True)

    def _init_db(self) -> None:
        with self._conn() as conn:
            with conn:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS cards (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        user_id TEXT NOT NULL,
                        question TEXT NOT NULL,
                        answer TEXT NOT NULL,
                        category TEXT,
                        difficulty INTEGER,
                        embedding TEXT,
                        created_at INTEGER NOT NULL,
                        updated_at INTEGER
                    );
                    """
                )
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS card_states (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        user_id TEXT NOT NULL,
                        card_id INTEGER NOT NULL UNIQUE,
                        ease REAL NOT NULL DEFAULT 2.3,
                        interval_days INTEGER NOT NULL DEFAULT 1,
                        rep_count INTEGER NOT NULL DEFAULT 0,
                        stage INTEGER NOT NULL DEFAULT 0,
                        next_review_at INTEGER NOT NULL,
                        last_reviewed_at INTEGER,
                        success_rate REAL,
                        FOREIGN KEY(card_id) REFERENCES cards(id) ON DELETE CASCADE
                    );
                    """
                )
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS reviews (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        user_id TEXT NOT NULL,
                        card_id INTEGER NOT NULL,
                        rating TEXT NOT NULL,
                        reviewed_at INTEGER NOT NULL,
                        FOREIGN KEY(card_id) REFERENCES cards(id) ON DELETE CASCADE
                    );
                    """
                )
                conn.execute("CREATE INDEX IF NOT EXISTS idx_cards_user ON cards(user_id);")
                conn.execute(
                    "CREATE INDEX IF NOT EXISTS idx_card_states_user_due ON card_states(user_id, next_review_at);"
                )
                conn.execute("CREATE INDEX IF NOT EXISTS idx_reviews_user_at ON reviews(user_id, reviewed_at);")

    @staticmethod
    def _row_to_card(row: sqlite3.Row) -> CardRow:
        return CardRow(
            id=int(row["id"]),
            question=row["question"],
            answer=row["answer"],
            category=row["category"],
            difficulty=int(row["difficulty"]) if row["difficulty"] is not None else None,
            embedding=row["embedding"],
            ease=float(row["ease"]) if row["ease"] is not None else None,
            interval_days=int(row["interval_days"]) if row["interval_days"] is not None else None,
            rep_count=int(row["rep_count"]) if row["rep_count"] is not None else None,
            stage=int(row["stage"]) if row["stage"] is not None else None,
            next_review_at=int(row["next_review_at"]) if row["next_review_at"] is not None else None,
            last_reviewed_at=int(row["last_reviewed_at"]) if row["last_reviewed_at"] is not None else None,
        )

    # --- cards ---
    def create_card(
        self,
        user_id: str,
        *,
        question: str,
        answer: str,
        now: int,
        category: Optional[str] = None,
        difficulty: Optional[int] = None,
        embedding: Optional[str] = None,
    ) -> CardRow:
        """Insert a card together with its initial scheduling state."""

        ease_state = create_initial_card_state(now)
        stage_state = create_initial_stage_state(now)
        with self._immediate() as conn:
            cur = conn.execute(
                """
                INSERT INTO cards(user_id, question, answer, category, difficulty, embedding, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, NULL);
                """,
                (user_id, question, answer, category, difficulty, embedding, now),
            )
            card_id = int(cur.lastrowid)
            conn.execute(
                """
                INSERT INTO card_states(
                    user_id, card_id, ease, interval_days, rep_count, stage, next_review_at, last_reviewed_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?);
                """,
                (
                    user_id,
                    card_id,
                    ease_state.ease,
                    ease_state.interval_days,
                    ease_state.rep_count,
                    stage_state.stage,
                    stage_state.next_review_at,
                    ease_state.last_reviewed_at,
                ),
            )
            # 同じトランザクション内で読み戻すので、挿入直後の行は必ず存在する
            row = conn.execute(_CARD_WITH_STATE_SELECT + " WHERE c.id = ?;", (card_id,)).fetchone()
        return self._row_to_card(row)

    def get_card(self, user_id: str, card_id: int) -> Optional[CardRow]:
        with self._conn() as conn:
            row = conn.execute(
                _CARD_WITH_STATE_SELECT + " WHERE c.user_id = ? AND c.id = ?;",
                (user_id, card_id),
            ).fetchone()
        return self._row_to_card(row) if row is not None else None

    def list_cards(self, user_id: str, *, category: Optional[str] = None) -> List[CardRow]:
        """Return the user's cards (newest first), optionally for one category."""

        sql = _CARD_WITH_STATE_SELECT + " WHERE c.user_id = ?"
        params: list[Any] = [user_id]
        if category is not None:
            sql += " AND c.category = ?"
            params.append(category)
        sql += " ORDER BY c.created_at DESC, c.id DESC;"
        with self._conn() as conn:
            return [self._row_to_card(r) for r in conn.execute(sql, params).fetchall()]

    def list_cards_with_state(self, user_id: str) -> List[CardRow]:
        """Return every card of the user joined with its state, ordered by id."""

        with self._conn() as conn:
            rows = conn.execute(
                _CARD_WITH_STATE_SELECT + " WHERE c.user_id = ? ORDER BY c.id ASC;",
                (user_id,),
            ).fetchall()
        return [self._row_to_card(r) for r in rows]

    def list_embedded_cards(self, user_id: str, *, category: Optional[str] = None) -> List[CardRow]:
        sql = _CARD_WITH_STATE_SELECT + " WHERE c.user_id = ? AND c.embedding IS NOT NULL"
        params: list[Any] = [user_id]
        if category is not None:
            sql += " AND c.category = ?"
            params.append(category)
        sql += " ORDER BY c.id ASC;"
        with self._conn() as conn:
            return [self._row_to_card(r) for r in conn.execute(sql, params).fetchall()]

    def update_card(
        self,
        user_id: str,
        card_id: int,
        *,
        now: int,
        question: Optional[str] = None,
        answer: Optional[str] = None,
        category: Optional[str] = _UNSET,
        difficulty: Optional[int] = _UNSET,
        embedding: Optional[str] = _UNSET,
    ) -> Optional[CardRow]:
        """Partially update a card. ``None`` clears nullable fields; omitted fields are kept."""

        assignments: list[str] = []
        params: list[Any] = []
        for column, value in (
            ("question", question if question is not None else _UNSET),
            ("answer", answer if answer is not None else _UNSET),
            ("category", category),
            ("difficulty", difficulty),
            ("embedding", embedding),
        ):
            if value is _UNSET:
                continue
            assignments.append(f"{column} = ?")
            params.append(value)
        assignments.append("updated_at = ?")
        params.append(now)

        with self._conn() as conn:
            with conn:
                cur = conn.execute(
                    f"UPDATE cards SET {', '.join(assignments)} WHERE user_id = ? AND id = ?;",
                    (*params, user_id, card_id),
                )
                if cur.rowcount == 0:
                    return None
        return self.get_card(user_id, card_id)

    def delete_card(self, user_id: str, card_id: int) -> bool:
        """Delete a card; its state and review log go with it (ON DELETE CASCADE)."""

        with self._conn() as conn:
            with conn:
                cur = conn.execute("DELETE FROM cards WHERE user_id = ? AND id = ?;", (user_id, card_id))
                return cur.rowcount > 0

    # --- reviews ---
    def record_review(self, user_id: str, card_id: int, rating: Rating | str, now: int) -> Optional[ReviewOutcome]:
        """Apply a rating with both schedulers and persist the combined state.

        ease モデルの出力は ease/interval_days/rep_count/last_reviewed_at に、
        stage モデルの出力は stage と ``next_review_at``（正）に書き込む。
        状態行が無ければ None。
        """

        rating = Rating(rating)
        with self._immediate() as conn:
            row = conn.execute(
                """
                SELECT id, ease, interval_days, rep_count, stage, next_review_at, last_reviewed_at
                FROM card_states WHERE user_id = ? AND card_id = ?;
                """,
                (user_id, card_id),
            ).fetchone()
            if row is None:
                return None

            current = CardState(
                ease=float(row["ease"]),
                interval_days=int(row["interval_days"]),
                rep_count=int(row["rep_count"]),
                next_review_at=int(row["next_review_at"]),
                last_reviewed_at=int(row["last_reviewed_at"]) if row["last_reviewed_at"] is not None else None,
            )
            ease_state = update_card_state(current, rating, now)
            stage_state = update_card_state_by_stage(int(row["stage"] or 0), rating, now)
            success_rate = 1.0 if rating is Rating.good else 0.0

            conn.execute(
                """
                UPDATE card_states
                SET ease = ?, interval_days = ?, rep_count = ?, stage = ?,
                    next_review_at = ?, last_reviewed_at = ?, success_rate = ?
                WHERE id = ?;
                """,
                (
                    ease_state.ease,
                    ease_state.interval_days,
                    ease_state.rep_count,
                    stage_state.stage,
                    stage_state.next_review_at,
                    ease_state.last_reviewed_at,
                    success_rate,
                    int(row["id"]),
                ),
            )
            conn.execute(
                "INSERT INTO reviews(user_id, card_id, rating, reviewed_at) VALUES (?, ?, ?, ?);",
                (user_id, card_id, rating.value, now),
            )

        logger.info(
            "review_recorded",
            user_id=user_id,
            card_id=card_id,
            rating=rating.value,
            stage=stage_state.stage,
            next_review_at=stage_state.next_review_at,
            ease=ease_state.ease,
        )
        return ReviewOutcome(card_id=card_id, rating=rating, ease_state=ease_state, stage_state=stage_state)

    # --- stats ---
    def count_cards(self, user_id: str) -> int:
        with self._conn() as conn:
            row = conn.execute("SELECT COUNT(1) AS c FROM cards WHERE user_id = ?;", (user_id,)).fetchone()
        return int(row["c"])

    def count_due(self, user_id: str, until: int) -> int:
        """Number of cards whose ``next_review_at`` is at or before ``until``."""

        with self._conn() as conn:
            row = conn.execute(
                """
                SELECT COUNT(1) AS c FROM card_states s
                JOIN cards c ON c.id = s.card_id
                WHERE c.user_id = ? AND s.next_review_at <= ?;
                """,
                (user_id, until),
            ).fetchone()
        return int(row["c"])

    def count_reviewed_between(self, user_id: str, start: int, end: int) -> int:
        with self._conn() as conn:
            row = conn.execute(
                "SELECT COUNT(1) AS c FROM reviews WHERE user_id = ? AND reviewed_at BETWEEN ? AND ?;",
                (user_id, start, end),
            ).fetchone()
        return int(row["c"])


# module-level singleton store (wired to settings)
store = CardStore(db_path=settings.learncurve_db_path)
