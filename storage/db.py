"""SQLite database via aiosqlite."""
import aiosqlite
import logging
import os
from typing import Optional

from shared.clock import today_utc
from shared.schemas import (
    ConfidencePerformance,
    DailyPerformance,
    Decision,
    PricePoint,
    TotalPerformance,
    Wager,
    WagerStatus,
)
from storage.models import CREATE_MIGRATIONS_TABLE, MIGRATIONS

logger = logging.getLogger(__name__)

WAGER_COLUMNS = (
    "id", "creator", "opponent", "stake", "direction", "oracle_feed", "duration",
    "start_price", "end_price", "created_at", "started_at", "expires_at",
    "status", "winner",
)

PERFORMANCE_COLUMNS = (
    "wins", "losses", "ties", "total_won", "total_lost", "resolver_earnings",
    "current_streak", "best_win_streak", "worst_loss_streak",
)


def _rows(cursor, rows) -> list[dict]:
    columns = [d[0] for d in cursor.description]
    return [dict(zip(columns, row)) for row in rows]


def _wager_from_row(row: dict) -> Wager:
    return Wager(**{k: row[k] for k in WAGER_COLUMNS})


class Database:
    """Async SQLite store for the wager mirror, decisions, prices and performance.

    Every write is a keyed upsert, an append or a single-statement increment,
    so interleaved ticks cannot lose updates.
    """

    def __init__(self, db_path: str = "data/pricebattle.db"):
        self.db_path = db_path
        self._db: Optional[aiosqlite.Connection] = None

    async def init(self):
        """Open the database and apply pending migrations."""
        directory = os.path.dirname(self.db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        self._db = await aiosqlite.connect(self.db_path)
        await self._migrate()
        logger.info("Database initialized", extra={"path": self.db_path})

    async def _migrate(self):
        await self._db.execute(CREATE_MIGRATIONS_TABLE)
        cursor = await self._db.execute("SELECT version FROM schema_migrations")
        applied = {row[0] for row in await cursor.fetchall()}

        for version, name, statements in MIGRATIONS:
            if version in applied:
                continue
            logger.info(f"Applying migration {version}: {name}")
            for statement in statements:
                await self._db.execute(statement)
            await self._db.execute(
                "INSERT INTO schema_migrations (version, name) VALUES (?, ?)",
                (version, name),
            )
        await self._db.commit()

    async def close(self):
        if self._db:
            await self._db.close()
            self._db = None

    @property
    def conn(self) -> aiosqlite.Connection:
        if self._db is None:
            raise RuntimeError("Database not initialized. Call init() first.")
        return self._db

    async def _fetchall(self, sql: str, params: tuple = ()) -> list[dict]:
        cursor = await self.conn.execute(sql, params)
        rows = await cursor.fetchall()
        return _rows(cursor, rows)

    async def _fetchone(self, sql: str, params: tuple = ()) -> Optional[dict]:
        rows = await self._fetchall(sql, params)
        return rows[0] if rows else None

    # Price history

    async def insert_price(self, price: float, timestamp: int):
        await self.conn.execute(
            "INSERT INTO price_history (price, timestamp) VALUES (?, ?)",
            (price, timestamp),
        )
        await self.conn.commit()

    async def get_recent_prices(self, limit: int = 60) -> list[PricePoint]:
        """The ``limit`` most recent prices, oldest first."""
        rows = await self._fetchall(
            "SELECT price, timestamp FROM price_history ORDER BY timestamp DESC, id DESC LIMIT ?",
            (limit,),
        )
        return [PricePoint(**r) for r in reversed(rows)]

    async def get_price_at(self, timestamp: int) -> Optional[float]:
        """Latest recorded price at or before ``timestamp``."""
        row = await self._fetchone(
            """SELECT price FROM price_history WHERE timestamp <= ?
               ORDER BY timestamp DESC, id DESC LIMIT 1""",
            (timestamp,),
        )
        return row["price"] if row else None

    # Wager mirror

    async def upsert_wager(self, wager: Wager, our_role: Optional[str] = None):
        """Insert or refresh a mirrored wager keyed by id.

        A wager first seen already settled is inserted with its outcome marked
        recorded: it settled before this mirror existed and is not counted.
        """
        await self.conn.execute(
            """INSERT INTO wagers
               (id, creator, opponent, stake, direction, oracle_feed, duration,
                start_price, end_price, created_at, started_at, expires_at,
                status, winner, our_role, outcome_recorded)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(id) DO UPDATE SET
                 opponent = excluded.opponent,
                 start_price = excluded.start_price,
                 end_price = excluded.end_price,
                 started_at = excluded.started_at,
                 expires_at = excluded.expires_at,
                 status = excluded.status,
                 winner = excluded.winner,
                 our_role = excluded.our_role,
                 synced_at = CURRENT_TIMESTAMP""",
            (
                wager.id, wager.creator, wager.opponent, wager.stake,
                int(wager.direction), wager.oracle_feed, wager.duration,
                wager.start_price, wager.end_price, wager.created_at,
                wager.started_at, wager.expires_at, int(wager.status),
                wager.winner, our_role, int(wager.status.is_terminal),
            ),
        )

    async def upsert_wagers(self, wagers: list[tuple[Wager, Optional[str]]]):
        for wager, our_role in wagers:
            await self.upsert_wager(wager, our_role)
        await self.conn.commit()

    async def get_wager(self, wager_id: int) -> Optional[Wager]:
        row = await self._fetchone("SELECT * FROM wagers WHERE id = ?", (wager_id,))
        return _wager_from_row(row) if row else None

    async def get_wagers(
        self,
        status: Optional[WagerStatus] = None,
        account: Optional[str] = None,
    ) -> list[Wager]:
        clauses, params = [], []
        if status is not None:
            clauses.append("status = ?")
            params.append(int(status))
        if account is not None:
            clauses.append("(creator = ? OR opponent = ?)")
            params.extend([account, account])
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        rows = await self._fetchall(
            f"SELECT * FROM wagers {where} ORDER BY id DESC", tuple(params)
        )
        return [_wager_from_row(r) for r in rows]

    async def get_unrecorded_outcomes(self) -> list[tuple[Wager, str]]:
        """Our wagers in a terminal state whose outcome is not yet recorded."""
        rows = await self._fetchall(
            """SELECT * FROM wagers
               WHERE our_role IS NOT NULL AND status >= ? AND outcome_recorded = 0
               ORDER BY id""",
            (int(WagerStatus.RESOLVED),),
        )
        return [(_wager_from_row(r), r["our_role"]) for r in rows]

    async def claim_outcome(self, wager_id: int) -> bool:
        """Atomically mark a wager's outcome as recorded; False if already claimed."""
        cursor = await self.conn.execute(
            "UPDATE wagers SET outcome_recorded = 1 WHERE id = ? AND outcome_recorded = 0",
            (wager_id,),
        )
        await self.conn.commit()
        return cursor.rowcount == 1

    # Decisions

    async def log_decision(self, decision: Decision) -> int:
        """Append a decision record and return its ID."""
        cursor = await self.conn.execute(
            """INSERT INTO decisions
               (challenge_id, action, direction, confidence, confidence_bucket,
                reasoning, ai_provider, ai_model, price_at_decision, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                decision.challenge_id, decision.action.value, decision.direction,
                decision.confidence, decision.confidence_bucket,
                decision.reasoning[:2000], decision.ai_provider, decision.ai_model,
                decision.price_at_decision, decision.created_at.isoformat(),
            ),
        )
        await self.conn.commit()
        return cursor.lastrowid

    async def get_recent_decisions(self, limit: int = 20) -> list[dict]:
        return await self._fetchall(
            "SELECT * FROM decisions ORDER BY created_at DESC, id DESC LIMIT ?", (limit,)
        )

    async def get_decision_confidence(
        self, challenge_id: int, actions: tuple[str, ...] = ("accept", "create")
    ) -> Optional[float]:
        """Confidence of the latest matching decision logged for a wager."""
        placeholders = ", ".join("?" for _ in actions)
        row = await self._fetchone(
            f"""SELECT confidence FROM decisions
                WHERE challenge_id = ? AND action IN ({placeholders})
                  AND confidence IS NOT NULL
                ORDER BY id DESC LIMIT 1""",
            (challenge_id, *actions),
        )
        return row["confidence"] if row else None

    # Daily performance

    async def _ensure_day(self, date: str):
        """Create the day's row, carrying the streak over from the latest prior day."""
        await self.conn.execute(
            """INSERT OR IGNORE INTO performance (date, current_streak)
               VALUES (?, COALESCE(
                 (SELECT current_streak FROM performance
                  WHERE date < ? ORDER BY date DESC LIMIT 1), 0))""",
            (date, date),
        )

    async def increment_win(self, amount: float, date: Optional[str] = None):
        date = date or today_utc()
        await self._ensure_day(date)
        await self.conn.execute(
            """UPDATE performance SET
                 wins = wins + 1,
                 total_won = total_won + ?,
                 current_streak = CASE WHEN current_streak > 0
                                       THEN current_streak + 1 ELSE 1 END,
                 best_win_streak = MAX(best_win_streak,
                                       CASE WHEN current_streak > 0
                                            THEN current_streak + 1 ELSE 1 END)
               WHERE date = ?""",
            (amount, date),
        )
        await self.conn.commit()

    async def increment_loss(self, amount: float, date: Optional[str] = None):
        date = date or today_utc()
        await self._ensure_day(date)
        await self.conn.execute(
            """UPDATE performance SET
                 losses = losses + 1,
                 total_lost = total_lost + ?,
                 current_streak = CASE WHEN current_streak < 0
                                       THEN current_streak - 1 ELSE -1 END,
                 worst_loss_streak = MIN(worst_loss_streak,
                                         CASE WHEN current_streak < 0
                                              THEN current_streak - 1 ELSE -1 END)
               WHERE date = ?""",
            (amount, date),
        )
        await self.conn.commit()

    async def increment_tie(self, date: Optional[str] = None):
        date = date or today_utc()
        await self._ensure_day(date)
        await self.conn.execute(
            "UPDATE performance SET ties = ties + 1 WHERE date = ?", (date,)
        )
        await self.conn.commit()

    async def increment_resolver_earnings(self, amount: float, date: Optional[str] = None):
        date = date or today_utc()
        await self._ensure_day(date)
        await self.conn.execute(
            "UPDATE performance SET resolver_earnings = resolver_earnings + ? WHERE date = ?",
            (amount, date),
        )
        await self.conn.commit()

    async def get_daily_performance(self, date: Optional[str] = None) -> DailyPerformance:
        date = date or today_utc()
        row = await self._fetchone("SELECT * FROM performance WHERE date = ?", (date,))
        if row is None:
            return DailyPerformance(date=date)
        return DailyPerformance(date=date, **{k: row[k] for k in PERFORMANCE_COLUMNS})

    async def get_total_performance(self) -> TotalPerformance:
        """Sums across all days; the streak comes from the latest day only."""
        row = await self._fetchone(
            """SELECT
                 COALESCE(SUM(wins), 0) AS wins,
                 COALESCE(SUM(losses), 0) AS losses,
                 COALESCE(SUM(ties), 0) AS ties,
                 COALESCE(SUM(total_won), 0) AS total_won,
                 COALESCE(SUM(total_lost), 0) AS total_lost,
                 COALESCE(SUM(resolver_earnings), 0) AS resolver_earnings,
                 COALESCE(MAX(best_win_streak), 0) AS best_win_streak,
                 COALESCE(MIN(worst_loss_streak), 0) AS worst_loss_streak
               FROM performance"""
        )
        latest = await self._fetchone(
            "SELECT current_streak FROM performance ORDER BY date DESC LIMIT 1"
        )
        return TotalPerformance(
            **row, current_streak=latest["current_streak"] if latest else 0
        )

    # Confidence buckets

    async def increment_confidence_outcome(self, bucket: str, outcome: str, amount: float = 0.0):
        """Count a win/loss/tie against a confidence bucket."""
        if outcome == "win":
            sql = "wins = wins + 1, total_won = total_won + ?"
            params = (amount, bucket)
        elif outcome == "loss":
            sql = "losses = losses + 1, total_lost = total_lost + ?"
            params = (amount, bucket)
        elif outcome == "tie":
            sql = "ties = ties + 1"
            params = (bucket,)
        else:
            raise ValueError(f"Unknown outcome: {outcome}")
        await self.conn.execute(
            f"UPDATE confidence_performance SET {sql}, updated_at = CURRENT_TIMESTAMP WHERE bucket = ?",
            params,
        )
        await self.conn.commit()

    async def get_confidence_performance(self) -> list[ConfidencePerformance]:
        rows = await self._fetchall(
            """SELECT bucket, wins, losses, ties, total_won, total_lost
               FROM confidence_performance
               ORDER BY CASE bucket WHEN 'low' THEN 0 WHEN 'medium' THEN 1
                                    WHEN 'high' THEN 2 ELSE 3 END"""
        )
        return [ConfidencePerformance(**r) for r in rows]
