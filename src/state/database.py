"""Database connection and lifecycle management."""
import aiosqlite
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterator, Optional

SCHEMA_VERSION = "1.0.0"


class DatabaseError(Exception):
    pass


def to_db_time(value: datetime) -> str:
    """Render a timestamp as UTC ISO-8601 text with fixed precision.

    Fixed microsecond precision keeps lexical order equal to time order,
    which the sweep and lookback queries rely on.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def from_db_time(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class DatabaseManager:
    """Manages SQLite database connections and schema initialization."""

    def __init__(self, db_path: Path) -> None:
        self._db_path = db_path
        self._initialized = False

    @property
    def db_path(self) -> Path:
        return self._db_path

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """Create tables and indexes, and record the schema version."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with self.connection() as conn:
            await conn.executescript(_SCHEMA)
            await conn.execute(
                "INSERT OR IGNORE INTO schema_versions (version, applied_at) "
                "VALUES (?, datetime('now'))",
                (SCHEMA_VERSION,),
            )
            await conn.commit()
        self._initialized = True

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """Yield an async database connection."""
        conn = await aiosqlite.connect(self._db_path)
        conn.row_factory = aiosqlite.Row
        try:
            await conn.execute("PRAGMA foreign_keys = ON")
            yield conn
        finally:
            await conn.close()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """Yield a connection inside a write transaction.

        ``BEGIN IMMEDIATE`` takes the write lock up front, so guarded
        status updates from concurrent callers serialize and exactly one
        of them observes the precondition it checks for. Commits on clean
        exit, rolls back on any exception.
        """
        conn = await aiosqlite.connect(self._db_path, isolation_level=None)
        conn.row_factory = aiosqlite.Row
        try:
            await conn.execute("PRAGMA foreign_keys = ON")
            await conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                await conn.execute("ROLLBACK")
                raise
            await conn.execute("COMMIT")
        finally:
            await conn.close()

    async def close(self) -> None:
        """Mark the manager as closed."""
        self._initialized = False


_SCHEMA = """
CREATE TABLE IF NOT EXISTS schema_versions (version TEXT PRIMARY KEY, applied_at TEXT NOT NULL);

CREATE TABLE IF NOT EXISTS profiles (
    wallet_address TEXT PRIMARY KEY,
    username       TEXT NOT NULL UNIQUE,
    display_name   TEXT NOT NULL,
    min_bid_usd    TEXT NOT NULL,
    is_public      INTEGER NOT NULL DEFAULT 1,
    created_at     TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS messages (
    message_id       TEXT PRIMARY KEY,
    sender_wallet    TEXT NOT NULL,
    sender_name      TEXT NOT NULL,
    recipient_wallet TEXT NOT NULL,
    content          TEXT NOT NULL,
    bid_usd          TEXT NOT NULL,
    reply_bounty_usd TEXT,
    status           TEXT NOT NULL DEFAULT 'pending',
    sent_at          TEXT NOT NULL,
    expires_at       TEXT NOT NULL,
    accepted_at      TEXT,
    declined_at      TEXT,
    refunded_at      TEXT,
    opened_at        TEXT,
    replied_at       TEXT,
    refund_reason    TEXT,
    CHECK(status IN ('pending', 'accepted', 'declined', 'expired', 'opened', 'replied')),
    CHECK(expires_at > sent_at)
);
CREATE INDEX IF NOT EXISTS idx_messages_recipient ON messages(recipient_wallet, status);
CREATE INDEX IF NOT EXISTS idx_messages_sender ON messages(sender_wallet, sent_at);
CREATE INDEX IF NOT EXISTS idx_messages_expiry ON messages(status, expires_at);

CREATE TABLE IF NOT EXISTS payments (
    payment_id         TEXT PRIMARY KEY,
    message_id         TEXT NOT NULL UNIQUE,
    chain_id           INTEGER NOT NULL,
    token_address      TEXT NOT NULL,
    token_symbol       TEXT NOT NULL,
    token_decimals     INTEGER NOT NULL,
    amount_units       TEXT NOT NULL,
    amount_decimal     TEXT NOT NULL,
    sender             TEXT NOT NULL,
    recipient          TEXT NOT NULL,
    nonce              TEXT NOT NULL UNIQUE,
    signature_v        INTEGER NOT NULL,
    signature_r        TEXT NOT NULL,
    signature_s        TEXT NOT NULL,
    valid_after        INTEGER NOT NULL,
    valid_before       INTEGER NOT NULL,
    status             TEXT NOT NULL DEFAULT 'authorized',
    settlement_tx_hash TEXT,
    refund_tx_hash     TEXT,
    created_at         TEXT NOT NULL,
    settled_at         TEXT,
    FOREIGN KEY (message_id) REFERENCES messages(message_id),
    CHECK(status IN ('authorized', 'settled', 'unused', 'refunded')),
    CHECK(status != 'settled' OR settlement_tx_hash IS NOT NULL)
);

CREATE TABLE IF NOT EXISTS reputation_events (
    event_id           TEXT PRIMARY KEY,
    wallet             TEXT NOT NULL,
    event_type         TEXT NOT NULL,
    related_message_id TEXT,
    metadata           TEXT,
    created_at         TEXT NOT NULL,
    CHECK(event_type IN ('sent', 'delivered', 'opened', 'replied', 'refunded', 'blocked', 'vouched'))
);
CREATE INDEX IF NOT EXISTS idx_events_wallet ON reputation_events(wallet, created_at);

CREATE TABLE IF NOT EXISTS reputation_snapshots (
    wallet          TEXT PRIMARY KEY,
    sender_score    REAL NOT NULL,
    recipient_score REAL NOT NULL,
    open_rate       REAL NOT NULL,
    reply_rate      REAL NOT NULL,
    refund_rate     REAL NOT NULL,
    block_rate      REAL NOT NULL,
    vouch_count     INTEGER NOT NULL,
    total_sent      INTEGER NOT NULL,
    total_received  INTEGER NOT NULL,
    updated_at      TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS vouches (
    vouch_id   TEXT PRIMARY KEY,
    voucher    TEXT NOT NULL,
    vouchee    TEXT NOT NULL,
    weight     REAL NOT NULL,
    message_id TEXT,
    created_at TEXT NOT NULL,
    UNIQUE(voucher, vouchee),
    CHECK(voucher != vouchee)
);
CREATE INDEX IF NOT EXISTS idx_vouches_vouchee ON vouches(vouchee);

CREATE TABLE IF NOT EXISTS blocks (
    block_id   TEXT PRIMARY KEY,
    blocker    TEXT NOT NULL,
    blocked    TEXT NOT NULL,
    created_at TEXT NOT NULL,
    UNIQUE(blocker, blocked),
    CHECK(blocker != blocked)
);
CREATE INDEX IF NOT EXISTS idx_blocks_blocked ON blocks(blocked, created_at);
"""
