"""SQLite table definitions, applied as numbered migrations."""

CREATE_MIGRATIONS_TABLE = """
CREATE TABLE IF NOT EXISTS schema_migrations (
    version INTEGER PRIMARY KEY,
    name TEXT NOT NULL,
    applied_at TEXT DEFAULT CURRENT_TIMESTAMP
);
"""

CREATE_PRICE_HISTORY_TABLE = """
CREATE TABLE IF NOT EXISTS price_history (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    price REAL NOT NULL,
    timestamp INTEGER NOT NULL,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP
);
"""

CREATE_WAGERS_TABLE = """
CREATE TABLE IF NOT EXISTS wagers (
    id INTEGER PRIMARY KEY,
    creator TEXT NOT NULL,
    opponent TEXT,
    stake INTEGER NOT NULL,
    direction INTEGER NOT NULL,
    oracle_feed INTEGER NOT NULL,
    duration INTEGER NOT NULL,
    start_price INTEGER,
    end_price INTEGER,
    created_at INTEGER NOT NULL,
    started_at INTEGER,
    expires_at INTEGER,
    status INTEGER NOT NULL,
    winner TEXT,
    our_role TEXT,
    synced_at TEXT DEFAULT CURRENT_TIMESTAMP
);
"""

CREATE_DECISIONS_TABLE = """
CREATE TABLE IF NOT EXISTS decisions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    challenge_id INTEGER,
    action TEXT NOT NULL,
    direction TEXT,
    confidence REAL,
    reasoning TEXT DEFAULT '',
    ai_provider TEXT,
    ai_model TEXT,
    price_at_decision REAL,
    created_at TEXT NOT NULL
);
"""

CREATE_PERFORMANCE_TABLE = """
CREATE TABLE IF NOT EXISTS performance (
    date TEXT PRIMARY KEY,
    wins INTEGER DEFAULT 0,
    losses INTEGER DEFAULT 0,
    ties INTEGER DEFAULT 0,
    total_won REAL DEFAULT 0,
    total_lost REAL DEFAULT 0,
    resolver_earnings REAL DEFAULT 0,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP
);
"""

CREATE_CONFIDENCE_PERFORMANCE_TABLE = """
CREATE TABLE IF NOT EXISTS confidence_performance (
    bucket TEXT PRIMARY KEY,
    wins INTEGER DEFAULT 0,
    losses INTEGER DEFAULT 0,
    ties INTEGER DEFAULT 0,
    total_won REAL DEFAULT 0,
    total_lost REAL DEFAULT 0,
    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
);
"""

MIGRATIONS = [
    (1, "initial", [
        CREATE_PRICE_HISTORY_TABLE,
        "CREATE INDEX IF NOT EXISTS idx_price_timestamp ON price_history(timestamp)",
        CREATE_WAGERS_TABLE,
        "CREATE INDEX IF NOT EXISTS idx_wager_status ON wagers(status)",
        "CREATE INDEX IF NOT EXISTS idx_wager_creator ON wagers(creator)",
        CREATE_DECISIONS_TABLE,
        "CREATE INDEX IF NOT EXISTS idx_decision_challenge ON decisions(challenge_id)",
        CREATE_PERFORMANCE_TABLE,
    ]),
    (2, "confidence_streaks", [
        "ALTER TABLE decisions ADD COLUMN confidence_bucket TEXT",
        CREATE_CONFIDENCE_PERFORMANCE_TABLE,
        "INSERT OR IGNORE INTO confidence_performance (bucket) VALUES ('low')",
        "INSERT OR IGNORE INTO confidence_performance (bucket) VALUES ('medium')",
        "INSERT OR IGNORE INTO confidence_performance (bucket) VALUES ('high')",
        "INSERT OR IGNORE INTO confidence_performance (bucket) VALUES ('very_high')",
        "ALTER TABLE performance ADD COLUMN current_streak INTEGER DEFAULT 0",
        "ALTER TABLE performance ADD COLUMN best_win_streak INTEGER DEFAULT 0",
        "ALTER TABLE performance ADD COLUMN worst_loss_streak INTEGER DEFAULT 0",
    ]),
    (3, "outcome_tracking", [
        "ALTER TABLE wagers ADD COLUMN outcome_recorded INTEGER DEFAULT 0",
        # rows mirrored before outcome tracking settled without being counted
        "UPDATE wagers SET outcome_recorded = 1 WHERE status >= 2",
    ]),
]
