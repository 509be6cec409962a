"""
Database schema for Sophera.

Holds the DDL, the shared hope-snippet seed rows and schema validation.
Kept separate from database.py so the connection layer stays small.
"""

from __future__ import annotations

import json
import sqlite3
from datetime import UTC, datetime
from pathlib import Path

from sophera.observability.logging import get_logger

logger = get_logger(__name__)

SCHEMA_SQL = """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        username TEXT NOT NULL,
        display_name TEXT,
        email TEXT,
        diagnosis TEXT,
        diagnosis_stage TEXT,
        diagnosis_date TEXT,
        preferences TEXT NOT NULL DEFAULT '{}',
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );

    CREATE TABLE IF NOT EXISTS treatments (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        name TEXT NOT NULL,
        type TEXT NOT NULL,
        start_date TEXT,
        end_date TEXT,
        notes TEXT,
        side_effects TEXT NOT NULL DEFAULT '[]',
        effectiveness TEXT NOT NULL DEFAULT '[]',
        active INTEGER NOT NULL DEFAULT 1,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );

    CREATE INDEX IF NOT EXISTS idx_treatments_user ON treatments(user_id, active);

    CREATE TABLE IF NOT EXISTS journal_logs (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        entry_date TEXT NOT NULL,
        content TEXT NOT NULL,
        mood TEXT,
        energy_level INTEGER,
        sleep_quality INTEGER,
        pain_level INTEGER,
        symptoms TEXT NOT NULL DEFAULT '[]',
        medication TEXT NOT NULL DEFAULT '[]',
        food_diary TEXT,
        images TEXT NOT NULL DEFAULT '[]',
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );

    CREATE INDEX IF NOT EXISTS idx_journal_logs_user_date ON journal_logs(user_id, entry_date);

    CREATE TABLE IF NOT EXISTS diet_logs (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        meal_date TEXT NOT NULL,
        meal_type TEXT NOT NULL,
        food_items TEXT NOT NULL DEFAULT '[]',
        calories REAL,
        carbs REAL,
        protein REAL,
        fat REAL,
        notes TEXT,
        images TEXT NOT NULL DEFAULT '[]',
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );

    CREATE INDEX IF NOT EXISTS idx_diet_logs_user_date ON diet_logs(user_id, meal_date);

    CREATE TABLE IF NOT EXISTS plan_items (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        title TEXT NOT NULL,
        description TEXT,
        category TEXT NOT NULL,
        start_date TEXT,
        due_date TEXT,
        frequency TEXT NOT NULL DEFAULT 'once',
        priority TEXT NOT NULL DEFAULT 'medium',
        is_completed INTEGER NOT NULL DEFAULT 0,
        completed_at TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );

    CREATE INDEX IF NOT EXISTS idx_plan_items_user_due ON plan_items(user_id, due_date);

    CREATE TABLE IF NOT EXISTS hope_snippets (
        id TEXT PRIMARY KEY,
        user_id TEXT,
        title TEXT NOT NULL,
        content TEXT NOT NULL,
        category TEXT NOT NULL,
        author TEXT,
        source TEXT,
        tags TEXT NOT NULL DEFAULT '[]',
        is_active INTEGER NOT NULL DEFAULT 1,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );

    CREATE INDEX IF NOT EXISTS idx_hope_snippets_user ON hope_snippets(user_id, category);

    CREATE TABLE IF NOT EXISTS documents (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        title TEXT NOT NULL,
        type TEXT NOT NULL DEFAULT 'other',
        content TEXT NOT NULL,
        parsed_content TEXT,
        source_date TEXT,
        tags TEXT NOT NULL DEFAULT '[]',
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );

    CREATE INDEX IF NOT EXISTS idx_documents_user ON documents(user_id);

    CREATE TABLE IF NOT EXISTS research_items (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        title TEXT NOT NULL,
        content TEXT NOT NULL,
        source_type TEXT NOT NULL,
        source_id TEXT,
        source_name TEXT,
        tags TEXT NOT NULL DEFAULT '[]',
        evidence_level TEXT,
        date_added TEXT NOT NULL
    );

    CREATE INDEX IF NOT EXISTS idx_research_items_user ON research_items(user_id, date_added);

    CREATE TABLE IF NOT EXISTS saved_trials (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        trial_id TEXT NOT NULL,
        title TEXT NOT NULL,
        phase TEXT,
        status TEXT,
        locations TEXT NOT NULL DEFAULT '[]',
        match_score INTEGER,
        notes TEXT,
        date_added TEXT NOT NULL,
        UNIQUE(user_id, trial_id)
    );

    CREATE TABLE IF NOT EXISTS messages (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        role TEXT NOT NULL,
        content TEXT NOT NULL,
        model_used TEXT,
        sources TEXT,
        created_at TEXT NOT NULL
    );

    CREATE INDEX IF NOT EXISTS idx_messages_user_time ON messages(user_id, created_at);

    CREATE TABLE IF NOT EXISTS canvas_tabs (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        title TEXT NOT NULL,
        type TEXT NOT NULL,
        config TEXT NOT NULL DEFAULT '{}',
        scale REAL NOT NULL DEFAULT 1.0,
        offset_x REAL NOT NULL DEFAULT 0,
        offset_y REAL NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );

    CREATE INDEX IF NOT EXISTS idx_canvas_tabs_user ON canvas_tabs(user_id);

    CREATE TABLE IF NOT EXISTS canvas_nodes (
        id TEXT NOT NULL,
        tab_id TEXT NOT NULL REFERENCES canvas_tabs(id) ON DELETE CASCADE,
        sort_order INTEGER NOT NULL DEFAULT 0,
        type TEXT NOT NULL,
        title TEXT NOT NULL,
        position_x REAL NOT NULL,
        position_y REAL NOT NULL,
        width REAL NOT NULL,
        height REAL NOT NULL,
        inputs TEXT NOT NULL DEFAULT '[]',
        outputs TEXT NOT NULL DEFAULT '[]',
        properties TEXT NOT NULL DEFAULT '{}',
        data_ref TEXT,
        visual TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        PRIMARY KEY (tab_id, id)
    );

    CREATE TABLE IF NOT EXISTS canvas_edges (
        id TEXT NOT NULL,
        tab_id TEXT NOT NULL REFERENCES canvas_tabs(id) ON DELETE CASCADE,
        sort_order INTEGER NOT NULL DEFAULT 0,
        source_node_id TEXT NOT NULL,
        source_output_index INTEGER NOT NULL DEFAULT 0,
        target_node_id TEXT NOT NULL,
        target_input_index INTEGER NOT NULL DEFAULT 0,
        type TEXT,
        properties TEXT NOT NULL DEFAULT '{}',
        PRIMARY KEY (tab_id, id)
    );

    CREATE TABLE IF NOT EXISTS llm_usage (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id TEXT NOT NULL,
        call_type TEXT NOT NULL,
        call_date TEXT NOT NULL,
        call_count INTEGER DEFAULT 1,
        created_at TEXT DEFAULT CURRENT_TIMESTAMP,
        UNIQUE(user_id, call_type, call_date)
    );

    CREATE INDEX IF NOT EXISTS idx_llm_usage_date ON llm_usage(call_date);
    CREATE INDEX IF NOT EXISTS idx_llm_usage_user_date ON llm_usage(user_id, call_date);
"""

# Shared snippets visible to every user (user_id NULL). Fixed ids keep seeding idempotent.
SEED_HOPE_SNIPPETS: list[dict[str, object]] = [
    {
        "id": "seed-hope-quote-1",
        "title": "One day at a time",
        "content": "You don't have to see the whole staircase. Just take the next step.",
        "category": "quote",
        "author": "Martin Luther King Jr.",
        "tags": ["courage", "patience"],
    },
    {
        "id": "seed-hope-affirmation-1",
        "title": "Strength within",
        "content": "My body is working hard to heal, and I am giving it the rest it needs.",
        "category": "affirmation",
        "tags": ["healing", "rest"],
    },
    {
        "id": "seed-hope-story-1",
        "title": "Back on the trail",
        "content": (
            "After finishing chemotherapy, one reader set a goal of walking the same "
            "trail they had hiked before diagnosis. It took four months of short walks, "
            "and on the first anniversary of the last infusion they reached the top."
        ),
        "category": "story",
        "tags": ["recovery", "exercise"],
    },
    {
        "id": "seed-hope-support-1",
        "title": "It is okay to rest",
        "content": (
            "Hard days are part of treatment, not a sign of failure. Reaching out to "
            "someone you trust today counts as progress."
        ),
        "category": "support",
        "tags": ["emotional support"],
    },
    {
        "id": "seed-hope-inspiration-1",
        "title": "Progress in research",
        "content": (
            "Treatments keep improving every year, and many options available today "
            "did not exist a decade ago."
        ),
        "category": "inspiration",
        "tags": ["research", "hope"],
    },
]


def _seed_hope_snippets(conn: sqlite3.Connection) -> None:
    now = datetime.now(UTC).isoformat()
    for snippet in SEED_HOPE_SNIPPETS:
        conn.execute(
            """
            INSERT OR IGNORE INTO hope_snippets (
                id, user_id, title, content, category, author, source, tags,
                is_active, created_at, updated_at
            ) VALUES (?, NULL, ?, ?, ?, ?, ?, ?, 1, ?, ?)
            """,
            (
                snippet["id"],
                snippet["title"],
                snippet["content"],
                snippet["category"],
                snippet.get("author"),
                snippet.get("source"),
                json.dumps(snippet.get("tags", [])),
                now,
                now,
            ),
        )


def init_database(db_path: Path) -> None:
    """
    Initialize database with schema (idempotent)

    Safe to run multiple times - uses CREATE TABLE IF NOT EXISTS and
    INSERT OR IGNORE for seed rows.

    Side Effects:
    - Creates the parent directory and database file if needed
    - Creates tables and indexes
    - Inserts shared hope snippets
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path)
    try:
        conn.executescript(SCHEMA_SQL)
        _seed_hope_snippets(conn)
        conn.commit()
    finally:
        conn.close()

    logger.info("Database initialized: %s", db_path)


REQUIRED_TABLES: dict[str, list[str]] = {
    "users": ["id", "username", "preferences"],
    "treatments": ["id", "user_id", "name", "type", "side_effects", "effectiveness", "active"],
    "journal_logs": ["id", "user_id", "entry_date", "content", "pain_level"],
    "diet_logs": ["id", "user_id", "meal_date", "meal_type", "calories"],
    "plan_items": ["id", "user_id", "title", "due_date", "is_completed", "completed_at"],
    "hope_snippets": ["id", "user_id", "title", "content", "category", "is_active"],
    "documents": ["id", "user_id", "title", "type", "content", "parsed_content"],
    "research_items": ["id", "user_id", "title", "content", "source_type", "date_added"],
    "saved_trials": ["id", "user_id", "trial_id", "title", "match_score", "date_added"],
    "messages": ["id", "user_id", "role", "content", "model_used"],
    "canvas_tabs": ["id", "user_id", "title", "type", "config"],
    "canvas_nodes": ["id", "tab_id", "type", "title", "position_x", "position_y"],
    "canvas_edges": ["id", "tab_id", "source_node_id", "target_node_id"],
    "llm_usage": ["id", "user_id", "call_type", "call_date", "call_count"],
}


def validate_schema(conn: sqlite3.Connection) -> bool:
    """
    Validate database has expected schema

    Raises:
        ValueError: If tables or columns are missing
    """
    cursor = conn.cursor()

    cursor.execute("SELECT name FROM sqlite_master WHERE type='table'")
    existing_tables = {row[0] for row in cursor.fetchall()}

    missing_tables = set(REQUIRED_TABLES) - existing_tables
    if missing_tables:
        raise ValueError(f"Database missing tables: {sorted(missing_tables)}")

    for table, required_cols in REQUIRED_TABLES.items():
        # Identifiers cannot be parameterized; names come from the dict above
        if not table.replace("_", "").isalnum():
            raise ValueError(f"Invalid table name: {table}")

        cursor.execute(f"PRAGMA table_info({table})")
        existing_cols = {row[1] for row in cursor.fetchall()}

        missing_cols = set(required_cols) - existing_cols
        if missing_cols:
            raise ValueError(f"Table '{table}' missing columns: {sorted(missing_cols)}")

    return True
