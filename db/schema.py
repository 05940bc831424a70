# SQL schema for the GatedStudy card store

SCHEMA_VERSION = 1

SCHEMA_SQL = """
-- Decks (one card map per deck key)
CREATE TABLE IF NOT EXISTS decks (
    deck_key TEXT PRIMARY KEY,
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);

-- Cards (pydantic JSON payload, a few columns lifted out for lookups)
CREATE TABLE IF NOT EXISTS cards (
    deck_key TEXT NOT NULL,
    card_id TEXT NOT NULL,
    chapter TEXT NOT NULL,
    due_at INTEGER NOT NULL,
    payload TEXT NOT NULL,
    PRIMARY KEY (deck_key, card_id),
    FOREIGN KEY (deck_key) REFERENCES decks (deck_key) ON DELETE CASCADE
);
"""

# Indexes for performance
INDEXES_SQL = """
CREATE INDEX IF NOT EXISTS idx_cards_chapter ON cards (chapter);
CREATE INDEX IF NOT EXISTS idx_cards_due ON cards (due_at);
"""
