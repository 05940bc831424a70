import logging
import sqlite3
from contextlib import contextmanager
from typing import Dict, Iterator, List

from pydantic import ValidationError

from models.card import CardMap, Flashcard
from . import database

logger = logging.getLogger(__name__)

DECK_FILE_NAME = "_flashcards.json"


class StoreError(Exception):
    """A deck could not be read or written."""


def deck_key_for_chapter(chapter: str) -> str:
    """Cards of a chapter live in the deck file of the chapter's folder."""
    parts = chapter.split("/")
    folder = "/".join(parts[:-1]) if len(parts) > 1 else ""
    return f"{folder}/{DECK_FILE_NAME}" if folder else DECK_FILE_NAME


class CardStore:
    """Whole-map persistence of card maps, one map per deck key."""

    def read(self, deck_key: str) -> CardMap:
        raise NotImplementedError

    def write(self, deck_key: str, cards: CardMap) -> None:
        raise NotImplementedError

    def list_deck_keys(self) -> List[str]:
        raise NotImplementedError

    @contextmanager
    def checkout(self, deck_key: str) -> Iterator[CardMap]:
        """Read a deck, hand it out for mutation, and write it back on a clean exit.

        An exception raised inside the block skips the write, so nothing from
        the block is committed.
        """
        cards = self.read(deck_key)
        yield cards
        self.write(deck_key, cards)


class SqliteCardStore(CardStore):
    def __init__(self, db_path=None):
        self.db_path = db_path

    def read(self, deck_key: str) -> CardMap:
        try:
            with database.get_conn(self.db_path) as conn:
                cursor = conn.cursor()
                cursor.execute(
                    "SELECT card_id, payload FROM cards WHERE deck_key = ?",
                    (deck_key,),
                )
                rows = cursor.fetchall()
            return {row["card_id"]: Flashcard.model_validate_json(row["payload"]) for row in rows}
        except (sqlite3.Error, ValidationError) as e:
            logger.warning("Failed to read deck %s: %s", deck_key, e)
            raise StoreError(f"Could not read deck {deck_key}") from e

    def write(self, deck_key: str, cards: CardMap) -> None:
        rows = [
            (deck_key, card_id, card.chapter, card.due_at, card.model_dump_json())
            for card_id, card in cards.items()
        ]
        try:
            with database.get_conn(self.db_path) as conn, database.transaction(conn) as cursor:
                cursor.execute(
                    """
                    INSERT INTO decks (deck_key) VALUES (?)
                    ON CONFLICT(deck_key) DO UPDATE SET updated_at = datetime('now')
                    """,
                    (deck_key,),
                )
                cursor.execute("DELETE FROM cards WHERE deck_key = ?", (deck_key,))
                cursor.executemany(
                    """
                    INSERT INTO cards (deck_key, card_id, chapter, due_at, payload)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    rows,
                )
        except sqlite3.Error as e:
            logger.warning("Failed to write deck %s: %s", deck_key, e)
            raise StoreError(f"Could not write deck {deck_key}") from e
        logger.debug("Wrote %d cards to %s", len(rows), deck_key)

    def list_deck_keys(self) -> List[str]:
        try:
            with database.get_conn(self.db_path) as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT deck_key FROM decks ORDER BY deck_key")
                return [row["deck_key"] for row in cursor.fetchall()]
        except sqlite3.Error as e:
            logger.warning("Failed to list decks: %s", e)
            raise StoreError("Could not list decks") from e


class MemoryCardStore(CardStore):
    """Keeps serialized decks in memory; reads hand out fresh copies like a real store."""

    def __init__(self):
        self._decks: Dict[str, Dict[str, str]] = {}

    def read(self, deck_key: str) -> CardMap:
        payloads = self._decks.get(deck_key, {})
        return {card_id: Flashcard.model_validate_json(payload) for card_id, payload in payloads.items()}

    def write(self, deck_key: str, cards: CardMap) -> None:
        self._decks[deck_key] = {card_id: card.model_dump_json() for card_id, card in cards.items()}

    def list_deck_keys(self) -> List[str]:
        return sorted(self._decks)
