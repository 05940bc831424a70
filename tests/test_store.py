import pytest

from db import database
from db.store import SqliteCardStore, StoreError, deck_key_for_chapter
from models.card import CardVariant, Flashcard, LearningState, ReviewState

NOW = 1_700_000_000_000


def _card(card_id: str, chapter: str = "bio/cells.md", **overrides) -> Flashcard:
    fields = {
        "id": card_id,
        "variants": [CardVariant(front=f"Q{card_id}", back=f"A{card_id}")],
        "chapter": chapter,
        "paragraph_index": 1,
        "due_at": NOW,
    }
    fields.update(overrides)
    return Flashcard(**fields)


@pytest.fixture
def store(tmp_path, monkeypatch):
    config_dir = tmp_path / ".gatedstudy"
    monkeypatch.setattr(database, "CONFIG_DIR", config_dir)
    monkeypatch.setattr(database, "DB_PATH", config_dir / "gatedstudy.db")
    database.init_db()
    return SqliteCardStore()


@pytest.mark.parametrize(
    "chapter, deck_key",
    [
        ("bio/cells.md", "bio/_flashcards.json"),
        ("bio/unit1/cells.md", "bio/unit1/_flashcards.json"),
        ("intro.md", "_flashcards.json"),
    ],
)
def test_deck_key_is_the_chapter_folder(chapter, deck_key):
    assert deck_key_for_chapter(chapter) == deck_key


def test_write_then_read_keeps_card_state(store):
    deck = deck_key_for_chapter("bio/cells.md")
    store.write(
        deck,
        {
            "a": _card("a", state=LearningState(step=1), blocked=False),
            "b": _card("b", state=ReviewState(interval_days=6), ease_factor=2.2),
        },
    )

    cards = store.read(deck)
    assert cards["a"].state == LearningState(step=1)
    assert cards["a"].blocked is False
    assert cards["b"].interval_days == 6
    assert cards["b"].ease_factor == pytest.approx(2.2)
    assert store.list_deck_keys() == [deck]


def test_write_replaces_the_whole_deck(store):
    deck = deck_key_for_chapter("bio/cells.md")
    store.write(deck, {"a": _card("a"), "b": _card("b")})
    store.write(deck, {"b": _card("b")})
    assert list(store.read(deck)) == ["b"]


def test_unknown_deck_reads_empty(store):
    assert store.read("nowhere/_flashcards.json") == {}


def test_checkout_writes_back_on_clean_exit(store):
    deck = deck_key_for_chapter("bio/cells.md")
    store.write(deck, {"a": _card("a")})

    with store.checkout(deck) as cards:
        cards["a"].flagged = True
        cards["c"] = _card("c")

    saved = store.read(deck)
    assert saved["a"].flagged is True
    assert "c" in saved


def test_checkout_skips_write_when_block_raises(store):
    deck = deck_key_for_chapter("bio/cells.md")
    store.write(deck, {"a": _card("a")})

    with pytest.raises(KeyError):
        with store.checkout(deck) as cards:
            cards["a"].flagged = True
            raise KeyError("boom")

    assert store.read(deck)["a"].flagged is False


def test_missing_tables_raise_store_error(tmp_path):
    broken = SqliteCardStore(db_path=tmp_path / "empty.db")
    with pytest.raises(StoreError):
        broken.read("bio/_flashcards.json")
    with pytest.raises(StoreError):
        broken.write("bio/_flashcards.json", {"a": _card("a")})
