from pathlib import Path

import pytest
from fastapi.testclient import TestClient

import config
from db import database
from db.store import MemoryCardStore, StoreError, deck_key_for_chapter
from main import app
from routes.deps import get_clock, get_store
from utils import session as sessions
from utils.cards import create_card
from utils.clock import FixedClock

NOW = 1_700_000_000_000
CHAPTER = "bio/cells.md"


def _write_test_config(config_path: Path) -> None:
    config_path.write_text(
        "\n".join(
            [
                "[scheduling]",
                "learning_steps = [1, 10]",
                "relearn_steps = [10]",
                "bury_delay_hours = 24",
                "",
                "[queue]",
                "reviews_before_new_in_document_mode = false",
                "interleaving_enabled = true",
                "",
                "[gating]",
                "enabled = true",
            ]
        ),
        encoding="utf-8",
    )


@pytest.fixture
def client(tmp_path, monkeypatch):
    config_dir = tmp_path / ".gatedstudy"
    config_dir.mkdir()
    config_path = config_dir / "config.toml"
    _write_test_config(config_path)

    monkeypatch.setattr(config, "CONFIG_DIR", config_dir)
    monkeypatch.setattr(config, "CONFIG_PATH", config_path)
    monkeypatch.setattr(database, "CONFIG_DIR", config_dir)
    monkeypatch.setattr(database, "DB_PATH", config_dir / "gatedstudy.db")
    monkeypatch.delenv("GATEDSTUDY_GATING_ENABLED", raising=False)

    database.init_db()
    clock = FixedClock(NOW)
    app.dependency_overrides[get_clock] = lambda: clock
    yield TestClient(app)
    app.dependency_overrides.clear()


def _add_card(client, front: str, paragraph_index=None, chapter: str = CHAPTER) -> dict:
    response = client.post(
        "/cards",
        json={"front": front, "back": f"{front}!", "chapter": chapter, "paragraph_index": paragraph_index},
    )
    assert response.status_code == 200
    return response.json()


def test_answering_the_first_card_moves_the_gate(client):
    first = _add_card(client, "What is a cell?", 0)
    _add_card(client, "What is a membrane?", 1)

    gate = client.get("/chapters/gate", params={"chapter": CHAPTER}).json()
    assert gate["gate"] == 0
    assert gate["state"] == "blocked"

    started = client.post("/review/sessions", json={"mode": "document", "chapter": CHAPTER})
    assert started.status_code == 200
    body = started.json()
    session_id = body["session_id"]
    assert body["step"]["card"]["id"] == first["id"]
    assert body["step"]["remaining"] == 2

    answered = client.post(
        f"/review/sessions/{session_id}/result",
        json={"action": "answered", "rating": "Good"},
    )
    assert answered.status_code == 200
    body = answered.json()
    assert body["session_id"] is None
    assert body["step"]["outcome"] == "unlocked"
    assert body["step"]["gate"] == 1

    assert client.get("/chapters/gate", params={"chapter": CHAPTER}).json()["gate"] == 1
    assert client.post(f"/review/sessions/{session_id}/result", json={"action": "skip"}).status_code == 404

    cards = client.get("/cards", params={"chapter": CHAPTER}).json()
    assert [card["paragraph_index"] for card in cards] == [0, 1]
    assert cards[0]["state"] == {"status": "learning", "step": 0}
    assert cards[0]["review_history"][0]["rating"] == "Good"


def test_due_and_missing_index_counts(client):
    _add_card(client, "Located", 2)
    _add_card(client, "Floating")
    _add_card(client, "Elsewhere", 0, chapter="chem/acids.md")

    assert client.get("/stats/due").json() == {"learning": 3, "review": 0, "total": 3}
    assert client.get("/stats/missing-index").json() == {"missing": 1}


def test_card_actions(client):
    card = _add_card(client, "Flag me", 4)
    params = {"chapter": CHAPTER}

    flagged = client.post(f"/cards/{card['id']}/flag", params=params).json()
    assert flagged["flagged"] is True

    suspended = client.post(f"/cards/{card['id']}/suspend", params=params).json()
    assert suspended["suspended"] is True
    assert client.get("/chapters/gate", params=params).json()["gate"] is None
    client.post(f"/cards/{card['id']}/unsuspend", params=params)

    buried = client.post(f"/cards/{card['id']}/bury", params=params).json()
    assert buried["buried"] is True
    assert buried["due_at"] == NOW + 24 * 3_600_000

    reset = client.post(f"/cards/{card['id']}/reset", params=params).json()
    assert reset["state"] == {"status": "new"}
    assert reset["due_at"] == NOW

    assert client.post("/cards/nope/flag", params=params).status_code == 404
    assert client.delete(f"/cards/{card['id']}", params=params).json() == {"deleted": card["id"]}
    assert client.get("/cards", params=params).json() == []


def test_deleting_a_chapter_leaves_its_neighbours(client):
    _add_card(client, "One", 0)
    _add_card(client, "Two", 1)
    neighbour = _add_card(client, "Three", 0, chapter="bio/genes.md")

    response = client.delete("/chapters", params={"chapter": CHAPTER})
    assert response.json() == {"chapter": CHAPTER, "deleted": 2}
    remaining = client.get("/cards", params={"chapter": "bio/genes.md"}).json()
    assert [card["id"] for card in remaining] == [neighbour["id"]]


def test_session_errors(client):
    assert client.post("/review/sessions", json={"mode": "document"}).status_code == 400
    assert client.post("/review/sessions/missing/continue", json={"accept": True}).status_code == 404

    empty = client.post("/review/sessions", json={"mode": "review"}).json()
    assert empty["session_id"] is None
    assert empty["step"]["outcome"] == "empty"

    _add_card(client, "Pending", 0)
    started = client.post("/review/sessions", json={"mode": "document", "chapter": CHAPTER}).json()
    response = client.post(f"/review/sessions/{started['session_id']}/continue", json={"accept": True})
    assert response.status_code == 409

    missing_rating = client.post(
        f"/review/sessions/{started['session_id']}/result", json={"action": "answered"}
    )
    assert missing_rating.status_code == 422


def test_gating_switch_is_persisted(client):
    response = client.post("/chapters/gating", params={"enabled": "false"})
    assert response.json() == {"gating_enabled": False}
    assert client.get("/chapters/gate", params={"chapter": CHAPTER}).json()["gating_enabled"] is False
    assert "enabled = false" in config.CONFIG_PATH.read_text(encoding="utf-8")


class FlakyStore(MemoryCardStore):
    def __init__(self):
        super().__init__()
        self.reads = 0

    def read(self, deck_key):
        self.reads += 1
        if self.reads > 1:
            raise StoreError(f"Could not read deck {deck_key}")
        return super().read(deck_key)


def test_start_that_cannot_read_gates_registers_nothing(client):
    store = FlakyStore()
    card = create_card("Q", "A", CHAPTER, NOW, paragraph_index=0)
    store.write(deck_key_for_chapter(CHAPTER), {card.id: card})
    app.dependency_overrides[get_store] = lambda: store
    registered = set(sessions._sessions)

    response = client.post("/review/sessions", json={"mode": "document", "chapter": CHAPTER})

    assert response.status_code == 200
    assert response.json()["session_id"] is None
    assert response.json()["step"]["outcome"] == "empty"
    assert set(sessions._sessions) == registered
