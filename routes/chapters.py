from fastapi import APIRouter, Depends, Query

import config
from db.store import CardStore, deck_key_for_chapter
from models.settings import StudySettings
from utils.clock import Clock
from utils.gating import chapter_state, first_blocked_paragraph, gate_to_json
from .deps import get_clock, get_settings, get_store

router = APIRouter()


@router.get("/gate")
async def chapter_gate(
    chapter: str = Query(...),
    store: CardStore = Depends(get_store),
    clock: Clock = Depends(get_clock),
    settings: StudySettings = Depends(get_settings),
):
    """Paragraphs above `gate` stay hidden; a null gate hides nothing."""
    now = clock.now()
    cards = list(store.read(deck_key_for_chapter(chapter)).values())
    return {
        "chapter": chapter,
        "gate": gate_to_json(first_blocked_paragraph(chapter, cards, now)),
        "state": chapter_state(chapter, cards, now),
        "gating_enabled": settings.gating_enabled,
    }


@router.delete("")
async def delete_chapter_cards(chapter: str = Query(...), store: CardStore = Depends(get_store)):
    with store.checkout(deck_key_for_chapter(chapter)) as cards:
        doomed = [card_id for card_id, card in cards.items() if card.chapter == chapter]
        for card_id in doomed:
            del cards[card_id]
    return {"chapter": chapter, "deleted": len(doomed)}


@router.post("/gating")
async def toggle_gating(enabled: bool = Query(...)):
    config.set_gating_enabled(enabled)
    return {"gating_enabled": enabled}
