from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Callable, List

from db.store import CardStore, deck_key_for_chapter
from models.card import CardCreate, Flashcard
from models.settings import StudySettings
from utils.cards import bury_card, create_card, suspend_card, toggle_flag, unsuspend_card
from utils.clock import Clock
from utils.gating import paragraph_position
from utils.sm2 import reset_card_progress
from .deps import get_clock, get_settings, get_store

router = APIRouter()


def update_card(store: CardStore, chapter: str, card_id: str, action: Callable[[Flashcard], None]) -> Flashcard:
    """Check the chapter's deck out, apply an action to one card, and check it back in."""
    with store.checkout(deck_key_for_chapter(chapter)) as cards:
        card = cards.get(card_id)
        if card is None or card.chapter != chapter:
            raise HTTPException(status_code=404, detail="Card not found")
        action(card)
    return card


@router.post("", response_model=Flashcard)
async def add_card(payload: CardCreate, store: CardStore = Depends(get_store), clock: Clock = Depends(get_clock)):
    """Create a blocking card in the deck of its chapter."""
    card = create_card(
        payload.front,
        payload.back,
        payload.chapter,
        clock.now(),
        tag=payload.tag,
        paragraph_index=payload.paragraph_index,
        variants=payload.variants,
    )
    with store.checkout(deck_key_for_chapter(payload.chapter)) as cards:
        cards[card.id] = card
    return card


@router.get("", response_model=List[Flashcard])
async def list_cards(chapter: str = Query(...), store: CardStore = Depends(get_store)):
    cards = store.read(deck_key_for_chapter(chapter)).values()
    return sorted((card for card in cards if card.chapter == chapter), key=paragraph_position)


@router.delete("/{card_id}")
async def delete_card(card_id: str, chapter: str = Query(...), store: CardStore = Depends(get_store)):
    with store.checkout(deck_key_for_chapter(chapter)) as cards:
        if card_id not in cards:
            raise HTTPException(status_code=404, detail="Card not found")
        del cards[card_id]
    return {"deleted": card_id}


@router.post("/{card_id}/reset", response_model=Flashcard)
async def reset_card(
    card_id: str,
    chapter: str = Query(...),
    store: CardStore = Depends(get_store),
    clock: Clock = Depends(get_clock),
):
    now = clock.now()
    return update_card(store, chapter, card_id, lambda card: reset_card_progress(card, now))


@router.post("/{card_id}/bury", response_model=Flashcard)
async def bury(
    card_id: str,
    chapter: str = Query(...),
    store: CardStore = Depends(get_store),
    clock: Clock = Depends(get_clock),
    settings: StudySettings = Depends(get_settings),
):
    now = clock.now()
    return update_card(store, chapter, card_id, lambda card: bury_card(card, now, settings))


@router.post("/{card_id}/suspend", response_model=Flashcard)
async def suspend(card_id: str, chapter: str = Query(...), store: CardStore = Depends(get_store)):
    return update_card(store, chapter, card_id, suspend_card)


@router.post("/{card_id}/unsuspend", response_model=Flashcard)
async def unsuspend(card_id: str, chapter: str = Query(...), store: CardStore = Depends(get_store)):
    return update_card(store, chapter, card_id, unsuspend_card)


@router.post("/{card_id}/flag", response_model=Flashcard)
async def flag(card_id: str, chapter: str = Query(...), store: CardStore = Depends(get_store)):
    return update_card(store, chapter, card_id, toggle_flag)
