from fastapi import APIRouter, Depends

from db.store import CardStore
from utils.clock import Clock
from utils.progress import count_missing_paragraph_index, vault_due_counts
from .deps import get_clock, get_store

router = APIRouter()


@router.get("/due")
async def due_counts(store: CardStore = Depends(get_store), clock: Clock = Depends(get_clock)):
    """Cards due now across every deck, split into learning and review."""
    counts = vault_due_counts(store, clock.now())
    return {"learning": counts.learning, "review": counts.review, "total": counts.total}


@router.get("/missing-index")
async def missing_index(store: CardStore = Depends(get_store)):
    return {"missing": count_missing_paragraph_index(store)}
