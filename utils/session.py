from __future__ import annotations

import logging
import random
import secrets
import time
from typing import Callable, Dict, List, Optional, Set, Tuple

from db.store import CardStore, StoreError
from models.card import Flashcard, Rating
from models.settings import StudySettings
from models.study import (
    QueueEntry,
    ReviewAction,
    ReviewResult,
    SessionOutcome,
    SessionState,
    SessionStep,
    StudyMode,
    StudyScope,
)
from .cards import bury_card, pick_variant
from .clock import Clock
from .gating import Gate, first_blocked_paragraph, gate_to_json
from .queue import collect_pool, select_next
from .sm2 import apply_rating

logger = logging.getLogger(__name__)


class SessionStateError(RuntimeError):
    """The session was driven with a call its current state does not accept."""


class CardMissingError(LookupError):
    """A queued card is no longer in its deck."""


class ReviewSession:
    """One review session, driven by the caller one result at a time.

    ``start`` returns the first step; every presented card is answered with
    ``next_step``. When the pool runs dry and more cards have come due since,
    the session waits in AWAITING_CONTINUE until ``continue_session`` is called.
    Cards skipped anywhere in the session stay out of every continuation.
    """

    def __init__(
        self,
        store: CardStore,
        clock: Clock,
        settings: StudySettings,
        mode: StudyMode,
        scope: StudyScope,
        rng: Optional[random.Random] = None,
    ):
        self.store = store
        self.clock = clock
        self.settings = settings
        self.mode = mode
        self.scope = scope
        self.rng = rng or random.Random()
        self.state = SessionState.ACTIVE
        self.pool: List[QueueEntry] = []
        self.skipped: Set[str] = set()
        self.start_gates: Dict[str, Gate] = {}
        self.current: Optional[int] = None
        self.reviewed = 0

    def start(self) -> SessionStep:
        if self.pool or self.state != SessionState.ACTIVE:
            raise SessionStateError("Session already started")
        return self._begin_round(empty_outcome=SessionOutcome.EMPTY)

    def next_step(self, result: ReviewResult) -> SessionStep:
        if self.state != SessionState.ACTIVE or self.current is None:
            raise SessionStateError(f"No card is awaiting a result (state={self.state.value})")
        entry = self.pool[self.current]
        card_id = entry.card.id

        if result.action == ReviewAction.ABORT:
            logger.info("Session aborted with %d cards left", len(self.pool))
            return self._finish(SessionOutcome.ABORTED)

        if result.action == ReviewAction.SKIP:
            self.skipped.add(card_id)
            self._drop_current()
            return self._advance()

        def mutate(card: Flashcard, now: int) -> None:
            if result.action == ReviewAction.BURY:
                bury_card(card, now, self.settings)
            else:
                apply_rating(card, result.rating, now, self.settings)

        try:
            card, gate = self._commit(entry, mutate)
        except CardMissingError:
            logger.warning("Card %s vanished from %s, dropping it", card_id, entry.deck_key)
            self._drop_current()
            return self._advance()

        self._drop_current()
        self.reviewed += 1

        if result.action == ReviewAction.ANSWERED and result.rating == Rating.AGAIN:
            return self._finish(SessionOutcome.AGAIN, card=card, deck_key=entry.deck_key, gate=gate)

        start_gate = self.start_gates.get(card.chapter, gate)
        if gate > start_gate:
            logger.info("Content unlocked in %s up to paragraph %s", card.chapter, gate_to_json(gate))
            return self._finish(
                SessionOutcome.UNLOCKED, card=card, deck_key=entry.deck_key, gate=gate, unlocked=True
            )
        return self._advance()

    def continue_session(self, accept: bool) -> SessionStep:
        if self.state != SessionState.AWAITING_CONTINUE:
            raise SessionStateError("Session is not waiting for a continuation")
        if not accept:
            return self._finish(SessionOutcome.DECLINED)
        self.state = SessionState.ACTIVE
        return self._begin_round(empty_outcome=SessionOutcome.COMPLETE)

    def _begin_round(self, empty_outcome: SessionOutcome) -> SessionStep:
        now = self.clock.now()
        self.pool = self._collect(now)
        if not self.pool:
            return self._finish(empty_outcome)
        try:
            self._record_start_gates(now)
        except StoreError as e:
            logger.warning("Start gates unavailable, ending session: %s", e)
            self.pool = []
            return self._finish(empty_outcome)
        return self._present(now)

    def _collect(self, now: int) -> List[QueueEntry]:
        return collect_pool(
            self.store, self.mode, self.scope, now, self.settings, exclude_ids=self.skipped
        )

    def _record_start_gates(self, now: int) -> None:
        """Remember each chapter's gate the first time the session meets it.

        A deck that cannot be read raises StoreError; the caller then treats
        the round like an unreadable pool and ends it empty.
        """
        pending: Dict[str, Set[str]] = {}
        for entry in self.pool:
            if entry.card.chapter not in self.start_gates:
                pending.setdefault(entry.deck_key, set()).add(entry.card.chapter)
        for deck_key, chapters in pending.items():
            cards = list(self.store.read(deck_key).values())
            for chapter in chapters:
                self.start_gates[chapter] = first_blocked_paragraph(chapter, cards, now)

    def _commit(
        self, entry: QueueEntry, mutate: Callable[[Flashcard, int], None]
    ) -> Tuple[Flashcard, Gate]:
        now = self.clock.now()
        with self.store.checkout(entry.deck_key) as cards:
            card = cards.get(entry.card.id)
            if card is None:
                raise CardMissingError(entry.card.id)
            mutate(card, now)
            gate = first_blocked_paragraph(card.chapter, cards.values(), now)
        return card, gate

    def _drop_current(self) -> None:
        self.pool.pop(self.current)
        self.current = None

    def _advance(self) -> SessionStep:
        now = self.clock.now()
        if self.pool:
            return self._present(now)
        if self._collect(now):
            self.state = SessionState.AWAITING_CONTINUE
            logger.info("More cards came due, asking to continue")
            return SessionStep(state=self.state, reviewed=self.reviewed)
        return self._finish(SessionOutcome.COMPLETE)

    def _present(self, now: int) -> SessionStep:
        self.current = select_next(self.pool, self.mode, now, self.settings, self.rng)
        entry = self.pool[self.current]
        return SessionStep(
            state=self.state,
            card=entry.card,
            deck_key=entry.deck_key,
            variant_index=pick_variant(entry.card, self.rng),
            remaining=len(self.pool),
            reviewed=self.reviewed,
        )

    def _finish(
        self,
        outcome: SessionOutcome,
        card: Optional[Flashcard] = None,
        deck_key: Optional[str] = None,
        gate: Optional[Gate] = None,
        unlocked: bool = False,
    ) -> SessionStep:
        self.state = SessionState.DONE
        self.current = None
        logger.info("Session finished: %s after %d reviews", outcome.value, self.reviewed)
        return SessionStep(
            state=self.state,
            card=card,
            deck_key=deck_key,
            outcome=outcome,
            gate=gate_to_json(gate) if gate is not None else None,
            unlocked=unlocked,
            reviewed=self.reviewed,
        )


SESSION_IDLE_SECONDS = 60 * 60

_sessions: Dict[str, ReviewSession] = {}
_last_touched: Dict[str, float] = {}


def register_session(session: ReviewSession, now: Optional[float] = None) -> str:
    """Keep a started session for follow-up requests, sweeping idle ones first."""
    now = time.monotonic() if now is None else now
    evict_idle_sessions(now)
    session_id = secrets.token_urlsafe(8)
    _sessions[session_id] = session
    _last_touched[session_id] = now
    return session_id


def get_session(session_id: str, now: Optional[float] = None) -> Optional[ReviewSession]:
    session = _sessions.get(session_id)
    if session is not None:
        _last_touched[session_id] = time.monotonic() if now is None else now
    return session


def discard_session(session_id: str) -> None:
    _sessions.pop(session_id, None)
    _last_touched.pop(session_id, None)


def evict_idle_sessions(now: Optional[float] = None, max_idle: float = SESSION_IDLE_SECONDS) -> int:
    """Drop sessions nobody has touched for max_idle seconds; returns how many went."""
    now = time.monotonic() if now is None else now
    stale = [session_id for session_id, touched in _last_touched.items() if now - touched > max_idle]
    for session_id in stale:
        discard_session(session_id)
    if stale:
        logger.info("Evicted %d idle review sessions", len(stale))
    return len(stale)
