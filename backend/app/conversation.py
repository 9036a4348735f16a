"""
Conversation engine for one listing interview session.

Every host message goes through the same pipeline:
1. Append the user message
2. Extract the next field deterministically (engine/extract.py)
3. Evaluate the phase transition once (engine/planner.py)
4. Ask the reply service for prose; on any failure use the rule-based reply
5. Append the assistant message(s) and save the state

The engine never raises out of process(): reply failures degrade to the
fallback path and store failures only mark the turn as unsaved.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from engine.extract import extract_fields
from engine.planner import build_fallback_reply, next_phase, rewind_for_reset
from engine.composer import to_full_listing
from interview.models import ConversationState, FullListing, ListingRecord, Message, Role, utc_now
from interview.specs import Phase, find_field

from .reply_service import HISTORY_WINDOW, ReplyFailure, ReplyResult, ReplyService
from .session_store import SessionStore, SessionStoreError

logger = logging.getLogger(__name__)

ERROR_REPLY = "I'm sorry, something went wrong. Please try again."


@dataclass
class TurnResult:
    """Outcome of processing one host message."""
    replies: List[str] = field(default_factory=list)
    phase: Phase = Phase.GREETING
    phase_changed: bool = False
    filled_field: Optional[str] = None
    ai_call_made: bool = False
    ai_model: str = "deterministic"
    reply_failure: Optional[ReplyFailure] = None
    saved: bool = False


def _log_turn_summary(session_id: str, turn: TurnResult, fields_filled: int) -> None:
    """Single-line summary per turn for monitoring and debugging."""
    logger.info(
        "[TURN-SUMMARY] "
        f"id={session_id} "
        f"phase={turn.phase.value} "
        f"phase_changed={turn.phase_changed} "
        f"filled={turn.filled_field or 'none'} "
        f"fields_filled={fields_filled} "
        f"ai_used={turn.ai_call_made} "
        f"fallback={turn.reply_failure.value if turn.reply_failure else 'none'} "
        f"saved={turn.saved}"
    )


class ConversationEngine:
    """Owns the ConversationState of a single session."""

    def __init__(
        self,
        session_id: str,
        reply_service: Optional[ReplyService] = None,
        store: Optional[SessionStore] = None,
        state: Optional[ConversationState] = None,
    ):
        if state is not None and state.sessionId != session_id:
            raise ValueError(f"State belongs to session {state.sessionId}, not {session_id}")
        self.session_id = session_id
        self.reply_service = reply_service
        self.store = store
        self._state = state.model_copy(deep=True) if state is not None else ConversationState(sessionId=session_id)

    @classmethod
    def restore(
        cls,
        session_id: str,
        store: SessionStore,
        reply_service: Optional[ReplyService] = None,
    ) -> "ConversationEngine":
        """
        Resume a session from the store, or start fresh if it is unknown.

        A store read failure is logged and also starts fresh.
        """
        state = None
        try:
            state = store.load(session_id)
        except SessionStoreError as e:
            logger.error(f"METRIC session_load_failed sessionId={session_id} error={e}")
        if state is not None:
            logger.info(f"[ENGINE] Restored session id={session_id} phase={state.phase.value}")
        return cls(session_id, reply_service=reply_service, store=store, state=state)

    # -------------------------------------------------------------------------
    # State access
    # -------------------------------------------------------------------------

    @property
    def phase(self) -> Phase:
        return self._state.phase

    def get_state(self) -> ConversationState:
        return self._state.model_copy(deep=True)

    def get_listing(self) -> ListingRecord:
        return self._state.record.model_copy(deep=True)

    def get_full_listing(self) -> Optional[FullListing]:
        """
        Snapshot of the finished listing.

        Only available in the preview/complete phases and only when location,
        squareFeet and monthlyRate are all set; None otherwise.
        """
        if self._state.phase not in (Phase.PREVIEW, Phase.COMPLETE):
            return None

        record = self._state.record
        if not record.location or not record.squareFeet or not record.monthlyRate:
            return None

        if self._state.createdAt is None:
            self._state.createdAt = utc_now()

        return to_full_listing(
            record,
            session_id=self.session_id,
            history=self._state.messages,
            listing_id=self._state.listingId,
            created_at=self._state.createdAt,
        )

    def _add_message(self, role: Role, content: str) -> None:
        self._state.messages.append(Message(role=role, content=content))

    # -------------------------------------------------------------------------
    # Turn processing
    # -------------------------------------------------------------------------

    async def process(self, utterance: str, use_ai: bool = True) -> List[str]:
        """Process one host message and return the assistant reply text(s)."""
        turn = await self.process_turn(utterance, use_ai=use_ai)
        return turn.replies

    async def process_turn(self, utterance: str, use_ai: bool = True) -> TurnResult:
        """
        Process one host message.

        GUARANTEE: never raises. Unexpected errors produce an apology reply
        and leave the phase/record as they were before the turn.
        """
        utterance = utterance or ""
        self._add_message(Role.USER, utterance)
        turn = TurnResult(phase=self._state.phase)
        previous_phase, previous_record = self._state.phase, self._state.record

        try:
            extraction = extract_fields(self._state.record, self._state.phase, utterance)
            transition = next_phase(self._state.phase, extraction.record, utterance)

            self._state.record = transition.record
            self._state.phase = transition.phase
            turn.phase = transition.phase
            turn.phase_changed = transition.entered
            turn.filled_field = extraction.filled_field
            if transition.entered and transition.phase == Phase.PREVIEW and self._state.createdAt is None:
                self._state.createdAt = utc_now()

            result = await self._request_reply(utterance, use_ai)
            if result.ok:
                turn.replies = [result.reply]
                turn.ai_call_made = True
                turn.ai_model = result.model or "unknown"
            else:
                turn.reply_failure = result.failure
                turn.ai_call_made = result.failure != ReplyFailure.DISABLED
                fallback = build_fallback_reply(
                    transition,
                    utterance=utterance,
                    filled_field=extraction.filled_field,
                    filled_value=extraction.value,
                )
                turn.replies = fallback.lines
                logger.info(
                    f"METRIC fallback_reply_used sessionId={self.session_id} "
                    f"reason={result.failure.value if result.failure else 'unknown'} "
                    f"asked={fallback.asked_field or 'none'}"
                )

        except Exception as e:
            logger.error(
                f"METRIC engine_unexpected_error sessionId={self.session_id} "
                f"error={type(e).__name__}",
                exc_info=True,
            )
            self._state.phase, self._state.record = previous_phase, previous_record
            turn = TurnResult(phase=previous_phase, replies=[ERROR_REPLY])

        for reply in turn.replies:
            self._add_message(Role.ASSISTANT, reply)

        turn.saved = self.save()
        _log_turn_summary(
            self.session_id,
            turn,
            fields_filled=len(self._state.record.model_dump(exclude_none=True, exclude_defaults=True)),
        )
        return turn

    async def _request_reply(self, utterance: str, use_ai: bool) -> ReplyResult:
        if not use_ai or self.reply_service is None:
            return ReplyResult.failed(ReplyFailure.DISABLED)
        return await self.reply_service.generate_reply(
            utterance=utterance,
            phase=self._state.phase,
            record=self._state.record,
            history=self._state.messages[-HISTORY_WINDOW:],
            session_id=self.session_id,
        )

    # -------------------------------------------------------------------------
    # Direct edits (UI affordances)
    # -------------------------------------------------------------------------

    def set_amenities(self, amenities: List[str]) -> None:
        """Replace the amenities with the checklist selection (deduplicated, order kept)."""
        cleaned = [a.strip() for a in amenities if a and a.strip()]
        self._state.record.amenities = list(dict.fromkeys(cleaned))
        self.save()

    def set_standout_features(self, features: str) -> None:
        self._state.record.standoutFeatures = features.strip() or None
        self.save()

    def mark_published(self, listing_id: str) -> None:
        """Remember the id the listing was published under."""
        self._state.listingId = listing_id
        self.save()

    def reset_field(self, field_name: str) -> Phase:
        """
        Clear a field so the interview asks for it again.

        The phase rewinds to the phase that collects the field, and values
        derived on entering later phases (price suggestion, title,
        description) are cleared so they are recomputed on the way forward.

        Raises:
            ValueError: If the field name is not a listing field
        """
        find_field(field_name)
        phase, record = rewind_for_reset(self._state.phase, self._state.record, field_name)
        self._state.phase = phase
        self._state.record = record
        self.save()
        return phase

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def save(self) -> bool:
        """
        Persist the state. Returns False (and keeps going) if the store fails.
        """
        if self.store is None:
            return False
        try:
            self.store.save(self.session_id, self._state)
            return True
        except Exception as e:
            logger.error(
                f"METRIC session_save_failed sessionId={self.session_id} "
                f"error={type(e).__name__}",
                exc_info=True,
            )
            return False
