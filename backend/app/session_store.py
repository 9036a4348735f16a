"""
Session store - persistence for conversation state and published listings.

The engine only needs load/save semantics, so the store is an injected
interface. InMemorySessionStore keeps everything as JSON text, which means
every load goes through the same serialization as a real backing store
(timestamps round-trip as ISO-8601).
"""
import logging
import secrets
import string
import time
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from interview.models import ConversationState, FullListing

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.digits + string.ascii_lowercase


class SessionStoreError(Exception):
    """Raised when the backing store cannot be read or written."""


def random_suffix(length: int = 9) -> str:
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(length))


def generate_session_id() -> str:
    """Time-based prefix plus random suffix, e.g. session_1760850000000_k3j9x0a1b."""
    return f"session_{int(time.time() * 1000)}_{random_suffix()}"


class SessionStore(ABC):
    """Key-value persistence for sessions (by session id) and listings."""

    @abstractmethod
    def load(self, session_id: str) -> Optional[ConversationState]:
        """Return the saved state, or None if the session is unknown."""

    @abstractmethod
    def save(self, session_id: str, state: ConversationState) -> None:
        """Persist the state under the session id (overwrites)."""

    @abstractmethod
    def save_listing(self, listing: FullListing) -> None:
        """Persist a listing, upserting on its sessionId."""

    @abstractmethod
    def get_listing(self, listing_id: str) -> Optional[FullListing]:
        """Return a listing by listingId, or None."""

    @abstractmethod
    def get_listing_for_session(self, session_id: str) -> Optional[FullListing]:
        """Return the listing saved for a session, or None."""

    @abstractmethod
    def list_listings(self) -> List[FullListing]:
        """All saved listings in first-save order."""


class InMemorySessionStore(SessionStore):
    """Process-local store. Contents are lost on restart."""

    def __init__(self):
        self._sessions: Dict[str, str] = {}
        # Keyed by sessionId (listingId when there is no session) so a repeat save replaces the earlier listing
        self._listings: Dict[str, str] = {}

    def load(self, session_id: str) -> Optional[ConversationState]:
        raw = self._sessions.get(session_id)
        if raw is None:
            return None
        try:
            return ConversationState.model_validate_json(raw)
        except ValueError as e:
            raise SessionStoreError(f"Corrupt session {session_id}: {e}") from e

    def save(self, session_id: str, state: ConversationState) -> None:
        self._sessions[session_id] = state.model_dump_json()
        logger.debug(f"Session saved: id={session_id} phase={state.phase.value}")

    def save_listing(self, listing: FullListing) -> None:
        key = listing.sessionId or listing.listingId or ""
        self._listings[key] = listing.model_dump_json()
        logger.debug(f"Listing saved: id={listing.listingId} sessionId={listing.sessionId}")

    def get_listing(self, listing_id: str) -> Optional[FullListing]:
        for listing in self.list_listings():
            if listing.listingId == listing_id:
                return listing
        return None

    def get_listing_for_session(self, session_id: str) -> Optional[FullListing]:
        raw = self._listings.get(session_id)
        if raw is None:
            return None
        return FullListing.model_validate_json(raw)

    def list_listings(self) -> List[FullListing]:
        return [FullListing.model_validate_json(raw) for raw in self._listings.values()]


# Singleton instance (created on first use)
_session_store: Optional[SessionStore] = None


def get_session_store() -> SessionStore:
    """Get or create the process-wide SessionStore."""
    global _session_store
    if _session_store is None:
        _session_store = InMemorySessionStore()
    return _session_store
