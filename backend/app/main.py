"""
Office Listing Interview Backend - FastAPI Application

The deterministic engine (engine/) is the SOLE authority for interview flow.
The language model is optional and only writes reply prose; without it the
rule-based replies drive the whole interview.
"""

import asyncio
import logging
import os
from collections import OrderedDict
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from pathlib import Path
from typing import AsyncIterator, Dict, List, Optional, Tuple, Union

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from engine.composer import generate_formatted_listing
from engine.pricing import calculate_suggested_price, get_comparables, get_location_tier
from interview.models import FullListing
from interview.specs import Phase

from .conversation import ConversationEngine
from .listing_service import ListingService, ListingValidationError, listing_url
from .models import (
    AmenitiesRequest,
    ConversationRequest,
    ConversationResponse,
    ConversationStateResponse,
    DebugPayload,
    ListingPreviewResponse,
    PricingResponse,
    PublishListingResponse,
    ResetFieldRequest,
    StandoutFeaturesRequest,
)
from .reply_service import ReplyService, get_reply_service
from .session_store import SessionStore, SessionStoreError, generate_session_id, get_session_store

APP_VERSION = "1.0.0"

# Load environment variables from backend/.env
# Try multiple paths to ensure we find .env
env_paths = [
    Path(__file__).parent.parent / ".env",  # backend/.env
    Path.cwd() / ".env",  # current working directory
]
for env_path in env_paths:
    if env_path.exists():
        load_dotenv(env_path)
        break
else:
    load_dotenv()  # fallback to default behavior

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if os.getenv("DEBUG", "false").lower() == "true" else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Live engines by session id, least recently used first.
# Key: sessionId, Value: (engine, last_used)
# The store is the source of truth; evicted sessions are restored from it.
_engines: "OrderedDict[str, Tuple[ConversationEngine, datetime]]" = OrderedDict()
_ENGINE_TTL = timedelta(seconds=int(os.getenv("ENGINE_CACHE_TTL_SECONDS", "1800")))
_ENGINE_CACHE_MAX = int(os.getenv("ENGINE_CACHE_MAX", "256"))

# One utterance per session at a time
_session_locks: Dict[str, asyncio.Lock] = {}

# Requests holding or waiting for a session lock; these sessions are never evicted
_in_flight: Dict[str, int] = {}


def _mask_key(key: Optional[str]) -> str:
    """Mask API key showing only last 4 chars."""
    if not key:
        return "(not set)"
    if len(key) <= 4:
        return "****"
    return f"****{key[-4:]}"


def _get_session_lock(session_id: str) -> asyncio.Lock:
    lock = _session_locks.get(session_id)
    if lock is None:
        lock = asyncio.Lock()
        _session_locks[session_id] = lock
    return lock


@asynccontextmanager
async def _session_turn(session_id: str) -> AsyncIterator[None]:
    """Hold the session lock; the session stays cached while the request is in flight."""
    _in_flight[session_id] = _in_flight.get(session_id, 0) + 1
    try:
        async with _get_session_lock(session_id):
            yield
    finally:
        _in_flight[session_id] -= 1
        if not _in_flight[session_id]:
            del _in_flight[session_id]


def _evict_session(session_id: str) -> None:
    _engines.pop(session_id, None)
    _session_locks.pop(session_id, None)


def _cleanup_engines() -> None:
    """Evict idle engines (TTL), then least recently used ones beyond the cap."""
    cutoff = datetime.now() - _ENGINE_TTL
    expired = [
        sid for sid, (_, last_used) in _engines.items()
        if last_used < cutoff and sid not in _in_flight
    ]
    for sid in expired:
        _evict_session(sid)

    evicted = len(expired)
    for sid in list(_engines):
        if len(_engines) <= _ENGINE_CACHE_MAX:
            break
        if sid not in _in_flight:
            _evict_session(sid)
            evicted += 1

    # Locks left behind by requests for sessions that never got an engine
    for sid in [s for s in _session_locks if s not in _engines and s not in _in_flight]:
        del _session_locks[sid]

    if evicted:
        logger.debug(f"[ENGINE-CACHE] evicted={evicted} cached={len(_engines)}")


def _get_store() -> SessionStore:
    return get_session_store()


def _get_reply_service() -> ReplyService:
    return get_reply_service()


def _get_listing_service() -> ListingService:
    return ListingService(_get_store())


def _get_engine(session_id: str) -> ConversationEngine:
    """Cached engine, else restored from the store, else a fresh session."""
    cached = _engines.get(session_id)
    if cached is not None:
        engine = cached[0]
        _engines.move_to_end(session_id)
    else:
        engine = ConversationEngine.restore(
            session_id,
            store=_get_store(),
            reply_service=_get_reply_service(),
        )
    _engines[session_id] = (engine, datetime.now())
    _cleanup_engines()
    return engine


def _get_existing_engine(session_id: str) -> ConversationEngine:
    """Like _get_engine, but 404 for a session that was never started."""
    if session_id in _engines:
        return _get_engine(session_id)
    try:
        state = _get_store().load(session_id)
    except SessionStoreError as e:
        logger.error(f"METRIC session_load_failed sessionId={session_id} error={e}")
        raise HTTPException(status_code=503, detail="Session store unavailable")
    if state is None:
        raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")
    return _get_engine(session_id)


def _state_response(engine: ConversationEngine) -> ConversationStateResponse:
    state = engine.get_state()
    return ConversationStateResponse(
        sessionId=state.sessionId,
        phase=state.phase,
        record=state.record,
        messages=state.messages,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - initialize services."""
    logger.info("=" * 60)
    logger.info("Initializing Office Listing Interview Backend")
    logger.info("=" * 60)

    openai_key = os.getenv("OPENAI_API_KEY")
    logger.info(f"OPENAI_API_KEY present: {bool(openai_key)} ({_mask_key(openai_key)})")
    logger.info(f"OPENAI_MODEL: {os.getenv('OPENAI_MODEL', 'gpt-4o-mini')}")

    reply_service = _get_reply_service()
    if reply_service.is_enabled:
        logger.info("Reply service initialized successfully")
    else:
        logger.warning("Reply service NOT enabled - rule-based replies only")

    _get_store()
    logger.info("Session store initialized successfully")
    logger.info("=" * 60)

    yield

    logger.info("Shutting down Office Listing Interview Backend")


app = FastAPI(
    title="Office Listing Interview Backend",
    description="Guided interview that turns a conversation into an office sublet listing",
    version=APP_VERSION,
    lifespan=lifespan,
)

# CORS middleware for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": APP_VERSION}


# ============================================================
# Conversation Endpoints
# ============================================================

@app.post("/conversation/next", response_model=ConversationResponse)
async def conversation_next(request: ConversationRequest) -> ConversationResponse:
    """
    Process the next host message in an interview.

    Flow:
    1. Resolve the session (new id when none is given)
    2. Run the engine under the session lock (extract -> transition -> reply)
    3. If the turn completed the interview, publish the listing

    GUARANTEE: model or store failures never fail the request; they show up
    as aiModel="deterministic"/saved=false instead.
    """
    session_id = request.sessionId or generate_session_id()
    msg_preview = request.userMessage[:50] + "..." if len(request.userMessage) > 50 else request.userMessage
    logger.info(
        f"Conversation turn: id={session_id}, useAI={request.useAI}, message='{msg_preview}'"
    )

    async with _session_turn(session_id):
        engine = _get_engine(session_id)
        turn = await engine.process_turn(request.userMessage, use_ai=request.useAI)

        listing_id = None
        if turn.phase_changed and turn.phase == Phase.COMPLETE:
            full_listing = engine.get_full_listing()
            if full_listing is not None:
                try:
                    listing_id = _get_listing_service().publish(full_listing).listingId
                    engine.mark_published(listing_id)
                except (ListingValidationError, SessionStoreError) as e:
                    logger.error(f"METRIC listing_publish_failed sessionId={session_id} error={e}")

        state = engine.get_state()

    debug_payload = None
    if request.debug:
        debug_payload = DebugPayload(
            filled_field=turn.filled_field,
            reply_failure=turn.reply_failure.value if turn.reply_failure else None,
            phase_changed=turn.phase_changed,
        )

    return ConversationResponse(
        sessionId=session_id,
        replies=turn.replies,
        phase=state.phase,
        record=state.record,
        aiCallMade=turn.ai_call_made,
        aiModel=turn.ai_model,
        saved=turn.saved,
        listingId=listing_id,
        debugPayload=debug_payload,
    )


@app.get("/conversation/{session_id}", response_model=ConversationStateResponse)
async def conversation_state(session_id: str) -> ConversationStateResponse:
    return _state_response(_get_existing_engine(session_id))


@app.post("/conversation/{session_id}/amenities", response_model=ConversationStateResponse)
async def conversation_set_amenities(session_id: str, request: AmenitiesRequest) -> ConversationStateResponse:
    """Checklist selection from the UI; bypasses text extraction."""
    async with _session_turn(session_id):
        engine = _get_existing_engine(session_id)
        engine.set_amenities(request.amenities)
        return _state_response(engine)


@app.post("/conversation/{session_id}/standout-features", response_model=ConversationStateResponse)
async def conversation_set_standout_features(
    session_id: str,
    request: StandoutFeaturesRequest,
) -> ConversationStateResponse:
    async with _session_turn(session_id):
        engine = _get_existing_engine(session_id)
        engine.set_standout_features(request.standoutFeatures)
        return _state_response(engine)


@app.post("/conversation/{session_id}/reset", response_model=ConversationStateResponse)
async def conversation_reset_field(session_id: str, request: ResetFieldRequest) -> ConversationStateResponse:
    """Clear one field (edit flow); the interview rewinds to ask for it again."""
    async with _session_turn(session_id):
        engine = _get_existing_engine(session_id)
        try:
            engine.reset_field(request.field)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return _state_response(engine)


@app.get("/conversation/{session_id}/pricing", response_model=PricingResponse)
async def conversation_pricing(session_id: str) -> PricingResponse:
    record = _get_existing_engine(session_id).get_listing()
    return PricingResponse(
        tier=get_location_tier(record.location or "", record.neighborhood or ""),
        suggestion=calculate_suggested_price(record),
        comparables=get_comparables(record),
    )


@app.get("/conversation/{session_id}/listing", response_model=ListingPreviewResponse)
async def conversation_listing(session_id: str) -> ListingPreviewResponse:
    full_listing = _get_existing_engine(session_id).get_full_listing()
    if full_listing is None:
        raise HTTPException(status_code=409, detail="Listing is not ready yet")
    return ListingPreviewResponse(
        listing=full_listing,
        formattedText=generate_formatted_listing(full_listing),
    )


# ============================================================
# Listing Endpoints
# ============================================================

@app.post("/listings", response_model=PublishListingResponse)
async def create_listing(listing: FullListing) -> PublishListingResponse:
    """Publish a listing. 400 when location, squareFeet or monthlyRate is missing."""
    try:
        saved = _get_listing_service().publish(listing)
    except ListingValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SessionStoreError as e:
        logger.error(f"METRIC listing_store_error error={e}")
        raise HTTPException(status_code=503, detail="Failed to save listing")

    return PublishListingResponse(
        success=True,
        listingId=saved.listingId,
        url=listing_url(saved.listingId),
    )


@app.get("/listings", response_model=Union[FullListing, List[FullListing]])
async def get_listings(listing_id: Optional[str] = Query(default=None, alias="id")):
    """One listing by ?id= (404 if unknown), or every listing when no id is given."""
    service = _get_listing_service()
    if listing_id is not None:
        listing = service.get(listing_id)
        if listing is None:
            raise HTTPException(status_code=404, detail="Listing not found")
        return listing
    return service.list_all()


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", "8000"))
    uvicorn.run(app, host="0.0.0.0", port=port)
