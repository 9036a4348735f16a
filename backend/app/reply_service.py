"""
Reply service - conversational prose from an OpenAI-compatible chat model.

The interview flow never depends on this service: extraction and phase
transitions are deterministic (engine/). The model only writes the friendly
sentence shown to the host.

RESILIENCE DESIGN:
- NEVER raises: every failure comes back as a ReplyResult with a typed reason
- Bounded by a timeout; a timeout is just another failure
- No API key (or REPLY_ENABLED=false) means the service is disabled and the
  engine uses the rule-based replies
"""

import asyncio
import json
import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from openai import AsyncOpenAI

from interview.models import ListingRecord, Message
from interview.specs import Phase

logger = logging.getLogger(__name__)

HISTORY_WINDOW = 8
DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_TIMEOUT_SECONDS = 8.0

REPLY_SYSTEM_PROMPT = """You are a friendly, helpful assistant helping office space hosts create listings.
You're conducting a conversational interview to gather information about their space.

Current phase: {phase}
Information collected so far:
{record}

Guidelines:
- Be friendly, conversational, and encouraging
- Ask ONE question at a time
- Acknowledge what the user said before asking the next question
- If they provide multiple details, acknowledge each one
- Keep responses concise (1-2 sentences max)
- Use natural language, not robotic
- Don't repeat information you already have

Phase-specific instructions:
- phase1_basics: Get location, neighborhood, square footage, space type, desk capacity, in that order.
- phase2_config: Get private offices, meeting rooms, amenities, standout features.
- phase3_terms: Get availability date, minimum lease term, restrictions.
- phase4_pricing: Present the suggested price range, then ask what monthly rate they want.
- phase5_preview: Tell them the listing preview is ready and ask if they want to save or edit.
- complete: Thank them; the listing is saved.

Respond naturally as if you're having a friendly conversation. Keep it short."""


class ReplyFailure(str, Enum):
    """Why no model reply is available."""
    DISABLED = "DISABLED"
    TIMEOUT = "TIMEOUT"
    API_ERROR = "API_ERROR"
    EMPTY_RESPONSE = "EMPTY_RESPONSE"


@dataclass
class ReplyResult:
    """Either a reply or the reason there is none."""
    reply: Optional[str] = None
    failure: Optional[ReplyFailure] = None
    model: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.reply is not None and self.failure is None

    @classmethod
    def failed(cls, failure: ReplyFailure, model: Optional[str] = None) -> "ReplyResult":
        return cls(reply=None, failure=failure, model=model)


def _env_flag(name: str, default: str = "true") -> bool:
    return os.getenv(name, default).lower() == "true"


class ReplyService:
    """Service for calling the text-generation model.

    GUARANTEE: generate_reply() NEVER raises. All failures are returned as
    ReplyResult.failure so the caller can fall back deterministically.
    """

    def __init__(
        self,
        client: Any = None,
        model: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self.model = model or os.getenv("OPENAI_MODEL", DEFAULT_MODEL)
        self.timeout_seconds = timeout_seconds or float(
            os.getenv("REPLY_TIMEOUT_SECONDS", str(DEFAULT_TIMEOUT_SECONDS))
        )

        if client is not None:
            self.client = client
        elif not _env_flag("REPLY_ENABLED"):
            logger.warning("Reply service disabled by REPLY_ENABLED=false - using rule-based replies")
            self.client = None
        elif not os.getenv("OPENAI_API_KEY"):
            logger.warning("Reply service NOT configured - OPENAI_API_KEY missing, using rule-based replies")
            self.client = None
        else:
            self.client = AsyncOpenAI(
                api_key=os.getenv("OPENAI_API_KEY"),
                base_url=os.getenv("OPENAI_BASE_URL") or None,
            )
            logger.info(f"Reply service configured with model: {self.model}")

    @property
    def is_enabled(self) -> bool:
        return self.client is not None

    def build_messages(
        self,
        utterance: str,
        phase: Phase,
        record: ListingRecord,
        history: Sequence[Message],
    ) -> List[Dict[str, str]]:
        """
        Build the chat messages for the model.

        History is trimmed to the last HISTORY_WINDOW turns; the utterance is
        appended unless it is already the last user turn.
        """
        record_json = json.dumps(record.model_dump(mode="json", exclude_none=True), indent=2)
        messages: List[Dict[str, str]] = [
            {
                "role": "system",
                "content": REPLY_SYSTEM_PROMPT.format(phase=Phase(phase).value, record=record_json),
            },
        ]

        recent = list(history)[-HISTORY_WINDOW:]
        for msg in recent:
            messages.append({"role": msg.role.value, "content": msg.content})

        last = recent[-1] if recent else None
        if utterance and (last is None or last.role.value != "user" or last.content != utterance):
            messages.append({"role": "user", "content": utterance})

        return messages

    async def generate_reply(
        self,
        utterance: str,
        phase: Phase,
        record: ListingRecord,
        history: Sequence[Message],
        session_id: str = "unknown",
    ) -> ReplyResult:
        """
        Ask the model for one short reply.

        Returns:
            ReplyResult with the reply, or a failure reason
        """
        if self.client is None:
            return ReplyResult.failed(ReplyFailure.DISABLED)

        messages = self.build_messages(utterance, phase, record, history)
        logger.info(f"Calling model ({self.model}) with {len(messages)} messages sessionId={session_id}")

        try:
            response = await asyncio.wait_for(
                self.client.chat.completions.create(
                    model=self.model,
                    messages=messages,
                    temperature=0.7,
                    max_tokens=250,
                ),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"METRIC reply_timeout timeout={self.timeout_seconds}s sessionId={session_id}"
            )
            return ReplyResult.failed(ReplyFailure.TIMEOUT, self.model)
        except Exception as e:
            logger.error(
                f"METRIC reply_api_error error={type(e).__name__} sessionId={session_id}"
            )
            return ReplyResult.failed(ReplyFailure.API_ERROR, self.model)

        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError, TypeError):
            content = None

        if not isinstance(content, str) or not content.strip():
            logger.warning(f"METRIC reply_empty_response sessionId={session_id}")
            return ReplyResult.failed(ReplyFailure.EMPTY_RESPONSE, self.model)

        logger.debug(f"Model reply: {content[:200]}")
        return ReplyResult(reply=content.strip(), model=self.model)


# Singleton instance (created on first use)
_reply_service: Optional[ReplyService] = None


def get_reply_service() -> ReplyService:
    """Get or create the ReplyService singleton."""
    global _reply_service
    if _reply_service is None:
        _reply_service = ReplyService()
    return _reply_service
