# shopsmart/services/intent_router.py

"""Turns an LLM intent ``{action, query, reply}`` into a chat reply."""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any

from shopsmart.config.settings import Settings
from shopsmart.core.exceptions import user_message
from shopsmart.models.product import ScrapedProduct
from shopsmart.services.search_orchestrator import SearchOrchestrator

logger = logging.getLogger("shopsmart.intent")

ACTION_SEARCH = "search_products"
ACTION_ASK = "ask_question"
ACTION_COMPARE = "compare_products"
ACTION_INFO = "provide_info"

DEFAULT_REPLY = "How can I help you?"
GREETING_REPLY = "Hello! What product are you looking for today?"

_FENCE_RE = re.compile(r"```(?:json)?\s*\n?")
_JSON_BLOCK_RE = re.compile(r"\{.*\}", re.S)

_CURRENCY = r"(?:ghs|cedis|gh₵|₵|naira|ngn|₦)"
_FILLER_VERBS = (
    r"(?:i need help finding|find me|i am looking for|looking for|i want"
    r"|i need|can you find|show me|get me|help me find|search for)"
)

# Applied in order; each strips one kind of non-product wording
_QUERY_SCRUBBERS: list[re.Pattern[str]] = [
    re.compile(rf"^{_FILLER_VERBS}\s+(?:a|an|some|the)\s+", re.I),
    re.compile(rf"^{_FILLER_VERBS}\s+", re.I),
    re.compile(
        r"^(?:hello|hi|hey|please|thanks|thank you|okay|ok|sure)[,.\s]+",
        re.I,
    ),
    re.compile(
        r"\b(?:under|below|less than|up to|within|around|about|max"
        rf"|maximum)\s*\d[\d,]*\s*{_CURRENCY}?",
        re.I,
    ),
    re.compile(
        rf"\d[\d,]*\s*{_CURRENCY}\s*(?:budget|or less|or below|max"
        r"|maximum)?",
        re.I,
    ),
    re.compile(
        r"\b(?:budget|price range|price limit|affordable|cheap"
        r"|expensive)\b[:\s]*",
        re.I,
    ),
    re.compile(
        r"\b(?:best|good|great|top|quality|nice|premium|latest|new"
        r"|popular)\s+",
        re.I,
    ),
]

PRODUCT_KEYWORDS = (
    "phone", "laptop", "computer", "tv", "television", "watch", "shoe",
    "cloth", "bag", "headphone", "earphone", "speaker", "tablet",
    "camera", "book", "fridge", "refrigerator", "washing", "microwave",
    "blender", "fan", "air conditioner", "ac", "printer", "monitor",
    "keyboard", "mouse", "charger", "cable", "case", "cover", "screen",
    "battery", "samsung", "iphone", "tecno", "infinix", "redmi",
    "xiaomi", "hp", "dell", "lenovo", "asus", "acer", "apple", "macbook",
    "playstation", "xbox", "nintendo", "gaming", "wireless", "bluetooth",
    "smart", "android", "ios",
)

SHOPPING_KEYWORDS = (
    "buy", "purchase", "need", "want", "looking for", "search", "find",
    "get", "shop", "price", "how much", "cost",
)


@dataclass
class Intent:
    """Structured decision emitted by the language model."""

    action: str = ACTION_ASK
    query: str | None = None
    reply: str = DEFAULT_REPLY

    @property
    def wants_search(self) -> bool:
        return self.action == ACTION_SEARCH and bool(
            (self.query or "").strip()
        )

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> "Intent":
        query = data.get("query")
        return cls(
            action=str(data.get("action") or ACTION_ASK),
            query=str(query) if query else None,
            reply=str(
                data.get("reply") or data.get("message") or DEFAULT_REPLY
            ),
        )


@dataclass
class ChatReply:
    """What the chat layer shows for one user turn."""

    action: str
    reply: str
    products: list[ScrapedProduct] = field(
        default_factory=lambda: list[ScrapedProduct]()
    )
    search_query: str | None = None
    source: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialise for a chat API response."""
        return {
            "action": self.action,
            "reply": self.reply,
            "recommendations": [p.to_dict() for p in self.products],
            "metadata": {
                "productsCount": len(self.products),
                "searchQuery": self.search_query,
                "source": self.source,
            },
        }


def parse_intent(payload: str | dict[str, Any] | None) -> Intent:
    """Read the model output into an :class:`Intent`.

    Accepts an already-decoded mapping or raw text.  Text may be
    wrapped in Markdown code fences or surrounded by prose; when no
    JSON object can be recovered the whole text becomes the reply of an
    ``ask_question`` intent.
    """
    if isinstance(payload, dict):
        return Intent.from_mapping(payload)

    text = (payload or "").strip()
    cleaned = _FENCE_RE.sub("", text).replace("```", "").strip()
    for candidate in (cleaned, _first_json_block(text)):
        if not candidate:
            continue
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(data, dict):
            return Intent.from_mapping(data)

    logger.debug("Model output is not JSON, treating it as a reply")
    return Intent(action=ACTION_ASK, reply=text or DEFAULT_REPLY)


def _first_json_block(text: str) -> str | None:
    match = _JSON_BLOCK_RE.search(text)
    return match.group(0) if match else None


def clean_search_query(query: str | None) -> str | None:
    """Strip filler, budget and marketing words from a search query.

    Returns ``None`` when fewer than two characters remain.
    """
    if not query:
        return None
    cleaned = query
    for pattern in _QUERY_SCRUBBERS:
        cleaned = pattern.sub("", cleaned)
    cleaned = re.sub(r"\s+", " ", cleaned).strip()
    if len(cleaned) < 2:
        return None
    return cleaned


def fallback_intent(message: str) -> Intent:
    """Keyword heuristic used when the language model is unavailable."""
    lower = message.lower()

    found = next((k for k in PRODUCT_KEYWORDS if k in lower), None)
    if found:
        query = clean_search_query(message) or found
        return Intent(
            action=ACTION_SEARCH,
            query=query,
            reply=f'Let me search for "{query}"...',
        )

    shopping = any(k in lower for k in SHOPPING_KEYWORDS)
    if shopping and len(message.split()) >= 2:
        query = clean_search_query(message) or message
        return Intent(
            action=ACTION_SEARCH,
            query=query,
            reply=f'Let me search for "{query}"...',
        )

    return Intent(action=ACTION_ASK, reply=GREETING_REPLY)


class IntentRouter:
    """Runs a product search when, and only when, the intent asks for one."""

    def __init__(
        self,
        orchestrator: SearchOrchestrator,
        marketplace: str = Settings.DEFAULT_MARKETPLACE,
        limit: int = 12,
    ) -> None:
        self.orchestrator = orchestrator
        self.marketplace = marketplace
        self.limit = limit

    async def route(self, intent: Intent) -> ChatReply:
        """Act on ``intent`` and build the reply for the user.

        A failed search never raises; the reply explains the problem
        without exposing internals and ``error`` records the message.
        """
        reply = ChatReply(
            action=intent.action,
            reply=intent.reply,
            search_query=intent.query,
        )
        if not intent.wants_search:
            return reply

        query = (intent.query or "").strip()
        logger.info("Searching %s for '%s'", self.marketplace, query)
        try:
            result = await self.orchestrator.search(
                query, self.marketplace, page=1, limit=self.limit,
            )
        except Exception as exc:
            message = user_message(exc)
            logger.error(
                "Search for '%s' failed: %s", query, exc, exc_info=True,
            )
            reply.reply = (
                f"I had trouble searching right now. {message.rstrip('.')}. "
                "Could you try rephrasing?"
            )
            reply.error = message
            return reply

        reply.products = result.products
        reply.source = result.source
        logger.info(
            "Found %d products for '%s' (%s)",
            len(result.products),
            query,
            result.source,
        )
        return reply
