# tests/test_intent_router.py

"""Tests for intent parsing, query cleaning and search routing."""

import unittest
from unittest.mock import AsyncMock, MagicMock

from shopsmart.core.exceptions import RateLimitedError
from shopsmart.models.product import ScrapedProduct
from shopsmart.services.intent_router import (
    ACTION_ASK,
    ACTION_SEARCH,
    Intent,
    IntentRouter,
    clean_search_query,
    fallback_intent,
    parse_intent,
)
from shopsmart.services.search_orchestrator import SearchResult


class TestParseIntent(unittest.TestCase):
    """Model output decoding."""

    def test_plain_json(self) -> None:
        intent = parse_intent(
            '{"action": "search_products", "query": "laptop", '
            '"reply": "Searching laptops"}'
        )
        self.assertEqual(intent.action, ACTION_SEARCH)
        self.assertEqual(intent.query, "laptop")
        self.assertEqual(intent.reply, "Searching laptops")

    def test_fenced_json(self) -> None:
        text = (
            "```json\n"
            '{"action": "search_products", "query": "phone", "reply": "ok"}'
            "\n```"
        )
        self.assertEqual(parse_intent(text).query, "phone")

    def test_json_inside_prose(self) -> None:
        text = (
            'Sure! {"action": "ask_question", "query": null, '
            '"reply": "What budget?"} Hope that helps.'
        )
        intent = parse_intent(text)
        self.assertEqual(intent.action, ACTION_ASK)
        self.assertIsNone(intent.query)
        self.assertEqual(intent.reply, "What budget?")

    def test_plain_text_becomes_reply(self) -> None:
        intent = parse_intent("I can help you with that.")
        self.assertEqual(intent.action, ACTION_ASK)
        self.assertEqual(intent.reply, "I can help you with that.")

    def test_mapping_with_defaults(self) -> None:
        intent = parse_intent({"message": "Hi there"})
        self.assertEqual(intent.action, ACTION_ASK)
        self.assertEqual(intent.reply, "Hi there")

    def test_empty_output(self) -> None:
        self.assertEqual(parse_intent("").reply, "How can I help you?")

    def test_wants_search(self) -> None:
        self.assertTrue(Intent(ACTION_SEARCH, "tv").wants_search)
        self.assertFalse(Intent(ACTION_SEARCH, "  ").wants_search)
        self.assertFalse(Intent(ACTION_SEARCH, None).wants_search)
        self.assertFalse(Intent(ACTION_ASK, "tv").wants_search)


class TestCleanSearchQuery(unittest.TestCase):
    """Filler, budget and marketing words are stripped."""

    def test_filler_and_budget(self) -> None:
        self.assertEqual(
            clean_search_query("I need a laptop under 5000 cedis"), "laptop",
        )

    def test_marketing_adjectives(self) -> None:
        self.assertEqual(
            clean_search_query("find me the best Samsung phone"),
            "Samsung phone",
        )

    def test_amount_with_currency(self) -> None:
        self.assertEqual(
            clean_search_query("blender 300 GHS budget"), "blender",
        )

    def test_greeting(self) -> None:
        self.assertEqual(
            clean_search_query("hello, wireless earbuds"),
            "wireless earbuds",
        )

    def test_too_short(self) -> None:
        self.assertIsNone(clean_search_query("cheap"))
        self.assertIsNone(clean_search_query("x"))
        self.assertIsNone(clean_search_query(None))


class TestFallbackIntent(unittest.TestCase):
    """Keyword heuristic used without a language model."""

    def test_product_keyword_searches(self) -> None:
        intent = fallback_intent("looking for an iphone under 3000 cedis")
        self.assertEqual(intent.action, ACTION_SEARCH)
        self.assertEqual(intent.query, "iphone")
        self.assertEqual(intent.reply, 'Let me search for "iphone"...')

    def test_shopping_verb_searches(self) -> None:
        intent = fallback_intent("please find something nice")
        self.assertEqual(intent.action, ACTION_SEARCH)
        self.assertTrue(intent.query)

    def test_greeting_asks(self) -> None:
        intent = fallback_intent("hello")
        self.assertEqual(intent.action, ACTION_ASK)
        self.assertIsNone(intent.query)


def _orchestrator() -> MagicMock:
    orch = MagicMock()
    orch.search = AsyncMock(
        return_value=SearchResult(
            query="laptop",
            marketplace="jumia",
            products=[
                ScrapedProduct(
                    marketplace="jumia", product_id="1", title="HP Laptop",
                )
            ],
        )
    )
    return orch


class TestIntentRouter(unittest.IsolatedAsyncioTestCase):
    """Routing decisions and non-leaking failure replies."""

    async def test_search_intent_runs_search(self) -> None:
        orch = _orchestrator()
        router = IntentRouter(orch)
        reply = await router.route(
            Intent(ACTION_SEARCH, "laptop", "Searching laptops")
        )
        orch.search.assert_awaited_once_with(
            "laptop", "jumia", page=1, limit=12,
        )
        self.assertEqual(len(reply.products), 1)
        self.assertEqual(reply.reply, "Searching laptops")
        self.assertEqual(reply.source, "live")
        self.assertIsNone(reply.error)

    async def test_question_intent_skips_search(self) -> None:
        orch = _orchestrator()
        reply = await IntentRouter(orch).route(
            Intent(ACTION_ASK, None, "What is your budget?")
        )
        orch.search.assert_not_called()
        self.assertEqual(reply.products, [])
        self.assertEqual(reply.reply, "What is your budget?")

    async def test_search_without_query_skips_search(self) -> None:
        orch = _orchestrator()
        await IntentRouter(orch).route(Intent(ACTION_SEARCH, "", "Sure"))
        orch.search.assert_not_called()

    async def test_rate_limit_reply(self) -> None:
        orch = _orchestrator()
        orch.search.side_effect = RateLimitedError("jumia")
        reply = await IntentRouter(orch).route(
            Intent(ACTION_SEARCH, "laptop", "Searching")
        )
        self.assertEqual(
            reply.reply,
            "I had trouble searching right now. jumia: rate limit "
            "exceeded, try again later. Could you try rephrasing?",
        )
        self.assertEqual(
            reply.error, "jumia: rate limit exceeded, try again later",
        )
        self.assertEqual(reply.products, [])

    async def test_internal_error_not_leaked(self) -> None:
        orch = _orchestrator()
        orch.search.side_effect = RuntimeError("sqlite path /srv/secret")
        reply = await IntentRouter(orch).route(
            Intent(ACTION_SEARCH, "laptop", "Searching")
        )
        self.assertNotIn("/srv/secret", reply.reply)
        self.assertTrue(reply.reply.startswith("I had trouble searching"))

    async def test_to_dict(self) -> None:
        reply = await IntentRouter(_orchestrator()).route(
            Intent(ACTION_SEARCH, "laptop", "ok")
        )
        body = reply.to_dict()
        self.assertEqual(body["metadata"]["productsCount"], 1)
        self.assertEqual(body["metadata"]["searchQuery"], "laptop")
        self.assertEqual(body["recommendations"][0]["productId"], "1")


if __name__ == "__main__":
    unittest.main()
