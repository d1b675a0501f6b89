#!/usr/bin/env python3
"""
Controller orchestration tests: message routing, execution surface, health.
"""

import json
import unittest

from fakes import FakeCatalog, FakeChatClient, make_item
from storechat.agents.catalog_actions import CatalogActionsService
from storechat.app.controller import HELP_TEXT, Controller
from storechat.app.executor import ActionExecutor
from storechat.app.session import SessionManager
from storechat.nlu.llm_router import DEFAULT_SUGGESTIONS
from storechat.schemas.action_models import ActionStatus, ActionType, ChatMode
from storechat.schemas.io_models import ChatRequest
from storechat.utils.errors import ChatServiceError


def chat(message, session_id="s1", permissions=None):
    return ChatRequest(session_id=session_id, user_id="owner", message=message, user_permissions=permissions)


class ControllerTestCase(unittest.TestCase):
    def setUp(self):
        self.catalog = FakeCatalog([
            make_item(1, "Infinix Note 30", price=189.0, inventory=40, sku="INF-NOTE30", vendor="Infinix"),
            make_item(2, "Blue Shirt", price=20.0, inventory=4, sku="SH-BLUE", vendor="Acme"),
            make_item(3, "Red Shirt", price=25.0, inventory=2, sku="SH-RED", vendor="Acme"),
        ])
        self.executor = ActionExecutor(CatalogActionsService(self.catalog))

    def tearDown(self):
        for execution in self.executor.repository.list_all():
            execution.cancel_timer()

    def make_controller(self, chat_client=None):
        return Controller(
            self.catalog,
            self.executor,
            chat_client=chat_client,
            session_manager=SessionManager(backend="memory"),
        )


class TestRulesOnly(ControllerTestCase):
    def setUp(self):
        super().setUp()
        self.controller = self.make_controller()

    def test_price_update_end_to_end(self):
        response = self.controller.handle_message(chat("infinix note 30 price to $10.00"))
        self.assertEqual(response.mode, ChatMode.action)
        self.assertEqual(response.intent.type, ActionType.update_price)
        self.assertEqual(response.execution.status, ActionStatus.completed)
        self.assertEqual(self.catalog.items["1"].price, 10.0)
        self.assertIn("$10.00", response.response)
        self.assertEqual(
            self.controller.session_manager.get_recent_commands("s1"), ["infinix note 30 price to $10.00"]
        )

    def test_question_without_llm(self):
        response = self.controller.handle_message(chat("how do I set up a payment gateway?"))
        self.assertEqual(response.mode, ChatMode.conversation)
        self.assertEqual(response.response, HELP_TEXT)
        self.assertEqual(response.suggestions, [])

    def test_fallback_offers_suggestions(self):
        response = self.controller.handle_message(chat("search for wireless headphones"))
        self.assertEqual(response.mode, ChatMode.conversation)
        self.assertEqual(response.suggestions, DEFAULT_SUGGESTIONS)

    def test_empty_message(self):
        response = self.controller.handle_message(chat("  \u200b "))
        self.assertEqual(response.response, HELP_TEXT)
        self.assertIsNone(self.controller.session_manager.get_session("s1"))

    def test_delete_confirmation_flow(self):
        response = self.controller.handle_message(chat("delete product sku SH-RED"))
        execution = response.execution
        self.assertEqual(execution.status, ActionStatus.awaiting_confirmation)
        self.assertIn("Please confirm", response.response)
        self.assertIn("Warning: Product deletion is permanent", response.response)

        confirmed = self.controller.handle_confirmation(execution.id, True)
        self.assertEqual(confirmed.execution.status, ActionStatus.completed)
        self.assertIn("deleted", confirmed.response)
        self.assertNotIn("3", self.catalog.items)

    def test_caller_permissions_are_enforced(self):
        response = self.controller.handle_message(chat("infinix note 30 price to $10.00", permissions=["products.read"]))
        self.assertEqual(response.execution.status, ActionStatus.failed)
        self.assertIn("Missing permission: products.write", response.response)
        self.assertEqual(self.catalog.items["1"].price, 189.0)

    def test_not_found_lists_suggestions(self):
        response = self.controller.handle_message(chat("infinix note 31 price to $10.00"))
        self.assertEqual(response.execution.status, ActionStatus.failed)
        self.assertIn("Infinix Note 30", response.response)

    def test_rollback_and_stats(self):
        response = self.controller.handle_message(chat("infinix note 30 price to $10.00"))
        rolled = self.controller.rollback_execution(response.execution.id)
        self.assertEqual(self.catalog.items["1"].price, 189.0)
        self.assertIn("Restored", rolled.response)
        self.assertEqual(self.controller.get_stats()["total"], 1)

    def test_cancel(self):
        response = self.controller.handle_message(chat("delete product sku SH-RED"))
        self.assertTrue(self.controller.cancel_execution(response.execution.id))
        self.assertEqual(self.controller.get_execution(response.execution.id).status, ActionStatus.cancelled)

    def test_health(self):
        health = self.controller.health()
        self.assertEqual(health.status, "healthy")
        self.assertEqual(health.catalog_backend, "fake")
        self.assertFalse(health.llm_enabled)
        self.assertEqual(health.details, {"products": 3})


class TestWithLanguageModel(ControllerTestCase):
    def test_conversation_reply_comes_from_model(self):
        client = FakeChatClient("Go to Settings , then Payments.\n\n\n\nDone.")
        controller = self.make_controller(client)
        response = controller.handle_message(chat("how do I set up a payment gateway?"))
        self.assertEqual(response.mode, ChatMode.conversation)
        self.assertEqual(response.response, "Go to Settings, then Payments.\n\nDone.")
        self.assertEqual(client.calls[0]["messages"][-1], {"role": "user", "content": "how do I set up a payment gateway?"})

    def test_model_failure_falls_back_to_help(self):
        controller = self.make_controller(FakeChatClient(ChatServiceError("quota")))
        response = controller.handle_message(chat("what can you do?"))
        self.assertEqual(response.response, HELP_TEXT)

    def test_escalation_turns_fallback_into_action(self):
        analysis = json.dumps({
            "action_detected": True,
            "action_type": "search_products",
            "confidence": 0.9,
            "entities": {"search_query": "shirt"},
            "reasoning": "user wants to find shirts",
        })
        controller = self.make_controller(FakeChatClient(analysis))
        response = controller.handle_message(chat("search for shirts please"))
        self.assertEqual(response.mode, ChatMode.action)
        self.assertEqual(response.execution.status, ActionStatus.completed)
        self.assertEqual(response.execution.result.data["total"], 2)
        self.assertIn("Blue Shirt", response.response)

    def test_fallback_suggestions_from_model(self):
        client = FakeChatClient(
            '{"action_detected": false, "confidence": 0.2, "reasoning": "unclear"}',
            "I can help with your catalog.",
            "- search for shirts\n- update Blue Shirt price to 22",
        )
        controller = self.make_controller(client)
        response = controller.handle_message(chat("search for something nice"))
        self.assertEqual(response.mode, ChatMode.conversation)
        self.assertEqual(response.response, "I can help with your catalog.")
        self.assertEqual(response.suggestions, ["search for shirts", "update Blue Shirt price to 22"])


if __name__ == "__main__":
    unittest.main()
