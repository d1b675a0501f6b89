#!/usr/bin/env python3
"""
Generation client tests with mocked HTTP calls.
"""

import unittest
from unittest.mock import Mock, patch

import requests

from storechat.app.config import Config
from storechat.app.generate import GROQ_URL, GenerationClient
from storechat.utils.errors import ChatServiceError

GEMINI_KEY = "AIzaSyTESTKEYTESTKEYTESTKEY123"


def http_response(body):
    response = Mock()
    response.json.return_value = body
    response.raise_for_status.return_value = None
    return response


GEMINI_BODY = {"candidates": [{"content": {"parts": [{"text": " gemini says hi "}]}}]}
GROQ_BODY = {"choices": [{"message": {"content": "groq says hi"}}]}


class TestGenerationClient(unittest.TestCase):
    def setUp(self):
        patcher = patch.multiple(Config, GEMINI_API_KEY=GEMINI_KEY, GROQ_API_KEY="gsk_testtesttest", LLM_PROVIDER="gemini")
        patcher.start()
        self.addCleanup(patcher.stop)

    @patch("storechat.app.generate.requests.post")
    def test_gemini_first(self, post):
        post.return_value = http_response(GEMINI_BODY)
        answer = GenerationClient().complete("system", [
            {"role": "user", "content": "hello"},
            {"role": "assistant", "content": "hi"},
        ])
        self.assertEqual(answer, "gemini says hi")
        payload = post.call_args.kwargs["json"]
        self.assertEqual(payload["systemInstruction"]["parts"][0]["text"], "system")
        self.assertEqual([c["role"] for c in payload["contents"]], ["user", "model"])

    @patch("storechat.app.generate.requests.post")
    def test_falls_back_to_groq(self, post):
        post.side_effect = [requests.exceptions.ConnectionError("gemini down"), http_response(GROQ_BODY)]
        answer = GenerationClient().complete("system", [{"role": "user", "content": "hello"}], temperature=0.5)
        self.assertEqual(answer, "groq says hi")
        args, kwargs = post.call_args
        self.assertEqual(args[0], GROQ_URL)
        self.assertEqual(kwargs["json"]["messages"][0], {"role": "system", "content": "system"})
        self.assertEqual(kwargs["json"]["temperature"], 0.5)

    @patch("storechat.app.generate.requests.post")
    def test_all_providers_fail(self, post):
        post.side_effect = requests.exceptions.Timeout(f"timed out ?key={GEMINI_KEY}")
        with self.assertRaises(ChatServiceError) as ctx:
            GenerationClient().complete("system", [{"role": "user", "content": "hello"}])
        self.assertNotIn(GEMINI_KEY, str(ctx.exception))

    @patch("storechat.app.generate.requests.post")
    def test_malformed_body(self, post):
        post.return_value = http_response({"unexpected": True})
        with self.assertRaises(ChatServiceError):
            GenerationClient(provider="groq").complete("system", [])

    def test_requires_a_key(self):
        with patch.multiple(Config, GEMINI_API_KEY=None, GROQ_API_KEY=None):
            with self.assertRaises(ValueError):
                GenerationClient()


if __name__ == "__main__":
    unittest.main()
