#!/usr/bin/env python3
"""
Secret masking tests.
"""

import unittest

from storechat.utils.security import mask_secrets


class TestMaskSecrets(unittest.TestCase):
    def test_masks_tokens(self):
        text = "token shpat_abc123DEF and groq gsk_abcdefgh1234 failed"
        masked = mask_secrets(text)
        self.assertNotIn("shpat_abc123DEF", masked)
        self.assertNotIn("gsk_abcdefgh1234", masked)
        self.assertEqual(masked.count("[REDACTED]"), 2)

    def test_masks_query_key(self):
        masked = mask_secrets("GET https://host/v1?key=secret123&alt=json")
        self.assertEqual(masked, "GET https://host/v1?key=[REDACTED]&alt=json")

    def test_masks_long_digit_runs(self):
        self.assertEqual(mask_secrets("card 4111111111111111"), "card [REDACTED]")

    def test_plain_text_untouched(self):
        self.assertEqual(mask_secrets("price updated to 10.00"), "price updated to 10.00")
        self.assertEqual(mask_secrets(""), "")


if __name__ == "__main__":
    unittest.main()
