#!/usr/bin/env python3
"""
Preprocessing module for the store chat backend.

Messages keep their case (product names and SKUs are case-sensitive for
display); only whitespace and invisible characters are normalized.
"""

import re
import unicodedata

MAX_MESSAGE_LENGTH = 2000


class Preprocessor:
    """Normalizes raw chat input before intent detection."""

    def normalize_text(self, text: str) -> str:
        """
        Normalize user input text.

        Args:
            text: Input text to normalize

        Returns:
            Normalized text
        """
        if not text:
            return ""
        text = unicodedata.normalize("NFKC", text)
        # zero-width characters pasted from rich text
        text = re.sub("[\u200b-\u200d\ufeff]", "", text)
        # Remove extra whitespace
        text = re.sub(r"\s+", " ", text).strip()
        return text[:MAX_MESSAGE_LENGTH]
