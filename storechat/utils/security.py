"""Security helpers: secret masking for logs and audit metadata."""
import re

_TOKEN_PATTERNS = [
    re.compile(r"\bshp(?:at|ca|pa|ss)_[A-Za-z0-9]+\b"),
    re.compile(r"\b(?:gsk|sk)_[A-Za-z0-9]{8,}\b"),
    re.compile(r"\bAIza[0-9A-Za-z\-_]{20,}\b"),
    re.compile(r"([?&]key=)[^&\s]+"),
]


def mask_secrets(text: str) -> str:
    if not text:
        return text
    masked = str(text)
    for pattern in _TOKEN_PATTERNS:
        if pattern.groups:
            masked = pattern.sub(r"\1[REDACTED]", masked)
        else:
            masked = pattern.sub("[REDACTED]", masked)
    # long digit runs (card or phone numbers)
    masked = re.sub(r"\b\d{13,}\b", "[REDACTED]", masked)
    return masked
