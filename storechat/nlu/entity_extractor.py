"""Rule-based entity extractor for catalog commands."""
import re
from typing import Any, Dict, Optional

_CURRENCY = r"(?:\$|usd|eur|gbp|rp\.?|idr)?"
_NUMBER = r"(-?\d[\d.,]*)"

PRICE_PATTERNS = [
    re.compile(r"\b(?:price|cost)\s*(?:to|at|is|of|=|:)?\s*" + _CURRENCY + r"\s*" + _NUMBER, re.I),
    re.compile(r"\bprice\b.*?\b(?:to|at)\s+" + _CURRENCY + r"\s*" + _NUMBER, re.I),
    re.compile(r"(?:\$|\busd\s*|\brp\.?\s*)" + _NUMBER, re.I),
]
PERCENTAGE = re.compile(r"(-?\d+(?:[.,]\d+)?)\s*%")
DECREASE_WORDS = re.compile(r"\b(?:decrease|reduce|lower|drop|cut|discount|markdown)\b", re.I)
QUANTITY_PATTERNS = [
    re.compile(r"\b(?:stock|inventory|quantity|qty)\s*(?:level)?\s*(?:to|at|is|of|=|:)?\s*(\d+)\b", re.I),
    re.compile(r"\b(?:stock|inventory|quantity|qty)\b.*?\bto\s+(\d+)\b", re.I),
    re.compile(r"\b(\d+)\s+(?:units|pcs|pieces)\b", re.I),
]
SKU = re.compile(r"\bsku\b\s*[:#]?\s*([a-z0-9][a-z0-9\-_]*)", re.I)
PRODUCT_ID = re.compile(r"\bproduct\s*id\s*[:#]?\s*(\d+)", re.I)

_NAME_STOP = r"(?=\s+(?:price|cost|stock|inventory|quantity|qty|to|at|by|with|for|sku)\b|\s*[,.!?]?\s*$)"
PRODUCT_NAME_PATTERNS = [
    re.compile(r"\b(?:product|item)\s+(?!id\b|price\b|stock\b|sku\b|named\b)(.+?)" + _NAME_STOP, re.I),
    re.compile(r"\b(?:product|item)\s+named\s+(.+?)" + _NAME_STOP, re.I),
    re.compile(r"\b(?:price|stock|inventory|quantity)\s+(?:of|for)\s+(.+?)(?=\s+(?:to|at|by|is)\b|\s*[,.!?]?\s*$)", re.I),
]
LEADING_VERB = re.compile(
    r"^(?:please\s+)?(?:update|change|set|modify|adjust|increase|decrease|raise|lower|reduce|make)\s+(?:the\s+)?",
    re.I,
)
NAME_BEFORE_FIELD = re.compile(r"^(.+?)\s+(?:price|stock|inventory|quantity)\b", re.I)

CATEGORY_PATTERNS = [
    re.compile(r"\ball\s+(?:the\s+|my\s+|of\s+the\s+)?(.+?)\s+products?\b", re.I),
    re.compile(r"\bcategory\s*[:=]?\s*([\w\-]+(?:\s+[\w\-]+)*?)(?=\s+(?:by|to|with|at|from)\b|\s*[,.!?]?\s*$)", re.I),
    re.compile(r"\b([\w\-]+)\s+category\b", re.I),
]
_NOT_CATEGORY = {"the", "a", "an", "my", "this", "that", "in", "of"}


def parse_amount(raw: Any) -> Optional[float]:
    """Parse a possibly locale-formatted number.

    ``10.00`` -> 10.0, ``1,500`` -> 1500, ``1.500.000`` -> 1500000,
    ``10,5`` -> 10.5, ``$1,500.00`` -> 1500.0. Returns None when nothing
    numeric is left.
    """
    if raw is None:
        return None
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return float(raw)
    text = re.sub(r"[^\d.,\-]", "", str(raw)).rstrip(".,")
    if not text or not re.search(r"\d", text):
        return None
    negative = text.startswith("-")
    text = text.lstrip("-")

    if "," in text and "." in text:
        # whichever comes last is the decimal separator
        decimal = "," if text.rfind(",") > text.rfind(".") else "."
        thousands = "." if decimal == "," else ","
        text = text.replace(thousands, "").replace(decimal, ".")
    elif "," in text or "." in text:
        sep = "," if "," in text else "."
        groups = text.split(sep)
        grouped = len(groups) > 2 or (
            len(groups[-1]) == 3 and 1 <= len(groups[0]) <= 3 and groups[0] != "0"
        )
        text = "".join(groups) if grouped else text.replace(sep, ".")

    try:
        value = float(text)
    except ValueError:
        return None
    return -value if negative else value


def _clean_name(name: str) -> Optional[str]:
    name = re.sub(r"^(?:the|a|an)\s+", "", name.strip(" \"'"), flags=re.I)
    name = name.strip(" \"'.,!?")
    return name or None


class EntityExtractor:
    def extract(self, text: str) -> Dict[str, Any]:
        t = text.strip()
        entities: Dict[str, Any] = {}

        # percentage first so "by 10%" is not read as a price
        m = PERCENTAGE.search(t)
        if m:
            pct = parse_amount(m.group(1))
            if pct is not None:
                if pct > 0 and DECREASE_WORDS.search(t):
                    pct = -pct
                entities["percentage"] = pct

        for pattern in PRICE_PATTERNS:
            m = pattern.search(t)
            if not m:
                continue
            # skip "price by 10%"
            if "percentage" in entities and t[m.end(1):m.end(1) + 2].lstrip().startswith("%"):
                continue
            price = parse_amount(m.group(1))
            if price is not None:
                entities["price"] = price
                break

        for pattern in QUANTITY_PATTERNS:
            m = pattern.search(t)
            if m:
                entities["quantity"] = int(m.group(1))
                break

        m = PRODUCT_ID.search(t)
        if m:
            entities["product_id"] = m.group(1)

        m = SKU.search(t)
        if m:
            entities["sku"] = m.group(1)

        name = self._product_name(t)
        if name:
            entities["product_name"] = name

        category = self._category(t)
        if category:
            entities["category"] = category

        # For search queries, use the entire message if no specific entities found
        if not entities:
            entities["search_query"] = t
        return entities

    def _product_name(self, t: str) -> Optional[str]:
        for pattern in PRODUCT_NAME_PATTERNS:
            m = pattern.search(t)
            if m:
                name = _clean_name(m.group(1))
                if name and not name.lower().startswith("sku"):
                    return name
        stripped = LEADING_VERB.sub("", t)
        m = NAME_BEFORE_FIELD.match(stripped)
        if m:
            name = _clean_name(m.group(1))
            if name and not re.match(r"^(?:all|sku|product|item)\b", name, re.I):
                return name
        return None

    def _category(self, t: str) -> Optional[str]:
        for pattern in CATEGORY_PATTERNS:
            m = pattern.search(t)
            if m:
                category = m.group(1).strip()
                if category and category.lower() not in _NOT_CATEGORY:
                    return category
        return None

