#!/usr/bin/env python3
"""
Configuration management for the store chat backend.
"""

import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _env_list(name: str, default: str) -> list:
    return [v.strip() for v in os.getenv(name, default).split(",") if v.strip()]


class Config:
    """Configuration class for the application."""

    # LLM provider (gemini|groq); the other one is used as fallback when keyed
    LLM_PROVIDER = os.getenv("LLM_PROVIDER", "gemini").lower()
    GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
    GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")
    GROQ_API_KEY = os.getenv("GROQ_API_KEY")
    GROQ_LLM_MODEL = os.getenv("GROQ_LLM_MODEL", "llama-3.1-8b-instant")
    LLM_TIMEOUT_SECONDS = float(os.getenv("LLM_TIMEOUT_SECONDS", 30))
    # Set to false to skip AI escalation entirely (rules only)
    USE_LLM = os.getenv("USE_LLM", "true").lower() in ("1", "true", "yes")

    # Catalog backend (sql|shopify)
    CATALOG_BACKEND = os.getenv("CATALOG_BACKEND", "sql").lower()
    DATABASE_URL = os.getenv(
        "DATABASE_URL",
        f"sqlite:///{os.path.join(os.path.dirname(__file__), '..', 'data', 'catalog.db')}",
    )
    SEED_DEMO_CATALOG = os.getenv("SEED_DEMO_CATALOG", "true").lower() in ("1", "true", "yes")
    SHOPIFY_DOMAIN = os.getenv("SHOPIFY_DOMAIN")
    SHOPIFY_ACCESS_TOKEN = os.getenv("SHOPIFY_ACCESS_TOKEN")
    SHOPIFY_API_VERSION = os.getenv("SHOPIFY_API_VERSION", "2023-10")
    CATALOG_TIMEOUT_SECONDS = float(os.getenv("CATALOG_TIMEOUT_SECONDS", 30))

    # Store info handed to the execution context
    STORE_NAME = os.getenv("STORE_NAME", "Demo Store")
    STORE_DOMAIN = os.getenv("STORE_DOMAIN", SHOPIFY_DOMAIN or "demo-store.local")
    STORE_CURRENCY = os.getenv("STORE_CURRENCY", "USD")
    DEFAULT_VENDOR = os.getenv("DEFAULT_VENDOR", "Store Default")

    # Permissions granted when the caller does not send any
    DEFAULT_PERMISSIONS = _env_list(
        "DEFAULT_PERMISSIONS",
        "products.read,products.write,inventory.write,products.delete,products.bulk_write",
    )

    # Safety limits
    MAX_PRICE_INCREASE_PCT = float(os.getenv("MAX_PRICE_INCREASE_PCT", 500))
    MAX_PRICE_DECREASE_PCT = float(os.getenv("MAX_PRICE_DECREASE_PCT", 90))
    LARGE_PRICE_CHANGE_PCT = float(os.getenv("LARGE_PRICE_CHANGE_PCT", 50))
    DAILY_ACTION_LIMIT = int(os.getenv("DAILY_ACTION_LIMIT", 1000))
    MAX_BULK_OPERATIONS = int(os.getenv("MAX_BULK_OPERATIONS", 100))
    CONFIRMATION_TIMEOUT_SECONDS = float(os.getenv("CONFIRMATION_TIMEOUT_SECONDS", 300))
    CONFIRM_AFFECTED_THRESHOLD = int(os.getenv("CONFIRM_AFFECTED_THRESHOLD", 10))
    EXECUTION_RETENTION_HOURS = float(os.getenv("EXECUTION_RETENTION_HOURS", 24))

    # Intent thresholds
    ACTION_CONFIDENCE_THRESHOLD = 0.7
    ESCALATION_CONFIDENCE_THRESHOLD = 0.8
    CONFIRM_PRICE_CHANGE_PCT = 20

    # Command adapters
    BULK_MAX_WORKERS = int(os.getenv("BULK_MAX_WORKERS", 8))
    SEARCH_RESULT_LIMIT = int(os.getenv("SEARCH_RESULT_LIMIT", 10))
    PREVIEW_SAMPLE_SIZE = 5

    # Sessions (memory|redis)
    SESSION_BACKEND = os.getenv("SESSION_BACKEND", "memory").lower()
    REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
    REDIS_PORT = int(os.getenv("REDIS_PORT", 6379))
    REDIS_DB = int(os.getenv("REDIS_DB", 0))
    MAX_CONVERSATION_TURNS = 14
    MAX_RECENT_COMMANDS = 10

    @classmethod
    def llm_configured(cls) -> bool:
        return cls.USE_LLM and bool(cls.GEMINI_API_KEY or cls.GROQ_API_KEY)

    @classmethod
    def validate(cls):
        """Validate that all required configuration is present."""
        missing = []

        if cls.CATALOG_BACKEND not in ("sql", "shopify"):
            raise ValueError(f"Unknown CATALOG_BACKEND: {cls.CATALOG_BACKEND}")

        if cls.CATALOG_BACKEND == "shopify":
            if not cls.SHOPIFY_DOMAIN:
                missing.append("SHOPIFY_DOMAIN")
            if not cls.SHOPIFY_ACCESS_TOKEN:
                missing.append("SHOPIFY_ACCESS_TOKEN")

        if missing:
            raise ValueError(f"Missing required configuration: {', '.join(missing)}")

        return True

# Validate configuration on import
Config.validate()
