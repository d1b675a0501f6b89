#!/usr/bin/env python3
"""
Prompt builder module for the store chat backend.

This module constructs the system prompts for intent analysis, command
suggestions and plain conversation replies.
"""

import json
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .config import Config


class RecentProduct(BaseModel):
    id: str
    title: str
    sku: str = ""
    price: str = ""


class AnalysisContext(BaseModel):
    """Store context embedded into the intent-analysis prompt."""

    recent_products: List[RecentProduct] = Field(default_factory=list)
    user_history: List[str] = Field(default_factory=list)
    store_info: Optional[Dict[str, str]] = None


INTENT_ANALYSIS_PROMPT = """You are an expert intent analyzer for a store management system. Your job is to analyze user messages and determine if they contain actionable requests for product management.
{context}
SUPPORTED ACTIONS:
1. update_price - Change product prices (by amount or percentage)
2. update_stock - Modify inventory levels
3. create_product - Add new products
4. delete_product - Remove products (requires high confidence)
5. bulk_update - Mass operations on multiple products
6. search_products - Find products by criteria

ANALYSIS REQUIREMENTS:
- Determine if the message contains a clear actionable intent
- Extract specific entities: product names, SKUs, prices, quantities, percentages
- Assess confidence level (0.0 to 1.0)
- Identify if confirmation is needed for risky operations
- Provide reasoning for your decision

RESPONSE FORMAT (JSON):
{{
  "action_detected": true/false,
  "action_type": "update_price|update_stock|create_product|delete_product|bulk_update|search_products|none",
  "confidence": 0.0-1.0,
  "entities": {{
    "product_name": "extracted product name",
    "sku": "extracted SKU",
    "product_id": "extracted ID",
    "price": numeric_value,
    "percentage": numeric_value,
    "quantity": numeric_value,
    "category": "product category",
    "search_query": "search terms"
  }},
  "requires_confirmation": true/false,
  "reasoning": "explain your analysis",
  "suggestions": ["helpful suggestions for user"],
  "fallback_conversation": true/false
}}

EXAMPLES:
User: "update iPhone 14 price to $1,500"
-> action_type: "update_price", confidence: 0.9, entities: {{"product_name": "iPhone 14", "price": 1500}}

User: "increase all Apple products by 10%"
-> action_type: "bulk_update", confidence: 0.8, entities: {{"category": "Apple", "percentage": 10}}

User: "how do I set up a payment gateway?"
-> action_detected: false, fallback_conversation: true

IMPORTANT:
- Be conservative with confidence scores for ambiguous requests
- Always require confirmation for delete operations
- Use a negative percentage for decreases
- Extract numerical values carefully (numbers may use "." or "," as thousands separators)
- Consider context from recent products and commands
- If unsure, recommend conversation mode

Analyze the next user message and respond with valid JSON only."""


SUGGESTIONS_PROMPT = """Based on the user message: "{message}"

Provide 3-5 helpful suggestions for store management commands they might want to try.

Context: {context}

Return suggestions one per line, without numbering or bullets.
Focus on actionable commands related to product management.

Examples:
Update iPhone product stock to 50
Increase all Samsung products price by 15%
Search products with tag sale"""


CONVERSATION_PROMPT = """You are the assistant inside {store_name}'s store admin chat. You help the store owner understand their catalog and how to manage it.

RESPONSE RULES:
- Be concise and practical
- When the owner seems to want a change, show the exact command to type, e.g. "update <product> price to <amount>"
- Supported commands: update price, update stock, create product, delete product, bulk update, search products
- Never claim a change was made; changes only happen through confirmed commands
- Prices are in {currency}

{catalog}"""


class PromptBuilder:
    """Builds system prompts for the language model."""

    def format_context(self, context: Optional[AnalysisContext]) -> str:
        if context is None:
            return ""
        lines = ["", "STORE CONTEXT:"]
        if context.store_info:
            lines.append(f"Store: {context.store_info.get('name')} ({context.store_info.get('domain')})")
        if context.recent_products:
            lines.append("Recent Products: " + ", ".join(f"{p.title} ({p.sku})" for p in context.recent_products))
        if context.user_history:
            lines.append("Recent Commands: " + ", ".join(context.user_history[-3:]))
        return "\n".join(lines) + "\n"

    def build_intent_analysis_prompt(self, context: Optional[AnalysisContext] = None) -> str:
        return INTENT_ANALYSIS_PROMPT.format(context=self.format_context(context))

    def build_suggestions_prompt(self, message: str, context: Optional[AnalysisContext] = None) -> str:
        ctx = json.dumps(context.model_dump()) if context else "None"
        return SUGGESTIONS_PROMPT.format(message=message, context=ctx)

    def build_conversation_prompt(self, products: List[Dict[str, Any]] = None) -> str:
        """
        Build the system prompt for conversation mode.

        Args:
            products: Optional catalog summaries to ground the answer

        Returns:
            Formatted prompt string
        """
        if products:
            catalog = "Catalog snapshot:\n" + "\n".join(
                f"- {p['title']} (SKU {p['sku'] or 'n/a'}): {p['price']:.2f}, {p['inventory']} in stock"
                for p in products
            )
        else:
            catalog = "No catalog snapshot available."
        return CONVERSATION_PROMPT.format(
            store_name=Config.STORE_NAME,
            currency=Config.STORE_CURRENCY,
            catalog=catalog,
        )
