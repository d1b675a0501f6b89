#!/usr/bin/env python3
"""
Postprocessing module for the store chat backend.

This module turns execution records and model replies into the text shown in
the chat.
"""

import re
from typing import List

from ..nlu.intent_model import describe_intent
from ..schemas.action_models import ActionStatus, ActionType
from ..schemas.execution_models import ActionExecution


class Postprocessor:
    """Formats replies for the chat surface."""

    def format_response(self, response: str) -> str:
        """
        Clean an LLM reply for display.

        Args:
            response: Raw LLM response

        Returns:
            Formatted response
        """
        # Collapse runs of blank lines but keep list formatting
        response = re.sub(r"\n{3,}", "\n\n", response or "")
        # Remove extra spaces before punctuation
        response = re.sub(r"[ \t]+([,.!?;:])", r"\1", response)
        return response.strip()

    def _preview_lines(self, execution: ActionExecution) -> List[str]:
        lines = []
        preview = execution.preview
        if preview and preview.changes:
            for change in preview.changes[:5]:
                lines.append(f"- {change.product_id} {change.field}: {change.old_value} -> {change.new_value}")
        elif preview and isinstance(preview.data, list):
            for item in preview.data:
                lines.append(f"- {item.get('title')} ({item.get('sku') or 'no SKU'})")
        return lines

    def format_execution(self, execution: ActionExecution) -> str:
        """Chat text for the current state of an execution."""
        status = execution.status
        summary = describe_intent(execution.intent)

        if status == ActionStatus.awaiting_confirmation:
            parts = [f"Please confirm: {summary}."]
            if execution.preview:
                parts.append(execution.preview.message)
            parts.extend(self._preview_lines(execution))
            if execution.safety:
                parts.extend(f"Warning: {w}" for w in execution.safety.warnings)
                parts.extend(f"Tip: {r}" for r in execution.safety.recommendations)
            parts.append("Reply with confirm or cancel.")
            return "\n".join(parts)

        result = execution.result
        if status == ActionStatus.completed and result:
            if execution.intent.type == ActionType.search_products and isinstance(result.data, dict):
                lines = [result.message]
                for item in result.data.get("products", []):
                    lines.append(f"- {item['title']} (SKU {item['sku'] or 'n/a'}): {item['price']:.2f}, {item['inventory']} in stock")
                total = result.data.get("total", 0)
                if total > len(result.data.get("products", [])):
                    lines.append(f"Showing {len(result.data['products'])} of {total}.")
                return "\n".join(lines)
            text = result.message
            if isinstance(result.data, dict) and result.data.get("failures"):
                text += "\nFailed:\n" + "\n".join(
                    f"- {f['title']}: {f['error']}" for f in result.data["failures"]
                )
            return text

        if status == ActionStatus.cancelled:
            return result.message if result else "Action cancelled."

        if status == ActionStatus.failed and result:
            text = result.message
            suggestions = (result.data or {}).get("suggestions") if isinstance(result.data, dict) else None
            if suggestions and "Did you mean" not in text:
                text += f" Did you mean: {', '.join(suggestions)}?"
            return text

        return f"{summary} ({status.value})"
