from __future__ import annotations

from typing import Any, Protocol

from treestore.config import EvaluatorName


class ConditionEvaluator(Protocol):
    async def evaluate(self, condition: Any) -> bool: ...


class NeverEvaluator:
    """Treats every condition as false, so switches only ever take their fallback."""

    async def evaluate(self, condition: Any) -> bool:
        return False


class LiteralEvaluator:
    """Evaluates boolean literals.

    Accepts a bare JSON boolean or an `{"type": "OBoolean", "value": <bool>}`
    item. Anything else, including expression objects, is false.
    """

    async def evaluate(self, condition: Any) -> bool:
        if isinstance(condition, bool):
            return condition
        if isinstance(condition, dict) and condition.get("type") == "OBoolean":
            return condition.get("value") is True
        return False


def build_evaluator(name: EvaluatorName) -> ConditionEvaluator:
    if name == "literal":
        return LiteralEvaluator()
    if name == "never":
        return NeverEvaluator()
    raise ValueError(f"Unknown condition evaluator: {name}")
