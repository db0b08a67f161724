"""Intent graph sandbox: static validation of action graphs before registration."""

from .intent_graph import (
    CONNECT_TO_UI_HINT,
    ensure_valid_intent,
    run_intent_in_sandbox,
    validate_intent_graph,
)

__all__ = [
    "CONNECT_TO_UI_HINT",
    "ensure_valid_intent",
    "run_intent_in_sandbox",
    "validate_intent_graph",
]
