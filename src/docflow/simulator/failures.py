"""Failure injection configuration for simulated services."""

import random

from pydantic import BaseModel


class FailureRule(BaseModel):
    """Defines how a specific service operation should fail."""

    # "timeout" | "auth_error" | "service_error" | "malformed_response" | ...
    error_type: str
    message: str = "Injected failure"
    probability: float = 1.0  # 1.0 = always fail, 0.5 = 50% chance


class FailureConfig(BaseModel):
    """Maps ``service.operation`` keys to failure rules.

    Keys: ``chunks.<document_id>`` or ``chunks.*``, ``analysis.<analysis_type>``
    or ``analysis.*``, ``completion.complete``.
    """

    rules: dict[str, FailureRule] = {}

    def should_fail(self, service: str, operation: str) -> FailureRule | None:
        """Check if an operation should fail. Returns the rule if it triggers."""
        rule = self.rules.get(f"{service}.{operation}") or self.rules.get(f"{service}.*")
        if rule is None:
            return None
        if random.random() <= rule.probability:
            return rule
        return None
