"""Shared state and call log for the simulated services."""

from collections import deque
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

# Oldest calls are dropped past this many entries
MAX_RECORDED_CALLS = 1000


class ServiceCall(BaseModel):
    """A single call recorded by a simulated service."""

    service: str  # "chunks" | "analysis" | "completion"
    operation: str
    target: str
    status: str  # "success" | "failed"
    error: str | None = None
    timestamp: datetime = Field(default_factory=datetime.now)


class SimulatorState(BaseModel):
    """Documents known to the simulator plus the most recent calls made against it."""

    documents: dict[str, list[str]] = {}
    calls: deque[ServiceCall] = Field(default_factory=lambda: deque(maxlen=MAX_RECORDED_CALLS))

    @field_validator("calls")
    @classmethod
    def _bound_calls(cls, value: deque[ServiceCall]) -> deque[ServiceCall]:
        return deque(value, maxlen=MAX_RECORDED_CALLS)

    def calls_to(self, service: str) -> list[ServiceCall]:
        return [c for c in self.calls if c.service == service]
