"""Data models for the calculator history service.

HistoryEntry is the record kept by the ledger for every invocation. The
remaining models describe the JSON payloads accepted and returned by the
HTTP layer.
"""
from __future__ import annotations

import math
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ---------------------------------------------------------------------------
# Operator: the four supported operations
# ---------------------------------------------------------------------------

class Operator(str, Enum):
    ADD = "add"
    SUBTRACT = "subtract"
    MULTIPLY = "multiply"
    DIVIDE = "divide"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# HistoryEntry: one recorded invocation
# ---------------------------------------------------------------------------

class HistoryEntry(BaseModel):
    """Immutable record of one operation call, successful or not."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(..., ge=0)
    timestamp: datetime = Field(default_factory=_utcnow)
    operator: Operator
    operand_a: float
    operand_b: float
    result: float = 0.0
    error_message: str = ""

    @property
    def ok(self) -> bool:
        return not self.error_message


# ---------------------------------------------------------------------------
# Wire payloads
# ---------------------------------------------------------------------------

class CalcRequest(BaseModel):
    """Body of POST /v1/<operator>. Unknown fields are rejected."""

    model_config = ConfigDict(extra="forbid")

    a: float = Field(..., strict=True)
    b: float = Field(..., strict=True)

    @field_validator("a", "b", mode="before")
    @classmethod
    def overflowing_int_is_infinite(cls, v: Any) -> Any:
        """Integer literals too large for a float become +-inf, not a type error."""
        if isinstance(v, int) and not isinstance(v, bool):
            try:
                return float(v)
            except OverflowError:
                return math.inf if v > 0 else -math.inf
        return v


class CalcResponse(BaseModel):
    result: float


class StatusResponse(BaseModel):
    status: str


class Problem(BaseModel):
    """Minimal error envelope modelled on RFC 7807."""

    type: str = ""
    title: str
    status: int
    detail: str = ""
