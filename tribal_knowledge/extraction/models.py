"""Data models for structured response extraction."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class ScanState(StrEnum):
    """Lexical state of the JSON scanner."""

    NORMAL = "normal"
    IN_STRING = "in_string"
    ESCAPED = "escaped"  # inside a string, right after a backslash


class ExtractionMethod(StrEnum):
    """Which stage of the extraction pipeline produced the object."""

    CLEAN = "clean"
    TRUNCATION_RECOVERED = "truncation_recovered"
    QUOTE_REPAIRED = "quote_repaired"
    PLAIN_TEXT = "plain_text"


@dataclass
class ExtractionResult:
    """An object recovered from a model response.

    ``degraded`` is true when the object did not come from JSON at all and
    the raw prose was used as the answer.
    """

    data: dict[str, Any]
    method: ExtractionMethod
    raw_text: str = field(default="", repr=False)

    @property
    def degraded(self) -> bool:
        return self.method is ExtractionMethod.PLAIN_TEXT

    @property
    def markdown(self) -> str:
        return str(self.data.get("markdown", ""))


@dataclass
class ConsolidatedProcedure:
    """An SOP synthesised from every transcript of a task."""

    markdown: str
    notes: str = ""
    degraded: bool = False
