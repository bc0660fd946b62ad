"""Error taxonomy for response extraction and external AI service calls."""

from __future__ import annotations

# Cap on how much of a raw model response is carried into error messages
RAW_EXCERPT_CHARS = 500


def excerpt(text: str, limit: int = RAW_EXCERPT_CHARS) -> str:
    """Return the first *limit* characters of *text*, marking truncation."""
    if len(text) <= limit:
        return text
    return text[:limit] + f"... [{len(text) - limit} more chars]"


class ExtractionError(ValueError):
    """The model response could not be turned into the expected object.

    The raw response is kept on the exception so operators can diagnose
    prompt or model drift.
    """

    def __init__(self, message: str, raw_text: str = "") -> None:
        super().__init__(message)
        self.raw_text = raw_text


class NoJSONObjectFound(ExtractionError):
    """The text contains no ``{`` after fence stripping."""


class UnbalancedJSON(ExtractionError):
    """Brace depth never returned to zero and truncation recovery failed."""


class MissingMarkdownField(ExtractionError):
    """An object was parsed but has no non-empty ``markdown`` string."""


class UnparsableResponse(ExtractionError):
    """Every recovery layer was exhausted."""


class ServiceError(RuntimeError):
    """A backing AI service call failed. Never retried locally."""


class EmbeddingFailure(ServiceError):
    """The embedding call failed or returned no vector."""


class GenerationFailure(ServiceError):
    """The generation call failed or returned no text."""
