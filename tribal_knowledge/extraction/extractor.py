"""Recover a single JSON object from free-form LLM output.

Model responses are usually well-formed, but not always: they may be wrapped
in prose or code fences, cut off mid-object, or contain unescaped quotes.
Extraction runs as a chain of stages, cheap structural fixes first:

    fence-strip -> locate -> balance-scan -> truncation repair -> parse
    -> quote repair -> parse -> validate -> plain-text fallback

Each parse stage returns the object or ``None`` and the next stage is tried
only when the previous one produced nothing.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable, Iterable
from typing import Any

from tribal_knowledge.errors import (
    ExtractionError,
    MissingMarkdownField,
    NoJSONObjectFound,
    UnbalancedJSON,
    UnparsableResponse,
    excerpt,
)
from tribal_knowledge.extraction.json_repair import (
    find_object_end,
    repair_unescaped_quotes,
    truncation_candidates,
)
from tribal_knowledge.extraction.models import ExtractionMethod, ExtractionResult

logger = logging.getLogger(__name__)

DEFAULT_MIN_FALLBACK_LENGTH = 20

# A closing fence must end its line and sit on a line of its own (or right
# after the closing brace), so fences inside JSON string values are skipped
_JSON_FENCE = re.compile(
    r"```json[ \t]*\n?([\s\S]*?)(?:\n[ \t]*|(?<=[}\]]))```[ \t]*$", re.IGNORECASE | re.MULTILINE
)
_ANY_FENCE = re.compile(r"```[a-zA-Z]*[ \t]*\n?([\s\S]*?)(?:\n[ \t]*|(?<=[}\]]))```[ \t]*$", re.MULTILINE)
_MARKDOWN_FENCE = re.compile(r"^```(?:markdown|md)?\s*([\s\S]*?)\s*```$", re.IGNORECASE)

_SOURCES_SECTION = re.compile(r"##\s+Sources?\s*\n+([\s\S]*?)(?=\n##|\Z)", re.IGNORECASE)
_NOTES_SECTION = re.compile(
    r"##\s+(?:Notes?|Additional\s+Observations)\s*\n+([\s\S]*?)(?=\n##|\Z)", re.IGNORECASE
)
_BULLET = re.compile(r"^[-*]\s*")


def strip_code_fence(text: str) -> str:
    """Return the interior of the fenced block holding the object, if any.

    A fence is only stripped when it opens before the first ``{``; a fence
    that appears inside a JSON string value (markdown with a code sample)
    is left alone.
    """
    text = text.strip()
    first_brace = text.find("{")
    for pattern in (_JSON_FENCE, _ANY_FENCE):
        match = pattern.search(text)
        if match and (first_brace == -1 or match.start() < first_brace):
            return match.group(1).strip()
    return text


def _parse(candidate: str) -> dict[str, Any] | None:
    # strict=False lets literal newlines through inside strings
    try:
        parsed = json.loads(candidate, strict=False)
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


def _first_parsed(candidates: Iterable[str]) -> dict[str, Any] | None:
    for candidate in candidates:
        parsed = _parse(candidate)
        if parsed is not None:
            return parsed
    return None


Stage = tuple[ExtractionMethod, Callable[[], dict[str, Any] | None]]


def extract_json_object(text: str) -> ExtractionResult:
    """Recover the first JSON object in *text* without validating its fields.

    Raises:
        NoJSONObjectFound: No ``{`` after fence stripping.
        UnbalancedJSON: The object was cut off and could not be repaired.
        UnparsableResponse: The object was complete but no repair parsed.
    """
    working = strip_code_fence(text)
    start = working.find("{")
    if start == -1:
        raise NoJSONObjectFound("Response contains no JSON object", raw_text=text)

    end = find_object_end(working, start)
    if end is None:
        # A fence inside a value with literal newlines can still cut the
        # fenced interior short; prefer the unfenced object when it balances
        unfenced = text.strip()
        unfenced_start = unfenced.find("{")
        if unfenced_start != -1 and unfenced != working:
            unfenced_end = find_object_end(unfenced, unfenced_start)
            if unfenced_end is not None:
                working, start, end = unfenced, unfenced_start, unfenced_end

    if end is not None:
        body = working[start:end]
        stages: list[Stage] = [
            (ExtractionMethod.CLEAN, lambda: _parse(body)),
            (ExtractionMethod.QUOTE_REPAIRED, lambda: _parse(repair_unescaped_quotes(body))),
        ]
    else:
        fragment = working[start:]
        logger.info("Response JSON is unbalanced (%d chars); attempting truncation repair", len(fragment))
        stages = [
            (
                ExtractionMethod.TRUNCATION_RECOVERED,
                lambda: _first_parsed(truncation_candidates(fragment)),
            ),
            (
                ExtractionMethod.QUOTE_REPAIRED,
                lambda: _first_parsed(truncation_candidates(repair_unescaped_quotes(fragment))),
            ),
        ]

    for method, stage in stages:
        data = stage()
        if data is not None:
            if method is not ExtractionMethod.CLEAN:
                logger.info("Recovered response object via %s", method.value)
            return ExtractionResult(data=data, method=method, raw_text=text)

    if end is None:
        raise UnbalancedJSON("Truncated JSON object could not be repaired", raw_text=text)
    raise UnparsableResponse("JSON object could not be parsed or repaired", raw_text=text)


def split_section(markdown: str, pattern: re.Pattern[str]) -> tuple[str, str | None]:
    """Remove the first section matching *pattern*, returning (rest, section body)."""
    match = pattern.search(markdown)
    if not match:
        return markdown, None
    rest = (markdown[: match.start()] + markdown[match.end() :]).strip()
    return rest, match.group(1).strip()


def _parse_source_lines(section: str) -> list[str]:
    lines = (_BULLET.sub("", line).strip() for line in section.splitlines())
    return [line for line in lines if line]


def plain_text_fallback(text: str, min_length: int = DEFAULT_MIN_FALLBACK_LENGTH) -> ExtractionResult:
    """Use the response prose itself as the markdown answer.

    ``## Sources`` and ``## Notes`` sections, when the model wrote them, are
    moved out of the markdown into ``sources`` and ``notes``.

    Raises:
        UnparsableResponse: The text is shorter than *min_length*.
    """
    prose = text.strip()
    fenced = _MARKDOWN_FENCE.match(prose)
    if fenced:
        prose = fenced.group(1).strip()
    if len(prose) < min_length:
        logger.error("Unusable model response: %s", excerpt(text))
        raise UnparsableResponse(
            f"Response is neither JSON nor usable prose ({len(prose)} chars)", raw_text=text
        )

    data: dict[str, Any] = {}
    markdown, sources = split_section(prose, _SOURCES_SECTION)
    if sources is not None:
        data["sources"] = _parse_source_lines(sources)
    markdown, notes = split_section(markdown, _NOTES_SECTION)
    if notes is not None:
        data["notes"] = notes
    data["markdown"] = markdown or prose
    logger.warning("Returning degraded plain-text answer (%d chars)", len(data["markdown"]))
    return ExtractionResult(data=data, method=ExtractionMethod.PLAIN_TEXT, raw_text=text)


def extract_structured_response(
    text: str, min_fallback_length: int = DEFAULT_MIN_FALLBACK_LENGTH
) -> ExtractionResult:
    """Recover an object with a non-empty ``markdown`` field from *text*.

    Falls back to the raw prose when no JSON can be recovered and the
    response is prose: either it has no ``{`` at all, or its (fence-stripped)
    text does not begin with one. A response that begins with ``{`` but
    cannot be repaired is a failed JSON answer, never returned as markdown.
    An object that parses but lacks ``markdown`` is an error too.

    Raises:
        MissingMarkdownField: Parsed object has no non-empty ``markdown``.
        UnparsableResponse: The response is JSON that could not be
            recovered, or prose too short to use.
    """
    try:
        result = extract_json_object(text)
    except ExtractionError as exc:
        if strip_code_fence(text).startswith("{"):
            logger.error("Unrecoverable JSON response (%s): %s", exc, excerpt(text))
            raise UnparsableResponse(
                f"Response JSON could not be recovered: {exc}", raw_text=text
            ) from exc
        logger.warning("Structured extraction failed (%s); falling back to plain text", exc)
        return plain_text_fallback(text, min_fallback_length)

    markdown = result.data.get("markdown")
    if not isinstance(markdown, str) or not markdown.strip():
        logger.error("Parsed response lacks markdown field; keys=%s", sorted(result.data))
        raise MissingMarkdownField("Parsed response has no 'markdown' field", raw_text=text)
    return result
