"""Shared fakes for the embedding and generation gateways."""

from __future__ import annotations

from collections.abc import Sequence

import pytest

from tribal_knowledge.errors import EmbeddingFailure
from tribal_knowledge.ingestion.models import AudioSegment, Transcript
from tribal_knowledge.retrieval.generation import ContentPart


class KeywordEmbedder:
    """Embeds text as keyword counts over a fixed vocabulary.

    Like the real embedding APIs, it can be told to reject blank input.
    """

    def __init__(
        self, vocabulary: Sequence[str], fail_on: str | None = None, reject_blank: bool = False
    ) -> None:
        self.vocabulary = list(vocabulary)
        self.fail_on = fail_on
        self.reject_blank = reject_blank
        self.calls: list[str] = []

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.reject_blank and not text.strip():
            raise EmbeddingFailure("input must be non-empty")
        if self.fail_on is not None and self.fail_on in text:
            raise EmbeddingFailure("embedding service down")
        lowered = text.lower()
        return [float(lowered.count(word)) for word in self.vocabulary]


class ScriptedGenerator:
    """Returns a fixed response and records what it was sent."""

    def __init__(self, response: str) -> None:
        self.response = response
        self.calls: list[tuple[list[ContentPart], bool]] = []

    async def generate(self, parts: Sequence[ContentPart], json_output: bool = False) -> str:
        self.calls.append((list(parts), json_output))
        return self.response

    @property
    def prompt_text(self) -> str:
        parts, _ = self.calls[-1]
        return "".join(p for p in parts if isinstance(p, str))


def make_transcript(video_name: str, segments: list[tuple[float, float, str]]) -> Transcript:
    return Transcript(
        audio_transcript=[AudioSegment(start=s, end=e, speech=text) for s, e, text in segments],
        videoName=video_name,
    )


@pytest.fixture
def filter_change_transcripts() -> list[Transcript]:
    """Two filter-change videos: one on vacuuming, one on airflow direction."""
    return [
        make_transcript(
            "filter_change_a",
            [
                (113.0, 125.0, "Before pulling the old filter, run the shop vacuum"),
                (125.0, 140.0, "the vacuum keeps dust from falling into the blower"),
            ],
        ),
        make_transcript(
            "filter_change_b",
            [
                (140.0, 148.0, "Now look for the airflow arrow printed on the frame"),
                (148.0, 156.0, "the arrow points toward the furnace"),
            ],
        ),
    ]


@pytest.fixture
def keyword_embedder() -> KeywordEmbedder:
    return KeywordEmbedder(["vacuum", "airflow", "arrow", "filter", "dust"])
