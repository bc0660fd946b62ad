"""Generation gateway: send ordered content parts to an LLM and return its text."""

from __future__ import annotations

import base64
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from anthropic import AnthropicError, AsyncAnthropic
from anthropic.types import TextBlock

from tribal_knowledge.errors import GenerationFailure

logger = logging.getLogger(__name__)

JSON_OUTPUT_INSTRUCTION = (
    "Respond with a single JSON object only. Do not wrap it in markdown fences "
    "and do not add any text before or after it."
)


@dataclass(frozen=True)
class InlineData:
    """Binary content (image or video) passed inline to the model."""

    data: bytes
    mime_type: str


ContentPart = str | InlineData


class Generator(Protocol):
    """Anything that can turn content parts into response text."""

    async def generate(self, parts: Sequence[ContentPart], json_output: bool = False) -> str: ...


class GeminiGenerator:
    """Generates with a Gemini model. Accepts inline images and video.

    Args:
        genai: The ``google.generativeai`` module, already configured with
            an API key.
        model_name: Gemini model id.
        timeout_seconds: Per-request timeout. Keep generous; answers over
            full transcripts take tens of seconds.
    """

    def __init__(
        self,
        genai: Any,
        model_name: str = "gemini-2.5-flash",
        timeout_seconds: float = 600.0,
        max_output_tokens: int = 8192,
    ) -> None:
        self.genai = genai
        self.model_name = model_name
        self.timeout_seconds = timeout_seconds
        self.max_output_tokens = max_output_tokens

    async def generate(self, parts: Sequence[ContentPart], json_output: bool = False) -> str:
        generation_config: dict[str, Any] = {"max_output_tokens": self.max_output_tokens}
        if json_output:
            generation_config["response_mime_type"] = "application/json"
        model = self.genai.GenerativeModel(self.model_name, generation_config=generation_config)

        contents: list[Any] = [
            p if isinstance(p, str) else {"mime_type": p.mime_type, "data": p.data} for p in parts
        ]
        try:
            response = await model.generate_content_async(
                contents, request_options={"timeout": self.timeout_seconds}
            )
        except Exception as exc:
            raise GenerationFailure(f"Gemini generation failed: {exc}") from exc

        # .text raises ValueError when the candidate was blocked or has no parts
        try:
            text = response.text
        except ValueError as exc:
            raise GenerationFailure(f"Gemini returned no text: {exc}") from exc
        if not text:
            raise GenerationFailure("Gemini returned an empty response")
        return str(text)


class ClaudeGenerator:
    """Generates with Claude. Text and images only; other media are skipped."""

    def __init__(
        self,
        client: AsyncAnthropic,
        model: str = "claude-sonnet-4-20250514",
        max_tokens: int = 8192,
    ) -> None:
        self.client = client
        self.model = model
        self.max_tokens = max_tokens

    @staticmethod
    def _to_blocks(parts: Sequence[ContentPart]) -> list[dict[str, Any]]:
        blocks: list[dict[str, Any]] = []
        for part in parts:
            if isinstance(part, str):
                if not part:
                    continue
                # Adjacent text parts become one block
                if blocks and blocks[-1]["type"] == "text":
                    blocks[-1]["text"] += part
                else:
                    blocks.append({"type": "text", "text": part})
            elif part.mime_type.startswith("image/"):
                blocks.append(
                    {
                        "type": "image",
                        "source": {
                            "type": "base64",
                            "media_type": part.mime_type,
                            "data": base64.b64encode(part.data).decode("utf-8"),
                        },
                    }
                )
            else:
                logger.warning("Claude does not accept %s inline; attachment skipped", part.mime_type)
        return blocks

    async def generate(self, parts: Sequence[ContentPart], json_output: bool = False) -> str:
        kwargs: dict[str, Any] = {}
        if json_output:
            kwargs["system"] = JSON_OUTPUT_INSTRUCTION
        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                messages=[{"role": "user", "content": self._to_blocks(parts)}],
                **kwargs,
            )
        except AnthropicError as exc:
            raise GenerationFailure(f"Claude generation failed: {exc}") from exc

        # We only send text prompts, so the first block should be a TextBlock
        if not response.content or not isinstance(response.content[0], TextBlock):
            raise GenerationFailure("Claude response did not start with a text block")
        return response.content[0].text
