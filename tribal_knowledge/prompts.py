"""Load the named instruction templates used as fixed prompt prefixes."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

BUNDLED_TEMPLATES_DIR = Path(__file__).parent / "templates"

TEMPLATE_NAMES = ("question", "summarize", "transcribe")


@dataclass(frozen=True)
class PromptTemplates:
    question: str
    summarize: str
    transcribe: str


def read_prompt(name: str, prompts_dir: str | Path | None = None) -> str:
    """Read ``<prompts_dir>/<name>.txt``, defaulting to the bundled templates.

    Raises:
        FileNotFoundError: No template with that name exists.
    """
    directory = Path(prompts_dir) if prompts_dir else BUNDLED_TEMPLATES_DIR
    return (directory / f"{name}.txt").read_text(encoding="utf-8")


def load_templates(prompts_dir: str | Path | None = None) -> PromptTemplates:
    """Load all three templates at once."""
    return PromptTemplates(**{name: read_prompt(name, prompts_dir) for name in TEMPLATE_NAMES})
