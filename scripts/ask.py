"""Ask a question (or generate an SOP) over local transcript files.

Useful for checking prompt and model changes against real transcripts without
going through the API or Supabase.

    python scripts/ask.py tasks/filter_change/transcribe/*.txt -q "Why use a vacuum?"
    python scripts/ask.py tasks/filter_change/transcribe/*.txt --summarize
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from tribal_knowledge.api.dependencies import (
    get_embedder,
    get_generator,
    get_pipeline_config,
    get_templates,
)
from tribal_knowledge.extraction.consolidation import ConsolidationAssembler
from tribal_knowledge.ingestion.models import Transcript
from tribal_knowledge.retrieval.answer import AnswerAssembler


def load_files(paths: list[str]) -> list[Transcript]:
    transcripts = []
    for p in paths:
        path = Path(p)
        data = json.loads(path.read_text(encoding="utf-8"))
        transcripts.append(Transcript.model_validate({**data, "videoName": path.stem}))
    return transcripts


async def main(args: argparse.Namespace) -> None:
    transcripts = load_files(args.files)
    config = get_pipeline_config()
    templates = get_templates()

    if args.summarize:
        consolidator = ConsolidationAssembler(
            get_generator(), templates.summarize, config.min_fallback_length
        )
        procedure = await consolidator.summarize(transcripts)
        print(procedure.markdown)
        if procedure.notes:
            print("\n--- Notes ---\n" + procedure.notes)
        return

    assembler = AnswerAssembler(
        get_embedder(),
        get_generator(),
        templates.question,
        chunk_size=config.chunk_size,
        top_k=config.top_k,
        min_fallback_length=config.min_fallback_length,
    )
    result = await assembler.answer(args.question, transcripts, top_k=args.top_k)
    print(result.markdown)
    print("\n--- Sources ---")
    for source in result.sources:
        print(f"- {source}")
    if result.degraded:
        print("\n(plain-text fallback: the model did not return JSON)")


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("files", nargs="+")
    parser.add_argument("-q", "--question")
    parser.add_argument("--top-k", type=int, default=None)
    parser.add_argument("--summarize", action="store_true")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()
    if not args.summarize and not args.question:
        parser.error("either --question or --summarize is required")

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    asyncio.run(main(args))
