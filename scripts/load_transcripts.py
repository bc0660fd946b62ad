"""Load transcripts from a local tasks/ folder into Supabase.

Expects the layout ``<root>/<task_name>/transcribe/<video_name>.txt`` where
each file holds one transcript as JSON.
"""

import argparse
import json
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from tribal_knowledge.ingestion.models import Transcript
from tribal_knowledge.ingestion.storage import get_supabase_client, save_transcript


def load_task_folder(root: str = "tasks", only_task: str | None = None) -> None:
    """Upsert every transcript file under *root* into the transcripts table."""
    root_path = Path(root)
    if not root_path.is_dir():
        print(f"No tasks folder at {root_path}")
        return

    client = get_supabase_client()
    loaded = 0
    errors = 0

    for task_dir in sorted(p for p in root_path.iterdir() if p.is_dir()):
        if only_task and task_dir.name != only_task:
            continue
        files = sorted((task_dir / "transcribe").glob("*.txt"))
        print(f"{task_dir.name}: {len(files)} transcript files")

        for i, filepath in enumerate(files):
            video_name = filepath.stem
            try:
                data = json.loads(filepath.read_text(encoding="utf-8"))
                transcript = Transcript.model_validate({**data, "videoName": video_name})
                save_transcript(client, task_dir.name, video_name, transcript)
                loaded += 1
                print(
                    f"  [{i + 1}/{len(files)}] Loaded {video_name} -- "
                    f"{len(transcript.speech_segments)} audio segments"
                )
            except Exception as e:
                errors += 1
                print(f"  [{i + 1}] ERROR {filepath.name}: {e}")

    print(f"\nDone! Loaded {loaded} transcripts, {errors} errors.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("--dir", default="tasks")
    parser.add_argument("--task", default=None)
    args = parser.parse_args()
    load_task_folder(args.dir, args.task)
