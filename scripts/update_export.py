"""Re-index a fresh WhatsApp export, incrementally or as a full replacement."""

import argparse
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from chatsplit.config import settings
from chatsplit.ingestion.parsers import read_transcript
from chatsplit.ingestion.pipeline import apply_update, compare_exports, recommend_update
from chatsplit.ingestion.storage import OpenAIVectorStoreIndexer
from chatsplit.pipeline_config import ChunkingPolicy, UpdateMode


def update_export(
    new_path: str,
    old_path: str | None = None,
    mode: str | None = None,
    strategy: str | None = "temporal",
) -> None:
    """Compare the new export with the previous one and push the update."""
    new_file = Path(new_path)
    if not new_file.exists():
        print(f"File {new_path} not found.")
        return

    new_content = read_transcript(new_file)
    old_content = read_transcript(old_path) if old_path and Path(old_path).exists() else ""

    diff = compare_exports(old_content, new_content)
    print(f"Old export: {diff.old_lines} lines")
    growth = f"{diff.added_lines:+d}, {diff.percentage_increase}%"
    print(f"New export: {diff.new_lines} lines ({growth})")
    print(f"Recommendation: {recommend_update(diff).value}")

    indexer = OpenAIVectorStoreIndexer.from_settings()
    result = apply_update(
        old_content,
        new_content,
        new_file.name,
        indexer,
        mode=mode,
        clear=indexer.clear,
        strategy=strategy,
        policy=ChunkingPolicy.from_settings(settings),
        batch_size=settings.upload_batch_size,
        pause_seconds=settings.upload_batch_pause_seconds,
    )

    print(f"\nMode: {result.mode.value if result.mode else 'n/a'}")
    if result.deleted_files:
        print(f"Removed {result.deleted_files} old files")
    if result.mode is UpdateMode.INCREMENTAL and not result.chunks:
        print("No new content since the previous export.")
        return
    print(f"Uploaded {result.report.succeeded}/{result.report.total} chunks.")
    for error in result.report.errors:
        print(f"  ERROR {error}")


if __name__ == "__main__":
    logging.basicConfig(level=settings.log_level)
    parser = argparse.ArgumentParser()
    parser.add_argument("new_path")
    parser.add_argument("--old", default=None)
    parser.add_argument(
        "--mode", choices=["incremental", "full_replacement", "user_choice"], default=None
    )
    parser.add_argument("--strategy", default="temporal")
    args = parser.parse_args()
    update_export(args.new_path, args.old, args.mode, args.strategy or None)
