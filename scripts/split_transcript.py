"""Split a WhatsApp export into chunk files and optionally upload them."""

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from chatsplit.config import settings
from chatsplit.ingestion.export import export_chunks
from chatsplit.ingestion.parsers import read_transcript
from chatsplit.ingestion.pipeline import auto_split, chunk_transcript
from chatsplit.ingestion.storage import OpenAIVectorStoreIndexer, SupabaseChunkIndexer
from chatsplit.ingestion.upload import upload_chunks_sync
from chatsplit.pipeline_config import ChunkingPolicy, ChunkingStrategy


def split_transcript(
    path: str,
    strategy: str = "auto",
    out_dir: str = "chunks",
    upload: str | None = None,
    marker: str | None = None,
) -> None:
    """Chunk one export, write the chunks to *out_dir*, then upload if asked."""
    source = Path(path)
    if not source.exists():
        print(f"File {path} not found.")
        return

    content = read_transcript(source)
    print(f"Read {source.name}: {len(content) // 1024} KB, {content.count(chr(10)) + 1} lines")

    policy = ChunkingPolicy.from_settings(settings)
    if marker:
        policy = replace(policy, recent_window_marker=marker)

    if strategy == "auto":
        chunks = auto_split(content, source.name, policy)
    else:
        chunks = chunk_transcript(content, source.name, ChunkingStrategy(strategy), policy)

    if not chunks:
        print("No chunks produced.")
        return

    for chunk in chunks:
        meta = chunk.metadata
        span = f" [{meta.date_start} -> {meta.date_end}]" if meta and meta.date_start else ""
        print(f"  {chunk.chunk_index + 1:>4}. {chunk.title} -- {chunk.line_count} lines{span}")

    paths = export_chunks(chunks, out_dir)
    print(f"\nWrote {len(paths)} chunk files to {out_dir}/")

    if upload is None:
        return

    if upload == "openai":
        indexer = OpenAIVectorStoreIndexer.from_settings()
    else:
        indexer = SupabaseChunkIndexer.from_settings(source=source.name)

    report = upload_chunks_sync(
        chunks,
        indexer,
        batch_size=settings.upload_batch_size,
        pause_seconds=settings.upload_batch_pause_seconds,
    )
    print(f"\nDone! Uploaded {report.succeeded}/{report.total} chunks, {report.failed} errors.")
    for error in report.errors:
        print(f"  ERROR {error}")


if __name__ == "__main__":
    logging.basicConfig(level=settings.log_level)
    parser = argparse.ArgumentParser()
    parser.add_argument("path")
    parser.add_argument(
        "--strategy",
        default="auto",
        choices=["auto", *(s.value for s in ChunkingStrategy)],
    )
    parser.add_argument("--out", default="chunks")
    parser.add_argument("--upload", choices=["openai", "supabase"], default=None)
    parser.add_argument("--marker", default=None, help="start marker of the recent window")
    args = parser.parse_args()
    split_transcript(args.path, args.strategy, args.out, args.upload, args.marker)
