"""Batched upload of chunks to an indexing collaborator.

Chunk boundaries are never decided here. Uploads inside a batch run
concurrently in worker threads (the SDKs are synchronous) and batches are
separated by a pause for rate limits. A failed upload is recorded, never raised.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from chatsplit.ingestion.export import chunk_filename, render_chunk
from chatsplit.ingestion.models import Chunk, UploadOutcome, UploadReport

if TYPE_CHECKING:
    from chatsplit.ingestion.storage import ChunkIndexer

logger = logging.getLogger(__name__)


async def _upload_one(
    indexer: ChunkIndexer,
    index: int,
    title: str,
    filename: str,
    text: str,
) -> UploadOutcome:
    try:
        file_id = await asyncio.to_thread(indexer.index, filename, text)
    except Exception as exc:
        logger.warning("Upload failed for %s: %s", title, exc)
        return UploadOutcome(chunk_title=title, chunk_index=index, success=False, error=str(exc))
    logger.info("Uploaded %s (%s)", title, file_id)
    return UploadOutcome(chunk_title=title, chunk_index=index, success=True, file_id=file_id)


_Job = tuple[int, str, str, str]  # (chunk index, title, filename, text)


async def _run_batches(
    jobs: Sequence[_Job],
    indexer: ChunkIndexer,
    batch_size: int,
    pause_seconds: float,
) -> UploadReport:
    if batch_size < 1:
        msg = f"batch_size must be >= 1, got {batch_size}"
        raise ValueError(msg)

    report = UploadReport()
    total_batches = (len(jobs) + batch_size - 1) // batch_size
    for batch_number, start in enumerate(range(0, len(jobs), batch_size), start=1):
        batch = jobs[start : start + batch_size]
        logger.info("Uploading batch %d/%d (%d files)", batch_number, total_batches, len(batch))
        outcomes = await asyncio.gather(*(_upload_one(indexer, *job) for job in batch))
        report.outcomes.extend(outcomes)

        if pause_seconds > 0 and batch_number < total_batches:
            await asyncio.sleep(pause_seconds)

    logger.info("Upload finished: %d/%d succeeded", report.succeeded, report.total)
    return report


async def upload_chunks(
    chunks: Sequence[Chunk],
    indexer: ChunkIndexer,
    batch_size: int = 20,
    pause_seconds: float = 2.0,
) -> UploadReport:
    """Render and upload chunks in concurrent batches.

    Args:
        chunks: Chunks to upload, in order.
        indexer: Collaborator returning an opaque id per upload.
        batch_size: Uploads running at the same time.
        pause_seconds: Sleep between batches (not after the last one).

    Returns:
        An :class:`UploadReport` with one outcome per chunk, in input order.

    Raises:
        ValueError: If *batch_size* < 1.
    """
    jobs = [
        (chunk.chunk_index, chunk.title, chunk_filename(chunk), render_chunk(chunk))
        for chunk in chunks
    ]
    return await _run_batches(jobs, indexer, batch_size, pause_seconds)


async def upload_files(
    files: Sequence[tuple[str, str]],
    indexer: ChunkIndexer,
    batch_size: int = 20,
    pause_seconds: float = 2.0,
) -> UploadReport:
    """Upload already exported ``(filename, text)`` pairs, e.g. from :func:`load_chunk_files`."""
    jobs = [(i, name, name, text) for i, (name, text) in enumerate(files)]
    return await _run_batches(jobs, indexer, batch_size, pause_seconds)


def upload_chunks_sync(
    chunks: Sequence[Chunk],
    indexer: ChunkIndexer,
    batch_size: int = 20,
    pause_seconds: float = 2.0,
) -> UploadReport:
    """Blocking wrapper around :func:`upload_chunks` for scripts and sync callers."""
    return asyncio.run(upload_chunks(chunks, indexer, batch_size, pause_seconds))
