"""Tests for chunk export, indexers and the batched upload adapter (no network)."""

from __future__ import annotations

import asyncio
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from chatsplit.config import Settings
from chatsplit.ingestion.export import (
    chunk_filename,
    export_chunks,
    load_chunk_files,
    render_chunk,
)
from chatsplit.ingestion.models import Chunk, ChunkMetadata
from chatsplit.ingestion.storage import (
    OpenAIVectorStoreIndexer,
    SupabaseChunkIndexer,
    clear_vector_store,
    resolve_vector_store_id,
)
from chatsplit.ingestion.upload import upload_chunks, upload_chunks_sync, upload_files


class FakeIndexer:
    """Records uploads; fails for the filenames listed in *failing*."""

    def __init__(self, failing: set[str] | None = None) -> None:
        self.failing = failing or set()
        self.calls: list[str] = []

    def index(self, filename: str, content: str) -> str:
        self.calls.append(filename)
        if filename in self.failing:
            raise RuntimeError("rate limited")
        return f"file-{filename}"


def _chunks(count: int) -> list[Chunk]:
    return [
        Chunk(lines=[f"line {i}"], title=f"chat #{i + 1}", strategy="temporal", chunk_index=i)
        for i in range(count)
    ]


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------


class TestExport:
    def test_period_filename(self) -> None:
        chunk = Chunk(lines=["x"], title="chat 07/2025", strategy="period", period="07/2025")
        assert chunk_filename(chunk) == "period_2025-07_0001.txt"

    def test_theme_filename(self) -> None:
        chunk = Chunk(lines=["x"], title="t", strategy="thematic", chunk_index=2, theme="AITools")
        assert chunk_filename(chunk) == "thematic_AITools_0003.txt"

    def test_date_range_filename(self) -> None:
        meta = ChunkMetadata(date_start="01/07/2025", date_end="03/07/2025")
        chunk = Chunk(lines=["x"], title="t", strategy="temporal", chunk_index=9, metadata=meta)
        assert chunk_filename(chunk) == "temporal_2025-07-01_to_2025-07-03_0010.txt"

    def test_undated_filename(self) -> None:
        chunk = Chunk(lines=["x"], title="t", strategy="generic")
        assert chunk_filename(chunk) == "generic_undated_0001.txt"

    def test_unsafe_characters(self) -> None:
        chunk = Chunk(lines=["x"], title="t", strategy="thematic", theme="Recent since 01/07")
        assert chunk_filename(chunk) == "thematic_Recent_since_01_07_0001.txt"

    def test_filenames_sort_chronologically(self) -> None:
        chunks = [
            Chunk(lines=["x"], title="t", strategy="period", chunk_index=i, period=p)
            for i, p in enumerate(["12/2024", "01/2025", "02/2025"])
        ]
        names = [chunk_filename(c) for c in chunks]
        assert sorted(names) == names

    def test_render_includes_metadata(self) -> None:
        meta = ChunkMetadata(
            date_start="01/07/2025",
            date_end="02/07/2025",
            participants=["Alice", "Bob"],
            topics=["podcast"],
            token_count=12,
            message_count=2,
        )
        chunk = Chunk(lines=["a", "b"], title="chat #1", strategy="temporal", metadata=meta)
        text = render_chunk(chunk)
        assert "Title: chat #1" in text
        assert "Participants: Alice, Bob" in text
        assert "Topics: podcast" in text
        assert text.endswith("=== CONTENT ===\na\nb")

    def test_export_and_reload(self, tmp_path: Path) -> None:
        paths = export_chunks(_chunks(3), tmp_path / "out")
        assert len(paths) == 3
        loaded = load_chunk_files(tmp_path / "out")
        assert [name for name, _ in loaded] == sorted(p.name for p in paths)
        assert loaded[0][1].endswith("line 0")

    def test_load_missing_directory(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_chunk_files(tmp_path / "missing")


# ---------------------------------------------------------------------------
# Upload adapter
# ---------------------------------------------------------------------------


class TestUploadAdapter:
    def test_all_succeed(self) -> None:
        indexer = FakeIndexer()
        report = upload_chunks_sync(_chunks(3), indexer, batch_size=2, pause_seconds=0)
        assert report.total == 3
        assert report.all_succeeded
        assert len(report.file_ids) == 3
        assert [o.chunk_index for o in report.outcomes] == [0, 1, 2]

    def test_partial_success_is_reported(self) -> None:
        chunks = _chunks(22)
        failing = {chunk_filename(c) for c in chunks[3:7]}
        indexer = FakeIndexer(failing)
        report = upload_chunks_sync(chunks, indexer, batch_size=5, pause_seconds=0)
        assert report.succeeded == 18
        assert report.failed == 4
        assert not report.all_succeeded
        assert len(indexer.calls) == 22
        failed = [o for o in report.outcomes if not o.success]
        assert [o.chunk_title for o in failed] == ["chat #4", "chat #5", "chat #6", "chat #7"]
        assert all(o.error == "rate limited" for o in failed)
        assert report.errors[0] == "chat #4: rate limited"

    def test_pause_between_batches_only(self) -> None:
        sleep = AsyncMock()
        with patch("chatsplit.ingestion.upload.asyncio.sleep", sleep):
            asyncio.run(upload_chunks(_chunks(22), FakeIndexer(), batch_size=5, pause_seconds=2.0))
        assert sleep.await_count == 4
        sleep.assert_awaited_with(2.0)

    def test_upload_files(self) -> None:
        report = asyncio.run(
            upload_files([("a.txt", "A"), ("b.txt", "B")], FakeIndexer({"b.txt"}), pause_seconds=0)
        )
        assert [o.success for o in report.outcomes] == [True, False]
        assert report.file_ids == ["file-a.txt"]

    def test_empty(self) -> None:
        report = upload_chunks_sync([], FakeIndexer())
        assert report.total == 0
        assert report.all_succeeded

    def test_invalid_batch_size(self) -> None:
        with pytest.raises(ValueError, match="batch_size"):
            upload_chunks_sync(_chunks(1), FakeIndexer(), batch_size=0)


# ---------------------------------------------------------------------------
# Indexers
# ---------------------------------------------------------------------------


class TestOpenAIIndexer:
    def test_index_uploads_and_attaches(self) -> None:
        client = MagicMock()
        client.files.create.return_value = MagicMock(id="file-1")
        indexer = OpenAIVectorStoreIndexer(client, "vs_1")

        assert indexer.index("chunk.txt", "hello") == "file-1"
        client.files.create.assert_called_once_with(
            file=("chunk.txt", b"hello", "text/plain"), purpose="assistants"
        )
        client.vector_stores.files.create.assert_called_once_with(
            vector_store_id="vs_1", file_id="file-1"
        )

    def test_requires_store_id(self) -> None:
        with pytest.raises(ValueError, match="vector_store_id"):
            OpenAIVectorStoreIndexer(MagicMock(), "")

    def test_resolve_attached_store(self) -> None:
        client = MagicMock()
        client.beta.assistants.retrieve.return_value.tool_resources.file_search.vector_store_ids = [
            "vs_9"
        ]
        assert resolve_vector_store_id(client, "asst_1") == "vs_9"
        client.vector_stores.create.assert_not_called()

    def test_resolve_creates_store_when_missing(self) -> None:
        client = MagicMock()
        client.beta.assistants.retrieve.return_value.tool_resources = None
        client.vector_stores.create.return_value = MagicMock(id="vs_new")
        assert resolve_vector_store_id(client, "asst_1", create_name="chunks") == "vs_new"
        client.beta.assistants.update.assert_called_once_with(
            "asst_1", tool_resources={"file_search": {"vector_store_ids": ["vs_new"]}}
        )

    def test_resolve_without_store_raises(self) -> None:
        client = MagicMock()
        client.beta.assistants.retrieve.return_value.tool_resources = None
        with pytest.raises(ValueError, match="no vector store"):
            resolve_vector_store_id(client, "asst_1")

    def test_clear_skips_failures(self) -> None:
        client = MagicMock()
        client.vector_stores.files.list.return_value = [MagicMock(id="f1"), MagicMock(id="f2")]
        client.files.delete.side_effect = [None, RuntimeError("gone")]
        assert clear_vector_store(client, "vs_1") == 1

    def test_from_settings_requires_ids(self) -> None:
        cfg = Settings(openai_assistant_id="", openai_vector_store_id="", _env_file=None)
        with patch("chatsplit.ingestion.storage.get_openai_client", return_value=MagicMock()):
            with pytest.raises(ValueError, match="OPENAI_VECTOR_STORE_ID"):
                OpenAIVectorStoreIndexer.from_settings(cfg)

    def test_from_settings_uses_configured_store(self) -> None:
        cfg = Settings(openai_vector_store_id="vs_cfg", _env_file=None)
        with patch("chatsplit.ingestion.storage.get_openai_client", return_value=MagicMock()):
            indexer = OpenAIVectorStoreIndexer.from_settings(cfg)
        assert indexer.vector_store_id == "vs_cfg"


class TestSupabaseIndexer:
    def test_index_returns_row_id(self) -> None:
        client = MagicMock()
        client.table.return_value.insert.return_value.execute.return_value.data = [{"id": 7}]
        indexer = SupabaseChunkIndexer(client, table="chunks", source="chat.txt")

        assert indexer.index("period_2025-07_0001.txt", "hello") == "7"
        client.table.assert_called_with("chunks")
        client.table.return_value.insert.assert_called_once_with(
            {"filename": "period_2025-07_0001.txt", "content": "hello", "source": "chat.txt"}
        )

    def test_clear_by_source(self) -> None:
        client = MagicMock()
        query = client.table.return_value.delete.return_value.eq.return_value
        query.execute.return_value.data = [{"id": 1}, {"id": 2}]
        assert SupabaseChunkIndexer(client, source="chat.txt").clear() == 2
        client.table.return_value.delete.return_value.eq.assert_called_once_with(
            "source", "chat.txt"
        )

    def test_clear_without_source_deletes_every_row(self) -> None:
        client = MagicMock()
        delete = client.table.return_value.delete.return_value
        delete.not_.is_.return_value.execute.return_value.data = [{"id": 1}]
        assert SupabaseChunkIndexer(client).clear() == 1
        delete.not_.is_.assert_called_once_with("id", "null")
        delete.neq.assert_not_called()
