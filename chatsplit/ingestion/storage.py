"""Indexing collaborators: where produced chunks are sent.

Every indexer accepts a chunk's file name and text and returns an opaque
identifier. Account identifiers (assistant, vector store, table) are passed
in explicitly rather than read from module constants.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from openai import OpenAI
from supabase import Client, create_client

from chatsplit.config import settings

if TYPE_CHECKING:
    from chatsplit.config import Settings

logger = logging.getLogger(__name__)


class ChunkIndexer(Protocol):
    def index(self, filename: str, content: str) -> str: ...


def get_openai_client() -> OpenAI:
    """Create an OpenAI client; falls back to OPENAI_API_KEY from the environment."""
    return OpenAI(api_key=settings.openai_api_key or None)


# ---------------------------------------------------------------------------
# OpenAI vector store
# ---------------------------------------------------------------------------


def resolve_vector_store_id(
    client: OpenAI,
    assistant_id: str,
    create_name: str | None = None,
) -> str:
    """Return the first vector store attached to an assistant's file_search tool.

    If none is attached and *create_name* is given, a new store is created
    and attached to the assistant.

    Raises:
        ValueError: If the assistant has no vector store and none may be created.
    """
    assistant = client.beta.assistants.retrieve(assistant_id)
    resources = assistant.tool_resources
    file_search = resources.file_search if resources else None
    store_ids = (file_search.vector_store_ids if file_search else None) or []
    if store_ids:
        return store_ids[0]

    if create_name is None:
        msg = f"Assistant {assistant_id} has no vector store attached"
        raise ValueError(msg)

    store = client.vector_stores.create(
        name=create_name,
        expires_after={"anchor": "last_active_at", "days": 365},
    )
    client.beta.assistants.update(
        assistant_id,
        tool_resources={"file_search": {"vector_store_ids": [store.id]}},
    )
    logger.info("Created vector store %s for assistant %s", store.id, assistant_id)
    return store.id


def clear_vector_store(client: OpenAI, vector_store_id: str) -> int:
    """Detach and delete every file of a vector store; return how many were removed.

    A file that fails to delete is logged and skipped so one stale entry
    does not block a full replacement.
    """
    deleted = 0
    for entry in client.vector_stores.files.list(vector_store_id=vector_store_id, limit=100):
        try:
            client.vector_stores.files.delete(file_id=entry.id, vector_store_id=vector_store_id)
            client.files.delete(entry.id)
            deleted += 1
        except Exception as exc:
            logger.warning("Could not delete file %s from %s: %s", entry.id, vector_store_id, exc)
    logger.info("Removed %d files from vector store %s", deleted, vector_store_id)
    return deleted


class OpenAIVectorStoreIndexer:
    """Upload chunks as files and attach them to an OpenAI vector store."""

    def __init__(self, client: OpenAI, vector_store_id: str) -> None:
        if not vector_store_id:
            msg = "vector_store_id is required"
            raise ValueError(msg)
        self.client = client
        self.vector_store_id = vector_store_id

    def index(self, filename: str, content: str) -> str:
        uploaded = self.client.files.create(
            file=(filename, content.encode("utf-8"), "text/plain"),
            purpose="assistants",
        )
        self.client.vector_stores.files.create(
            vector_store_id=self.vector_store_id,
            file_id=uploaded.id,
        )
        return str(uploaded.id)

    def clear(self) -> int:
        return clear_vector_store(self.client, self.vector_store_id)

    @classmethod
    def from_settings(cls, cfg: Settings | None = None) -> OpenAIVectorStoreIndexer:
        """Build an indexer from configured ids, resolving the store via the assistant.

        Raises:
            ValueError: If neither a vector store id nor an assistant id is configured.
        """
        cfg = cfg or settings
        client = get_openai_client()
        store_id = cfg.openai_vector_store_id
        if not store_id:
            if not cfg.openai_assistant_id:
                msg = "Set OPENAI_VECTOR_STORE_ID or OPENAI_ASSISTANT_ID to upload chunks"
                raise ValueError(msg)
            store_id = resolve_vector_store_id(
                client, cfg.openai_assistant_id, create_name="WhatsApp transcript chunks"
            )
        return cls(client, store_id)


# ---------------------------------------------------------------------------
# Supabase table
# ---------------------------------------------------------------------------


class SupabaseChunkIndexer:
    """Store chunk texts as rows of a Supabase table (embedding happens downstream)."""

    def __init__(self, client: Client, table: str = "chunks", source: str | None = None) -> None:
        self.client = client
        self.table = table
        self.source = source

    def index(self, filename: str, content: str) -> str:
        result = (
            self.client.table(self.table)
            .insert({"filename": filename, "content": content, "source": self.source})
            .execute()
        )
        return str(result.data[0]["id"])

    def clear(self) -> int:
        query = self.client.table(self.table).delete()
        if self.source is not None:
            query = query.eq("source", self.source)
        else:
            query = query.not_.is_("id", "null")
        result = query.execute()
        return len(result.data or [])

    @classmethod
    def from_settings(
        cls, cfg: Settings | None = None, source: str | None = None
    ) -> SupabaseChunkIndexer:
        cfg = cfg or settings
        return cls(create_client(cfg.supabase_url, cfg.supabase_key), cfg.chunk_table, source)
