"""Explicit memory tools.

These are tools the model can call when the user asks to look something
up in, or add something to, long-term memory.
"""

import logging

from pydantic import Field

from zuychin.config import settings
from zuychin.memory.embeddings import embed_text
from zuychin.memory.models import SOURCE_SAVE_NOTE
from zuychin.memory.store import MemoryStore
from zuychin.pipeline.retriever import retrieve
from zuychin.tools.base import ToolContext, ToolParams, ToolResult
from zuychin.tools.registry import registry

logger = logging.getLogger(__name__)

# -- search_knowledge --------------------------------------------------------


class SearchKnowledgeParams(ToolParams):
    query: str = Field(description="What to look for in stored memories and notes")


@registry.tool(
    name="search_knowledge",
    description=(
        "Search long-term memory (past messages and saved notes) for "
        "information relevant to a query."
    ),
    category="memory",
    params_model=SearchKnowledgeParams,
)
async def search_knowledge(query: str, context: ToolContext) -> ToolResult:
    candidates = await retrieve(
        query,
        owner_id=context.owner_id,
        threshold=settings.tool_search_threshold,
        count=settings.tool_search_count,
    )
    if not candidates:
        return ToolResult(data={"results": [], "message": "No relevant knowledge found."})
    return ToolResult(
        data={
            "results": [
                {
                    "content": c.content,
                    "similarity": round(c.similarity or 0.0, 3),
                    "source": c.item.source,
                }
                for c in candidates
            ],
        }
    )


# -- save_note ---------------------------------------------------------------


class SaveNoteParams(ToolParams):
    content: str = Field(description="The note text to save")
    category: str | None = Field(
        default=None,
        description="Optional category, e.g. 'preference', 'fact', 'todo'",
    )


@registry.tool(
    name="save_note",
    description=(
        "Save a note to long-term memory. Use when the user says "
        "'remember X', 'note that', 'don't forget', etc."
    ),
    category="memory",
    params_model=SaveNoteParams,
)
async def save_note(content: str, context: ToolContext, category: str | None = None) -> ToolResult:
    try:
        embedding = await embed_text(content)
        metadata = {"source": SOURCE_SAVE_NOTE, "category": category or "general"}
        memory_id = await MemoryStore.get().add(
            content, embedding, metadata=metadata, owner_id=context.owner_id
        )
    except Exception:
        logger.exception("save_note failed")
        return ToolResult(error="Failed to save note.")
    return ToolResult(data={"saved": True, "id": memory_id, "category": metadata["category"]})
