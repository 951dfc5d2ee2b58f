"""Data models for long-term memory."""

from dataclasses import dataclass

from pydantic import BaseModel, Field

# metadata["source"] value for memories captured from inbound user messages.
SOURCE_USER_MESSAGE = "user_message"
# metadata["source"] value for notes saved through the save_note tool.
SOURCE_SAVE_NOTE = "save_note"


class MemoryItem(BaseModel):
    """A stored memory: text plus its embedding and tags."""

    id: str
    content: str
    embedding: list[float] = Field(default_factory=list)
    metadata: dict[str, str] = Field(default_factory=dict)
    owner_id: str | None = None
    created_at: str = ""

    @property
    def source(self) -> str:
        return self.metadata.get("source", "unknown")


@dataclass
class RetrievalCandidate:
    """A memory matched for one query. Lives only for one pipeline run."""

    item: MemoryItem
    similarity: float | None = None
    rerank_score: float = 0.0

    @property
    def content(self) -> str:
        return self.item.content
