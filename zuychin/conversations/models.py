"""Data models for messages and conversations."""

from pydantic import BaseModel

ROLES = ("user", "assistant", "system")


class Message(BaseModel):
    """A persisted conversation turn. Immutable once written."""

    id: str
    role: str
    content: str
    channel: str
    conversation_id: str | None = None
    image_url: str | None = None
    created_at: str = ""

    @property
    def speaker(self) -> str:
        """Display label for transcripts ("User", "Assistant", "System")."""
        return self.role.capitalize()


class Conversation(BaseModel):
    """A titled thread of web-chat messages."""

    id: str
    title: str
    created_at: str = ""
    updated_at: str = ""
