"""Which Claude model serves which job, switchable at runtime."""

import logging

from zuychin.config import settings

logger = logging.getLogger(__name__)

MODEL_MAP: dict[str, str] = {
    "haiku": "claude-haiku-4-5-20251001",
    "sonnet": "claude-sonnet-4-5-20250929",
    "opus": "claude-opus-4-1-20250805",
}

FRIENDLY_NAMES: dict[str, str] = {model_id: name for name, model_id in MODEL_MAP.items()}

CHAT = "chat"
SUMMARY = "summary"
_FALLBACKS = {CHAT: "sonnet", SUMMARY: "haiku"}


def resolve(name_or_id: str) -> str | None:
    """Full model id for a friendly name or a known id, else None."""
    key = name_or_id.strip().lower()
    if key in MODEL_MAP:
        return MODEL_MAP[key]
    return name_or_id if name_or_id in FRIENDLY_NAMES else None


def friendly(model_id: str) -> str:
    return FRIENDLY_NAMES.get(model_id, model_id)


class ModelManager:
    """Singleton holding one model per role.

    ``chat`` answers user turns; ``summary`` does the cheap single-shot work
    (history summaries, proactive messages).
    """

    _instance: "ModelManager | None" = None

    def __init__(self) -> None:
        configured = {CHAT: settings.default_chat_model, SUMMARY: settings.default_summary_model}
        self._models: dict[str, str] = {}
        for role, name in configured.items():
            model_id = resolve(name)
            if model_id is None:
                logger.warning("Unknown %s model %r, using %s", role, name, _FALLBACKS[role])
                model_id = MODEL_MAP[_FALLBACKS[role]]
            self._models[role] = model_id
        logger.info(
            "Models: chat=%s, summary=%s",
            friendly(self._models[CHAT]),
            friendly(self._models[SUMMARY]),
        )

    @classmethod
    def get(cls) -> "ModelManager":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def _reset(cls) -> None:
        cls._instance = None

    def get_chat_model(self) -> str:
        return self._models[CHAT]

    def get_summary_model(self) -> str:
        return self._models[SUMMARY]

    def set_chat_model(self, name: str) -> str | None:
        """Switch the chat model. Returns the full id, or None if *name* is unknown."""
        model_id = resolve(name)
        if model_id is None:
            return None
        self._models[CHAT] = model_id
        logger.info("Chat model switched to %s", friendly(model_id))
        return model_id
