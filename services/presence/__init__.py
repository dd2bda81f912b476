from .service import TYPING_TTL_SECONDS, TypingService, conversation_key

__all__ = ["TYPING_TTL_SECONDS", "TypingService", "conversation_key"]
