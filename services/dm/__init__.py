from .service import DirectMessageService

__all__ = ["DirectMessageService"]
