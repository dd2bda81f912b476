from .service import TrekRequestService

__all__ = ["TrekRequestService"]
