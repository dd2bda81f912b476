"""Blocking and reporting."""

from .service import BlockService, ReportService, hidden_author_ids

__all__ = ["BlockService", "ReportService", "hidden_author_ids"]
