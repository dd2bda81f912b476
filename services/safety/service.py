"""Block registry and moderation ledger."""

import logging
from typing import Any, Dict, List, Optional, Set

from sqlmodel import Session, col, select

from services.db.models import BlockedUser, MessageType, Report, ReportStatus, User
from services.errors import (
    AlreadyBlocked,
    InvalidStatusTransition,
    NotFound,
    SelfBlock,
    SelfReport,
)
from services.utils.validation import clean_text, get_user_or_404, require_authenticated

log = logging.getLogger(__name__)

REPORT_REASON_MAX = 200
REPORT_DESCRIPTION_MAX = 2000

# pending -> reviewed -> resolved/dismissed; resolved and dismissed are terminal
REPORT_TRANSITIONS = {
    ReportStatus.PENDING: {ReportStatus.REVIEWED, ReportStatus.RESOLVED, ReportStatus.DISMISSED},
    ReportStatus.REVIEWED: {ReportStatus.RESOLVED, ReportStatus.DISMISSED},
    ReportStatus.RESOLVED: set(),
    ReportStatus.DISMISSED: set(),
}


def hidden_author_ids(session: Session, viewer_id: Optional[int]) -> Set[int]:
    """Authors whose content ``viewer_id`` must not see. Empty for anonymous viewers."""
    if viewer_id is None:
        return set()
    return BlockService(session).effective_block_set(viewer_id)


class BlockService:
    """用户屏蔽服务."""

    def __init__(self, session: Session):
        self.session = session

    def _edge(self, blocker_id: int, blocked_id: int) -> Optional[BlockedUser]:
        return self.session.exec(
            select(BlockedUser).where(
                BlockedUser.blocker_id == blocker_id,
                BlockedUser.blocked_id == blocked_id,
            )
        ).first()

    def block(self, blocker_id: int, blocked_id: int, reason: Optional[str] = None) -> BlockedUser:
        """Insert a blocker -> blocked edge.

        Raises:
            SelfBlock: blocker and blocked are the same user
            AuthenticationRequired: the blocker is a guest
            NotFound: either user does not exist
            AlreadyBlocked: the edge already exists
        """
        if blocker_id == blocked_id:
            raise SelfBlock("Cannot block yourself", user_id=blocker_id)

        require_authenticated(self.session, blocker_id)
        get_user_or_404(self.session, blocked_id)

        if self._edge(blocker_id, blocked_id):
            raise AlreadyBlocked(
                "User is already blocked", blocker_id=blocker_id, blocked_id=blocked_id
            )

        edge = BlockedUser(
            blocker_id=blocker_id,
            blocked_id=blocked_id,
            reason=reason.strip() if reason else None,
        )
        self.session.add(edge)
        self.session.commit()
        self.session.refresh(edge)

        log.info(f"User {blocker_id} blocked {blocked_id}")
        return edge

    def unblock(self, blocker_id: int, blocked_id: int) -> None:
        edge = self._edge(blocker_id, blocked_id)
        if not edge:
            raise NotFound("Block record not found", blocker_id=blocker_id, blocked_id=blocked_id)

        self.session.delete(edge)
        self.session.commit()
        log.info(f"User {blocker_id} unblocked {blocked_id}")

    def is_blocked(self, blocker_id: int, blocked_id: int) -> bool:
        return self._edge(blocker_id, blocked_id) is not None

    def effective_block_set(self, user_id: int) -> Set[int]:
        """Users I blocked plus users who blocked me.

        Always read from the store; block state can change between two calls.
        """
        blocked_by_me = self.session.exec(
            select(BlockedUser.blocked_id).where(BlockedUser.blocker_id == user_id)
        ).all()
        blocked_me = self.session.exec(
            select(BlockedUser.blocker_id).where(BlockedUser.blocked_id == user_id)
        ).all()
        return set(blocked_by_me) | set(blocked_me)

    def get_blocked_users(self, user_id: int) -> List[Dict[str, Any]]:
        edges = self.session.exec(
            select(BlockedUser)
            .where(BlockedUser.blocker_id == user_id)
            .order_by(col(BlockedUser.created_at).desc())
        ).all()

        results = []
        for edge in edges:
            results.append({
                "block_id": edge.id,
                "blocked_at": edge.created_at,
                "reason": edge.reason,
                "user": self.session.get(User, edge.blocked_id),
            })
        return results

    def check_block_status(self, user_id: int, other_user_id: int) -> Dict[str, bool]:
        i_blocked_them = self.is_blocked(user_id, other_user_id)
        they_blocked_me = self.is_blocked(other_user_id, user_id)
        return {
            "i_blocked_them": i_blocked_them,
            "they_blocked_me": they_blocked_me,
            "is_blocked": i_blocked_them or they_blocked_me,
        }


class ReportService:
    """举报服务. Independent of the block registry."""

    def __init__(self, session: Session):
        self.session = session

    def report_user(
        self,
        reporter_id: int,
        reported_user_id: int,
        reason: str,
        message_id: Optional[str] = None,
        message_type: Optional[MessageType] = None,
        description: Optional[str] = None,
    ) -> Report:
        if reporter_id == reported_user_id:
            raise SelfReport("Cannot report yourself", user_id=reporter_id)

        require_authenticated(self.session, reporter_id)
        get_user_or_404(self.session, reported_user_id)

        reason = clean_text("reason", reason, REPORT_REASON_MAX)
        if description is not None and description.strip():
            description = clean_text("description", description, REPORT_DESCRIPTION_MAX)
        else:
            description = None

        report = Report(
            reporter_id=reporter_id,
            reported_user_id=reported_user_id,
            message_id=message_id,
            message_type=MessageType(message_type) if message_type else None,
            reason=reason,
            description=description,
            status=ReportStatus.PENDING,
        )
        self.session.add(report)
        self.session.commit()
        self.session.refresh(report)

        log.info(f"Report {report.id}: user {reporter_id} reported {reported_user_id} ({reason})")
        return report

    def get_report(self, report_id: int) -> Optional[Report]:
        return self.session.get(Report, report_id)

    def get_reports_by_status(self, status: ReportStatus, limit: int = 50) -> List[Dict[str, Any]]:
        reports = self.session.exec(
            select(Report)
            .where(Report.status == ReportStatus(status))
            .order_by(col(Report.created_at).desc(), col(Report.id).desc())
            .limit(limit)
        ).all()

        return [
            {
                "report": report,
                "reporter": self.session.get(User, report.reporter_id),
                "reported_user": self.session.get(User, report.reported_user_id),
            }
            for report in reports
        ]

    def update_report_status(self, report_id: int, status: ReportStatus) -> Report:
        """Move a report forward in the moderation workflow.

        Setting the current status again is a no-op.
        """
        report = self.session.get(Report, report_id)
        if not report:
            raise NotFound("Report not found", report_id=report_id)

        new_status = ReportStatus(status)
        if new_status == report.status:
            return report
        if new_status not in REPORT_TRANSITIONS[report.status]:
            raise InvalidStatusTransition(
                f"Cannot move report from {report.status.value} to {new_status.value}",
                report_id=report_id,
                current=report.status.value,
                requested=new_status.value,
            )

        old_status = report.status
        report.status = new_status
        self.session.add(report)
        self.session.commit()
        self.session.refresh(report)

        log.info(f"Report {report_id}: {old_status.value} -> {new_status.value}")
        return report
