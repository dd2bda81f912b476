"""
Admin Router
独立的 admin 认证, 举报审核, typing 清理, 账号删除和调试查询
"""
import logging
import secrets
from datetime import timedelta

from fastapi import APIRouter, Cookie, Depends, HTTPException, Response
from pydantic import BaseModel
from sqlmodel import Session

from services.config import config
from services.db.models import ReportStatus
from services.errors import NotFound
from services.presence import TypingService
from services.safety import ReportService
from services.users import UserService, author_summary
from services.utils.timezone import now
from web.dependencies import get_db_session

router = APIRouter(prefix="/api/admin", tags=["Admin"])
logger = logging.getLogger(__name__)

# Admin session 管理（简单的内存存储）
# key: session_token, value: 登录时间
_admin_sessions = {}

# Admin cookie 名称
ADMIN_COOKIE_NAME = "admin_session"
ADMIN_SESSION_MAX_AGE = 86400  # 24小时, 和 cookie 一致


def verify_admin_credentials(username: str, password: str) -> bool:
    """验证 admin 账号密码（从配置读取）"""
    if not config.ADMIN_PASSWORD:
        # 如果没有设置密码，出于安全考虑，拒绝登录
        return False

    return secrets.compare_digest(username, config.ADMIN_USERNAME) and secrets.compare_digest(
        password, config.ADMIN_PASSWORD
    )


def create_admin_session() -> str:
    """创建一个新的 admin session token"""
    prune_admin_sessions()
    token = secrets.token_urlsafe(32)
    _admin_sessions[token] = now()
    return token


def prune_admin_sessions() -> int:
    """丢弃超过 cookie 有效期的 token"""
    cutoff = now() - timedelta(seconds=ADMIN_SESSION_MAX_AGE)
    expired = [token for token, logged_in in _admin_sessions.items() if logged_in <= cutoff]
    for token in expired:
        del _admin_sessions[token]
    return len(expired)


def verify_admin_session(token: str) -> bool:
    """验证 admin session token 是否有效"""
    prune_admin_sessions()
    return bool(token) and token in _admin_sessions


def require_admin(admin_session: str = Cookie(None, alias=ADMIN_COOKIE_NAME)) -> str:
    if not verify_admin_session(admin_session):
        raise HTTPException(status_code=401, detail="Unauthorized")
    return admin_session


class AdminLoginRequest(BaseModel):
    username: str
    password: str


class ReportStatusRequest(BaseModel):
    status: ReportStatus


class ExternalIdRequest(BaseModel):
    external_id: str


@router.post("/login")
async def admin_login(data: AdminLoginRequest, response: Response):
    """Admin 登录 API"""
    if not verify_admin_credentials(data.username, data.password):
        raise HTTPException(status_code=401, detail="用户名或密码错误")

    session_token = create_admin_session()

    response.set_cookie(
        key=ADMIN_COOKIE_NAME,
        value=session_token,
        max_age=ADMIN_SESSION_MAX_AGE,
        httponly=True,
        samesite="lax"
    )

    return {"success": True, "message": "登录成功"}


@router.post("/logout")
async def admin_logout(response: Response, admin_session: str = Depends(require_admin)):
    _admin_sessions.pop(admin_session, None)
    response.delete_cookie(ADMIN_COOKIE_NAME)
    return {"success": True}


# --- 举报审核 ---

@router.get("/reports")
async def list_reports(
    status: ReportStatus = ReportStatus.PENDING,
    limit: int = 50,
    _: str = Depends(require_admin),
    db: Session = Depends(get_db_session),
):
    return [
        {
            "report": entry["report"],
            "reporter": author_summary(entry["reporter"]),
            "reported_user": author_summary(entry["reported_user"]),
        }
        for entry in ReportService(db).get_reports_by_status(status, limit)
    ]


@router.post("/reports/{report_id}/status")
async def update_report_status(
    report_id: int,
    data: ReportStatusRequest,
    _: str = Depends(require_admin),
    db: Session = Depends(get_db_session),
):
    report = ReportService(db).update_report_status(report_id, data.status)
    return {"report_id": report.id, "status": report.status}


# --- 维护 ---

@router.post("/typing/sweep")
async def sweep_typing(_: str = Depends(require_admin), db: Session = Depends(get_db_session)):
    """供外部定时任务调用"""
    removed = TypingService(db, ttl_seconds=config.TYPING_TTL_SECONDS).sweep()
    return {"removed": removed}


@router.post("/users/anonymize")
async def anonymize_user(
    data: ExternalIdRequest,
    _: str = Depends(require_admin),
    db: Session = Depends(get_db_session),
):
    user_id = UserService(db).anonymize_user(data.external_id)
    if user_id is None:
        raise NotFound("User not found", external_id=data.external_id)
    return {"user_id": user_id}


@router.post("/users/hard-delete")
async def hard_delete_user(
    data: ExternalIdRequest,
    _: str = Depends(require_admin),
    db: Session = Depends(get_db_session),
):
    user_id = UserService(db).hard_delete_user(data.external_id)
    if user_id is None:
        raise NotFound("User not found", external_id=data.external_id)
    logger.warning(f"Admin hard-deleted user {user_id}")
    return {"user_id": user_id}


# --- 调试查询 ---

@router.get("/users/orphaned-guests")
async def orphaned_guests(days: int = 30, _: str = Depends(require_admin), db: Session = Depends(get_db_session)):
    result = UserService(db).find_orphaned_guest_users(days)
    return {"count": result["count"], "users": [author_summary(u) for u in result["users"]]}


@router.get("/stats")
async def stats(_: str = Depends(require_admin), db: Session = Depends(get_db_session)):
    service = UserService(db, config.ACTIVE_WINDOW_MINUTES)
    return {
        "authenticated_users": service.count_authenticated_users(),
        "active_users": service.get_total_active_users(),
        "pending_reports": len(ReportService(db).get_reports_by_status(ReportStatus.PENDING, limit=1000)),
    }
