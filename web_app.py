import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from services.config import config
from services.errors import (
    AlreadyBlocked,
    AuthenticationRequired,
    Forbidden,
    InvalidStatusTransition,
    NotFound,
    SelfTarget,
    ServiceError,
    UsernameTaken,
    ValidationError,
)
from services.utils.timezone import TIMEZONE


# 自定义日志格式化器, 统一使用 UTC
class UTCFormatter(logging.Formatter):
    """使用 UTC 时间的日志格式化器"""

    def formatTime(self, record, datefmt=None):
        dt = datetime.fromtimestamp(record.created, tz=TIMEZONE)
        if datefmt:
            return dt.strftime(datefmt)
        return dt.strftime("%Y-%m-%d %H:%M:%S UTC")

    def format(self, record):
        result = super().format(record)
        # 多行长消息, 增加缩进
        if len(record.message) > 100 and '\n' in record.message:
            lines = record.message.split('\n')
            indent = ' ' * 4
            formatted_msg = '\n'.join([lines[0]] + [indent + line for line in lines[1:]])
            result = result.replace(record.message, formatted_msg)
        return result


def setup_logging(log_dir: str = None):
    """配置应用程序日志"""
    formatter = UTCFormatter(
        fmt='%(asctime)s [%(levelname)s] %(name)s:%(lineno)d - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S UTC'
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.INFO)

    # 移除现有handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # 按天轮转, 保留30天
    log_path = Path(log_dir or config.LOG_DIR)
    log_path.mkdir(parents=True, exist_ok=True)

    file_handler = TimedRotatingFileHandler(
        filename=log_path / "app.log",
        when="midnight",
        interval=1,
        backupCount=30,
        encoding="utf-8"
    )
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)


setup_logging()
logger = logging.getLogger(__name__)

from services.db.init import init_db  # noqa: E402
from web.dependencies import limiter  # noqa: E402
from web.routers import (  # noqa: E402
    admin,
    chat,
    dms,
    places,
    posts,
    presence,
    requests,
    safety,
    session,
    users,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting Trek Chat service...")
    engine = init_db()
    logger.info(f"✓ Database initialized: {engine.url}")
    yield
    logger.info("Trek Chat service stopped")


app = FastAPI(title="Trek Chat", lifespan=lifespan)
app.state.limiter = limiter


# --- Error mapping ---
# 按顺序匹配, SelfInterest 同时是 Forbidden 和 SelfTarget, 取 403
STATUS_CODES = [
    (NotFound, 404),
    (Forbidden, 403),
    (SelfTarget, 400),
    (AuthenticationRequired, 401),
    (AlreadyBlocked, 409),
    (UsernameTaken, 409),
    (InvalidStatusTransition, 409),
    (ValidationError, 422),
]


def status_for(exc: ServiceError) -> int:
    for error_type, status_code in STATUS_CODES:
        if isinstance(exc, error_type):
            return status_code
    return 400


async def service_error_handler(request: Request, exc: ServiceError):
    status_code = status_for(exc)
    logger.info(f"{request.method} {request.url.path} -> {status_code} {exc.code}: {exc.message}")
    return JSONResponse(status_code=status_code, content=exc.to_dict())


async def friendly_rate_limit_handler(request: Request, exc: RateLimitExceeded):
    """处理请求频率超限的情况，返回用户友好的错误提示。"""
    return JSONResponse(
        status_code=429,
        content={
            "error": "rate_limited",
            "message": "Too many requests, please wait a moment and try again",
            "detail": str(exc),
        },
    )


app.add_exception_handler(ServiceError, service_error_handler)
app.add_exception_handler(RateLimitExceeded, friendly_rate_limit_handler)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(session.router)
app.include_router(users.router)
app.include_router(safety.router)
app.include_router(presence.router)
app.include_router(posts.router)
app.include_router(requests.router)
app.include_router(chat.router)
app.include_router(dms.router)
app.include_router(places.router)
app.include_router(admin.router)


@app.get("/health")
async def health():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("web_app:app", host="0.0.0.0", port=8000, reload=True)
