"""依赖注入模块：封装 FastAPI 中复用度高的依赖函数。"""

from collections.abc import Generator
from typing import Optional

from fastapi import Header, HTTPException, status
from sqlalchemy.orm import Session

from app.packages.workspace.core.constants import USER_ID_HEADER
from app.packages.workspace.db import session as db_session


def get_db() -> Generator[Session, None, None]:
    """生成一个数据库会话，并在请求结束后自动关闭。"""
    db = db_session.SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user_id(user_id: Optional[str] = Header(default=None, alias=USER_ID_HEADER)) -> int:
    """从网关注入的 ``X-User-Id`` 头部读取当前用户，缺失或非法时抛出 401。"""
    if user_id is None or not user_id.strip():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="缺少认证信息")
    try:
        value = int(user_id.strip())
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="用户标识无效") from exc
    if value <= 0:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="用户标识无效")
    return value
