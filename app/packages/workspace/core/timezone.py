"""时间工具：业务时间统一使用配置时区，耗时统计使用单调时钟。"""

from __future__ import annotations

import time
from datetime import datetime
from typing import Optional

from app.packages.workspace.core.config import get_settings

DISPLAY_FORMAT = "%Y-%m-%d %H:%M:%S"


def now() -> datetime:
    return datetime.now(get_settings().timezone_info)


def format_datetime(value: Optional[datetime]) -> Optional[str]:
    """数据库读出的无时区时间按配置时区解释，再格式化为展示字符串。"""
    if value is None:
        return None
    tz = get_settings().timezone_info
    local = value.replace(tzinfo=tz) if value.tzinfo is None else value.astimezone(tz)
    return local.strftime(DISPLAY_FORMAT)


def monotonic_ms() -> float:
    return time.monotonic() * 1000.0


def elapsed_ms(started_ms: float) -> int:
    return int(monotonic_ms() - started_ms)
