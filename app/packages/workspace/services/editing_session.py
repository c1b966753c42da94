"""编辑会话：保存流程的互斥与自动保存防抖。

同一项目的对账不能并发执行（手动保存与防抖自动保存竞争会破坏认领状态），
因此每个编辑会话持有一把非阻塞锁：

- 手动保存遇到进行中的对账：拒绝并返回 ConflictError；
- 自动保存遇到进行中的对账：直接丢弃，变更标记保留，等待下一个防抖周期；
- 任何快照变更都会重置防抖计时器，只有静默期结束后才触发自动保存；
- 自动保存失败只记录日志，手动保存失败向调用方抛出；
- 关闭会话后不再启动新的条目，进行中的外部调用允许自然结束。
"""

from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Mapping, Optional

from app.packages.workspace.core.exceptions import ConflictError, NotFoundError
from app.packages.workspace.core.logger import get_logger
from app.packages.workspace.core.timezone import format_datetime, now as tz_now

logger = get_logger("session")

Snapshot = Mapping[str, Optional[str]]
# runner(snapshot, should_continue) -> 已应用的操作列表
Runner = Callable[[Snapshot, Callable[[], bool]], list]


def _error_message(exc: Exception) -> str:
    return str(getattr(exc, "detail", None) or exc)


@dataclass
class SessionState:
    reconciling: bool = False
    has_completed_initial_sync: bool = False
    closed: bool = False
    pending_change: bool = False
    auto_saving: bool = False
    last_saved_at: Optional[datetime] = None
    last_error: Optional[str] = None


class EditingSession:
    def __init__(
        self,
        project_id: int,
        runner: Runner,
        *,
        delay_seconds: float = 3.0,
        session_id: Optional[str] = None,
    ) -> None:
        self.session_id = session_id or uuid.uuid4().hex
        self.project_id = project_id
        self.delay_seconds = delay_seconds
        self.state = SessionState()
        self._runner = runner
        self._lock = threading.Lock()
        self._timer_lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._latest: Optional[Snapshot] = None
        self._generation = 0

    # ----------------------------
    # 保存入口
    # ----------------------------
    def save_now(self, snapshot: Snapshot) -> list:
        """手动保存：若已有对账在进行中则拒绝。"""
        if not self._lock.acquire(blocking=False):
            raise ConflictError("保存正在进行中，请稍后重试")
        try:
            with self._timer_lock:
                generation = self._generation
            return self._run(snapshot, generation)
        finally:
            self._lock.release()

    def initial_sync(self, snapshot: Snapshot) -> list:
        """新项目首次把模板文件写入后端，只执行一次；失败后允许重试。"""
        if self.state.has_completed_initial_sync:
            return []
        self.state.has_completed_initial_sync = True
        try:
            return self.save_now(snapshot)
        except Exception:
            self.state.has_completed_initial_sync = False
            raise

    def notify_change(self, snapshot: Snapshot, *, auto_save: bool = True) -> None:
        if self.state.closed:
            return
        with self._timer_lock:
            self._latest = snapshot
            self._generation += 1
            self.state.pending_change = True
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            if not auto_save:
                return
            timer = threading.Timer(self.delay_seconds, self._fire_auto_save)
            timer.daemon = True
            self._timer = timer
            timer.start()

    def close(self) -> None:
        self.state.closed = True
        with self._timer_lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def join_pending(self, timeout: Optional[float] = None) -> None:
        """等待最近一次防抖计时器（及其触发的自动保存）结束。"""
        with self._timer_lock:
            timer = self._timer
        if timer is not None:
            timer.join(timeout)

    def should_continue(self) -> bool:
        return not self.state.closed

    def status(self) -> dict:
        return {
            "sessionId": self.session_id,
            "projectId": self.project_id,
            "reconciling": self.state.reconciling,
            "autoSaving": self.state.auto_saving,
            "pendingChange": self.state.pending_change,
            "hasCompletedInitialSync": self.state.has_completed_initial_sync,
            "closed": self.state.closed,
            "lastSavedAt": format_datetime(self.state.last_saved_at),
            "lastError": self.state.last_error,
        }

    # ----------------------------
    # 内部实现
    # ----------------------------
    def _fire_auto_save(self) -> None:
        with self._timer_lock:
            snapshot = self._latest
            generation = self._generation
        if self.state.closed or not self.state.pending_change or snapshot is None:
            return
        if not self._lock.acquire(blocking=False):
            logger.info("autosave.dropped project_id=%s reason=in_flight", self.project_id)
            return
        self.state.auto_saving = True
        try:
            self._run(snapshot, generation)
        except Exception as exc:
            logger.exception("autosave.failed project_id=%s", self.project_id)
            self.state.last_error = _error_message(exc)
        finally:
            self.state.auto_saving = False
            self._lock.release()

    def _run(self, snapshot: Snapshot, generation: int) -> list:
        self.state.reconciling = True
        try:
            ops = self._runner(snapshot, self.should_continue)
        except Exception as exc:
            self.state.last_error = _error_message(exc)
            raise
        finally:
            self.state.reconciling = False
        self.state.last_saved_at = tz_now()
        self.state.last_error = None
        with self._timer_lock:
            # 保存期间又有新变更时保留标记，交给下一轮自动保存
            if generation == self._generation:
                self.state.pending_change = False
        return ops


class EditingSessionRegistry:
    """进程内的会话登记表，每个项目同一时刻只有一个活动会话。"""

    def __init__(self) -> None:
        self._sessions: dict[int, EditingSession] = {}
        self._lock = threading.Lock()

    def get_or_open(self, project_id: int, factory: Callable[[], EditingSession]) -> EditingSession:
        with self._lock:
            session = self._sessions.get(project_id)
            if session is None or session.state.closed:
                session = factory()
                self._sessions[project_id] = session
            return session

    def get(self, project_id: int) -> EditingSession:
        with self._lock:
            session = self._sessions.get(project_id)
        if session is None or session.state.closed:
            raise NotFoundError("编辑会话不存在")
        return session

    def close(self, project_id: int) -> Optional[EditingSession]:
        with self._lock:
            session = self._sessions.pop(project_id, None)
        if session is not None:
            session.close()
        return session

    def close_all(self) -> None:
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for session in sessions:
            session.close()
