"""工作区服务：把项目、文件树投影、保存流程串起来，供 API 层调用。

手动保存与自动保存都经过项目的编辑会话执行，从而共享同一把互斥锁。
每一轮对账都在独立的数据库会话中运行（自动保存发生在计时器线程里，
不能复用请求作用域的会话）。
"""

from __future__ import annotations

from typing import Any, Callable, Mapping, Optional

from sqlalchemy.orm import Session

from app.packages.workspace.core.config import get_settings
from app.packages.workspace.core.exceptions import InvalidSnapshotError
from app.packages.workspace.core.logger import logger
from app.packages.workspace.core.timezone import format_datetime
from app.packages.workspace.db import session as db_session
from app.packages.workspace.models.file_node import FileNode
from app.packages.workspace.models.project import Project
from app.packages.workspace.services import tree_projection
from app.packages.workspace.services.blob_store import get_blob_store
from app.packages.workspace.services.editing_session import (
    EditingSession,
    EditingSessionRegistry,
    Snapshot,
)
from app.packages.workspace.services.file_store import FileRecordStore
from app.packages.workspace.services.path_resolver import PathResolver, resolve_path
from app.packages.workspace.services.project_store import ProjectStore
from app.packages.workspace.services.reconcile_service import ReconciliationEngine

registry = EditingSessionRegistry()


def _project_payload(project: Project) -> dict[str, Any]:
    return {
        "id": project.id,
        "slug": project.slug,
        "name": project.name,
        "description": project.description,
        "ownerId": project.owner_id,
        "template": project.template,
        "framework": project.framework,
        "autoSave": project.auto_save,
        "createTime": format_datetime(project.create_time),
        "updateTime": format_datetime(project.update_time),
    }


def _node_payload(node: FileNode, path: str) -> dict[str, Any]:
    return {
        "id": node.id,
        "projectId": node.project_id,
        "parentId": node.parent_id,
        "name": node.name,
        "type": node.type,
        "path": path,
        "language": node.language,
        "sizeInBytes": int(node.size_in_bytes or 0),
        "updateTime": format_datetime(node.update_time),
    }


def validate_snapshot(snapshot: Any) -> dict[str, Optional[str]]:
    if not isinstance(snapshot, Mapping):
        raise InvalidSnapshotError()
    for path in snapshot.keys():
        if not isinstance(path, str):
            raise InvalidSnapshotError("快照中的路径必须为字符串")
    return dict(snapshot)


def run_reconcile(project_id: int, snapshot: Snapshot, should_continue: Callable[[], bool]) -> list[dict]:
    """在独立数据库会话中执行一轮完整对账，返回已应用的操作。"""
    settings = get_settings()
    db = db_session.SessionLocal()
    try:
        store = FileRecordStore(db, get_blob_store())
        persisted = store.list_by_project(project_id)
        engine = ReconciliationEngine(
            store,
            fingerprint_length=settings.fingerprint_length,
            max_depth=settings.max_path_depth,
            should_continue=should_continue,
        )
        ops = engine.reconcile(snapshot, persisted, project_id)
        return [op.to_dict() for op in ops]
    finally:
        db.close()


class WorkspaceService:
    def __init__(self, sessions: Optional[EditingSessionRegistry] = None) -> None:
        self.sessions = sessions or registry

    # ----------------------------
    # 项目
    # ----------------------------
    def create_project(self, db: Session, *, owner_id: int, payload: Mapping[str, Any]) -> dict[str, Any]:
        project = ProjectStore(db).create(owner_id=owner_id, **payload)
        logger.info("project.create id=%s owner=%s slug=%s", project.id, owner_id, project.slug)
        return _project_payload(project)

    def list_projects(self, db: Session, *, owner_id: int) -> list[dict[str, Any]]:
        return [_project_payload(p) for p in ProjectStore(db).list_by_owner(owner_id)]

    def get_project(self, db: Session, *, project_id: int, user_id: int) -> dict[str, Any]:
        return _project_payload(ProjectStore(db).get_owned(project_id, user_id))

    def update_project(
        self, db: Session, *, project_id: int, user_id: int, payload: Mapping[str, Any]
    ) -> dict[str, Any]:
        projects = ProjectStore(db)
        project = projects.update(projects.get_owned(project_id, user_id), **payload)
        logger.info("project.update id=%s fields=%s", project_id, sorted(payload))
        return _project_payload(project)

    def delete_project(self, db: Session, *, project_id: int, user_id: int) -> dict[str, Any]:
        """关闭编辑会话（取消未触发的自动保存），再级联删除全部文件与项目本身。"""
        projects = ProjectStore(db)
        project = projects.get_owned(project_id, user_id)
        self.sessions.close(project_id)
        removed = projects.delete(project, FileRecordStore(db, get_blob_store()))
        logger.info("project.delete id=%s removed_nodes=%s", project_id, removed)
        return {"id": project_id, "removedNodes": removed}

    # ----------------------------
    # 文件树
    # ----------------------------
    def load_tree(self, db: Session, *, project_id: int, user_id: int) -> dict[str, Any]:
        ProjectStore(db).get_owned(project_id, user_id)
        store = FileRecordStore(db, get_blob_store())
        nodes = store.list_by_project(project_id)
        contents = store.load_contents(nodes, tolerant=True)
        projection = tree_projection.project(nodes, contents, max_depth=get_settings().max_path_depth)
        return projection.to_dict()

    def get_file(self, db: Session, *, node_id: int, user_id: int) -> dict[str, Any]:
        store = FileRecordStore(db, get_blob_store())
        node = store.get(node_id)
        ProjectStore(db).get_owned(node.project_id, user_id)
        path = resolve_path(node, store.list_by_project(node.project_id))
        payload = _node_payload(node, path)
        payload["content"] = store.read_content(node) if not node.is_folder else None
        return payload

    def list_children(self, db: Session, *, folder_id: int, user_id: int) -> list[dict[str, Any]]:
        store = FileRecordStore(db, get_blob_store())
        folder = store.get(folder_id)
        ProjectStore(db).get_owned(folder.project_id, user_id)
        children = store.children(folder_id)
        resolver = PathResolver(store.list_by_project(folder.project_id), max_depth=get_settings().max_path_depth)
        return [_node_payload(child, resolver.resolve(child)) for child in children]

    # ----------------------------
    # 保存
    # ----------------------------
    def open_session(self, db: Session, *, project_id: int, user_id: int) -> EditingSession:
        ProjectStore(db).get_owned(project_id, user_id)
        return self._session_for(project_id)

    def save_snapshot(self, db: Session, *, project_id: int, user_id: int, snapshot: Any) -> list[dict]:
        desired = validate_snapshot(snapshot)
        session = self.open_session(db, project_id=project_id, user_id=user_id)
        return session.save_now(desired)

    def initial_sync(self, db: Session, *, project_id: int, user_id: int, snapshot: Any) -> list[dict]:
        desired = validate_snapshot(snapshot)
        session = self.open_session(db, project_id=project_id, user_id=user_id)
        return session.initial_sync(desired)

    def notify_change(self, db: Session, *, project_id: int, user_id: int, snapshot: Any) -> dict[str, Any]:
        desired = validate_snapshot(snapshot)
        project = ProjectStore(db).get_owned(project_id, user_id)
        session = self._session_for(project_id)
        session.notify_change(desired, auto_save=bool(project.auto_save))
        return session.status()

    def session_status(self, db: Session, *, project_id: int, user_id: int) -> dict[str, Any]:
        ProjectStore(db).get_owned(project_id, user_id)
        return self.sessions.get(project_id).status()

    def close_session(self, db: Session, *, project_id: int, user_id: int) -> Optional[dict[str, Any]]:
        ProjectStore(db).get_owned(project_id, user_id)
        session = self.sessions.close(project_id)
        return session.status() if session is not None else None

    def _session_for(self, project_id: int) -> EditingSession:
        delay = get_settings().autosave_delay_seconds
        return self.sessions.get_or_open(
            project_id,
            lambda: EditingSession(
                project_id,
                lambda snapshot, should_continue: run_reconcile(project_id, snapshot, should_continue),
                delay_seconds=delay,
            ),
        )


workspace_service = WorkspaceService()
