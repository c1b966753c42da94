"""项目存储：项目元数据的读取、创建、更新、删除与归属校验。"""

from __future__ import annotations

import re
import uuid
from typing import TYPE_CHECKING, Optional

from sqlalchemy.orm import Session

from app.packages.workspace.core.constants import (
    HTTP_STATUS_BAD_REQUEST,
    PROJECT_FRAMEWORKS,
    PROJECT_TEMPLATES,
)
from app.packages.workspace.core.exceptions import AppException, NotFoundError, UnauthorizedError
from app.packages.workspace.core.timezone import now as tz_now
from app.packages.workspace.crud.project import project_crud
from app.packages.workspace.models.project import Project

if TYPE_CHECKING:
    from app.packages.workspace.services.file_store import FileRecordStore

_SLUG_RE = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    base = _SLUG_RE.sub("-", (name or "").strip().lower()).strip("-") or "project"
    return f"{base}-{uuid.uuid4().hex[:6]}"


class ProjectStore:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get_by_id(self, project_id: int) -> Project:
        project = project_crud.get(self.db, project_id)
        if project is None:
            raise NotFoundError("项目不存在")
        return project

    def list_by_owner(self, owner_id: int) -> list[Project]:
        return project_crud.list_by_owner(self.db, owner_id=owner_id)

    def create(
        self,
        *,
        owner_id: int,
        name: str,
        description: str = "",
        template: str = "react",
        framework: str = "react",
        auto_save: bool = True,
    ) -> Project:
        name = (name or "").strip()
        if not name:
            raise AppException("项目名称不能为空", HTTP_STATUS_BAD_REQUEST)
        if template not in PROJECT_TEMPLATES:
            raise AppException(f"不支持的模板: {template}", HTTP_STATUS_BAD_REQUEST)
        if framework not in PROJECT_FRAMEWORKS:
            raise AppException(f"不支持的框架: {framework}", HTTP_STATUS_BAD_REQUEST)
        return project_crud.create(
            self.db,
            {
                "slug": slugify(name),
                "name": name,
                "description": description or "",
                "owner_id": owner_id,
                "template": template,
                "framework": framework,
                "auto_save": auto_save,
            },
        )

    @staticmethod
    def ensure_owner(project: Project, user_id: Optional[int]) -> Project:
        if user_id is None or project.owner_id != user_id:
            raise UnauthorizedError()
        return project

    def get_owned(self, project_id: int, user_id: Optional[int]) -> Project:
        return self.ensure_owner(self.get_by_id(project_id), user_id)

    def update(
        self,
        project: Project,
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
        auto_save: Optional[bool] = None,
    ) -> Project:
        """部分更新：未传入的字段保持不变。"""
        if name is not None:
            name = name.strip()
            if not name:
                raise AppException("项目名称不能为空", HTTP_STATUS_BAD_REQUEST)
            project.name = name
        if description is not None:
            project.description = description
        if auto_save is not None:
            project.auto_save = auto_save
        return project_crud.save(self.db, project)

    def delete(self, project: Project, files: FileRecordStore) -> int:
        """删除项目及其全部文件记录与内容，返回删除的节点数。

        从顶层节点（以及父目录已不存在的节点）开始逐棵级联删除，文件内容随记录一起清理。
        """
        nodes = files.list_by_project(project.id)
        node_ids = {node.id for node in nodes}
        removed: set[int] = set()
        for node in nodes:
            if node.id in removed:
                continue
            if node.parent_id is None or node.parent_id not in node_ids:
                removed.update(n.id for n in files.delete(node.id))
        project_crud.hard_delete(self.db, project)
        return len(removed)

    def touch(self, project: Project, *, auto_commit: bool = True) -> Project:
        project.update_time = tz_now()
        return project_crud.save(self.db, project, auto_commit=auto_commit)
