"""文件记录存储：文件/目录节点的增删改查，并同步维护对象存储中的文件内容。

约束（由本模块统一校验，不依赖数据库唯一索引对 NULL 的行为）：
- 名称非空且不含 '/'；
- 同一父目录下名称唯一（ConflictError）；
- 父节点必须存在（NotFoundError）、属于同一项目、且类型为目录；
- 目录移动不得形成环（ConflictError）。

删除目录时按显式栈展开整棵子树，先删文件内容再删记录，子节点先于父节点删除。
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterable, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.packages.workspace.core.constants import (
    DEFAULT_LANGUAGE,
    HTTP_STATUS_BAD_REQUEST,
    NODE_TYPE_FILE,
    NODE_TYPE_FOLDER,
)
from app.packages.workspace.core.exceptions import (
    AppException,
    ConflictError,
    NotFoundError,
    StoreFailure,
)
from app.packages.workspace.core.logger import logger
from app.packages.workspace.crud.file_node import file_node_crud
from app.packages.workspace.crud.project import project_crud
from app.packages.workspace.models.file_node import FileNode
from app.packages.workspace.services.blob_store import BlobStore, build_blob_key, content_type_for
from app.packages.workspace.services.project_store import ProjectStore

_UNSET = object()


class FileRecordStore:
    def __init__(self, db: Session, blob_store: BlobStore) -> None:
        self.db = db
        self.blob_store = blob_store

    # ----------------------------
    # 查询
    # ----------------------------
    def get(self, node_id: int) -> FileNode:
        node = file_node_crud.get(self.db, node_id)
        if node is None:
            raise NotFoundError("文件或目录不存在")
        return node

    def list_by_project(self, project_id: int) -> list[FileNode]:
        return file_node_crud.list_by_project(self.db, project_id=project_id)

    def children(self, folder_id: int) -> list[FileNode]:
        folder = self.get(folder_id)
        if folder.type != NODE_TYPE_FOLDER:
            raise AppException("目标不是文件夹", HTTP_STATUS_BAD_REQUEST)
        return file_node_crud.list_children(self.db, parent_id=folder_id)

    def read_content(self, node: FileNode) -> str:
        if node.type != NODE_TYPE_FILE or not node.content_ref:
            return ""
        return self.blob_store.get(node.content_ref)

    def load_contents(self, nodes: Iterable[FileNode], *, tolerant: bool = False) -> dict[int, str]:
        """批量读取文件内容。

        tolerant=True 用于列表展示：单个文件读取失败时记录错误并回退为空串；
        对账时必须使用默认值，让失败向上传播。
        """
        contents: dict[int, str] = {}
        for node in nodes:
            if node.type != NODE_TYPE_FILE:
                continue
            if not tolerant:
                contents[node.id] = self.read_content(node)
                continue
            try:
                contents[node.id] = self.read_content(node)
            except AppException:
                logger.exception("Error fetching content for file %s (id=%s)", node.name, node.id)
                contents[node.id] = ""
        return contents

    # ----------------------------
    # 变更
    # ----------------------------
    def create(
        self,
        project_id: int,
        parent_id: Optional[int],
        name: str,
        type: str,
        content: Optional[str] = None,
        language: Optional[str] = None,
    ) -> FileNode:
        name = self._validate_name(name)
        if type not in (NODE_TYPE_FILE, NODE_TYPE_FOLDER):
            raise AppException("节点类型无效", HTTP_STATUS_BAD_REQUEST)
        if project_crud.get(self.db, project_id) is None:
            raise NotFoundError("项目不存在")
        if parent_id is not None:
            self._require_folder(parent_id, project_id)
        self._ensure_name_free(project_id, parent_id, name)

        language = language or DEFAULT_LANGUAGE
        content_ref: Optional[str] = None
        size = 0
        if type == NODE_TYPE_FILE and content is not None:
            content_ref = build_blob_key(project_id, name)
            self.blob_store.put(content_ref, content, content_type_for(language))
            size = len(content.encode("utf-8"))

        payload = {
            "project_id": project_id,
            "parent_id": parent_id,
            "name": name,
            "type": type,
            "content_ref": content_ref,
            "size_in_bytes": size,
            "language": language,
        }
        try:
            with self._db_guard():
                node = file_node_crud.create(self.db, payload)
        except AppException:
            if content_ref:
                self._discard_blob(content_ref)
            raise
        logger.debug("file_store.create id=%s parent=%s name=%s type=%s", node.id, parent_id, name, type)
        return node

    def update(
        self,
        node_id: int,
        *,
        name: Optional[str] = None,
        parent_id=_UNSET,
        content: Optional[str] = None,
        language: Optional[str] = None,
    ) -> FileNode:
        node = self.get(node_id)

        target_name = node.name if name is None else self._validate_name(name)
        target_parent = node.parent_id if parent_id is _UNSET else parent_id
        if parent_id is not _UNSET and parent_id is not None:
            self._require_folder(parent_id, node.project_id)
            if node.type == NODE_TYPE_FOLDER:
                self._ensure_no_cycle(node, parent_id)
        if target_name != node.name or target_parent != node.parent_id:
            self._ensure_name_free(node.project_id, target_parent, target_name, exclude_id=node.id)

        node.name = target_name
        node.parent_id = target_parent
        if language:
            node.language = language

        content_changed = node.type == NODE_TYPE_FILE and content is not None
        if content_changed:
            if not node.content_ref:
                node.content_ref = build_blob_key(node.project_id, node.name)
            self.blob_store.put(node.content_ref, content, content_type_for(node.language))
            node.size_in_bytes = len(content.encode("utf-8"))

        with self._db_guard():
            if content_changed:
                self._touch_project(node.project_id)
            return file_node_crud.save(self.db, node)

    def delete(self, node_id: int) -> list[FileNode]:
        """删除节点；目录级联删除所有后代。返回实际删除的节点（子先父后）。"""
        root = self.get(node_id)
        ordered: list[FileNode] = []
        stack = [root]
        while stack:
            current = stack.pop()
            ordered.append(current)
            if current.type == NODE_TYPE_FOLDER:
                stack.extend(file_node_crud.list_children(self.db, parent_id=current.id))

        # ordered 为先序，反转后子节点一定先于其父目录
        for node in reversed(ordered):
            if node.type == NODE_TYPE_FILE and node.content_ref:
                self.blob_store.delete(node.content_ref)
            with self._db_guard():
                file_node_crud.hard_delete(self.db, node)
        logger.debug("file_store.delete id=%s removed=%s", node_id, len(ordered))
        return list(reversed(ordered))

    # ----------------------------
    # 工具方法
    # ----------------------------
    @staticmethod
    def _validate_name(name: Optional[str]) -> str:
        # 名称原样保存，与 path_segments 切出的路径段一致
        name = name or ""
        if not name.strip():
            raise AppException("名称不能为空", HTTP_STATUS_BAD_REQUEST)
        if "/" in name:
            raise AppException("名称不能包含 '/'", HTTP_STATUS_BAD_REQUEST)
        return name

    def _require_folder(self, parent_id: int, project_id: int) -> FileNode:
        parent = file_node_crud.get(self.db, parent_id)
        if parent is None:
            raise NotFoundError("父目录不存在")
        if parent.project_id != project_id:
            raise AppException("不能移动到其他项目", HTTP_STATUS_BAD_REQUEST)
        if parent.type != NODE_TYPE_FOLDER:
            raise ConflictError("父节点必须是文件夹")
        return parent

    def _ensure_name_free(
        self,
        project_id: int,
        parent_id: Optional[int],
        name: str,
        *,
        exclude_id: Optional[int] = None,
    ) -> None:
        existing = file_node_crud.find_sibling(self.db, project_id=project_id, parent_id=parent_id, name=name)
        if existing is not None and existing.id != exclude_id:
            raise ConflictError("同名文件或文件夹已存在", {"name": name, "parentId": parent_id})

    def _ensure_no_cycle(self, folder: FileNode, new_parent_id: int) -> None:
        cursor: Optional[int] = new_parent_id
        seen: set[int] = set()
        while cursor is not None and cursor not in seen:
            if cursor == folder.id:
                raise ConflictError("不能将目录移动到其自身或子目录中")
            seen.add(cursor)
            ancestor = file_node_crud.get(self.db, cursor)
            cursor = ancestor.parent_id if ancestor is not None else None

    def _touch_project(self, project_id: int) -> None:
        project = project_crud.get(self.db, project_id)
        if project is not None:
            ProjectStore(self.db).touch(project, auto_commit=False)

    def _discard_blob(self, key: str) -> None:
        try:
            self.blob_store.delete(key)
        except AppException:
            logger.warning("Failed to discard orphan blob %s", key, exc_info=True)

    @contextmanager
    def _db_guard(self):
        try:
            yield
        except IntegrityError as exc:
            self.db.rollback()
            raise ConflictError("同名文件或文件夹已存在") from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StoreFailure(f"数据库操作失败: {exc}") from exc
