"""目录物化：确保文件路径隐含的各级目录记录存在。

同一轮对账内新建的目录会被缓存，两个文件共享同一个新目录时只创建一次。
"""

from __future__ import annotations

from typing import Callable, Iterable, Optional, Sequence

from app.packages.workspace.core.constants import NODE_TYPE_FOLDER
from app.packages.workspace.core.logger import logger
from app.packages.workspace.models.file_node import FileNode
from app.packages.workspace.services.file_store import FileRecordStore


class FolderMaterializer:
    def __init__(
        self,
        store: FileRecordStore,
        project_id: int,
        nodes: Iterable[FileNode],
        *,
        on_create: Optional[Callable[[FileNode], None]] = None,
    ) -> None:
        self.store = store
        self.project_id = project_id
        self.on_create = on_create
        self.created: list[FileNode] = []
        self._folders: dict[tuple[Optional[int], str], int] = {}
        for node in nodes:
            if node.type == NODE_TYPE_FOLDER:
                self._folders.setdefault((node.parent_id, node.name), node.id)

    def ensure_folder_path(self, segments: Sequence[str]) -> Optional[int]:
        """返回最深一级目录的 id；空列表表示根目录，返回 None。"""
        parent_id: Optional[int] = None
        for name in segments:
            key = (parent_id, name)
            folder_id = self._folders.get(key)
            if folder_id is None:
                folder = self.store.create(self.project_id, parent_id, name, NODE_TYPE_FOLDER)
                logger.debug("folder_materializer.mkdir id=%s parent=%s name=%s", folder.id, parent_id, name)
                folder_id = folder.id
                self._folders[key] = folder_id
                self.created.append(folder)
                if self.on_create is not None:
                    self.on_create(folder)
            parent_id = folder_id
        return parent_id
