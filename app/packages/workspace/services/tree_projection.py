"""树形投影：把持久化的扁平节点列表转换为编辑器需要的两种视图。

- hierarchy：目录在前、文件在后，同组内按名称（区分大小写）排序的嵌套树；
- flat：path -> content 映射，空目录以 ``<path>/.tempdata`` 占位条目呈现。

占位条目只用于显示，回传到对账引擎时会被过滤掉。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional

from app.packages.workspace.core.constants import (
    NODE_TYPE_FILE,
    NODE_TYPE_FOLDER,
    PLACEHOLDER_CONTENT,
    PLACEHOLDER_NAME,
)
from app.packages.workspace.models.file_node import FileNode
from app.packages.workspace.services.path_resolver import DEFAULT_MAX_DEPTH, PathResolver
from app.packages.workspace.utils.path_utils import join_path


@dataclass
class TreeItem:
    id: int
    name: str
    type: str
    path: str
    parent_id: Optional[int]
    language: Optional[str] = None
    size_in_bytes: int = 0
    children: list["TreeItem"] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "path": self.path,
            "parentId": self.parent_id,
        }
        if self.type == NODE_TYPE_FILE:
            payload["language"] = self.language
            payload["sizeInBytes"] = self.size_in_bytes
        else:
            payload["children"] = [child.to_dict() for child in self.children]
        return payload


@dataclass
class TreeProjection:
    hierarchy: list[TreeItem]
    flat: dict[str, str]

    def to_dict(self) -> dict[str, Any]:
        return {"hierarchy": [item.to_dict() for item in self.hierarchy], "files": dict(self.flat)}


def _sort_key(item: TreeItem) -> tuple[bool, str]:
    return (item.type != NODE_TYPE_FOLDER, item.name)


def project(
    nodes: Iterable[FileNode],
    contents: Mapping[int, str],
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> TreeProjection:
    unique: dict[int, FileNode] = {}
    for node in nodes:
        unique.setdefault(node.id, node)

    resolver = PathResolver(unique.values(), max_depth=max_depth)
    items = {
        node.id: TreeItem(
            id=node.id,
            name=node.name,
            type=node.type,
            path=resolver.resolve(node),
            parent_id=node.parent_id,
            language=node.language,
            size_in_bytes=int(node.size_in_bytes or 0),
        )
        for node in unique.values()
    }

    roots: list[TreeItem] = []
    for item in items.values():
        parent = items.get(item.parent_id) if item.parent_id is not None else None
        if parent is not None and parent.type == NODE_TYPE_FOLDER:
            parent.children.append(item)
        else:
            roots.append(item)

    # 逐层排序，避免深层目录递归
    roots.sort(key=_sort_key)
    stack = list(roots)
    while stack:
        item = stack.pop()
        if item.children:
            item.children.sort(key=_sort_key)
            stack.extend(item.children)

    flat: dict[str, str] = {}
    for item in items.values():
        if item.type == NODE_TYPE_FILE:
            flat[item.path] = contents.get(item.id) or ""
        elif not item.children:
            flat[join_path(item.path, PLACEHOLDER_NAME)] = PLACEHOLDER_CONTENT
    return TreeProjection(hierarchy=roots, flat=flat)
