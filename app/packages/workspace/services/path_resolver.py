"""路径解析：根据 parent_id 链推导节点的规范路径。

节点以扁平列表给出，parent_id 是“弱引用”。解析时先构建一次 id -> node 映射，
之后每个节点只需 O(depth) 次字典查找。

容错规则（解析过程永不抛异常）：
- parent_id 悬空：停止向上回溯，已收集的部分即为路径；
- 出现环或层级超过 max_depth：回退为根级路径 ``/name``。
"""

from __future__ import annotations

from typing import Iterable, Optional, Protocol

from app.packages.workspace.core.logger import logger

DEFAULT_MAX_DEPTH = 256


class TreeNode(Protocol):
    id: int
    parent_id: Optional[int]
    name: str
    type: str


class PathResolver:
    def __init__(self, nodes: Iterable[TreeNode], *, max_depth: int = DEFAULT_MAX_DEPTH) -> None:
        self.max_depth = max_depth
        self._by_id: dict[int, TreeNode] = {}
        for node in nodes:
            self._by_id.setdefault(node.id, node)
        self._cache: dict[int, str] = {}

    def add(self, node: TreeNode) -> None:
        """登记本轮新建的节点（例如刚物化出来的目录）。"""
        self._by_id[node.id] = node

    def get(self, node_id: Optional[int]) -> Optional[TreeNode]:
        if node_id is None:
            return None
        return self._by_id.get(node_id)

    def invalidate(self) -> None:
        self._cache.clear()

    def resolve(self, node: TreeNode) -> str:
        cached = self._cache.get(node.id)
        if cached is not None:
            return cached

        parts = [node.name]
        seen = {node.id}
        parent_id = node.parent_id
        while parent_id is not None:
            if parent_id in seen or len(parts) > self.max_depth:
                logger.warning(
                    "path_resolver.cycle node_id=%s parent_id=%s depth=%s", node.id, parent_id, len(parts)
                )
                parts = [node.name]
                break
            parent = self._by_id.get(parent_id)
            if parent is None:
                logger.debug("path_resolver.dangling_parent node_id=%s parent_id=%s", node.id, parent_id)
                break
            seen.add(parent_id)
            parts.append(parent.name)
            parent_id = parent.parent_id

        path = "/" + "/".join(reversed(parts))
        self._cache[node.id] = path
        return path


def resolve_path(node: TreeNode, all_nodes: Iterable[TreeNode], *, max_depth: int = DEFAULT_MAX_DEPTH) -> str:
    """单次解析的便捷函数；批量解析请复用 ``PathResolver``。"""
    return PathResolver(all_nodes, max_depth=max_depth).resolve(node)
