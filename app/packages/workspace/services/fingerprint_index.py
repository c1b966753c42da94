"""指纹索引：支撑“路径不同但身份相同”的文件识别。

- by_path：规范路径 -> 已持久化文件节点（同一路径只保留第一个）；
- by_fingerprint：内容前缀 -> 节点列表（按遍历顺序）。

指纹只是启发式线索：多个文件可能共享同一指纹，匹配时取第一个尚未被认领的节点。
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Container, Iterable, Mapping, Optional

from app.packages.workspace.core.constants import NODE_TYPE_FILE
from app.packages.workspace.core.logger import logger
from app.packages.workspace.services.path_resolver import PathResolver, TreeNode

DEFAULT_FINGERPRINT_LENGTH = 200


def fingerprint(content: str, length: int = DEFAULT_FINGERPRINT_LENGTH) -> str:
    return content[:length]


@dataclass
class FingerprintIndex:
    by_path: dict[str, TreeNode] = field(default_factory=dict)
    by_fingerprint: dict[str, list[TreeNode]] = field(default_factory=lambda: defaultdict(list))
    fingerprint_length: int = DEFAULT_FINGERPRINT_LENGTH

    @classmethod
    def build(
        cls,
        nodes: Iterable[TreeNode],
        contents: Mapping[int, Optional[str]],
        resolver: PathResolver,
        *,
        fingerprint_length: int = DEFAULT_FINGERPRINT_LENGTH,
    ) -> "FingerprintIndex":
        index = cls(fingerprint_length=fingerprint_length)
        for node in nodes:
            if node.type != NODE_TYPE_FILE:
                continue
            path = resolver.resolve(node)
            if path in index.by_path:
                logger.warning(
                    "fingerprint_index.duplicate_path path=%s kept=%s dropped=%s",
                    path, index.by_path[path].id, node.id,
                )
            else:
                index.by_path[path] = node

            content = contents.get(node.id)
            if content:
                index.by_fingerprint[fingerprint(content, fingerprint_length)].append(node)
        return index

    def match_path(self, path: str, claimed: Container[int]) -> Optional[TreeNode]:
        node = self.by_path.get(path)
        if node is None or node.id in claimed:
            return None
        return node

    def take_unclaimed(self, content: str, claimed: Container[int]) -> Optional[TreeNode]:
        for node in self.by_fingerprint.get(fingerprint(content, self.fingerprint_length), ()):
            if node.id not in claimed:
                return node
        return None
