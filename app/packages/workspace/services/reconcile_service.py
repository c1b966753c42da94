"""文件树对账引擎：把编辑器的扁平快照（path -> content）合并到持久化的节点树。

一次对账分三个阶段：

Pass A（认领）
    遍历快照中的真实文件条目，先按规范路径精确匹配，失败时按内容指纹取第一个
    尚未被认领的节点。每个节点最多被一个条目认领。

Pass B（删除）
    所有未被认领的已持久化文件节点被删除（记录 + 对象存储内容）。删除严格先于
    Pass C，因此重命名到“即将被删除的文件”的路径不会触发同名冲突。

Pass C（应用）
    按快照原始顺序处理条目：已认领且路径变化 -> 重命名/移动；内容变化 -> 更新内容；
    未认领 -> 物化目录后创建新文件。每个条目的多个步骤执行完毕后才处理下一个条目。

以下条目在所有阶段都会被跳过，永远不会成为真实文件：
- 内容为 None（快照不完整）；
- 内容是编辑器的目录标记 ``//#folder#//``；
- 最后一级名称为空目录占位文件 ``.tempdata``。

任何存储调用失败都会中止本轮剩余工作并向上抛出，引擎内部不做重试。由于匹配只依赖
调用时的持久化状态，调用方重新发起一次完整对账即可收敛到相同结果。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional, Sequence

from app.packages.workspace.core.constants import (
    DEFAULT_LANGUAGE,
    NODE_TYPE_FILE,
    PLACEHOLDER_NAME,
)
from app.packages.workspace.core.logger import get_logger
from app.packages.workspace.core.timezone import elapsed_ms, monotonic_ms
from app.packages.workspace.models.file_node import FileNode
from app.packages.workspace.services.file_store import FileRecordStore
from app.packages.workspace.services.fingerprint_index import (
    DEFAULT_FINGERPRINT_LENGTH,
    FingerprintIndex,
)
from app.packages.workspace.services.folder_materializer import FolderMaterializer
from app.packages.workspace.services.path_resolver import DEFAULT_MAX_DEPTH, PathResolver
from app.packages.workspace.utils.path_utils import (
    is_folder_marker,
    is_placeholder_path,
    language_for_name,
    norm_abs_path,
    split_path,
)

logger = get_logger("reconcile")

OP_MKDIR = "mkdir"
OP_CREATE = "create"
OP_UPDATE = "update"
OP_RENAME = "rename"
OP_MOVE = "move"
OP_DELETE = "delete"


@dataclass(frozen=True)
class AppliedOperation:
    kind: str
    node_id: int
    path: str
    detail: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"op": self.kind, "nodeId": self.node_id, "path": self.path, **self.detail}


class ReconciliationEngine:
    def __init__(
        self,
        store: FileRecordStore,
        *,
        fingerprint_length: int = DEFAULT_FINGERPRINT_LENGTH,
        max_depth: int = DEFAULT_MAX_DEPTH,
        should_continue: Optional[Callable[[], bool]] = None,
    ) -> None:
        self.store = store
        self.fingerprint_length = fingerprint_length
        self.max_depth = max_depth
        self.should_continue = should_continue or (lambda: True)

    def reconcile(
        self,
        desired: Mapping[str, Optional[str]],
        persisted: Sequence[FileNode],
        project_id: int,
        contents: Optional[Mapping[int, str]] = None,
    ) -> list[AppliedOperation]:
        if contents is None:
            contents = self.store.load_contents(persisted)

        entries = self._real_entries(desired)
        resolver = PathResolver(persisted, max_depth=self.max_depth)
        index = FingerprintIndex.build(
            (n for n in persisted if n.name != PLACEHOLDER_NAME),
            contents,
            resolver,
            fingerprint_length=self.fingerprint_length,
        )
        ops: list[AppliedOperation] = []
        logger.info(
            "reconcile.start project_id=%s desired=%s persisted=%s", project_id, len(entries), len(persisted)
        )

        def _on_mkdir(folder: FileNode) -> None:
            resolver.add(folder)
            ops.append(AppliedOperation(OP_MKDIR, folder.id, resolver.resolve(folder)))

        # 目录索引必须在 Pass B 删除记录之前建立
        materializer = FolderMaterializer(self.store, project_id, persisted, on_create=_on_mkdir)

        started = monotonic_ms()
        try:
            claims = self._claim(entries, index)
            if not self._delete_unclaimed(persisted, claims, resolver, ops):
                logger.info("reconcile.cancelled project_id=%s applied=%s", project_id, len(ops))
                return ops

            for path, content in entries:
                if not self.should_continue():
                    logger.info("reconcile.cancelled project_id=%s applied=%s", project_id, len(ops))
                    return ops
                node = claims.get(path)
                if node is None:
                    self._create(project_id, path, content, materializer, ops)
                else:
                    self._apply_claimed(node, path, content, contents.get(node.id, ""), materializer, resolver, ops)
        except Exception:
            logger.exception("reconcile.failed project_id=%s applied=%s", project_id, len(ops))
            raise

        logger.info(
            "reconcile.done project_id=%s applied=%s elapsed_ms=%s", project_id, len(ops), elapsed_ms(started)
        )
        return ops

    # ----------------------------
    # 快照预处理
    # ----------------------------
    @staticmethod
    def _real_entries(desired: Mapping[str, Optional[str]]) -> list[tuple[str, str]]:
        entries: list[tuple[str, str]] = []
        seen: set[str] = set()
        for raw_path, content in desired.items():
            if not isinstance(content, str):
                logger.warning("reconcile.skip_invalid path=%s", raw_path)
                continue
            path = norm_abs_path(raw_path)
            if path == "/" or is_placeholder_path(path) or is_folder_marker(content):
                continue
            if path in seen:
                logger.warning("reconcile.skip_duplicate path=%s", raw_path)
                continue
            seen.add(path)
            entries.append((path, content))
        return entries

    # ----------------------------
    # Pass A / Pass B
    # ----------------------------
    @staticmethod
    def _claim(entries: Sequence[tuple[str, str]], index: FingerprintIndex) -> dict[str, FileNode]:
        claims: dict[str, FileNode] = {}
        claimed_ids: set[int] = set()
        for path, content in entries:
            node = index.match_path(path, claimed_ids) or index.take_unclaimed(content, claimed_ids)
            if node is not None:
                claims[path] = node
                claimed_ids.add(node.id)
        return claims

    def _delete_unclaimed(
        self,
        persisted: Sequence[FileNode],
        claims: Mapping[str, FileNode],
        resolver: PathResolver,
        ops: list[AppliedOperation],
    ) -> bool:
        claimed_ids = {node.id for node in claims.values()}
        for node in persisted:
            if node.type != NODE_TYPE_FILE or node.id in claimed_ids:
                continue
            if not self.should_continue():
                return False
            path = resolver.resolve(node)
            self.store.delete(node.id)
            ops.append(AppliedOperation(OP_DELETE, node.id, path))
            logger.debug("reconcile.delete id=%s path=%s", node.id, path)
        return True

    # ----------------------------
    # Pass C
    # ----------------------------
    def _create(
        self,
        project_id: int,
        path: str,
        content: str,
        materializer: FolderMaterializer,
        ops: list[AppliedOperation],
    ) -> None:
        segments, name = split_path(path)
        parent_id = materializer.ensure_folder_path(segments)
        node = self.store.create(
            project_id,
            parent_id,
            name,
            NODE_TYPE_FILE,
            content=content,
            language=language_for_name(name, DEFAULT_LANGUAGE),
        )
        ops.append(AppliedOperation(OP_CREATE, node.id, path))
        logger.debug("reconcile.create id=%s path=%s", node.id, path)

    def _apply_claimed(
        self,
        node: FileNode,
        path: str,
        content: str,
        persisted_content: str,
        materializer: FolderMaterializer,
        resolver: PathResolver,
        ops: list[AppliedOperation],
    ) -> None:
        old_path = resolver.resolve(node)
        if old_path != path:
            segments, name = split_path(path)
            new_parent_id = materializer.ensure_folder_path(segments)
            old_name, old_parent_id = node.name, node.parent_id
            changes: dict[str, Any] = {}
            if name != old_name:
                changes["name"] = name
            if new_parent_id != old_parent_id:
                changes["parent_id"] = new_parent_id
            if changes:
                # 名称与父目录一次提交，避免中间状态在旧/新目录里撞名
                self.store.update(node.id, **changes)
                resolver.invalidate()
                if "name" in changes:
                    ops.append(AppliedOperation(OP_RENAME, node.id, path, {"from": old_name, "to": name}))
                if "parent_id" in changes:
                    ops.append(
                        AppliedOperation(
                            OP_MOVE, node.id, path, {"fromParentId": old_parent_id, "toParentId": new_parent_id}
                        )
                    )
                logger.debug("reconcile.relocate id=%s %s -> %s", node.id, old_path, path)

        if content == "" and persisted_content:
            logger.info("reconcile.skip_empty_overwrite id=%s path=%s", node.id, path)
            return
        if content != persisted_content:
            self.store.update(node.id, content=content)
            ops.append(AppliedOperation(OP_UPDATE, node.id, path))
            logger.debug("reconcile.update id=%s path=%s", node.id, path)
