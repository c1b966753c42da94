"""文件树节点模型（文件与目录合并）。

存储规则：
- parent_id 指向同一项目下的目录节点，NULL 表示位于根目录；
- name 为基名，不含 '/'，同一父目录下唯一；
- type 为 "file" 或 "folder"；
- 对于文件：content_ref/size_in_bytes/language 有意义；content_ref 在首次写入内容前为 NULL；
- 路径不入库，由 parent_id 链推导。
"""

from typing import Optional

from sqlalchemy import BigInteger, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.packages.workspace.core.constants import DEFAULT_LANGUAGE, NODE_TYPE_FOLDER
from app.packages.workspace.models.base import Base, TimestampMixin


class FileNode(TimestampMixin, Base):
    __tablename__ = "file_nodes"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    project_id: Mapped[int] = mapped_column(Integer, ForeignKey("projects.id"), index=True)
    parent_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    name: Mapped[str] = mapped_column(String(255), index=True)
    type: Mapped[str] = mapped_column(String(16), index=True)
    # 对象存储 key：projects/{project_id}/files/{suffix}-{name}
    content_ref: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    size_in_bytes: Mapped[int] = mapped_column(BigInteger, default=0)
    language: Mapped[str] = mapped_column(String(32), default=DEFAULT_LANGUAGE)

    # 根目录下 parent_id 为 NULL，数据库层面的唯一约束对 NULL 不生效，
    # 同级唯一性最终由 FileRecordStore 校验。
    __table_args__ = (
        UniqueConstraint("project_id", "parent_id", "name", name="uq_file_nodes_sibling_name"),
    )

    @property
    def is_folder(self) -> bool:
        return self.type == NODE_TYPE_FOLDER

    def __repr__(self) -> str:
        return f"<FileNode id={self.id} parent={self.parent_id} name={self.name!r} type={self.type}>"
