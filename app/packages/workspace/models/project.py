"""项目模型：一个项目对应编辑器中的一棵文件树。"""

from sqlalchemy import Boolean, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import expression

from app.packages.workspace.models.base import Base, TimestampMixin


class Project(TimestampMixin, Base):
    __tablename__ = "projects"
    __table_args__ = (
        UniqueConstraint("slug", name="uq_projects_slug"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    slug: Mapped[str] = mapped_column(String(128), index=True)
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[str] = mapped_column(Text, default="", server_default="")
    # 归属用户；鉴权层在调用核心逻辑前完成比对
    owner_id: Mapped[int] = mapped_column(Integer, index=True)
    template: Mapped[str] = mapped_column(String(32), default="react", server_default="react")
    framework: Mapped[str] = mapped_column(String(32), default="react", server_default="react")
    auto_save: Mapped[bool] = mapped_column(Boolean, default=True, server_default=expression.true())
