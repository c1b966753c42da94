"""ORM 模型集合，导入即可注册到 ``Base.metadata``。"""

from app.packages.workspace.models.base import Base
from app.packages.workspace.models.file_node import FileNode
from app.packages.workspace.models.project import Project

__all__ = ["Base", "FileNode", "Project"]
