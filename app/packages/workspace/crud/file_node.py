"""FileNode CRUD。"""

from __future__ import annotations

from typing import List, Optional

from sqlalchemy.orm import Session

from app.packages.workspace.crud.base import CRUDBase
from app.packages.workspace.models.file_node import FileNode


class CRUDFileNode(CRUDBase[FileNode]):
    def list_by_project(self, db: Session, *, project_id: int) -> List[FileNode]:
        return (
            self.query(db)
            .filter(FileNode.project_id == project_id)
            .order_by(FileNode.id.asc())
            .all()
        )

    def list_children(self, db: Session, *, parent_id: int) -> List[FileNode]:
        return (
            self.query(db)
            .filter(FileNode.parent_id == parent_id)
            .order_by(FileNode.id.asc())
            .all()
        )

    def find_sibling(
        self,
        db: Session,
        *,
        project_id: int,
        parent_id: Optional[int],
        name: str,
    ) -> Optional[FileNode]:
        query = self.query(db).filter(FileNode.project_id == project_id).filter(FileNode.name == name)
        if parent_id is None:
            query = query.filter(FileNode.parent_id.is_(None))
        else:
            query = query.filter(FileNode.parent_id == parent_id)
        return query.first()


file_node_crud = CRUDFileNode(FileNode)
