"""Project CRUD。"""

from __future__ import annotations

from typing import List

from sqlalchemy.orm import Session

from app.packages.workspace.crud.base import CRUDBase
from app.packages.workspace.models.project import Project


class CRUDProject(CRUDBase[Project]):
    def list_by_owner(self, db: Session, *, owner_id: int) -> List[Project]:
        # 最近更新的在前
        return (
            self.query(db)
            .filter(Project.owner_id == owner_id)
            .order_by(Project.update_time.desc(), Project.id.desc())
            .all()
        )


project_crud = CRUDProject(Project)
