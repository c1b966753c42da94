"""文件节点读取路由。"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.packages.workspace.api.v1.schemas.files import FileNodeListResponse, FileNodeResponse
from app.packages.workspace.core.dependencies import get_current_user_id, get_db
from app.packages.workspace.core.responses import create_response
from app.packages.workspace.services.workspace_service import workspace_service

router = APIRouter(prefix="/files", tags=["files"])


@router.get("/{node_id}", response_model=FileNodeResponse)
def get_file(
    node_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    """返回节点元数据与文件内容（目录的 content 为 null）。"""
    return create_response("获取文件成功", workspace_service.get_file(db, node_id=node_id, user_id=user_id))


@router.get("/{node_id}/children", response_model=FileNodeListResponse)
def list_folder_children(
    node_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    data = workspace_service.list_children(db, folder_id=node_id, user_id=user_id)
    return create_response("获取子节点成功", data)
