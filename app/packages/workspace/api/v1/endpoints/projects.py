"""项目、文件树与保存流程相关的路由定义。"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.packages.workspace.api.v1.schemas.projects import (
    OperationListResponse,
    ProjectCreateRequest,
    ProjectDeleteResponse,
    ProjectListResponse,
    ProjectResponse,
    ProjectUpdateRequest,
    SessionResponse,
    SnapshotRequest,
    TreeResponse,
)
from app.packages.workspace.core.dependencies import get_current_user_id, get_db
from app.packages.workspace.core.responses import create_response
from app.packages.workspace.services.workspace_service import workspace_service

router = APIRouter(prefix="/projects", tags=["projects"])


@router.post("", response_model=ProjectResponse)
def create_project(
    payload: ProjectCreateRequest,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    data = workspace_service.create_project(db, owner_id=user_id, payload=payload.model_dump())
    return create_response("项目创建成功", data)


@router.get("", response_model=ProjectListResponse)
def list_projects(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    return create_response("获取项目列表成功", workspace_service.list_projects(db, owner_id=user_id))


@router.get("/{project_id}", response_model=ProjectResponse)
def get_project(
    project_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    return create_response("获取项目成功", workspace_service.get_project(db, project_id=project_id, user_id=user_id))


@router.put("/{project_id}", response_model=ProjectResponse)
def update_project(
    project_id: int,
    payload: ProjectUpdateRequest,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    data = workspace_service.update_project(
        db, project_id=project_id, user_id=user_id, payload=payload.model_dump(exclude_none=True)
    )
    return create_response("项目更新成功", data)


@router.delete("/{project_id}", response_model=ProjectDeleteResponse)
def delete_project(
    project_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    """删除项目：关闭编辑会话，并级联删除全部文件记录及其内容。"""
    data = workspace_service.delete_project(db, project_id=project_id, user_id=user_id)
    return create_response("项目删除成功", data)


@router.get("/{project_id}/tree", response_model=TreeResponse)
def get_project_tree(
    project_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    """返回嵌套文件树与扁平 path -> content 映射（空目录带占位条目）。"""
    data = workspace_service.load_tree(db, project_id=project_id, user_id=user_id)
    return create_response("获取文件树成功", data)


@router.put("/{project_id}/snapshot", response_model=OperationListResponse)
def save_snapshot(
    project_id: int,
    payload: SnapshotRequest,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    """手动保存：立即执行一轮对账，已有对账进行中时返回 409。"""
    ops = workspace_service.save_snapshot(db, project_id=project_id, user_id=user_id, snapshot=payload.files)
    return create_response("保存成功", ops)


@router.post("/{project_id}/snapshot/initial", response_model=OperationListResponse)
def initial_sync(
    project_id: int,
    payload: SnapshotRequest,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    ops = workspace_service.initial_sync(db, project_id=project_id, user_id=user_id, snapshot=payload.files)
    return create_response("初始同步完成", ops)


@router.post("/{project_id}/snapshot/changes", response_model=SessionResponse)
def notify_snapshot_change(
    project_id: int,
    payload: SnapshotRequest,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    """记录最新快照并重置自动保存计时器。"""
    data = workspace_service.notify_change(db, project_id=project_id, user_id=user_id, snapshot=payload.files)
    return create_response("变更已记录", data)


@router.get("/{project_id}/session", response_model=SessionResponse)
def get_session(
    project_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    return create_response("获取会话状态成功", workspace_service.session_status(db, project_id=project_id, user_id=user_id))


@router.delete("/{project_id}/session", response_model=SessionResponse)
def close_session(
    project_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    data = workspace_service.close_session(db, project_id=project_id, user_id=user_id)
    return create_response("会话已关闭", data)
