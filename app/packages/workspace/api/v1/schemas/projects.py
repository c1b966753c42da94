"""项目与快照相关的请求/响应模型。"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.packages.workspace.api.v1.schemas.common import ResponseEnvelope


class ProjectCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1, max_length=255, description="项目名称")
    description: str = Field(default="", description="项目描述")
    template: str = Field(default="react", description="项目模板")
    framework: str = Field(default="react", description="前端框架")
    auto_save: bool = Field(default=True, alias="autoSave", description="是否开启自动保存")

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("项目名称不能为空")
        return value


class ProjectUpdateRequest(BaseModel):
    """只更新传入的字段；autoSave 对应编辑器设置中的自动保存开关。"""

    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = Field(default=None, max_length=255, description="项目名称")
    description: Optional[str] = Field(default=None, description="项目描述")
    auto_save: Optional[bool] = Field(default=None, alias="autoSave", description="是否开启自动保存")


class ProjectData(BaseModel):
    id: int
    slug: str
    name: str
    description: str = ""
    ownerId: int
    template: str
    framework: str
    autoSave: bool
    createTime: Optional[str] = None
    updateTime: Optional[str] = None


class ProjectDeleteData(BaseModel):
    id: int
    removedNodes: int


class SnapshotRequest(BaseModel):
    """编辑器提交的扁平快照：path -> content。

    content 允许为 null（表示快照不完整），这类条目在对账时被跳过。
    """

    files: Dict[str, Optional[str]] = Field(default_factory=dict, description="path -> content")


class TreeData(BaseModel):
    hierarchy: List[Dict[str, Any]]
    files: Dict[str, str]


class SessionData(BaseModel):
    sessionId: str
    projectId: int
    reconciling: bool
    autoSaving: bool
    pendingChange: bool
    hasCompletedInitialSync: bool
    closed: bool
    lastSavedAt: Optional[str] = None
    lastError: Optional[str] = None


ProjectResponse = ResponseEnvelope[ProjectData]
ProjectListResponse = ResponseEnvelope[List[ProjectData]]
ProjectDeleteResponse = ResponseEnvelope[ProjectDeleteData]
TreeResponse = ResponseEnvelope[TreeData]
OperationListResponse = ResponseEnvelope[List[Dict[str, Any]]]
SessionResponse = ResponseEnvelope[SessionData]
