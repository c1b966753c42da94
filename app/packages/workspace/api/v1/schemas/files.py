"""文件节点响应模型。"""

from typing import List, Optional

from pydantic import BaseModel

from app.packages.workspace.api.v1.schemas.common import ResponseEnvelope


class FileNodeData(BaseModel):
    id: int
    projectId: int
    parentId: Optional[int] = None
    name: str
    type: str
    path: str
    language: Optional[str] = None
    sizeInBytes: int = 0
    updateTime: Optional[str] = None
    content: Optional[str] = None


FileNodeResponse = ResponseEnvelope[FileNodeData]
FileNodeListResponse = ResponseEnvelope[List[FileNodeData]]
