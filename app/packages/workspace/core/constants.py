"""常量定义：HTTP 状态码、节点类型以及编辑器约定的特殊标记。"""

from fastapi import status

HTTP_STATUS_OK = status.HTTP_200_OK
HTTP_STATUS_BAD_REQUEST = status.HTTP_400_BAD_REQUEST

NODE_TYPE_FILE = "file"
NODE_TYPE_FOLDER = "folder"

DEFAULT_LANGUAGE = "javascript"

# 编辑器用特殊内容表示“文件夹”，这类条目永远不会作为真实文件保存
FOLDER_MARKER = "//#folder#//"

# 空目录占位文件：仅用于让编辑器显示空目录，不入库
PLACEHOLDER_NAME = ".tempdata"
PLACEHOLDER_CONTENT = (
    "# This is a temporary placeholder file\n"
    "# It exists only to make empty folders visible in the editor\n"
    "# This file will NOT be saved to your project\n"
    "# You can safely ignore or delete this file after adding content to the folder\n"
)

# 语言标签 -> 对象存储 Content-Type
CONTENT_TYPES = {
    "javascript": "application/javascript",
    "jsx": "application/javascript",
    "typescript": "application/typescript",
    "tsx": "application/typescript",
    "html": "text/html",
    "css": "text/css",
    "json": "application/json",
    "markdown": "text/markdown",
    "python": "text/x-python",
    "java": "text/x-java",
}
DEFAULT_CONTENT_TYPE = "text/plain"

# 文件扩展名 -> 语言标签
EXTENSION_LANGUAGES = {
    "js": "javascript",
    "mjs": "javascript",
    "cjs": "javascript",
    "jsx": "jsx",
    "ts": "typescript",
    "tsx": "tsx",
    "html": "html",
    "htm": "html",
    "css": "css",
    "json": "json",
    "md": "markdown",
    "py": "python",
    "java": "java",
}

PROJECT_TEMPLATES = (
    "react",
    "react-ts",
    "vanilla",
    "vanilla-ts",
    "vue",
    "vue-ts",
    "angular",
    "svelte",
    "node",
)
PROJECT_FRAMEWORKS = ("react", "vue", "angular", "vanilla")

USER_ID_HEADER = "X-User-Id"
