"""在线代码编辑器工作区：项目、文件树与快照保存。"""
