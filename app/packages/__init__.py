"""业务包目录。"""
