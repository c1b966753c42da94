"""Database engine and session factory configuration."""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.packages.workspace.core.config import get_settings

settings = get_settings()


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


# ``echo`` mirrors SQL logs when enabled in settings for easier debugging.
engine = create_engine(
    settings.sql_database_url,
    echo=settings.database_echo,
    **_engine_kwargs(settings.sql_database_url),
)
# 对账过程中每一步都会提交；保留已加载的属性，避免已删除节点在后续遍历时失效
SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
