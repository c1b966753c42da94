"""测试夹具：为 pytest 提供数据库、对象存储与客户端的共享配置。"""

import os
from typing import Generator

TEST_DB_PATH = os.path.join(os.path.dirname(__file__), "test.db")
TEST_DATABASE_URL = f"sqlite:///{TEST_DB_PATH}"

# 必须在导入应用之前写入，保证配置缓存拿到测试值
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["STORAGE_PROVIDER"] = "local"
os.environ.setdefault("AUTOSAVE_DELAY_SECONDS", "0.05")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402

from app.main import app  # noqa: E402
from app.packages.workspace.core.dependencies import get_db  # noqa: E402
from app.packages.workspace.db import session as db_session  # noqa: E402
from app.packages.workspace.models.base import Base  # noqa: E402
from app.packages.workspace.services.blob_store import LocalBlobStore, set_blob_store  # noqa: E402
from app.packages.workspace.services.file_store import FileRecordStore  # noqa: E402
from app.packages.workspace.services.project_store import ProjectStore  # noqa: E402
from app.packages.workspace.services.workspace_service import registry  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def setup_test_database() -> Generator[None, None, None]:
    """创建隔离的 SQLite 测试数据库，并在会话结束后清理。"""
    if os.path.exists(TEST_DB_PATH):
        os.remove(TEST_DB_PATH)

    engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)

    db_session.engine = engine
    db_session.SessionLocal = TestingSessionLocal

    Base.metadata.create_all(bind=engine)
    yield

    engine.dispose()
    if os.path.exists(TEST_DB_PATH):
        os.remove(TEST_DB_PATH)


@pytest.fixture(autouse=True)
def isolate_state(tmp_path) -> Generator[LocalBlobStore, None, None]:
    """每个用例使用独立的对象存储目录，结束后清空表与编辑会话。"""
    blob_store = LocalBlobStore(tmp_path / "blobs")
    set_blob_store(blob_store)
    yield blob_store
    registry.close_all()
    set_blob_store(None)
    with db_session.engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture()
def blob_store(isolate_state) -> LocalBlobStore:
    return isolate_state


@pytest.fixture()
def db_session_fixture() -> Generator[Session, None, None]:
    """提供给测试用例使用的数据库会话。"""
    session = db_session.SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def store(db_session_fixture, blob_store) -> FileRecordStore:
    return FileRecordStore(db_session_fixture, blob_store)


@pytest.fixture()
def project(db_session_fixture):
    return ProjectStore(db_session_fixture).create(owner_id=1, name="Demo App")


@pytest.fixture()
def client(db_session_fixture):
    """构建 FastAPI TestClient，并注入测试专用的数据库依赖。"""
    def override_get_db() -> Generator[Session, None, None]:
        session = db_session.SessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
