"""
测试公共夹具
服务层测试使用内存存储，接口测试使用内存SQLite
"""
from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from app.core.config import Settings, get_settings
from app.db.database import Base, build_engine, get_db
from app.main import app
from app.repositories import MemoryDatabase, MemoryStore, SqlStore
from app.services.accounts import AccountService
from tests.helpers import FakeClock, login


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 2, 6, 30))


@pytest.fixture
def settings():
    return Settings(settlement_deducts_balance=False, dues_grace_days=7, ready_sweep_interval_seconds=0)


@pytest.fixture
def memory_db():
    return MemoryDatabase()


@pytest.fixture
def store(memory_db):
    return MemoryStore(memory_db)


@pytest.fixture
def sql_engine():
    engine = build_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def sql_session_factory(sql_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=sql_engine)


@pytest.fixture
def client(sql_session_factory, settings):
    """接口测试客户端（不触发lifespan，不会创建本地数据库文件）"""

    def override_get_db():
        db = sql_session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: settings
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def create_account(sql_session_factory, settings):
    """直接在测试库中创建账号（管理员/员工不能自助注册）"""

    def _create(email, role, password="secret123", name="Staff Member"):
        store = SqlStore(sql_session_factory())
        try:
            user = AccountService(store, settings).create_user(
                {"name": name, "email": email, "password": password}, role=role
            )
            return user.id
        finally:
            store.close()

    return _create


@pytest.fixture
def admin_headers(client, create_account):
    create_account("admin@university.edu", "admin", name="Admin")
    return login(client, "admin@university.edu")


@pytest.fixture
def staff_headers(client, create_account):
    create_account("staff@university.edu", "staff", name="Kitchen Staff")
    return login(client, "staff@university.edu")


@pytest.fixture
def student(client):
    """自助注册的学生，返回 (用户信息, 请求头)"""
    response = client.post("/auth/register", json={
        "name": "Ravi",
        "email": "ravi@university.edu",
        "password": "secret123",
        "student_id": "CS2026-041",
        "department": "Computer Science",
    })
    assert response.status_code == 201, response.text
    body = response.json()
    return body["user"], {"Authorization": f"Bearer {body['access_token']}"}


@pytest.fixture(params=["memory", "sql"])
def open_store(request, tmp_path):
    """返回一个工厂，每次调用得到一个新的工作单元，它们共享同一份数据"""
    if request.param == "memory":
        db = MemoryDatabase()
        yield lambda: MemoryStore(db)
        return

    # 文件数据库：多个会话（可以在不同线程里）各自独立提交
    engine = build_engine(f"sqlite:///{tmp_path / 'canteen-test.db'}")
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    stores = []

    def _open():
        s = SqlStore(factory())
        stores.append(s)
        return s

    yield _open
    for s in stores:
        s.close()
    engine.dispose()
