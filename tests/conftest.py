import os

# Настройки окружения должны быть выставлены до первого импорта tasktracker
TEST_DATABASE_URL = "sqlite:///./test.db"
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["JWT_SECRET_KEY"] = "test-secret-key-that-is-long-enough-for-hs256"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["RATE_LIMIT_PERMIT_LIMIT"] = "100000"

import pytest
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from tasktracker.database import Base, get_db
from tasktracker.main import app
from tasktracker.security import register_user

engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# 💡 Каждый тест получает чистые таблицы
@pytest.fixture(autouse=True)
def setup_database():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


# 💡 Подменяем зависимость get_db
@pytest.fixture(autouse=True)
def override_get_db():
    def get_test_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()
    app.dependency_overrides[get_db] = get_test_db
    yield
    app.dependency_overrides.clear()


@pytest.fixture()
def db_session():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def client():
    return TestClient(app)


# 💡 HTTP-клиент с ASGITransport
@pytest.fixture()
async def aclient():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture()
def auth_headers_factory(client):
    """Регистрирует пользователя и возвращает заголовки с его токеном."""
    def _make(username="alice_tester", password="password123"):
        client.post("/auth/register", json={"username": username, "password": password})
        token = client.post("/auth/login", json={"username": username, "password": password}).json()["token"]
        return {"Authorization": f"Bearer {token}"}
    return _make


@pytest.fixture()
def auth_headers(auth_headers_factory):
    return auth_headers_factory()


@pytest.fixture()
def make_user(db_session):
    def _make(username="owner_user", password="password123"):
        return register_user(db_session, username, password)
    return _make
