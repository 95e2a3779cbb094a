import itertools
import os

# 앱 모듈 import 전에 설정해야 settings/engine에 반영됨
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["SIGNUP_BONUS_COINS"] = "100"
os.environ["REFUND_ON_REDEMPTION_CANCEL"] = "true"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from furioso.core.security import create_user_token
from furioso.database.session import get_db
from furioso.models import Base, ShopItem, User, UserRole
from furioso.schemas.user import User as UserSchema


@pytest.fixture
def engine():
    """테스트마다 새로운 인메모리 SQLite"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db_session):
    """사용자 팩토리 - ORM User 반환"""
    counter = itertools.count(1)

    def _make(role: UserRole = UserRole.USER, email: str = None, nickname: str = None, is_active: bool = True):
        n = next(counter)
        user = User(
            email=email or f"fan{n}@example.com",
            nickname=nickname or f"fan{n}",
            role=role.value,
            is_active=is_active,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make


@pytest.fixture
def make_item(db_session):
    def _make(name: str = "QG FURIOSO Cap", coin_price: int = 30, stock=None, is_active: bool = True):
        item = ShopItem(
            name=name,
            description=f"{name} description",
            coin_price=coin_price,
            item_type="physical",
            stock=stock,
            is_active=is_active,
        )
        db_session.add(item)
        db_session.commit()
        db_session.refresh(item)
        return item

    return _make


@pytest.fixture
def as_schema():
    return UserSchema.model_validate


@pytest.fixture
def auth_headers():
    def _headers(user) -> dict:
        return {"Authorization": f"Bearer {create_user_token(user.id, user.email)}"}

    return _headers


@pytest.fixture
def client(session_factory):
    """get_db를 테스트 DB 세션으로 교체한 TestClient"""
    from furioso.main import create_app

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app = create_app()
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
