import threading

import pytest
from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import sessionmaker

from furioso.config import settings
from furioso.core.exceptions import StorageUnavailableError
from furioso.models import Base, CoinTransaction, User
from furioso.services.ledger_service import LedgerService

WORKERS = 20
MAX_ATTEMPTS = 50


@pytest.fixture
def file_session_factory(tmp_path):
    """스레드마다 별도 연결을 쓰도록 파일 기반 SQLite 사용"""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'ledger.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    engine.dispose()


def _apply_with_retry(factory, user_id, barrier, errors):
    barrier.wait()
    for _ in range(MAX_ATTEMPTS):
        db = factory()
        try:
            LedgerService(db, settings).apply_transaction(user_id, 1, "test", "concurrent credit")
            return
        except StorageUnavailableError:
            continue
        except Exception as e:
            errors.append(e)
            return
        finally:
            db.close()
    errors.append(RuntimeError("gave up after retries"))


def test_concurrent_credits_for_new_user(file_session_factory):
    setup = file_session_factory()
    user = User(email="race@example.com", nickname="racer")
    setup.add(user)
    setup.commit()
    user_id = user.id
    setup.close()

    barrier = threading.Barrier(WORKERS)
    errors = []
    threads = [
        threading.Thread(
            target=_apply_with_retry,
            args=(file_session_factory, user_id, barrier, errors),
        )
        for _ in range(WORKERS)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []

    db = file_session_factory()
    try:
        ledger = LedgerService(db, settings)
        balance = ledger.get_balance(user_id)
        assert balance.balance == WORKERS
        assert balance.lifetime_earned == WORKERS
        assert len(ledger.get_history(user_id)) == WORKERS
        assert db.execute(
            select(func.count(CoinTransaction.id)).where(CoinTransaction.user_id == user_id)
        ).scalar_one() == WORKERS
    finally:
        db.close()
