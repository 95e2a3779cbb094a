import sys
import os

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import text

from furioso.config import settings
from furioso.database.connection import engine
from furioso.models import Base


def init_db():
    """데이터베이스 초기화 - 스키마와 전체 테이블 생성"""
    try:
        if not settings.is_sqlite:
            with engine.connect() as conn:
                conn.execute(
                    text(f"CREATE SCHEMA IF NOT EXISTS {settings.POSTGRES_SCHEMA}")
                )
                conn.commit()

        Base.metadata.create_all(bind=engine)
        print(f"Database initialized: {', '.join(sorted(Base.metadata.tables))}")

    except Exception as e:
        print(f"Database initialization failed: {str(e)}")
        raise


if __name__ == "__main__":
    init_db()
