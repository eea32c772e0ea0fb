# src/db/database.py
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import URL
from sqlalchemy.orm import Session, sessionmaker, declarative_base

from src.config.settings import settings


def _database_url():
    if settings.database_url:
        return settings.database_url
    return URL.create(
        "mysql+pymysql",
        username=settings.db_user,
        password=settings.db_pass,
        host=settings.db_host,
        port=settings.db_port,
        database=settings.db_name,
    )


def build_engine(url):
    if str(url).startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(
        url,
        pool_pre_ping=True,     # 끊긴 커넥션 자동 감지
        pool_recycle=1800,      # 30분마다 커넥션 새로고침
        pool_size=5,
        max_overflow=10,
    )


engine = build_engine(_database_url())

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """
    여러 statement를 하나의 단위로 묶는다.
    - 정상 종료 시 commit
    - 중간에 예외가 나면 rollback 후 그대로 다시 raise
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
