from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from dashhub.core.config import settings

engine = create_engine(settings.SQLALCHEMY_DATABASE_URI, pool_pre_ping=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def get_db_session(session_factory=SessionLocal):
    """
    安全的数据库会话 Context Manager

    用于非 FastAPI 依赖注入场景（如调度器与报表投递的后台执行）
    确保会话在使用后正确关闭，即使发生异常

    Usage:
        with get_db_session() as db:
            result = db.query(Model).filter(...).first()
    """
    db = session_factory()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
