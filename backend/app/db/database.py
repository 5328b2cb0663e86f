"""
数据库配置和连接
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
from app.core.config import settings


def build_engine(database_url: str, echo: bool = False):
    """根据连接串创建数据库引擎"""
    kwargs = {"echo": echo}  # 设置为True可以看到SQL语句
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}  # SQLite需要这个参数
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            # 内存数据库需要所有连接共享同一个底层连接
            kwargs["poolclass"] = StaticPool
    return create_engine(database_url, **kwargs)


DATABASE_URL = settings.database_url

# 创建数据库引擎
engine = build_engine(DATABASE_URL, echo=settings.sql_echo)

# 创建会话工厂
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# 创建基础模型类
Base = declarative_base()


def get_db():
    """获取数据库会话"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
