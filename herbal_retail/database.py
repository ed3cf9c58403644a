from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.exc import SQLAlchemyError

from herbal_retail.config import db_config
from herbal_retail.utils.logger import app_logger


def build_database_url(database: dict) -> str:
    """A full `url` wins; otherwise assemble the MySQL (aiomysql) URL from its parts."""
    if database.get('url'):
        return database['url']
    return (f"mysql+aiomysql://{database['username']}:{database['password']}"
            f"@{database['host']}:{database['port']}/{database['name']}")


database_url = build_database_url(db_config)

if database_url.startswith("sqlite"):
    engine = create_async_engine(database_url, echo=False)
else:
    engine = create_async_engine(database_url, pool_size=10,
                                 max_overflow=20,
                                 pool_pre_ping=True,
                                 pool_recycle=3600,
                                 echo=False)

SessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db():
    """获取数据库会话"""
    async_session = None
    try:
        async_session = SessionLocal()
        yield async_session
    except SQLAlchemyError as e:
        app_logger.error(f"Database operation error: {e}")
        raise
    finally:
        if async_session is not None:
            try:
                await async_session.close()
            except SQLAlchemyError as e:
                app_logger.error(f"Error closing database session: {e}")
