from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from hookflow.constants import DATABASE_URL


class BaseDBClient:
    def __init__(self):
        self.engine = create_async_engine(DATABASE_URL, pool_pre_ping=True)
        # Rows are handed back to the routes after the session closes
        self.async_session = async_sessionmaker(
            bind=self.engine, expire_on_commit=False
        )
