"""Database client with connection checks and schema creation."""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from brandlens.database.base import Base, engine
from brandlens.utils.logging import get_logger

LOGGER = get_logger(__name__)


class DatabaseClient:
    """Report store database client."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self._connected = False

    async def connect(self) -> bool:
        """Test database connection."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            self._connected = True
            LOGGER.info("Database connection successful")
            return True
        except Exception:
            self._connected = False
            LOGGER.error("Database connection failed", exc_info=True)
            raise

    async def create_tables(self) -> None:
        """Create missing tables from the SQLAlchemy models."""
        # Registers ReportRecord on Base.metadata.
        from brandlens.database import models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        LOGGER.info("Database tables created/verified successfully")

    async def disconnect(self) -> None:
        """Dispose of the engine's connection pool."""
        await self.engine.dispose()
        self._connected = False
        LOGGER.info("Database connection closed")

    async def health_check(self) -> dict:
        try:
            async with self.engine.connect() as conn:
                value = await conn.scalar(text("SELECT 1"))
            self._connected = True
            return {"status": "healthy", "connected": True, "latency_test": "passed" if value == 1 else "failed"}
        except Exception as e:
            self._connected = False
            LOGGER.error("Database health check failed", extra={"error": str(e)})
            return {"status": "unhealthy", "connected": False, "error": str(e)}

    @property
    def is_connected(self) -> bool:
        return self._connected


db_client = DatabaseClient(engine)
