from typing import Generic, List, Optional, Type, TypeVar

from sqlalchemy import Select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from brandlens.utils.logging import get_logger

ModelType = TypeVar("ModelType")

LOGGER = get_logger(__name__)


class BaseRepository(Generic[ModelType]):
    """Session-bound helpers shared by the SQL repositories.

    Errors are logged and re-raised as ``SQLAlchemyError``; concrete
    repositories translate them into their own domain errors.
    """

    def __init__(self, session: AsyncSession, model: Type[ModelType]):
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session
            model: The SQLAlchemy model class this repository manages
        """
        self.session = session
        self.model = model
        self.logger = LOGGER

    async def fetch_all(self, query: Select) -> List[ModelType]:
        try:
            result = await self.session.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error querying {self.model.__name__}: {e}", exc_info=True)
            raise

    async def fetch_one(self, query: Select) -> Optional[ModelType]:
        try:
            result = await self.session.execute(query)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            self.logger.error(f"Error querying {self.model.__name__}: {e}", exc_info=True)
            raise

    async def create(self, **kwargs) -> ModelType:
        """Insert and commit one row; the session is rolled back on failure."""
        instance = self.model(**kwargs)
        try:
            self.session.add(instance)
            await self.session.flush()
            await self.session.commit()
        except SQLAlchemyError as e:
            self.logger.error(f"Error creating {self.model.__name__}: {e}", exc_info=True)
            await self.session.rollback()
            raise
        return instance
