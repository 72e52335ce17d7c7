import time
from abc import ABC, abstractmethod
from typing import Any

from brandlens.core.exceptions import AppError
from brandlens.utils.logging import get_logger

LOGGER = get_logger(__name__)


class BaseService(ABC):
    """Validate-then-run template shared by the analysis services.

    ``AppError`` subclasses reach the caller unchanged; anything else is
    logged once and wrapped in ``AppError``.
    """

    def __init__(self):
        self.logger = LOGGER

    @property
    def name(self) -> str:
        return self.__class__.__name__

    async def execute(self, *args, **kwargs) -> Any:
        """Validate the inputs, then run the service.

        Returns:
            Whatever ``run`` returns

        Raises:
            AppError: Raised by ``validate``/``run``, or wrapping an unexpected error
        """
        started = time.perf_counter()
        try:
            self.validate(*args, **kwargs)
            result = await self.run(*args, **kwargs)
        except AppError as e:
            self.logger.warning(f"{self.name} stopped: {e.message}")
            raise
        except Exception as e:
            self.logger.error(f"{self.name} crashed: {e}", exc_info=True, extra={"service": self.name})
            raise AppError(f"{self.name} failed: {e}", original_error=e) from e

        self.logger.debug(f"{self.name} finished in {time.perf_counter() - started:.2f}s")
        return result

    def validate(self, *args, **kwargs):
        """Reject unusable inputs before any provider is called.

        Raises:
            ValidationError: If input is invalid
        """

    @abstractmethod
    async def run(self, *args, **kwargs) -> Any:
        pass
