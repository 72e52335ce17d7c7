"""Report store interface with SQL and in-memory implementations."""

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from brandlens.core.exceptions import ReportStoreError
from brandlens.database.models import ReportRecord
from brandlens.repositories.base_repository import BaseRepository
from brandlens.schemas.report import Report
from brandlens.utils.logging import get_logger

LOGGER = get_logger(__name__)


class ReportStore(ABC):
    """Opaque persistence for Report documents."""

    @abstractmethod
    async def save(self, report: Report) -> Report:
        pass

    @abstractmethod
    async def find_by_project_and_range(
        self, project_id: str, start: datetime, end: datetime
    ) -> List[Report]:
        """Reports of a project created within ``[start, end]``, oldest first."""
        pass

    @abstractmethod
    async def find_latest_before(self, project_id: str, before: datetime) -> Optional[Report]:
        """Most recent report of a project created strictly before ``before``."""
        pass


class ReportRepository(BaseRepository[ReportRecord], ReportStore):
    """SQLAlchemy-backed report store; documents are kept as JSON payloads."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, ReportRecord)

    async def save(self, report: Report) -> Report:
        try:
            await self.create(
                id=UUID(report.id),
                project_id=report.project_id,
                brand_name=report.brand_name,
                created_at=report.created_at,
                batch_state=report.batch_state.value,
                global_score=report.global_score,
                rules_version=report.rules_version,
                payload=report.model_dump(mode="json"),
            )
        except SQLAlchemyError as e:
            raise ReportStoreError(f"Failed to save report {report.id}", original_error=e) from e
        LOGGER.info(f"Saved report {report.id} for project {report.project_id}")
        return report

    async def find_by_project_and_range(
        self, project_id: str, start: datetime, end: datetime
    ) -> List[Report]:
        query = (
            select(ReportRecord)
            .where(ReportRecord.project_id == project_id)
            .where(ReportRecord.created_at >= start)
            .where(ReportRecord.created_at <= end)
            .order_by(ReportRecord.created_at)
        )
        try:
            records = await self.fetch_all(query)
        except SQLAlchemyError as e:
            raise ReportStoreError(f"Failed to query reports for {project_id}", original_error=e) from e
        return [Report.model_validate(record.payload) for record in records]

    async def find_latest_before(self, project_id: str, before: datetime) -> Optional[Report]:
        query = (
            select(ReportRecord)
            .where(ReportRecord.project_id == project_id)
            .where(ReportRecord.created_at < before)
            .order_by(ReportRecord.created_at.desc())
            .limit(1)
        )
        try:
            record = await self.fetch_one(query)
        except SQLAlchemyError as e:
            raise ReportStoreError(f"Failed to query reports for {project_id}", original_error=e) from e
        return Report.model_validate(record.payload) if record else None


class InMemoryReportStore(ReportStore):
    """Process-local report store for development and tests."""

    def __init__(self):
        self._reports: List[Report] = []
        self._lock = asyncio.Lock()

    async def save(self, report: Report) -> Report:
        async with self._lock:
            self._reports.append(report.model_copy(deep=True))
        return report

    async def find_by_project_and_range(
        self, project_id: str, start: datetime, end: datetime
    ) -> List[Report]:
        async with self._lock:
            matches = [
                r for r in self._reports
                if r.project_id == project_id and start <= r.created_at <= end
            ]
        return [r.model_copy(deep=True) for r in sorted(matches, key=lambda r: r.created_at)]

    async def find_latest_before(self, project_id: str, before: datetime) -> Optional[Report]:
        async with self._lock:
            earlier = [r for r in self._reports if r.project_id == project_id and r.created_at < before]
        if not earlier:
            return None
        return max(earlier, key=lambda r: r.created_at).model_copy(deep=True)
