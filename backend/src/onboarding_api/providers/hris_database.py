"""HRIS employee database (SQL Server) reader.

The HRIS is read-only for us. Queries go through a short-lived synchronous
SQLAlchemy engine on a worker thread; nothing is pooled between calls.
"""

import asyncio
import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from typing import Any, TypeVar

from sqlalchemy import TextClause, create_engine, text
from sqlalchemy.engine import URL, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import NullPool

from onboarding_api.exceptions import HrisError
from onboarding_api.models.dto.hris import HrisEmployee
from onboarding_api.models.dto.settings import HrisDatabaseSettings
from onboarding_api.providers.base import BaseProvider
from onboarding_api.utils.secure_logging import log_warning

logger = logging.getLogger(__name__)

R = TypeVar("R")

_hris_executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="hris")

EMPLOYEE_TABLE = "it_mti_employee_database_tbl"
NON_STAFF_GRADE = "Non Staff"
EMPLOYEE_COLUMNS = (
    "employee_id",
    "employee_name",
    "gender",
    "department",
    "position_title",
    "phone",
    "supervisor_id",
)

EngineFactory = Callable[..., Engine]


def hris_url(settings: HrisDatabaseSettings) -> URL:
    """SQLAlchemy URL for the pymssql driver."""
    return URL.create(
        "mssql+pymssql",
        username=settings.username,
        password=settings.password,
        host=settings.server,
        port=int(settings.port),
        database=settings.database,
    )


def employee_query(schema: str) -> TextClause:
    """Staff rows only; the schema name is validated by the settings model."""
    columns = ", ".join(EMPLOYEE_COLUMNS)
    return text(
        f"SELECT {columns} FROM [{schema}].[{EMPLOYEE_TABLE}] "
        "WHERE grade_interval <> :grade ORDER BY employee_id"
    )


def _text_or_none(value: Any) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


class HrisDatabaseProvider(BaseProvider):
    """Reads staff rows from the HRIS employee table."""

    def __init__(
        self,
        settings: HrisDatabaseSettings,
        login_timeout: int = 10,
        query_timeout: int = 30,
        engine_factory: EngineFactory = create_engine,
    ) -> None:
        if not settings.server or not settings.database or not settings.username:
            raise HrisError("Missing required HRIS connection parameters")
        self.settings = settings
        self.login_timeout = login_timeout
        self.query_timeout = query_timeout
        self.engine_factory = engine_factory

    def _engine(self) -> Engine:
        return self.engine_factory(
            hris_url(self.settings),
            poolclass=NullPool,
            connect_args={"login_timeout": self.login_timeout, "timeout": self.query_timeout},
        )

    async def _run(self, func: Callable[[], R]) -> R:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(_hris_executor, func)
        except SQLAlchemyError as e:
            log_warning(logger, "HRIS database call failed", e)
            raise HrisError("Unable to query the HRIS database") from e

    def _test(self) -> str:
        engine = self._engine()
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        finally:
            engine.dispose()
        return "Connected successfully"

    def _fetch(self) -> list[HrisEmployee]:
        engine = self._engine()
        try:
            with engine.connect() as conn:
                rows = conn.execute(
                    employee_query(self.settings.table_schema), {"grade": NON_STAFF_GRADE}
                ).mappings().all()
        finally:
            engine.dispose()

        employees = []
        for row in rows:
            values = {column: _text_or_none(row.get(column)) for column in EMPLOYEE_COLUMNS}
            if not values["employee_id"]:
                continue
            employees.append(HrisEmployee(**values))
        return employees

    async def test_connection(self) -> str:
        """Log in and run a trivial query."""
        return await self._run(self._test)

    async def fetch_employees(self) -> list[HrisEmployee]:
        """Staff rows of the employee table; rows without an employee id are skipped."""
        employees = await self._run(self._fetch)
        logger.info("Fetched %d HRIS employee rows", len(employees))
        return employees
