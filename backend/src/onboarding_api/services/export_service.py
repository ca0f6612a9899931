"""Export service for the license request report (CSV and Excel)."""

import csv
import io
from datetime import date
from typing import Any
from uuid import UUID

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from onboarding_api.exceptions import HireNotFoundError
from onboarding_api.models.domain.app_user import AppUser
from onboarding_api.models.orm.hire import HireORM
from onboarding_api.repositories.hire_repository import HireRepository
from onboarding_api.services.audit_service import AuditAction, AuditService, ResourceType

REPORT_COLUMNS = [
    "SRF No.",
    "Name",
    "Title",
    "Department",
    "License Type",
    "Email",
    "Join Date",
]

NOT_SPECIFIED = "Not specified"


def report_filename(extension: str, today: date | None = None) -> str:
    """``license_request_report_YYYYMMDD.<extension>``."""
    today = today or date.today()
    return f"license_request_report_{today.strftime('%Y%m%d')}.{extension}"


def report_row(hire: Any) -> list[str]:
    """One report row. The SRF number is filled in by hand after export."""
    return [
        "",
        hire.name or "",
        hire.title or "",
        hire.department or "",
        hire.microsoft_365_license or NOT_SPECIFIED,
        hire.email or "",
        hire.on_site_date.strftime("%d/%m/%Y") if hire.on_site_date else "N/A",
    ]


class ExportService:
    """Service for exporting hire data to CSV and Excel formats."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize service with database session."""
        self.session = session
        self.hire_repo = HireRepository(session)
        self.audit_service = AuditService(session)

    async def _get_hires(self, hire_ids: list[UUID]) -> list[HireORM]:
        hires = await self.hire_repo.get_by_ids(hire_ids)
        if not hires:
            raise HireNotFoundError()
        return hires

    async def _audit_export(
        self,
        export_format: str,
        hires: list[HireORM],
        user: AppUser | None,
        request: Request | None,
    ) -> None:
        await self.audit_service.log(
            action=AuditAction.EXPORT,
            resource_type=ResourceType.REPORT,
            resource_id="license_request_report",
            user=user,
            request=request,
            details={"format": export_format, "hire_count": len(hires)},
        )
        await self.session.commit()

    async def export_license_report_csv(
        self,
        hire_ids: list[UUID],
        user: AppUser | None = None,
        request: Request | None = None,
    ) -> str:
        """Export the license request report to CSV format.

        Args:
            hire_ids: Hires to include, in report order
            user: User requesting the export
            request: FastAPI request (for audit)

        Returns:
            CSV string

        Raises:
            HireNotFoundError: If none of the hires exist
        """
        hires = await self._get_hires(hire_ids)

        output = io.StringIO()
        writer = csv.writer(output)

        # Header row
        writer.writerow(REPORT_COLUMNS)

        # Data rows
        for hire in hires:
            writer.writerow(report_row(hire))

        await self._audit_export("csv", hires, user, request)
        return output.getvalue()

    async def export_license_report_excel(
        self,
        hire_ids: list[UUID],
        user: AppUser | None = None,
        request: Request | None = None,
    ) -> bytes:
        """Export the license request report as a single-sheet workbook.

        Returns:
            Excel file bytes
        """
        from openpyxl import Workbook
        from openpyxl.styles import Font, PatternFill

        hires = await self._get_hires(hire_ids)

        wb = Workbook()
        ws = wb.active
        ws.title = "License Requests"

        header_font = Font(bold=True, color="FFFFFF")
        header_fill = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")

        ws.append(REPORT_COLUMNS)
        for cell in ws[1]:
            cell.font = header_font
            cell.fill = header_fill

        for hire in hires:
            ws.append(report_row(hire))

        for column in ws.columns:
            width = max(len(str(cell.value or "")) for cell in column)
            ws.column_dimensions[column[0].column_letter].width = min(width + 2, 50)

        output = io.BytesIO()
        wb.save(output)

        await self._audit_export("xlsx", hires, user, request)
        return output.getvalue()
