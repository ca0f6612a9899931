"""Exports router for the license request report."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response

from onboarding_api.dependencies import get_export_service
from onboarding_api.models.domain.app_user import AppUser
from onboarding_api.models.dto.messaging import LicenseReportRequest
from onboarding_api.security.auth import get_current_user
from onboarding_api.services.export_service import ExportService, report_filename

router = APIRouter()

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@router.post("/license-report/csv")
async def export_license_report_csv(
    request: Request,
    body: LicenseReportRequest,
    current_user: Annotated[AppUser, Depends(get_current_user)],
    export_service: Annotated[ExportService, Depends(get_export_service)],
) -> Response:
    """License request report for the selected hires as CSV."""
    csv_content = await export_service.export_license_report_csv(body.hire_ids, current_user, request)
    return Response(
        content=csv_content,
        media_type="text/csv",
        headers={
            "Content-Disposition": f'attachment; filename="{report_filename("csv")}"',
            "Cache-Control": "no-cache",
        },
    )


@router.post("/license-report/xlsx")
async def export_license_report_excel(
    request: Request,
    body: LicenseReportRequest,
    current_user: Annotated[AppUser, Depends(get_current_user)],
    export_service: Annotated[ExportService, Depends(get_export_service)],
) -> Response:
    """License request report for the selected hires as an Excel workbook."""
    content = await export_service.export_license_report_excel(body.hire_ids, current_user, request)
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={
            "Content-Disposition": f'attachment; filename="{report_filename("xlsx")}"',
            "Cache-Control": "no-cache",
        },
    )
