"""SRF (service request form) documents attached to hires."""

import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from uuid import UUID

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from onboarding_api.config import get_settings
from onboarding_api.constants.paths import SRF_DOCUMENTS_DIR
from onboarding_api.exceptions import DocumentNotFoundError, HireNotFoundError, InvalidDocumentError
from onboarding_api.models.domain.app_user import AppUser
from onboarding_api.models.domain.hire import AuditStatus
from onboarding_api.models.orm.hire import HireORM
from onboarding_api.repositories.hire_repository import HireRepository
from onboarding_api.services.audit_service import AuditAction, AuditService, ResourceType
from onboarding_api.services.cache_service import get_cache_service
from onboarding_api.services.hire_audit_service import HireAction, HireAuditService
from onboarding_api.utils.secure_logging import log_warning

logger = logging.getLogger(__name__)

PDF_SIGNATURE = b"%PDF"
PDF_MIME_TYPE = "application/pdf"


def validate_file_path(file_path: Path, base_dir: Path) -> bool:
    """Check that ``file_path`` resolves inside ``base_dir``."""
    try:
        return file_path.resolve().is_relative_to(base_dir.resolve())
    except (ValueError, RuntimeError):
        return False


def remove_stored_document(stored_path: str | None, base_dir: Path = SRF_DOCUMENTS_DIR) -> None:
    """Delete a stored document file. Paths outside the storage directory are ignored."""
    if not stored_path:
        return
    path = base_dir / stored_path
    if not validate_file_path(path, base_dir):
        logger.warning("Refusing to delete SRF document outside storage directory")
        return
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        log_warning(logger, "Failed to delete SRF document", e)


class SrfDocumentService:
    """Upload, download and delete the SRF PDF of a hire."""

    def __init__(self, session: AsyncSession, base_dir: Path = SRF_DOCUMENTS_DIR) -> None:
        self.session = session
        self.base_dir = base_dir
        self.hire_repo = HireRepository(session)
        self.hire_audit = HireAuditService(session)
        self.audit_service = AuditService(session)

    async def _get_hire(self, hire_id: UUID) -> HireORM:
        hire = await self.hire_repo.get_by_id(hire_id)
        if hire is None:
            raise HireNotFoundError(str(hire_id))
        return hire

    def validate_upload(self, filename: str, content: bytes) -> str:
        """Validate an upload and return its sanitized original name.

        Raises:
            InvalidDocumentError: If the file is not an acceptable PDF
        """
        safe_name = Path(filename or "").name
        if not safe_name or Path(safe_name).suffix.lower() != ".pdf":
            raise InvalidDocumentError("Only PDF files are allowed")

        max_size = get_settings().srf_max_size_bytes
        if not content:
            raise InvalidDocumentError("File is empty")
        if len(content) > max_size:
            raise InvalidDocumentError(f"File too large. Maximum size: {max_size // 1024 // 1024}MB")
        if not content.startswith(PDF_SIGNATURE):
            raise InvalidDocumentError("File content does not match declared file type")
        return safe_name

    async def upload(
        self,
        hire_id: UUID,
        filename: str,
        content: bytes,
        user: AppUser | None = None,
        request: Request | None = None,
    ) -> HireORM:
        """Store a new SRF document, replacing any previous one."""
        hire = await self._get_hire(hire_id)
        original_name = self.validate_upload(filename, content)

        stored_name = f"{uuid.uuid4()}.pdf"
        self.base_dir.mkdir(parents=True, exist_ok=True)
        (self.base_dir / stored_name).write_bytes(content)

        previous = hire.srf_document_path
        hire = await self.hire_repo.update(
            hire_id,
            srf_document_path=stored_name,
            srf_document_name=original_name,
            srf_document_uploaded_at=datetime.now(timezone.utc),
            status_srf=True,
        )
        await self.hire_audit.record(
            hire_id=hire_id,
            action_type=HireAction.SRF_UPLOADED,
            status=AuditStatus.SUCCESS,
            message=f"SRF document uploaded: {original_name}",
            performed_by=user.username if user else "System",
            details={"file_name": original_name, "size": len(content)},
        )
        await self.audit_service.log(
            action=AuditAction.FILE_UPLOAD,
            resource_type=ResourceType.FILE,
            resource_id=hire_id,
            user=user,
            request=request,
            details={"file_name": original_name, "size": len(content)},
        )
        await self.session.commit()
        await (await get_cache_service()).invalidate_hires()

        remove_stored_document(previous, self.base_dir)
        return hire

    async def get_document(self, hire_id: UUID) -> tuple[Path, str]:
        """Path and original name of the stored document.

        Raises:
            DocumentNotFoundError: If the hire has no readable document
        """
        hire = await self._get_hire(hire_id)
        if not hire.srf_document_path:
            raise DocumentNotFoundError()

        path = self.base_dir / hire.srf_document_path
        if not validate_file_path(path, self.base_dir) or not path.is_file():
            raise DocumentNotFoundError()
        return path, hire.srf_document_name or path.name

    async def read_document(self, hire_id: UUID) -> tuple[bytes, str] | None:
        """Content and name of the stored document, or None when there is none."""
        try:
            path, name = await self.get_document(hire_id)
        except DocumentNotFoundError:
            return None
        return path.read_bytes(), name

    async def delete(
        self,
        hire_id: UUID,
        user: AppUser | None = None,
        request: Request | None = None,
    ) -> None:
        """Remove the stored document and clear the hire's document fields."""
        hire = await self._get_hire(hire_id)
        if not hire.srf_document_path:
            raise DocumentNotFoundError()

        stored, name = hire.srf_document_path, hire.srf_document_name
        await self.hire_repo.update(
            hire_id,
            srf_document_path=None,
            srf_document_name=None,
            srf_document_uploaded_at=None,
        )
        await self.hire_audit.record(
            hire_id=hire_id,
            action_type=HireAction.SRF_DELETED,
            status=AuditStatus.INFO,
            message=f"SRF document deleted: {name}",
            performed_by=user.username if user else "System",
        )
        await self.audit_service.log(
            action=AuditAction.FILE_DELETE,
            resource_type=ResourceType.FILE,
            resource_id=hire_id,
            user=user,
            request=request,
            details={"file_name": name},
        )
        await self.session.commit()
        await (await get_cache_service()).invalidate_hires()

        remove_stored_document(stored, self.base_dir)
