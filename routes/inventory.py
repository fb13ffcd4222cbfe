"""
Inventory sync API routes.

POST /api/inventory/upload accepts one spreadsheet and returns the
{updated, failed, skipped} summary of the sync.
"""

from typing import Optional
from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import JSONResponse
import structlog

from config.settings import Settings, get_settings
from exceptions import AppError, UploadRejectedError
from parsers.inventory_sheet_parser import SUPPORTED_EXTENSIONS
from services.inventory_sync_service import (
    InventorySyncService,
    get_inventory_sync_service,
)

logger = structlog.get_logger(__name__)

router = APIRouter()


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    # Unexpected error
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


def validate_upload(filename: Optional[str], content: bytes, max_bytes: int) -> None:
    """
    Reject uploads the sync cannot handle.

    Raises:
        UploadRejectedError: Missing/empty file, unsupported type, or too large
    """
    if not content:
        raise UploadRejectedError("No input file uploaded")

    name = (filename or "").lower()
    if not name.endswith(SUPPORTED_EXTENSIONS):
        raise UploadRejectedError(
            "Only .xlsx, .xls, or .csv files are supported",
            details={"filename": filename},
        )

    if len(content) > max_bytes:
        raise UploadRejectedError(
            f"File exceeds the {max_bytes} byte upload limit",
            details={"size": len(content), "max_bytes": max_bytes},
        )


# ===================
# ROUTES
# ===================

@router.post("/upload")
async def upload_inventory(
    file: Optional[UploadFile] = File(None),
    service: InventorySyncService = Depends(get_inventory_sync_service),
    settings: Settings = Depends(get_settings),
):
    """
    Sync inventory quantities from a spreadsheet.

    Reads the first sheet only. Row-level problems are reported in the
    failed/skipped buckets; the request itself still succeeds.

    Raises:
        400: Missing file, unsupported extension, or file too large
        422: File could not be read as a spreadsheet
        500: Shopify credentials not configured
        503: Shopify locations could not be loaded
    """
    try:
        if file is None:
            raise UploadRejectedError("No input file uploaded")

        # One byte past the limit is enough to reject oversized uploads
        content = await file.read(settings.max_upload_bytes + 1)
        logger.info(
            "inventory_upload_started",
            filename=file.filename,
            content_type=file.content_type,
            size=len(content)
        )
        validate_upload(file.filename, content, settings.max_upload_bytes)

        summary = await service.sync_file(content, file.filename)

        logger.info(
            "inventory_upload_completed",
            updated=len(summary.updated),
            failed=len(summary.failed),
            skipped=len(summary.skipped)
        )
        return JSONResponse(status_code=200, content=summary.to_dict())

    except Exception as e:
        logger.error("inventory_upload_failed", error=str(e))
        return handle_error(e)
