"""Files API — OneDrive case folders: list and upload.

Business Rules:
- Uploads are validated (non-empty, size limit) before anything is sent
- isEmailAttachment uploads go to /Email_Attachments; isGeneralDocument
  uploads go to /Documents/<folderName>; everything else needs a leadNumber
- The resolved case folder is cached on the Lead when the lead exists

Called by: main.py
Depends on: services/onedrive_service.py, utils/file_validation.py
"""

from fastapi import APIRouter, Depends, File, Form, UploadFile
from loguru import logger
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..config import settings
from ..database import get_db
from ..dependencies import get_drive_store, require_user
from ..errors import ValidationError
from ..models import Lead, User
from ..schemas.responses import FileListResponse
from ..services.onedrive_service import OneDriveStore, remember_folder
from ..utils.file_validation import validate_upload

router = APIRouter(tags=["files"])


class ListLeadDocumentsRequest(BaseModel):
    leadNumber: str = Field(..., min_length=1, max_length=64)


def _remember(db: Session, lead_number: str, folder_id: str, link: str | None) -> None:
    lead = db.query(Lead).filter(Lead.lead_number == lead_number).first()
    if lead:
        remember_folder(db, lead, {"id": folder_id}, link)


@router.post("/api/files/list-lead-documents", response_model=FileListResponse)
async def list_lead_documents(
    body: ListLeadDocumentsRequest,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
    store: OneDriveStore = Depends(get_drive_store),
):
    result = await store.list_lead_documents(body.leadNumber.strip())
    _remember(db, result["leadNumber"], result["folderId"], result["folderUrl"])
    return result


@router.post("/api/files/upload")
async def upload_file(
    file: UploadFile = File(...),
    leadNumber: str | None = Form(None),
    isEmailAttachment: bool = Form(False),
    isGeneralDocument: bool = Form(False),
    folderName: str | None = Form(None),
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
    store: OneDriveStore = Depends(get_drive_store),
):
    content = await file.read()
    checked = validate_upload(content, file.filename or "", settings.max_upload_size_mb)
    name = checked["filename"]

    if isEmailAttachment:
        result = await store.upload_email_attachment(name, content)
    elif isGeneralDocument:
        if not (folderName or "").strip():
            raise ValidationError("folderName is required for general documents")
        result = await store.upload_general_document(folderName, name, content)
    else:
        if not (leadNumber or "").strip():
            raise ValidationError("leadNumber is required")
        result = await store.upload_file(leadNumber.strip(), name, content)
        _remember(db, leadNumber.strip(), result["folderId"], result["folderUrl"])

    logger.info("{} uploaded {} ({}, {} bytes)", user.email, name, checked["mime_type"], checked["size"])
    return {**result, "mimeType": checked["mime_type"], "size": checked["size"]}
