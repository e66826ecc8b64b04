"""
AssetDrop - Submission API
Anonymous intake of client files and form text responses
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from middleware.rate_limit import RateLimits, rate_limit
from services.intake_service import IntakeService, read_upload

router = APIRouter(tags=["Submissions"])


class TextResponse(BaseModel):
    form_field_id: Optional[str] = None
    file_name: Optional[str] = None
    file_type: Optional[str] = None
    metadata: Dict[str, Any]
    client_email: Optional[str] = None


class SubmitTextRequest(BaseModel):
    projectId: Optional[str] = None
    textResponses: Optional[List[TextResponse]] = None


@router.post("/upload")
@rate_limit(RateLimits.UPLOAD)
async def upload_file(
    request: Request,
    file: Optional[UploadFile] = File(None),
    projectId: Optional[str] = Form(None),
    formFieldId: Optional[str] = Form(None),
    clientEmail: Optional[str] = Form(None),
    db: AsyncSession = Depends(get_db),
):
    """
    Upload one client file into the project owner's Google Drive.

    Answers 403 when the owner has not connected Drive and 413 when the
    file is over the size limit; no asset is recorded in either case.
    """
    content = await read_upload(file) if file is not None else None
    return await IntakeService(db).upload_file(
        project_id=projectId,
        file_name=file.filename if file is not None else None,
        content=content,
        mime_type=file.content_type if file is not None else None,
        form_field_id=formFieldId,
        client_email=clientEmail,
    )


@router.post("/submit-text")
@rate_limit(RateLimits.SUBMIT_TEXT)
async def submit_text(request: Request, body: SubmitTextRequest, db: AsyncSession = Depends(get_db)):
    """Record text, URL and code responses as pending assets"""
    responses = [r.model_dump() for r in body.textResponses] if body.textResponses else None
    return await IntakeService(db).submit_text_responses(body.projectId, responses)
