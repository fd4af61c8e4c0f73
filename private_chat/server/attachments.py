"""Attachment upload storage and route."""
import secrets
import time
from pathlib import Path

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile

from . import schemas
from .auth import get_current_username
from .logging_config import configure_logging

router = APIRouter(prefix="/attachments", tags=["attachments"])
logger = configure_logging()

PUBLIC_PREFIX = "/uploads"


class AttachmentStore:
    """Writes uploaded files to disk and hands back the URL they are served from."""

    def __init__(self, upload_dir: Path):
        self.upload_dir = Path(upload_dir)
        self.upload_dir.mkdir(parents=True, exist_ok=True)

    def save(self, filename: str, content: bytes) -> str:
        suffix = Path(filename or "").suffix.lower()
        name = f"{int(time.time() * 1000)}-{secrets.token_hex(4)}{suffix}"
        (self.upload_dir / name).write_bytes(content)
        return f"{PUBLIC_PREFIX}/{name}"


async def store_image(request: Request, upload: UploadFile) -> str:
    """Validate an uploaded image and persist it through the app's store."""
    if not (upload.content_type or "").startswith("image/"):
        raise HTTPException(status_code=400, detail="Only image uploads are accepted")
    content = await upload.read()
    if not content:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")
    return request.app.state.attachments.save(upload.filename, content)


@router.post("", response_model=schemas.AttachmentOut)
async def upload_attachment(
    request: Request,
    attachment: UploadFile | None = File(default=None),
    username: str = Depends(get_current_username),
):
    if attachment is None:
        raise HTTPException(status_code=400, detail="No file uploaded")
    file_url = await store_image(request, attachment)
    logger.info("ATTACHMENT_STORED username=%s url=%s", username, file_url)
    return schemas.AttachmentOut(file_url=file_url)
