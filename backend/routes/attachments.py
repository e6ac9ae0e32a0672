# backend/routes/attachments.py
import logging
import random
import re
import time
from pathlib import Path
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, UploadFile
from sqlalchemy.orm import Session

from config import settings
from database import get_db
from models.attachment import Attachment
from models.users import User
from schemas.attachment import AttachmentResponse
from schemas.product import SuccessResponse
from utils.audit import write_log, client_ip
from utils.tokenJWT import get_current_user

router = APIRouter(prefix="/attachments", tags=["Attachments"])
logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


def upload_dir() -> Path:
    path = Path(settings.UPLOAD_DIR)
    path.mkdir(parents=True, exist_ok=True)
    return path


def stored_name_for(original: str) -> str:
    sanitized = re.sub(r"[^a-zA-Z0-9.-]", "_", original or "file")
    return f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}-{sanitized}"


@router.get("", response_model=List[AttachmentResponse])
def list_attachments(
    oil_id: Optional[str] = Query(None, alias="oilId"),
    file_type: Optional[str] = Query(None, alias="fileType"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    query = db.query(Attachment)
    if oil_id:
        query = query.filter(Attachment.associated_oil_id == oil_id)
    if file_type:
        query = query.filter(Attachment.file_type.ilike(f"%{file_type}%"))
    return query.order_by(Attachment.upload_date.desc(), Attachment.id.desc()).all()


@router.post("/upload", response_model=AttachmentResponse)
def upload_attachment(
    request: Request,
    file: Optional[UploadFile] = File(None),
    associated_oil_id: Optional[str] = Form(None, alias="associatedOilId"),
    associated_oil_name: Optional[str] = Form(None, alias="associatedOilName"),
    uploaded_by: Optional[str] = Form(None, alias="uploadedBy"),
    notes: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if file is None or not file.filename:
        raise HTTPException(status_code=400, detail="No file uploaded")

    limit = settings.MAX_UPLOAD_MB * 1024 * 1024
    stored_name = stored_name_for(file.filename)
    save_path = upload_dir() / stored_name
    size = 0
    try:
        with open(save_path, "wb") as buffer:
            while True:
                chunk = file.file.read(CHUNK_SIZE)
                if not chunk:
                    break
                size += len(chunk)
                if size > limit:
                    raise HTTPException(status_code=413, detail=f"File larger than {settings.MAX_UPLOAD_MB} MB")
                buffer.write(chunk)
    except HTTPException:
        save_path.unlink(missing_ok=True)
        raise
    except OSError as e:
        save_path.unlink(missing_ok=True)
        raise HTTPException(status_code=500, detail=f"File save error: {e}")
    finally:
        file.file.close()

    attachment = Attachment(
        file_name=file.filename,
        stored_file_name=stored_name,
        file_type=file.content_type,
        file_size=size,
        file_path=f"/uploads/{stored_name}",
        associated_oil_id=associated_oil_id or "GENERAL",
        associated_oil_name=associated_oil_name or "General Documents",
        uploaded_by=uploaded_by or current_user.name,
        notes=notes or "",
    )
    db.add(attachment)
    db.commit()
    db.refresh(attachment)

    write_log(db, user_id=current_user.id, action="ATTACHMENT_UPLOAD", resource="attachments",
              ip=client_ip(request), meta={"id": attachment.id, "file": attachment.file_name, "size": size})
    return attachment


@router.delete("/{attachment_id}", response_model=SuccessResponse)
def delete_attachment(
    attachment_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    attachment = db.query(Attachment).filter(Attachment.id == attachment_id).first()
    if attachment is None:
        raise HTTPException(status_code=404, detail="Attachment not found")

    stored_name = attachment.stored_file_name
    db.delete(attachment)
    db.commit()

    path = upload_dir() / stored_name
    if path.exists():
        path.unlink()
    else:
        logger.warning("Attachment %s had no file on disk: %s", attachment_id, path)

    write_log(db, user_id=current_user.id, action="ATTACHMENT_DELETE", resource="attachments",
              ip=client_ip(request), meta={"id": attachment_id})
    return {"success": True}
