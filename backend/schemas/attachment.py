# backend/schemas/attachment.py
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict


class AttachmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    file_name: str
    stored_file_name: str
    file_type: Optional[str] = None
    file_size: Optional[int] = None
    file_path: str
    associated_oil_id: Optional[str] = None
    associated_oil_name: Optional[str] = None
    uploaded_by: Optional[str] = None
    notes: Optional[str] = None
    upload_date: Optional[datetime] = None
