# backend/models/attachment.py
from sqlalchemy import Column, Integer, String, Text, DateTime, func
from database import Base

# Uploaded document (safety data sheet, certificate, invoice scan...),
# optionally tied to an oil product.
class Attachment(Base):
    __tablename__ = "attachments"

    id = Column(Integer, primary_key=True, index=True)
    file_name = Column(String, nullable=False)
    stored_file_name = Column(String, nullable=False, unique=True)
    file_type = Column(String(128))
    file_size = Column(Integer)
    file_path = Column(String, nullable=False)

    associated_oil_id = Column(String(64), default="GENERAL", index=True)
    associated_oil_name = Column(String, default="General Documents")
    uploaded_by = Column(String(64), default="admin")
    notes = Column(Text, default="")

    upload_date = Column(DateTime(timezone=True), server_default=func.now(), index=True)
