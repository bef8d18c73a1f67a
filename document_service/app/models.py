import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, Text, DateTime
from .database import Base

def _utcnow():
    return datetime.now(timezone.utc)

class Document(Base):
    __tablename__ = "documents"

    id = Column(String(36), primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(255), nullable=False, index=True)
    object_key = Column(Text, nullable=False)  # key in the storage backend
    extracted_text = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
