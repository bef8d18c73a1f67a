from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

class CamelModel(BaseModel):
    """Base model exposing camelCase field names on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

class DocumentCreate(CamelModel):
    user_id: str = Field(..., min_length=1, max_length=255)
    object_key: str = Field(..., min_length=1)
    extracted_text: str = Field(..., min_length=1)

class DocumentUpdate(CamelModel):
    extracted_text: str = Field(..., min_length=1)

class DocumentResponse(CamelModel):
    id: str
    user_id: str
    object_key: str
    extracted_text: str
    created_at: datetime
    file_url: Optional[str] = None

class UploadResponse(CamelModel):
    file_name: str
    object_key: str
    message: str = "File uploaded successfully"

class DeleteResponse(BaseModel):
    status: str = "deleted"
    id: str

class BlobDeleteResponse(CamelModel):
    status: str = "deleted"
    object_key: str
