from fastapi import HTTPException
from typing import Any, Dict, Optional

class DocumentServiceException(HTTPException):
    """Base exception for document service errors"""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: str = None,
        headers: Optional[Dict[str, Any]] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code or f"DOC_{status_code}"

class ValidationError(DocumentServiceException):
    """Input validation errors"""

    def __init__(self, detail: str = "Invalid input data"):
        super().__init__(status_code=400, detail=detail, error_code="VALIDATION_ERROR")

class DocumentNotFoundError(DocumentServiceException):
    """Document record not found"""

    def __init__(self, doc_id: str):
        super().__init__(
            status_code=404,
            detail="Document not found",
            error_code="DOCUMENT_NOT_FOUND"
        )
        self.doc_id = doc_id

class UploadNotFoundError(DocumentServiceException):
    """Stored blob not found"""

    def __init__(self, detail: str = "File not found"):
        super().__init__(status_code=404, detail=detail, error_code="FILE_NOT_FOUND")

class StorageError(DocumentServiceException):
    """Storage backend errors"""

    def __init__(self, detail: str = "Storage operation failed"):
        super().__init__(status_code=500, detail=detail, error_code="STORAGE_ERROR")

class BlobInUseError(DocumentServiceException):
    """Stored blob is still referenced by a document"""

    def __init__(self, object_key: str):
        super().__init__(
            status_code=409,
            detail="File is still referenced by a document",
            error_code="BLOB_IN_USE"
        )
        self.object_key = object_key
