import mimetypes
import re
import secrets
from pathlib import Path
from fastapi import FastAPI, UploadFile, File, Depends, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException
from . import config, models, schemas, crud, database, exceptions, storage
from .logger import get_logger

app = FastAPI(title="Document Service")

logger = get_logger(__name__)

_SAFE_FILENAME = re.compile(r"[^a-zA-Z0-9._-]")

_CONTENT_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
}

_storage = None

def get_storage():
    global _storage
    if _storage is None:
        _storage = storage.create_storage()
    return _storage

def get_db():
    db = database.SessionLocal()
    try:
        yield db
    finally:
        db.close()

@app.on_event("startup")
def on_startup():
    # Create DB tables
    models.Base.metadata.create_all(bind=database.engine)
    backend = get_storage()
    if isinstance(backend, storage.S3Storage):
        backend.ensure_bucket()
    logger.info(f"Document service started with '{config.STORAGE_BACKEND}' storage")

# Global exception handlers
@app.exception_handler(exceptions.DocumentServiceException)
async def document_service_exception_handler(request: Request, exc: exceptions.DocumentServiceException):
    logger.error(f"Document service exception: {exc.error_code} - {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error_code": exc.error_code, "message": exc.detail}
    )

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    logger.error(f"HTTP Exception: {exc.status_code} - {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error_code": f"HTTP_{exc.status_code}", "message": exc.detail}
    )

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    fields = [".".join(str(part) for part in err["loc"][1:]) for err in exc.errors()]
    logger.warning(f"Rejected {request.method} {request.url.path}: invalid fields {fields}")
    return JSONResponse(
        status_code=400,
        content={"error_code": "VALIDATION_ERROR", "message": "Missing required fields", "fields": fields}
    )

@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unexpected error: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"error_code": "INTERNAL_ERROR", "message": "An unexpected error occurred"}
    )

def sanitize_filename(filename: str) -> str:
    """Keep only characters that are safe in a single path segment."""
    return _SAFE_FILENAME.sub("", filename)

def _file_extension(filename: str, content_type: str) -> str:
    ext = re.sub(r"[^a-z0-9]", "", Path(filename or "").suffix.lower())
    if not ext:
        guessed = mimetypes.guess_extension(content_type)
        ext = guessed.lstrip(".") if guessed else "bin"
    return ext

def _content_type_for(filename: str) -> str:
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    return _CONTENT_TYPES.get(ext, "application/octet-stream")

def _direct_url(object_key: str) -> str:
    return f"/uploads/{object_key}"

def _to_response(db_doc: models.Document, file_url: str = None) -> schemas.DocumentResponse:
    return schemas.DocumentResponse(
        id=db_doc.id,
        user_id=db_doc.user_id,
        object_key=db_doc.object_key,
        extracted_text=db_doc.extracted_text,
        created_at=db_doc.created_at,
        file_url=file_url,
    )

def _get_or_404(db: Session, doc_id: str) -> models.Document:
    db_doc = crud.get_document(db, doc_id)
    if db_doc is None:
        raise exceptions.DocumentNotFoundError(doc_id)
    return db_doc

# POST /upload
@app.post("/upload", response_model=schemas.UploadResponse)
async def upload_image(file: UploadFile = File(...), backend=Depends(get_storage)):
    content_type = file.content_type or mimetypes.guess_type(file.filename or "")[0] or ""
    if not content_type.startswith("image/"):
        logger.warning(f"Rejected upload {file.filename}: content type '{content_type}'")
        raise exceptions.ValidationError("Only image files are allowed")

    content = await file.read()
    if len(content) > config.MAX_UPLOAD_BYTES:
        logger.warning(f"Rejected upload {file.filename}: {len(content)} bytes")
        raise exceptions.ValidationError(f"File size must be less than {config.MAX_UPLOAD_MB}MB")

    object_key = f"{secrets.token_urlsafe(16)}.{_file_extension(file.filename, content_type)}"
    try:
        backend.put(object_key, content, content_type)
    except Exception as e:
        logger.error(f"Failed to store upload {object_key}: {str(e)}", exc_info=True)
        raise exceptions.StorageError("Failed to store uploaded file")

    return schemas.UploadResponse(file_name=object_key, object_key=object_key)

# DELETE /upload/{object_key}
@app.delete("/upload/{object_key}", response_model=schemas.BlobDeleteResponse)
def delete_upload(object_key: str, db: Session = Depends(get_db), backend=Depends(get_storage)):
    key = sanitize_filename(object_key)
    if not key.strip("."):
        raise exceptions.UploadNotFoundError()
    # Only orphaned blobs may go; a document's image is removed with the document
    if crud.get_document_by_object_key(db, key) is not None:
        raise exceptions.BlobInUseError(key)
    try:
        backend.delete(key)
    except storage.BlobNotFoundError:
        raise exceptions.UploadNotFoundError()
    return schemas.BlobDeleteResponse(object_key=key)

# GET /uploads/{filename}
@app.get("/uploads/{filename}")
def serve_upload(filename: str, backend=Depends(get_storage)):
    key = sanitize_filename(filename)
    if not key.strip("."):
        raise exceptions.UploadNotFoundError()
    try:
        content = backend.get(key)
    except storage.BlobNotFoundError:
        raise exceptions.UploadNotFoundError()
    return Response(
        content=content,
        media_type=_content_type_for(key),
        headers={"Cache-Control": "public, max-age=31536000"},
    )

# POST /document
@app.post("/document", response_model=schemas.DocumentResponse, status_code=201)
def create_document(body: schemas.DocumentCreate, db: Session = Depends(get_db)):
    db_doc = crud.create_document(
        db, user_id=body.user_id, object_key=body.object_key, extracted_text=body.extracted_text
    )
    logger.info(f"Created document {db_doc.id} for user {db_doc.user_id}")
    return _to_response(db_doc)

# GET /document?userId=
@app.get("/document", response_model=list[schemas.DocumentResponse])
def list_documents(user_id: str = Query(..., alias="userId", min_length=1), db: Session = Depends(get_db)):
    docs = crud.get_documents_for_user(db, user_id)
    return [_to_response(doc, _direct_url(doc.object_key)) for doc in docs]

# GET /document/{doc_id}
@app.get("/document/{doc_id}", response_model=schemas.DocumentResponse)
def read_document(doc_id: str, db: Session = Depends(get_db), backend=Depends(get_storage)):
    db_doc = _get_or_404(db, doc_id)
    if backend.supports_signed_urls:
        file_url = backend.signed_url(db_doc.object_key, config.SIGNED_URL_EXPIRY)
    else:
        file_url = _direct_url(db_doc.object_key)
    return _to_response(db_doc, file_url)

# PUT /document/{doc_id}
@app.put("/document/{doc_id}", response_model=schemas.DocumentResponse)
def update_document(doc_id: str, body: schemas.DocumentUpdate, db: Session = Depends(get_db)):
    db_doc = crud.update_extracted_text(db, doc_id, body.extracted_text)
    if db_doc is None:
        raise exceptions.DocumentNotFoundError(doc_id)
    logger.info(f"Updated extracted text of document {doc_id}")
    return _to_response(db_doc)

# DELETE /document/{doc_id}
@app.delete("/document/{doc_id}", response_model=schemas.DeleteResponse)
def delete_document(doc_id: str, db: Session = Depends(get_db), backend=Depends(get_storage)):
    db_doc = _get_or_404(db, doc_id)

    # Blob cleanup never blocks record removal
    try:
        backend.delete(db_doc.object_key)
    except Exception as e:
        logger.warning(f"Storage delete failed for {db_doc.object_key}: {str(e)}")

    crud.delete_document(db, db_doc)
    logger.info(f"Deleted document {doc_id}")
    return schemas.DeleteResponse(id=doc_id)
