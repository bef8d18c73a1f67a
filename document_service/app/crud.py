from sqlalchemy.orm import Session
from . import models

def create_document(db: Session, user_id: str, object_key: str, extracted_text: str):
    db_doc = models.Document(user_id=user_id, object_key=object_key, extracted_text=extracted_text)
    db.add(db_doc)
    db.commit()
    db.refresh(db_doc)
    return db_doc

def get_document(db: Session, doc_id: str):
    return db.query(models.Document).filter(models.Document.id == doc_id).first()

def get_document_by_object_key(db: Session, object_key: str):
    return db.query(models.Document).filter(models.Document.object_key == object_key).first()

def get_documents_for_user(db: Session, user_id: str):
    return (
        db.query(models.Document)
        .filter(models.Document.user_id == user_id)
        .order_by(models.Document.created_at, models.Document.id)
        .all()
    )

def update_extracted_text(db: Session, doc_id: str, extracted_text: str):
    db_doc = get_document(db, doc_id)
    if db_doc is None:
        return None
    db_doc.extracted_text = extracted_text
    db.commit()
    db.refresh(db_doc)
    return db_doc

def delete_document(db: Session, db_doc: models.Document):
    db.delete(db_doc)
    db.commit()
