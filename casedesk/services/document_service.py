import logging
import secrets
from pathlib import PurePath
from typing import List, Optional

from sqlalchemy.orm import Session

from ..config import settings
from ..models.database import Case, Document
from .storage import BlobNotFoundError, BlobStorage

logger = logging.getLogger(__name__)

STORAGE_PREFIX = "documents_repository"


def list_documents(db: Session, case_id: Optional[int] = None) -> List[Document]:
    query = db.query(Document)
    if case_id is not None:
        query = query.filter(Document.case_id == case_id)
    return query.order_by(Document.created_at.desc(), Document.id.desc()).all()


def get_document(db: Session, document_id: int) -> Optional[Document]:
    return db.query(Document).filter(Document.id == document_id).first()


def validate_upload(file_name: str, content_type: str, size: int):
    """Reject files outside the allowed types or over the size limit."""
    if not file_name:
        raise ValueError("A file name is required")
    if content_type not in settings.allowed_document_types:
        raise ValueError(
            f"Unsupported file type {content_type}. Allowed: PDF, DOC, DOCX, TXT, JPG, PNG"
        )
    if size == 0:
        raise ValueError("The uploaded file is empty")
    if size > settings.max_upload_size_bytes:
        raise ValueError(f"File exceeds the maximum size of {settings.max_upload_size_mb}MB")


def build_storage_path(file_name: str) -> str:
    """Unique blob key for an uploaded file: documents_repository/<random id>/<name>."""
    safe_name = PurePath(file_name.replace("\\", "/")).name
    if safe_name in ("", ".", ".."):
        raise ValueError(f"Invalid file name: {file_name}")
    return f"{STORAGE_PREFIX}/{secrets.token_hex(8)}/{safe_name}"


async def upload_document(
    db: Session,
    storage: BlobStorage,
    file_name: str,
    content_type: str,
    content: bytes,
    case_id: Optional[int] = None,
    document_type: Optional[str] = None,
    description: Optional[str] = None,
    uploaded_by: Optional[str] = None
) -> Document:
    """Store the file in the blob store and record its metadata as version 1."""
    validate_upload(file_name, content_type, len(content))

    case_name = None
    if case_id is not None:
        case = db.query(Case).filter(Case.id == case_id).first()
        if not case:
            raise ValueError(f"Case {case_id} does not exist")
        case_name = case.display_name

    storage_path = build_storage_path(file_name)
    file_url = await storage.save(storage_path, content, content_type)

    try:
        document = Document(
            file_name=PurePath(storage_path).name,
            file_type=content_type,
            file_url=file_url,
            storage_path=storage_path,
            case_id=case_id,
            case_name=case_name,
            document_type=(document_type or "").strip() or None,
            description=(description or "").strip() or None,
            version=1,
            uploaded_by=uploaded_by,
            file_size=len(content)
        )
        db.add(document)
        db.commit()
        db.refresh(document)

        logger.info(f"Uploaded document {document.file_name} (id={document.id})")
        return document

    except Exception as e:
        logger.error(f"Error saving metadata for {file_name}: {str(e)}")
        db.rollback()
        # Don't leave an orphaned blob behind
        try:
            await storage.delete(storage_path)
        except BlobNotFoundError:
            logger.warning(f"Blob {storage_path} vanished before cleanup")
        raise


async def read_document(storage: BlobStorage, document: Document) -> bytes:
    return await storage.load(document.storage_path)


async def delete_document(db: Session, storage: BlobStorage, document_id: int) -> bool:
    """Delete the blob, then the metadata row. A blob that is already gone is not an error."""
    document = get_document(db, document_id)
    if not document:
        return False

    try:
        await storage.delete(document.storage_path)
    except BlobNotFoundError:
        logger.warning(f"Blob {document.storage_path} not found, deleting metadata anyway")

    try:
        db.delete(document)
        db.commit()

        logger.info(f"Deleted document {document_id}")
        return True

    except Exception as e:
        logger.error(f"Error deleting document {document_id}: {str(e)}")
        db.rollback()
        raise
