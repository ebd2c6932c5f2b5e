from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.responses import Response
from sqlalchemy.orm import Session
from typing import List, Optional
from urllib.parse import quote
import logging

from ..auth import get_current_user
from ..database import get_db
from ..dependencies import get_blob_storage, get_summarizer
from ..models.schemas import DocumentResponse, SummarizeDataUriRequest, SummaryResponse
from ..services import document_service
from ..services.storage import BlobNotFoundError, BlobStorage
from ..services.summarizer import DocumentSummarizer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["Documents"])


def content_disposition(file_name: str) -> str:
    """Attachment header for a stored file name; non-ASCII names use RFC 5987 encoding."""
    quoted = quote(file_name)
    if quoted != file_name:
        return f"attachment; filename*=utf-8''{quoted}"
    return f'attachment; filename="{file_name}"'


@router.get("", response_model=List[DocumentResponse])
async def list_documents(
    case_id: Optional[int] = None,
    current_user=Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Uploaded documents, newest first."""
    return document_service.list_documents(db, case_id=case_id)


@router.post("", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
async def upload_document(
    file: UploadFile = File(...),
    case_id: Optional[int] = Form(None),
    document_type: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    current_user=Depends(get_current_user),
    storage: BlobStorage = Depends(get_blob_storage),
    db: Session = Depends(get_db)
):
    """Upload a file to the blob store and record it, optionally linked to a case."""
    content = await file.read()

    try:
        return await document_service.upload_document(
            db,
            storage,
            file_name=file.filename or "",
            content_type=file.content_type or "application/octet-stream",
            content=content,
            case_id=case_id,
            document_type=document_type,
            description=description,
            uploaded_by=current_user.username
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(f"Error uploading document {file.filename}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Document upload failed"
        )


@router.post("/summarize", response_model=SummaryResponse)
async def summarize_data_uri(
    payload: SummarizeDataUriRequest,
    current_user=Depends(get_current_user),
    summarizer: DocumentSummarizer = Depends(get_summarizer)
):
    """Summarize a document sent inline as a base64 data URI."""
    try:
        summary = await summarizer.summarize_data_uri(payload.document_data_uri)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(f"Summarization failed: {str(e)}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Summarization failed")

    return {"summary": summary}


def _document_or_404(db: Session, document_id: int):
    document = document_service.get_document(db, document_id)
    if not document:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found")
    return document


@router.get("/{document_id}", response_model=DocumentResponse)
async def get_document(
    document_id: int,
    current_user=Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return _document_or_404(db, document_id)


@router.get("/{document_id}/download")
async def download_document(
    document_id: int,
    current_user=Depends(get_current_user),
    storage: BlobStorage = Depends(get_blob_storage),
    db: Session = Depends(get_db)
):
    document = _document_or_404(db, document_id)

    try:
        content = await document_service.read_document(storage, document)
    except BlobNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document file is missing from storage")

    return Response(
        content=content,
        media_type=document.file_type,
        headers={"Content-Disposition": content_disposition(document.file_name)}
    )


@router.post("/{document_id}/summarize", response_model=SummaryResponse)
async def summarize_document(
    document_id: int,
    current_user=Depends(get_current_user),
    storage: BlobStorage = Depends(get_blob_storage),
    summarizer: DocumentSummarizer = Depends(get_summarizer),
    db: Session = Depends(get_db)
):
    """Summarize a stored document with the AI summarizer."""
    document = _document_or_404(db, document_id)

    try:
        content = await document_service.read_document(storage, document)
        summary = await summarizer.summarize(content, document.file_type)
    except BlobNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document file is missing from storage")
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(f"Summarization of document {document_id} failed: {str(e)}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Summarization failed")

    return {"summary": summary}


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    document_id: int,
    current_user=Depends(get_current_user),
    storage: BlobStorage = Depends(get_blob_storage),
    db: Session = Depends(get_db)
):
    if not await document_service.delete_document(db, storage, document_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Document not found")
