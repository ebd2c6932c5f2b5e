from typing import Optional
from fastapi import HTTPException
import logging

from .config import settings
from .services.storage import BlobStorage, create_blob_storage
from .services.summarizer import DocumentSummarizer

logger = logging.getLogger(__name__)

# Global service instances, populated by the application lifespan
blob_storage: Optional[BlobStorage] = None
summarizer: Optional[DocumentSummarizer] = None


def init_services():
    """Build the blob store and, when an API key is configured, the summarizer."""
    global blob_storage, summarizer

    blob_storage = create_blob_storage()
    logger.info(f"Blob storage ready ({type(blob_storage).__name__})")

    if settings.anthropic_api_key:
        summarizer = DocumentSummarizer()
        logger.info(f"Document summarizer ready (model {settings.claude_model})")
    else:
        summarizer = None
        logger.warning("ANTHROPIC_API_KEY not set; document summaries are disabled")


def get_blob_storage() -> BlobStorage:
    """Get blob storage instance."""
    if not blob_storage:
        raise HTTPException(status_code=503, detail="Blob storage not available")
    return blob_storage


def get_summarizer() -> DocumentSummarizer:
    """Get document summarizer instance."""
    if not summarizer:
        raise HTTPException(status_code=503, detail="Document summarization not available")
    return summarizer
