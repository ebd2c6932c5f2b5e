from .storage import BlobStorage, BlobNotFoundError, LocalBlobStorage, S3BlobStorage, create_blob_storage
from .summarizer import DocumentSummarizer, UnsupportedDocumentError

__all__ = [
    "BlobStorage",
    "BlobNotFoundError",
    "LocalBlobStorage",
    "S3BlobStorage",
    "create_blob_storage",
    "DocumentSummarizer",
    "UnsupportedDocumentError"
]
