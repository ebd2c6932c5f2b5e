import anthropic
import base64
import binascii
import io
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from docx import Document as DocxDocument

from ..config import settings

logger = logging.getLogger(__name__)

PDF_TYPE = "application/pdf"
DOCX_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
IMAGE_TYPES = {"image/jpeg", "image/png", "image/gif", "image/webp"}

DATA_URI_PATTERN = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<data>.*)$", re.DOTALL)

SYSTEM_PROMPT = """You are an expert lawyer specializing in document summarization.
You will use the document provided to create a short summary that captures the parties involved,
the key facts, obligations, deadlines and any amounts of money. Reply with the summary only."""


class UnsupportedDocumentError(ValueError):
    """Raised when a document's format cannot be summarized."""


def parse_data_uri(data_uri: str) -> Tuple[str, bytes]:
    """Split a 'data:<mime>;base64,<data>' URI into its MIME type and raw bytes."""
    match = DATA_URI_PATTERN.match(data_uri.strip())
    if not match:
        raise ValueError("Expected a data URI of the form 'data:<mimetype>;base64,<encoded_data>'")

    try:
        content = base64.b64decode(match.group("data"), validate=True)
    except binascii.Error as e:
        raise ValueError(f"Invalid base64 payload: {str(e)}")

    return match.group("mime").lower(), content


def extract_docx_text(content: bytes) -> str:
    document = DocxDocument(io.BytesIO(content))
    return "\n".join(paragraph.text for paragraph in document.paragraphs if paragraph.text.strip())


class DocumentSummarizer:
    """Summarizes case documents with Claude."""

    def __init__(self, client: Optional[anthropic.AsyncAnthropic] = None):
        self.client = client or anthropic.AsyncAnthropic(api_key=settings.anthropic_api_key)
        self.model = settings.claude_model
        self.max_tokens = settings.summary_max_tokens
        self.temperature = settings.summary_temperature

    def _build_content(self, content: bytes, mime_type: str) -> List[Dict[str, Any]]:
        """Turn a document into message content blocks the API accepts."""
        encoded = base64.standard_b64encode(content).decode("ascii")

        if mime_type == PDF_TYPE:
            document_block = {
                "type": "document",
                "source": {"type": "base64", "media_type": PDF_TYPE, "data": encoded},
            }
        elif mime_type in IMAGE_TYPES:
            document_block = {
                "type": "image",
                "source": {"type": "base64", "media_type": mime_type, "data": encoded},
            }
        elif mime_type == DOCX_TYPE:
            document_block = {"type": "text", "text": f"Document:\n{extract_docx_text(content)}"}
        elif mime_type.startswith("text/"):
            document_block = {"type": "text", "text": f"Document:\n{content.decode('utf-8', errors='replace')}"}
        else:
            raise UnsupportedDocumentError(f"Documents of type {mime_type} cannot be summarized")

        return [document_block, {"type": "text", "text": "Create a short summary of this document."}]

    async def summarize(self, content: bytes, mime_type: str) -> str:
        """Return a short summary of a document."""
        blocks = self._build_content(content, mime_type.lower())

        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                system=SYSTEM_PROMPT,
                messages=[
                    {"role": "user", "content": blocks}
                ]
            )
        except Exception as e:
            logger.error(f"Error summarizing document: {str(e)}")
            raise

        summary = "".join(block.text for block in response.content if block.type == "text").strip()
        logger.info(f"Summarized {mime_type} document ({len(content)} bytes) into {len(summary)} chars")
        return summary

    async def summarize_data_uri(self, data_uri: str) -> str:
        mime_type, content = parse_data_uri(data_uri)
        return await self.summarize(content, mime_type)
