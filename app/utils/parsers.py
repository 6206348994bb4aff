import re
import json
import logging
import io
from typing import Optional
from pypdf import PdfReader

from app.core.errors import ExtractionError

logger = logging.getLogger(__name__)

PDF_MAGIC = b"%PDF"

def extract_text_from_pdf(file_content: bytes) -> str:
    """Reads PDF bytes and returns the text of every page."""
    reader = PdfReader(io.BytesIO(file_content))
    text = ""
    for page in reader.pages:
        text += page.extract_text() or ""
    return text.strip()

def extract_text_from_document(file_content: bytes, filename: str = "") -> str:
    """
    Turns an uploaded CV into plain text.

    PDFs (detected by their magic bytes) go through pypdf, .txt uploads are
    decoded as UTF-8. Anything else, or a parser crash, raises ExtractionError.
    """
    if not file_content:
        raise ExtractionError("Uploaded CV file is empty.")

    if file_content.startswith(PDF_MAGIC):
        try:
            text = extract_text_from_pdf(file_content)
        except Exception as e:
            logger.error(f"PDF Parse Error ({filename}): {e}")
            raise ExtractionError("Failed to parse PDF file. It may be corrupted or encrypted.") from e

        # Scanned documents come back (almost) empty; we still score what we got
        if len(text) < 50:
            logger.warning(f"⚠️ OCR Required: File {filename} contains almost no text.")
        return text

    if filename.lower().endswith(".txt"):
        try:
            return file_content.decode("utf-8").strip()
        except UnicodeDecodeError as e:
            raise ExtractionError("Text file is not valid UTF-8.") from e

    logger.warning(f"⚠️ Unsupported document: {filename} (magic bytes {file_content[:4]!r})")
    raise ExtractionError("Unsupported document format. Upload a PDF or a plain text file.")

def truncate(text: str, limit: int) -> str:
    return (text or "")[:limit]

def extract_clean_json(text: str) -> Optional[dict]:
    """
    Strips '```json' formatting and finds the actual JSON object { ... }
    """
    if not text:
        return None

    # 1. Remove Markdown code blocks
    text = re.sub(r"```json|```", "", text, flags=re.IGNORECASE).strip()

    # 2. Find the content between the first '{' and the last '}'
    start_idx = text.find("{")
    end_idx = text.rfind("}")

    if start_idx == -1 or end_idx == -1 or end_idx < start_idx:
        logger.error("Could not find any JSON-like structure in AI response.")
        return None

    json_str = text[start_idx : end_idx + 1]

    try:
        # strict=False tolerates raw newlines inside strings
        data = json.loads(json_str, strict=False)
    except json.JSONDecodeError as e:
        logger.error(f"JSON Parsing Failed: {e}")
        logger.debug(f"Bad JSON String: {json_str[:500]}...")
        return None

    if not isinstance(data, dict):
        return None
    return data

def redact_pii(text: str) -> str:
    """
    Removes contact details (emails, phone numbers) before sending
    CV text to a hosted model.
    """
    if not text:
        return ""

    text = re.sub(r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b', '[EMAIL_REDACTED]', text)

    # +44 20 7946 0958, (555) 123-4567, 555.123.4567
    text = re.sub(
        r'(?:\+\d{1,3}[\s.-]?)?\(?\d{2,4}\)?[\s.-]\d{3,4}[\s.-]\d{3,4}\b',
        '[PHONE_REDACTED]',
        text,
    )
    return text
