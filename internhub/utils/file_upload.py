"""
File Upload Utility - store uploads on disk and extract resume text.

Upload kinds (sub-folder of settings.upload_dir):
- resume   → resumes/    (.pdf .doc .docx .txt)
- avatar   → avatars/    (.jpg .jpeg .png .gif)
- logo     → logos/      (.jpg .jpeg .png .gif .svg)
- document → documents/  (.pdf .doc .docx .txt .jpg .jpeg .png)

Stored files are served at /uploads/<folder>/<name>.

Text extraction:
- PDF (.pdf) using PyPDF2
- Word (.docx) using python-docx
- Plain Text (.txt)
"""

import io
import logging
import random
import time
from pathlib import Path

from docx import Document
from fastapi import UploadFile, HTTPException
from PyPDF2 import PdfReader

from internhub.core.config import get_settings

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.gif'}

UPLOAD_KINDS = {
    "resume": {"folder": "resumes", "extensions": {'.pdf', '.doc', '.docx', '.txt'}},
    "avatar": {"folder": "avatars", "extensions": IMAGE_EXTENSIONS},
    "logo": {"folder": "logos", "extensions": IMAGE_EXTENSIONS | {'.svg'}},
    "document": {"folder": "documents", "extensions": {'.pdf', '.doc', '.docx', '.txt', '.jpg', '.jpeg', '.png'}},
}

TEXT_EXTENSIONS = {'.pdf', '.docx', '.txt'}


def get_file_extension(filename: str) -> str:
    """Get lowercase file extension."""
    if '.' not in filename:
        return ''
    return '.' + filename.rsplit('.', 1)[1].lower()


def unique_filename(kind: str, ext: str) -> str:
    """<kind>-<millis>-<random><ext>"""
    return f"{kind}-{int(time.time() * 1000)}-{random.randint(0, 999_999_999)}{ext}"


async def read_upload(file: UploadFile, kind: str) -> dict:
    """
    Validate an uploaded file and read it into memory without storing it.

    Args:
        file: FastAPI UploadFile
        kind: one of UPLOAD_KINDS

    Returns:
        dict with kind, original_name, content_type, size, ext, content

    Raises:
        HTTPException 400 on a bad file type, 413 when the file is too large
    """
    settings = get_settings()
    rules = UPLOAD_KINDS[kind]

    if not file.filename:
        raise HTTPException(status_code=400, detail="No filename provided")

    ext = get_file_extension(file.filename)
    if ext not in rules["extensions"]:
        allowed = ", ".join(sorted(rules["extensions"]))
        raise HTTPException(
            status_code=400,
            detail=f"Invalid file type '{ext}' for {kind}. Allowed: {allowed}"
        )

    content = await file.read()
    if len(content) > settings.max_upload_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size: {settings.max_upload_mb}MB"
        )

    return {
        "kind": kind,
        "original_name": file.filename,
        "content_type": file.content_type,
        "size": len(content),
        "ext": ext,
        "content": content,
    }


def store_upload(upload: dict) -> dict:
    """Write a file returned by read_upload to disk. Adds url, filename and path."""
    kind = upload["kind"]
    folder = Path(get_settings().upload_dir) / UPLOAD_KINDS[kind]["folder"]
    folder.mkdir(parents=True, exist_ok=True)
    filename = unique_filename(kind, upload["ext"])
    path = folder / filename
    path.write_bytes(upload["content"])
    logger.info(f"Stored {kind} upload {upload['original_name']!r} as {filename} ({upload['size']} bytes)")

    return {
        **upload,
        "url": f"/uploads/{UPLOAD_KINDS[kind]['folder']}/{filename}",
        "filename": filename,
        "path": str(path),
    }


async def save_upload(file: UploadFile, kind: str) -> dict:
    """Validate and store a single uploaded file."""
    return store_upload(await read_upload(file, kind))


def discard_uploads(stored: list) -> None:
    """Remove files written by store_upload when the request that owns them fails."""
    for upload in stored:
        Path(upload["path"]).unlink(missing_ok=True)
        logger.info(f"Discarded {upload['kind']} upload {upload['filename']}")


def extract_text(content: bytes, ext: str) -> str:
    """
    Extract text from file bytes.

    Returns "" for formats without text extraction (.doc, images).
    Raises ValueError when a supported file cannot be read.
    """
    if ext == '.pdf':
        return extract_from_pdf(content)
    if ext == '.docx':
        return extract_from_docx(content)
    if ext == '.txt':
        return extract_from_txt(content)
    return ''


def extract_from_pdf(content: bytes) -> str:
    """Extract text from PDF bytes."""
    try:
        reader = PdfReader(io.BytesIO(content))
        text_parts = []
        for page in reader.pages:
            page_text = page.extract_text()
            if page_text:
                text_parts.append(page_text)
        return '\n'.join(text_parts)
    except Exception as e:
        raise ValueError(f"Error reading PDF: {e}") from e


def extract_from_docx(content: bytes) -> str:
    """Extract text from DOCX bytes."""
    try:
        doc = Document(io.BytesIO(content))
        text_parts = []

        # Extract paragraphs
        for para in doc.paragraphs:
            if para.text.strip():
                text_parts.append(para.text)

        # Extract tables
        for table in doc.tables:
            for row in table.rows:
                row_text = [cell.text.strip() for cell in row.cells if cell.text.strip()]
                if row_text:
                    text_parts.append(' | '.join(row_text))

        return '\n'.join(text_parts)
    except Exception as e:
        raise ValueError(f"Error reading DOCX: {e}") from e


def extract_from_txt(content: bytes) -> str:
    """Extract text from TXT bytes."""
    for encoding in ['utf-8', 'cp1252', 'latin-1']:
        try:
            return content.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise ValueError("Could not decode text file")


def get_supported_formats() -> dict:
    """Get info about supported resume formats."""
    return {
        "supported_formats": [
            {"extension": ".pdf", "text_extraction": True, "name": "PDF"},
            {"extension": ".docx", "text_extraction": True, "name": "Word Document"},
            {"extension": ".doc", "text_extraction": False, "name": "Word 97-2003 Document"},
            {"extension": ".txt", "text_extraction": True, "name": "Plain Text"},
        ],
        "text_formats": sorted(TEXT_EXTENSIONS),
        "max_size_mb": get_settings().max_upload_mb
    }
