"""
File Upload Utility - turn uploaded files into question-bank questions.

Supported formats:
- CSV (.csv)   header row + data rows; follow_up/tags are ';' separated
- JSON (.json) a list of questions or {"questions": [...]}
- PDF (.pdf) using PyPDF2, Word (.docx) using python-docx, Plain Text (.txt):
  one question per non-empty line

Max file size: 5MB
"""

import csv
import io
import json
from typing import List, Optional, Tuple

from docx import Document
from fastapi import UploadFile, HTTPException
from PyPDF2 import PdfReader


MAX_FILE_SIZE_MB = 5
MAX_FILE_SIZE_BYTES = MAX_FILE_SIZE_MB * 1024 * 1024
ALLOWED_EXTENSIONS = {'.csv', '.json', '.pdf', '.docx', '.txt'}

QUESTION_TYPES = {"behavioral", "technical", "situational"}
DIFFICULTIES = {"easy", "medium", "hard"}
DEFAULT_TIME_LIMIT = 180


def get_file_extension(filename: str) -> str:
    """Get lowercase file extension."""
    if '.' not in filename:
        return ''
    return '.' + filename.rsplit('.', 1)[1].lower()


def _split_list(value) -> List[str]:
    if isinstance(value, list):
        return [str(v).strip() for v in value if str(v).strip()]
    if not value:
        return []
    return [part.strip() for part in str(value).split(';') if part.strip()]


def normalize_question(raw: dict) -> Optional[dict]:
    """
    Coerce an imported record into question fields.
    Unknown type -> behavioral, unknown difficulty -> medium, bad time limit -> 180.
    Returns None when the question text is empty.
    """
    text = str(raw.get("question") or "").strip()
    if not text:
        return None

    q_type = str(raw.get("type") or "").strip().lower()
    difficulty = str(raw.get("difficulty") or "").strip().lower()
    time_limit = raw.get("time_limit", raw.get("timeLimit"))
    try:
        time_limit = int(time_limit)
        if time_limit <= 0:
            time_limit = DEFAULT_TIME_LIMIT
    except (TypeError, ValueError):
        time_limit = DEFAULT_TIME_LIMIT

    return {
        "type": q_type if q_type in QUESTION_TYPES else "behavioral",
        "difficulty": difficulty if difficulty in DIFFICULTIES else "medium",
        "question": text,
        "follow_up": _split_list(raw.get("follow_up", raw.get("followUp"))),
        "tags": _split_list(raw.get("tags")),
        "time_limit": time_limit,
    }


def parse_csv_questions(text: str) -> List[dict]:
    lines = [line for line in text.splitlines() if line.strip()]
    if len(lines) < 2:
        raise HTTPException(
            status_code=400,
            detail="CSV must have a header row and at least one data row"
        )
    reader = csv.DictReader(io.StringIO("\n".join(lines)))
    if "question" not in [h.strip().lower() for h in (reader.fieldnames or [])]:
        raise HTTPException(status_code=400, detail="CSV header must include a 'question' column")
    return [
        {(k or "").strip().lower(): (v or "").strip() for k, v in row.items()}
        for row in reader
    ]


def parse_json_questions(text: str) -> List[dict]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise HTTPException(status_code=400, detail=f"Invalid JSON: {e.msg}")

    if isinstance(data, dict):
        data = data.get("questions", [])
    if not isinstance(data, list):
        raise HTTPException(status_code=400, detail="JSON must be an array of questions")
    return [item for item in data if isinstance(item, dict)]


def parse_plain_questions(text: str) -> List[dict]:
    return [{"question": line.strip()} for line in text.splitlines() if line.strip()]


async def extract_questions_from_upload(file: UploadFile) -> Tuple[List[dict], int]:
    """
    Extract questions from an uploaded file.

    Returns:
        Tuple of (normalized questions, number of skipped records)

    Raises:
        HTTPException on validation/extraction errors
    """
    if not file.filename:
        raise HTTPException(status_code=400, detail="No filename provided")

    ext = get_file_extension(file.filename)
    if ext not in ALLOWED_EXTENSIONS:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type '{ext}'. Allowed: CSV, JSON, PDF, DOCX, TXT"
        )

    content = await file.read()

    if len(content) > MAX_FILE_SIZE_BYTES:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size: {MAX_FILE_SIZE_MB}MB"
        )

    if ext == '.pdf':
        records = parse_plain_questions(extract_from_pdf(content))
    elif ext == '.docx':
        records = parse_plain_questions(extract_from_docx(content))
    elif ext == '.csv':
        records = parse_csv_questions(extract_from_txt(content))
    elif ext == '.json':
        records = parse_json_questions(extract_from_txt(content))
    else:  # .txt
        records = parse_plain_questions(extract_from_txt(content))

    questions = [q for q in (normalize_question(r) for r in records) if q]
    if not questions:
        raise HTTPException(status_code=400, detail="No valid questions found in file")

    return questions, len(records) - len(questions)


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
        raise HTTPException(status_code=400, detail=f"Error reading PDF: {str(e)}")


def extract_from_docx(content: bytes) -> str:
    """Extract text from DOCX bytes (paragraphs only, one question per paragraph)."""
    try:
        doc = Document(io.BytesIO(content))
        return '\n'.join(para.text for para in doc.paragraphs if para.text.strip())
    except Exception as e:
        raise HTTPException(status_code=400, detail=f"Error reading DOCX: {str(e)}")


def extract_from_txt(content: bytes) -> str:
    """Decode text bytes."""
    for encoding in ['utf-8-sig', 'latin-1']:
        try:
            return content.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise HTTPException(status_code=400, detail="Could not decode text file")
