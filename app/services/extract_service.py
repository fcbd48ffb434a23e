import logging
from dataclasses import dataclass
from io import BytesIO
from typing import Callable, Dict, Optional

import docx
import PyPDF2

logger = logging.getLogger(__name__)

Extractor = Callable[[bytes], str]


@dataclass(frozen=True)
class ExtractedText:
    text: str
    method: str
    placeholder: bool = False


def decode_text(data: bytes) -> str:
    if data.startswith((b"\xff\xfe", b"\xfe\xff")):
        return data.decode("utf-16")
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        # latin-1 maps every byte, so this cannot fail
        return data.decode("latin-1")


def extract_pdf(data: bytes) -> str:
    reader = PyPDF2.PdfReader(BytesIO(data))
    text = ""
    for page in reader.pages:
        text += (page.extract_text() or "") + "\n"
    return text.strip()


def extract_docx(data: bytes) -> str:
    document = docx.Document(BytesIO(data))
    return "\n".join(p.text for p in document.paragraphs if p.text.strip())


def placeholder_text(document_type: str) -> str:
    label = (document_type or "unknown").upper()
    return (
        f"Text extraction for {label} documents is not available. "
        "Evaluate this as a typical resume and give general, broadly applicable feedback."
    )


class TextExtractor:
    """
    Turns stored document bytes into plain text, keyed by document type.

    Extraction is a plug point: types without a registered extractor, failing
    extractors and empty results all yield a fixed placeholder, flagged with
    `placeholder=True`, so the pipeline never stops here.
    """

    def __init__(self, extractors: Optional[Dict[str, Extractor]] = None):
        if extractors is None:
            extractors = {
                "text": decode_text,
                "pdf": extract_pdf,
                "docx": extract_docx,
            }
        self.extractors = dict(extractors)

    def register(self, document_type: str, extractor: Extractor):
        self.extractors[document_type] = extractor

    def extract(self, data: bytes, document_type: str) -> ExtractedText:
        extractor = self.extractors.get(document_type)
        if extractor is None:
            logger.info(f"No extractor for '{document_type}', using placeholder text")
            return ExtractedText(placeholder_text(document_type), "placeholder", True)

        try:
            text = extractor(data)
        except Exception as e:
            logger.warning(f"Extraction failed for '{document_type}': {e}")
            return ExtractedText(placeholder_text(document_type), "placeholder", True)

        if not text or not text.strip():
            logger.info(f"Extractor for '{document_type}' returned no text, using placeholder")
            return ExtractedText(placeholder_text(document_type), "placeholder", True)

        return ExtractedText(text, document_type)
