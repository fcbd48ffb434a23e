from io import BytesIO

import docx

from app.services.extract_service import TextExtractor, decode_text, placeholder_text


def test_text_documents_are_decoded_literally():
    extracted = TextExtractor().extract("Jane Doe\nPython developer".encode("utf-8"), "text")

    assert extracted.text == "Jane Doe\nPython developer"
    assert extracted.method == "text"
    assert not extracted.placeholder


def test_decode_text_falls_back_to_latin1():
    assert decode_text("Zürich".encode("latin-1")) == "Zürich"


def test_doc_has_no_extractor_and_gets_placeholder():
    extracted = TextExtractor().extract(b"\xd0\xcf\x11\xe0 binary", "doc")

    assert extracted.placeholder
    assert extracted.method == "placeholder"
    assert extracted.text == placeholder_text("doc")


def test_placeholder_is_deterministic():
    first = TextExtractor().extract(b"a", "doc")
    second = TextExtractor().extract(b"b", "doc")

    assert first == second


def test_broken_pdf_gets_placeholder():
    extracted = TextExtractor().extract(b"this is not a pdf", "pdf")

    assert extracted.placeholder
    assert "PDF" in extracted.text


def test_failing_extractor_gets_placeholder():
    def explode(data):
        raise RuntimeError("boom")

    extracted = TextExtractor({"pdf": explode}).extract(b"%PDF", "pdf")

    assert extracted.placeholder


def test_empty_extraction_gets_placeholder():
    extracted = TextExtractor({"pdf": lambda data: "   "}).extract(b"%PDF", "pdf")

    assert extracted.placeholder


def test_registered_extractor_is_used():
    extractor = TextExtractor()
    extractor.register("doc", lambda data: "converted text")

    extracted = extractor.extract(b"\xd0\xcf", "doc")

    assert extracted.text == "converted text"
    assert not extracted.placeholder


def test_docx_paragraphs_are_extracted():
    document = docx.Document()
    document.add_paragraph("Jane Doe")
    document.add_paragraph("")
    document.add_paragraph("Senior Python Engineer")
    buf = BytesIO()
    document.save(buf)

    extracted = TextExtractor().extract(buf.getvalue(), "docx")

    assert extracted.text == "Jane Doe\nSenior Python Engineer"
    assert extracted.method == "docx"
