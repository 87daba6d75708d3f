from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from ..errors import ExtractionFailure


PLAIN_TEXT_EXTS = {".txt", ".md", ".markdown"}


@dataclass(frozen=True)
class PdfPage:
    page: int  # 1-based
    text: str


def extract_text(path: str | Path) -> str:
    """Return the plain text of a document, pages joined by blank lines.

    PDFs go through ``extract_pages``; ``.txt`` and Markdown files are read as
    UTF-8. Anything else, or a document that cannot be read, raises
    ``ExtractionFailure``.
    """
    p = Path(path)
    if not p.is_file():
        raise ExtractionFailure(f"Document not found: {p}")

    ext = p.suffix.lower()
    if ext in PLAIN_TEXT_EXTS:
        return _clean(p.read_text(encoding="utf-8", errors="replace"))

    # Uploads may arrive without an extension; sniff the PDF magic instead.
    if ext == ".pdf" or _looks_like_pdf(p):
        pages = extract_pages(p)
        return "\n\n".join(pg.text for pg in pages if pg.text.strip())

    raise ExtractionFailure(f"Unsupported document type: {p.name}")


def extract_pages(path: str | Path) -> list[PdfPage]:
    p = Path(path)
    # Prefer PyMuPDF for better extraction.
    try:
        import fitz  # type: ignore

        doc = fitz.open(str(p))
        out: list[PdfPage] = []
        for i in range(doc.page_count):
            page = doc.load_page(i)
            text = page.get_text("text") or ""
            out.append(PdfPage(page=i + 1, text=_clean(text)))
        doc.close()
        if out:
            return out
    except Exception:
        pass

    # Fallback to pypdf
    from pypdf import PdfReader  # type: ignore
    from pypdf.errors import PyPdfError  # type: ignore

    try:
        reader = PdfReader(str(p))
        out2: list[PdfPage] = []
        for i, page in enumerate(reader.pages):
            text = page.extract_text() or ""
            out2.append(PdfPage(page=i + 1, text=_clean(text)))
    except (PyPdfError, OSError, ValueError) as e:
        raise ExtractionFailure(f"Could not read PDF {p.name}: {e}") from e
    return out2


def _looks_like_pdf(path: Path) -> bool:
    with path.open("rb") as f:
        return f.read(5) == b"%PDF-"


def _clean(text: str) -> str:
    # Keep it conservative; just normalize line endings and strip trailing spaces.
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    lines = [ln.rstrip() for ln in text.split("\n")]
    return "\n".join(lines).strip()
