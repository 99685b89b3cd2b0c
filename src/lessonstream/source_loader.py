# loads source material (pdf or plain text) to ground a generation
import fitz  # PyMuPDF
import re
from pathlib import Path
from typing import List, Dict, Any
from dataclasses import dataclass, field
import logging

logger = logging.getLogger(__name__)

TEXT_SUFFIXES = {".txt", ".md", ".markdown"}


# data structure for loaded source text
@dataclass
class SourceDocument:
    title: str
    text: str
    total_pages: int
    path: str
    truncated: bool = False
    metadata: Dict[str, Any] = field(default_factory=dict)


# collapse whitespace runs and drop empty lines
def clean_source_text(text: str) -> str:
    lines = [re.sub(r"[ \t]+", " ", line).strip() for line in text.replace("\r\n", "\n").split("\n")]
    return re.sub(r"\n{3,}", "\n\n", "\n".join(lines)).strip()


# class for turning source files into prompt-ready text
class SourceLoader:
    def __init__(self, max_chars: int = 30000):
        self.max_chars = max_chars

    def load(self, path: str) -> SourceDocument:
        """Load a .pdf, .txt or .md file and cap its text at max_chars."""
        file_path = Path(path)
        if not file_path.exists():
            raise FileNotFoundError(f"Source file not found: {path}")

        suffix = file_path.suffix.lower()
        metadata: Dict[str, Any] = {}
        if suffix == ".pdf":
            lines, total_pages = self._extract_pdf_lines(file_path)
            metadata = self.extract_metadata(str(file_path))
        elif suffix in TEXT_SUFFIXES:
            lines = file_path.read_text(encoding="utf-8").split("\n")
            total_pages = 1
        else:
            raise ValueError(f"Unsupported source type '{suffix}'. Use .pdf, .txt or .md")

        text = clean_source_text("\n".join(lines))
        truncated = len(text) > self.max_chars
        if truncated:
            logger.warning(f"Source text truncated from {len(text)} to {self.max_chars} chars")
            text = text[:self.max_chars]

        title = self._extract_title([line.strip() for line in lines if line.strip()], file_path.stem)
        logger.info(f"✓ Loaded source '{title}': {len(text)} chars from {total_pages} pages")
        return SourceDocument(title=title, text=text, total_pages=total_pages, path=str(file_path),
                              truncated=truncated, metadata=metadata)

    # extract text lines from every pdf page
    def _extract_pdf_lines(self, file_path: Path):
        try:
            doc = fitz.open(str(file_path))
            lines: List[str] = []
            for page_num in range(doc.page_count):
                lines.extend(doc[page_num].get_text().split("\n"))
            total_pages = doc.page_count
            doc.close()
            return lines, total_pages
        except Exception as e:
            logger.error(f"Error parsing PDF {file_path}: {str(e)}")
            raise

    # first title-like line near the top, else the file name
    def _extract_title(self, lines: List[str], fallback: str) -> str:
        for line in lines[:20]:
            line = line.lstrip("# ").strip()
            words = line.split()
            if 5 < len(line) < 100 and 1 <= len(words) <= 10 and (line.istitle() or line.isupper() or len(words) <= 6):
                return line
        return fallback.replace("_", " ").replace("-", " ").strip() or "Untitled Source"

    # extract metadata like author, creation date, etc from pdf
    def extract_metadata(self, path: str) -> Dict[str, Any]:
        """Extract metadata from PDF"""
        try:
            doc = fitz.open(path)
            metadata = doc.metadata or {}
            page_count = doc.page_count
            doc.close()

            return {
                'title': metadata.get('title', ''),
                'author': metadata.get('author', ''),
                'subject': metadata.get('subject', ''),
                'creation_date': metadata.get('creationDate', ''),
                'page_count': page_count
            }
        except Exception as e:
            logger.error(f"Error extracting metadata from {path}: {str(e)}")
            return {}
