# parser for multi-page lesson content
import logging
from typing import List

from .models import Unit
from .scanner import (
    bulleted_section_strategy,
    equal_split_strategy,
    numbered_list_strategy,
    strict_header_strategy,
)
from .units import UnitParser

logger = logging.getLogger(__name__)

LINES_PER_PAGE = 20


class PageParser(UnitParser):
    """Split a lesson response into pages.

    Tries `PAGE n:` headers, then numbered sections, then bulleted
    sections, and finally cuts the text into ~20 line pages.
    """

    name = "lesson"

    def __init__(self, lines_per_page: int = LINES_PER_PAGE):
        super().__init__([
            strict_header_strategy(["PAGE"]),
            numbered_list_strategy,
            bulleted_section_strategy(),
            equal_split_strategy(lines_per_unit=lines_per_page),
        ])

    # parse a complete response and log the outcome
    def parse_pages(self, content: str) -> List[Unit]:
        pages = self.parse(content)
        if pages:
            logger.info(f"✓ Parsed {len(pages)} lesson pages using {self.last_strategy}")
        else:
            logger.warning("No lesson pages found in empty response")
        return pages
