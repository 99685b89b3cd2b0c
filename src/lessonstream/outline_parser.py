# parser for the ten-outline summary format
import logging
from typing import Dict, List, Any

from .models import Unit
from .scanner import (
    bulleted_section_strategy,
    equal_split_strategy,
    numbered_list_strategy,
    strict_header_strategy,
)
from .units import UnitParser, pad_units

logger = logging.getLogger(__name__)

OUTLINE_COUNT = 10
MAX_OUTLINE_LINES = 2


# parses summary outlines, each body capped at two lines
class OutlineParser(UnitParser):
    name = "summary"
    max_body_lines = MAX_OUTLINE_LINES

    def __init__(self, target_count: int = OUTLINE_COUNT):
        self.target_count = target_count
        super().__init__([
            strict_header_strategy(["OUTLINE"]),
            numbered_list_strategy,
            bulleted_section_strategy(allow_numbered=True),
            equal_split_strategy(target_count=target_count),
        ])

    def parse_outlines(self, content: str) -> List[Unit]:
        """Parse a finished response into exactly target_count outlines.

        Short results are padded with placeholder outlines and long ones
        trimmed; consumers always receive the fixed count.
        """
        outlines = self.parse(content)
        if len(outlines) < self.target_count:
            logger.warning(
                f"⚠️ Parsed {len(outlines)} outlines (expected {self.target_count}) using {self.last_strategy}"
            )
        else:
            logger.info(f"✓ Parsed {len(outlines)} outlines using {self.last_strategy}")
        return pad_units(outlines, self.target_count)

    # check a final outline list against the summary format rules
    def validate_outlines(self, outlines: List[Unit]) -> Dict[str, Any]:
        errors = []

        if len(outlines) != self.target_count:
            errors.append(f"Expected {self.target_count} outlines, found {len(outlines)}")

        for outline in outlines:
            lines = [line for line in outline.body.split("\n") if line.strip()]
            if len(lines) > MAX_OUTLINE_LINES:
                errors.append(f"Outline {outline.sequence_number} has more than {MAX_OUTLINE_LINES} lines")
            if not outline.title.strip():
                errors.append(f"Outline {outline.sequence_number} has no title")

        return {"valid": len(errors) == 0, "errors": errors}
