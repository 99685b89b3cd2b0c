# builds ordered units from scanner matches
import re
import logging
from typing import Dict, List, Optional, Sequence

from .models import Unit, UnitType
from .scanner import MarkerScanner, ScanMatch, Strategy, clean_content

logger = logging.getLogger(__name__)

PLACEHOLDER_BODY = "Content not available"

# keyword sets per unit type, checked in this order
UNIT_TYPE_KEYWORDS: Dict[UnitType, List[str]] = {
    UnitType.OVERVIEW: ["overview", "introduction"],
    UnitType.ACTIVITIES: ["activity", "activities", "exercise", "practice"],
    UnitType.ASSESSMENT: ["assessment", "evaluation", "test", "quiz"],
    UnitType.SUMMARY: ["summary", "conclusion", "wrap-up"],
}

_TYPE_PATTERNS = {
    unit_type: re.compile(r"\b(?:" + "|".join(re.escape(k) for k in keywords) + r")", re.IGNORECASE)
    for unit_type, keywords in UNIT_TYPE_KEYWORDS.items()
}


def classify_unit_type(title: str, body: str = "") -> UnitType:
    """Infer the semantic type of a unit from its title, then its body.

    Title hits always win over body hits; content is the default.
    """
    for text in (title, body):
        if not text:
            continue
        for unit_type, pattern in _TYPE_PATTERNS.items():
            if pattern.search(text):
                return unit_type
    return UnitType.CONTENT


# keep only the first max_lines non-empty lines
def truncate_lines(text: str, max_lines: int = 2) -> str:
    lines = [line.strip() for line in text.split("\n") if line.strip()]
    return "\n".join(lines[:max_lines])


# convert scanner matches into numbered units
def build_units(matches: Sequence[ScanMatch], max_body_lines: Optional[int] = None) -> List[Unit]:
    units = []
    for sequence_number, match in enumerate(matches, start=1):
        body = match.body.strip()
        if max_body_lines is not None:
            body = truncate_lines(body, max_body_lines)
        units.append(Unit(
            sequence_number=sequence_number,
            label=match.label,
            title=match.title.strip() or f"Section {sequence_number}",
            body=body,
            unit_type=classify_unit_type(match.title, body),
        ))
    return units


def pad_units(
    units: List[Unit],
    target_count: int,
    title_template: str = "Summary {number}",
    placeholder_body: str = PLACEHOLDER_BODY,
) -> List[Unit]:
    """Return exactly target_count units, appending placeholders when short."""
    if len(units) >= target_count:
        return list(units[:target_count])

    padded = list(units)
    missing = target_count - len(units)
    logger.warning(f"Padding {missing} placeholder units to reach {target_count}")
    for sequence_number in range(len(units) + 1, target_count + 1):
        padded.append(Unit(
            sequence_number=sequence_number,
            title=title_template.format(number=sequence_number),
            body=placeholder_body,
            unit_type=UnitType.CONTENT,
            is_placeholder=True,
        ))
    return padded


# base class for the per-domain parsers: clean, scan, build
class UnitParser:
    """Runs a MarkerScanner over a whole buffer and builds units.

    Subclasses provide the strategy list and may override prepare() or
    build() for domain-specific cleaning and unit construction.
    """

    name = "units"
    max_body_lines: Optional[int] = None

    def __init__(self, strategies: Sequence[Strategy]):
        self.scanner = MarkerScanner(strategies)
        self.last_strategy: Optional[str] = None

    def prepare(self, content: str) -> str:
        return clean_content(content)

    def build(self, matches: Sequence[ScanMatch]) -> List[Unit]:
        return build_units(matches, self.max_body_lines)

    # parse the full buffer into ordered units
    def parse(self, content: str) -> List[Unit]:
        if not isinstance(content, str):
            raise TypeError(f"{self.name} parser expects str content, got {type(content).__name__}")

        result = self.scanner.scan(self.prepare(content))
        self.last_strategy = result.strategy
        units = self.build(result.matches)
        if result.strategy:
            logger.debug(f"Parsed {len(units)} {self.name} units using {result.strategy}")
        return units
