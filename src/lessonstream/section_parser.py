# parser for lesson plan sections
import re
import logging
from typing import List, Optional, Sequence

from .models import LessonPlanSection
from .scanner import (
    ScanMatch,
    non_empty_lines,
    slice_at_markers,
    strict_header_strategy,
)
from .units import UnitParser, classify_unit_type

logger = logging.getLogger(__name__)

KNOWN_SECTIONS = [
    "LESSON OVERVIEW",
    "MATERIALS NEEDED",
    "LEARNING OBJECTIVES",
    "LESSON TIMELINE",
    "ACTIVITIES AND INSTRUCTIONS",
    "ASSESSMENT METHODS",
    "DIFFERENTIATION STRATEGIES",
    "ADDITIONAL NOTES",
]
EXPECTED_SECTIONS = 6
MIN_PARTIAL_LENGTH = 50
TABLE_TITLE_WORDS = ["TIMELINE", "CRONOLOGIA", "CRONOPROGRAMMA", "SCHEDULE", "AGENDA", "PROGRAMMA"]

FLEXIBLE_PATTERNS = [
    re.compile(r"^SECTION\s*:?\s*(.+)$", re.IGNORECASE | re.MULTILINE),
    re.compile(r"^(\d+\.\s*.+)$", re.MULTILINE),
    re.compile(r"^([A-Z][A-Z \t]+):[ \t]*$", re.MULTILINE),
]
NUMBERED_TITLE = re.compile(r"^[ \t]*\d+\.[ \t]*(.+)$", re.MULTILINE)
BULLETED_TITLE = re.compile(r"^[ \t]*[•\-\*][ \t]*(.+)$", re.MULTILINE)


def match_known_title(title: str) -> Optional[str]:
    """Map a header to one of the standard section names, if it is one.

    Accepts containment either way, or at least two overlapping words.
    """
    upper = title.strip().strip("*#:").strip().upper()
    if not upper:
        return None
    for known in KNOWN_SECTIONS:
        if known in upper or (len(upper) >= 8 and upper in known):
            return known
    words = [w for w in re.findall(r"[A-Z]+", upper) if len(w) >= 4]
    for known in KNOWN_SECTIONS:
        overlap = [w for w in words if any(k.startswith(w) or w.startswith(k) for k in known.split())]
        if len(overlap) >= 2:
            return known
    return None


def section_format(title: str, body: str) -> str:
    upper = title.upper()
    if any(word in upper for word in TABLE_TITLE_WORDS):
        return "table"
    if any(line[:1] in "•-*" for _, line in non_empty_lines(body)):
        return "list"
    return "text"


# cut at the header regex, keeping only the headers that name a known section
def _known_title_sections(buffer: str, pattern: re.Pattern) -> List[ScanMatch]:
    markers = [m for m in pattern.finditer(buffer) if match_known_title(m.group(1))]
    matches = []
    for match, span in slice_at_markers(buffer, markers):
        if span.strip():
            matches.append(ScanMatch(
                position=match.start(), label=None, title=match.group(1).strip(), body=span.strip()
            ))
    return matches


# headers without numbering, only trusted when the response has enough of them
def flexible_header_strategy(buffer: str) -> List[ScanMatch]:
    for pattern in FLEXIBLE_PATTERNS:
        markers = list(pattern.finditer(buffer))
        if len(markers) < EXPECTED_SECTIONS:
            continue
        matches = []
        for match, span in slice_at_markers(buffer, markers):
            title = match.group(1).strip()
            if len(title) > 50 or "|" in title or "•" in title:
                continue
            if span.strip() and match_known_title(title):
                matches.append(ScanMatch(position=match.start(), label=None, title=title, body=span.strip()))
        return matches
    return []


def numbered_title_strategy(buffer: str) -> List[ScanMatch]:
    return _known_title_sections(buffer, NUMBERED_TITLE)


def bulleted_title_strategy(buffer: str) -> List[ScanMatch]:
    return _known_title_sections(buffer, BULLETED_TITLE)


# any line naming a known section starts a new one
def known_header_strategy(buffer: str) -> List[ScanMatch]:
    matches: List[ScanMatch] = []
    current: Optional[ScanMatch] = None
    body_lines: List[str] = []

    for offset, line in non_empty_lines(buffer):
        known = match_known_title(line) if len(line) <= 60 else None
        if known:
            if current:
                current.body = "\n".join(body_lines)
                matches.append(current)
            current = ScanMatch(position=offset, label=None, title=known, body="")
            body_lines = []
        elif current:
            body_lines.append(line)

    if current:
        current.body = "\n".join(body_lines)
        matches.append(current)
    return matches


# the whole response as one section
def whole_plan_strategy(buffer: str) -> List[ScanMatch]:
    if not buffer.strip():
        return []
    return [ScanMatch(position=0, label=None, title="LESSON PLAN", body=buffer.strip())]


class SectionParser(UnitParser):
    """Parse a lesson plan into its standard sections."""

    name = "lesson_plan"

    def __init__(self):
        super().__init__([
            strict_header_strategy(["SECTION"], ignore_case=True),
            flexible_header_strategy,
            numbered_title_strategy,
            bulleted_title_strategy,
            known_header_strategy,
            whole_plan_strategy,
        ])

    def build(self, matches: Sequence[ScanMatch]) -> List[LessonPlanSection]:
        sections = []
        for sequence_number, match in enumerate(matches, start=1):
            title = match_known_title(match.title) or match.title.strip() or f"Section {sequence_number}"
            body = match.body.strip()
            sections.append(LessonPlanSection(
                sequence_number=sequence_number,
                label=match.label,
                title=title,
                body=body,
                unit_type=classify_unit_type(title, body),
                section_format=section_format(title, body),
            ))
        return sections

    def parse_sections(self, content: str, allow_partial: bool = False) -> List[LessonPlanSection]:
        """Parse a lesson plan response.

        With allow_partial, sections whose body is still shorter than 50
        characters are left out, so a half-written header never shows.
        """
        sections = self.parse(content)
        if not allow_partial:
            logger.info(f"✅ Parsed {len(sections)} lesson plan sections using {self.last_strategy}")
            return sections

        complete = [s for s in sections if len(s.body) >= MIN_PARTIAL_LENGTH]
        return [
            s.model_copy(update={"sequence_number": number})
            for number, s in enumerate(complete, start=1)
        ]
