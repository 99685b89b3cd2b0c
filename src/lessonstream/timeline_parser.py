# parser for the lesson timeline table inside a lesson plan
import re
import logging
from typing import Callable, List, Optional, Sequence

from .models import TimelineParseResult, TimelineRow

logger = logging.getLogger(__name__)

DURATION_PATTERN = re.compile(r"^\d+\s*(?:min|minutes?|hr|hours?|h|sec|seconds?)$", re.IGNORECASE)
DURATION_SEARCH = re.compile(r"\d+\s*(?:min|minutes?|hr|hours?|h|sec|seconds?)\b", re.IGNORECASE)
TABLE_SEPARATOR = re.compile(r"^\|?[\s\-:|]+\|?$")
LIST_ITEM = re.compile(r"^[\d\-•\*][\.\)]?\s+")


def _is_header(line: str) -> bool:
    return "Duration" in line or "Activity" in line


def _content_lines(content: str) -> List[str]:
    return [line.strip() for line in content.split("\n") if line.strip() and not _is_header(line.strip())]


def _split_cells(line: str, separator: str) -> List[str]:
    cells = [cell.strip() for cell in line.split(separator)]
    # markdown rows carry an empty cell at either end
    if separator == "|" and line.startswith("|"):
        cells = cells[1:]
    if separator == "|" and line.endswith("|"):
        cells = cells[:-1]
    return cells


def create_row(cells: Sequence[str]) -> Optional[TimelineRow]:
    """Build a row from four cells, or None when the cells are not a timeline row."""
    if len(cells) != 4:
        return None
    duration, activity, instructions, notes = (cell.strip() for cell in cells)
    if not duration or not activity or not instructions:
        return None
    if not DURATION_PATTERN.match(duration):
        found = DURATION_SEARCH.search(duration)
        if not found:
            return None
        duration = found.group(0)
    return TimelineRow(duration=duration, activity=activity, instructions=instructions, teacher_notes=notes)


def pipe_separated(content: str) -> List[TimelineRow]:
    rows = []
    for line in _content_lines(content):
        if "|" not in line or TABLE_SEPARATOR.match(line):
            continue
        row = create_row(_split_cells(line, "|"))
        if row:
            rows.append(row)
    return rows


def tab_separated(content: str) -> List[TimelineRow]:
    rows = []
    for line in _content_lines(content):
        if "\t" in line:
            row = create_row(_split_cells(line, "\t"))
            if row:
                rows.append(row)
    return rows


# "- 10 min" followed by activity, instructions and notes on their own lines
def structured_list(content: str) -> List[TimelineRow]:
    rows = []
    current: List[str] = []
    for line in _content_lines(content):
        if LIST_ITEM.match(line):
            if len(current) == 4:
                row = create_row(current)
                if row:
                    rows.append(row)
            current = [LIST_ITEM.sub("", line)]
        elif 0 < len(current) < 4:
            current.append(line)

    if len(current) == 4:
        row = create_row(current)
        if row:
            rows.append(row)
    return rows


def auto_corrected(content: str) -> List[TimelineRow]:
    """Repair rows with a missing separator after the duration or a merged last column."""
    rows = []
    for line in _content_lines(content):
        corrected = line
        if "|" not in corrected and "\t" not in corrected:
            found = DURATION_SEARCH.search(corrected)
            if found:
                corrected = f"{corrected[:found.end()]} | {corrected[found.end():]}"

        for separator in ("|", "\t"):
            if separator not in corrected:
                continue
            cells = _split_cells(corrected, separator)
            if len(cells) == 3 and "." in cells[2] and len(cells[2]) > 50:
                first, rest = cells[2].split(".", 1)
                cells = cells[:2] + [first.strip(), rest.strip()]
            row = create_row(cells)
            if row:
                rows.append(row)
                break
    return rows


STRATEGIES: List[Callable[[str], List[TimelineRow]]] = [
    pipe_separated,
    tab_separated,
    structured_list,
    auto_corrected,
]


def parse_timeline(content: str) -> TimelineParseResult:
    """Parse timeline rows, falling back to the raw content when nothing fits."""
    for strategy in STRATEGIES:
        rows = strategy(content)
        if rows:
            logger.info(f"✅ Parsed {len(rows)} timeline rows using {strategy.__name__}")
            return TimelineParseResult(success=True, rows=rows, strategy=strategy.__name__)

    logger.warning("❌ All timeline strategies failed, using fallback content")
    return TimelineParseResult(
        success=False,
        error="Unable to parse timeline content",
        fallback_content=content,
    )


def format_timeline_rows(rows: Sequence[TimelineRow]) -> str:
    if not rows:
        return "No timeline data available"
    return "\n".join(
        f"{row.duration} | {row.activity} | {row.instructions} | {row.teacher_notes}" for row in rows
    )
