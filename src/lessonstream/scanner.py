# structural marker scanning for streamed ai output
import math
import re
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)


@dataclass
class ScanMatch:
    """One unit boundary found in the buffer."""

    position: int
    label: Optional[int]
    title: str
    body: str


@dataclass
class ScanResult:
    strategy: Optional[str]
    matches: List[ScanMatch] = field(default_factory=list)


Strategy = Callable[[str], List[ScanMatch]]

BULLET_GLYPHS = "•-*"
OPTION_LINE = re.compile(r"^[A-D][\.:\)]\s+")


# normalize line endings and collapse runs of blank lines
def clean_content(content: str) -> str:
    return re.sub(r"\n{3,}", "\n\n", content.replace("\r\n", "\n").replace("\r", "\n")).strip()


# list (offset, stripped text) for every non-empty line
def non_empty_lines(buffer: str) -> List[Tuple[int, str]]:
    return [(m.start(), m.group().strip()) for m in re.finditer(r"[^\n]+", buffer) if m.group().strip()]


# strip markdown decoration around a header title
def _clean_title(text: str) -> str:
    return text.strip().strip("*#_").strip()


# split a span into title (first non-empty line) and body (the rest)
def split_title_body(span: str) -> Tuple[str, str]:
    lines = span.strip().split("\n")
    title = _clean_title(lines[0]) if lines else ""
    body = "\n".join(lines[1:]).strip()
    return title, body


# cut the buffer at each regex match, from the end of the marker to the next match
def slice_at_markers(buffer: str, markers: List[re.Match]) -> List[Tuple[re.Match, str]]:
    spans = []
    for i, match in enumerate(markers):
        end = markers[i + 1].start() if i + 1 < len(markers) else len(buffer)
        spans.append((match, buffer[match.end():end]))
    return spans


def strict_header_strategy(keywords: Sequence[str], ignore_case: bool = False) -> Strategy:
    """Match `KEYWORD <n>:` header lines from a small literal vocabulary.

    This is the format the prompts ask for, so it is tried first.
    """
    vocabulary = "|".join(re.escape(k) for k in keywords)
    flags = re.MULTILINE | (re.IGNORECASE if ignore_case else 0)
    pattern = re.compile(rf"^[ \t]*(?:[#*]+[ \t]*)?({vocabulary})[ \t]+(\d+)[ \t]*\**[ \t]*:", flags)

    def strict_headers(buffer: str) -> List[ScanMatch]:
        matches = []
        for match, span in slice_at_markers(buffer, list(pattern.finditer(buffer))):
            label = int(match.group(2))
            title, body = split_title_body(span)
            matches.append(ScanMatch(
                position=match.start(),
                label=label,
                title=title or f"{match.group(1).title()} {label}",
                body=body,
            ))
        return matches

    return strict_headers


NUMBERED_LINE = re.compile(r"^[ \t]*(\d+)\.[ \t]+(\S[^\n]*)$", re.MULTILINE)


# lines such as "3. Title" when the model numbers sections itself
def numbered_list_strategy(buffer: str) -> List[ScanMatch]:
    matches = []
    for match, span in slice_at_markers(buffer, list(NUMBERED_LINE.finditer(buffer))):
        matches.append(ScanMatch(
            position=match.start(),
            label=int(match.group(1)),
            title=_clean_title(match.group(2)),
            body=span.strip(),
        ))
    return matches


def bulleted_section_strategy(allow_numbered: bool = False) -> Strategy:
    """Treat `• Title` lines with a capitalized first word as section starts."""
    numbered_prefix = re.compile(r"^\d+[\.\)]\s+")

    def bulleted_sections(buffer: str) -> List[ScanMatch]:
        matches: List[ScanMatch] = []
        current: Optional[ScanMatch] = None
        body_lines: List[str] = []

        for offset, line in non_empty_lines(buffer):
            header = None
            if len(line) > 2 and line[0] in BULLET_GLYPHS and line[1] in " \t":
                rest = line[1:].strip()
                if allow_numbered and numbered_prefix.match(rest):
                    header = numbered_prefix.sub("", rest).strip()
                elif rest[:1].isupper():
                    header = rest

            if header:
                if current:
                    current.body = "\n".join(body_lines)
                    matches.append(current)
                current = ScanMatch(position=offset, label=None, title=header, body="")
                body_lines = []
            elif current:
                body_lines.append(line)

        if current:
            current.body = "\n".join(body_lines)
            matches.append(current)
        return matches

    return bulleted_sections


def equal_split_strategy(lines_per_unit: int = 20, target_count: Optional[int] = None) -> Strategy:
    """Last resort: cut the non-empty lines into roughly equal chunks.

    Never returns an empty list for a buffer holding any text.
    """

    def equal_split(buffer: str) -> List[ScanMatch]:
        lines = non_empty_lines(buffer)
        if not lines:
            return []

        if target_count:
            chunk_count = target_count
            per_chunk = max(1, math.ceil(len(lines) / target_count))
        else:
            chunk_count = max(1, math.ceil(len(lines) / lines_per_unit))
            per_chunk = math.ceil(len(lines) / chunk_count)

        matches = []
        for i in range(chunk_count):
            chunk = lines[i * per_chunk:(i + 1) * per_chunk]
            if not chunk:
                break
            matches.append(ScanMatch(
                position=chunk[0][0],
                label=None,
                title=chunk[0][1],
                body="\n".join(text for _, text in chunk[1:]),
            ))
        return matches

    return equal_split


Q_FORMAT_LINE = re.compile(r"^[ \t]*Q(\d+)[ \t]*[:\.\)][ \t]*([^\n]*)$", re.MULTILINE | re.IGNORECASE)


# quiz lines such as "Q3: question text"
def q_format_strategy(buffer: str) -> List[ScanMatch]:
    matches = []
    for match, span in slice_at_markers(buffer, list(Q_FORMAT_LINE.finditer(buffer))):
        inline = match.group(2).strip()
        title, body = split_title_body(inline + "\n" + span if inline else span)
        matches.append(ScanMatch(position=match.start(), label=int(match.group(1)), title=title, body=body))
    return matches


# question-looking lines followed by lettered option lines
def question_line_strategy(buffer: str) -> List[ScanMatch]:
    numbered = re.compile(r"^\d+[\.:\)]\s")
    matches: List[ScanMatch] = []
    current: Optional[ScanMatch] = None
    body_lines: List[str] = []
    has_options = False

    for offset, line in non_empty_lines(buffer):
        is_option = bool(OPTION_LINE.match(line))
        looks_like_question = not is_option and (line.endswith("?") or numbered.match(line))
        if looks_like_question and (current is None or has_options):
            if current:
                current.body = "\n".join(body_lines)
                matches.append(current)
            current = ScanMatch(position=offset, label=None, title=re.sub(r"^\d+[\.:\)]\s*", "", line), body="")
            body_lines = []
            has_options = False
        elif current:
            body_lines.append(line)
            has_options = has_options or is_option

    if current and has_options:
        current.body = "\n".join(body_lines)
        matches.append(current)
    return matches


# tries strategies in order, first non-empty result wins
class MarkerScanner:
    def __init__(self, strategies: Sequence[Strategy]):
        if not strategies:
            raise ValueError("MarkerScanner needs at least one strategy")
        self.strategies = list(strategies)

    def scan(self, buffer: str) -> ScanResult:
        """Return the matches of the first strategy that finds anything."""
        for strategy in self.strategies:
            matches = strategy(buffer)
            if matches:
                logger.debug(f"Scanned {len(matches)} units with {strategy.__name__}")
                return ScanResult(strategy=strategy.__name__, matches=matches)
        return ScanResult(strategy=None, matches=[])
