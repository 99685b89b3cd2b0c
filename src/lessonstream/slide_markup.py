# streaming parser for the presentation slide markup
import re
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .decoder import ChunkDecoder, Fragment
from .errors import SessionStateError
from .models import RootImage, SessionState, Slide, SlideNode
from .scanner import ScanMatch, equal_split_strategy, slice_at_markers
from .session import trim_stream_tail
from .units import UnitParser

logger = logging.getLogger(__name__)

SLIDE_STRATEGY = "slide_markup"

VOID_TAGS = {"ICON", "IMG"}
CONTAINER_TAGS = {"BULLETS", "ICONS", "TIMELINE", "CYCLE", "ARROWS", "PYRAMID", "STAIRCASE"}

SECTION_OPEN = re.compile(r"<SECTION\b([^<>]*)>", re.IGNORECASE)
SECTION_CLOSE = re.compile(r"</SECTION\s*>", re.IGNORECASE)
TAG = re.compile(r"<(/?)([A-Za-z][A-Za-z0-9]*)([^<>]*?)(/?)>")
ATTRIBUTE = re.compile(r"([A-Za-z_][\w-]*)\s*=\s*(?:\"([^\"]*)\"|'([^']*)')")
# "<", "</", "<H" or "<SECTION layout=..." still waiting for its ">"
PARTIAL_TAG = re.compile(r"</?(?:[A-Za-z][^<>]*)?$")


@dataclass
class SectionSource:
    raw: str
    attributes: Dict[str, str]
    inner: str
    closed: bool


def parse_attributes(text: str) -> Dict[str, str]:
    return {
        m.group(1).lower(): m.group(2) if m.group(2) is not None else m.group(3)
        for m in ATTRIBUTE.finditer(text)
    }


def split_sections(buffer: str) -> List[SectionSource]:
    """Find each <SECTION>, ending at its close tag, the next section, or the buffer end.

    A section cut short by the next <SECTION> counts as closed.
    """
    sections = []
    opening = SECTION_OPEN.search(buffer)
    while opening:
        next_opening = SECTION_OPEN.search(buffer, opening.end())
        closing = SECTION_CLOSE.search(buffer, opening.end())

        if closing and (not next_opening or closing.start() < next_opening.start()):
            end, inner_end, closed = closing.end(), closing.start(), True
        elif next_opening:
            end, inner_end, closed = next_opening.start(), next_opening.start(), True
        else:
            end, inner_end, closed = len(buffer), len(buffer), False

        sections.append(SectionSource(
            raw=buffer[opening.start():end],
            attributes=parse_attributes(opening.group(1)),
            inner=buffer[opening.end():inner_end],
            closed=closed,
        ))
        opening = SECTION_OPEN.search(buffer, end)
    return sections


def _add_text(parent: SlideNode, text: str):
    text = text.strip()
    if text:
        parent.children.append(SlideNode(type="text", text=text))


def build_slide_nodes(inner: str, section_closed: bool) -> Tuple[List[SlideNode], Optional[RootImage]]:
    """Turn the markup inside one section into a node tree.

    While the section is open, elements still missing their close tag and
    the text directly inside them are flagged generating.
    """
    root = SlideNode(type="section")
    stack = [root]
    root_image = None
    position = 0

    for tag in TAG.finditer(inner):
        _add_text(stack[-1], inner[position:tag.start()])
        position = tag.end()

        closing, name = tag.group(1) == "/", tag.group(2).upper()
        if closing:
            if name in VOID_TAGS:
                continue
            for depth in range(len(stack) - 1, 0, -1):
                if stack[depth].type == name.lower():
                    del stack[depth:]
                    break
            continue

        attributes = parse_attributes(tag.group(3))
        if name == "IMG" and len(stack) == 1:
            root_image = RootImage(query=attributes.get("query", ""), url=attributes.get("url"))
            continue

        node = SlideNode(type=name.lower(), attributes=attributes)
        stack[-1].children.append(node)
        if name not in VOID_TAGS and not tag.group(4):
            stack.append(node)

    _add_text(stack[-1], inner[position:])

    if not section_closed:
        for node in stack:
            if node is not root:
                node.generating = True
            for child in node.children:
                if child.type == "text":
                    child.generating = True

    return root.children, root_image


def _clear_generating(node: SlideNode):
    node.generating = False
    for child in node.children:
        _clear_generating(child)


class SlideParser:
    """Incremental parser for <SECTION> slide markup.

    Follows the same contract as ParseSession: parse_chunk with the
    cumulative text, get_all_slides at any time, finalize once the stream
    is done, reset to start over.
    """

    name = "presentation"

    def __init__(self, decoder: Optional[ChunkDecoder] = None):
        self.decoder = decoder or ChunkDecoder()
        self.reset()

    @property
    def kind(self) -> str:
        return self.name

    @property
    def strategy(self) -> Optional[str]:
        return SLIDE_STRATEGY if self._slides else None

    def reset(self):
        self.decoder.reset()
        self.buffer = ""
        self.state = SessionState.EMPTY
        self._slides: List[Slide] = []
        self._closed_cache: Dict[str, Slide] = {}

    def parse_chunk(self, text: str, cumulative: bool = True) -> List[Slide]:
        if not isinstance(text, str):
            raise TypeError(f"parse_chunk expects str, got {type(text).__name__}")
        if self.state == SessionState.FINALIZED:
            raise SessionStateError("Slide parser is finalized; call reset() before parsing new content")

        if cumulative:
            if self.buffer and not text.startswith(self.buffer):
                logger.warning("Cumulative markup does not extend the buffer, replacing it")
            self.buffer = text
        else:
            self.buffer += text

        self.state = SessionState.ACCUMULATING
        self._slides = self.parse(self.buffer, final=False)
        return self.get_all_slides()

    # decode a raw fragment and append it
    def feed(self, fragment: Fragment) -> List[Slide]:
        if self.state == SessionState.FINALIZED:
            raise SessionStateError("Slide parser is finalized; call reset() before feeding new content")
        return self.parse_chunk(self.decoder.decode(fragment), cumulative=False)

    def parse(self, content: str, final: bool = True) -> List[Slide]:
        """Parse markup into slides; a one-shot call is final by default."""
        # a trailing "<" only waits for its tag while the stream is open
        buffer = content if final else PARTIAL_TAG.sub("", content)
        slides = []
        for number, section in enumerate(split_sections(buffer), start=1):
            cached = self._closed_cache.get(section.raw) if section.closed else None
            if cached is None:
                content_nodes, root_image = build_slide_nodes(section.inner, section.closed or final)
                cached = Slide(
                    id="",
                    sequence_number=0,
                    layout=section.attributes.get("layout"),
                    width=section.attributes.get("width"),
                    root_image=root_image,
                    content=content_nodes,
                )
                if section.closed:
                    self._closed_cache[section.raw] = cached
            slides.append(cached.model_copy(deep=True, update={
                "id": f"slide_{number}",
                "sequence_number": number,
                "is_provisional": not (section.closed or final),
            }))
        return slides

    def get_all_slides(self) -> List[Slide]:
        return [slide.model_copy(deep=True) for slide in self._slides]

    def get_all_units(self) -> List[Slide]:
        return self.get_all_slides()

    def clear_all_generating_marks(self) -> List[Slide]:
        for slide in self._slides:
            for node in slide.content:
                _clear_generating(node)
        return self.get_all_slides()

    def finalize(self) -> List[Slide]:
        if self.state == SessionState.FINALIZED:
            return self.get_all_slides()
        if self.state == SessionState.EMPTY:
            raise SessionStateError("finalize() called before any markup was parsed")

        self.buffer = trim_stream_tail(self.buffer + self.decoder.flush())
        self._slides = self.parse(self.buffer, final=True)
        self.state = SessionState.FINALIZED
        logger.info(f"✓ Finalized presentation: {len(self._slides)} slides")
        return self.get_all_slides()


HEADING_LINE = re.compile(r"^# (.*)$", re.MULTILINE)


def parse_outline_markdown(text: str) -> List[str]:
    """Split a markdown outline into one item per `# ` heading."""
    sections = [section for section in re.split(r"^# ", text, flags=re.MULTILINE) if section.strip()]
    return [f"# {section.strip()}" for section in sections]


# "# Heading" lines as unit boundaries
def markdown_heading_strategy(buffer: str) -> List[ScanMatch]:
    return [
        ScanMatch(position=match.start(), label=None, title=match.group(1).strip(), body=span.strip())
        for match, span in slice_at_markers(buffer, list(HEADING_LINE.finditer(buffer)))
    ]


# presentation outline headings as units, so outlines can stream through a ParseSession
class OutlineMarkdownParser(UnitParser):
    name = "presentation_outline"

    def __init__(self):
        super().__init__([markdown_heading_strategy, equal_split_strategy(target_count=1)])
