#!/usr/bin/env python3
"""
tests for the streaming slide markup parser
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent))

from src.lessonstream.errors import SessionStateError
from src.lessonstream.slide_markup import (
    OutlineMarkdownParser,
    SlideParser,
    build_slide_nodes,
    parse_attributes,
    parse_outline_markdown,
    split_sections,
)

DECK = """<PRESENTATION>
<SECTION layout="left">
<H1>Water Cycle</H1>
<IMG query="water cycle">
<BULLETS>
<DIV><H3>Evaporation</H3><P>Sun heats water.</P></DIV>
</BULLETS>
</SECTION>
<SECTION layout="right" width='wide'>
<H1>Rain</H1>
</SECTION>
</PRESENTATION>"""


def _all_nodes(nodes):
    for node in nodes:
        yield node
        yield from _all_nodes(node.children)


def test_parse_complete_deck():
    slides = SlideParser().parse(DECK)

    assert [s.id for s in slides] == ["slide_1", "slide_2"]
    assert [s.sequence_number for s in slides] == [1, 2]
    first = slides[0]
    assert first.layout == "left"
    assert first.root_image.query == "water cycle"
    assert [n.type for n in first.content] == ["h1", "bullets"]
    assert first.content[0].children[0].text == "Water Cycle"

    div = first.content[1].children[0]
    assert div.type == "div"
    assert [n.type for n in div.children] == ["h3", "p"]
    assert slides[1].width == "wide"
    assert not any(n.generating for s in slides for n in _all_nodes(s.content))


def test_open_elements_are_generating():
    parser = SlideParser()
    slides = parser.parse_chunk('<SECTION layout="left">\n<H1>Water Cy')

    assert len(slides) == 1
    assert slides[0].is_provisional
    heading = slides[0].content[0]
    assert heading.generating
    assert heading.children[0].text == "Water Cy"
    assert heading.children[0].generating

    slides = parser.parse_chunk('<SECTION layout="left">\n<H1>Water Cycle</H1>\n<P>Sun')
    heading, paragraph = slides[0].content
    assert not heading.generating
    assert not heading.children[0].generating
    assert paragraph.generating
    assert paragraph.children[0].generating


def test_partial_tag_is_held_back():
    parser = SlideParser()
    slides = parser.parse_chunk("<SECTION>\n<H1>Title</H1>\n<P")
    assert [n.type for n in slides[0].content] == ["h1"]

    assert parser.parse_chunk("<SECTION>\n<H1>Title</H1>\n<P", cumulative=True) == slides
    assert SlideParser().parse_chunk("<SECT") == []


def test_text_outside_sections_is_ignored():
    slides = SlideParser().parse("Here is your deck:\n<SECTION><H1>Only</H1></SECTION>\nThanks!")
    assert len(slides) == 1
    assert slides[0].content[0].children[0].text == "Only"


def test_section_ended_by_next_section_is_closed():
    slides = SlideParser().parse_chunk("<SECTION><H1>One</H1>\n<SECTION><H1>Two")

    assert [s.is_provisional for s in slides] == [False, True]
    assert not slides[0].content[0].generating


def test_void_and_self_closing_tags():
    nodes, root_image = build_slide_nodes(
        '<ICONS><DIV><ICON query="sun"><H3>Sun</H3></DIV></ICONS><IMG query="sky" />', True
    )

    assert root_image.query == "sky"
    div = nodes[0].children[0]
    assert [n.type for n in div.children] == ["icon", "h3"]
    assert div.children[0].attributes == {"query": "sun"}
    assert div.children[0].children == []


def test_nested_image_stays_in_tree():
    nodes, root_image = build_slide_nodes('<DIV><IMG query="inside"></DIV>', True)
    assert root_image is None
    assert nodes[0].children[0].type == "img"


def test_finalize_clears_generating_and_provisional():
    parser = SlideParser()
    parser.parse_chunk("<SECTION><H1>Half")
    slides = parser.finalize()

    assert not slides[0].is_provisional
    assert not any(n.generating for n in _all_nodes(slides[0].content))
    assert parser.finalize() == slides
    with pytest.raises(SessionStateError):
        parser.parse_chunk("more")


def test_finalize_keeps_trailing_text_that_looked_like_a_tag():
    parser = SlideParser()
    streaming = parser.parse_chunk("<SECTION><P>if a<b")
    assert streaming[0].content[0].children[0].text == "if a"

    slides = parser.finalize()
    assert slides[0].content[0].children[0].text == "if a<b"


def test_finalize_before_parse_fails():
    with pytest.raises(SessionStateError):
        SlideParser().finalize()


def test_clear_all_generating_marks():
    parser = SlideParser()
    parser.parse_chunk("<SECTION><BULLETS><DIV><P>one")
    slides = parser.clear_all_generating_marks()

    assert not any(n.generating for n in _all_nodes(slides[0].content))
    assert slides[0].is_provisional


def test_cached_slides_match_fresh_parse():
    parser = SlideParser()
    end = DECK.index("<SECTION layout=\"right\"")
    parser.parse_chunk(DECK[:end])
    streamed = parser.parse_chunk(DECK)

    assert streamed == SlideParser().parse(DECK, final=False)
    assert parser.get_all_units() == streamed


def test_feed_bytes():
    parser = SlideParser()
    data = "<SECTION><H1>Café</H1></SECTION>".encode("utf-8")
    for start in range(0, len(data), 3):
        parser.feed(data[start:start + 3])
    slides = parser.finalize()

    assert slides[0].content[0].children[0].text == "Café"
    assert parser.strategy == "slide_markup"


def test_reset():
    parser = SlideParser()
    parser.parse_chunk("<SECTION><H1>A</H1></SECTION>")
    parser.finalize()
    parser.reset()

    assert parser.get_all_slides() == []
    assert parser.strategy is None
    assert len(parser.parse_chunk("<SECTION><H1>B")) == 1


def test_split_sections_and_attributes():
    sections = split_sections('<SECTION layout="vertical">a</SECTION><SECTION>b')

    assert [s.inner for s in sections] == ["a", "b"]
    assert [s.closed for s in sections] == [True, False]
    assert sections[0].attributes == {"layout": "vertical"}
    assert parse_attributes("Query='x' url=\"y\"") == {"query": "x", "url": "y"}


def test_parse_outline_markdown():
    assert parse_outline_markdown("# One\n- a\n# Two\n- b") == ["# One\n- a", "# Two\n- b"]
    assert parse_outline_markdown("no headings") == ["# no headings"]
    assert parse_outline_markdown("  ") == []


def test_outline_markdown_parser():
    parser = OutlineMarkdownParser()
    units = parser.parse("# One\n- a\n# Two\n- b")

    assert [u.title for u in units] == ["One", "Two"]
    assert units[0].body == "- a"
    assert len(parser.parse("plain outline text\nsecond line")) == 1
