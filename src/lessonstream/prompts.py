# prompt templates asking the model for the markers the parsers expect
import logging
from typing import Optional

from .models import ContentKind, GenerationRequest, resolve_kind

logger = logging.getLogger(__name__)


def _source_block(request: GenerationRequest) -> str:
    if not request.source_text:
        return ""
    return f"""
SOURCE MATERIAL (base the content on this text):
{request.source_text}
"""


def lesson_prompt(request: GenerationRequest) -> str:
    return f"""You are an experienced teacher writing a lesson for {request.grade_level} students in {request.language}.

TOPIC: {request.topic}
{_source_block(request)}
YOUR TASK:
Write a lesson of exactly {request.number_of_units} pages.

REQUIREMENTS:
1. Start every page with a header line in the form "PAGE <number>: <page title>", numbered from 1.
2. Page 1 is an introduction or overview; the last page is a summary or conclusion.
3. Each page has 3-5 short paragraphs or bullet points below its header.
4. Do not write anything before PAGE 1 and do not use markdown headings.

Example format:
PAGE 1: Introduction to Photosynthesis
Plants make their own food using sunlight...

PAGE 2: The Light Reactions
..."""


def summary_prompt(request: GenerationRequest) -> str:
    return f"""You are summarizing material for {request.grade_level} students in {request.language}.

TOPIC: {request.topic}
{_source_block(request)}
YOUR TASK:
Write exactly 10 outlines that summarize the topic.

REQUIREMENTS:
1. Start every outline with "OUTLINE <number>: <title>", numbered 1 to 10.
2. Below each header write at most 2 short lines.
3. Cover the topic in a logical order, ending with a conclusion.

Return ONLY the 10 outlines, no other text."""


def quiz_prompt(request: GenerationRequest) -> str:
    return f"""You are writing a multiple choice quiz for {request.grade_level} students in {request.language}.

TOPIC: {request.topic}
{_source_block(request)}
YOUR TASK:
Write exactly {request.number_of_units} questions.

REQUIREMENTS:
1. Start every question with "QUESTION <number>: <question text>".
2. Give exactly four options on their own lines, labelled A), B), C) and D).
3. Mark the single correct option by ending its line with ✓.
4. Do not repeat questions and do not add explanations.

Example format:
QUESTION 1: What gas do plants absorb during photosynthesis?
A) Oxygen
B) Carbon dioxide ✓
C) Nitrogen
D) Helium"""


def lesson_plan_prompt(request: GenerationRequest) -> str:
    return f"""You are an experienced teacher preparing a lesson plan for {request.grade_level} students in {request.language}.

TOPIC: {request.topic}
{_source_block(request)}
YOUR TASK:
Write a complete lesson plan with these 8 sections, in this order:
LESSON OVERVIEW, MATERIALS NEEDED, LEARNING OBJECTIVES, LESSON TIMELINE,
ACTIVITIES AND INSTRUCTIONS, ASSESSMENT METHODS, DIFFERENTIATION STRATEGIES, ADDITIONAL NOTES

REQUIREMENTS:
1. Start every section with "SECTION <number>: <SECTION NAME>".
2. Use bullet points (•) for lists.
3. Write the LESSON TIMELINE as rows of exactly four columns separated by |:
   Duration | Activity | Instructions | Teacher Notes
   Every duration is written like "10 min"."""


def presentation_outline_prompt(request: GenerationRequest) -> str:
    return f"""You are planning a slide presentation in {request.language} for {request.grade_level} students.

TOPIC: {request.topic}
{_source_block(request)}
YOUR TASK:
Write an outline of {request.number_of_units} slides.

REQUIREMENTS:
1. Start every slide with a markdown heading: "# <slide title>".
2. Below each heading list 2-3 bullet points of what the slide covers.
3. Return ONLY the outline in markdown."""


def presentation_prompt(request: GenerationRequest) -> str:
    outline = "\n".join(request.outline) if request.outline else f"(create {request.number_of_units} slides about the topic)"
    return f"""You are designing presentation slides in {request.language} for {request.grade_level} students.

TOPIC: {request.topic}

OUTLINE:
{outline}
{_source_block(request)}
YOUR TASK:
Write one <SECTION> per outline item using this markup.

REQUIREMENTS:
1. Each slide is <SECTION layout="left|right|vertical"> ... </SECTION>.
2. Use <H1>..<H6> for headings and <P> for paragraphs.
3. Group items with <BULLETS>, <ICONS>, <TIMELINE>, <CYCLE>, <ARROWS>, <PYRAMID> or <STAIRCASE>, each item wrapped in <DIV>.
4. Use <ICON query="..."> inside icon items and put one <IMG query="..."> directly in each SECTION for its picture.
5. Return ONLY the markup, wrapped in <PRESENTATION> ... </PRESENTATION>.

Example format:
<PRESENTATION>
<SECTION layout="left">
<H1>The Water Cycle</H1>
<IMG query="water cycle diagram">
<BULLETS>
<DIV><H3>Evaporation</H3><P>The sun heats water into vapour.</P></DIV>
</BULLETS>
</SECTION>
</PRESENTATION>"""


def flashcards_prompt(request: GenerationRequest) -> str:
    return f"""You are creating study flashcards in {request.language} for {request.grade_level} students.

TOPIC: {request.topic}
{_source_block(request)}
YOUR TASK:
Create {request.number_of_units} flashcards, each with a short question and a concise answer.

OUTPUT FORMAT:
{{"cards": [{{"question": "...", "answer": "..."}}]}}

Return ONLY the JSON object, no other text."""


PROMPT_BUILDERS = {
    ContentKind.LESSON: lesson_prompt,
    ContentKind.SUMMARY: summary_prompt,
    ContentKind.QUIZ: quiz_prompt,
    ContentKind.LESSON_PLAN: lesson_plan_prompt,
    ContentKind.PRESENTATION_OUTLINE: presentation_outline_prompt,
    ContentKind.PRESENTATION: presentation_prompt,
    ContentKind.FLASHCARDS: flashcards_prompt,
}


def build_prompt(kind: ContentKind, request: GenerationRequest, max_source_chars: Optional[int] = None) -> str:
    """Build the generation prompt for a content kind.

    Long source text is cut to max_source_chars before it goes in.
    """
    builder = PROMPT_BUILDERS[resolve_kind(kind)]

    if max_source_chars and request.source_text and len(request.source_text) > max_source_chars:
        logger.warning(f"Source text truncated from {len(request.source_text)} to {max_source_chars} chars")
        request = request.model_copy(update={"source_text": request.source_text[:max_source_chars]})
    return builder(request)
