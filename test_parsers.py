#!/usr/bin/env python3
"""
tests for the per-domain parsers: pages, outlines, quizzes, lesson plans,
timelines and flashcards
"""

import sys
import random
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from src.lessonstream.flashcard_parser import ERROR_QUESTION, parse_flashcards
from src.lessonstream.models import QuizQuestion, Unit, UnitType
from src.lessonstream.outline_parser import OutlineParser
from src.lessonstream.page_parser import PageParser
from src.lessonstream.quiz_parser import (
    QuizParser,
    extract_question,
    question_health,
    randomize_question,
    remove_duplicate_questions,
)
from src.lessonstream.section_parser import SectionParser, match_known_title
from src.lessonstream.timeline_parser import format_timeline_rows, parse_timeline
from src.lessonstream.units import PLACEHOLDER_BODY, classify_unit_type, pad_units, truncate_lines


# pages

def test_page_parser_strict_headers():
    pages = PageParser().parse("PAGE 1: Intro\nHello\nPAGE 2: Body\nWorld")

    assert [p.sequence_number for p in pages] == [1, 2]
    assert [p.title for p in pages] == ["Intro", "Body"]
    assert [p.body for p in pages] == ["Hello", "World"]


def test_page_parser_unstructured_prose():
    parser = PageParser()
    text = "\n".join(f"Sentence number {i} about plants." for i in range(40))
    pages = parser.parse_pages(text)

    assert len(pages) == 2
    assert parser.last_strategy == "equal_split"


def test_page_parser_empty_response():
    assert PageParser().parse_pages("") == []


def test_sequence_numbers_ignore_model_labels():
    pages = PageParser().parse("PAGE 3: A\nx\nPAGE 3: B\ny\nPAGE 1: C\nz")

    assert [p.sequence_number for p in pages] == [1, 2, 3]
    assert [p.label for p in pages] == [3, 3, 1]


def test_classify_unit_type():
    assert classify_unit_type("Introduction to Cells") == UnitType.OVERVIEW
    assert classify_unit_type("Practice problems") == UnitType.ACTIVITIES
    assert classify_unit_type("Final quiz") == UnitType.ASSESSMENT
    assert classify_unit_type("Wrap-up") == UnitType.SUMMARY
    assert classify_unit_type("Contest rules") == UnitType.CONTENT
    assert classify_unit_type("Fractions", "In this activity you fold paper") == UnitType.ACTIVITIES
    assert classify_unit_type("Summary", "one more activity") == UnitType.SUMMARY


# outlines

def test_outline_truncation_keeps_two_lines():
    outlines = OutlineParser().parse("OUTLINE 1: Cells\nl1\nl2\nl3\nl4\nl5")
    assert outlines[0].body == "l1\nl2"


def test_truncate_lines_skips_blank_lines():
    assert truncate_lines("\n a \n\n b \n c", 2) == "a\nb"


def test_outlines_padded_to_ten():
    parser = OutlineParser()
    outlines = parser.parse_outlines("OUTLINE 1: A\nx\nOUTLINE 2: B\ny\nOUTLINE 3: C\nz")

    assert len(outlines) == 10
    assert [o.title for o in outlines[:3]] == ["A", "B", "C"]
    assert outlines[3].title == "Summary 4"
    assert outlines[3].body == PLACEHOLDER_BODY
    assert all(o.is_placeholder for o in outlines[3:])
    assert parser.validate_outlines(outlines)["valid"]


def test_validate_outlines_reports_problems():
    parser = OutlineParser()
    outlines = [Unit(sequence_number=1, title="A", body="one\ntwo\nthree")]
    result = parser.validate_outlines(outlines)

    assert not result["valid"]
    assert "Expected 10 outlines, found 1" in result["errors"]
    assert "Outline 1 has more than 2 lines" in result["errors"]


def test_pad_units_trims_long_lists():
    units = [Unit(sequence_number=i, title=f"U{i}") for i in range(1, 13)]
    padded = pad_units(units, 10)

    assert len(padded) == 10
    assert padded[-1].title == "U10"


# quizzes

def test_quiz_checkmark_answer():
    questions = QuizParser().parse("QUESTION 1: 2+2?\nA) 3\nB) 4 ✓\nC) 5\nD) 6")

    assert len(questions) == 1
    question = questions[0]
    assert question.title == "2+2?"
    assert question.options == ["3", "4", "5", "6"]
    assert question.correct_answer == 1
    assert question.correct_answer_text == "4"


def test_quiz_answer_indicator_line():
    question = extract_question("Capital of France?", "A) Berlin\nB) Madrid\nC) Paris\nD) Rome\nCORRECT: C", 1)
    assert question.correct_answer == 2
    assert question.options == ["Berlin", "Madrid", "Paris", "Rome"]


def test_quiz_answer_line_repeating_option_text():
    question = extract_question(
        "Capital of France?", "A) Berlin\nB) Madrid\nC) Paris\nD) Rome\nCorrect answer: C) Paris", 1
    )
    assert question.options == ["Berlin", "Madrid", "Paris", "Rome"]
    assert question.correct_answer == 2
    assert question.correct_answer_text == "Paris"


def test_quiz_inline_markers():
    marked = extract_question("Q?", "A) one\nB) two (correct)\nC) three\nD) four", 1)
    assert marked.correct_answer == 1
    assert marked.options[1] == "two"

    prefixed = extract_question("Capital?", "A) Rome\nB) Berlin\nC) CORRECT: Paris\nD) Oslo", 1)
    assert prefixed.correct_answer == 2
    assert prefixed.options[2] == "Paris"


def test_quiz_without_marker_keeps_answer_unknown():
    question = extract_question("Q?", "A) one\nB) two\nC) three\nD) four", 1)
    assert question.correct_answer is None
    assert question.correct_answer_text is None
    assert len(question.options) == 4


def test_quiz_keeps_partial_options():
    question = extract_question("Q?", "A) yes ✓\nB) no", 1)
    assert question.options == ["yes", "no"]
    assert question.correct_answer == 0


def test_quiz_skips_placeholder_options():
    question = extract_question("Q?", "A) Option 1\nB) real ✓\nC) Option 3\nD) other", 1)
    assert question.options == ["real", "other"]
    assert question.correct_answer == 0


def test_quiz_multi_line_options_and_question():
    body = "that spans two lines?\nA) first part\ncontinued\nB) second ✓\nC) third\nD) fourth\nExplanation: because"
    question = extract_question("A question", body, 1)

    assert question.title == "A question that spans two lines?"
    assert question.options[0] == "first part continued"
    assert question.correct_answer == 1
    assert len(question.options) == 4


def test_quiz_strips_page_markers():
    questions = QuizParser().parse("PAGE 1:\nQUESTION 1: Sky colour?\nA) Blue ✓\nB) Red\nC) Green\nD) Pink")
    assert len(questions) == 1
    assert questions[0].correct_answer_text == "Blue"


def test_quiz_q_format_fallback():
    parser = QuizParser()
    questions = parser.parse("Q1: What?\nA) x ✓\nB) y\nQ2: Why?\nA) z\nB) w ✓")

    assert parser.last_strategy == "q_format_strategy"
    assert [q.correct_answer_text for q in questions] == ["x", "w"]


def _question(number, title, answer=0):
    return QuizQuestion(
        sequence_number=number,
        title=title,
        options=["a", "b", "c", "d"],
        correct_answer=answer,
        correct_answer_text="abcd"[answer],
    )


def test_randomize_question_tracks_answer():
    rng = random.Random(7)
    for answer in range(4):
        shuffled = randomize_question(_question(1, "Q", answer), rng)
        assert sorted(shuffled.options) == ["a", "b", "c", "d"]
        assert shuffled.options[shuffled.correct_answer] == "abcd"[answer]
        assert shuffled.correct_answer_text == "abcd"[answer]


def test_randomize_question_leaves_unmarked_questions():
    question = _question(1, "Q").model_copy(update={"correct_answer": None, "correct_answer_text": None})
    assert randomize_question(question, random.Random(1)) == question


def test_remove_duplicate_questions():
    questions = [_question(1, "Same?"), _question(2, " same? "), _question(3, "Other?")]
    assert [q.sequence_number for q in remove_duplicate_questions(questions)] == [1, 3]


def test_split_into_quizzes():
    parser = QuizParser(rng=random.Random(3))
    questions = [_question(i, f"Question {i}?", i % 4) for i in range(1, 8)]
    quizzes = parser.split_into_quizzes(questions, 3)

    assert [len(q.questions) for q in quizzes] == [3, 2, 2]
    assert [q.quiz_number for q in quizzes] == [1, 2, 3]
    assert [q.sequence_number for q in quizzes[1].questions] == [1, 2]
    for quiz in quizzes:
        for question in quiz.questions:
            assert question.options[question.correct_answer] == question.correct_answer_text


def test_split_into_more_quizzes_than_questions():
    quizzes = QuizParser().split_into_quizzes([_question(1, "Only?")], 4)
    assert len(quizzes) == 1


def test_question_health():
    degraded = _question(2, "B").model_copy(update={"correct_answer": None})
    assert question_health([_question(1, "A"), degraded]) == (1, 1)


# lesson plans

LESSON_PLAN = """SECTION 1: LESSON OVERVIEW
Students explore equivalent fractions with paper strips.

SECTION 2: MATERIALS NEEDED
• Paper strips
• Coloured pencils

SECTION 3: LESSON TIMELINE
| 10 min | Warm-up | Review vocabulary | Circulate |
| 20 min | Group work | Fold the strips | Support pairs |"""


def test_section_parser_strict_headers():
    parser = SectionParser()
    sections = parser.parse_sections(LESSON_PLAN)

    assert parser.last_strategy == "strict_headers"
    assert [s.title for s in sections] == ["LESSON OVERVIEW", "MATERIALS NEEDED", "LESSON TIMELINE"]
    assert [s.section_format for s in sections] == ["text", "list", "table"]
    assert sections[0].unit_type == UnitType.OVERVIEW


def test_section_parser_known_headers_without_markers():
    parser = SectionParser()
    sections = parser.parse("LESSON OVERVIEW\nIntro text here\nLEARNING OBJECTIVES\nStudents will learn")

    assert parser.last_strategy == "known_header_strategy"
    assert [s.title for s in sections] == ["LESSON OVERVIEW", "LEARNING OBJECTIVES"]
    assert sections[1].body == "Students will learn"


def test_section_parser_whole_plan_fallback():
    sections = SectionParser().parse("just some text")
    assert len(sections) == 1
    assert sections[0].title == "LESSON PLAN"


def test_section_parser_allow_partial():
    content = "SECTION 1: LESSON OVERVIEW\n" + "A long enough overview sentence for the section. " * 2 + "\nSECTION 2: MATERIALS NEEDED\n• Pa"
    sections = SectionParser().parse_sections(content, allow_partial=True)

    assert [s.title for s in sections] == ["LESSON OVERVIEW"]
    assert sections[0].sequence_number == 1


def test_match_known_title():
    assert match_known_title("2. Lesson Overview:") == "LESSON OVERVIEW"
    assert match_known_title("Materials") == "MATERIALS NEEDED"
    assert match_known_title("Notes") is None
    assert match_known_title("Assessment and Methods") == "ASSESSMENT METHODS"
    assert match_known_title("Fractions") is None


# timelines

def test_timeline_markdown_pipes():
    content = (
        "| Duration | Activity | Instructions | Teacher Notes |\n"
        "|---|---|---|---|\n"
        "| 10 min | Warm-up | Review vocabulary | Circulate |\n"
        "| 20 minutes | Group work | Solve problems | Support |"
    )
    result = parse_timeline(content)

    assert result.success
    assert result.strategy == "pipe_separated"
    assert [r.duration for r in result.rows] == ["10 min", "20 minutes"]
    assert result.rows[0].teacher_notes == "Circulate"


def test_timeline_tab_rows():
    result = parse_timeline("5 min\tIntro\tSay hello\tSmile")
    assert result.strategy == "tab_separated"
    assert result.rows[0].activity == "Intro"


def test_timeline_structured_list():
    result = parse_timeline("- 10 min\nWarm-up\nReview words\nWatch closely")
    assert result.strategy == "structured_list"
    assert result.rows[0].instructions == "Review words"


def test_timeline_auto_corrected_merged_column():
    line = "10 min | Discussion | Students discuss the main ideas in pairs. Teacher listens and notes misconceptions"
    result = parse_timeline(line)

    assert result.strategy == "auto_corrected"
    assert result.rows[0].instructions == "Students discuss the main ideas in pairs"
    assert result.rows[0].teacher_notes == "Teacher listens and notes misconceptions"


def test_timeline_failure_keeps_fallback():
    result = parse_timeline("no timeline here")

    assert not result.success
    assert result.error == "Unable to parse timeline content"
    assert result.fallback_content == "no timeline here"
    assert format_timeline_rows(result.rows) == "No timeline data available"


# flashcards

def test_flashcards_valid_json():
    cards = parse_flashcards('{"cards": [{"question": "Q1", "answer": "A1"}, {"question": "Q2"}]}')
    assert [(c.question, c.answer) for c in cards] == [("Q1", "A1")]


def test_flashcards_fenced_json():
    cards = parse_flashcards('```json\n{"cards": [{"question": "Q", "answer": "A"}]}\n```')
    assert cards[0].answer == "A"


def test_flashcards_embedded_block():
    cards = parse_flashcards('Here you go:\n{"cards": [{"question": "Q", "answer": "A"}]}\nEnjoy!')
    assert cards[0].question == "Q"


def test_flashcards_garbage_gives_error_card():
    cards = parse_flashcards("not json at all")

    assert len(cards) == 1
    assert cards[0].question == ERROR_QUESTION
    assert cards[0].answer == "not json at all"


def test_flashcards_long_garbage_is_previewed():
    cards = parse_flashcards("x" * 600)
    assert cards[0].answer == "x" * 500 + "..."
