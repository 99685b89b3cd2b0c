# parser for multiple choice quiz content
import re
import random
import logging
from typing import List, Optional, Sequence, Tuple

from .models import Quiz, QuizQuestion
from .scanner import (
    ScanMatch,
    clean_content,
    equal_split_strategy,
    numbered_list_strategy,
    q_format_strategy,
    question_line_strategy,
    strict_header_strategy,
)
from .units import UnitParser, classify_unit_type

logger = logging.getLogger(__name__)

OPTION_COUNT = 4
LETTERS = "ABCD"

PAGE_MARKER = re.compile(r"^[ \t]*PAGE[ \t]+\d+[ \t]*:?[ \t]*", re.IGNORECASE | re.MULTILINE)
OPTION_PATTERN = re.compile(r"^\(?([A-Da-d])\s*[\.:\)]\s*(.*)$")
# "CORRECT: C", "Answer: B) text", "Correct answer - D"
INDICATOR_PATTERN = re.compile(
    r"^(?:correct(?:\s+answer)?|right\s+answer|answer)\s*[:\-]\s*\(?([A-D])(?![A-Za-z])\)?\s*[\.:\)]?\s*(.*)$",
    re.IGNORECASE,
)
SYMBOL_MARKER = re.compile(r"✓|✅|✔\ufe0f?|\(\s*(?:correct|right)\s*\)|\[\s*correct\s*\]", re.IGNORECASE)
WORD_MARKER = re.compile(r"\bCORRECT\b\s*:?|^\s*correct\s*:", re.MULTILINE)
PLACEHOLDER_OPTION = re.compile(r"^Option\s+(?:\d+|[A-D])$", re.IGNORECASE)
IGNORED_LINE = re.compile(r"^(?:explanation|rationale)\s*:", re.IGNORECASE)


def has_correct_marker(text: str) -> bool:
    return bool(SYMBOL_MARKER.search(text) or WORD_MARKER.search(text))


# remove correctness markers and leftover punctuation from an option
def strip_correct_marker(text: str) -> str:
    cleaned = WORD_MARKER.sub("", SYMBOL_MARKER.sub("", text))
    return cleaned.strip().strip("-–*").strip()


def extract_question(
    title: str, body: str, sequence_number: int, label: Optional[int] = None
) -> QuizQuestion:
    """Build a question from its text block.

    Keeps whatever could be recovered: fewer than four options is allowed,
    and correct_answer stays None unless an explicit marker was found.
    """
    question_lines = [title.strip()] if title.strip() else []
    options: List[str] = []
    letter_index = {}
    correct_answer: Optional[int] = None
    indicated_letter: Optional[str] = None
    building_option = False

    for raw_line in body.split("\n"):
        line = raw_line.strip()
        if not line or IGNORED_LINE.match(line):
            building_option = False
            continue

        indicator = INDICATOR_PATTERN.match(line)
        if indicator and not indicator.group(2).strip():
            indicated_letter = indicated_letter or indicator.group(1).upper()
            building_option = False
            continue

        option = OPTION_PATTERN.match(line)
        marked = False
        if indicator:
            letter = indicator.group(1).upper()
            if letter in letter_index or len(options) >= OPTION_COUNT:
                # "Correct answer: C) Paris" repeating an option already listed
                indicated_letter = indicated_letter or letter
                building_option = False
                continue
            # "CORRECT: B) text" style option line
            text, marked = indicator.group(2), True
        elif option and option.group(2).strip():
            letter, text = option.group(1).upper(), option.group(2)
        else:
            if building_option:
                options[-1] = f"{options[-1]} {line}"
                if has_correct_marker(line) and correct_answer is None:
                    correct_answer = len(options) - 1
                    options[-1] = strip_correct_marker(options[-1])
            elif not options:
                question_lines.append(line)
            continue

        marked = marked or has_correct_marker(text)
        text = strip_correct_marker(text) if marked else text.strip()
        if not text or PLACEHOLDER_OPTION.match(text):
            logger.debug(f"Question {sequence_number}: skipping placeholder option {letter}")
            building_option = False
            continue

        options.append(text)
        letter_index.setdefault(letter, len(options) - 1)
        if marked and correct_answer is None:
            correct_answer = len(options) - 1
        building_option = True

    if correct_answer is None and indicated_letter in letter_index:
        correct_answer = letter_index[indicated_letter]

    if len(options) > OPTION_COUNT:
        logger.warning(f"Question {sequence_number}: found {len(options)} options, keeping first {OPTION_COUNT}")
        options = options[:OPTION_COUNT]
    if correct_answer is not None and correct_answer >= len(options):
        correct_answer = None
    if len(options) < OPTION_COUNT:
        logger.warning(f"Question {sequence_number}: only {len(options)} options recovered")
    if correct_answer is None:
        logger.warning(f"Question {sequence_number}: no correct answer marker found")

    question_text = " ".join(question_lines)
    return QuizQuestion(
        sequence_number=sequence_number,
        label=label,
        title=question_text,
        body=body.strip(),
        unit_type=classify_unit_type(question_text),
        options=options,
        correct_answer=correct_answer,
        correct_answer_text=options[correct_answer] if correct_answer is not None else None,
    )


# shuffle one question's options and track where the answer went
def randomize_question(question: QuizQuestion, rng: Optional[random.Random] = None) -> QuizQuestion:
    rng = rng or random.Random()
    if len(question.options) != OPTION_COUNT or question.correct_answer is None:
        logger.debug(f"Question {question.sequence_number}: not randomizable, keeping order")
        return question

    correct_text = question.options[question.correct_answer]
    order = list(range(len(question.options)))
    rng.shuffle(order)
    shuffled = [question.options[i] for i in order]
    return question.model_copy(update={
        "options": shuffled,
        "correct_answer": order.index(question.correct_answer),
        "correct_answer_text": correct_text,
    })


# drop questions whose text repeats, keeping the first occurrence
def remove_duplicate_questions(questions: Sequence[QuizQuestion]) -> List[QuizQuestion]:
    seen = set()
    unique = []
    for question in questions:
        key = question.title.strip().lower()
        if key in seen:
            logger.warning(f"Skipping duplicate question: {question.title[:50]}...")
            continue
        seen.add(key)
        unique.append(question)
    return unique


class QuizParser(UnitParser):
    """Parse quiz questions from an AI response.

    Strategies, strict to loose: `QUESTION n:` headers, numbered
    questions, `Qn:` lines, question lines followed by options, equal
    split.
    """

    name = "quiz"

    def __init__(self, rng: Optional[random.Random] = None):
        super().__init__([
            strict_header_strategy(["QUESTION"], ignore_case=True),
            numbered_list_strategy,
            q_format_strategy,
            question_line_strategy,
            equal_split_strategy(),
        ])
        self.rng = rng or random.Random()

    def prepare(self, content: str) -> str:
        # page markers are never meaningful in a quiz
        return clean_content(PAGE_MARKER.sub("", clean_content(content)))

    def build(self, matches: Sequence[ScanMatch]) -> List[QuizQuestion]:
        return [
            extract_question(match.title, match.body, sequence_number, match.label)
            for sequence_number, match in enumerate(matches, start=1)
        ]

    def split_into_quizzes(self, questions: Sequence[QuizQuestion], number_of_quizzes: int) -> List[Quiz]:
        unique = remove_duplicate_questions(questions)
        if not unique:
            logger.warning("No questions to split into quizzes")
            return []

        quiz_count = min(number_of_quizzes, len(unique))
        per_quiz, remainder = divmod(len(unique), quiz_count)
        logger.info(f"📦 Splitting {len(unique)} unique questions into {quiz_count} quizzes")

        quizzes = []
        start = 0
        for quiz_index in range(quiz_count):
            size = per_quiz + (1 if quiz_index < remainder else 0)
            renumbered = [
                randomize_question(question, self.rng).model_copy(update={"sequence_number": number})
                for number, question in enumerate(unique[start:start + size], start=1)
            ]
            quizzes.append(Quiz(quiz_number=quiz_index + 1, questions=renumbered))
            start += size
        return quizzes


# summary of recovered vs degraded questions, used for logging and stats
def question_health(questions: Sequence[QuizQuestion]) -> Tuple[int, int]:
    complete = sum(
        1 for q in questions if len(q.options) == OPTION_COUNT and q.correct_answer is not None
    )
    return complete, len(questions) - complete
