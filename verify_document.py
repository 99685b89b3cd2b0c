#!/usr/bin/env python3
"""
Document Quality Verification Tool

Checks a generated document for the problems streamed parsing can leave
behind: placeholder units, questions without a marked answer, missing
lesson plan sections, unparseable timelines and empty slides.
"""

import sys
import json
from pathlib import Path
from typing import Dict, Any, Optional

# add the repo root to python path
sys.path.insert(0, str(Path(__file__).parent))

from src.lessonstream.flashcard_parser import ERROR_QUESTION
from src.lessonstream.models import ContentKind, QuizQuestion, Unit
from src.lessonstream.outline_parser import OutlineParser
from src.lessonstream.quiz_parser import question_health
from src.lessonstream.section_parser import EXPECTED_SECTIONS, KNOWN_SECTIONS
from src.lessonstream.timeline_parser import parse_timeline


def load_document(json_file: str) -> Optional[Dict[str, Any]]:
    """Load a document from JSON file"""
    try:
        with open(json_file, 'r', encoding='utf-8') as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        print(f"❌ Error loading document: {str(e)}")
        return None


def check_units(document: Dict[str, Any]) -> Dict[str, Any]:
    """Checks shared by every unit-based kind"""
    units = document['units']
    placeholders = [u for u in units if u.get('is_placeholder')]
    empty_bodies = [u for u in units if not u.get('body', '').strip() and not u.get('is_placeholder')]
    return {
        'total_units': len(units),
        'issues': {
            'placeholder_units': len(placeholders),
            'empty_units': len(empty_bodies),
        },
        'notes': [],
    }


def check_summary(document: Dict[str, Any], report: Dict[str, Any]):
    outlines = [Unit(**u) for u in document['units']]
    validation = OutlineParser().validate_outlines(outlines)
    report['issues']['format_errors'] = len(validation['errors'])
    report['notes'].extend(validation['errors'])


def check_quiz(document: Dict[str, Any], report: Dict[str, Any]):
    questions = [QuizQuestion(**u) for u in document['units']]
    _, degraded = question_health(questions)
    report['issues']['degraded_questions'] = degraded
    for question in questions:
        if question.correct_answer is None:
            report['notes'].append(f"Question {question.sequence_number} has no marked answer")
        elif len(question.options) != 4:
            report['notes'].append(f"Question {question.sequence_number} has {len(question.options)} options")


def check_lesson_plan(document: Dict[str, Any], report: Dict[str, Any]):
    titles = {u['title'] for u in document['units']}
    missing = [name for name in KNOWN_SECTIONS if name not in titles]
    present = len(KNOWN_SECTIONS) - len(missing)
    report['issues']['missing_sections'] = max(0, EXPECTED_SECTIONS - present)
    if missing:
        report['notes'].append(f"Missing sections: {', '.join(missing)}")

    for unit in document['units']:
        if unit.get('section_format') == 'table':
            timeline = parse_timeline(unit.get('body', ''))
            report['issues']['unparsed_timelines'] = report['issues'].get('unparsed_timelines', 0) + (0 if timeline.success else 1)
            if timeline.success:
                report['notes'].append(f"Timeline: {len(timeline.rows)} rows ({timeline.strategy})")


def check_presentation(document: Dict[str, Any]) -> Dict[str, Any]:
    slides = document['units']
    return {
        'total_units': len(slides),
        'issues': {
            'empty_slides': len([s for s in slides if not s.get('content')]),
            'slides_without_image': len([s for s in slides if not s.get('root_image')]),
            'unfinished_slides': len([s for s in slides if s.get('is_provisional')]),
        },
        'notes': [],
    }


def check_flashcards(document: Dict[str, Any]) -> Dict[str, Any]:
    cards = document['units']
    errors = [c for c in cards if c.get('question') == ERROR_QUESTION]
    return {
        'total_units': len(cards),
        'issues': {
            'error_cards': len(errors),
            'short_answers': len([c for c in cards if len(c.get('answer', '')) < 3]),
        },
        'notes': ["Response could not be parsed as JSON"] if errors else [],
    }


def verify(document: Dict[str, Any]) -> Dict[str, Any]:
    kind = ContentKind(document['kind'])
    if kind == ContentKind.PRESENTATION:
        return check_presentation(document)
    if kind == ContentKind.FLASHCARDS:
        return check_flashcards(document)

    report = check_units(document)
    if kind == ContentKind.SUMMARY:
        check_summary(document, report)
    elif kind == ContentKind.QUIZ:
        check_quiz(document, report)
    elif kind == ContentKind.LESSON_PLAN:
        check_lesson_plan(document, report)
    return report


def calculate_quality_score(report: Dict[str, Any]) -> int:
    """Calculate an overall quality score out of 100"""
    if report['total_units'] == 0:
        return 0
    issue_count = sum(report['issues'].values())
    return max(0, int(100 - 100 * issue_count / report['total_units']))


def display_quality_report(document: Dict[str, Any], report: Dict[str, Any]):
    """Display a quality report"""
    print("\n" + "=" * 60)
    print(f"📊 {document['kind'].upper()} QUALITY REPORT")
    print("=" * 60)

    print(f"\n📈 OVERALL:")
    print(f"   Title: {document['title']}")
    print(f"   Total Units: {report['total_units']}")
    if document.get('metadata', {}).get('strategy'):
        print(f"   Parsed With: {document['metadata']['strategy']}")

    print(f"\n⚠️  ISSUES:")
    found = False
    for name, count in report['issues'].items():
        if count > 0:
            found = True
            print(f"   • {name.replace('_', ' ').title()}: {count}")
    if not found:
        print("   none")

    if report['notes']:
        print(f"\n📝 NOTES:")
        for note in report['notes']:
            print(f"   • {note}")

    quality_score = calculate_quality_score(report)
    print(f"\n🏆 OVERALL QUALITY SCORE: {quality_score}/100")

    if quality_score >= 80:
        print("   ✅ Excellent quality!")
    elif quality_score >= 60:
        print("   ⚠️  Good quality with room for improvement")
    else:
        print("   ❌ Poor quality - needs attention")


def main():
    """Main function"""
    if len(sys.argv) != 2:
        print("Usage: python verify_document.py <document_json_file>")
        print("Example: python verify_document.py outputs/latest.json")
        sys.exit(1)

    json_file = sys.argv[1]

    if not Path(json_file).exists():
        print(f"❌ File not found: {json_file}")
        sys.exit(1)

    print(f"🔍 Analyzing document: {json_file}")

    document = load_document(json_file)
    if not document:
        sys.exit(1)

    report = verify(document)
    display_quality_report(document, report)


if __name__ == "__main__":
    main()
