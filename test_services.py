#!/usr/bin/env python3
"""
tests for the service layer: config, gemini client, prompts, source
loading, document storage and generation orchestration
"""

import sys
import json
from pathlib import Path
from unittest.mock import MagicMock

import fitz
import pytest
import requests

sys.path.insert(0, str(Path(__file__).parent))

from src.lessonstream.config import Settings, load_settings
from src.lessonstream.document_store import DocumentStore
from src.lessonstream.errors import LLMServiceError, UnknownContentKindError
from src.lessonstream.generation_service import (
    GenerationService,
    create_session,
    finish_units,
    get_parser,
    parse_content,
)
from src.lessonstream.llm_service import GeminiLLMService
from src.lessonstream.models import ContentKind, GeneratedDocument, GenerationRequest, Unit
from src.lessonstream.prompts import build_prompt
from src.lessonstream.section_parser import SectionParser
from src.lessonstream.source_loader import SourceLoader, clean_source_text


def _event(text):
    return b"data: " + json.dumps({"candidates": [{"content": {"parts": [{"text": text}]}}]}).encode()


def _gemini(response):
    service = GeminiLLMService(Settings(gemini_api_key="test-key"))
    service.session = MagicMock()
    service.session.post.return_value = response
    return service


# config

def test_load_settings_from_environment(monkeypatch):
    monkeypatch.setenv("GEMINI_MODEL", "gemini-test")
    monkeypatch.setenv("GEMINI_BASE_URL", "http://localhost:9999/v1/")
    monkeypatch.setenv("GEMINI_TEMPERATURE", "not-a-number")
    monkeypatch.setenv("SOURCE_MAX_CHARS", "100")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = load_settings()
    assert settings.gemini_model == "gemini-test"
    assert settings.gemini_base_url == "http://localhost:9999/v1"
    assert settings.gemini_temperature == 0.7
    assert settings.source_max_chars == 100
    assert settings.log_level == "DEBUG"


# gemini client

def test_stream_text_parses_sse_events():
    response = MagicMock(status_code=200)
    response.iter_lines.return_value = [_event("Hel"), b"", b"data: {broken", b": keep-alive", _event("lo")]
    service = _gemini(response)

    assert list(service.stream_text("prompt")) == ["Hel", "lo"]

    args, kwargs = service.session.post.call_args
    assert args[0].endswith("/models/gemini-2.5-flash:streamGenerateContent")
    assert kwargs["params"] == {"alt": "sse"}
    assert kwargs["headers"] == {"x-goog-api-key": "test-key"}
    assert kwargs["json"]["contents"][0]["parts"][0]["text"] == "prompt"
    response.close.assert_called_once()


def test_stream_text_http_error():
    response = MagicMock(status_code=429, text="quota exceeded")
    service = _gemini(response)

    with pytest.raises(LLMServiceError) as error:
        list(service.stream_text("prompt"))
    assert error.value.status_code == 429
    assert "quota exceeded" in str(error.value)


def test_stream_text_timeout():
    service = _gemini(None)
    service.session.post.side_effect = requests.exceptions.Timeout()

    with pytest.raises(LLMServiceError):
        list(service.stream_text("prompt"))


def test_generate_text_and_connection_check():
    response = MagicMock(status_code=200)
    response.json.return_value = {"candidates": [{"content": {"parts": [{"text": " OK "}]}}]}
    service = _gemini(response)

    assert service.generate_text("prompt", max_tokens=10) == "OK"
    assert service.session.post.call_args[1]["json"]["generationConfig"]["maxOutputTokens"] == 10
    assert service.test_connection()

    service.session.post.side_effect = requests.exceptions.ConnectionError("down")
    assert not service.test_connection()


# prompts

def test_build_prompt_uses_markers_and_truncates_source():
    request = GenerationRequest(topic="Volcanoes", source_text="x" * 50, number_of_units=3)
    prompt = build_prompt("quiz", request, max_source_chars=10)

    assert "QUESTION <number>" in prompt
    assert "Volcanoes" in prompt
    assert "x" * 10 in prompt
    assert "x" * 11 not in prompt


def test_build_prompt_unknown_kind():
    with pytest.raises(UnknownContentKindError):
        build_prompt("poem", GenerationRequest(topic="x"))


def test_presentation_prompt_includes_outline():
    request = GenerationRequest(topic="Rain", outline=["# Clouds", "# Storms"])
    assert "# Clouds\n# Storms" in build_prompt(ContentKind.PRESENTATION, request)


# source loading

def test_load_text_source(tmp_path):
    path = tmp_path / "notes.md"
    path.write_text("# Plant Biology\n\n\n\nPlants   need light.\n", encoding="utf-8")
    source = SourceLoader().load(str(path))

    assert source.title == "Plant Biology"
    assert source.text == "# Plant Biology\n\nPlants need light."
    assert source.total_pages == 1
    assert source.metadata == {}


def test_load_source_truncates(tmp_path):
    path = tmp_path / "long.txt"
    path.write_text("word " * 100, encoding="utf-8")
    source = SourceLoader(max_chars=20).load(str(path))

    assert len(source.text) == 20
    assert source.truncated


def test_load_pdf_source(tmp_path):
    path = tmp_path / "cells.pdf"
    doc = fitz.open()
    page = doc.new_page()
    page.insert_text((72, 72), "Photosynthesis Basics")
    page.insert_text((72, 100), "Plants use light.")
    doc.save(str(path))
    doc.close()

    source = SourceLoader().load(str(path))
    assert source.title == "Photosynthesis Basics"
    assert "Plants use light." in source.text
    assert source.total_pages == 1
    assert source.metadata["page_count"] == 1


def test_load_source_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        SourceLoader().load(str(tmp_path / "missing.txt"))

    other = tmp_path / "slides.pptx"
    other.write_bytes(b"")
    with pytest.raises(ValueError):
        SourceLoader().load(str(other))


def test_clean_source_text():
    assert clean_source_text("a \t b\r\n\n\n\nc ") == "a b\n\nc"


# document store

def _document(document_id="lesson_abc", created_at="2026-01-01T10:00:00", **fields):
    values = dict(
        id=document_id,
        kind=ContentKind.LESSON,
        title="Plants",
        units=[{"sequence_number": 1, "title": "Intro", "body": "a\nb", "unit_type": "overview"}],
        created_at=created_at,
    )
    values.update(fields)
    return GeneratedDocument(**values)


def test_store_save_load_and_list(tmp_path):
    store = DocumentStore(str(tmp_path))
    store.save(_document("lesson_old", "2026-01-01T10:00:00"))
    store.save(_document("lesson_new", "2026-02-01T10:00:00"))

    assert store.load("lesson_old").title == "Plants"
    assert store.load("lesson_missing") is None
    assert json.loads((tmp_path / "latest.json").read_text(encoding="utf-8"))["id"] == "lesson_new"
    assert [d["id"] for d in store.list_documents()] == ["lesson_new", "lesson_old"]

    with pytest.raises(ValueError):
        store.load("../etc/passwd")


def test_store_statistics(tmp_path):
    store = DocumentStore(str(tmp_path))
    stats = store.get_statistics(_document())
    assert stats["units_by_type"] == {"overview": 1}
    assert stats["average_body_lines"] == 2

    slides = _document(kind=ContentKind.PRESENTATION, units=[{
        "id": "slide_1",
        "sequence_number": 1,
        "layout": "left",
        "root_image": {"query": "sun"},
        "content": [{"type": "h1", "children": [{"type": "text", "text": "Sun"}]}],
    }])
    slide_stats = store.get_statistics(slides)
    assert slide_stats["slides_with_image"] == 1
    assert slide_stats["total_nodes"] == 2
    assert slide_stats["layouts"] == {"left": 1}


# generation orchestration

def test_get_parser_and_create_session():
    assert get_parser("lesson_plan").name == "lesson_plan"
    assert create_session(ContentKind.PRESENTATION).kind == "presentation"
    with pytest.raises(UnknownContentKindError):
        get_parser(ContentKind.PRESENTATION)
    with pytest.raises(UnknownContentKindError):
        create_session("flashcards")


def test_finish_units_pads_summary_to_target():
    units = finish_units(ContentKind.SUMMARY, [Unit(sequence_number=1, title="Only")], target_count=3)
    assert [u["title"] for u in units] == ["Only", "Summary 2", "Summary 3"]


def test_parse_content_lesson_plan():
    content = "SECTION 1: LESSON TIMELINE\n10 min | Warm-up | Review | Watch"
    response = parse_content("lesson_plan", content)
    assert response.units[0]["section_format"] == "table"


class _ScriptedLLM:
    model = "scripted"

    def __init__(self, text):
        self.text = text

    def stream_text(self, prompt, temperature=None, max_tokens=None):
        yield from self.text.split(" ")[:1]
        for word in self.text.split(" ")[1:]:
            yield " " + word


def test_generate_lesson_plan_adds_timeline(tmp_path):
    text = "SECTION 1: LESSON OVERVIEW\nFractions with paper.\nSECTION 2: LESSON TIMELINE\n10 min | Warm-up | Review | Watch"
    service = GenerationService(llm_service=_ScriptedLLM(text), settings=Settings(output_dir=str(tmp_path)))
    response = service.generate(ContentKind.LESSON_PLAN, GenerationRequest(topic="Fractions"), save=False)

    assert response.success, response.message
    timeline = response.document.metadata["timeline"]
    assert timeline["success"]
    assert timeline["rows"][0]["activity"] == "Warm-up"
    assert list(tmp_path.glob("*.json")) == []


def test_generate_presentation_outline(tmp_path):
    service = GenerationService(
        llm_service=_ScriptedLLM("# Clouds\n- what they are\n# Rain\n- why it falls"),
        settings=Settings(output_dir=str(tmp_path)),
    )
    response = service.generate("presentation_outline", GenerationRequest(topic="Weather"))

    assert response.document.outline == ["# Clouds\n- what they are", "# Rain\n- why it falls"]
    assert [u["title"] for u in response.document.units] == ["Clouds", "Rain"]
    assert service.load_document(response.document.id).outline == response.document.outline


def test_generate_with_empty_stream(tmp_path):
    service = GenerationService(llm_service=_ScriptedLLM(""), settings=Settings(output_dir=str(tmp_path)))
    response = service.generate(ContentKind.LESSON, GenerationRequest(topic="Nothing"), save=False)

    assert response.success
    assert response.document.units == []


def test_lesson_plan_partial_sections():
    sections = SectionParser().parse_sections("SECTION 1: LESSON OVERVIEW\nShort", allow_partial=True)
    assert sections == []


def test_verify_document_reports_quiz_issues():
    from verify_document import calculate_quality_score, verify

    document = {"kind": "quiz", "title": "Sums", "units": [
        {"sequence_number": 1, "title": "A?", "body": "x", "options": ["a", "b", "c", "d"],
         "correct_answer": 0, "correct_answer_text": "a"},
        {"sequence_number": 2, "title": "B?", "body": "y", "options": ["a", "b"], "correct_answer": None},
    ]}
    report = verify(document)

    assert report["issues"]["degraded_questions"] == 1
    assert "Question 2 has no marked answer" in report["notes"]
    assert calculate_quality_score(report) == 50
