# generation service orchestrates prompting, streaming, incremental parsing and persistence
import time
import uuid
import logging
from datetime import datetime
from typing import Any, Callable, Dict, Iterator, List, Optional, Union

from .config import Settings, load_settings
from .document_store import DocumentStore
from .errors import UnknownContentKindError
from .flashcard_parser import parse_flashcards
from .llm_service import get_llm_service
from .models import (
    ContentKind, GeneratedDocument, GenerationRequest, GenerationResponse,
    ParseResponse, QuizQuestion, Unit, resolve_kind,
)
from .outline_parser import OUTLINE_COUNT, OutlineParser
from .page_parser import PageParser
from .presenter import ThrottledPresenter
from .prompts import build_prompt
from .quiz_parser import QuizParser, question_health
from .section_parser import SectionParser
from .session import ParseSession
from .slide_markup import OutlineMarkdownParser, SlideParser, parse_outline_markdown
from .timeline_parser import parse_timeline
from .units import UnitParser, pad_units

logger = logging.getLogger(__name__)

Session = Union[ParseSession, SlideParser]

PARSERS = {
    ContentKind.LESSON: PageParser,
    ContentKind.SUMMARY: OutlineParser,
    ContentKind.QUIZ: QuizParser,
    ContentKind.LESSON_PLAN: SectionParser,
    ContentKind.PRESENTATION_OUTLINE: OutlineMarkdownParser,
}


def get_parser(kind) -> UnitParser:
    """Return a fresh unit parser for a section-header content kind."""
    kind = resolve_kind(kind)
    if kind not in PARSERS:
        raise UnknownContentKindError(f"'{kind.value}' has no section parser")
    return PARSERS[kind]()


def create_session(kind) -> Session:
    """Build a new incremental session for one generation of this kind."""
    kind = resolve_kind(kind)
    if kind == ContentKind.PRESENTATION:
        return SlideParser()
    if kind == ContentKind.FLASHCARDS:
        raise UnknownContentKindError("Flashcard responses are JSON and cannot be parsed incrementally")
    return ParseSession(get_parser(kind))


def finish_units(kind: ContentKind, units: List[Any], request: Optional[GenerationRequest] = None,
                 target_count: Optional[int] = None) -> List[Dict[str, Any]]:
    """Apply the per-kind rules that only make sense once the stream is done."""
    if kind == ContentKind.SUMMARY:
        units = pad_units(units, target_count or OUTLINE_COUNT)

    if kind == ContentKind.QUIZ and request and request.number_of_quizzes:
        quizzes = QuizParser().split_into_quizzes(units, request.number_of_quizzes)
        return [
            {**question.model_dump(mode="json"), "quiz_number": quiz.quiz_number}
            for quiz in quizzes
            for question in quiz.questions
        ]

    return [unit.model_dump(mode="json") for unit in units]


def parse_content(kind, content: str, target_count: Optional[int] = None) -> ParseResponse:
    """Parse a complete response in one call, as if it had streamed in at once."""
    kind = resolve_kind(kind)
    if kind == ContentKind.FLASHCARDS:
        cards = parse_flashcards(content)
        return ParseResponse(kind=kind, strategy="json", units=[card.model_dump() for card in cards])

    session = create_session(kind)
    session.parse_chunk(content)
    units = session.finalize()
    return ParseResponse(
        kind=kind,
        state=session.state,
        strategy=session.strategy,
        units=finish_units(kind, units, target_count=target_count),
    )


# generation service ties the llm stream to a fresh parse session per request
class GenerationService:
    def __init__(self, llm_service=None, store: Optional[DocumentStore] = None,
                 settings: Optional[Settings] = None):
        self.settings = settings or load_settings()
        self._llm_service = llm_service
        self.store = store or DocumentStore(self.settings.output_dir)

    @property
    def llm_service(self):
        if self._llm_service is None:
            self._llm_service = get_llm_service()
        return self._llm_service

    def build_prompt(self, kind, request: GenerationRequest) -> str:
        return build_prompt(kind, request, max_source_chars=self.settings.source_max_chars)

    # raw text fragments straight from the model
    def stream_generation(self, kind, request: GenerationRequest) -> Iterator[str]:
        prompt = self.build_prompt(kind, request)
        return self.llm_service.stream_text(prompt)

    def generate(self, kind, request: GenerationRequest,
                 on_update: Optional[Callable[[List[Any]], None]] = None,
                 save: bool = True) -> GenerationResponse:
        """Main generation pipeline.

        on_update receives throttled snapshots of the units parsed so far.
        Upstream and parsing failures come back as success=False.
        """
        kind = resolve_kind(kind)
        start_time = time.time()

        try:
            logger.info(f"Starting {kind.value} generation: {request.topic}")
            logger.info("=" * 60)
            prompt = self.build_prompt(kind, request)

            # Step 1: stream and parse
            logger.info("Step 1: Streaming response...")
            metadata: Dict[str, Any] = {
                "model": getattr(self.llm_service, "model", None),
                "grade_level": request.grade_level,
                "language": request.language,
            }
            outline: List[str] = []

            if kind == ContentKind.FLASHCARDS:
                raw = self.llm_service.generate_text(prompt)
                units = [card.model_dump() for card in parse_flashcards(raw)]
                metadata["strategy"] = "json"
            else:
                session = self._run_session(kind, prompt, on_update)
                final_units = session.get_all_units()
                metadata["strategy"] = session.strategy
                metadata["response_chars"] = len(session.buffer)

                # Step 2: kind-specific finishing
                logger.info("\nStep 2: Finishing units...")
                units = finish_units(kind, final_units, request)
                if kind == ContentKind.PRESENTATION_OUTLINE:
                    outline = parse_outline_markdown(session.buffer)
                elif kind == ContentKind.PRESENTATION:
                    outline = list(request.outline)
                elif kind == ContentKind.QUIZ:
                    complete, degraded = question_health([QuizQuestion(**u) for u in units])
                    metadata["complete_questions"] = complete
                    metadata["degraded_questions"] = degraded
                elif kind == ContentKind.LESSON_PLAN:
                    metadata.update(self._timeline_metadata(final_units))

            logger.info(f"  ✓ {len(units)} units")

            document = GeneratedDocument(
                id=f"{kind.value}_{uuid.uuid4().hex[:12]}",
                kind=kind,
                title=request.topic,
                units=units,
                outline=outline,
                metadata=metadata,
                created_at=datetime.now().isoformat(),
            )

            # Step 3: save
            if save:
                self.store.save(document)

            processing_time = time.time() - start_time
            logger.info("=" * 60)
            logger.info(f"✓ SUCCESS! Completed in {processing_time:.2f} seconds")

            return GenerationResponse(
                success=True,
                message=f"Generated {len(units)} {kind.value} units",
                document=document,
                processing_time=processing_time,
            )

        except Exception as e:
            processing_time = time.time() - start_time
            logger.error(f"✗ ERROR: {str(e)}", exc_info=True)

            return GenerationResponse(
                success=False,
                message=f"Error generating {kind.value}: {str(e)}",
                processing_time=processing_time,
            )

    # feed every fragment into a fresh session and finalize it
    def _run_session(self, kind: ContentKind, prompt: str,
                     on_update: Optional[Callable[[List[Any]], None]]) -> Session:
        session = create_session(kind)
        presenter = ThrottledPresenter(on_update, self.settings.presenter_min_interval) if on_update else None

        fragments = 0
        for fragment in self.llm_service.stream_text(prompt):
            snapshot = session.feed(fragment)
            fragments += 1
            if presenter:
                presenter.submit(snapshot)

        if fragments == 0:
            # nothing streamed; finalize still needs a parsed buffer
            session.parse_chunk("")
        final_units = session.finalize()
        if presenter:
            presenter.submit(final_units)
            presenter.flush()

        logger.info(f"  ✓ {fragments} fragments, strategy: {session.strategy}")
        return session

    def _timeline_metadata(self, sections: List[Unit]) -> Dict[str, Any]:
        for section in sections:
            if getattr(section, "section_format", None) == "table":
                result = parse_timeline(section.body)
                return {"timeline": result.model_dump()}
        return {}

    def load_document(self, document_id: str) -> Optional[GeneratedDocument]:
        return self.store.load(document_id)

    def get_document_statistics(self, document_id: str) -> Optional[Dict[str, Any]]:
        document = self.store.load(document_id)
        if document is None:
            return None
        return self.store.get_statistics(document)
