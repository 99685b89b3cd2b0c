# pydantic models for parsed units, slides and api payloads
from pydantic import BaseModel, Field
from typing import List, Dict, Any, Optional
from enum import Enum

from .errors import UnknownContentKindError

# enum for the semantic type of a parsed unit
class UnitType(str, Enum):
    OVERVIEW = "overview"
    CONTENT = "content"
    ACTIVITIES = "activities"
    ASSESSMENT = "assessment"
    SUMMARY = "summary"

# enum for every kind of content the pipeline can generate
class ContentKind(str, Enum):
    LESSON = "lesson"
    SUMMARY = "summary"
    QUIZ = "quiz"
    LESSON_PLAN = "lesson_plan"
    PRESENTATION = "presentation"
    PRESENTATION_OUTLINE = "presentation_outline"
    FLASHCARDS = "flashcards"

# map a kind name from a url or command line onto the enum
def resolve_kind(kind) -> ContentKind:
    try:
        return ContentKind(kind)
    except ValueError:
        supported = ", ".join(k.value for k in ContentKind)
        raise UnknownContentKindError(f"Unknown content kind '{kind}'. Supported: {supported}")

# enum for the lifecycle of a parse session
class SessionState(str, Enum):
    EMPTY = "empty"
    ACCUMULATING = "accumulating"
    FINALIZED = "finalized"

# model for one parsed section of a response (page, outline, question...)
class Unit(BaseModel):
    sequence_number: int
    label: Optional[int] = None  # numeric label as the model wrote it
    title: str
    body: str = ""
    unit_type: UnitType = UnitType.CONTENT
    is_provisional: bool = False
    is_placeholder: bool = False

# model for a multiple choice question
class QuizQuestion(Unit):
    options: List[str] = []
    correct_answer: Optional[int] = None  # index into options, None when unmarked
    correct_answer_text: Optional[str] = None

# model for a group of questions
class Quiz(BaseModel):
    quiz_number: int
    questions: List[QuizQuestion]

# model for a lesson plan section
class LessonPlanSection(Unit):
    section_format: str = "text"  # list, table or text

# model for one row of a lesson timeline table
class TimelineRow(BaseModel):
    duration: str
    activity: str
    instructions: str
    teacher_notes: str = ""

# result of parsing a lesson timeline
class TimelineParseResult(BaseModel):
    success: bool
    rows: List[TimelineRow] = []
    error: Optional[str] = None
    fallback_content: Optional[str] = None
    strategy: Optional[str] = None

# model for a single flashcard
class Flashcard(BaseModel):
    question: str
    answer: str

# model for a node of the slide markup tree
class SlideNode(BaseModel):
    type: str
    attributes: Dict[str, str] = {}
    children: List["SlideNode"] = []
    text: Optional[str] = None
    generating: bool = False

SlideNode.model_rebuild()

# image that fills the slide layout slot
class RootImage(BaseModel):
    query: str
    url: Optional[str] = None

# model for a single parsed slide
class Slide(BaseModel):
    id: str
    sequence_number: int
    layout: Optional[str] = None
    width: Optional[str] = None
    root_image: Optional[RootImage] = None
    content: List[SlideNode] = []
    is_provisional: bool = False

# persisted record of a finished generation
class GeneratedDocument(BaseModel):
    id: str
    kind: ContentKind
    title: str
    units: List[Dict[str, Any]] = []
    outline: List[str] = []
    metadata: Dict[str, Any] = {}
    created_at: str

# request model for a generation run
class GenerationRequest(BaseModel):
    topic: str
    source_text: Optional[str] = None
    grade_level: str = "secondary"
    language: str = "English"
    number_of_units: int = Field(default=5, ge=1, le=50)
    number_of_quizzes: Optional[int] = Field(default=None, ge=1)
    outline: List[str] = []  # used by the presentation kind

# request model for generating and storing a document
class DocumentRequest(GenerationRequest):
    kind: ContentKind

# response model for a generation run
class GenerationResponse(BaseModel):
    success: bool
    message: str
    document: Optional[GeneratedDocument] = None
    processing_time: float = 0.0

# request model for a one-shot parse
class ParseRequest(BaseModel):
    content: str
    target_count: Optional[int] = Field(default=None, ge=1)

# response model for parse and session endpoints
class ParseResponse(BaseModel):
    kind: ContentKind
    state: Optional[SessionState] = None
    strategy: Optional[str] = None
    units: List[Dict[str, Any]] = []

# request model for creating a streaming session
class SessionCreateRequest(BaseModel):
    kind: ContentKind

# request model for pushing stream text into a session
class ChunkRequest(BaseModel):
    text: str
    cumulative: bool = True
