# fastapi web api for streamed lesson content parsing
from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
import uuid
import logging
from typing import Dict, Tuple

from .config import load_settings
from .errors import LLMServiceError, SessionStateError, UnknownContentKindError
from .generation_service import GenerationService, Session, create_session, finish_units, parse_content
from .models import (
    ChunkRequest, ContentKind, DocumentRequest, GenerationRequest,
    ParseRequest, ParseResponse, SessionCreateRequest, SessionState, resolve_kind,
)

# configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# initialize fastapi application
app = FastAPI(
    title="Lessonstream API",
    description="Parse streamed AI output into lessons, quizzes, summaries, lesson plans and slides",
    version="1.0.0"
)

# add cors middleware to allow cross-origin requests
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# in-process store of open parse sessions, one per client generation
class SessionRegistry:
    """Holds at most max_sessions sessions.

    When full, the oldest finalized session is evicted first, then the
    oldest session overall.
    """

    def __init__(self, max_sessions: int = 256):
        self.max_sessions = max(1, max_sessions)
        self._sessions: Dict[str, Tuple[ContentKind, Session]] = {}

    def create(self, kind: ContentKind) -> Tuple[str, Session]:
        session = create_session(kind)
        while len(self._sessions) >= self.max_sessions:
            self._evict()
        session_id = uuid.uuid4().hex
        self._sessions[session_id] = (kind, session)
        logger.info(f"Opened {kind.value} session {session_id}")
        return session_id, session

    def _evict(self):
        # dicts keep insertion order, so the first match is the oldest
        finalized = [
            session_id for session_id, (_, session) in self._sessions.items()
            if session.state == SessionState.FINALIZED
        ]
        session_id = finalized[0] if finalized else next(iter(self._sessions))
        del self._sessions[session_id]
        logger.warning(f"⚠️ Session limit {self.max_sessions} reached, evicted session {session_id}")

    def get(self, session_id: str) -> Tuple[ContentKind, Session]:
        if session_id not in self._sessions:
            raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")
        return self._sessions[session_id]

    def delete(self, session_id: str):
        self.get(session_id)
        del self._sessions[session_id]

    def __len__(self):
        return len(self._sessions)


session_registry = SessionRegistry(load_settings().max_sessions)
generation_service = None


# get or create the shared generation service
def get_generation_service() -> GenerationService:
    global generation_service
    if generation_service is None:
        generation_service = GenerationService()
    return generation_service


@app.exception_handler(SessionStateError)
async def session_state_error_handler(request, exc: SessionStateError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(UnknownContentKindError)
async def unknown_kind_error_handler(request, exc: UnknownContentKindError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(LLMServiceError)
async def llm_error_handler(request, exc: LLMServiceError):
    logger.error(f"Upstream LLM failure: {str(exc)}")
    return JSONResponse(status_code=502, content={"detail": str(exc)})


def _session_response(kind: ContentKind, session: Session) -> ParseResponse:
    return ParseResponse(
        kind=kind,
        state=session.state,
        strategy=session.strategy,
        units=[unit.model_dump(mode="json") for unit in session.get_all_units()],
    )


# endpoint to parse a complete response in one call
@app.post("/parse/{kind}")
async def parse_response(kind: str, request: ParseRequest):
    """Parse a finished response of the given kind"""
    response = parse_content(kind, request.content, target_count=request.target_count)
    logger.info(f"Parsed {len(response.units)} {response.kind.value} units using {response.strategy}")
    return response.model_dump(mode="json")


# endpoint to open a streaming parse session
@app.post("/sessions")
async def open_session(request: SessionCreateRequest):
    session_id, session = session_registry.create(request.kind)
    return {"session_id": session_id, "kind": request.kind.value, "state": session.state.value}


# endpoint to push stream text into a session
@app.post("/sessions/{session_id}/chunks")
async def push_chunk(session_id: str, request: ChunkRequest):
    """Reparse the session with new text; cumulative text replaces the buffer"""
    kind, session = session_registry.get(session_id)
    session.parse_chunk(request.text, cumulative=request.cumulative)
    return _session_response(kind, session).model_dump(mode="json")


@app.post("/sessions/{session_id}/finalize")
async def finalize_session(session_id: str):
    """Close the stream and return the final units"""
    kind, session = session_registry.get(session_id)
    units = session.finalize()
    response = ParseResponse(
        kind=kind,
        state=session.state,
        strategy=session.strategy,
        units=finish_units(kind, units),
    )
    return response.model_dump(mode="json")


@app.get("/sessions/{session_id}/units")
async def get_session_units(session_id: str):
    kind, session = session_registry.get(session_id)
    return _session_response(kind, session).model_dump(mode="json")


@app.delete("/sessions/{session_id}")
async def delete_session(session_id: str):
    session_registry.delete(session_id)
    return {"deleted": session_id}


# endpoint proxying the raw model stream as plain text
@app.post("/generate/{kind}/stream")
def stream_generation(kind: str, request: GenerationRequest,
                      service: GenerationService = Depends(get_generation_service)):
    """Stream generated text for the client to feed into its own session"""
    fragments = service.stream_generation(resolve_kind(kind), request)

    # pull the first fragment now so upstream errors still map to a status code
    try:
        first = next(fragments)
    except StopIteration:
        first = ""

    def body():
        yield first
        yield from fragments

    return StreamingResponse(body(), media_type="text/plain; charset=utf-8")


# endpoint to generate, parse and store a document
@app.post("/documents")
def create_document(request: DocumentRequest,
                    service: GenerationService = Depends(get_generation_service)):
    """Generate a document and save it"""
    generation_request = GenerationRequest(**request.model_dump(exclude={"kind"}))
    response = service.generate(request.kind, generation_request)

    if not response.success:
        raise HTTPException(status_code=502, detail=response.message)
    return response.model_dump(mode="json")


@app.get("/documents")
def list_documents(service: GenerationService = Depends(get_generation_service)):
    return {"documents": service.store.list_documents()}


@app.get("/documents/{document_id}")
def get_document(document_id: str, service: GenerationService = Depends(get_generation_service)):
    """Get a stored document as JSON"""
    try:
        document = service.load_document(document_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if document is None:
        raise HTTPException(status_code=404, detail="Document not found")
    return document.model_dump(mode="json")


@app.get("/documents/{document_id}/stats")
def get_document_stats(document_id: str, service: GenerationService = Depends(get_generation_service)):
    """Get document statistics"""
    try:
        stats = service.get_document_statistics(document_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if stats is None:
        raise HTTPException(status_code=404, detail="Document not found")
    return stats


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "lessonstream", "open_sessions": len(session_registry)}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
