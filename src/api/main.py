from fastapi import Body, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from pagechat.config import settings
from pagechat.flow import answer_question_with_context, stream_answer
from pagechat.schemas import AnswerResult, MessageCreate, SessionCreate, SessionSnapshot
from pagechat.session import ChatSession
from typing import Any
import logging

# Configure logging
logging.basicConfig(
    level=settings.log_level.upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Page Chat", version="0.1.0")

# The widget is embedded on arbitrary pages
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# In-memory only; sessions vanish on restart
sessions: dict[str, ChatSession] = {}

@app.on_event("startup")
def _startup():
    logger.info(f"✅ Page chat ready (provider: {settings.llm_provider})")
    if settings.llm_provider.lower() == "gemini" and not settings.gemini_api_key:
        logger.warning("GOOGLE_GENAI_API_KEY is not set - answers will report a provider error")

def _get_session(session_id: str) -> ChatSession:
    session = sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Unknown session: {session_id}")
    return session

@app.get("/health")
def health():
    return {
        "ok": True,
        "provider": settings.llm_provider,
        "sessions": len(sessions),
    }

@app.post("/answer", response_model=AnswerResult)
async def answer(payload: Any = Body(None)):
    # Body is taken raw so invalid input is answered in-band, not with a 422
    return await answer_question_with_context(payload)

@app.post("/answer/stream")
async def answer_stream(payload: Any = Body(None)):
    return StreamingResponse(stream_answer(payload), media_type="text/plain")

@app.post("/sessions", response_model=SessionSnapshot)
def create_session(request: Request, req: SessionCreate | None = None):
    session = ChatSession(
        url=req.url if req else None,
        page_url=request.headers.get("referer"),
    )
    sessions[session.id] = session
    logger.info(f"Created session {session.id}")
    return session.snapshot()

@app.get("/sessions/{session_id}", response_model=SessionSnapshot)
def get_session(session_id: str):
    return _get_session(session_id).snapshot()

@app.post("/sessions/{session_id}/messages", response_model=SessionSnapshot)
async def post_message(session_id: str, req: MessageCreate):
    session = _get_session(session_id)
    if session.is_loading:
        raise HTTPException(status_code=409, detail="A question is already being answered")
    session.set_input(req.content)
    await session.submit()
    return session.snapshot()

@app.delete("/sessions/{session_id}/history")
def clear_history(session_id: str):
    session = _get_session(session_id)
    session.clear_history()
    return {"ok": True, "turns": len(session.history)}

@app.delete("/sessions/{session_id}")
def delete_session(session_id: str):
    _get_session(session_id)
    del sessions[session_id]
    logger.info(f"Deleted session {session_id}")
    return {"ok": True}
