"""
FastAPI backend: chat with streaming (NDJSON), health check, runner initialization.
Logs are structured (request_id, conversation_id, duration); secrets are never logged.
"""
import logging
import os
import time
import uuid
from contextlib import asynccontextmanager

import openai
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from graph.graph import get_runner

log = logging.getLogger(__name__)
logging.basicConfig(level=getattr(logging, os.getenv("LOG_LEVEL", "INFO")))

logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("openai").setLevel(logging.WARNING)

QUOTA_MESSAGE = (
    "Sorry, the OpenAI API quota has been exceeded.\n\n"
    "Check your credits at https://platform.openai.com/settings/organization/billing "
    "or update the API key in the .env file."
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize the runner (model provider + graph) on startup."""
    get_runner()
    yield


app = FastAPI(title="WeatherBot", lifespan=lifespan)
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=8000)
    conversation_id: str | None = Field(default=None, description="Optional conversation id for context")


class ChatChunk(BaseModel):
    type: str = "token"
    content: str = ""


def _run(message: str, conversation_id: str) -> tuple[str, str | None]:
    """Run one turn. Returns (assistant text, error code or None)."""
    try:
        reply = get_runner().run_turn(conversation_id, message)
    except openai.RateLimitError as e:
        log.error("openai_quota_exceeded", extra={"error": str(e)[:200]})
        return QUOTA_MESSAGE, "rate_limit_exceeded"
    except Exception as e:
        log.error("run_turn_error", extra={"conversation_id": conversation_id, "error": str(e)[:200]})
        return f"Sorry, something went wrong while processing your message: {str(e)[:100]}", "internal_error"
    content = reply.content if isinstance(reply.content, str) else ""
    return content or "I couldn't generate a response.", None


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    rid = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = rid
    response = await call_next(request)
    response.headers["x-request-id"] = rid
    return response


@app.post("/chat/stream")
def chat_stream(req: ChatRequest, request: Request):
    """Stream chat response as NDJSON (one JSON object per line)."""
    request_id = getattr(request.state, "request_id", str(uuid.uuid4()))
    conv_id = req.conversation_id or str(uuid.uuid4())
    log.info("chat_stream_start", extra={"request_id": request_id, "conversation_id": conv_id})

    def gen():
        content, _ = _run(req.message, conv_id)
        for char in content:
            yield ChatChunk(type="token", content=char).model_dump_json() + "\n"
        yield ChatChunk(type="done", content="").model_dump_json() + "\n"

    return StreamingResponse(
        gen(),
        media_type="application/x-ndjson",
        headers={"x-request-id": request_id, "x-conversation-id": conv_id},
    )


@app.post("/chat")
def chat(req: ChatRequest, request: Request):
    """Non-streaming chat: returns full response once the turn is done."""
    request_id = getattr(request.state, "request_id", str(uuid.uuid4()))
    conv_id = req.conversation_id or str(uuid.uuid4())
    start = time.perf_counter()
    log.info("chat_start", extra={"request_id": request_id, "conversation_id": conv_id})

    content, error = _run(req.message, conv_id)
    duration = time.perf_counter() - start
    if error:
        log.info("chat_error", extra={"request_id": request_id, "duration_sec": round(duration, 3)})
        return {"response": content, "conversation_id": conv_id, "error": error}

    log.info("chat_done", extra={"request_id": request_id, "duration_sec": round(duration, 3)})
    return {
        "response": content,
        "conversation_id": conv_id,
        "location": get_runner().last_location(conv_id) or None,
    }


@app.get("/health")
async def health():
    """Basic health check."""
    return {"status": "ok"}
