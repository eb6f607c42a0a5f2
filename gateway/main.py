from __future__ import annotations

import logging
from functools import partial
from typing import Optional

from fastapi import FastAPI, Header, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from analysis.llm_client import chat_completion
from common.config import ASRSettings, GatewaySettings, LLMSettings, MediaSettings, StorageSettings
from common.errors import SpeechAnalysisError
from common.schemas import AnalysisRecord, AnalysisResult, AnalyzeSpeechRequest
from common.storage import AnalysisStore, build_record
from gateway.media import MediaValidator
from gateway.pipeline import SpeechAnalyzer
from gateway.topics import random_topic
from transcription.client import transcribe_media

logger = logging.getLogger(__name__)

settings = GatewaySettings()
asr_settings = ASRSettings()
llm_settings = LLMSettings()

app = FastAPI(title="Speech Coach Gateway")
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_origin_regex=settings.allowed_origin_regex,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)

analyzer = SpeechAnalyzer(
    validator=MediaValidator(MediaSettings()),
    complete=partial(chat_completion, settings=llm_settings),
    transcribe=partial(transcribe_media, settings=asr_settings) if asr_settings.enabled else None,
    unclear_word_threshold=asr_settings.unclear_word_threshold,
    max_unclear_words=asr_settings.max_unclear_words,
)
store = AnalysisStore(StorageSettings())


def _error(message: str, status_code: int = 500) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request, exc: StarletteHTTPException):
    return _error(str(exc.detail), exc.status_code)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request, exc: RequestValidationError):
    # malformed bodies share the generic envelope; there is no 4xx for bad input
    logger.warning("Rejected request body: %s", exc.errors())
    return _error("Invalid request body", 500)


@app.exception_handler(Exception)
async def unexpected_error_handler(request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error("Unknown error")


async def _resolve_caller(authorization: Optional[str], required: bool) -> Optional[str]:
    token = None
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization[7:].strip()

    if not token:
        if required:
            raise HTTPException(status_code=401, detail="Missing authorization")
        return None
    if not store.enabled:
        if required:
            raise HTTPException(status_code=401, detail="Authentication is not configured")
        return None

    user_id = await run_in_threadpool(store.resolve_user, token)
    if user_id is None:
        raise HTTPException(status_code=401, detail="Invalid authorization")
    return user_id


@app.get("/health")
async def health():
    return {"status": "ok", "transcription": asr_settings.enabled, "storage": store.enabled}


@app.get("/topics/random")
async def topic(exclude: Optional[str] = None):
    return {"topic": random_topic(exclude)}


@app.post("/analyze-speech", response_model=AnalysisResult)
async def analyze_speech(req: AnalyzeSpeechRequest, authorization: Optional[str] = Header(default=None)):
    user_id = await _resolve_caller(authorization, required=settings.require_auth)

    try:
        result = await analyzer.analyze(req)
    except SpeechAnalysisError as exc:
        logger.warning("Analysis failed: %s", exc)
        return _error(exc.user_message)
    except Exception:
        logger.exception("Unexpected error in analyze-speech")
        return _error("Unknown error")

    if user_id and store.enabled:
        try:
            await run_in_threadpool(store.insert, build_record(result, user_id))
        except Exception:
            logger.exception("Failed to store analysis for %s", user_id)

    return result


@app.get("/analyses", response_model=list[AnalysisRecord])
async def list_analyses(authorization: Optional[str] = Header(default=None)):
    user_id = await _resolve_caller(authorization, required=True)
    return await run_in_threadpool(store.list_for_user, user_id, settings.history_limit)


@app.delete("/analyses/{analysis_id}")
async def delete_analysis(analysis_id: str, authorization: Optional[str] = Header(default=None)):
    user_id = await _resolve_caller(authorization, required=True)
    deleted = await run_in_threadpool(store.delete_for_user, analysis_id, user_id)
    if not deleted:
        raise HTTPException(status_code=500, detail="Failed to delete analysis")
    return {"deleted": True}


if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    uvicorn.run(app, host=settings.host, port=settings.port)
