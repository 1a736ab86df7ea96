"""Session REST API: one WorkflowController per session, driven over HTTP."""

import logging
import secrets
from urllib.parse import quote

from fastapi import APIRouter, HTTPException, UploadFile
from fastapi.responses import Response
from pydantic import BaseModel

from models import Rejection, TransitionResult, VideoFile, WorkflowStep
from services.file_utils import format_file_size, srt_filename
from services.store import sessions
from services.workflow import WorkflowController, is_no_speech_result

# Avoid 0/O, 1/I/l in session IDs so links don't get misread.
_SESSION_ALPHABET = "23456789abcdefghjkmnpqrstuvwxyz"
_SESSION_ID_LENGTH = 12
SRT_MEDIA_TYPE = "application/x-subrip"

router = APIRouter(tags=["sessions"])
logger = logging.getLogger(__name__)


class SessionCreateResponse(BaseModel):
    session_id: str
    step: WorkflowStep


class SessionReadResponse(BaseModel):
    """Snapshot of a session, enough to render the current step."""

    session_id: str
    step: WorkflowStep
    video_name: str | None = None
    video_size: str | None = None
    transcript: str = ""
    result_text: str = ""
    error: str | None = None
    no_speech_detected: bool = False


class TranscriptUpdateRequest(BaseModel):
    transcript: str


def _generate_session_id() -> str:
    """Session ID safe for URLs: no 0/O, 1/I/l to avoid misread."""
    return "".join(secrets.choice(_SESSION_ALPHABET) for _ in range(_SESSION_ID_LENGTH))


def _get_controller(session_id: str) -> WorkflowController:
    controller = sessions.get(session_id)
    if controller is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return controller


def _snapshot(session_id: str, controller: WorkflowController) -> SessionReadResponse:
    state = controller.state
    return SessionReadResponse(
        session_id=session_id,
        step=state.step,
        video_name=state.video.name if state.video else None,
        video_size=format_file_size(state.video.size) if state.video else None,
        transcript=state.transcript,
        result_text=state.result_text,
        error=state.error_message,
        no_speech_detected=state.step is WorkflowStep.RESULT and is_no_speech_result(state.result_text),
    )


def _respond(session_id: str, controller: WorkflowController, result: TransitionResult) -> SessionReadResponse:
    if result.rejection is Rejection.GUARD_FAILED:
        raise HTTPException(status_code=422, detail=result.reason)
    if not result.accepted:
        raise HTTPException(status_code=409, detail=result.reason)
    return _snapshot(session_id, controller)


def _declared_size(upload: UploadFile) -> int:
    if upload.size is not None:
        return upload.size
    upload.file.seek(0, 2)
    size = upload.file.tell()
    upload.file.seek(0)
    return size


@router.post("/sessions", response_model=SessionCreateResponse, status_code=201)
def create_session() -> SessionCreateResponse:
    """Start a fresh session on the upload step."""
    session_id = _generate_session_id()
    controller = WorkflowController()
    sessions[session_id] = controller
    logger.info("[sessions] POST /sessions → 201 session_id=%s", session_id)
    return SessionCreateResponse(session_id=session_id, step=controller.state.step)


@router.get("/sessions/{session_id}", response_model=SessionReadResponse)
def get_session(session_id: str) -> SessionReadResponse:
    """Current step and data for rendering. Used by the frontend for polling."""
    return _snapshot(session_id, _get_controller(session_id))


@router.delete("/sessions/{session_id}", status_code=204)
def delete_session(session_id: str) -> Response:
    """Drop a session and the video payload it holds."""
    if sessions.pop(session_id, None) is None:
        raise HTTPException(status_code=404, detail="Session not found")
    logger.info("[sessions] DELETE /sessions/%s → 204", session_id)
    return Response(status_code=204)


@router.post("/sessions/{session_id}/video", response_model=SessionReadResponse)
async def upload_video(session_id: str, file: UploadFile) -> SessionReadResponse:
    """File selected or dropped; both land here with the same validation."""
    controller = _get_controller(session_id)
    video = VideoFile(
        name=file.filename or "video",
        size=_declared_size(file),
        mime_type=file.content_type or "",
        source=file.file,
    )
    logger.info(
        "[sessions] POST /sessions/%s/video name=%s type=%s size=%d",
        session_id,
        video.name,
        video.mime_type,
        video.size,
    )
    result = await controller.select_video(video)
    return _respond(session_id, controller, result)


@router.put("/sessions/{session_id}/transcript", response_model=SessionReadResponse)
def update_transcript(session_id: str, body: TranscriptUpdateRequest) -> SessionReadResponse:
    controller = _get_controller(session_id)
    return _respond(session_id, controller, controller.set_transcript(body.transcript))


@router.post("/sessions/{session_id}/generate", response_model=SessionReadResponse)
async def generate_subtitles(session_id: str) -> SessionReadResponse:
    """
    Run the alignment and wait for it. Answers 200 with step "result" or "error";
    a second call while one is running gets 409.
    """
    controller = _get_controller(session_id)
    logger.info("[sessions] POST /sessions/%s/generate", session_id)
    result = await controller.generate()
    return _respond(session_id, controller, result)


@router.post("/sessions/{session_id}/retry", response_model=SessionReadResponse)
def retry(session_id: str) -> SessionReadResponse:
    controller = _get_controller(session_id)
    return _respond(session_id, controller, controller.retry())


@router.post("/sessions/{session_id}/reset", response_model=SessionReadResponse)
def reset(session_id: str) -> SessionReadResponse:
    """Remove the video (transcript step) or start a new project (result step)."""
    controller = _get_controller(session_id)
    if controller.state.step is WorkflowStep.RESULT:
        result = controller.new_project()
    else:
        result = controller.reset()
    return _respond(session_id, controller, result)


@router.get("/sessions/{session_id}/subtitles")
def download_subtitles(session_id: str) -> Response:
    """Serve the generated SRT as an attachment named after the video."""
    controller = _get_controller(session_id)
    saved: list[tuple[str, str]] = []

    def _attach(content: str, suggested_name: str) -> None:
        saved.append((content, srt_filename(suggested_name)))

    result = controller.download(saver=_attach)
    if not result.accepted or not saved:
        raise HTTPException(status_code=409, detail=result.reason or "No subtitles to download")
    content, filename = saved[0]
    logger.info("[sessions] GET /sessions/%s/subtitles → %s", session_id, filename)
    return Response(
        content=content,
        media_type=SRT_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(filename)}"},
    )
