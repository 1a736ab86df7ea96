"""Session workflow: upload → transcript → alignment → result/error."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

from models import Rejection, SessionState, TransitionResult, VideoFile, WorkflowStep
from services.alignment import NO_SPEECH_SENTINEL, align
from services.errors import AlignmentInProgressError, ReadError, ValidationError
from services.file_utils import encode_file, format_file_size, save_as_srt

logger = logging.getLogger(__name__)

MAX_FILE_SIZE_MB = 200
MAX_FILE_SIZE_BYTES = MAX_FILE_SIZE_MB * 1024 * 1024
SIZE_HINT_THRESHOLD_BYTES = 20 * 1024 * 1024   # Gemini inline request size limit
VIDEO_MIME_PREFIX = "video/"

FILE_TOO_LARGE_MESSAGE = f"File too large. Please upload a video smaller than {MAX_FILE_SIZE_MB}MB."
INVALID_TYPE_MESSAGE = "Please upload a valid video file."
READ_FAILED_MESSAGE = "Failed to process video file."
MISSING_INPUT_MESSAGE = "Please provide both a video and a transcript."
GENERIC_FAILURE_MESSAGE = "An error occurred while communicating with AI."
SIZE_HINT = " (The file might be too large for direct API processing. Try compressing it under 20MB.)"

Aligner = Callable[[str, str, str], Awaitable[str]]
Saver = Callable[[str, str], None]


def validate_video(video: VideoFile) -> None:
    """
    Check a selected or dropped file against the upload guard.

    Only the declared size and MIME type are inspected, never the content.

    :raises ValidationError: oversized or not a video/* type
    """
    if video.size > MAX_FILE_SIZE_BYTES:
        raise ValidationError(FILE_TOO_LARGE_MESSAGE)
    if not video.mime_type.startswith(VIDEO_MIME_PREFIX):
        raise ValidationError(INVALID_TYPE_MESSAGE)


def describe_failure(exc: BaseException, video: VideoFile | None) -> str:
    """User-facing message for a failed alignment, with a size hint for big 400s."""
    message = str(exc) or GENERIC_FAILURE_MESSAGE
    if video is not None and video.size > SIZE_HINT_THRESHOLD_BYTES and "400" in message:
        message += SIZE_HINT
    return message


def is_no_speech_result(text: str) -> bool:
    return text.strip() == NO_SPEECH_SENTINEL


class AlignmentTicket:
    """Held by the controller for exactly the lifetime of one alignment call."""

    __slots__ = ()


class WorkflowController:
    """
    State machine owning one user session.

    Every trigger is a method returning a TransitionResult. Rejected triggers
    never mutate state, except that upload and generate guard failures set
    error_message. No exception escapes a transition method.
    """

    def __init__(
        self,
        *,
        aligner: Aligner | None = None,
        saver: Saver | None = None,
    ) -> None:
        self._aligner = aligner
        self._saver = saver
        self._state = SessionState()
        self._ticket: AlignmentTicket | None = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def alignment_in_flight(self) -> bool:
        return self._ticket is not None

    def _accept(self) -> TransitionResult:
        return TransitionResult(state=self._state)

    def _reject(self, rejection: Rejection, reason: str) -> TransitionResult:
        logger.info("[workflow] Rejected (%s) in step=%s: %s", rejection.value, self._state.step.value, reason)
        return TransitionResult(state=self._state, rejection=rejection, reason=reason)

    def _wrong_step(self, trigger: str) -> TransitionResult:
        return self._reject(
            Rejection.INVALID_STEP,
            f"Cannot {trigger} while the session is in the {self._state.step.value} step.",
        )

    def _acquire_ticket(self) -> AlignmentTicket:
        if self._ticket is not None:
            raise AlignmentInProgressError("Subtitles are already being generated for this session.")
        self._ticket = AlignmentTicket()
        return self._ticket

    def _release_ticket(self, ticket: AlignmentTicket) -> None:
        if self._ticket is ticket:
            self._ticket = None

    def _still_uploading(self, state: SessionState) -> bool:
        # A reset swaps in a new SessionState; a finished upload moves the step on.
        return self._state is state and state.step is WorkflowStep.UPLOAD

    def _superseded(self, video: VideoFile) -> TransitionResult:
        return self._reject(
            Rejection.INVALID_STEP,
            f"Upload of {video.name} was superseded while it was encoding.",
        )

    def _start_fresh(self) -> TransitionResult:
        self._state = SessionState()
        logger.info("[workflow] Session reset to upload step.")
        return self._accept()

    async def select_video(self, video: VideoFile) -> TransitionResult:
        """File picked or dropped on the upload surface."""
        state = self._state
        if state.step is not WorkflowStep.UPLOAD:
            return self._wrong_step("select a video")
        try:
            validate_video(video)
        except ValidationError as exc:
            state.error_message = str(exc)
            return self._reject(Rejection.GUARD_FAILED, str(exc))

        logger.info(
            "[workflow] Encoding %s (%s, %s)",
            video.name,
            video.mime_type,
            format_file_size(video.size),
        )
        try:
            encoded = await encode_file(video.source)
        except ReadError:
            if not self._still_uploading(state):
                return self._superseded(video)
            state.error_message = READ_FAILED_MESSAGE
            return self._reject(Rejection.GUARD_FAILED, READ_FAILED_MESSAGE)

        if not self._still_uploading(state):
            return self._superseded(video)
        state.video = video
        state.encoded_video = encoded
        state.error_message = None
        state.step = WorkflowStep.TRANSCRIPT
        return self._accept()

    def set_transcript(self, transcript: str) -> TransitionResult:
        if self._state.step is not WorkflowStep.TRANSCRIPT:
            return self._wrong_step("edit the transcript")
        self._state.transcript = transcript
        return self._accept()

    async def generate(self) -> TransitionResult:
        """
        Run the alignment call and land in RESULT or ERROR.

        The returned result is accepted in both cases; inspect state.step.
        """
        try:
            ticket = self._acquire_ticket()
        except AlignmentInProgressError as exc:
            return self._reject(Rejection.BUSY, str(exc))

        try:
            state = self._state
            if state.step is not WorkflowStep.TRANSCRIPT:
                return self._wrong_step("generate subtitles")
            if state.video is None or not state.encoded_video or not state.transcript.strip():
                state.error_message = MISSING_INPUT_MESSAGE
                return self._reject(Rejection.GUARD_FAILED, MISSING_INPUT_MESSAGE)

            state.error_message = None
            state.step = WorkflowStep.PROCESSING
            aligner = self._aligner or align
            logger.info("[workflow] Generating subtitles for %s", state.video.name)
            try:
                srt = await aligner(state.encoded_video, state.video.mime_type, state.transcript)
            except Exception as exc:  # noqa: BLE001
                state.error_message = describe_failure(exc, state.video)
                state.step = WorkflowStep.ERROR
                logger.error("[workflow] Alignment FAILED for %s: %s", state.video.name, state.error_message)
                return self._accept()

            if is_no_speech_result(srt):
                logger.warning("[workflow] Model reported no speech in %s", state.video.name)
            state.result_text = srt
            state.step = WorkflowStep.RESULT
            logger.info("[workflow] Subtitles ready for %s (%d chars)", state.video.name, len(srt))
            return self._accept()
        finally:
            self._release_ticket(ticket)

    def retry(self) -> TransitionResult:
        if self._state.step is not WorkflowStep.ERROR:
            return self._wrong_step("retry")
        self._state.error_message = None
        self._state.step = WorkflowStep.TRANSCRIPT
        return self._accept()

    def reset(self) -> TransitionResult:
        """Remove the selected video and start over from the upload step."""
        if self._state.step is not WorkflowStep.TRANSCRIPT:
            return self._wrong_step("reset")
        return self._start_fresh()

    def new_project(self) -> TransitionResult:
        if self._state.step is not WorkflowStep.RESULT:
            return self._wrong_step("start a new project")
        return self._start_fresh()

    def download(self, *, saver: Saver | None = None) -> TransitionResult:
        """Save the subtitles as <video stem>.srt. Does not change step."""
        if self._state.step is not WorkflowStep.RESULT:
            return self._wrong_step("download subtitles")
        save = saver or self._saver or save_as_srt
        name = self._state.video.name if self._state.video else "video"
        try:
            save(self._state.result_text, name)
        except Exception as exc:  # noqa: BLE001
            logger.error("[workflow] Saving subtitles for %s FAILED: %s", name, exc, exc_info=True)
        return self._accept()
