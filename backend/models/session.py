from dataclasses import dataclass
from enum import Enum

from .video import VideoFile


class WorkflowStep(str, Enum):
    UPLOAD = "upload"
    TRANSCRIPT = "transcript"
    PROCESSING = "processing"
    RESULT = "result"
    ERROR = "error"


class Rejection(str, Enum):
    INVALID_STEP = "invalid_step"      # trigger not allowed from the current step
    GUARD_FAILED = "guard_failed"      # inputs failed validation
    BUSY = "busy"                      # an alignment call is already in flight


@dataclass
class SessionState:
    step: WorkflowStep = WorkflowStep.UPLOAD
    video: VideoFile | None = None
    encoded_video: str | None = None       # base64 payload, no data-URI header
    transcript: str = ""
    result_text: str = ""                  # SRT document, set on RESULT only
    error_message: str | None = None


@dataclass(frozen=True)
class TransitionResult:
    state: SessionState
    rejection: Rejection | None = None
    reason: str | None = None

    @property
    def accepted(self) -> bool:
        return self.rejection is None
