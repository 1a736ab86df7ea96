from .session import Rejection, SessionState, TransitionResult, WorkflowStep
from .video import VideoFile, VideoSource

__all__ = [
    "SessionState",
    "WorkflowStep",
    "Rejection",
    "TransitionResult",
    "VideoFile",
    "VideoSource",
]
