from .store import sessions
from .workflow import WorkflowController

__all__ = ["sessions", "WorkflowController"]
