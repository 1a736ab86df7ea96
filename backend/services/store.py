"""
In-memory session store. Keyed by session ID; nothing is persisted.

Each controller keeps its base64 video payload (about 4/3 of the upload, so up
to ~270 MB for a 200 MB file) until the session is deleted with
DELETE /api/sessions/{id} or the process exits. There is no automatic expiry.
"""

from services.workflow import WorkflowController

sessions: dict[str, WorkflowController] = {}
