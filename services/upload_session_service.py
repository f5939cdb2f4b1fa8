"""
Short-lived upload sessions.

Every batch opens a session. It holds the files staged for renaming or
conflict resolution and every result produced for that upload, so the
report can be rebuilt. Stored in memory with TTL expiration (single server).
"""
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

from config import settings
from models.upload import (
    AttachmentResult,
    BatchOptions,
    PendingConflict,
    PendingRename,
)
from exceptions import UploadSessionNotFoundError


@dataclass
class UploadSession:
    """Staged items and accumulated results of one logical upload."""
    id: str
    options: BatchOptions
    pending_renames: dict[int, PendingRename] = field(default_factory=dict)
    pending_conflicts: dict[int, PendingConflict] = field(default_factory=dict)
    results: list[AttachmentResult] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def has_pending(self) -> bool:
        return bool(self.pending_renames or self.pending_conflicts)

    def take_rename(self, index: int) -> Optional[PendingRename]:
        """Remove and return a staged rename."""
        return self.pending_renames.pop(index, None)

    def take_conflict(self, index: int) -> Optional[PendingConflict]:
        """Remove and return a staged conflict."""
        return self.pending_conflicts.pop(index, None)


_sessions: dict[str, tuple[datetime, UploadSession]] = {}
_lock = threading.Lock()

# Serializes every catalog-mutating round (batch, renames, conflicts, undo)
# so two files for the same product never race on its primary image.
processing_lock = threading.RLock()


def create_session(
    options: BatchOptions,
    pending_renames: list[PendingRename],
    pending_conflicts: list[PendingConflict],
    results: list[AttachmentResult],
    ttl_minutes: Optional[int] = None,
) -> UploadSession:
    """Open a session for a batch, return it."""
    session = UploadSession(
        id=str(uuid.uuid4()),
        options=options,
        pending_renames={p.index: p for p in pending_renames},
        pending_conflicts={c.index: c for c in pending_conflicts},
        results=list(results),
    )
    expires_at = datetime.now() + timedelta(minutes=ttl_minutes or settings.session_ttl_minutes)
    with _lock:
        _sessions[session.id] = (expires_at, session)
        _cleanup_expired()
    return session


def get_session(session_id: str) -> UploadSession:
    """
    Retrieve a live session.

    Raises:
        UploadSessionNotFoundError: If unknown or expired
    """
    with _lock:
        entry = _sessions.get(session_id)
        if entry is None:
            raise UploadSessionNotFoundError(session_id)
        expires_at, session = entry
        if datetime.now() > expires_at:
            del _sessions[session_id]
            raise UploadSessionNotFoundError(session_id)
        return session


def delete_session(session_id: str) -> None:
    """Forget a session."""
    with _lock:
        _sessions.pop(session_id, None)


def clear_sessions() -> None:
    """Drop every session."""
    with _lock:
        _sessions.clear()


def _cleanup_expired() -> None:
    """Remove all expired entries."""
    now = datetime.now()
    expired = [k for k, (exp, _) in _sessions.items() if now > exp]
    for k in expired:
        del _sessions[k]
