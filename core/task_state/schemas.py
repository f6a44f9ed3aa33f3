"""
TypedDict schemas for persisted task state.

Task state files are plain JSON so they can be inspected (and, in an
emergency, hand edited) without tooling.
"""

from typing_extensions import TypedDict


class VersionDecisionRecord(TypedDict):
    """A single resolved version gate."""

    change_id: str  # Call-site identifier, e.g. "apply-edit-blocks-immediately"
    version: int  # Resolved version (0 = DEFAULT_VERSION)
    decided_at: str  # ISO timestamp of first resolution


class TaskStateFile(TypedDict):
    """On-disk state for one task instance."""

    version: str  # File format version
    task_id: str
    decisions: dict[str, VersionDecisionRecord]  # change_id -> decision
    last_updated_at: str
