from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

@dataclass
class StoredFile:
    path: str
    filename: str
    contentType: str = "application/octet-stream"
    size: int = 0

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "filename": self.filename,
            "contentType": self.contentType,
            "size": int(self.size),
        }

@dataclass
class FormSession:
    # Core identifiers
    sessionId: str = ""
    flowId: str = "support"

    # DRAFT/SUBMITTED/FAILED
    status: str = "DRAFT"

    # field name -> raw answer (strings; selects hold the option value)
    answers: Dict[str, Any] = field(default_factory=dict)

    # file field name -> stored file dicts (single-file fields hold at most one)
    files: Dict[str, List[dict]] = field(default_factory=dict)

    # Live per-field errors (e.g. email typed but not yet valid)
    fieldErrors: Dict[str, str] = field(default_factory=dict)

    # Single banner message shown above the form
    formError: Optional[str] = None
    successMessage: Optional[str] = None

    # Set once the backend accepted the request
    submissionId: Optional[str] = None

    createdAtEpoch: Optional[int] = None
    lastUpdatedAtEpoch: Optional[int] = None

@dataclass
class SubmissionRecord:
    submissionId: str = ""
    mutation: str = ""
    status: str = "RECEIVED"  # RECEIVED/QUEUED/FORWARDED/FORWARD_FAILED

    # Submitted field values as received (files excluded)
    fields: Dict[str, Any] = field(default_factory=dict)
    files: List[dict] = field(default_factory=list)

    receivedAtMs: int = 0
    forwardAttempts: int = 0
    lastForwardError: Optional[str] = None
