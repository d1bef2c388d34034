"""
intake_validator.py — Type and size policy for candidate video uploads.

Pure functions only: the validator never mutates the descriptor and never
notifies anyone. Telling the user about a rejection is the caller's job
(see services/analysis_session.py).

USAGE
─────
    from vidguard.services.intake_validator import validate

    outcome = validate(FileDescriptor(name="clip.mp4", size_bytes=5_000_000,
                                      mime_type="video/mp4"))
    # outcome.accepted → True
"""

from __future__ import annotations

from vidguard.core.config import settings
from vidguard.models.detection import FileDescriptor, RejectionReason, ValidationOutcome

_VIDEO_PREFIX = "video/"
_BYTES_PER_MB = 1024 * 1024


def is_video_mime(mime_type: str) -> bool:
    return mime_type.strip().lower().startswith(_VIDEO_PREFIX)


def validate(file: FileDescriptor, max_bytes: int | None = None) -> ValidationOutcome:
    """
    Accept or reject `file` for analysis.

    The type check runs before the size check, so an oversized PDF is
    reported as NOT_A_VIDEO. A file of exactly `max_bytes` is accepted.
    """
    limit = settings.max_upload_bytes if max_bytes is None else max_bytes

    if not is_video_mime(file.mime_type):
        return ValidationOutcome.reject(RejectionReason.NOT_A_VIDEO)
    if file.size_bytes > limit:
        return ValidationOutcome.reject(RejectionReason.TOO_LARGE)
    return ValidationOutcome.accept()


def format_file_size(size_bytes: int) -> str:
    """Human-readable size in MB with two decimals, e.g. 5_000_000 → '4.77 MB'."""
    return f"{size_bytes / _BYTES_PER_MB:.2f} MB"


def rejection_message(reason: RejectionReason, max_bytes: int | None = None) -> str:
    limit = settings.max_upload_bytes if max_bytes is None else max_bytes
    if reason is RejectionReason.NOT_A_VIDEO:
        return "Invalid file type: please select a video file"
    return f"File too large: please select a video file smaller than {limit // _BYTES_PER_MB}MB"
