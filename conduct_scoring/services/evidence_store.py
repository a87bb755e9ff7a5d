# conduct_scoring/services/evidence_store.py
import logging
import time
from pathlib import Path
from typing import Optional

from conduct_scoring.core.config import settings
from conduct_scoring.core.errors import ValidationError

logger = logging.getLogger(__name__)

UPLOAD_KINDS = ("evidence", "avatar")

_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "application/pdf": "pdf",
}


def validate_upload(content_type: Optional[str], size: int) -> None:
    if content_type not in settings.ALLOWED_UPLOAD_TYPES:
        raise ValidationError(f"Invalid file type: {content_type}")
    if size <= 0:
        raise ValidationError("Empty file")
    if size > settings.MAX_UPLOAD_BYTES:
        max_mb = settings.MAX_UPLOAD_BYTES // (1024 * 1024)
        raise ValidationError(f"File too large (max {max_mb}MB)")


def _extension(content_type: str) -> str:
    # The validated MIME type decides the suffix; the client filename is ignored
    return _EXTENSIONS.get(content_type, "bin")


def save_upload(
    *,
    user_id: int,
    kind: str,
    filename: Optional[str],
    content_type: Optional[str],
    content: bytes,
    upload_dir: Optional[str] = None,
) -> str:
    """
    Validate and store an uploaded file, returning its public reference.

    Scoring records keep only this reference, never the bytes.
    """
    if kind not in UPLOAD_KINDS:
        raise ValidationError(f"Invalid upload kind: {kind}")
    validate_upload(content_type, len(content))
    if kind == "avatar" and not content_type.startswith("image/"):
        raise ValidationError(f"Avatar must be an image, got {content_type}")

    target_dir = Path(upload_dir or settings.UPLOAD_DIR) / kind
    target_dir.mkdir(parents=True, exist_ok=True)

    ext = _extension(content_type)
    stamp = int(time.time() * 1000)
    # Two uploads in the same millisecond must not overwrite each other
    while (target_dir / f"{user_id}_{stamp}.{ext}").exists():
        stamp += 1
    name = f"{user_id}_{stamp}.{ext}"
    (target_dir / name).write_bytes(content)

    logger.info(
        f"Stored {kind} upload {filename!r} as {name} ({len(content)} bytes) for user {user_id}"
    )
    return f"/uploads/{kind}/{name}"


def delete_upload(file_ref: str, upload_dir: Optional[str] = None) -> None:
    """Remove a stored upload by its public reference; a file already gone is ignored."""
    prefix = "/uploads/"
    if not file_ref.startswith(prefix):
        raise ValidationError(f"Not an upload reference: {file_ref}")
    kind, _, name = file_ref[len(prefix):].partition("/")
    if kind not in UPLOAD_KINDS or not name or "/" in name or name.startswith("."):
        raise ValidationError(f"Not an upload reference: {file_ref}")

    path = Path(upload_dir or settings.UPLOAD_DIR) / kind / name
    path.unlink(missing_ok=True)
    logger.info(f"Removed {kind} upload {name}")
