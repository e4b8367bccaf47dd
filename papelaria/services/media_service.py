import base64
import binascii
import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional, Protocol, Union

from papelaria.logging_config import get_logger
from papelaria.models import Attachment
from papelaria.services.result import NAME_COLLISION, STORAGE_ERROR, Result
from papelaria.services.timer_service import Clock

logger = get_logger("media_service")

MIME_SUBTYPE_ALIASES = {
    "application/pdf": "pdf",
    "image/jpeg": "jpeg",
    "image/jpg": "jpeg",
    "image/pjpeg": "jpeg",
    "image/png": "png",
    "application/msword": "doc",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "docx",
}

_MIME_SHAPE = re.compile(r"^[a-z0-9!#$&^_.+-]+/[a-z0-9!#$&^_.+-]+$")
_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9_-]+")


class IntakeStatus(str, Enum):
    ACCEPTED = "accepted"
    UNSUPPORTED = "unsupported"
    AUDIO = "audio"
    UNPARSEABLE = "unparseable"
    STORAGE_FAILURE = "storage_failure"


@dataclass(frozen=True)
class IntakeResult:
    status: IntakeStatus
    subtype: Optional[str] = None
    path: Optional[str] = None
    error: Optional[str] = None

    @property
    def accepted(self) -> bool:
        return self.status is IntakeStatus.ACCEPTED


class StorageSink(Protocol):
    def store_file(self, name: str, data: bytes) -> Result[str]: ...


class LocalFileStorage:
    """Writes uploads under one directory; never overwrites an existing file.

    The write is synchronous and runs on the event loop while the contact lock
    is held. Uploads are small documents and photos; move it to a worker thread
    if that changes.
    """

    def __init__(self, upload_dir: str):
        self.upload_dir = Path(upload_dir)

    def store_file(self, name: str, data: bytes) -> Result[str]:
        path = self.upload_dir / name
        try:
            self.upload_dir.mkdir(parents=True, exist_ok=True)
            with open(path, "xb") as handle:
                handle.write(data)
        except FileExistsError:
            return Result.failure(f"File already exists: {path}", NAME_COLLISION)
        except OSError as e:
            return Result.failure(str(e), STORAGE_ERROR)
        return Result.success(str(path))


def canonical_subtype(mime_type: str) -> Optional[str]:
    """Map a MIME type to the short subtype used in allow-lists ("pdf", "docx", ...)."""
    normalized = (mime_type or "").split(";", 1)[0].strip().lower()
    if not _MIME_SHAPE.match(normalized):
        return None
    return MIME_SUBTYPE_ALIASES.get(normalized, normalized.split("/", 1)[1])


def is_audio(mime_type: str) -> bool:
    return (mime_type or "").strip().lower().startswith("audio/")


def decode_payload(data: Union[bytes, str]) -> Optional[bytes]:
    """Accept raw bytes or a base64 string (the gateway sends media as base64, possibly wrapped)."""
    if isinstance(data, bytes):
        return data
    try:
        return base64.b64decode("".join(data.split()), validate=True)
    except (binascii.Error, ValueError):
        return None


def build_file_name(now: datetime, message_id: str, subtype: str) -> str:
    suffix = _UNSAFE_NAME_CHARS.sub("", message_id or "")[:40] or "msg"
    return f"{now.strftime('%Y%m%d_%H%M%S')}_{suffix}.{subtype}"


class MediaIntake:
    def __init__(self, storage: StorageSink, clock: Clock):
        self.storage = storage
        self.clock = clock

    def intake(self, attachment: Attachment, allowed_types: Iterable[str], message_id: str) -> IntakeResult:
        if is_audio(attachment.mime_type):
            return IntakeResult(IntakeStatus.AUDIO, subtype=canonical_subtype(attachment.mime_type))

        subtype = canonical_subtype(attachment.mime_type)
        if subtype is None:
            return IntakeResult(IntakeStatus.UNPARSEABLE, error=f"Bad MIME type: {attachment.mime_type!r}")

        if subtype not in set(allowed_types):
            return IntakeResult(IntakeStatus.UNSUPPORTED, subtype=subtype)

        data = decode_payload(attachment.data)
        if not data:
            return IntakeResult(IntakeStatus.UNPARSEABLE, subtype=subtype, error="Empty or undecodable payload")

        name = build_file_name(self.clock.now(), message_id, subtype)
        stored = self.storage.store_file(name, data)
        if not stored.ok:
            logger.error(
                "Failed to store upload",
                extra={"context": {"name": name, **stored.as_context()}},
            )
            return IntakeResult(IntakeStatus.STORAGE_FAILURE, subtype=subtype, error=stored.error)

        logger.info("Upload stored", extra={"context": {"path": stored.value, "bytes": len(data)}})
        return IntakeResult(IntakeStatus.ACCEPTED, subtype=subtype, path=stored.value)
