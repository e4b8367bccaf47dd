from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")

# error codes used across the I/O seams
TRANSPORT_ERROR = "transport_error"
STORAGE_ERROR = "storage_error"
NAME_COLLISION = "name_collision"
BAD_PAYLOAD = "bad_payload"


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of a call to an external collaborator (gateway, disk, alert bot)."""

    ok: bool
    value: Optional[T] = None
    error: Optional[str] = None
    error_code: Optional[str] = None

    @staticmethod
    def success(value: Optional[T] = None) -> "Result[T]":
        return Result(ok=True, value=value)

    @staticmethod
    def failure(error: str, code: str = "unknown") -> "Result[T]":
        return Result(ok=False, error=error, error_code=code)

    def as_context(self) -> dict[str, Any]:
        if self.ok:
            return {"ok": True}
        return {"ok": False, "error": self.error, "error_code": self.error_code}
