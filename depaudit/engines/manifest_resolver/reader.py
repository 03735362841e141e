"""File-read capability shared by every resolver."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from depaudit.exceptions import FileReadError


@runtime_checkable
class FileReader(Protocol):
    """Return the raw bytes stored at *location*, or raise FileReadError.

    Implementations shared between concurrent resolves must be safe for
    concurrent reads.
    """

    def read(self, location: str) -> bytes: ...


class LocalFileReader:
    """Reads manifests from the local file system."""

    def read(self, location: str) -> bytes:
        try:
            return Path(location).read_bytes()
        except OSError as exc:
            raise FileReadError(f"cannot read {location}: {exc}") from exc
