"""ReportStore — replace-and-rotate persistence for report files."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

from healthwatch.core.exceptions import WriteError


class ReportStore:
    """Persists report text at one path.

    Writes never append: each ``replace`` swaps in the whole file
    atomically, and ``rotate`` shifts earlier contents to ``path.1`` ..
    ``path.N``.
    """

    def __init__(self, path: str | Path, sink_name: str = "file") -> None:
        self._path = Path(path)
        self._sink_name = sink_name

    @property
    def path(self) -> Path:
        return self._path

    def read(self) -> str | None:
        """Current contents, or None if nothing has been written."""
        try:
            return self._path.read_text()
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise WriteError(self._sink_name, f"cannot read {self._path}: {exc}") from exc

    def rotate(self, backups: int) -> None:
        """Shift the current file into the numbered backups, dropping the oldest."""
        if not self._path.exists():
            return
        try:
            if backups <= 0:
                self._path.unlink()
                return
            for n in range(backups - 1, 0, -1):
                older = self._backup(n)
                if older.exists():
                    os.replace(older, self._backup(n + 1))
            os.replace(self._path, self._backup(1))
        except OSError as exc:
            raise WriteError(self._sink_name, f"cannot rotate {self._path}: {exc}") from exc

    def replace(self, content: str) -> None:
        """Atomically replace the file with *content*."""
        tmp_name: str | None = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp"
            )
            os.fchmod(fd, 0o644)
            with os.fdopen(fd, "w") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self._path)
            tmp_name = None
        except OSError as exc:
            raise WriteError(self._sink_name, f"cannot write {self._path}: {exc}") from exc
        finally:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)

    def _backup(self, n: int) -> Path:
        return self._path.with_name(f"{self._path.name}.{n}")
