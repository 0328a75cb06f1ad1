# src/task_arbor/artifacts/workspace.py

"""
Artifact store: a directory of text artifacts under a fixed root.

Paths handed in and out are POSIX-style and relative to the root. Anything that
would resolve outside the root is rejected, since paths come from model output.
"""

from __future__ import annotations

import contextlib
import logging
import os
import tempfile
from collections.abc import Iterable
from pathlib import Path, PurePosixPath

from ..core.errors import ArtifactNotFound

logger = logging.getLogger(__name__)


class ArtifactStore:
    def __init__(self, root: str | Path, *, reserved: Iterable[str] = ()) -> None:
        self._root = Path(root)
        self._reserved = {self.normalize(p) for p in reserved}

    @property
    def root(self) -> Path:
        return self._root

    def ensure_root(self) -> None:
        """Create the root directory if it does not exist yet."""
        if not self._root.is_dir():
            self._root.mkdir(parents=True, exist_ok=True)
            logger.info("Created artifact root %s", self._root)

    @staticmethod
    def normalize(path: str) -> str:
        """
        Normalize a model-supplied path: strip whitespace, quotes and leading "./",
        use forward slashes. Raises ValueError for empty, absolute or escaping paths.
        """
        raw = str(path or "").strip().strip("\"'`").replace("\\", "/")
        if not raw:
            raise ValueError("empty artifact path")
        p = PurePosixPath(raw)
        if p.is_absolute():
            raise ValueError(f"absolute artifact path not allowed: {raw!r}")
        parts = [part for part in p.parts if part not in ("", ".")]
        if not parts or any(part == ".." for part in parts):
            raise ValueError(f"artifact path escapes the root: {raw!r}")
        return "/".join(parts)

    def is_reserved(self, path: str) -> bool:
        try:
            return self.normalize(path) in self._reserved
        except ValueError:
            return False

    @staticmethod
    def is_hidden(path: str) -> bool:
        """Dot-files and anything under a dot-directory (temp files included)."""
        return any(part.startswith(".") for part in path.split("/"))

    def resolve(self, path: str) -> Path:
        return self._root.joinpath(*self.normalize(path).split("/"))

    def list_paths(self) -> list[str]:
        """All artifact files (recursively), sorted; directories, dot-files and reserved paths excluded."""
        if not self._root.is_dir():
            return []
        out: list[str] = []
        for p in self._root.rglob("*"):
            if not p.is_file():
                continue
            rel = p.relative_to(self._root).as_posix()
            if self.is_hidden(rel):
                continue
            if rel in self._reserved:
                continue
            out.append(rel)
        out.sort()
        return out

    def read_text(self, path: str) -> str:
        target = self.resolve(path)
        try:
            return target.read_text("utf-8")
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError) as e:
            raise ArtifactNotFound(self.normalize(path)) from e

    def write_text(self, path: str, content: str) -> Path:
        """
        Write an artifact in full, creating parent directories.

        Writes go to a temp file in the same directory and are moved into place
        with os.replace, so readers never observe a partially written file.
        """
        target = self.resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=target.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(content)
            os.replace(tmp_name, target)
        except BaseException:
            with contextlib.suppress(OSError):
                os.unlink(tmp_name)
            raise
        logger.debug("Artifact written path=%s chars=%d", target, len(content))
        return target

    def delete(self, path: str) -> None:
        target = self.resolve(path)
        try:
            target.unlink()
        except FileNotFoundError as e:
            raise ArtifactNotFound(self.normalize(path)) from e
        logger.debug("Artifact deleted path=%s", target)
