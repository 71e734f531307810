import os
import re
import tempfile
from pathlib import Path

from submission_docs.logging.logger import Log
from submission_docs.storage.exceptions import NotFoundError, StorageReadError, WriteError

_VALID_KEY = re.compile(r"[A-Za-z0-9_-]+")


def document_file_path(root: Path, key: str) -> Path:
    """Build path to a generated document: {root}/{key}.pdf"""
    return root / f"{key}.pdf"


class GeneratedDocumentStore:
    """Persists stamped documents on disk, one file per key.

    Writing an existing key replaces the previous document; there is no
    versioning.
    """

    GENERATED_ROOT = Path("generated")

    def __init__(self, root: Path | None = None) -> None:
        self._root = root if root is not None else self.GENERATED_ROOT

    def put(self, key: str, data: bytes) -> None:
        """Write ``data`` under ``key``, replacing any earlier document.

        The file is written next to its target and renamed into place, so a
        concurrent :meth:`get` sees either the old or the new bytes.

        Raises:
            WriteError: if the document cannot be written.
        """
        path = self._resolve_path(key)
        tmp_name: str | None = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{key}.", suffix=".tmp")
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
            os.replace(tmp_name, path)
            tmp_name = None
        except OSError as exc:
            raise WriteError(f"Failed to write document '{key}': {exc}") from exc
        finally:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
        Log.info(f"Stored {len(data)} bytes at {path}")

    def get(self, key: str) -> bytes:
        """Read the document stored under ``key``.

        Raises:
            NotFoundError: if nothing was stored under ``key``.
            StorageReadError: if the file exists but cannot be read.
        """
        path = self._resolve_path(key)
        try:
            return path.read_bytes()
        except FileNotFoundError as exc:
            raise NotFoundError(f"Document '{key}' not found") from exc
        except OSError as exc:
            raise StorageReadError(f"Failed to read document '{key}': {exc}") from exc

    def exists(self, key: str) -> bool:
        return self._resolve_path(key).is_file()

    def _resolve_path(self, key: str) -> Path:
        if not _VALID_KEY.fullmatch(key):
            raise ValueError(f"Invalid document key '{key}'")
        return document_file_path(self._root, key)
