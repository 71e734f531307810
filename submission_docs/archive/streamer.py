"""Forward-only ZIP writer that streams entries straight into a byte sink.

The sink is wrapped so that :mod:`zipfile` can ask for the current position
but never seek. ``zipfile`` then writes each entry as local header, deflated
data and a trailing data descriptor, and the central directory only on
:meth:`ArchiveStreamer.finalize`. At no point is more than one chunk of one
entry held in memory.
"""

from __future__ import annotations

import zipfile
from collections.abc import Iterable, Iterator
from enum import Enum
from types import TracebackType
from typing import Protocol

from submission_docs.archive.cancellation import CancellationToken
from submission_docs.archive.exceptions import (
    ArchiveCancelledError,
    EntryError,
    FinalizeError,
)
from submission_docs.logging.logger import Log

DEFAULT_CHUNK_SIZE = 64 * 1024


class BinarySink(Protocol):
    """Append-only byte destination, e.g. an HTTP response body or stdout."""

    def write(self, data: bytes, /) -> object: ...


class _State(Enum):
    OPEN = "open"
    FINALIZED = "finalized"
    ABORTED = "aborted"


class _SinkWriter:
    """Position-tracking, seek-less view of a sink for :class:`zipfile.ZipFile`.

    After the first failed write, or once :meth:`discard` is called, all
    further output is dropped instead of reaching the sink.
    """

    def __init__(self, sink: BinarySink) -> None:
        self._sink = sink
        self._position = 0
        self._discarding = False

    @property
    def discarding(self) -> bool:
        return self._discarding

    def discard(self) -> None:
        self._discarding = True

    def write(self, data: bytes) -> int:
        size = len(data)
        if not self._discarding:
            try:
                self._sink.write(data)
            except BaseException:
                self._discarding = True
                raise
        self._position += size
        return size

    def tell(self) -> int:
        return self._position

    def flush(self) -> None:
        if self._discarding:
            return
        flush = getattr(self._sink, "flush", None)
        if flush is None:
            return
        try:
            flush()
        except BaseException:
            self._discarding = True
            raise


def _iter_source(source: bytes | Iterable[bytes], chunk_size: int) -> Iterator[bytes]:
    if isinstance(source, (bytes, bytearray, memoryview)):
        view = memoryview(source)
        for start in range(0, len(view), chunk_size):
            yield view[start : start + chunk_size].tobytes()
        return
    yield from source


class ArchiveStreamer:
    """Writes a ZIP archive into ``sink`` one entry at a time.

    Usage::

        with ArchiveStreamer(response) as archive:
            archive.add_entry("a.pdf", pdf_bytes)
            archive.add_entry("b.pdf", document.iter_chunks(65536))

    Leaving the ``with`` block normally finalizes the archive; leaving it with
    an exception aborts it without writing the trailer.
    """

    def __init__(
        self,
        sink: BinarySink,
        *,
        compress_level: int = 9,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        cancel_token: CancellationToken | None = None,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self._writer = _SinkWriter(sink)
        self._zip = zipfile.ZipFile(
            self._writer,  # type: ignore[arg-type]
            mode="w",
            compression=zipfile.ZIP_DEFLATED,
            compresslevel=compress_level,
        )
        self._chunk_size = chunk_size
        self._cancel_token = cancel_token
        self._state = _State.OPEN
        self._entries: list[str] = []

    @classmethod
    def open(
        cls,
        sink: BinarySink,
        *,
        compress_level: int = 9,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        cancel_token: CancellationToken | None = None,
    ) -> ArchiveStreamer:
        return cls(
            sink,
            compress_level=compress_level,
            chunk_size=chunk_size,
            cancel_token=cancel_token,
        )

    @property
    def entries(self) -> list[str]:
        """Names written so far, in archive order."""
        return list(self._entries)

    @property
    def bytes_written(self) -> int:
        return self._writer.tell()

    @property
    def finalized(self) -> bool:
        return self._state is _State.FINALIZED

    @property
    def aborted(self) -> bool:
        return self._state is _State.ABORTED

    def add_entry(self, name: str, source: bytes | Iterable[bytes]) -> None:
        """Compress ``source`` into the archive under ``name``.

        ``source`` is either a complete byte string or an iterable of chunks
        that is pulled only as fast as the sink accepts writes.

        Raises:
            EntryError: if the archive is closed, the sink fails, or the
                source raises. The archive is aborted in the last two cases.
            ArchiveCancelledError: if the cancel token is set.
        """
        if self._state is not _State.OPEN:
            raise EntryError(f"Cannot add '{name}': archive is {self._state.value}")
        try:
            self._check_cancelled(name)
            with self._zip.open(name, mode="w") as entry:
                try:
                    for chunk in _iter_source(source, self._chunk_size):
                        self._check_cancelled(name)
                        entry.write(chunk)
                except BaseException:
                    # closing the entry handle must not reach the sink either
                    self._writer.discard()
                    raise
        except EntryError:
            self.abort()
            raise
        except Exception as exc:
            self.abort()
            raise EntryError(f"Failed to write archive entry '{name}': {exc}") from exc
        self._entries.append(name)
        Log.debug(f"Archived entry {name} ({self._writer.tell()} bytes streamed)")

    def finalize(self) -> None:
        """Write the central directory and end record, then flush the sink.

        Must be called exactly once; a second call raises FinalizeError.

        Raises:
            FinalizeError: if already finalized or aborted, if cancelled, or if
                the sink fails while the trailer is written.
        """
        if self._state is _State.FINALIZED:
            raise FinalizeError("Archive already finalized")
        if self._state is _State.ABORTED:
            raise FinalizeError("Archive was aborted")
        if self._cancel_token is not None and self._cancel_token.is_cancelled():
            self.abort()
            raise FinalizeError("Archive cancelled before finalize")
        try:
            self._zip.close()
            self._writer.flush()
        except Exception as exc:
            self._state = _State.ABORTED
            self._writer.discard()
            raise FinalizeError(f"Failed to finalize archive: {exc}") from exc
        self._state = _State.FINALIZED
        Log.info(
            f"Archive finalized: {len(self._entries)} entries, "
            f"{self._writer.tell()} bytes"
        )

    def abort(self) -> None:
        """Stop writing to the sink and release the archive.

        The trailer is not written, so the sink holds a truncated archive.
        Calling abort on a finalized or already aborted archive does nothing.
        """
        if self._state is not _State.OPEN:
            return
        self._state = _State.ABORTED
        self._writer.discard()
        # The consumer is gone; the trailer zipfile writes on close is dropped.
        self._zip.close()
        Log.warning(f"Archive aborted after {len(self._entries)} entries")

    def __enter__(self) -> ArchiveStreamer:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if exc_type is not None:
            self.abort()
        elif self._state is _State.OPEN:
            self.finalize()

    def _check_cancelled(self, name: str) -> None:
        if self._cancel_token is not None and self._cancel_token.is_cancelled():
            self._writer.discard()
            raise ArchiveCancelledError(f"Archive cancelled while writing '{name}'")
