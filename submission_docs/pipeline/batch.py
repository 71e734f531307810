from collections import deque
from collections.abc import Generator, Iterable
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import closing
from itertools import chain
from typing import Protocol

from submission_docs.archive.cancellation import CancellationToken
from submission_docs.archive.streamer import DEFAULT_CHUNK_SIZE, ArchiveStreamer, BinarySink
from submission_docs.documents.exceptions import RenderError
from submission_docs.documents.models import ComposedDocument, EntityRecord
from submission_docs.logging.logger import Log
from submission_docs.pdf.composer import archive_entry_name
from submission_docs.pipeline.exceptions import EmptyBatchError
from submission_docs.pipeline.models import BatchSummary

ComposeOutcome = ComposedDocument | RenderError


class DocumentComposer(Protocol):
    def compose(self, record: EntityRecord) -> ComposedDocument: ...


class BatchPipeline:
    """Composes one PDF per record and streams them into a single ZIP archive.

    Pipeline: records -> compose -> archive entry -> finalize.
    A record that fails to render is skipped and reported in the summary;
    a failing sink aborts the whole batch.
    """

    def __init__(
        self,
        composer: DocumentComposer,
        *,
        compress_level: int = 9,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        workers: int = 1,
    ) -> None:
        self._composer = composer
        self._compress_level = compress_level
        self._chunk_size = chunk_size
        self._workers = max(1, workers)

    def run_bulk(
        self,
        records: Iterable[EntityRecord],
        sink: BinarySink,
        cancel_token: CancellationToken | None = None,
    ) -> BatchSummary:
        """Archive every record into ``sink`` in input order.

        Raises:
            EmptyBatchError: if ``records`` is empty; nothing is written.
            EntryError, FinalizeError: if the sink fails; the batch is aborted.
        """
        iterator = iter(records)
        first = next(iterator, None)
        if first is None:
            raise EmptyBatchError("No records to archive")

        summary = BatchSummary()
        streamer = ArchiveStreamer(
            sink,
            compress_level=self._compress_level,
            chunk_size=self._chunk_size,
            cancel_token=cancel_token,
        )
        try:
            with closing(self._compose_in_order(chain([first], iterator))) as outcomes:
                for record, outcome in outcomes:
                    if isinstance(outcome, RenderError):
                        summary.record_skip(record.id, str(outcome))
                        Log.warning(f"Skipping record {record.id}: {outcome}")
                        continue
                    entry_name = archive_entry_name(record)
                    streamer.add_entry(entry_name, outcome.iter_chunks(self._chunk_size))
                    summary.record_success(entry_name)
            streamer.finalize()
        except Exception as exc:
            streamer.abort()
            Log.error(
                f"Bulk export aborted after {summary.succeeded} entries "
                f"({summary.skipped_count} skipped): {exc}"
            )
            raise

        Log.info(
            f"Bulk export complete: {summary.succeeded} archived, "
            f"{summary.skipped_count} skipped"
        )
        for skipped in summary.skipped:
            Log.info(f"Skipped record {skipped.entity_id}: {skipped.reason}")
        return summary

    def _compose(self, record: EntityRecord) -> ComposeOutcome:
        try:
            return self._composer.compose(record)
        except RenderError as exc:
            return exc

    def _compose_in_order(
        self, records: Iterable[EntityRecord]
    ) -> Generator[tuple[EntityRecord, ComposeOutcome], None, None]:
        """Yield (record, outcome) pairs in input order.

        With more than one worker, records are composed ahead on a thread pool.
        Futures wait in a deque in submission order, so results are released
        in input order; at most ``2 * workers`` documents are held at once.
        """
        if self._workers == 1:
            for record in records:
                yield record, self._compose(record)
            return

        window_size = self._workers * 2
        pending: deque[tuple[EntityRecord, Future[ComposeOutcome]]] = deque()
        with ThreadPoolExecutor(
            max_workers=self._workers, thread_name_prefix="compose"
        ) as pool:
            try:
                for record in records:
                    pending.append((record, pool.submit(self._compose, record)))
                    if len(pending) >= window_size:
                        head, future = pending.popleft()
                        yield head, future.result()
                while pending:
                    head, future = pending.popleft()
                    yield head, future.result()
            finally:
                for _, future in pending:
                    future.cancel()
