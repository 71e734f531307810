from submission_docs.archive.cancellation import CancellationToken
from submission_docs.archive.streamer import BinarySink
from submission_docs.database.models import NEWEST_FIRST, SortSpec
from submission_docs.database.repositories.submission_repository import SubmissionRepository
from submission_docs.documents.models import ComposedDocument
from submission_docs.logging.logger import Log
from submission_docs.pdf.template_overlay import TemplateOverlay
from submission_docs.pipeline.batch import BatchPipeline
from submission_docs.pipeline.models import BatchSummary
from submission_docs.service.models import AuthorizedCaller
from submission_docs.storage.document_store import GeneratedDocumentStore
from submission_docs.storage.keys import document_key


class SubmissionReportService:
    """Entry points for bulk export and single-document generation/download."""

    def __init__(
        self,
        repo: SubmissionRepository,
        pipeline: BatchPipeline,
        overlay: TemplateOverlay,
        store: GeneratedDocumentStore,
    ) -> None:
        self._repo = repo
        self._pipeline = pipeline
        self._overlay = overlay
        self._store = store

    def export_all(
        self,
        caller: AuthorizedCaller,
        sink: BinarySink,
        sort: SortSpec = NEWEST_FIRST,
        cancel_token: CancellationToken | None = None,
    ) -> BatchSummary:
        """Stream every submission's PDF into ``sink`` as one ZIP archive.

        Raises:
            EmptyBatchError: if there are no submissions; nothing is written.
            EntryError, FinalizeError: if the sink fails mid-stream.
        """
        records = self._repo.list_all(sort)
        Log.info(f"Admin {caller.admin_id} exporting {len(records)} submissions")
        return self._pipeline.run_bulk(records, sink, cancel_token=cancel_token)

    def generate(self, caller: AuthorizedCaller, entity_id: str) -> str:
        """Stamp the template for one submission and store it; return its key.

        Raises:
            RecordMissingError: if the submission does not exist.
            TemplateError: if the template is unusable.
            WriteError: if the document cannot be stored.
        """
        record = self._repo.get_by_id(entity_id)
        document = self._overlay.stamp(record)
        key = document_key(record)
        self._store.put(key, document.data)
        Log.info(f"Admin {caller.admin_id} generated document {key} for submission {entity_id}")
        return key

    def download(self, caller: AuthorizedCaller, entity_id: str) -> ComposedDocument:
        """Return the previously generated document for one submission.

        Raises:
            RecordMissingError: if the submission does not exist.
            NotFoundError: if no document was generated for it yet.
        """
        record = self._repo.get_by_id(entity_id)
        key = document_key(record)
        data = self._store.get(key)
        Log.info(f"Admin {caller.admin_id} downloaded document {key}")
        return ComposedDocument(data=data, filename=f"{key}.pdf")
