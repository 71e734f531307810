import argparse
import signal
import sys
from collections.abc import Callable, Sequence
from datetime import tzinfo
from pathlib import Path
from typing import BinaryIO
from zoneinfo import ZoneInfo

import psycopg
from pydantic import ValidationError

from submission_docs.archive.cancellation import CancellationToken
from submission_docs.archive.exceptions import ArchiveError
from submission_docs.config.settings import Settings
from submission_docs.database.connection import close_pool, init_pool
from submission_docs.database.models import SortSpec
from submission_docs.database.repositories.submission_repository import SubmissionRepository
from submission_docs.documents.exceptions import DocumentError
from submission_docs.logging.logger import Log
from submission_docs.pdf.composer import ReportLabComposer
from submission_docs.pdf.template_overlay import TemplateOverlay
from submission_docs.pipeline.batch import BatchPipeline
from submission_docs.pipeline.exceptions import PipelineError
from submission_docs.service.models import AuthorizedCaller
from submission_docs.service.report_service import SubmissionReportService
from submission_docs.storage.document_store import GeneratedDocumentStore
from submission_docs.storage.exceptions import StorageError

EXIT_OK = 0
EXIT_FAILED = 1

_HANDLED_ERRORS = (
    ArchiveError,
    DocumentError,
    PipelineError,
    StorageError,
    # includes psycopg_pool.PoolTimeout
    psycopg.Error,
    OSError,
)


def display_timezone(settings: Settings) -> tzinfo | None:
    """Configured zone for printed timestamps; None means the host's local zone."""
    return ZoneInfo(settings.display_timezone) if settings.display_timezone else None


def build_service(settings: Settings) -> SubmissionReportService:
    """Build a SubmissionReportService with all required collaborators."""
    composer = ReportLabComposer(tz=display_timezone(settings))
    pipeline = BatchPipeline(
        composer,
        compress_level=settings.archive_compress_level,
        chunk_size=settings.archive_chunk_size,
        workers=settings.compose_workers,
    )
    return SubmissionReportService(
        repo=SubmissionRepository(),
        pipeline=pipeline,
        overlay=TemplateOverlay(settings.template_path),
        store=GeneratedDocumentStore(settings.generated_root),
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="submission-docs",
        description="Generate, archive and download submission PDFs.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    export = sub.add_parser("export-all", help="Stream every submission into one ZIP archive")
    export.add_argument(
        "--output",
        default="-",
        help="Archive path, or '-' for stdout (default)",
    )
    export.add_argument(
        "--sort",
        default="created_at",
        choices=["created_at", "full_name", "firm_name"],
    )
    export.add_argument("--ascending", action="store_true")

    generate = sub.add_parser("generate", help="Stamp the template for one submission")
    generate.add_argument("entity_id")

    download = sub.add_parser("download", help="Write a previously generated document")
    download.add_argument("entity_id")
    download.add_argument("--output", required=True, type=Path)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point: parse args -> load settings -> initialize pool -> run one command."""
    args = build_parser().parse_args(argv)
    try:
        settings = Settings()
    except ValidationError as exc:
        Log.configure("INFO", sys.stderr)
        Log.error(f"Invalid configuration: {exc}")
        return EXIT_FAILED
    streaming_to_stdout = args.command == "export-all" and args.output == "-"
    Log.configure(settings.log_level, sys.stderr if streaming_to_stdout else sys.stdout)

    try:
        init_pool(settings)
        try:
            service = build_service(settings)
            caller = AuthorizedCaller(admin_id=settings.operator_id)
            _COMMANDS[args.command](args, service, caller)
        finally:
            close_pool()
    except _HANDLED_ERRORS as exc:
        Log.error(f"{type(exc).__name__}: {exc}")
        return EXIT_FAILED
    return EXIT_OK


def _export_all(
    args: argparse.Namespace,
    service: SubmissionReportService,
    caller: AuthorizedCaller,
) -> None:
    token = CancellationToken()
    previous = signal.signal(signal.SIGTERM, lambda _signum, _frame: token.cancel())
    try:
        sort = SortSpec(field=args.sort, descending=not args.ascending)
        if args.output == "-":
            _export_to(sys.stdout.buffer, service, caller, sort, token)
            return
        with open(args.output, "wb") as fh:
            _export_to(fh, service, caller, sort, token)
    finally:
        if previous is not None:
            signal.signal(signal.SIGTERM, previous)


def _export_to(
    sink: BinaryIO,
    service: SubmissionReportService,
    caller: AuthorizedCaller,
    sort: SortSpec,
    token: CancellationToken,
) -> None:
    summary = service.export_all(caller, sink, sort=sort, cancel_token=token)
    if summary.skipped:
        Log.warning(f"{summary.skipped_count} submissions skipped: {summary.skipped_ids}")


def _generate(
    args: argparse.Namespace,
    service: SubmissionReportService,
    caller: AuthorizedCaller,
) -> None:
    key = service.generate(caller, args.entity_id)
    print(key)


def _download(
    args: argparse.Namespace,
    service: SubmissionReportService,
    caller: AuthorizedCaller,
) -> None:
    document = service.download(caller, args.entity_id)
    args.output.write_bytes(document.data)
    Log.info(f"Wrote {len(document)} bytes to {args.output} ({document.filename})")


_COMMANDS: dict[str, Callable[[argparse.Namespace, SubmissionReportService, AuthorizedCaller], None]] = {
    "export-all": _export_all,
    "generate": _generate,
    "download": _download,
}


if __name__ == "__main__":
    sys.exit(main())
