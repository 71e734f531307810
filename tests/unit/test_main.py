import io
import signal
import sys
import zipfile
from collections.abc import Generator
from pathlib import Path
from unittest.mock import MagicMock, patch

import psycopg
import pytest
from psycopg_pool import PoolTimeout

from submission_docs.documents.exceptions import RecordMissingError
from submission_docs.documents.models import EntityRecord
from submission_docs.logging.logger import Log
from submission_docs.main import EXIT_FAILED, EXIT_OK, build_parser, main


@pytest.fixture(autouse=True)
def quiet_logging() -> Generator[MagicMock, None, None]:
    with patch.object(Log, "configure") as mock_configure:
        yield mock_configure


@pytest.fixture()
def mock_pool() -> Generator[tuple[MagicMock, MagicMock], None, None]:
    with (
        patch("submission_docs.main.init_pool") as mock_init,
        patch("submission_docs.main.close_pool") as mock_close,
    ):
        yield mock_init, mock_close


@pytest.fixture()
def mock_repo() -> Generator[MagicMock, None, None]:
    with patch("submission_docs.main.SubmissionRepository") as mock_cls:
        yield mock_cls.return_value


class TestParser:
    def test_export_all_defaults(self) -> None:
        args = build_parser().parse_args(["export-all"])
        assert args.output == "-"
        assert args.sort == "created_at"
        assert args.ascending is False

    def test_rejects_unknown_sort_field(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            build_parser().parse_args(["export-all", "--sort", "gst_number"])
        assert exc_info.value.code == 2

    def test_download_requires_output(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["download", "abc"])

    def test_command_is_required(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestExportAll:
    def test_writes_archive_to_file(
        self,
        tmp_path: Path,
        mock_pool: tuple[MagicMock, MagicMock],
        mock_repo: MagicMock,
        full_record: EntityRecord,
        record_without_contact: EntityRecord,
    ) -> None:
        mock_repo.list_all.return_value = [full_record, record_without_contact]
        output = tmp_path / "export.zip"

        code = main(["export-all", "--output", str(output), "--sort", "full_name", "--ascending"])

        assert code == EXIT_OK
        with zipfile.ZipFile(io.BytesIO(output.read_bytes())) as archive:
            assert archive.namelist() == ["Asha Rao-64f0c1a2b3.pdf", "user-64f0c1a2b5.pdf"]
        sort = mock_repo.list_all.call_args.args[0]
        assert sort.field == "full_name"
        assert sort.descending is False
        mock_init, mock_close = mock_pool
        mock_init.assert_called_once()
        mock_close.assert_called_once()

    def test_empty_table_fails(
        self,
        tmp_path: Path,
        mock_pool: tuple[MagicMock, MagicMock],
        mock_repo: MagicMock,
    ) -> None:
        mock_repo.list_all.return_value = []
        output = tmp_path / "export.zip"

        assert main(["export-all", "--output", str(output)]) == EXIT_FAILED
        assert output.read_bytes() == b""

    def test_logs_go_to_stderr_when_streaming_to_stdout(
        self,
        quiet_logging: MagicMock,
        mock_pool: tuple[MagicMock, MagicMock],
        mock_repo: MagicMock,
        full_record: EntityRecord,
    ) -> None:
        mock_repo.list_all.return_value = [full_record]
        fake_stdout = MagicMock()
        fake_stdout.buffer = io.BytesIO()

        with patch("submission_docs.main.sys.stdout", fake_stdout):
            code = main(["export-all"])

        assert code == EXIT_OK
        assert quiet_logging.call_args.args[1] is sys.stderr
        with zipfile.ZipFile(io.BytesIO(fake_stdout.buffer.getvalue())) as archive:
            assert archive.namelist() == ["Asha Rao-64f0c1a2b3.pdf"]

    def test_restores_previous_sigterm_handler(
        self,
        tmp_path: Path,
        mock_pool: tuple[MagicMock, MagicMock],
        mock_repo: MagicMock,
        full_record: EntityRecord,
    ) -> None:
        mock_repo.list_all.return_value = [full_record]
        before = signal.getsignal(signal.SIGTERM)

        assert main(["export-all", "--output", str(tmp_path / "export.zip")]) == EXIT_OK

        assert signal.getsignal(signal.SIGTERM) is before

    def test_sigterm_cancels_export(
        self,
        tmp_path: Path,
        mock_pool: tuple[MagicMock, MagicMock],
        mock_repo: MagicMock,
        full_record: EntityRecord,
    ) -> None:
        before = signal.getsignal(signal.SIGTERM)

        def _list_all_then_terminate(_sort: object) -> list[EntityRecord]:
            handler = signal.getsignal(signal.SIGTERM)
            assert callable(handler)
            handler(signal.SIGTERM, None)
            return [full_record]

        mock_repo.list_all.side_effect = _list_all_then_terminate

        code = main(["export-all", "--output", str(tmp_path / "export.zip")])

        assert code == EXIT_FAILED
        assert signal.getsignal(signal.SIGTERM) is before


class TestFailureExitCodes:
    def test_unreachable_database_fails(self, mock_pool: tuple[MagicMock, MagicMock]) -> None:
        mock_init, mock_close = mock_pool
        mock_init.side_effect = psycopg.OperationalError("connection refused")

        assert main(["generate", "64f0c1a2b3"]) == EXIT_FAILED
        mock_close.assert_not_called()

    def test_pool_timeout_fails(
        self, tmp_path: Path, mock_pool: tuple[MagicMock, MagicMock], mock_repo: MagicMock
    ) -> None:
        mock_repo.list_all.side_effect = PoolTimeout("couldn't get a connection after 30.00 sec")

        assert main(["export-all", "--output", str(tmp_path / "export.zip")]) == EXIT_FAILED
        _init, mock_close = mock_pool
        mock_close.assert_called_once()

    def test_unknown_display_timezone_fails(
        self, monkeypatch: pytest.MonkeyPatch, mock_pool: tuple[MagicMock, MagicMock]
    ) -> None:
        monkeypatch.setenv("DISPLAY_TIMEZONE", "Mars/Olympus_Mons")

        assert main(["generate", "64f0c1a2b3"]) == EXIT_FAILED
        mock_init, _close = mock_pool
        mock_init.assert_not_called()



class TestGenerateAndDownload:
    @pytest.fixture(autouse=True)
    def paths(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path, template_path: Path
    ) -> None:
        monkeypatch.setenv("TEMPLATE_PATH", str(template_path))
        monkeypatch.setenv("GENERATED_ROOT", str(tmp_path / "generated"))

    def test_generate_prints_key(
        self,
        mock_pool: tuple[MagicMock, MagicMock],
        mock_repo: MagicMock,
        full_record: EntityRecord,
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        mock_repo.get_by_id.return_value = full_record

        code = main(["generate", full_record.id])

        assert code == EXIT_OK
        assert capsys.readouterr().out.strip() == "29ABCDE1234F1Z5"
        assert (tmp_path / "generated" / "29ABCDE1234F1Z5.pdf").is_file()

    def test_generate_missing_record_fails(
        self, mock_pool: tuple[MagicMock, MagicMock], mock_repo: MagicMock
    ) -> None:
        mock_repo.get_by_id.side_effect = RecordMissingError("Submission x not found")

        assert main(["generate", "x"]) == EXIT_FAILED

    def test_download_writes_generated_document(
        self,
        mock_pool: tuple[MagicMock, MagicMock],
        mock_repo: MagicMock,
        full_record: EntityRecord,
        tmp_path: Path,
    ) -> None:
        mock_repo.get_by_id.return_value = full_record
        output = tmp_path / "out.pdf"

        assert main(["generate", full_record.id]) == EXIT_OK
        assert main(["download", full_record.id, "--output", str(output)]) == EXIT_OK

        assert output.read_bytes() == (tmp_path / "generated" / "29ABCDE1234F1Z5.pdf").read_bytes()

    def test_download_before_generate_fails(
        self,
        mock_pool: tuple[MagicMock, MagicMock],
        mock_repo: MagicMock,
        full_record: EntityRecord,
        tmp_path: Path,
    ) -> None:
        mock_repo.get_by_id.return_value = full_record

        assert main(["download", full_record.id, "--output", str(tmp_path / "o.pdf")]) == EXIT_FAILED
