from typing import Any

from psycopg import sql
from psycopg.rows import dict_row

from submission_docs.database.connection import get_connection
from submission_docs.database.models import NEWEST_FIRST, SortSpec
from submission_docs.documents.exceptions import RecordMissingError
from submission_docs.documents.models import EntityRecord

_COLUMNS = sql.SQL(
    "id, full_name, firm_name, gst_number, sales_rep_number, "
    "contact_number, checklist, verified, created_at"
)


def _row_to_record(row: dict[str, Any]) -> EntityRecord:
    checklist = row.get("checklist") or {}
    return EntityRecord(
        id=str(row["id"]),
        display_name=row["full_name"],
        organization_name=row["firm_name"],
        tax_id=row["gst_number"],
        reference_number=row["sales_rep_number"],
        contact_number=row["contact_number"],
        checklist={str(k): bool(v) for k, v in checklist.items()},
        submitted_at=row["created_at"],
        verified=bool(row["verified"]),
    )


class SubmissionRepository:
    """Read-only access to the submissions table."""

    def list_all(self, sort: SortSpec = NEWEST_FIRST) -> list[EntityRecord]:
        """Return every submission ordered by ``sort``, ties broken by id."""
        direction = sql.SQL("DESC" if sort.descending else "ASC")
        query = sql.SQL(
            "SELECT {columns} FROM submissions ORDER BY {field} {direction}, id {direction}"
        ).format(
            columns=_COLUMNS,
            field=sql.Identifier(sort.field),
            direction=direction,
        )
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(query)
                rows = cur.fetchall()

        return [_row_to_record(row) for row in rows]

    def get_by_id(self, entity_id: str) -> EntityRecord:
        """Find a submission by ID.

        Raises:
            RecordMissingError: if no submission with this ID exists.
        """
        query = sql.SQL("SELECT {columns} FROM submissions WHERE id = %s").format(
            columns=_COLUMNS
        )
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(query, (entity_id,))
                row = cur.fetchone()

        if row is None:
            raise RecordMissingError(f"Submission {entity_id} not found")

        return _row_to_record(row)
