import re

from submission_docs.documents.models import EntityRecord

NO_ID_KEY = "no-id"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_]")


def derive_key(tax_id: str | None) -> str:
    """Map a tax identifier to its storage key.

    Every character outside ``[A-Za-z0-9_]`` becomes ``_``; a missing or empty
    identifier maps to ``no-id``. Identifiers differing only in replaced
    characters (``AB-12`` and ``AB_12``) share a key.
    """
    if not tax_id:
        return NO_ID_KEY
    return _UNSAFE_CHARS.sub("_", tax_id)


def document_key(record: EntityRecord) -> str:
    return derive_key(record.tax_id)
