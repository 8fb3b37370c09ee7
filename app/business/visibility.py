# ==== VISIBILITY SCOPE RESOLVER ==== #

"""
Visibility modes and the document types they include.

Every ledger, invoice and payment query is filtered by the document-type set
of the caller's visibility mode.
"""

from enum import Enum
from typing import Tuple, Union


class DocType(str, Enum):
    """Document class tag carried by ledger entries, invoices and payments."""

    T1 = "T1"
    T2 = "T2"


class VisibilityMode(str, Enum):
    """Caller-selected scope: standard documents only, or standard plus secondary."""

    STANDARD = "standard"
    EXTENDED = "extended"


_DOC_TYPES = {
    VisibilityMode.STANDARD: (DocType.T1,),
    VisibilityMode.EXTENDED: (DocType.T1, DocType.T2),
}


def get_doc_types(mode: Union[VisibilityMode, str]) -> Tuple[DocType, ...]:
    """
    Resolve a visibility mode to its document types.

    Raises:
        ValueError: If the mode is not a known visibility mode
    """
    return _DOC_TYPES[VisibilityMode(mode)]


def doc_type_values(mode: Union[VisibilityMode, str]) -> list[str]:
    """Document-type tags for use in ``IN`` filters."""
    return [doc_type.value for doc_type in get_doc_types(mode)]
