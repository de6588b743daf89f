"""
Entry points for command line tools and language bindings.

``parse_case`` is the only way bytes become a Case here, and it always
goes through decoding and validation. ``serialize_case`` is its inverse.
"""

import logging

from caseformat.case.core import TABLES, FORMAT_VERSION
from caseformat.errors import DecodeFailed
from caseformat.io import archive, document
from caseformat.io.tabular import decode_table
from caseformat.validation.core import Validator

logger = logging.getLogger(__name__)


def parse_case(data, is_archive=True, settings=None):
    """
    Parse and validate a case.

    ### Inputs:
    - data (bytes): Archive bytes, or a UTF-8 JSON document when
      ``is_archive`` is False.
    - is_archive (bool)
    - settings (dict): Validation settings, see validation.core.DEFAULT_SETTINGS.

    ### Outputs:
    - case (Case): Valid, with its warnings in ``case.report``.

    Raises ArchiveCorrupt, DecodeFailed, ValidationFailed or DomainError.
    """
    if is_archive:
        return archive.unpack_case(data, settings=settings)
    if isinstance(data, bytes):
        data = data.decode("utf-8")
    return document.loads(data, settings=settings)


def serialize_case(case, as_archive=True):
    """Archive bytes of a case, or its JSON document as UTF-8 bytes."""
    if as_archive:
        return archive.pack_case(case)
    return document.dumps(case).encode("utf-8")


def validate(case, settings=None):
    """ValidationReport of an in-memory case."""
    return Validator(settings=settings).validate(case)


def read_tables(tables, base_mva=100.0, version=FORMAT_VERSION, created_at=None, name="", settings=None):
    """
    Parse and validate a case held as tabular text in memory.

    ### Inputs:
    - tables (dict): Table name ('bus', 'gen', 'branch', 'gencost', 'dcline') to
      tabular text. A missing table is read as empty.

    Cell errors of all tables are collected before DecodeFailed is raised.
    """
    rows, errors = {}, []
    for table in TABLES:
        text = tables.get(table)
        if text is None:
            rows[table] = []
            continue
        rows[table], table_errors = decode_table(table, text)
        errors.extend(table_errors)

    if errors:
        raise DecodeFailed(errors)

    return Validator(settings=settings).build_case(
        rows, base_mva=base_mva, version=version, created_at=created_at, name=name,
    )
