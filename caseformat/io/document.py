"""
Structured document export and import.

The document is a field-named mapping of the case, one list of records per
table. Absent optional values are omitted and enums are written as tokens.
Import sends every value through the tabular cell parsers, so a bad value
becomes a CellError located by table, row and field, then validates.
"""

from dataclasses import MISSING, fields
from datetime import datetime
import json
import logging
import math

from caseformat.case.core import TABLES, RECORD_CLASSES, FORMAT_VERSION, format_version
from caseformat.errors import CellError, DecodeFailed, DomainError
from caseformat.io.tabular import RawRow, parse_cell
from caseformat.utils.data_tools import convert_class_instance_to_dictionary, field_types
from caseformat.validation.core import Validator

logger = logging.getLogger(__name__)


def _json_number(value):
    # JSON has no literal for infinite bounds, they travel as strings
    if isinstance(value, float) and math.isinf(value):
        return "inf" if value > 0 else "-inf"
    if isinstance(value, list):
        return [_json_number(v) for v in value]
    return value


def to_document(case):
    """
    Export a case as a plain dict.

    ### Outputs:
    - document (dict): ``version``, ``name``, ``base_power``, ``created_at``
      and one list of field-named records per table.
    """
    document = {
        "version": format_version(case.version),
        "name": case.name,
        "base_power": case.base_mva,
        "created_at": case.created_at.isoformat() if case.created_at is not None else None,
    }
    for table in TABLES:
        document[table] = [
            {k: _json_number(v) for k, v in convert_class_instance_to_dictionary(r).items()}
            for r in case.table(table)
        ]
    return document


def _cell_text(value):
    """Text form of a document value, as it would appear in a tabular cell."""
    if value is None:
        return ""
    if isinstance(value, bool):
        # Reject booleans rather than reading them as 0 and 1
        return repr(value)
    if isinstance(value, (list, tuple)):
        return " ".join(_cell_text(v) for v in value)
    if isinstance(value, float):
        return repr(value)
    return str(value)


def _document_rows(table, records):
    types = field_types(RECORD_CLASSES[table])
    rows, errors = [], []
    for number, record in enumerate(records, start=1):
        if not isinstance(record, dict):
            errors.append(CellError(table, number, "", repr(record), "expected a field-named record"))
            continue

        values = {}
        failed = False
        for name, value in record.items():
            if name not in types:
                errors.append(CellError(table, number, name, repr(value), "unknown field"))
                failed = True
                continue
            hint, nullable = types[name]
            text = _cell_text(value)
            try:
                values[name] = parse_cell(hint, nullable, text)
            except ValueError as err:
                errors.append(CellError(table, number, name, text, str(err)))
                failed = True

        if not failed:
            rows.append(RawRow(number, values))
    return rows, errors


def from_document(document, settings=None):
    """
    Import a case from a dict produced by to_document (or written by hand).

    Fields missing from a record take the record defaults, the required
    ones (bus number, generator bus, branch ends, cost generator index)
    are reported by validation. Raises DecodeFailed on bad values and
    ValidationFailed on an invalid case.
    """
    if not isinstance(document, dict):
        raise DomainError("a case document must be a mapping")

    tables, errors = {}, []
    for table in TABLES:
        records = document.get(table, [])
        if not isinstance(records, list):
            errors.append(CellError(table, 0, "", repr(records), "expected a list of records"))
            records = []
        rows, table_errors = _document_rows(table, records)
        # A record missing a required field cannot be built
        for row in rows:
            for name in _required_fields(table):
                if name not in row.values:
                    table_errors.append(CellError(table, row.row, name, "", "missing value"))
        bad_rows = {e.row for e in table_errors}
        tables[table] = [row for row in rows if row.row not in bad_rows]
        errors.extend(sorted(table_errors, key=lambda e: e.row))

    if errors:
        raise DecodeFailed(errors)

    created_at = document.get("created_at")
    if created_at is not None:
        try:
            created_at = datetime.fromisoformat(created_at)
        except (TypeError, ValueError) as err:
            raise DomainError(f"created_at is not an ISO 8601 timestamp: {created_at!r}") from err

    case = Validator(settings=settings).build_case(
        tables,
        base_mva=document.get("base_power", 100.0),
        version=document.get("version", format_version(FORMAT_VERSION)),
        created_at=created_at,
        name=document.get("name") or "",
    )
    logger.info("> Read document %r ... ok.", case.name)
    return case


def _required_fields(table):
    """Fields of a record type that have no default."""
    return [
        f.name for f in fields(RECORD_CLASSES[table])
        if f.default is MISSING and f.default_factory is MISSING
    ]


def dumps(case, indent=2):
    """JSON text of a case."""
    return json.dumps(to_document(case), indent=indent)


def loads(text, settings=None):
    """Case from JSON text."""
    try:
        document = json.loads(text)
    except json.JSONDecodeError as err:
        raise DomainError(f"case document is not valid JSON: {err}") from err
    return from_document(document, settings=settings)
