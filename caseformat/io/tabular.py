"""
Tabular text codec.

Each table is comma-separated text: a header row naming the fields of the
record type, then one line per record. Integers and decimals are written
as plain numbers, enums as their upper-case tokens, empty cells stand for
absent optional values and the generator cost list is one cell of
space-separated numbers.

Decoding never stops at the first bad cell: every failure becomes a
CellError and the rows that decoded cleanly are still returned.
"""

# Import Python packages
import csv
import io
import logging
from typing import NamedTuple, get_origin

# Import caseformat code
from caseformat.case.core import RECORD_CLASSES
from caseformat.errors import CellError
from caseformat.utils.data_tools import field_types, optional_fields
from caseformat.utils.enums import TokenEnum

logger = logging.getLogger(__name__)


class RawRow(NamedTuple):
    """Typed cell values of one decoded row, keyed by field name."""
    row: int
    values: dict


# ------------------------------------------------------------
# Cells
# ------------------------------------------------------------
def _parse_int(text):
    try:
        return int(text)
    except ValueError:
        raise ValueError("expected an integer") from None


def _parse_float(text):
    try:
        return float(text)
    except ValueError:
        raise ValueError("expected a number") from None


def parse_cell(hint, nullable, text):
    """
    Convert cell text to the declared field type. Raises ValueError with
    a short reason on failure.
    """
    text = text.strip()
    if text == "":
        if nullable:
            return None
        raise ValueError("missing value")

    if isinstance(hint, type) and issubclass(hint, TokenEnum):
        try:
            return hint.from_token(text)
        except KeyError:
            raise ValueError(f"unknown token, expected one of {hint.tokens()}") from None
    if get_origin(hint) is tuple:
        return tuple(_parse_float(part) for part in text.split())
    if hint is int:
        return _parse_int(text)
    if hint is float:
        return _parse_float(text)

    raise TypeError(f"unsupported field type {hint!r}")


def _format_float(value, float_format):
    value = float(value)
    if float_format is None:
        # Shortest text that reads back to the same float
        return repr(value)
    return f"{value:.{float_format}f}"


def format_cell(hint, value, float_format=None):
    if value is None:
        return ""
    if isinstance(value, TokenEnum):
        return value.token
    if get_origin(hint) is tuple:
        return " ".join(_format_float(v, float_format) for v in value)
    if hint is float:
        return _format_float(value, float_format)
    return str(value)


# ------------------------------------------------------------
# Tables
# ------------------------------------------------------------
def header_for(kind, records):
    """
    Column names for a table: all base fields, plus each optional group
    that at least one record populates (and the groups it requires).
    """
    record_class = RECORD_CLASSES[kind]
    active = set()
    for group, names in record_class.optional_groups.items():
        if any(getattr(r, n) is not None for r in records for n in names):
            active.add(group)
            active.update(record_class.group_requires.get(group, ()))

    grouped = {n: g for g, names in record_class.optional_groups.items() for n in names}
    return [
        name for name in field_types(record_class)
        if name not in grouped or grouped[name] in active
    ]


def _is_blank(cells):
    return not cells or (len(cells) == 1 and not cells[0].strip())


def _split_lines(text):
    """
    Cells of each line. A line the csv reader rejects (a field over the
    csv field size limit, for one) is kept as the csv.Error it raised and
    reading goes on with the next line.
    """
    reader = csv.reader(io.StringIO(text))
    lines = []
    while True:
        try:
            lines.append(next(reader))
        except StopIteration:
            return lines
        except csv.Error as err:
            lines.append(err)


def count_records(text):
    """Number of non-blank data lines below the header."""
    lines = _split_lines(text)
    return sum(1 for cells in lines[1:] if isinstance(cells, csv.Error) or not _is_blank(cells))


def decode_table(kind, text):
    """
    Decode the tabular text of one table.

    ### Inputs:
    - kind (str): 'bus', 'gen', 'branch', 'gencost' or 'dcline'.
    - text (str): Header line plus one line per record.

    ### Outputs:
    - rows (list[RawRow]): Rows whose cells all decoded, in file order.
    - errors (list[CellError]): One entry per failure, in row order.
    """
    record_class = RECORD_CLASSES[kind]
    types = field_types(record_class)
    optional = optional_fields(record_class)

    lines = _split_lines(text)
    errors = []

    if lines and isinstance(lines[0], csv.Error):
        errors.append(CellError(kind, 0, "", "", f"unreadable header: {lines[0]}"))
        return [], errors
    if not lines or _is_blank(lines[0]):
        errors.append(CellError(kind, 0, "", "", "missing header"))
        return [], errors

    # Header: map each position to a field name (None if the column is ignored)
    header = [h.strip() for h in lines[0]]
    columns = []
    for position, name in enumerate(header):
        if name not in types:
            errors.append(CellError(kind, 0, name or f"#{position + 1}", name, "unknown column"))
            columns.append(None)
        elif name in columns:
            errors.append(CellError(kind, 0, name, name, "duplicate column"))
            columns.append(None)
        else:
            columns.append(name)

    missing = [name for name in types if name not in columns and name not in optional]
    for name in missing:
        errors.append(CellError(kind, 0, name, "", "missing column"))
    if missing:
        # No row can be complete without a required column
        return [], errors

    rows = []
    for number, cells in enumerate(lines[1:], start=1):
        if isinstance(cells, csv.Error):
            errors.append(CellError(kind, number, "", "", f"unreadable row: {cells}"))
            continue
        if _is_blank(cells):
            continue

        if len(cells) < len(header):
            errors.append(CellError(kind, number, header[len(cells)], "", "missing column"))
            continue
        if len(cells) > len(header):
            extra = len(header)
            errors.append(CellError(kind, number, f"#{extra + 1}", cells[extra], "extra column"))
            continue

        values = {}
        failed = False
        for name, cell in zip(columns, cells):
            if name is None:
                continue
            hint, nullable = types[name]
            try:
                values[name] = parse_cell(hint, nullable, cell)
            except ValueError as err:
                errors.append(CellError(kind, number, name, cell, str(err)))
                failed = True

        if not failed:
            rows.append(RawRow(number, values))

    logger.debug("Decoded %s table: %d rows, %d cell errors", kind, len(rows), len(errors))
    return rows, errors


def encode_table(kind, records, float_format=None):
    """
    Encode records as tabular text. Column order is the field declaration
    order of the record type. ``float_format`` is the number of decimals
    for floats; None writes the shortest text that reads back exactly.
    """
    record_class = RECORD_CLASSES[kind]
    types = field_types(record_class)
    records = list(records)
    names = header_for(kind, records)

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(names)
    for record in records:
        writer.writerow(
            [format_cell(types[n][0], getattr(record, n), float_format) for n in names]
        )
    return buffer.getvalue()


def records_from_rows(kind, rows):
    """Build records from decoded rows. Fields missing from a row keep their defaults."""
    record_class = RECORD_CLASSES[kind]
    return [record_class(**row.values) for row in rows]


def rows_from_records(kind, records):
    """Inverse of records_from_rows, numbering rows from 1."""
    names = list(field_types(RECORD_CLASSES[kind]))
    return [
        RawRow(number, {n: getattr(record, n) for n in names})
        for number, record in enumerate(records, start=1)
    ]
