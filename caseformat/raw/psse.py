"""
PSS/E version 33 raw text codec.

The file opens with the case identification line and two title lines.
Data sections follow in a fixed order, each closed by a line starting
with ``0`` (conventionally ``0 / END OF BUS DATA, BEGIN LOAD DATA``), and
the file ends with ``Q``. Fields are comma separated, strings are single
quoted and anything after an unquoted ``/`` is a comment. Trailing fields
may be omitted and take their defaults.

Only the sections held by RawNetwork are decoded; records of the other
sections are skipped.
"""

from dataclasses import fields
import logging

from caseformat.errors import DomainError, RawFormatError
from caseformat.raw.records import (
    RawCaseId, RawBus, RawLoad, RawFixedShunt, RawSwitchedShunt,
    RawGenerator, RawBranch, RawTransformer, RawNetwork,
)
from caseformat.utils.data_tools import field_types

logger = logging.getLogger(__name__)

# Section name, RawNetwork attribute (None for sections that are skipped), record class
SECTIONS = (
    ("BUS", "buses", RawBus),
    ("LOAD", "loads", RawLoad),
    ("FIXED SHUNT", "fixed_shunts", RawFixedShunt),
    ("GENERATOR", "generators", RawGenerator),
    ("BRANCH", "branches", RawBranch),
    ("TRANSFORMER", "transformers", RawTransformer),
    ("AREA", None, None),
    ("TWO-TERMINAL DC", None, None),
    ("VSC DC LINE", None, None),
    ("IMPEDANCE CORRECTION", None, None),
    ("MULTI-TERMINAL DC", None, None),
    ("MULTI-SECTION LINE", None, None),
    ("ZONE", None, None),
    ("INTER-AREA TRANSFER", None, None),
    ("OWNER", None, None),
    ("FACTS DEVICE", None, None),
    ("SWITCHED SHUNT", "switched_shunts", RawSwitchedShunt),
    ("GNE DEVICE", None, None),
    ("INDUCTION MACHINE", None, None),
)


# ------------------------------------------------------------
# Lines
# ------------------------------------------------------------
def split_line(line, number=None):
    """
    Split one data line into field texts. Quoted fields keep their inner
    text (stripped), everything after an unquoted '/' is dropped.
    """
    tokens, buffer = [], []
    quoted = False
    for ch in line:
        if ch == "'":
            quoted = not quoted
            buffer.append(ch)
        elif quoted:
            buffer.append(ch)
        elif ch == "/":
            break
        elif ch == ",":
            tokens.append("".join(buffer))
            buffer = []
        else:
            buffer.append(ch)
    if quoted:
        raise RawFormatError(f"line {number}: unterminated quoted string")
    tokens.append("".join(buffer))

    out = []
    for token in tokens:
        token = token.strip()
        if len(token) >= 2 and token[0] == token[-1] == "'":
            token = token[1:-1].strip()
        out.append(token)
    # A trailing comma or comment leaves an empty last token
    while out and out[-1] == "":
        out.pop()
    return out


def _is_end(tokens):
    return tokens[0] == "0"


def _convert(hint, text, name, number):
    try:
        if hint is int:
            return int(text)
        if hint is float:
            return float(text)
    except ValueError:
        raise RawFormatError(
            f"line {number}: {name} expected {'an integer' if hint is int else 'a number'}, got {text!r}"
        ) from None
    return text


def _assign(values, types, names, tokens, number):
    if len(tokens) > len(names):
        tokens = tokens[:len(names)]
    for name, text in zip(names, tokens):
        if text == "":
            continue
        values[name] = _convert(types[name][0], text, name, number)


def _build(record_class, values, number):
    try:
        return record_class(**values)
    except TypeError as err:
        raise RawFormatError(f"line {number}: incomplete {record_class.__name__} record") from err
    except DomainError as err:
        raise RawFormatError(f"line {number}: {err}") from err


def read_record(record_class, tokens, number):
    """Build a single-line record from its field texts."""
    types = field_types(record_class)
    values = {}
    _assign(values, types, list(types), tokens, number)
    return _build(record_class, values, number)


# ------------------------------------------------------------
# Decode
# ------------------------------------------------------------
def decode_raw(data):
    """
    Decode PSS/E v33 raw text.

    ### Inputs:
    - data (bytes or str)

    ### Outputs:
    - network (RawNetwork)

    Raises RawFormatError on malformed input.
    """
    if isinstance(data, bytes):
        try:
            data = data.decode("utf-8")
        except UnicodeDecodeError as err:
            raise RawFormatError("raw data is not UTF-8 text") from err

    lines = data.splitlines()
    if len(lines) < 3:
        raise RawFormatError("raw data must start with a case identification line and two title lines")

    network = RawNetwork()
    types = field_types(RawCaseId)
    values = {"title1": lines[1].strip(), "title2": lines[2].strip()}
    _assign(values, types, RawCaseId.fields_on_line, split_line(lines[0], 1), 1)
    network.caseid = _build(RawCaseId, values, 1)
    if network.caseid.rev not in (0, 33):
        logger.warning("Raw data revision %s read with the version 33 layout", network.caseid.rev)

    position = 3
    finished = False
    for section, attribute, record_class in SECTIONS:
        if finished:
            break
        count = 0
        while True:
            if position >= len(lines):
                raise RawFormatError(f"unexpected end of data in {section} section")
            number = position + 1
            tokens = split_line(lines[position], number)
            position += 1
            if not tokens:
                continue
            if tokens[0] == "Q":
                finished = True
                break
            if _is_end(tokens):
                break

            if record_class is None:
                continue
            if record_class is RawTransformer:
                record, position = _read_transformer(tokens, lines, position, number)
            else:
                record = read_record(record_class, tokens, number)
            getattr(network, attribute).append(record)
            count += 1

        logger.debug("%s data: %d records", section, count)

    return network


def _read_transformer(tokens, lines, position, number):
    types = field_types(RawTransformer)
    values = {}
    _assign(values, types, RawTransformer.lines[0], tokens, number)
    if values.get("k", 0) != 0:
        raise RawFormatError(f"line {number}: three-winding transformers are not supported")

    for names in RawTransformer.lines[1:]:
        if position >= len(lines):
            raise RawFormatError(f"line {number}: incomplete transformer record")
        _assign(values, types, names, split_line(lines[position], position + 1), position + 1)
        position += 1
    return _build(RawTransformer, values, number), position


# ------------------------------------------------------------
# Encode
# ------------------------------------------------------------
def _format(value):
    if isinstance(value, str):
        return f"'{value}'"
    if isinstance(value, float):
        return repr(value)
    return str(value)


def _line(record, names):
    return ", ".join(_format(getattr(record, name)) for name in names)


def encode_raw(network):
    """Encode a RawNetwork as PSS/E v33 raw text (bytes)."""
    caseid = network.caseid
    out = [
        _line(caseid, RawCaseId.fields_on_line) + "     / PSS(R)E-33 RAW",
        caseid.title1,
        caseid.title2,
    ]

    names = [name for name, _, _ in SECTIONS]
    for index, (section, attribute, record_class) in enumerate(SECTIONS):
        if attribute is not None:
            for record in getattr(network, attribute):
                if record_class is RawTransformer:
                    out.extend(_line(record, line) for line in RawTransformer.lines)
                else:
                    out.append(_line(record, [f.name for f in fields(record_class)]))
        if index + 1 < len(names):
            out.append(f"0 / END OF {section} DATA, BEGIN {names[index + 1]} DATA")
        else:
            out.append(f"0 / END OF {section} DATA")
    out.append("Q")
    return ("\n".join(out) + "\n").encode("utf-8")
