"""
Archive codec.

A case archive is a ZIP container with one ``metadata.json`` entry and one
tabular text entry per table (``bus``, ``gen``, ``branch``, ``gencost``).
The metadata lists the tables and their row counts; unpacking checks the
manifest against the entries before any row is decoded, then collects the
cell errors of all tables and runs validation.

The directory form holds the same entries as files, with a ``.csv``
suffix on the tables.
"""

# Import Python packages
from datetime import datetime
import io
import json
import logging
import os
import zipfile
import zlib

# Import caseformat code
from caseformat.case.core import TABLES, REQUIRED_TABLES, FORMAT_VERSION, parse_version, format_version
from caseformat.errors import ArchiveCorrupt, DecodeFailed
from caseformat.io.tabular import decode_table, encode_table, count_records
from caseformat.validation.core import Validator

logger = logging.getLogger(__name__)

METADATA = "metadata.json"
README = "README"

# Errors zipfile raises on truncated, encrypted or otherwise unreadable members
_DAMAGED = (zipfile.BadZipFile, zlib.error, EOFError, ValueError, NotImplementedError, RuntimeError)

# (key, accepted types, nullable)
METADATA_KEYS = (
    ("version", (str,), False),
    ("name", (str,), True),
    ("base_power", (int, float), False),
    ("created_at", (str,), True),
    ("tables", (dict,), False),
)


# ------------------------------------------------------------
# Metadata
# ------------------------------------------------------------
def make_metadata(case):
    """Metadata record of a case: format version, base power, timestamp and manifest."""
    return {
        "version": format_version(case.version),
        "name": case.name,
        "base_power": case.base_mva,
        "created_at": case.created_at.isoformat() if case.created_at is not None else None,
        "tables": {t: n for t, n in case.counts().items() if t in REQUIRED_TABLES or n},
    }


def read_metadata(text):
    """
    Parse and check a metadata record.

    ### Outputs:
    - metadata (dict): With ``version`` as a triple and ``created_at`` as
      a datetime (or None).

    Raises ArchiveCorrupt for undecodable JSON, missing or mistyped keys,
    an unsupported major version, or a manifest that misses one of the
    required tables or lists an unknown one.
    """
    try:
        metadata = json.loads(text)
    except json.JSONDecodeError as err:
        raise ArchiveCorrupt(f"{METADATA} is not valid JSON: {err}") from err
    if not isinstance(metadata, dict):
        raise ArchiveCorrupt(f"{METADATA} must hold a JSON object")

    for key, accepted, nullable in METADATA_KEYS:
        if key not in metadata:
            if nullable:
                continue
            raise ArchiveCorrupt(f"{METADATA} is missing {key!r}")
        value = metadata[key]
        if value is None and nullable:
            continue
        if isinstance(value, bool) or not isinstance(value, accepted):
            raise ArchiveCorrupt(f"{METADATA}: {key!r} has the wrong type ({type(value).__name__})")

    try:
        version = parse_version(metadata["version"])
    except ValueError as err:
        raise ArchiveCorrupt(f"{METADATA}: {err}") from err
    if version[0] != FORMAT_VERSION[0]:
        raise ArchiveCorrupt(
            f"unsupported format version {metadata['version']} "
            f"(this reader handles {FORMAT_VERSION[0]}.x)"
        )

    manifest = metadata["tables"]
    missing = [t for t in REQUIRED_TABLES if t not in manifest]
    if missing:
        raise ArchiveCorrupt(f"manifest is missing the tables {missing}")
    unknown = sorted(t for t in manifest if t not in TABLES)
    if unknown:
        raise ArchiveCorrupt(f"manifest lists unknown tables {unknown}")
    for table, count in manifest.items():
        if isinstance(count, bool) or not isinstance(count, int) or count < 0:
            raise ArchiveCorrupt(f"manifest row count of {table!r} must be a non-negative integer")

    created_at = metadata.get("created_at")
    if created_at is not None:
        try:
            created_at = datetime.fromisoformat(created_at)
        except ValueError as err:
            raise ArchiveCorrupt(f"{METADATA}: created_at is not an ISO 8601 timestamp") from err
        if created_at.tzinfo is None:
            raise ArchiveCorrupt(f"{METADATA}: created_at must carry a UTC offset")

    return {
        "version": version,
        "name": metadata.get("name") or "",
        "base_power": metadata["base_power"],
        "created_at": created_at,
        "tables": manifest,
    }


def _decode_text(name, data):
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as err:
        raise ArchiveCorrupt(f"entry {name!r} is not UTF-8 text") from err


def _load(entries, metadata_text, settings=None, source=""):
    """
    Shared read path of the ZIP and directory forms.

    ### Inputs:
    - entries (dict): Table name to tabular text. Tables left out of the
      manifest are read as empty.
    - metadata_text (str): Content of metadata.json.
    """
    metadata = read_metadata(metadata_text)

    manifest = metadata["tables"]
    listed = [t for t in TABLES if t in manifest]
    for table in listed:
        if table not in entries:
            raise ArchiveCorrupt(f"missing table entry {table!r}")
        found = count_records(entries[table])
        expected = manifest[table]
        if found != expected:
            raise ArchiveCorrupt(
                f"table {table!r} has {found} rows, manifest says {expected}"
            )

    tables = {}
    errors = []
    for table in listed:
        rows, cell_errors = decode_table(table, entries[table])
        tables[table] = rows
        errors.extend(cell_errors)
        logger.debug("%s: %d rows decoded", table, len(rows))

    if errors:
        logger.info("> Read %s ... %d cell errors.", source, len(errors))
        raise DecodeFailed(errors)

    case = Validator(settings=settings).build_case(
        tables,
        base_mva=metadata["base_power"],
        version=metadata["version"],
        created_at=metadata["created_at"],
        name=metadata["name"],
    )
    logger.info("> Read %s ... ok.", source)
    return case


# ------------------------------------------------------------
# ZIP container
# ------------------------------------------------------------
def pack_case(case, readme=None, float_format=None):
    """
    Package a case as ZIP bytes.

    ### Inputs:
    - case (Case): A valid case.
    - readme (str): Optional free text stored as a README entry.
    - float_format (int): Decimals for floats, None for exact text.

    ### Outputs:
    - data (bytes)
    """
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        archive.writestr(METADATA, json.dumps(make_metadata(case), indent=2))
        for table in make_metadata(case)["tables"]:
            archive.writestr(table, encode_table(table, case.table(table), float_format))
        if readme is not None:
            archive.writestr(README, readme)
    logger.debug("Packed case %r: %s", case.name, case.counts())
    return buffer.getvalue()


def unpack_case(data, settings=None):
    """
    Read a case from ZIP bytes.

    Raises ArchiveCorrupt for a damaged container, DecodeFailed if cells
    failed to decode and ValidationFailed if the decoded case is invalid.
    """
    try:
        archive = zipfile.ZipFile(io.BytesIO(data))
    except _DAMAGED as err:
        raise ArchiveCorrupt(f"not a ZIP archive: {err}") from err

    with archive:
        names = set(archive.namelist())
        if METADATA not in names:
            raise ArchiveCorrupt(f"missing {METADATA}")
        try:
            metadata_text = _decode_text(METADATA, archive.read(METADATA))
            entries = {
                table: _decode_text(table, archive.read(table))
                for table in TABLES if table in names
            }
        except _DAMAGED as err:
            raise ArchiveCorrupt(f"damaged archive entry: {err}") from err

    return _load(entries, metadata_text, settings=settings, source="archive")


def write_zip(path, case, readme=None, float_format=None):
    """Write a case archive to ``path``."""
    with open(path, "wb") as f:
        f.write(pack_case(case, readme=readme, float_format=float_format))
    logger.info("> Write %s ... ok.", path)


def read_zip(path, settings=None):
    """Read a case archive from ``path``."""
    with open(path, "rb") as f:
        data = f.read()
    logger.info("> Read %s", path)
    return unpack_case(data, settings=settings)


# ------------------------------------------------------------
# Directory of CSV files
# ------------------------------------------------------------
def write_dir(case, directory, float_format=None):
    """
    Write ``metadata.json`` and one ``<table>.csv`` file per table in the
    manifest (``dcline.csv`` only when the case has DC lines).
    """
    os.makedirs(directory, exist_ok=True)
    metadata = make_metadata(case)
    for table in metadata["tables"]:
        filepath = os.path.join(directory, f"{table}.csv")
        with open(filepath, "w", encoding="utf-8", newline="") as f:
            f.write(encode_table(table, case.table(table), float_format))
    with open(os.path.join(directory, METADATA), "w", encoding="utf-8") as f:
        json.dump(metadata, f, indent=2)
    logger.info("> Write %s ... ok.", directory)


def read_dir(directory, settings=None):
    """Read a case written by write_dir."""
    metadata_path = os.path.join(directory, METADATA)
    if not os.path.isfile(metadata_path):
        raise ArchiveCorrupt(f"missing {METADATA} in {directory}")

    with open(metadata_path, "rb") as f:
        metadata_text = _decode_text(METADATA, f.read())

    entries = {}
    for table in TABLES:
        filepath = os.path.join(directory, f"{table}.csv")
        if os.path.isfile(filepath):
            with open(filepath, "rb") as f:
                entries[table] = _decode_text(f"{table}.csv", f.read())

    return _load(entries, metadata_text, settings=settings, source=directory)
