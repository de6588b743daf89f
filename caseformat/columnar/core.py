"""
Columnar projection of a case.

Each table becomes one numpy array per field, parallel-indexed by record
position. Integer and enum fields are ``int64`` (enums as their codes),
floats are ``float64`` with NaN standing for an absent optional value.
The variable-length generator cost lists are stored CSR style: the costs
of record ``k`` are ``costs_val[costs_ptr[k]:costs_ptr[k + 1]]``.

The projection is a mechanical transpose and performs no validation.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import get_origin
import math

from more_itertools import transpose
import numpy as np
import pandas as pd

from caseformat.case.core import Case, TABLES, RECORD_CLASSES, FORMAT_VERSION
from caseformat.utils.data_tools import field_types
from caseformat.utils.enums import TokenEnum


@dataclass(slots=True)
class CaseColumns:
    """
    Structure-of-arrays form of a Case.

    #### Attributes:
    - base_mva, version, created_at, name: Case metadata.
    - tables (dict): Table name to a dict of field name to numpy array.
      The gencost table holds ``costs_ptr`` and ``costs_val`` in place of
      ``costs``.
    """
    base_mva: float
    tables: dict = field(default_factory=dict)
    version: tuple = FORMAT_VERSION
    created_at: datetime | None = None
    name: str = ""

    def size(self, table):
        """Number of records in a table."""
        columns = self.tables[table]
        if "costs_ptr" in columns:
            return len(columns["costs_ptr"]) - 1
        return len(next(iter(columns.values()))) if columns else 0

    def to_dataframe(self, table):
        """
        One-row-per-record DataFrame of a table. Generator costs are
        expanded back to one object cell per record.
        """
        columns = dict(self.tables[table])
        if "costs_ptr" in columns:
            ptr = columns.pop("costs_ptr")
            val = columns.pop("costs_val")
            columns["costs"] = [tuple(val[ptr[k]:ptr[k + 1]]) for k in range(len(ptr) - 1)]
        df = pd.DataFrame(columns)
        df.index.name = table
        return df


def _dtype(hint):
    if hint is int or (isinstance(hint, type) and issubclass(hint, TokenEnum)):
        return np.int64
    return np.float64


def _to_array(hint, values):
    if _dtype(hint) is np.int64:
        return np.asarray([int(v) for v in values], dtype=np.int64)
    return np.asarray([math.nan if v is None else float(v) for v in values], dtype=np.float64)


def _costs_csr(costs):
    lengths = [len(c) for c in costs]
    ptr = np.zeros(len(costs) + 1, dtype=np.int64)
    ptr[1:] = np.cumsum(lengths, dtype=np.int64)
    val = np.asarray([v for c in costs for v in c], dtype=np.float64)
    return ptr, val


def table_to_columns(table, records):
    """Field name to array for one table."""
    types = field_types(RECORD_CLASSES[table])
    names = list(types)
    selection = [[getattr(r, n) for n in names] for r in records]
    stacks = dict(zip(names, transpose(selection))) if selection else {n: () for n in names}

    columns = {}
    for name, (hint, _) in types.items():
        if get_origin(hint) is tuple:
            columns["costs_ptr"], columns["costs_val"] = _costs_csr(stacks[name])
        else:
            columns[name] = _to_array(hint, stacks[name])
    return columns


def _from_array(hint, nullable, value):
    if isinstance(hint, type) and issubclass(hint, TokenEnum):
        return hint(int(value))
    if hint is int:
        return int(value)
    value = float(value)
    if nullable and math.isnan(value):
        return None
    return value


def columns_to_table(table, columns):
    """Records of one table, in position order."""
    record_class = RECORD_CLASSES[table]
    types = field_types(record_class)

    if "costs_ptr" in columns:
        ptr, val = columns["costs_ptr"], columns["costs_val"]
        n = len(ptr) - 1
    else:
        n = len(next(iter(columns.values()))) if columns else 0

    records = []
    for k in range(n):
        values = {}
        for name, (hint, nullable) in types.items():
            if get_origin(hint) is tuple:
                values[name] = tuple(float(v) for v in val[ptr[k]:ptr[k + 1]])
            else:
                values[name] = _from_array(hint, nullable, columns[name][k])
        records.append(record_class(**values))
    return records


def to_columnar(case):
    """Project a case to columns."""
    return CaseColumns(
        base_mva=case.base_mva,
        tables={table: table_to_columns(table, case.table(table)) for table in TABLES},
        version=case.version,
        created_at=case.created_at,
        name=case.name,
    )


def to_records(columns):
    """Rebuild the per-record Case from its columnar form."""
    tables = {table: columns_to_table(table, columns.tables.get(table, {})) for table in TABLES}
    return Case(
        base_mva=columns.base_mva,
        buses=tables["bus"],
        generators=tables["gen"],
        branches=tables["branch"],
        gencosts=tables["gencost"],
        dclines=tables["dcline"],
        version=columns.version,
        created_at=columns.created_at,
        name=columns.name,
    )
