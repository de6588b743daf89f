from dataclasses import dataclass, fields
from enum import Enum
import sys

from sortedcontainers import SortedList
from tabulate import tabulate

from caseformat.case.core import TABLES, RECORD_CLASSES


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True, slots=True)
class Violation:
    """
    A failed field-level or cross-record rule.

    #### Attributes:
    - severity: ERROR blocks the case, WARNING is attached to it.
    - entity_kind: Table of the offending record ('bus', 'gen', 'branch', 'gencost',
  'dcline'), or 'case' for case attributes.
    - entity_key: Id of the record (bus number, or 1-based position for the
      other tables). None for rules about a whole table.
    - field: Offending field name.
    - message: Human readable description.
    - row: 1-based row of the record in its table, None for table-wide rules.
    """

    severity: Severity
    entity_kind: str
    entity_key: object
    field: str
    message: str
    row: int | None = None

    @property
    def is_error(self):
        return self.severity is Severity.ERROR


@dataclass(frozen=True, slots=True)
class ConversionLoss(Violation):
    """A field the raw format cannot represent, with the number of records affected."""

    count: int = 0


def _field_rank(entity_kind, field_name):
    record_class = RECORD_CLASSES.get(entity_kind)
    if record_class is None:
        return -1
    names = [f.name for f in fields(record_class)]
    return names.index(field_name) if field_name in names else len(names)


def _sort_key(violation):
    table_rank = TABLES.index(violation.entity_kind) if violation.entity_kind in TABLES else len(TABLES)
    row = violation.row if violation.row is not None else sys.maxsize
    return (table_rank, row, _field_rank(violation.entity_kind, violation.field))


class ValidationReport:
    """
    Ordered collection of violations.

    Violations are kept sorted by table (bus, gen, branch, gencost, dcline), then
    row, then field declaration order, whatever order they were found in.
    Violations with equal keys keep their insertion order.
    """

    def __init__(self, violations=()):
        self._violations = SortedList(key=_sort_key)
        self.extend(violations)

    def add(self, violation):
        self._violations.add(violation)

    def extend(self, violations):
        for violation in violations:
            self.add(violation)

    def __iter__(self):
        return iter(self._violations)

    def __len__(self):
        return len(self._violations)

    def __getitem__(self, idx):
        return self._violations[idx]

    def __eq__(self, other):
        if not isinstance(other, ValidationReport):
            return NotImplemented
        return list(self) == list(other)

    @property
    def errors(self):
        return [v for v in self._violations if v.severity is Severity.ERROR]

    @property
    def warnings(self):
        return [v for v in self._violations if v.severity is Severity.WARNING]

    @property
    def has_errors(self):
        return any(v.severity is Severity.ERROR for v in self._violations)

    def select(self, entity_kind=None, field=None, severity=None):
        """Violations matching all of the given attributes."""
        return [
            v for v in self._violations
            if (entity_kind is None or v.entity_kind == entity_kind)
            and (field is None or v.field == field)
            and (severity is None or v.severity is severity)
        ]

    def to_table(self, tablefmt="simple"):
        """Render the report as a text table."""
        rows = [
            (v.severity.value, v.entity_kind, v.row, v.entity_key, v.field, v.message)
            for v in self._violations
        ]
        headers = ["severity", "table", "row", "key", "field", "message"]
        return tabulate(rows, headers=headers, tablefmt=tablefmt)

    def __repr__(self):
        return f"ValidationReport({len(self.errors)} errors, {len(self.warnings)} warnings)"
