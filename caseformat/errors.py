from dataclasses import dataclass, astuple, fields
from tabulate import tabulate


@dataclass(frozen=True, slots=True)
class CellError:
    """
    One tabular cell that failed to decode.

    #### Attributes:
    - table: Table the cell belongs to ('bus', 'gen', 'branch', 'gencost', 'dcline').
    - row: Data row number (1-based). The header row is row 0.
    - column: Column (field) name, or a positional label for extra cells.
    - raw_value: Text found in the cell ('' when the cell is missing).
    - reason: Short description of the failure.
    """

    table: str
    row: int
    column: str
    raw_value: str
    reason: str

    def __str__(self):
        return f"{self.table}:{self.row}:{self.column}: {self.reason} ({self.raw_value!r})"


class CaseFormatError(Exception):
    """Base class of all errors raised by caseformat."""


class DomainError(CaseFormatError, ValueError):
    """A primitive value is outside its allowed range at construction time."""


class DecodeFailed(CaseFormatError):
    """One or more cells failed to decode. All of them are listed."""

    def __init__(self, errors):
        self.errors = list(errors)
        header = [f.name for f in fields(CellError)]
        table = tabulate([astuple(e) for e in self.errors], headers=header)
        super().__init__(f"{len(self.errors)} cell error(s)\n{table}")


class ValidationFailed(CaseFormatError):
    """Validation found Error-severity violations."""

    def __init__(self, report):
        self.report = report
        super().__init__(
            f"{len(report.errors)} error(s), {len(report.warnings)} warning(s)\n"
            f"{report.to_table()}"
        )


class ArchiveCorrupt(CaseFormatError):
    """The archive container is unreadable or internally inconsistent."""


class RawFormatError(CaseFormatError):
    """Raw power flow text could not be decoded or encoded."""
