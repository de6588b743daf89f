# ----------------------
# Import python packages
# ----------------------
from dataclasses import dataclass
import logging

# ------------------
# Import caseformat code
# ------------------
from caseformat.case.core import Case, TABLES, FORMAT_VERSION
from caseformat.bus.bus import BusType
from caseformat.errors import ValidationFailed
from caseformat.io.tabular import records_from_rows
from caseformat.utils.indices import IdIndex
from caseformat.validation.report import Severity, Violation, ValidationReport
from caseformat.validation.rules import check_record, well_typed

logger = logging.getLogger(__name__)

POLICIES = ("error", "warning", "ignore")

DEFAULT_SETTINGS = {
    # Zero or several reference buses
    "reference_bus": "warning",
    # Buses with no generator, branch or DC line (ISOLATED buses are exempt)
    "unused_bus": "warning",
    # Branches whose two ends are the same bus
    "self_loop": "warning",
}


@dataclass(slots=True)
class _Entry:
    """A record under validation with its location."""
    row: int
    position: int
    record: object
    bad_fields: set

    def key(self, kind):
        # Buses are keyed by bus number, other records by table position
        if kind == "bus" and "bus_i" not in self.bad_fields:
            return self.record.bus_i
        return self.position


# -----------
# Main class
# -----------
@dataclass(slots=True)
class Validator:
    """
    Two-phase validation of case tables.

    Phase 1 checks every record on its own (types, ranges, optional
    column groups). Phase 2 checks references between records through
    id indices built once per pass. Phase 2 runs even when phase 1
    found errors, skipping only the ids that are themselves malformed,
    so one pass reports as much as possible.

    ### Inputs:
    - settings (dict): Overrides of DEFAULT_SETTINGS. Each value is one
      of 'error', 'warning' or 'ignore'.
    """
    settings: dict = None

    def __post_init__(self):
        self.set_settings()

    def set_settings(self):
        default = dict(DEFAULT_SETTINGS)
        if self.settings is not None:
            for key, value in self.settings.items():
                if key not in default:
                    raise ValueError(f"unknown validation setting {key!r}")
                if value not in POLICIES:
                    raise ValueError(f"setting {key!r} must be one of {POLICIES}, got {value!r}")
                default[key] = value

        self.settings = default

    # ------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------
    def build_case(self, tables, base_mva, version=FORMAT_VERSION, created_at=None, name=""):
        """
        Construct a Case from decoded rows.

        ### Inputs:
        - tables (dict): Table name to list of RawRow. Absent tables are empty.
        - base_mva, version, created_at, name: Case attributes.

        ### Outputs:
        - case (Case): With ``case.report`` holding the warnings.

        Raises ValidationFailed if any Error-severity violation is found.
        """
        logger.info("> Validate case %r", name)
        records = {kind: records_from_rows(kind, tables.get(kind, [])) for kind in TABLES}
        rows = {kind: [r.row for r in tables.get(kind, [])] for kind in TABLES}

        report = self._run(records, rows)
        if report.has_errors:
            logger.info("\t... failed: %d errors, %d warnings", len(report.errors), len(report.warnings))
            raise ValidationFailed(report)

        case = Case(
            base_mva=base_mva,
            buses=records["bus"],
            generators=records["gen"],
            branches=records["branch"],
            gencosts=records["gencost"],
            dclines=records["dcline"],
            version=version,
            created_at=created_at,
            name=name,
        )
        case.report = report
        logger.info("\t... ok (%d warnings).", len(report.warnings))
        return case

    def validate(self, case):
        """Validate an in-memory case. Rows are the 1-based table positions."""
        records = {kind: list(case.table(kind)) for kind in TABLES}
        rows = {kind: list(range(1, len(records[kind]) + 1)) for kind in TABLES}
        return self._run(records, rows)

    def check(self, case):
        """Validate a case, attach the report and return the case. Raises ValidationFailed on errors."""
        report = self.validate(case)
        if report.has_errors:
            raise ValidationFailed(report)
        case.report = report
        return case

    # ------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------
    def _run(self, records, rows):
        report = ValidationReport()

        entries = {}
        for kind in TABLES:
            entries[kind] = []
            for position, (row, record) in enumerate(zip(rows[kind], records[kind]), start=1):
                problems, bad = check_record(kind, record)
                entry = _Entry(row, position, record, bad)
                entries[kind].append(entry)
                for field_name, message in problems:
                    report.add(self._violation(Severity.ERROR, kind, entry, field_name, message))

        self._check_references(entries, report)

        logger.debug(
            "Validation: %s",
            ", ".join(f"{k}={len(entries[k])}" for k in TABLES),
        )
        return report

    def _violation(self, severity, kind, entry, field_name, message):
        return Violation(severity, kind, entry.key(kind), field_name, message, entry.row)

    def _policy(self, setting):
        policy = self.settings[setting]
        if policy == "error":
            return Severity.ERROR
        if policy == "warning":
            return Severity.WARNING
        return None

    def _check_references(self, entries, report):
        buses = [e for e in entries["bus"] if well_typed(e.record, e.bad_fields, "bus_i") and e.record.bus_i >= 1]
        bus_index = IdIndex.from_rows((e.record.bus_i, e.row) for e in buses)

        # Duplicate bus numbers, one violation per (first, repeat) pair
        rows_to_entry = {e.row: e for e in entries["bus"]}
        for bus_i, first_row, repeat_row in bus_index.duplicates():
            entry = rows_to_entry[repeat_row]
            report.add(self._violation(
                Severity.ERROR, "bus", entry, "bus_i",
                f"bus number {bus_i} is used by rows {first_row} and {repeat_row}",
            ))

        used = set()

        for entry in entries["gen"]:
            gen = entry.record
            if well_typed(gen, entry.bad_fields, "gen_bus") and gen.gen_bus >= 1:
                used.add(gen.gen_bus)
                if gen.gen_bus not in bus_index:
                    report.add(self._violation(
                        Severity.ERROR, "gen", entry, "gen_bus",
                        f"generator bus {gen.gen_bus} does not exist",
                    ))

        self_loop = self._policy("self_loop")
        for entry in entries["branch"]:
            branch = entry.record
            for end in ("f_bus", "t_bus"):
                bus_i = getattr(branch, end)
                if well_typed(branch, entry.bad_fields, end) and bus_i >= 1:
                    used.add(bus_i)
                    if bus_i not in bus_index:
                        report.add(self._violation(
                            Severity.ERROR, "branch", entry, end,
                            f"branch {end} {bus_i} does not exist",
                        ))
            if (
                self_loop is not None
                and well_typed(branch, entry.bad_fields, "f_bus", "t_bus")
                and branch.is_self_loop()
            ):
                report.add(self._violation(
                    self_loop, "branch", entry, "t_bus",
                    f"branch connects bus {branch.f_bus} to itself",
                ))

        for entry in entries["dcline"]:
            line = entry.record
            for end in ("f_bus", "t_bus"):
                bus_i = getattr(line, end)
                if well_typed(line, entry.bad_fields, end) and bus_i >= 1:
                    used.add(bus_i)
                    if bus_i not in bus_index:
                        report.add(self._violation(
                            Severity.ERROR, "dcline", entry, end,
                            f"dcline {end} {bus_i} does not exist",
                        ))

        n_gen = len(entries["gen"])
        cost_index = IdIndex()
        cost_rows = {e.row: e for e in entries["gencost"]}
        for entry in entries["gencost"]:
            cost = entry.record
            if not (well_typed(cost, entry.bad_fields, "gen_index") and cost.gen_index >= 1):
                continue
            cost_index.add(cost.gen_index, entry.row)
            if cost.gen_index > n_gen:
                report.add(self._violation(
                    Severity.ERROR, "gencost", entry, "gen_index",
                    f"generator {cost.gen_index} does not exist ({n_gen} generators)",
                ))
        for gen_index, first_row, repeat_row in cost_index.duplicates():
            report.add(self._violation(
                Severity.ERROR, "gencost", cost_rows[repeat_row], "gen_index",
                f"generator {gen_index} is priced by rows {first_row} and {repeat_row}",
            ))

        reference = self._policy("reference_bus")
        if reference is not None:
            refs = [e for e in entries["bus"] if e.record.bus_type is BusType.REF]
            if len(refs) != 1:
                message = (
                    "no reference bus" if not refs
                    else f"{len(refs)} reference buses (rows {', '.join(str(e.row) for e in refs)})"
                )
                report.add(Violation(reference, "bus", None, "bus_type", message, None))

        unused = self._policy("unused_bus")
        if unused is not None:
            for entry in buses:
                bus = entry.record
                if bus.bus_i not in used and bus.bus_type is not BusType.ISOLATED:
                    report.add(self._violation(
                        unused, "bus", entry, "bus_i",
                        f"bus {bus.bus_i} has no generator, branch or DC line",
                    ))


def validate(case, settings=None):
    """Return the ValidationReport of a case."""
    return Validator(settings=settings).validate(case)
