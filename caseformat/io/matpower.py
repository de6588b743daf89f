"""
MATPOWER case file export.

``write_mpc`` renders a case as the text of a MATPOWER ``.m`` case
function (case format version 2): one matrix per table, one row per
record, columns in MATPOWER order. Optional result columns are written
when at least one record carries them. The export is one-way.
"""

import logging
import math
import re

from caseformat.io.tabular import header_for
from caseformat.utils.data_tools import field_types

logger = logging.getLogger(__name__)

MPC_VERSION = "2"

# Defaults for the columns a version 2 file always has
ANGLE_LIMITS = {"angmin": -360.0, "angmax": 360.0}
CAPABILITY_DEFAULT = 0.0

GENCOST_HEADER = ("MODEL", "STARTUP", "SHUTDOWN", "NCOST", "COST")


def _number(value):
    if isinstance(value, float):
        if math.isinf(value):
            return "Inf" if value > 0 else "-Inf"
        return repr(value)
    return str(int(value))


def _function_name(name):
    name = re.sub(r"\W", "_", name or "case")
    if not name[0].isalpha():
        name = f"case_{name}"
    return name


def _columns(kind, records):
    names = header_for(kind, records)
    record_class = type(records[0])
    if kind == "gen":
        # Version 2 generator rows carry the capability columns
        names = [n for n in field_types(record_class) if n in names or n in record_class.optional_groups["capability"]]
    elif kind == "branch":
        names = [n for n in field_types(record_class) if n in names or n in ANGLE_LIMITS]
    return names


def _cell(kind, record, name):
    value = getattr(record, name)
    if value is None:
        if kind == "branch" and name in ANGLE_LIMITS:
            value = ANGLE_LIMITS[name]
        else:
            value = CAPABILITY_DEFAULT
    return _number(value)


def _matrix(lines, kind, header, rows):
    lines.append("")
    lines.append("%\t" + "\t".join(header))
    lines.append(f"mpc.{kind} = [")
    for row in rows:
        lines.append("\t" + "\t".join(row) + ";")
    lines.append("];")


def write_mpc(case):
    """
    Render a case as a MATPOWER case file.

    ### Inputs:
    - case (Case)

    ### Outputs:
    - text (str): Source of ``function mpc = <name>``.

    Generator costs are written in generator order, without their
    ``gen_index`` column, and padded with zeros to the longest cost list.
    """
    lines = [
        f"function mpc = {_function_name(case.name)}",
        "",
        f"mpc.version = '{MPC_VERSION}';",
        f"mpc.baseMVA = {_number(float(case.base_mva))};",
    ]

    for kind in ("bus", "gen", "branch"):
        records = case.table(kind)
        if not records:
            continue
        names = _columns(kind, records)
        _matrix(
            lines, kind, [n.upper() for n in names],
            ([_cell(kind, r, n) for n in names] for r in records),
        )

    if case.gencosts:
        costs = sorted(case.gencosts, key=lambda c: c.gen_index)
        width = max(len(c.costs) for c in costs)
        rows = []
        for cost in costs:
            padded = list(cost.costs) + [0.0] * (width - len(cost.costs))
            rows.append(
                [str(int(cost.model)), _number(cost.startup), _number(cost.shutdown), str(cost.ncost)]
                + [_number(v) for v in padded]
            )
        _matrix(lines, "gencost", GENCOST_HEADER, rows)

    if case.dclines:
        names = header_for("dcline", case.dclines)
        _matrix(
            lines, "dcline", [n.upper() for n in names],
            ([_cell("dcline", r, n) for n in names] for r in case.dclines),
        )

    logger.info("> Write MATPOWER case %r ... ok.", case.name)
    return "\n".join(lines) + "\n"
