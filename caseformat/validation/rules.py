"""
Per-record field rules.

Each rule function takes one record and yields ``(field, message)`` pairs,
one per broken rule. Rules never look at other records; cross-record
checks live in validation.core.
"""

from typing import get_origin
import math
import numbers

from caseformat.utils.data_tools import field_types
from caseformat.utils.enums import TokenEnum
from caseformat.generator.generator import IN_SERVICE, OUT_OF_SERVICE


def _is_int(value):
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


def _is_real(value):
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def check_types(record):
    """
    Yield a violation for every field whose value does not match its
    declared type, and for NaN in numeric fields.
    """
    for name, (hint, nullable) in field_types(type(record)).items():
        value = getattr(record, name)
        if value is None:
            if not nullable:
                yield name, "value is required"
        elif isinstance(hint, type) and issubclass(hint, TokenEnum):
            if not isinstance(value, hint):
                yield name, f"expected one of {hint.tokens()}"
        elif get_origin(hint) is tuple:
            if not isinstance(value, tuple) or not all(_is_real(v) for v in value):
                yield name, "expected a sequence of numbers"
            elif any(math.isnan(v) for v in value):
                yield name, "must not contain NaN"
        elif hint is int:
            if not _is_int(value):
                yield name, "expected an integer"
        elif hint is float:
            if not _is_real(value):
                yield name, "expected a number"
            elif math.isnan(value):
                yield name, "must not be NaN"


def well_typed(record, bad_fields, *names):
    """True if none of the named fields failed the type check."""
    return not any(name in bad_fields for name in names)


def _group_rules(record, bad):
    """All-or-none rule for each optional column group, then group prerequisites."""
    complete = {}
    for group, names in record.optional_groups.items():
        present = [n for n in names if getattr(record, n) is not None]
        complete[group] = len(present) == len(names)
        if present and not complete[group]:
            missing = [n for n in names if getattr(record, n) is None]
            yield missing[0], f"{group} fields must all be set if one is set (missing {', '.join(missing)})"

    for group, required in record.group_requires.items():
        names = record.optional_groups[group]
        if any(getattr(record, n) is not None for n in names):
            for req in required:
                if not complete[req]:
                    yield names[0], f"{req} fields must be set if {group} fields are set"


def _ordered(record, bad, low, high):
    if well_typed(record, bad, low, high):
        lo, hi = getattr(record, low), getattr(record, high)
        if lo is not None and hi is not None and lo > hi:
            yield high, f"{low} ({lo}) must be <= {high} ({hi})"


def _positive_id(record, bad, name, label):
    if well_typed(record, bad, name) and getattr(record, name) < 1:
        yield name, f"{label} must be a positive integer, got {getattr(record, name)}"


def _status(record, bad, name):
    if well_typed(record, bad, name) and getattr(record, name) not in (IN_SERVICE, OUT_OF_SERVICE):
        yield name, f"status must be {OUT_OF_SERVICE} or {IN_SERVICE}, got {getattr(record, name)}"


def _non_negative(record, bad, *names):
    for name in names:
        if well_typed(record, bad, name) and getattr(record, name) < 0:
            yield name, f"must be >= 0, got {getattr(record, name)}"


# ------------------------------------------------------------
# Record rules
# ------------------------------------------------------------
def bus_rules(bus, bad):
    yield from _positive_id(bus, bad, "bus_i", "bus number")
    yield from _positive_id(bus, bad, "bus_area", "area number")
    yield from _non_negative(bus, bad, "base_kv")
    yield from _positive_id(bus, bad, "zone", "zone number")
    yield from _ordered(bus, bad, "vmin", "vmax")
    yield from _group_rules(bus, bad)


def generator_rules(gen, bad):
    yield from _positive_id(gen, bad, "gen_bus", "generator bus number")
    yield from _ordered(gen, bad, "qmin", "qmax")
    yield from _non_negative(gen, bad, "mbase")
    yield from _status(gen, bad, "gen_status")
    yield from _ordered(gen, bad, "pmin", "pmax")
    yield from _group_rules(gen, bad)


def _effective_rating(value):
    # A zero rating means unbounded
    return math.inf if value == 0 else value


def branch_rules(branch, bad):
    yield from _positive_id(branch, bad, "f_bus", "from bus number")
    yield from _positive_id(branch, bad, "t_bus", "to bus number")
    yield from _non_negative(branch, bad, "rate_a", "rate_b", "rate_c")

    ratings = ("rate_a", "rate_b", "rate_c")
    if well_typed(branch, bad, *ratings):
        for low, high in zip(ratings, ratings[1:]):
            lo, hi = getattr(branch, low), getattr(branch, high)
            if _effective_rating(lo) > _effective_rating(hi):
                yield high, f"{low} ({lo}) must be <= {high} ({hi}), 0 meaning unbounded"

    yield from _status(branch, bad, "br_status")
    yield from _ordered(branch, bad, "angmin", "angmax")
    yield from _group_rules(branch, bad)


def gencost_rules(cost, bad):
    yield from _positive_id(cost, bad, "gen_index", "generator index")
    if well_typed(cost, bad, "ncost") and cost.ncost < 1:
        yield "ncost", f"must be >= 1, got {cost.ncost}"

    if well_typed(cost, bad, "model", "ncost", "costs"):
        expected = cost.expected_length()
        if len(cost.costs) != expected:
            what = "2 * ncost breakpoint values" if cost.is_pwl() else "ncost coefficients"
            yield "costs", f"expected {what} ({expected}), got {len(cost.costs)}"
        elif cost.is_pwl():
            outputs = cost.costs[0::2]
            if any(a > b for a, b in zip(outputs, outputs[1:])):
                yield "costs", "piecewise linear breakpoints must be non-decreasing in output"


def dcline_rules(line, bad):
    yield from _positive_id(line, bad, "f_bus", "from bus number")
    yield from _positive_id(line, bad, "t_bus", "to bus number")
    yield from _status(line, bad, "br_status")
    yield from _ordered(line, bad, "pmin", "pmax")
    yield from _ordered(line, bad, "qminf", "qmaxf")
    yield from _ordered(line, bad, "qmint", "qmaxt")
    yield from _group_rules(line, bad)


RULES = {
    "bus": bus_rules,
    "gen": generator_rules,
    "branch": branch_rules,
    "gencost": gencost_rules,
    "dcline": dcline_rules,
}


def check_record(kind, record):
    """
    Run the type check and the rules of ``kind`` on one record.

    ### Outputs:
    - violations (list): (field, message) pairs.
    - bad_fields (set): Fields that failed the type check. Rules and
      cross-record checks skip these.
    """
    violations = list(check_types(record))
    bad = {name for name, _ in violations}
    violations.extend(RULES[kind](record, bad))
    return violations, bad
