"""
Conversion between a Case and raw power flow records.

Every case field has a declared policy in FIELD_MAP: ``rename`` (same
quantity under a raw field name), ``convert`` (moved to another record
or recomputed) or ``dropped`` (no raw counterpart). Writing a case never
loses a populated field without a ConversionLoss warning in the report
that comes with the raw network. Reading raw records always ends in the
full validation pass.
"""

from collections import defaultdict
import logging
import math
from typing import NamedTuple

from caseformat.bus.bus import Bus
from caseformat.branch.branch import Branch
from caseformat.case.core import Case, TABLES, FORMAT_VERSION, format_version
from caseformat.dcline.dcline import DCLine
from caseformat.errors import DomainError, RawFormatError, ValidationFailed
from caseformat.generator.generator import Generator, IN_SERVICE, OUT_OF_SERVICE, CAPABILITY_FIELDS
from caseformat.raw.records import (
    RawCaseId, RawBus, RawLoad, RawFixedShunt, RawGenerator,
    RawBranch, RawTransformer, RawNetwork,
)
from caseformat.utils.data_tools import field_types
from caseformat.validation.core import Validator
from caseformat.validation.report import ConversionLoss, Severity, ValidationReport, Violation

logger = logging.getLogger(__name__)

RENAME = "rename"
CONVERT = "convert"
DROPPED = "dropped"


class FieldRule(NamedTuple):
    policy: str
    target: str | None = None


def _dropped(*names):
    return {name: FieldRule(DROPPED) for name in names}


FIELD_MAP = {
    "bus": {
        "bus_i": FieldRule(RENAME, "RawBus.i"),
        "bus_type": FieldRule(CONVERT, "RawBus.ide"),
        "pd": FieldRule(CONVERT, "RawLoad.pl"),
        "qd": FieldRule(CONVERT, "RawLoad.ql"),
        "gs": FieldRule(CONVERT, "RawFixedShunt.gl"),
        "bs": FieldRule(CONVERT, "RawFixedShunt.bl"),
        "bus_area": FieldRule(RENAME, "RawBus.area"),
        "vm": FieldRule(RENAME, "RawBus.vm"),
        "va": FieldRule(RENAME, "RawBus.va"),
        "base_kv": FieldRule(RENAME, "RawBus.basekv"),
        "zone": FieldRule(RENAME, "RawBus.zone"),
        "vmax": FieldRule(RENAME, "RawBus.nvhi"),
        "vmin": FieldRule(RENAME, "RawBus.nvlo"),
        **_dropped("lam_p", "lam_q", "mu_vmax", "mu_vmin"),
    },
    "gen": {
        "gen_bus": FieldRule(RENAME, "RawGenerator.i"),
        "pg": FieldRule(RENAME, "RawGenerator.pg"),
        "qg": FieldRule(RENAME, "RawGenerator.qg"),
        "qmax": FieldRule(RENAME, "RawGenerator.qt"),
        "qmin": FieldRule(RENAME, "RawGenerator.qb"),
        "vg": FieldRule(RENAME, "RawGenerator.vs"),
        "mbase": FieldRule(RENAME, "RawGenerator.mbase"),
        "gen_status": FieldRule(RENAME, "RawGenerator.stat"),
        "pmax": FieldRule(RENAME, "RawGenerator.pt"),
        "pmin": FieldRule(RENAME, "RawGenerator.pb"),
        **_dropped(*CAPABILITY_FIELDS),
        **_dropped("mu_pmax", "mu_pmin", "mu_qmax", "mu_qmin"),
    },
    "branch": {
        "f_bus": FieldRule(RENAME, "RawBranch.i"),
        "t_bus": FieldRule(RENAME, "RawBranch.j"),
        "br_r": FieldRule(CONVERT, "RawBranch.r | RawTransformer.r1_2"),
        "br_x": FieldRule(CONVERT, "RawBranch.x | RawTransformer.x1_2"),
        # Transformers have no line charging, see case_to_raw
        "br_b": FieldRule(CONVERT, "RawBranch.b"),
        "rate_a": FieldRule(CONVERT, "RawBranch.rate_a | RawTransformer.rata1"),
        "rate_b": FieldRule(CONVERT, "RawBranch.rate_b | RawTransformer.ratb1"),
        "rate_c": FieldRule(CONVERT, "RawBranch.rate_c | RawTransformer.ratc1"),
        "tap": FieldRule(CONVERT, "RawTransformer.windv1"),
        "shift": FieldRule(CONVERT, "RawTransformer.ang1"),
        "br_status": FieldRule(CONVERT, "RawBranch.st | RawTransformer.stat"),
        **_dropped("angmin", "angmax", "pf", "qf", "pt", "qt"),
        **_dropped("mu_sf", "mu_st", "mu_angmin", "mu_angmax"),
    },
    "gencost": _dropped("gen_index", "model", "startup", "shutdown", "ncost", "costs"),
    # Two-terminal DC records are not written
    "dcline": _dropped(*field_types(DCLine)),
    # Case attributes outside the tables
    "case": {
        "base_mva": FieldRule(RENAME, "RawCaseId.sbase"),
        "name": FieldRule(RENAME, "RawCaseId.title1"),
        **_dropped("version", "created_at"),
    },
}


def _is_raw_transformer(branch):
    return branch.is_transformer() or branch.shift != 0.0


def _circuit(counters, key):
    counters[key] += 1
    if counters[key] > 99:
        raise RawFormatError(f"more than 99 circuits at {key}")
    return str(counters[key])


def _loss(table, field_name, count, message):
    return ConversionLoss(Severity.WARNING, table, None, field_name, message, None, count)


# ------------------------------------------------------------
# Case -> raw
# ------------------------------------------------------------
def case_to_raw(case):
    """
    Convert a case to raw records.

    ### Outputs:
    - network (RawNetwork)
    - report (ValidationReport): One ConversionLoss per table and field
      that could not be represented, with the number of records affected.
    """
    report = ValidationReport()
    for table in TABLES:
        records = case.table(table)
        for name, rule in FIELD_MAP[table].items():
            if rule.policy != DROPPED:
                continue
            count = sum(1 for r in records if getattr(r, name) is not None)
            if count:
                report.add(_loss(table, name, count, f"{name} has no raw counterpart, dropped from {count} record(s)"))

    if case.created_at is not None:
        report.add(_loss("case", "created_at", 1, "created_at has no raw counterpart, dropped"))
    if case.version != FORMAT_VERSION:
        report.add(_loss(
            "case", "version", 1,
            f"format version {format_version(case.version)} has no raw counterpart, read back as {format_version(FORMAT_VERSION)}",
        ))

    network = RawNetwork(caseid=RawCaseId(sbase=case.base_mva, title1=case.name))
    bus_area = {}
    for bus in case.buses:
        network.buses.append(RawBus(
            i=bus.bus_i, basekv=bus.base_kv, ide=int(bus.bus_type), area=bus.bus_area,
            zone=bus.zone, vm=bus.vm, va=bus.va,
            nvhi=bus.vmax, nvlo=bus.vmin, evhi=bus.vmax, evlo=bus.vmin,
        ))
        bus_area[bus.bus_i] = (bus.bus_area, bus.zone)
        if bus.pd != 0.0 or bus.qd != 0.0:
            network.loads.append(RawLoad(i=bus.bus_i, area=bus.bus_area, zone=bus.zone, pl=bus.pd, ql=bus.qd))
        if bus.gs != 0.0 or bus.bs != 0.0:
            network.fixed_shunts.append(RawFixedShunt(i=bus.bus_i, gl=bus.gs, bl=bus.bs))

    load_ids = defaultdict(int, {load.i: 1 for load in network.loads})
    gen_ids = defaultdict(int)
    dispatchable = 0
    for gen in case.generators:
        if gen.is_load():
            # Dispatchable loads become fixed loads at their largest consumption
            area, zone = bus_area.get(gen.gen_bus, (1, 1))
            network.loads.append(RawLoad(
                i=gen.gen_bus, id=_circuit(load_ids, gen.gen_bus), status=gen.gen_status,
                area=area, zone=zone, pl=-gen.pmin, ql=-gen.qmin,
            ))
            dispatchable += 1
        else:
            network.generators.append(RawGenerator(
                i=gen.gen_bus, id=_circuit(gen_ids, gen.gen_bus), pg=gen.pg, qg=gen.qg,
                qt=gen.qmax, qb=gen.qmin, vs=gen.vg, mbase=gen.mbase,
                stat=gen.gen_status, pt=gen.pmax, pb=gen.pmin,
            ))
    if dispatchable:
        report.add(_loss(
            "gen", "pmin", dispatchable,
            f"{dispatchable} dispatchable load(s) written as fixed loads at -pmin, -qmin",
        ))

    line_ckts = defaultdict(int)
    tr_ckts = defaultdict(int)
    charged = 0
    for br in case.branches:
        key = (br.f_bus, br.t_bus)
        if _is_raw_transformer(br):
            if br.br_b != 0.0:
                charged += 1
            network.transformers.append(RawTransformer(
                i=br.f_bus, j=br.t_bus, ckt=_circuit(tr_ckts, key), stat=br.br_status,
                r1_2=br.br_r, x1_2=br.br_x, sbase1_2=case.base_mva,
                windv1=br.tap, ang1=br.shift,
                rata1=br.rate_a, ratb1=br.rate_b, ratc1=br.rate_c,
            ))
        else:
            network.branches.append(RawBranch(
                i=br.f_bus, j=br.t_bus, ckt=_circuit(line_ckts, key),
                r=br.br_r, x=br.br_x, b=br.br_b,
                rate_a=br.rate_a, rate_b=br.rate_b, rate_c=br.rate_c, st=br.br_status,
            ))
    if charged:
        report.add(_loss(
            "branch", "br_b", charged,
            f"line charging of {charged} transformer(s) has no raw counterpart, dropped",
        ))

    logger.info("> Convert case %r to raw records ... ok (%d losses).", case.name, len(report))
    return network, report


# ------------------------------------------------------------
# Raw -> case
# ------------------------------------------------------------
def _nonzero(tr, name, value):
    if value == 0:
        raise RawFormatError(f"transformer {tr.i}-{tr.j}: {name} is zero")
    return value


def transformer_tap(tr, f_bus, t_bus):
    """
    Off-nominal turns ratio of a two-winding transformer, per its ``cw`` code.

    Raises RawFormatError for an unknown code or a zero winding voltage or
    base voltage.
    """
    if tr.cw == 1:
        return tr.windv1 / _nonzero(tr, "windv2", tr.windv2)
    if tr.cw == 2:
        f_kv = _nonzero(tr, f"base_kv of bus {f_bus.bus_i}", f_bus.base_kv)
        t_kv = _nonzero(tr, f"base_kv of bus {t_bus.bus_i}", t_bus.base_kv)
        return (tr.windv1 / f_kv) / (_nonzero(tr, "windv2", tr.windv2) / t_kv)
    if tr.cw == 3:
        f_kv = _nonzero(tr, f"base_kv of bus {f_bus.bus_i}", f_bus.base_kv)
        t_kv = _nonzero(tr, f"base_kv of bus {t_bus.bus_i}", t_bus.base_kv)
        nomv1 = tr.nomv1 or f_kv
        nomv2 = tr.nomv2 or t_kv
        return (tr.windv1 * nomv1 / f_kv) / (_nonzero(tr, "windv2", tr.windv2) * nomv2 / t_kv)
    raise RawFormatError(f"transformer {tr.i}-{tr.j}: cw ({tr.cw}) must be 1, 2 or 3")


def transformer_impedance(tr, base_mva):
    """Series (r, x) in pu on the system base, per the ``cz`` code."""
    if tr.cz == 1:
        return tr.r1_2, tr.x1_2
    if tr.cz == 2:
        scale = base_mva / _nonzero(tr, "sbase1_2", tr.sbase1_2)
        return tr.r1_2 * scale, tr.x1_2 * scale
    if tr.cz == 3:
        sbase = _nonzero(tr, "sbase1_2", tr.sbase1_2)
        # r1_2 is the load loss in W, x1_2 the impedance magnitude
        r = 1e-6 * tr.r1_2 / sbase
        x = math.sqrt(max(tr.x1_2 ** 2 - r ** 2, 0.0))
        scale = base_mva / sbase
        return r * scale, x * scale
    raise RawFormatError(f"transformer {tr.i}-{tr.j}: cz ({tr.cz}) must be 1, 2 or 3")


def _status(stat):
    return IN_SERVICE if stat != 0 else OUT_OF_SERVICE


def raw_to_case(network, settings=None):
    """
    Build and validate a case from raw records.

    Loads (constant power, current and admittance parts, evaluated at the
    bus voltage), fixed shunts, switched shunts and line end shunts fold
    into the bus demand and shunt fields. A load or shunt at an unknown
    bus is reported as an error next to the violations of the validation
    pass; branches, transformers and generators keep their raw bus
    numbers, so validation reports their dangling references. Raises
    ValidationFailed listing all of them.
    """
    base_mva = network.caseid.sbase

    buses = []
    for raw in network.buses:
        try:
            buses.append(Bus(
                bus_i=raw.i, bus_type=raw.ide, bus_area=raw.area, zone=raw.zone,
                vm=raw.vm, va=raw.va, base_kv=raw.basekv, vmax=raw.nvhi, vmin=raw.nvlo,
            ))
        except DomainError as err:
            raise RawFormatError(f"bus {raw.i}: {err}") from err
    index = {}
    for bus in buses:
        index.setdefault(bus.bus_i, bus)

    orphans = []

    def find(bus_i, what, field_name):
        bus = index.get(bus_i)
        if bus is None:
            orphans.append(Violation(
                Severity.ERROR, "bus", bus_i, field_name, f"{what} at unknown bus {bus_i}", None,
            ))
        return bus

    for load in network.loads:
        if load.status == 0:
            continue
        bus = find(load.i, "load", "pd")
        if bus is not None:
            vm = bus.vm
            bus.pd += load.pl + load.ip * vm + load.yp * vm ** 2
            bus.qd += load.ql + load.iq * vm - load.yq * vm ** 2

    for shunt in network.fixed_shunts:
        if shunt.status != 0:
            bus = find(shunt.i, "fixed shunt", "bs")
            if bus is not None:
                bus.gs += shunt.gl
                bus.bs += shunt.bl

    for shunt in network.switched_shunts:
        if shunt.stat != 0:
            bus = find(shunt.i, "switched shunt", "bs")
            if bus is not None:
                bus.bs += shunt.binit

    generators = [
        Generator(
            gen_bus=raw.i, pg=raw.pg, qg=raw.qg, qmax=raw.qt, qmin=raw.qb, vg=raw.vs,
            mbase=raw.mbase, gen_status=_status(raw.stat), pmax=raw.pt, pmin=raw.pb,
        )
        for raw in network.generators
    ]

    branches = []
    for raw in network.branches:
        t_bus = abs(raw.j)
        branches.append(Branch(
            f_bus=raw.i, t_bus=t_bus, br_r=raw.r, br_x=raw.x, br_b=raw.b,
            rate_a=raw.rate_a, rate_b=raw.rate_b, rate_c=raw.rate_c, br_status=_status(raw.st),
        ))
        if raw.st != 0:
            # Line end shunts at an unknown bus go with the branch's own violation
            f_end, t_end = index.get(raw.i), index.get(t_bus)
            if f_end is not None:
                f_end.gs += raw.gi * base_mva
                f_end.bs += raw.bi * base_mva
            if t_end is not None:
                t_end.gs += raw.gj * base_mva
                t_end.bs += raw.bj * base_mva

    for raw in network.transformers:
        f_bus, t_bus = index.get(raw.i), index.get(raw.j)
        r, x = transformer_impedance(raw, base_mva)
        if f_bus is not None and t_bus is not None:
            tap = transformer_tap(raw, f_bus, t_bus)
        else:
            tap = raw.windv1 / _nonzero(raw, "windv2", raw.windv2)
        branches.append(Branch(
            f_bus=raw.i, t_bus=raw.j, br_r=r, br_x=x,
            rate_a=raw.rata1, rate_b=raw.ratb1, rate_c=raw.ratc1,
            tap=tap, shift=raw.ang1, br_status=_status(raw.stat),
        ))

    case = Case(
        base_mva=base_mva,
        buses=buses,
        generators=generators,
        branches=branches,
        name=network.caseid.title1,
    )
    report = Validator(settings=settings).validate(case)
    report.extend(orphans)
    if report.has_errors:
        logger.info("> Convert raw records to case %r ... %d errors.", case.name, len(report.errors))
        raise ValidationFailed(report)

    case.report = report
    logger.info("> Convert raw records to case %r ... ok.", case.name)
    return case
