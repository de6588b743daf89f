from dataclasses import dataclass, field
from typing import ClassVar
import math

from caseformat.utils.data_tools import coerce_enum
from caseformat.utils.enums import TokenEnum


class BusType(TokenEnum):
    """Bus type enumeration."""
    PQ = 1          # Fixed active and reactive power
    PV = 2          # Fixed voltage magnitude and active power
    REF = 3         # Voltage angle reference, slack
    ISOLATED = 4


@dataclass(slots=True)
class Bus:
    """
    Network node.

    Attributes:
        bus_i: Bus number, positive and unique within a case
        bus_type: PQ, PV, REF or ISOLATED
        pd, qd: Real (MW) and reactive (MVAr) power demand
        gs, bs: Shunt conductance (MW) and susceptance (MVAr) at V = 1.0 p.u.
        bus_area: Area number
        vm, va: Voltage magnitude (p.u.) and angle (degrees)
        base_kv: Base voltage (kV)
        zone: Loss zone
        vmax, vmin: Voltage magnitude bounds (p.u.)
        lam_p ... mu_vmin: OPF results (all set or none)
    """
    bus_i: int
    bus_type: BusType = BusType.PQ
    pd: float = 0.0
    qd: float = 0.0
    gs: float = 0.0
    bs: float = 0.0
    bus_area: int = 1
    vm: float = 1.0
    va: float = 0.0
    base_kv: float = 0.0
    zone: int = 1
    vmax: float = math.inf
    vmin: float = -math.inf
    lam_p: float | None = None
    lam_q: float | None = None
    mu_vmax: float | None = None
    mu_vmin: float | None = None
    table: ClassVar[str] = "bus"
    optional_groups: ClassVar[dict] = {
        "opf": ("lam_p", "lam_q", "mu_vmax", "mu_vmin"),
    }
    group_requires: ClassVar[dict] = {}

    def __post_init__(self):
        self.bus_type = coerce_enum(BusType, self.bus_type, "bus_type")

    @property
    def id(self):
        return self.bus_i

    def is_pq(self):
        return self.bus_type == BusType.PQ

    def is_pv(self):
        return self.bus_type == BusType.PV

    def is_ref(self):
        return self.bus_type == BusType.REF

    def is_isolated(self):
        return self.bus_type == BusType.ISOLATED

    def is_opf(self):
        return all(getattr(self, name) is not None for name in self.optional_groups["opf"])
