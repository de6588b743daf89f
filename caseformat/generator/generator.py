from dataclasses import dataclass
from typing import ClassVar
import math

IN_SERVICE = 1
OUT_OF_SERVICE = 0

# Capability curve and ramping columns, absent from version 1 case files
CAPABILITY_FIELDS = (
    "pc1", "pc2", "qc1min", "qc1max", "qc2min", "qc2max",
    "ramp_agc", "ramp_10", "ramp_30", "ramp_q", "apf",
)


@dataclass(slots=True)
class Generator:
    """
    Generator or dispatchable load.

    The generator is attached to the bus numbered ``gen_bus``. It is
    identified by its 1-based position in the generator table, which is
    what GeneratorCost.gen_index refers to.
    """
    gen_bus: int
    pg: float = 0.0
    qg: float = 0.0
    qmax: float = math.inf
    qmin: float = -math.inf
    vg: float = 1.0
    mbase: float = 0.0
    gen_status: int = IN_SERVICE
    pmax: float = math.inf
    pmin: float = -math.inf
    pc1: float | None = None
    pc2: float | None = None
    qc1min: float | None = None
    qc1max: float | None = None
    qc2min: float | None = None
    qc2max: float | None = None
    ramp_agc: float | None = None
    ramp_10: float | None = None
    ramp_30: float | None = None
    ramp_q: float | None = None
    apf: float | None = None
    mu_pmax: float | None = None
    mu_pmin: float | None = None
    mu_qmax: float | None = None
    mu_qmin: float | None = None
    table: ClassVar[str] = "gen"
    optional_groups: ClassVar[dict] = {
        "capability": CAPABILITY_FIELDS,
        "opf": ("mu_pmax", "mu_pmin", "mu_qmax", "mu_qmin"),
    }
    # OPF results are only written next to the capability columns
    group_requires: ClassVar[dict] = {"opf": ("capability",)}

    def is_on(self):
        return self.gen_status != OUT_OF_SERVICE

    def is_off(self):
        return self.gen_status == OUT_OF_SERVICE

    def is_load(self):
        """Dispatchable loads are modelled as generators with negative output."""
        return self.pmin < 0.0 and self.pmax == 0.0

    def is_version_1(self):
        return all(getattr(self, name) is None for name in CAPABILITY_FIELDS)

    def is_opf(self):
        return all(getattr(self, name) is not None for name in self.optional_groups["opf"])
