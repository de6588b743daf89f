from dataclasses import dataclass
from typing import ClassVar
import math

from caseformat.generator.generator import IN_SERVICE, OUT_OF_SERVICE


@dataclass(slots=True)
class DCLine:
    """
    Dispatchable DC transmission line from ``f_bus`` to ``t_bus``.

    Flows and limits are in MW at the "from" end, reactive injections in
    MVAr at each end. Losses are ``loss0 + loss1 * pf``.
    """
    f_bus: int
    t_bus: int
    br_status: int = IN_SERVICE
    pf: float = 0.0
    pt: float = 0.0
    qf: float = 0.0
    qt: float = 0.0
    vf: float = 1.0
    vt: float = 1.0
    pmin: float = -math.inf
    pmax: float = math.inf
    qminf: float = -math.inf
    qmaxf: float = math.inf
    qmint: float = -math.inf
    qmaxt: float = math.inf
    loss0: float = 0.0
    loss1: float = 0.0
    mu_pmin: float | None = None
    mu_pmax: float | None = None
    mu_qminf: float | None = None
    mu_qmaxf: float | None = None
    mu_qmint: float | None = None
    mu_qmaxt: float | None = None
    table: ClassVar[str] = "dcline"
    optional_groups: ClassVar[dict] = {
        "opf": ("mu_pmin", "mu_pmax", "mu_qminf", "mu_qmaxf", "mu_qmint", "mu_qmaxt"),
    }
    group_requires: ClassVar[dict] = {}

    def is_on(self):
        return self.br_status != OUT_OF_SERVICE

    def is_off(self):
        return self.br_status == OUT_OF_SERVICE

    def is_self_loop(self):
        return self.f_bus == self.t_bus

    def is_opf(self):
        return all(getattr(self, name) is not None for name in self.optional_groups["opf"])
