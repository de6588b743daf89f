from dataclasses import dataclass
from typing import ClassVar

from caseformat.generator.generator import IN_SERVICE, OUT_OF_SERVICE


@dataclass(slots=True)
class Branch:
    """
    Transmission line, cable or two winding transformer between
    buses ``f_bus`` and ``t_bus``.

    Ratings are in MVA with 0 meaning unbounded. A non-zero ``tap``
    marks a transformer. Angle difference bounds are optional but
    come in pairs.
    """
    f_bus: int
    t_bus: int
    br_r: float = 0.0
    br_x: float = 0.0
    br_b: float = 0.0
    rate_a: float = 0.0
    rate_b: float = 0.0
    rate_c: float = 0.0
    tap: float = 0.0
    shift: float = 0.0
    br_status: int = IN_SERVICE
    angmin: float | None = None
    angmax: float | None = None
    pf: float | None = None
    qf: float | None = None
    pt: float | None = None
    qt: float | None = None
    mu_sf: float | None = None
    mu_st: float | None = None
    mu_angmin: float | None = None
    mu_angmax: float | None = None
    table: ClassVar[str] = "branch"
    optional_groups: ClassVar[dict] = {
        "angle": ("angmin", "angmax"),
        "flow": ("pf", "qf", "pt", "qt"),
        "opf": ("mu_sf", "mu_st", "mu_angmin", "mu_angmax"),
    }
    # Result columns follow the angle limits in the case file layout
    group_requires: ClassVar[dict] = {"flow": ("angle",), "opf": ("flow",)}

    def is_on(self):
        return self.br_status != OUT_OF_SERVICE

    def is_off(self):
        return self.br_status == OUT_OF_SERVICE

    def is_transformer(self):
        return self.tap != 0.0

    def is_self_loop(self):
        return self.f_bus == self.t_bus

    def is_pf(self):
        return all(getattr(self, name) is not None for name in self.optional_groups["flow"])

    def is_opf(self):
        return self.is_pf() and all(
            getattr(self, name) is not None for name in self.optional_groups["opf"]
        )
