from dataclasses import dataclass
from typing import ClassVar

from caseformat.utils.data_tools import coerce_enum
from caseformat.utils.enums import TokenEnum


class CostModel(TokenEnum):
    """Generator cost function model."""
    PW_LINEAR = 1
    POLYNOMIAL = 2


@dataclass(slots=True)
class GeneratorCost:
    """
    Cost function of the generator at 1-based position ``gen_index``.

    #### Attributes:
    - model: PW_LINEAR or POLYNOMIAL.
    - startup, shutdown: Startup and shutdown costs (US dollars).
    - ncost: Number of breakpoints (PW_LINEAR) or coefficients (POLYNOMIAL).
    - costs: Flat cost data. POLYNOMIAL holds ``ncost`` coefficients,
      highest order first. PW_LINEAR holds ``ncost`` (p, f) pairs
      flattened as ``(p1, f1, p2, f2, ...)``, p in MW and f in US dollars per hour.
    """
    gen_index: int
    model: CostModel = CostModel.POLYNOMIAL
    startup: float = 0.0
    shutdown: float = 0.0
    ncost: int = 0
    costs: tuple[float, ...] = ()
    table: ClassVar[str] = "gencost"
    optional_groups: ClassVar[dict] = {}
    group_requires: ClassVar[dict] = {}

    def __post_init__(self):
        self.model = coerce_enum(CostModel, self.model, "model")
        self.costs = tuple(self.costs)

    def is_pwl(self):
        return self.model == CostModel.PW_LINEAR

    def is_polynomial(self):
        return self.model == CostModel.POLYNOMIAL

    def expected_length(self):
        """Length of ``costs`` implied by ``model`` and ``ncost``."""
        return 2 * self.ncost if self.is_pwl() else self.ncost

    @property
    def points(self):
        """Piecewise linear breakpoints as (p, f) pairs."""
        if not self.is_pwl():
            raise ValueError("points are only defined for PW_LINEAR costs")
        return list(zip(self.costs[0::2], self.costs[1::2]))

    @property
    def coeffs(self):
        """Polynomial coefficients, highest order first."""
        if not self.is_polynomial():
            raise ValueError("coeffs are only defined for POLYNOMIAL costs")
        return list(self.costs)
