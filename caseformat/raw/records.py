from dataclasses import dataclass, field
from typing import ClassVar

from caseformat.errors import DomainError

# Fixed widths of the raw format string fields
ID_LENGTH = 2
NAME_LENGTH = 12


def _check_length(record, name, limit):
    value = getattr(record, name)
    if len(value) > limit:
        raise DomainError(
            f"{type(record).__name__}.{name} holds at most {limit} characters, got {value!r}"
        )
    # Quoted fields have no escape for the quote character
    if "'" in value:
        raise DomainError(f"{type(record).__name__}.{name} must not contain a single quote, got {value!r}")


@dataclass(slots=True)
class RawCaseId:
    """Case identification record (first line) and the two title lines."""
    ic: int = 0
    sbase: float = 100.0
    rev: int = 33
    xfrrat: int = 0
    nxfrat: int = 0
    basfrq: float = 60.0
    title1: str = ""
    title2: str = ""
    fields_on_line: ClassVar[tuple] = ("ic", "sbase", "rev", "xfrrat", "nxfrat", "basfrq")


@dataclass(slots=True)
class RawBus:
    i: int
    name: str = ""
    basekv: float = 0.0
    ide: int = 1
    area: int = 1
    zone: int = 1
    owner: int = 1
    vm: float = 1.0
    va: float = 0.0
    nvhi: float = 1.1
    nvlo: float = 0.9
    evhi: float = 1.1
    evlo: float = 0.9

    def __post_init__(self):
        _check_length(self, "name", NAME_LENGTH)


@dataclass(slots=True)
class RawLoad:
    """Load at bus ``i``: constant power (pl, ql), current (ip, iq) and admittance (yp, yq) parts."""
    i: int
    id: str = "1"
    status: int = 1
    area: int = 1
    zone: int = 1
    pl: float = 0.0
    ql: float = 0.0
    ip: float = 0.0
    iq: float = 0.0
    yp: float = 0.0
    yq: float = 0.0
    owner: int = 1
    scale: int = 1
    intrpt: int = 0

    def __post_init__(self):
        _check_length(self, "id", ID_LENGTH)


@dataclass(slots=True)
class RawFixedShunt:
    i: int
    id: str = "1"
    status: int = 1
    gl: float = 0.0
    bl: float = 0.0

    def __post_init__(self):
        _check_length(self, "id", ID_LENGTH)


@dataclass(slots=True)
class RawSwitchedShunt:
    """Switched shunt. Only the initial susceptance ``binit`` is carried, the switching blocks are not."""
    i: int
    modsw: int = 1
    adjm: int = 0
    stat: int = 1
    vswhi: float = 1.0
    vswlo: float = 1.0
    swrem: int = 0
    rmpct: float = 100.0
    rmidnt: str = ""
    binit: float = 0.0

    def __post_init__(self):
        _check_length(self, "rmidnt", NAME_LENGTH)


@dataclass(slots=True)
class RawGenerator:
    i: int
    id: str = "1"
    pg: float = 0.0
    qg: float = 0.0
    qt: float = 9999.0
    qb: float = -9999.0
    vs: float = 1.0
    ireg: int = 0
    mbase: float = 100.0
    zr: float = 0.0
    zx: float = 1.0
    rt: float = 0.0
    xt: float = 0.0
    gtap: float = 1.0
    stat: int = 1
    rmpct: float = 100.0
    pt: float = 9999.0
    pb: float = -9999.0

    def __post_init__(self):
        _check_length(self, "id", ID_LENGTH)


@dataclass(slots=True)
class RawBranch:
    """Non-transformer branch. A negative ``j`` marks the metered end, only its magnitude is a bus number."""
    i: int
    j: int
    ckt: str = "1"
    r: float = 0.0
    x: float = 0.0
    b: float = 0.0
    rate_a: float = 0.0
    rate_b: float = 0.0
    rate_c: float = 0.0
    gi: float = 0.0
    bi: float = 0.0
    gj: float = 0.0
    bj: float = 0.0
    st: int = 1
    met: int = 1
    len: float = 0.0

    def __post_init__(self):
        _check_length(self, "ckt", ID_LENGTH)


@dataclass(slots=True)
class RawTransformer:
    """
    Two-winding transformer, written on four lines.

    ``cw`` is the winding data I/O code (1: off-nominal turns ratio in pu,
    2: winding voltage in kV, 3: pu of the nominal winding voltage) and
    ``cz`` the impedance I/O code (1: pu on system base, 2: pu on the
    winding base ``sbase1_2``, 3: load loss in watts and impedance
    magnitude in pu on the winding base).
    """
    i: int
    j: int
    k: int = 0
    ckt: str = "1"
    cw: int = 1
    cz: int = 1
    cm: int = 1
    mag1: float = 0.0
    mag2: float = 0.0
    nmetr: int = 2
    name: str = ""
    stat: int = 1
    r1_2: float = 0.0
    x1_2: float = 0.0
    sbase1_2: float = 100.0
    windv1: float = 1.0
    nomv1: float = 0.0
    ang1: float = 0.0
    rata1: float = 0.0
    ratb1: float = 0.0
    ratc1: float = 0.0
    cod1: int = 0
    cont1: int = 0
    rma1: float = 1.1
    rmi1: float = 0.9
    vma1: float = 1.1
    vmi1: float = 0.9
    ntp1: int = 33
    tab1: int = 0
    cr1: float = 0.0
    cx1: float = 0.0
    cnxa1: float = 0.0
    windv2: float = 1.0
    nomv2: float = 0.0
    lines: ClassVar[tuple] = (
        ("i", "j", "k", "ckt", "cw", "cz", "cm", "mag1", "mag2", "nmetr", "name", "stat"),
        ("r1_2", "x1_2", "sbase1_2"),
        ("windv1", "nomv1", "ang1", "rata1", "ratb1", "ratc1", "cod1", "cont1",
         "rma1", "rmi1", "vma1", "vmi1", "ntp1", "tab1", "cr1", "cx1", "cnxa1"),
        ("windv2", "nomv2"),
    )

    def __post_init__(self):
        _check_length(self, "ckt", ID_LENGTH)
        _check_length(self, "name", NAME_LENGTH)


@dataclass(slots=True)
class RawNetwork:
    """Raw power flow records of one case, section by section."""
    caseid: RawCaseId = field(default_factory=RawCaseId)
    buses: list = field(default_factory=list)
    loads: list = field(default_factory=list)
    fixed_shunts: list = field(default_factory=list)
    generators: list = field(default_factory=list)
    branches: list = field(default_factory=list)
    transformers: list = field(default_factory=list)
    switched_shunts: list = field(default_factory=list)
