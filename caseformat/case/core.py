# Import Python packages
from dataclasses import dataclass, field
from datetime import datetime
import logging
import math
import numbers

# Import caseformat code
from caseformat.errors import DomainError
from caseformat.bus.bus import Bus
from caseformat.generator.generator import Generator
from caseformat.branch.branch import Branch
from caseformat.gencost.gencost import GeneratorCost
from caseformat.dcline.dcline import DCLine

logger = logging.getLogger(__name__)

# Case format version written by this package (semantic version triple)
FORMAT_VERSION = (1, 0, 0)

# Table names in the order they are read, written and reported
TABLES = ("bus", "gen", "branch", "gencost", "dcline")

# Tables every case file carries, the others are written only when populated
REQUIRED_TABLES = ("bus", "gen", "branch", "gencost")

RECORD_CLASSES = {
    "bus": Bus,
    "gen": Generator,
    "branch": Branch,
    "gencost": GeneratorCost,
    "dcline": DCLine,
}

# Case attribute holding each table
TABLE_ATTRIBUTES = {
    "bus": "buses",
    "gen": "generators",
    "branch": "branches",
    "gencost": "gencosts",
    "dcline": "dclines",
}


def parse_version(version):
    """Return a version as a (major, minor, patch) tuple of non-negative integers."""
    parts = version.split(".") if isinstance(version, str) else version
    try:
        triple = tuple(int(p) for p in parts)
    except (TypeError, ValueError) as err:
        raise DomainError(f"version must be a semantic version triple, got {version!r}") from err
    if len(triple) != 3 or any(p < 0 for p in triple):
        raise DomainError(f"version must be a semantic version triple, got {version!r}")
    return triple


def format_version(version):
    return ".".join(str(p) for p in version)


@dataclass
class Case:
    """
    Power flow case: a system base and the bus, generator, branch and
    generator cost tables.

    Records reference each other by id (bus number, generator position),
    never by object, so a case maps one to one onto flat tables. A case
    returned by the parsing functions has passed validation, and
    ``report`` holds the warnings found on the way.

    ### Inputs:
    - base_mva (float): System MVA base, positive.
    - buses, generators, branches, gencosts, dclines (list): Records in table order.
    - version: Format version as a triple or "major.minor.patch".
    - created_at (datetime): Optional, timezone aware.
    - name (str): Case name.
    """
    base_mva: float = 100.0
    buses: list = field(default_factory=list)
    generators: list = field(default_factory=list)
    branches: list = field(default_factory=list)
    gencosts: list = field(default_factory=list)
    dclines: list = field(default_factory=list)
    version: tuple = FORMAT_VERSION
    created_at: datetime | None = None
    name: str = ""
    report: object = field(default=None, compare=False, repr=False)
    _bus_index: dict = field(default=None, init=False, compare=False, repr=False)
    _indexed: int = field(default=0, init=False, compare=False, repr=False)

    def __post_init__(self):
        if (
            not isinstance(self.base_mva, numbers.Real)
            or isinstance(self.base_mva, bool)
            or not math.isfinite(self.base_mva)
            or self.base_mva <= 0
        ):
            raise DomainError(f"base_mva must be a positive finite number, got {self.base_mva!r}")
        self.base_mva = float(self.base_mva)
        self.version = parse_version(self.version)

        if self.created_at is not None:
            if not isinstance(self.created_at, datetime):
                raise DomainError(f"created_at must be a datetime, got {self.created_at!r}")
            if self.created_at.tzinfo is None:
                raise DomainError("created_at must be timezone aware")

        self.buses = list(self.buses)
        self.generators = list(self.generators)
        self.branches = list(self.branches)
        self.gencosts = list(self.gencosts)
        self.dclines = list(self.dclines)

    # ------------------------------------------------------------
    # Construction + Read/Write
    # ------------------------------------------------------------
    def add(self, record):
        """Append a record to the table matching its type."""
        table = getattr(type(record), "table", None)
        if table not in TABLE_ATTRIBUTES:
            raise TypeError(f"cannot add {type(record).__name__} to a case")
        self.table(table).append(record)
        return record

    @classmethod
    def from_csv(cls, case_dir, settings=None):
        """Read a case from the CSV files of a directory (see io.archive.read_dir)."""
        from caseformat.io.archive import read_dir

        return read_dir(case_dir, settings=settings)

    def to_csv(self, output_dir):
        """Write the case as CSV files into a directory (see io.archive.write_dir)."""
        from caseformat.io.archive import write_dir

        write_dir(self, output_dir)

    def to_mpc(self, filepath):
        """Write the case as a MATPOWER .m file (see io.matpower.write_mpc)."""
        from caseformat.io.matpower import write_mpc

        with open(filepath, "w", encoding="utf-8") as f:
            f.write(write_mpc(self))

    # ------------------------------------------------------------
    # Tables + Lookups
    # ------------------------------------------------------------
    def table(self, name):
        """Return the list of records of a table ('bus', 'gen', 'branch', 'gencost', 'dcline')."""
        try:
            return getattr(self, TABLE_ATTRIBUTES[name])
        except KeyError:
            raise KeyError(f"unknown table {name!r}, expected one of {TABLES}") from None

    def counts(self):
        """Number of records per table."""
        return {name: len(self.table(name)) for name in TABLES}

    def bus_index(self):
        """
        Map bus numbers to 0-based positions in ``buses``. A repeated bus
        number maps to its first row, the one validation treats as the
        owner. The map is built once and rebuilt only when the bus table
        changes length.
        """
        if self._bus_index is None or self._indexed != len(self.buses):
            self._bus_index = {}
            for i, bus in enumerate(self.buses):
                self._bus_index.setdefault(bus.bus_i, i)
            self._indexed = len(self.buses)
        return self._bus_index

    def find_bus(self, bus_i):
        """Return the bus numbered ``bus_i``. Raises KeyError if absent."""
        index = self.bus_index()
        if bus_i in index:
            bus = self.buses[index[bus_i]]
            if bus.bus_i == bus_i:
                return bus
        # Stale index (bus renumbered in place)
        self._bus_index = None
        return self.buses[self.bus_index()[bus_i]]

    def find_generator(self, gen_index):
        """Return the generator at 1-based position ``gen_index``. Raises KeyError if absent."""
        if isinstance(gen_index, bool) or not isinstance(gen_index, int):
            raise KeyError(gen_index)
        if gen_index < 1 or gen_index > len(self.generators):
            raise KeyError(gen_index)
        return self.generators[gen_index - 1]

    def generators_at(self, bus_i):
        """Generators attached to bus ``bus_i``, in table order."""
        return [g for g in self.generators if g.gen_bus == bus_i]

    def reference_buses(self):
        return [b for b in self.buses if b.is_ref()]

    @property
    def version_string(self):
        return format_version(self.version)

    def __repr__(self):
        counts = ", ".join(f"{n}={c}" for n, c in self.counts().items())
        return f"Case(name={self.name!r}, base_mva={self.base_mva}, {counts})"
