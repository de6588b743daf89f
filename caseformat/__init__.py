"""
caseformat: validated power flow case files.

A Case holds the bus, generator, branch, generator cost and DC line tables
of a MATPOWER style power flow case. Cases are read from archives, CSV
directories, JSON documents or in-memory tabular text, always through
decoding and validation, and written back to the same forms.

Logging goes to the ``caseformat`` logger, silent unless configured:

    import logging
    logging.getLogger("caseformat").setLevel(logging.INFO)
"""

import logging

__version__ = "1.0.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

from caseformat.errors import (
    CaseFormatError,
    CellError,
    DomainError,
    DecodeFailed,
    ValidationFailed,
    ArchiveCorrupt,
    RawFormatError,
)
from caseformat.bus.bus import Bus, BusType
from caseformat.generator.generator import Generator
from caseformat.branch.branch import Branch
from caseformat.gencost.gencost import GeneratorCost, CostModel
from caseformat.dcline.dcline import DCLine
from caseformat.case.core import Case, FORMAT_VERSION, TABLES
from caseformat.validation.report import Severity, Violation, ConversionLoss, ValidationReport
from caseformat.validation.core import Validator
from caseformat.main import parse_case, serialize_case, validate, read_tables
from caseformat.io.matpower import write_mpc
