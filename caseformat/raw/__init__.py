from caseformat.raw.records import (
    RawCaseId, RawBus, RawLoad, RawFixedShunt, RawSwitchedShunt,
    RawGenerator, RawBranch, RawTransformer, RawNetwork,
)
from caseformat.raw.psse import decode_raw, encode_raw
from caseformat.raw.bridge import FIELD_MAP, case_to_raw, raw_to_case
