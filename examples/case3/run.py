"""
Case3 is a three bus network with one generator, two lines and one
polynomial cost curve.

First, we read the CSV tables of this directory. Reading validates the
case, so any problem in the tables is reported here with its table, row
and column.

Second, we package the case as an archive, read it back and check that
nothing was lost on the way. We also export it to PSS/E raw text and
list the fields the raw format cannot hold.
"""

# Import Python standard and third-party packages
import logging
from pathlib import Path

# Import caseformat package
from caseformat import Case, parse_case, serialize_case
from caseformat.columnar import to_columnar
from caseformat.raw import case_to_raw, encode_raw

logging.basicConfig(level=logging.INFO, format="%(message)s")

# Specify path of the case study directory
case_dir = Path(__file__).resolve().parent

# Read and validate the case
case = Case.from_csv(case_dir)
print(case)
print(case.report.to_table())

# Archive round trip
data = serialize_case(case)
print(f"Archive: {len(data)} bytes")
print("Round trip ok:", parse_case(data) == case)

# Columnar form for vectorized consumers
columns = to_columnar(case)
print(columns.to_dataframe("bus"))

# Raw export
network, losses = case_to_raw(case)
(case_dir / "outputs").mkdir(exist_ok=True)
with open(case_dir / "outputs" / "case3.raw", "wb") as f:
    f.write(encode_raw(network))
print(losses.to_table())
