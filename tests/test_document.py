import json
import math
import unittest

from caseformat import Bus, BusType, Case, DCLine, DecodeFailed, ValidationFailed
from caseformat.io.document import to_document, from_document, dumps, loads
from tests.cases import three_bus_case


class TestDocument(unittest.TestCase):

    def test_round_trip(self):
        case = three_bus_case()
        self.assertEqual(from_document(to_document(case)), case)
        self.assertEqual(loads(dumps(case)), case)

    def test_dc_lines(self):
        case = three_bus_case()
        case.add(DCLine(1, 3, pmax=50.0, loss0=0.5))
        doc = to_document(case)
        self.assertEqual(doc["dcline"][0]["f_bus"], 1)
        self.assertEqual(doc["dcline"][0]["pmin"], "-inf")
        self.assertEqual(from_document(doc), case)

    def test_layout(self):
        doc = to_document(three_bus_case())
        self.assertEqual(doc["version"], "1.0.0")
        self.assertEqual(doc["base_power"], 100.0)
        self.assertEqual(len(doc["bus"]), 3)
        self.assertEqual(doc["bus"][0]["bus_type"], "REF")
        self.assertNotIn("lam_p", doc["bus"][0])
        self.assertNotIn("angmin", doc["branch"][0])
        self.assertEqual(doc["gencost"][0]["costs"], [0.11, 5.0, 150.0])
        self.assertEqual(doc["gencost"][0]["model"], "POLYNOMIAL")

    def test_unbounded_limits_are_plain_json(self):
        case = Case(name="flat")
        case.add(Bus(1, BusType.REF))
        text = dumps(case)
        self.assertNotIn("Infinity", text)
        self.assertEqual(json.loads(text)["bus"][0]["vmax"], "inf")
        self.assertEqual(loads(text).buses[0].vmin, -math.inf)

    def test_bad_values_are_cell_errors(self):
        doc = to_document(three_bus_case())
        doc["bus"][1]["pd"] = "lots"
        doc["gen"][0]["gen_status"] = True
        doc["branch"][0]["colour"] = "red"
        with self.assertRaises(DecodeFailed) as ctx:
            from_document(doc)
        located = [(e.table, e.row, e.column) for e in ctx.exception.errors]
        self.assertEqual(located, [("bus", 2, "pd"), ("gen", 1, "gen_status"), ("branch", 1, "colour")])

    def test_missing_required_field(self):
        doc = to_document(three_bus_case())
        del doc["gen"][0]["gen_bus"]
        with self.assertRaises(DecodeFailed) as ctx:
            from_document(doc)
        self.assertEqual(ctx.exception.errors[0].column, "gen_bus")
        self.assertEqual(ctx.exception.errors[0].reason, "missing value")

    def test_defaults_fill_absent_fields(self):
        doc = {"base_power": 100.0, "bus": [{"bus_i": 1, "bus_type": "REF"}]}
        case = from_document(doc)
        self.assertEqual(case.buses, [Bus(1, BusType.REF)])

    def test_import_validates(self):
        doc = to_document(three_bus_case())
        doc["gen"][0]["gen_bus"] = 9
        with self.assertRaises(ValidationFailed):
            from_document(doc)


if __name__ == '__main__':
    unittest.main()
