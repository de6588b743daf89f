import math
import unittest

from caseformat import Bus, Branch, BusType, TABLES
from caseformat.io.tabular import (
    decode_table, encode_table, records_from_rows, count_records, header_for, parse_cell,
)
from tests.cases import three_bus_case, BUS_TEXT, BRANCH_TEXT

BUS_HEADER = "bus_i,bus_type,pd,qd,gs,bs,bus_area,vm,va,base_kv,zone,vmax,vmin"


def bus_line(bus_i, bus_type="PQ", pd="0.0"):
    return f"{bus_i},{bus_type},{pd},0.0,0.0,0.0,1,1.0,0.0,345.0,1,1.1,0.9"


class TestTabularRoundTrip(unittest.TestCase):

    def test_each_table_round_trips(self):
        case = three_bus_case()
        for table in TABLES:
            records = case.table(table)
            rows, errors = decode_table(table, encode_table(table, records))
            self.assertEqual(errors, [])
            self.assertEqual(records_from_rows(table, rows), records)

    def test_encode_is_stable_text(self):
        case = three_bus_case()
        text = encode_table("bus", case.buses)
        self.assertEqual(text, BUS_TEXT)
        rows, _ = decode_table("bus", text)
        self.assertEqual(encode_table("bus", records_from_rows("bus", rows)), text)

    def test_unbounded_values_and_optional_groups(self):
        buses = [
            Bus(1, BusType.REF),
            Bus(2, lam_p=10.0, lam_q=0.5, mu_vmax=0.0, mu_vmin=0.0),
        ]
        text = encode_table("bus", buses)
        self.assertTrue(text.splitlines()[0].endswith("lam_p,lam_q,mu_vmax,mu_vmin"))
        rows, errors = decode_table("bus", text)
        self.assertEqual(errors, [])
        decoded = records_from_rows("bus", rows)
        self.assertEqual(decoded, buses)
        self.assertEqual(decoded[0].vmax, math.inf)
        self.assertIsNone(decoded[0].lam_p)

    def test_fixed_precision(self):
        text = encode_table("branch", [Branch(1, 2, br_x=0.0576)], float_format=3)
        self.assertIn("1,2,0.000,0.058,", text)

    def test_costs_cell(self):
        case = three_bus_case()
        text = encode_table("gencost", case.gencosts)
        self.assertIn("0.11 5.0 150.0", text)


class TestTabularDecode(unittest.TestCase):

    def test_header_only_table_is_empty(self):
        rows, errors = decode_table("bus", BUS_HEADER + "\n")
        self.assertEqual((rows, errors), ([], []))

    def test_trailing_blank_lines_are_ignored(self):
        rows, errors = decode_table("branch", BRANCH_TEXT + "\n\n\n")
        self.assertEqual(errors, [])
        self.assertEqual([r.row for r in rows], [1, 2])
        self.assertEqual(count_records(BRANCH_TEXT + "\n\n"), 2)

    def test_all_errors_surfaced(self):
        lines = [BUS_HEADER]
        for bus_i in range(1, 9):
            if bus_i == 2:
                lines.append(bus_line(bus_i, pd="abc"))
            elif bus_i == 5:
                lines.append(bus_line(bus_i).rsplit(",", 1)[0])
            elif bus_i == 7:
                lines.append(bus_line(bus_i, bus_type="SLACK"))
            else:
                lines.append(bus_line(bus_i))

        rows, errors = decode_table("bus", "\n".join(lines))

        self.assertEqual([e.row for e in errors], [2, 5, 7])
        self.assertEqual([e.column for e in errors], ["pd", "vmin", "bus_type"])
        self.assertEqual(errors[0].raw_value, "abc")
        self.assertEqual(errors[0].reason, "expected a number")
        self.assertEqual(errors[1].reason, "missing column")
        self.assertTrue(errors[2].reason.startswith("unknown token"))
        self.assertEqual([r.row for r in rows], [1, 3, 4, 6, 8])

    def test_extra_cell(self):
        text = "\n".join([BUS_HEADER, bus_line(1) + ",42"])
        rows, errors = decode_table("bus", text)
        self.assertEqual(rows, [])
        self.assertEqual(len(errors), 1)
        self.assertEqual(errors[0].column, "#14")
        self.assertEqual(errors[0].raw_value, "42")
        self.assertEqual(errors[0].reason, "extra column")

    def test_duplicate_header_column(self):
        text = "\n".join([BUS_HEADER + ",pd", bus_line(1) + ",1.0"])
        rows, errors = decode_table("bus", text)
        self.assertEqual(len(errors), 1)
        self.assertEqual((errors[0].row, errors[0].column, errors[0].reason), (0, "pd", "duplicate column"))
        self.assertEqual(len(rows), 1)

    def test_missing_required_column(self):
        header = BUS_HEADER.replace(",base_kv", "")
        line = bus_line(1).replace(",345.0", "")
        rows, errors = decode_table("bus", "\n".join([header, line]))
        self.assertEqual(rows, [])
        self.assertEqual([(e.row, e.column, e.reason) for e in errors], [(0, "base_kv", "missing column")])

    def test_unknown_header_column(self):
        text = "\n".join([BUS_HEADER + ",name", bus_line(1) + ",north"])
        rows, errors = decode_table("bus", text)
        self.assertEqual([(e.row, e.column, e.reason) for e in errors], [(0, "name", "unknown column")])
        self.assertEqual(len(rows), 1)

    def test_missing_header(self):
        rows, errors = decode_table("gen", "")
        self.assertEqual(rows, [])
        self.assertEqual(errors[0].reason, "missing header")

    def test_oversized_cell_is_a_row_error(self):
        header = "gen_index,model,startup,shutdown,ncost,costs"
        huge = " ".join(["1.0"] * 50000)
        text = "\n".join([header, f"1,POLYNOMIAL,0,0,50000,{huge}", "2,POLYNOMIAL,0,0,1,5.0", ""])
        self.assertEqual(count_records(text), 2)
        rows, errors = decode_table("gencost", text)
        self.assertEqual([(e.row, e.reason[:14]) for e in errors], [(1, "unreadable row")])
        self.assertEqual([r.row for r in rows], [2])

    def test_columns_matched_by_name(self):
        text = "bus_i,bus_type,vmin,vmax,pd,qd,gs,bs,bus_area,vm,va,base_kv,zone\n3,PV,0.95,1.05,1,2,0,0,1,1,0,138,1\n"
        rows, errors = decode_table("bus", text)
        self.assertEqual(errors, [])
        bus = records_from_rows("bus", rows)[0]
        self.assertEqual((bus.bus_type, bus.vmin, bus.vmax, bus.base_kv), (BusType.PV, 0.95, 1.05, 138.0))


class TestCells(unittest.TestCase):

    def test_parse_cell(self):
        self.assertEqual(parse_cell(int, False, " 7 "), 7)
        self.assertEqual(parse_cell(float, False, "-inf"), -math.inf)
        self.assertIsNone(parse_cell(float, True, ""))
        with self.assertRaisesRegex(ValueError, "missing value"):
            parse_cell(float, False, "")
        with self.assertRaisesRegex(ValueError, "expected an integer"):
            parse_cell(int, False, "1.5")

    def test_header_for_adds_required_groups(self):
        branch = Branch(1, 2, mu_sf=0.0, mu_st=0.0, mu_angmin=0.0, mu_angmax=0.0)
        header = header_for("branch", [branch])
        self.assertIn("pf", header)
        self.assertIn("mu_sf", header)


if __name__ == '__main__':
    unittest.main()
