import math
import unittest

import numpy as np

from caseformat import Case, Bus, Branch, GeneratorCost, CostModel, DCLine
from caseformat.columnar import to_columnar, to_records
from tests.cases import three_bus_case


class TestColumnar(unittest.TestCase):

    def test_round_trip(self):
        case = three_bus_case()
        self.assertEqual(to_records(to_columnar(case)), case)

    def test_round_trip_with_optional_values(self):
        case = three_bus_case()
        case.branches[0].angmin, case.branches[0].angmax = -30.0, 30.0
        case.add(Bus(4, lam_p=1.0, lam_q=0.0, mu_vmax=0.0, mu_vmin=0.0))
        case.add(GeneratorCost(1, CostModel.PW_LINEAR, ncost=2, costs=(0.0, 0.0, 100.0, 2000.0)))
        case.add(DCLine(2, 3, pmax=40.0, mu_pmin=0.0, mu_pmax=0.0, mu_qminf=0.0, mu_qmaxf=0.0, mu_qmint=0.0, mu_qmaxt=0.0))
        self.assertEqual(to_records(to_columnar(case)), case)

    def test_empty_case(self):
        case = Case(name="empty")
        columns = to_columnar(case)
        self.assertEqual(columns.size("bus"), 0)
        self.assertEqual(columns.size("gencost"), 0)
        self.assertEqual(to_records(columns), case)

    def test_dtypes(self):
        columns = to_columnar(three_bus_case())
        bus = columns.tables["bus"]
        self.assertEqual(bus["bus_i"].dtype, np.int64)
        self.assertEqual(bus["bus_type"].tolist(), [3, 1, 1])
        self.assertEqual(bus["pd"].dtype, np.float64)
        self.assertTrue(np.isnan(bus["lam_p"]).all())
        self.assertTrue(math.isnan(columns.tables["branch"]["angmin"][0]))

    def test_costs_layout(self):
        case = three_bus_case()
        case.add(GeneratorCost(1, CostModel.PW_LINEAR, ncost=2, costs=(0.0, 0.0, 100.0, 2000.0)))
        gencost = to_columnar(case).tables["gencost"]
        self.assertNotIn("costs", gencost)
        self.assertEqual(gencost["costs_ptr"].tolist(), [0, 3, 7])
        self.assertEqual(gencost["costs_val"].tolist(), [0.11, 5.0, 150.0, 0.0, 0.0, 100.0, 2000.0])
        self.assertEqual(gencost["model"].tolist(), [2, 1])

    def test_dataframe(self):
        columns = to_columnar(three_bus_case())
        df = columns.to_dataframe("branch")
        self.assertEqual(df.shape[0], 2)
        self.assertEqual(df["t_bus"].tolist(), [2, 3])
        costs = columns.to_dataframe("gencost")
        self.assertEqual(costs.loc[0, "costs"], (0.11, 5.0, 150.0))

    def test_columns_are_parallel(self):
        columns = to_columnar(three_bus_case())
        for table, arrays in columns.tables.items():
            if table == "gencost":
                continue
            lengths = {len(a) for a in arrays.values()}
            self.assertEqual(lengths, {columns.size(table)})

    def test_no_validation(self):
        case = three_bus_case()
        case.add(Branch(3, 99))
        self.assertEqual(to_records(to_columnar(case)), case)


if __name__ == '__main__':
    unittest.main()
