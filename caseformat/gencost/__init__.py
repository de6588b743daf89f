from caseformat.gencost.gencost import GeneratorCost, CostModel
