"""Small cases shared by the tests."""

from datetime import datetime, timezone

from caseformat import Bus, BusType, Generator, Branch, GeneratorCost, CostModel, Case


def three_bus_case():
    """3 buses (one REF), 1 generator, 2 lines and 1 polynomial cost."""
    case = Case(
        base_mva=100.0,
        name="case3",
        created_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
    )
    case.add(Bus(1, BusType.REF, base_kv=345.0, vmax=1.1, vmin=0.9))
    case.add(Bus(2, BusType.PQ, pd=90.0, qd=30.0, base_kv=345.0, vmax=1.1, vmin=0.9))
    case.add(Bus(3, BusType.PQ, pd=100.0, qd=35.0, base_kv=345.0, vmax=1.1, vmin=0.9))
    case.add(Generator(1, pg=190.0, qmax=300.0, qmin=-300.0, mbase=100.0, pmax=250.0, pmin=10.0))
    case.add(Branch(1, 2, br_x=0.0576, rate_a=250.0, rate_b=250.0, rate_c=250.0))
    case.add(Branch(2, 3, br_r=0.017, br_x=0.092, br_b=0.158, rate_a=250.0, rate_b=250.0, rate_c=250.0))
    case.add(GeneratorCost(1, CostModel.POLYNOMIAL, startup=1500.0, ncost=3, costs=(0.11, 5.0, 150.0)))
    return case


BUS_TEXT = """\
bus_i,bus_type,pd,qd,gs,bs,bus_area,vm,va,base_kv,zone,vmax,vmin
1,REF,0.0,0.0,0.0,0.0,1,1.0,0.0,345.0,1,1.1,0.9
2,PQ,90.0,30.0,0.0,0.0,1,1.0,0.0,345.0,1,1.1,0.9
3,PQ,100.0,35.0,0.0,0.0,1,1.0,0.0,345.0,1,1.1,0.9
"""

GEN_TEXT = """\
gen_bus,pg,qg,qmax,qmin,vg,mbase,gen_status,pmax,pmin
1,190.0,0.0,300.0,-300.0,1.0,100.0,1,250.0,10.0
"""

BRANCH_TEXT = """\
f_bus,t_bus,br_r,br_x,br_b,rate_a,rate_b,rate_c,tap,shift,br_status
1,2,0.0,0.0576,0.0,250.0,250.0,250.0,0.0,0.0,1
2,3,0.017,0.092,0.158,250.0,250.0,250.0,0.0,0.0,1
"""

GENCOST_TEXT = """\
gen_index,model,startup,shutdown,ncost,costs
1,POLYNOMIAL,1500.0,0.0,3,0.11 5.0 150.0
"""


def three_bus_tables():
    return {"bus": BUS_TEXT, "gen": GEN_TEXT, "branch": BRANCH_TEXT, "gencost": GENCOST_TEXT}
