from caseformat.columnar.core import CaseColumns, to_columnar, to_records
