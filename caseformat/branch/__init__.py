from caseformat.branch.branch import Branch
