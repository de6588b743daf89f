from caseformat.dcline.dcline import DCLine
