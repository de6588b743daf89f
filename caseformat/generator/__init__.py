from caseformat.generator.generator import Generator, IN_SERVICE, OUT_OF_SERVICE
