from setuptools import setup, find_packages

setup(
    name="caseformat",
    version="1.0.0",
    author="caseformat_developers",
    author_email="your.email@example.com",
    description="Validated power flow case files: archive, tabular, JSON, columnar and PSS/E raw forms",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: Apache Software License",
        "Operating System :: OS Independent",
        "Topic :: Scientific/Engineering",
        "Topic :: Software Development :: Libraries :: Python Modules",
    ],
    python_requires=">=3.12",
    install_requires=[
        "more_itertools",
        "pandas",
        "numpy",
        "tabulate",
        "sortedcontainers",
    ],
    extras_require={
        "test": ["pytest"],
    },
)
