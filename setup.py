from setuptools import setup, find_packages
import os

install_requires = ["lark>=1.1", "pydantic>=2"]

# Define optional dependencies for development
extras_require = {"dev": ["pytest"]}

setup(
    name="pseudoc-transpiler",
    version="0.3.0",
    packages=find_packages(where=".", exclude=["tests", "tests.*"]),
    install_requires=install_requires,
    extras_require=extras_require,
    python_requires=">=3.9",
    entry_points={
        "console_scripts": [
            "pseudoc = pseudoc.cli:main",
        ],
    },
    include_package_data=True,
    package_data={"pseudoc.parser": ["grammars/*.lark"]},
    description="A transpiler from Java and TypeScript source code to IGCSE exam-board pseudocode.",
    long_description=open("README.md").read() if os.path.exists("README.md") else "",
    long_description_content_type="text/markdown",
)
