[build-system]
requires = ["setuptools>=61"]
build-backend = "setuptools.build_meta"

[project]
name = "mgsls"
version = "1.8.0"
description = "Simulated controller for a mirror-galvanometer laser sintering machine: G-code reading, galvo planning, stepper ramps and a recorded hardware layer"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "g-code",
    "galvanometer",
    "laser",
    "sls",
    "sintering",
    "motion-planning",
    "stepper",
    "dac8552",
    "simulation",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Manufacturing",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Interface Engine/Protocol Translator",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
mgsls = "mgsls.machine:main"

[tool.setuptools.packages.find]
include = ["mgsls*"]

[tool.pytest.ini_options]
addopts = "-ra"
