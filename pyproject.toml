[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ddctoolkit"
version = "2.0.0"
description = "Design, analyse and convert biquad audio filter banks for DDC equalisation"
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = ["biquad", "iir", "equalizer", "dsp", "filter", "ddc", "audio", "vdc"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Sound/Audio :: Analysis",
    "Topic :: Scientific/Engineering",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
vdc2vdcprj = "ddctoolkit.vdc:main"

[tool.hatch.build.targets.wheel]
packages = ["ddctoolkit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
