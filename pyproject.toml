[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "piccrack"
version = "0.1.0"
description = "Extract text from screenshots and images and run word frequency analysis over it."
requires-python = ">=3.10"
keywords = ["ocr", "screenshots", "word frequency", "text analysis", "phrases"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Environment :: Web Environment",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Text Processing :: General",
]
dependencies = [
    "pyyaml",
    "werkzeug",
    "click",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
piccrack = "piccrack.cli.main:main"

[tool.hatch.build.targets.wheel]
packages = ["piccrack"]

[tool.pytest.ini_options]
addopts = "-ra"
