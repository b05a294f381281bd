[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "vibetap"
version = "0.1.0"
description = "AI-powered test generation from code changes"
requires-python = ">=3.10"
keywords = ["testing", "test-generation", "git", "diff", "pre-commit", "cli"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Testing",
    "Topic :: Software Development :: Version Control :: Git",
]
dependencies = [
    "requests>=2.31",
    "pygments>=2.16",
]

[project.optional-dependencies]
test = [
    "pytest>=7.4",
    "responses>=0.24",
]

[project.scripts]
vibetap = "vibetap.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["vibetap"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
