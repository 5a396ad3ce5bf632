[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "proofcheck"
version = "0.1.0"
description = "Generate and verify signed identity proofs that link a secp256k1 persona key to wallets and accounts on web platforms."
requires-python = ">=3.10"
keywords = [
    "identity",
    "proof",
    "signature",
    "secp256k1",
    "personal_sign",
    "ed25519",
    "verification",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Security :: Cryptography",
    "Topic :: Internet",
]
dependencies = [
    "requests>=2.28",
    "pycryptodome>=3.15",
    "pynacl>=1.5",
    "defusedxml>=0.7",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
    "responses>=0.22",
]

[tool.hatch.build.targets.wheel]
packages = ["proofcheck"]

[tool.hatch.build.targets.sdist]
include = ["proofcheck", "tests", "pyproject.toml"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
