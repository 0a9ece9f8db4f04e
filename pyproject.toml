[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "thresh-ecdsa"
version = "0.8.1"
description = "Threshold ECDSA over secp256k1: distributed key generation and multi-party signing with identifiable aborts"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "ecdsa",
    "threshold-signature",
    "multi-party-computation",
    "secret-sharing",
    "secp256k1",
    "paillier",
    "cryptography",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Security :: Cryptography",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["thresh_ecdsa"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
