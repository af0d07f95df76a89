"""pkiforge -- PKI test-fixture generator."""

__version__ = "0.1.0"
