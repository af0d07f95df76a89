"""Revocation state: the ledger and its OCSP-index / CRL projections."""

from pkiforge.revocation.registry import RevocationEntry, RevocationRegistry

__all__ = ["RevocationEntry", "RevocationRegistry"]
