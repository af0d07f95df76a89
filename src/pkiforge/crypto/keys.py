"""Key material provider.

Generates fresh RSA-2048 and EC P-256 key pairs.  Keys are never cached
or reused: every call returns a newly generated, independent key.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import cached_property
from typing import TYPE_CHECKING

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa

from pkiforge.core.types import KeyAlgorithm
from pkiforge.errors import KeyGenerationError

if TYPE_CHECKING:
    from cryptography.hazmat.primitives.asymmetric.types import (
        CertificateIssuerPrivateKeyTypes,
        CertificateIssuerPublicKeyTypes,
    )

log = logging.getLogger(__name__)

_RSA_PUBLIC_EXPONENT = 65537
_RSA_KEY_SIZE = 2048


@dataclass(frozen=True)
class KeyPair:
    """An algorithm-tagged private key and its PEM encodings.

    Attributes
    ----------
    algorithm:
        Key algorithm tag.
    private_key:
        The generated private key object.

    """

    algorithm: KeyAlgorithm
    private_key: CertificateIssuerPrivateKeyTypes

    @property
    def public_key(self) -> CertificateIssuerPublicKeyTypes:
        return self.private_key.public_key()

    @cached_property
    def private_pem(self) -> bytes:
        """Unencrypted PEM, in the format ``openssl genrsa``/``ecparam`` write."""
        return self.private_key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.TraditionalOpenSSL,
            serialization.NoEncryption(),
        )

    @cached_property
    def public_pem(self) -> bytes:
        return self.public_key.public_bytes(
            serialization.Encoding.PEM,
            serialization.PublicFormat.SubjectPublicKeyInfo,
        )


def parse_algorithm(value: KeyAlgorithm | str) -> KeyAlgorithm:
    """Return *value* as a :class:`KeyAlgorithm` or raise ``KeyGenerationError``."""
    try:
        return KeyAlgorithm(value)
    except ValueError:
        msg = (
            f"Unsupported key algorithm '{value}'; "
            f"supported: {sorted(a.value for a in KeyAlgorithm)}"
        )
        raise KeyGenerationError(msg) from None


def generate_key(algorithm: KeyAlgorithm | str) -> KeyPair:
    """Generate a fresh key pair.

    Parameters
    ----------
    algorithm:
        ``RSA-2048`` or ``EC-P256``.

    Returns
    -------
    KeyPair
        A newly generated key pair.

    Raises
    ------
    KeyGenerationError
        If the algorithm is unsupported or the primitive fails.

    """
    alg = parse_algorithm(algorithm)
    try:
        if alg is KeyAlgorithm.RSA_2048:
            private_key = rsa.generate_private_key(
                public_exponent=_RSA_PUBLIC_EXPONENT,
                key_size=_RSA_KEY_SIZE,
            )
        else:
            private_key = ec.generate_private_key(ec.SECP256R1())
    except Exception as exc:  # noqa: BLE001
        msg = f"Failed to generate {alg.value} key: {exc}"
        raise KeyGenerationError(msg) from exc

    log.debug("Generated %s key", alg.value)
    return KeyPair(algorithm=alg, private_key=private_key)
