"""Key material provider.

Public API::

    from pkiforge.crypto import generate_key

    pair = generate_key("EC-P256")
"""

from pkiforge.crypto.keys import KeyPair, generate_key

__all__ = ["KeyPair", "generate_key"]
