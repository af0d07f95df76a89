"""Certificate authorities, extension profiles and CRL construction.

Exports the authority type, the issued-certificate record, the profile
catalog, and the distinguished-name value type.
"""

from pkiforge.ca.authority import Authority, IssuedCertificate
from pkiforge.ca.names import DistinguishedName
from pkiforge.ca.profiles import (
    ExtensionProfile,
    ProfileCatalog,
    SanEntry,
    build_default_catalog,
)

__all__ = [
    "Authority",
    "DistinguishedName",
    "ExtensionProfile",
    "IssuedCertificate",
    "ProfileCatalog",
    "SanEntry",
    "build_default_catalog",
]
