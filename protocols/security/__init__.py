"""
Key Store and Signing Operations

- key_store: SoftwareKeyStore, find-or-create, public key export
- signing: SigningDelegate, KeyReference, SigningCredentials

Author: SecureRoad PKI Project
Date: October 2025
"""

from .key_store import SoftwareKeyStore, export_public_key_pem, find_or_create_key
from interfaces.pki_interfaces import KeyReference

from .signing import (
    SigningCredentials,
    SigningDelegate,
    create_signing_credentials,
)

__all__ = [
    "SoftwareKeyStore",
    "find_or_create_key",
    "export_public_key_pem",
    "KeyReference",
    "SigningDelegate",
    "SigningCredentials",
    "create_signing_credentials",
]
