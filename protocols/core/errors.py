"""
Error taxonomy for key material, signing and certificate assembly.

Every failure reaches the immediate caller as one of these types; nothing in
this package logs-and-swallows or retries.
"""

from typing import Optional


class CertificateError(Exception):
    """Base class for certificate, CSR and signing errors."""

    message = "Certificate error"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail
        if detail:
            super().__init__(f"{self.message}: {detail}")
        else:
            super().__init__(self.message)


class InvalidKeyData(CertificateError):
    """Key not found, or exported key bytes cannot be parsed."""

    message = "Invalid key data"


class UnsupportedKeyFormat(CertificateError):
    """Public key is not a 65-byte uncompressed P-256 point."""

    message = "Unsupported key format"


class UnsupportedAlgorithm(CertificateError):
    """The key store refuses the requested algorithm for this handle."""

    message = "Unsupported algorithm"


class SigningFailed(CertificateError):
    """Store-level signing error."""

    message = "Failed to sign"

    def __init__(self, detail: str = "Unknown signing error"):
        super().__init__(detail)


class CertificateCreationFailed(CertificateError):
    """DER or extension assembly failure."""

    message = "Failed to create certificate"

    def __init__(self, detail: str = "Unknown error"):
        super().__init__(detail)


class KeyStoreError(Exception):
    """Raised by key store implementations for store-level failures."""


class KeyAlreadyExists(KeyStoreError):
    """A key with the requested tag already exists in the store."""

    def __init__(self, tag: str):
        self.tag = tag
        super().__init__(f"Key already exists for tag '{tag}'")


class EnrollmentError(Exception):
    """The remote certificate signing service rejected or failed a request."""

    def __init__(self, detail: str, status_code: Optional[int] = None):
        self.detail = detail
        self.status_code = status_code
        if status_code is not None:
            super().__init__(f"Enrollment failed (HTTP {status_code}): {detail}")
        else:
            super().__init__(f"Enrollment failed: {detail}")
