"""
PKI Services Package

Clients for external services consuming the generated CSRs.
"""

from .enrollment_client import EnrollmentClient, SignedCertificate

__all__ = [
    "EnrollmentClient",
    "SignedCertificate",
]
