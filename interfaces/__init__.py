"""
PKI Interfaces Package

Abstract contracts for external collaborators (key stores).
"""

from .pki_interfaces import KeyHandle, KeyPolicy, KeyReference, KeyStore

__all__ = [
    "KeyHandle",
    "KeyPolicy",
    "KeyReference",
    "KeyStore",
]
