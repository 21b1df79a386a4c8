"""
Utils Package

Contains utility modules for certificate inspection and logging.
"""

from .cert_utils import (
    format_certificate_info,
    get_authority_key_identifier,
    get_certificate_expiry_time,
    get_certificate_identifier,
    get_certificate_not_before,
    get_certificate_ski,
    is_certificate_valid_at,
    load_pem_chain,
    verify_chain_linkage,
)
from .logger import PKILogger

__all__ = [
    # Certificate utilities
    "format_certificate_info",
    "get_authority_key_identifier",
    "get_certificate_expiry_time",
    "get_certificate_not_before",
    "get_certificate_ski",
    "get_certificate_identifier",
    "is_certificate_valid_at",
    "load_pem_chain",
    "verify_chain_linkage",
    # Logging
    "PKILogger",
]
