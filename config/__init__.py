"""
PKI Configuration Package

Centralizza configurazioni, percorsi e costanti del sistema.
"""

from .pki_config import (
    PKI_PATHS,
    PKI_CONSTANTS,
    EnrollmentSettings,
    get_enrollment_settings,
    get_log_level,
)

__all__ = [
    'PKI_PATHS',
    'PKI_CONSTANTS',
    'EnrollmentSettings',
    'get_enrollment_settings',
    'get_log_level',
]
