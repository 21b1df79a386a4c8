"""
PKI Configuration - Percorsi e costanti centralizzate

Questo file centralizza costanti e percorsi usati dalla factory dei certificati
di sviluppo, dal builder CSR e dal client di enrollment.
Modificando qui i valori, si applicano automaticamente a tutto il sistema.

Usage:
    from config.pki_config import PKI_CONSTANTS, PKI_PATHS

    not_before = now - timedelta(minutes=PKI_CONSTANTS.CLOCK_SKEW_MINUTES)
    logger = PKILogger.get_logger("CSRBuilder", log_dir=str(PKI_PATHS.LOGS))

Environment variables:
    PKI_LOG_LEVEL         Livello di log (DEBUG, INFO, WARNING, ...). Default: INFO
    PKI_ENROLLMENT_URL    Base URL del servizio di firma CSR
    PKI_ENROLLMENT_TOKEN  Bearer token per il servizio di firma CSR
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class PKIPaths:
    """
    Percorsi base centralizzati.

    Attributi:
        BASE: Directory radice per il materiale generato
        OUTPUT: Directory di default per catene PEM e CSR generate dalla CLI
        LOGS: Directory log centralizzata
    """
    BASE: Path = Path("./pki_data")
    OUTPUT: Path = Path("./pki_data/signing")
    LOGS: Path = Path("./logs")


# Istanza singleton globale
PKI_PATHS = PKIPaths()


@dataclass(frozen=True)
class PKIConstants:
    """
    Costanti centralizzate per la generazione di certificati e CSR.
    """
    # Validità certificati
    DEFAULT_VALIDITY_DAYS: int = 365
    ROOT_VALIDITY_MULTIPLIER: int = 10
    INTERMEDIATE_VALIDITY_MULTIPLIER: int = 5
    END_ENTITY_VALIDITY_MULTIPLIER: int = 1

    # notBefore retrodatato per tollerare drift tra client e server
    CLOCK_SKEW_MINUTES: int = 5

    # Path length constraints della catena
    ROOT_MAX_PATH_LENGTH: int = 1
    INTERMEDIATE_MAX_PATH_LENGTH: int = 0

    # PEM
    PEM_LINE_LENGTH: int = 64

    # API di enrollment
    ENROLLMENT_PATH: str = "/api/v1/certificates/sign"
    DEFAULT_API_TIMEOUT: int = 30  # secondi

    # Logging
    DEFAULT_LOG_LEVEL: str = "INFO"


# Istanza singleton globale
PKI_CONSTANTS = PKIConstants()


@dataclass(frozen=True)
class EnrollmentSettings:
    """Parametri di connessione al servizio remoto di firma CSR."""
    base_url: Optional[str]
    bearer_token: Optional[str]
    timeout: int = PKI_CONSTANTS.DEFAULT_API_TIMEOUT


def get_log_level() -> int:
    """
    Legge il livello di log da PKI_LOG_LEVEL.

    Valori non riconosciuti ricadono su INFO.
    """
    name = os.environ.get("PKI_LOG_LEVEL", PKI_CONSTANTS.DEFAULT_LOG_LEVEL).strip().upper()
    level = logging.getLevelName(name)
    if not isinstance(level, int):
        return logging.INFO
    return level


def get_enrollment_settings() -> EnrollmentSettings:
    """Costruisce EnrollmentSettings dalle variabili d'ambiente."""
    return EnrollmentSettings(
        base_url=os.environ.get("PKI_ENROLLMENT_URL") or None,
        bearer_token=os.environ.get("PKI_ENROLLMENT_TOKEN") or None,
        timeout=int(os.environ.get("PKI_ENROLLMENT_TIMEOUT", PKI_CONSTANTS.DEFAULT_API_TIMEOUT)),
    )
