"""
Centralized logger for certificate and CSR components.

Provides configurable logging with file and console output,
level filtering driven by PKI_LOG_LEVEL, and consistent formatting.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

from config.pki_config import get_log_level


class PKILogger:
    """
    Centralized logger with file and console output.
    """

    _loggers = {}

    @staticmethod
    def get_logger(
        name: str,
        log_dir: Optional[str] = None,
        level: Optional[int] = None,
        console_output: bool = True,
    ) -> logging.Logger:
        """
        Ottiene o crea un logger configurato.

        Args:
            name: Nome del logger (es. "ChainFactory", "CSRBuilder", "KeyStore")
            log_dir: Directory per i file di log (opzionale)
            level: Livello minimo di log (default: PKI_LOG_LEVEL, altrimenti INFO)
            console_output: Se True, stampa anche su console

        Returns:
            Logger configurato pronto all'uso
        """
        # Se esiste già, ritorna il logger cached
        if name in PKILogger._loggers:
            return PKILogger._loggers[name]

        if level is None:
            level = get_log_level()

        logger = logging.getLogger(name)
        logger.setLevel(level)
        logger.propagate = False  # Non propagare ai logger parent

        # Rimuovi handler esistenti per evitare duplicati
        logger.handlers.clear()

        # Formato del log: [2025-10-09 14:30:45] [CSRBuilder] [INFO] Messaggio
        formatter = logging.Formatter(
            fmt="[%(asctime)s] [%(name)s] [%(levelname)s] %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
        )

        if console_output:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(level)
            console_handler.setFormatter(formatter)
            logger.addHandler(console_handler)

        if log_dir:
            log_path = Path(log_dir)
            log_path.mkdir(parents=True, exist_ok=True)

            file_handler = logging.FileHandler(log_path / f"{name}.log", encoding="utf-8")
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

        PKILogger._loggers[name] = logger
        return logger

    @staticmethod
    def set_level(name: str, level: int):
        """Changes log level for an existing logger."""
        if name in PKILogger._loggers:
            logger = PKILogger._loggers[name]
            logger.setLevel(level)
            for handler in logger.handlers:
                handler.setLevel(level)

    @staticmethod
    def clear_cache():
        """Clears logger cache."""
        PKILogger._loggers.clear()
