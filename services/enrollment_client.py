"""
Enrollment Client - CSR submission to a certificate signing service

Sends a PEM CSR to the signing service and returns the issued certificate
chain, ready to be used as SigningCredentials.certificate_chain_pem.

    POST {base_url}/api/v1/certificates/sign
    {"csr": "<PEM>", "metadata": {"device_id": ..., "app_version": ...}}

    200 -> {"certificate_id", "certificate_chain", "expires_at", "serial_number"}

Author: SecureRoad PKI Project
Date: October 2025
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import requests

from config.pki_config import PKI_CONSTANTS, get_enrollment_settings
from protocols.core.errors import EnrollmentError
from protocols.core.types import PEM_LABEL_CERTIFICATE_REQUEST
from utils.logger import PKILogger


@dataclass(frozen=True)
class SignedCertificate:
    """
    Certificate issued by the signing service.

    Attributes:
        certificate_id: Service-side identifier
        certificate_chain: PEM chain, leaf first
        serial_number: Serial number as returned by the service
        expires_at: Expiry (UTC-aware)
    """
    certificate_id: str
    certificate_chain: str
    serial_number: str
    expires_at: datetime


def _parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class EnrollmentClient:
    """
    HTTP client for the certificate signing service.

    Uses requests with a bearer token; every failure (transport, non-200
    status, malformed body) surfaces as EnrollmentError.
    """

    def __init__(
        self,
        base_url: str,
        bearer_token: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: int = PKI_CONSTANTS.DEFAULT_API_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        if not base_url:
            raise ValueError("base_url is required")

        self.base_url = base_url.rstrip("/")
        self.bearer_token = bearer_token
        self.extra_headers = dict(headers or {})
        self.timeout = timeout
        self.session = session
        self.logger = PKILogger.get_logger("EnrollmentClient")

    @classmethod
    def from_environment(cls) -> "EnrollmentClient":
        """Build a client from PKI_ENROLLMENT_URL / PKI_ENROLLMENT_TOKEN."""
        settings = get_enrollment_settings()
        if not settings.base_url:
            raise EnrollmentError("PKI_ENROLLMENT_URL is not set")
        return cls(settings.base_url, bearer_token=settings.bearer_token, timeout=settings.timeout)

    @property
    def sign_url(self) -> str:
        return f"{self.base_url}{PKI_CONSTANTS.ENROLLMENT_PATH}"

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.bearer_token:
            headers["Authorization"] = f"Bearer {self.bearer_token}"
        headers.update(self.extra_headers)
        return headers

    def submit_csr(
        self,
        csr_pem: str,
        device_id: Optional[str] = None,
        app_version: Optional[str] = None,
        purpose: Optional[str] = None,
    ) -> SignedCertificate:
        """
        Submit a CSR and return the issued chain.

        Raises:
            ValueError: csr_pem is not a PEM certificate request
            EnrollmentError: Transport failure, non-200 status or bad response
        """
        if f"-----BEGIN {PEM_LABEL_CERTIFICATE_REQUEST}-----" not in csr_pem:
            raise ValueError("csr_pem must contain a PEM CERTIFICATE REQUEST block")

        metadata: Dict[str, Any] = {"device_id": device_id, "app_version": app_version}
        if purpose is not None:
            metadata["purpose"] = purpose

        payload = {"csr": csr_pem, "metadata": metadata}
        poster = self.session.post if self.session is not None else requests.post

        self.logger.info(f"📤 Submitting CSR to {self.sign_url}")
        try:
            response = poster(
                self.sign_url,
                json=payload,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            self.logger.error(f"❌ Enrollment request failed: {e}")
            raise EnrollmentError(str(e)) from e

        if response.status_code != 200:
            detail = response.text[:200] if response.text else response.reason
            self.logger.error(f"❌ Enrollment rejected with HTTP {response.status_code}")
            raise EnrollmentError(detail, status_code=response.status_code)

        return self._parse_response(response)

    def _parse_response(self, response: requests.Response) -> SignedCertificate:
        try:
            body = response.json()
            signed = SignedCertificate(
                certificate_id=str(body["certificate_id"]),
                certificate_chain=body["certificate_chain"],
                serial_number=str(body["serial_number"]),
                expires_at=_parse_timestamp(body["expires_at"]),
            )
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise EnrollmentError(f"malformed response: {e}", status_code=response.status_code) from e

        self.logger.info(
            f"✅ Certificate issued: {signed.certificate_id} (serial {signed.serial_number})"
        )
        return signed
