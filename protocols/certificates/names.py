"""
Certificate configuration and Distinguished Name builder.

A DistinguishedName is built in a fixed attribute order (CN, O, OU, C, ST, L,
optional E), one attribute per RDN, so two names built from the same
configuration always serialize to byte-identical DER. The DER serializer has
no reordering step.

Author: SecureRoad PKI Project
Date: October 2025
"""

from dataclasses import dataclass, replace
from typing import Any, Dict, Optional, Tuple

from cryptography import x509

from config.pki_config import PKI_CONSTANTS
from protocols.core.primitives import (
    encode_ia5_string,
    encode_oid,
    encode_printable_string,
    encode_sequence,
    encode_set,
    encode_utf8_string,
)
from protocols.core.types import (
    OID_COMMON_NAME,
    OID_COUNTRY_NAME,
    OID_EMAIL_ADDRESS,
    OID_LOCALITY_NAME,
    OID_ORGANIZATION_NAME,
    OID_ORGANIZATIONAL_UNIT_NAME,
    OID_STATE_OR_PROVINCE_NAME,
)


# Short names used by rfc4514-style rendering
_SHORT_NAMES = {
    OID_COMMON_NAME: "CN",
    OID_ORGANIZATION_NAME: "O",
    OID_ORGANIZATIONAL_UNIT_NAME: "OU",
    OID_COUNTRY_NAME: "C",
    OID_STATE_OR_PROVINCE_NAME: "ST",
    OID_LOCALITY_NAME: "L",
    OID_EMAIL_ADDRESS: "E",
}

# Accepted keys for CertificateConfig.from_dict (snake_case or camelCase)
_CONFIG_KEYS = {
    "common_name": ("common_name", "commonName", "CN"),
    "organization": ("organization", "O"),
    "organizational_unit": ("organizational_unit", "organizationalUnit", "OU"),
    "country": ("country", "C"),
    "state": ("state", "ST"),
    "locality": ("locality", "L"),
    "email_address": ("email_address", "emailAddress", "email", "E"),
    "validity_days": ("validity_days", "validityDays"),
}


@dataclass(frozen=True)
class CertificateConfig:
    """
    Subject identity and validity for a generated certificate or CSR.

    Empty fields are not rejected here; validating input is up to the caller.
    """

    common_name: str
    organization: str
    organizational_unit: str
    country: str
    state: str
    locality: str
    email_address: Optional[str] = None
    validity_days: int = PKI_CONSTANTS.DEFAULT_VALIDITY_DAYS

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CertificateConfig":
        """
        Build a config from a JSON-style dict.

        Raises:
            KeyError: If a required field is missing
        """
        values = {}
        for field_name, aliases in _CONFIG_KEYS.items():
            for alias in aliases:
                if alias in data and data[alias] is not None:
                    values[field_name] = data[alias]
                    break

        missing = [
            name for name in ("common_name", "organization", "organizational_unit",
                              "country", "state", "locality")
            if name not in values
        ]
        if missing:
            raise KeyError(f"Missing certificate config fields: {', '.join(missing)}")

        if "validity_days" in values:
            values["validity_days"] = int(values["validity_days"])
        return cls(**values)

    def derive(self, common_name: str, validity_days: int) -> "CertificateConfig":
        """Copy for a CA tier: new common name and validity, no email address."""
        return replace(
            self,
            common_name=common_name,
            email_address=None,
            validity_days=validity_days,
        )


@dataclass(frozen=True)
class DistinguishedName:
    """Ordered (attribute-type OID, value) pairs, one attribute per RDN."""

    attributes: Tuple[Tuple[str, str], ...]

    def get(self, oid: str) -> Optional[str]:
        for attr_oid, value in self.attributes:
            if attr_oid == oid:
                return value
        return None

    @property
    def common_name(self) -> Optional[str]:
        return self.get(OID_COMMON_NAME)

    def to_der(self) -> bytes:
        """
        RDNSequence DER: SEQUENCE OF SET OF SEQUENCE { type, value }.

        C is a PrintableString, E an IA5String, everything else UTF8String,
        the same choice cryptography makes for x509.Name.
        """
        rdns = []
        for oid, value in self.attributes:
            rdns.append(
                encode_set(encode_sequence(encode_oid(oid), _encode_attribute_value(oid, value)))
            )
        return encode_sequence(*rdns)

    def to_x509_name(self) -> x509.Name:
        return x509.Name(
            [x509.NameAttribute(x509.ObjectIdentifier(oid), value) for oid, value in self.attributes]
        )

    def __str__(self) -> str:
        return ", ".join(f"{_SHORT_NAMES.get(oid, oid)}={value}" for oid, value in self.attributes)


def _encode_attribute_value(oid: str, value: str) -> bytes:
    if oid == OID_COUNTRY_NAME:
        # stesso vincolo di x509.NameAttribute
        if len(value.encode("utf-8")) != 2:
            raise ValueError(f"Country name must be a 2 character country code: {value!r}")
        return encode_printable_string(value)
    if oid == OID_EMAIL_ADDRESS:
        return encode_ia5_string(value)
    return encode_utf8_string(value)


def build_distinguished_name(config: CertificateConfig) -> DistinguishedName:
    """
    Convert a CertificateConfig into a DistinguishedName.

    Order: CN, O, OU, C, ST, L, then E only when an email address is set.
    """
    attributes = [
        (OID_COMMON_NAME, config.common_name),
        (OID_ORGANIZATION_NAME, config.organization),
        (OID_ORGANIZATIONAL_UNIT_NAME, config.organizational_unit),
        (OID_COUNTRY_NAME, config.country),
        (OID_STATE_OR_PROVINCE_NAME, config.state),
        (OID_LOCALITY_NAME, config.locality),
    ]
    if config.email_address is not None:
        attributes.append((OID_EMAIL_ADDRESS, config.email_address))
    return DistinguishedName(tuple(attributes))
