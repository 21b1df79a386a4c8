"""
ASN.1 CSR Schema - Wrapper per asn1tools

Compila lo schema PKCS #10 con asn1tools (codec DER) e fornisce funzioni
helper per decodificare e verificare le CSR prodotte dal builder manuale.
Serve come controllo indipendente: le CSR costruite a mano devono essere
leggibili da un decoder generico guidato dallo schema.

Lo schema copre solo il sottoinsieme usato qui: DirectoryString come
PrintableString / IA5String / UTF8String e parametri di AlgorithmIdentifier
limitati a un OBJECT IDENTIFIER (named curve).

Standards Reference:
- RFC 2986 - PKCS #10: Certification Request Syntax v1.7
- RFC 5280 - Name, AlgorithmIdentifier
- RFC 5480 - ECC SubjectPublicKeyInfo

Author: SecureRoad PKI Project
Date: October 2025
"""

from typing import Any, Dict, List, Tuple

import asn1tools
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric import ec

from protocols.certificates.keys import load_public_key
from protocols.core.errors import InvalidKeyData
from protocols.core.primitives import TAG_SEQUENCE, pem_decode, read_tlv
from protocols.core.types import PEM_LABEL_CERTIFICATE_REQUEST, SigningAlgorithm

PKCS10_ASN1 = """
PKCS10 DEFINITIONS IMPLICIT TAGS ::= BEGIN

CertificationRequest ::= SEQUENCE {
    certificationRequestInfo  CertificationRequestInfo,
    signatureAlgorithm        AlgorithmIdentifier,
    signature                 BIT STRING
}

CertificationRequestInfo ::= SEQUENCE {
    version        INTEGER,
    subject        Name,
    subjectPKInfo  SubjectPublicKeyInfo,
    attributes     [0] Attributes
}

SubjectPublicKeyInfo ::= SEQUENCE {
    algorithm         AlgorithmIdentifier,
    subjectPublicKey  BIT STRING
}

AlgorithmIdentifier ::= SEQUENCE {
    algorithm   OBJECT IDENTIFIER,
    parameters  OBJECT IDENTIFIER OPTIONAL
}

Attributes ::= SET OF Attribute

Attribute ::= SEQUENCE {
    type    OBJECT IDENTIFIER,
    values  SET OF DirectoryString
}

Name ::= SEQUENCE OF RelativeDistinguishedName

RelativeDistinguishedName ::= SET OF AttributeTypeAndValue

AttributeTypeAndValue ::= SEQUENCE {
    type   OBJECT IDENTIFIER,
    value  DirectoryString
}

DirectoryString ::= CHOICE {
    printableString  PrintableString,
    ia5String        IA5String,
    utf8String       UTF8String
}

END
"""

# Compilato una volta all'import
asn1_compiler = asn1tools.compile_string(PKCS10_ASN1, "der")


def decode_csr_der(der: bytes) -> Dict[str, Any]:
    """
    Decodifica una CertificationRequest DER.

    Returns:
        Dict asn1tools: OID come stringhe puntate, BIT STRING come
        tuple (bytes, numero_bit), CHOICE come tuple (nome, valore)

    Raises:
        ValueError: Se i byte non sono una CertificationRequest valida
    """
    try:
        return asn1_compiler.decode("CertificationRequest", bytes(der))
    except asn1tools.Error as e:
        raise ValueError(f"Invalid CertificationRequest DER: {e}") from e


def decode_csr_pem(pem: str) -> Dict[str, Any]:
    return decode_csr_der(pem_decode(pem, PEM_LABEL_CERTIFICATE_REQUEST))


def extract_certification_request_info(der: bytes) -> bytes:
    """
    Restituisce i byte esatti di CertificationRequestInfo (TLV completo),
    cioè i byte su cui è stata calcolata la firma.
    """
    tag, start, end = read_tlv(der, 0)
    if tag != TAG_SEQUENCE or end != len(der):
        raise ValueError("CertificationRequest must be a single outer SEQUENCE")

    info_tag, _, info_end = read_tlv(der, start)
    if info_tag != TAG_SEQUENCE:
        raise ValueError("CertificationRequestInfo must be a SEQUENCE")
    return bytes(der[start:info_end])


def subject_attributes(decoded: Dict[str, Any]) -> List[Tuple[str, str]]:
    """Coppie (OID, valore) del subject, nell'ordine di codifica."""
    attributes = []
    for rdn in decoded["certificationRequestInfo"]["subject"]:
        for atv in rdn:
            _, value = atv["value"]
            attributes.append((atv["type"], value))
    return attributes


def csr_public_key_point(decoded: Dict[str, Any]) -> bytes:
    """Punto pubblico non compresso (65 byte) contenuto nella CSR."""
    point, _ = decoded["certificationRequestInfo"]["subjectPKInfo"]["subjectPublicKey"]
    return bytes(point)


def verify_csr_signature(der: bytes) -> bool:
    """
    Verifica la firma ECDSA-SHA256 della CSR con la chiave pubblica che
    la CSR stessa contiene (proof of possession).
    """
    decoded = decode_csr_der(der)
    algorithm = SigningAlgorithm.from_signature_oid(decoded["signatureAlgorithm"]["algorithm"])
    signature, _ = decoded["signature"]

    try:
        public_key = load_public_key(csr_public_key_point(decoded))
    except InvalidKeyData:
        return False

    try:
        public_key.verify(
            bytes(signature),
            extract_certification_request_info(der),
            ec.ECDSA(algorithm.hash_algorithm),
        )
        return True
    except InvalidSignature:
        return False
