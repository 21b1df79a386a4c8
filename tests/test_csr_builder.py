"""
Test suite per il CSR Builder PKCS #10

Testa:
- Struttura DER della CertificationRequest
- Firma tramite signer iniettato (stub) e tramite SigningDelegate
- Validazione della chiave prima della firma
- Mappatura degli errori
"""

from dataclasses import replace

import pytest
from cryptography import x509
from cryptography.x509.oid import NameOID

from conftest import FIXED_SIGNATURE, StubSigner
from interfaces.pki_interfaces import KeyPolicy
from protocols.certificates.csr import (
    assemble_certification_request,
    build_certification_request,
    build_subject_public_key_info,
    create_csr,
    create_csr_for_key_tag,
    create_csr_with_signer,
)
from protocols.certificates.chain import build_certificate_chain
from protocols.certificates.names import build_distinguished_name
from protocols.core.errors import (
    CertificateCreationFailed,
    InvalidKeyData,
    SigningFailed,
    UnsupportedAlgorithm,
    UnsupportedKeyFormat,
)
from protocols.core.primitives import encode_length, pem_decode, read_tlv
from protocols.core.types import SigningAlgorithm


class TestCSRStructure:
    """Test struttura DER con firma fissa da 71 byte"""

    def test_signer_receives_info_once(self, public_point, cert_config, stub_signer):
        request = build_certification_request(public_point, cert_config, stub_signer)
        assert stub_signer.call_count == 1
        assert stub_signer.calls[0] == request.info

    def test_info_embedded_verbatim(self, public_point, cert_config, stub_signer):
        request = build_certification_request(public_point, cert_config, stub_signer)
        tag, start, end = read_tlv(request.der)
        assert tag == 0x30
        assert end == len(request.der)
        assert request.der[start:start + len(request.info)] == request.info

    def test_outer_length_is_sum_of_parts(self, public_point, cert_config, stub_signer):
        request = build_certification_request(public_point, cert_config, stub_signer)
        algorithm = bytes.fromhex("300a06082a8648ce3d040302")
        signature_bits = b"\x03\x48\x00" + FIXED_SIGNATURE
        total = len(request.info) + len(algorithm) + len(signature_bits)

        assert request.der == b"\x30" + encode_length(total) + request.info + algorithm + signature_bits

    def test_signature_bit_string(self, public_point, cert_config, stub_signer):
        request = build_certification_request(public_point, cert_config, stub_signer)
        assert len(FIXED_SIGNATURE) == 71
        assert request.der.endswith(b"\x03\x48\x00" + FIXED_SIGNATURE)
        assert request.signature == FIXED_SIGNATURE

    def test_info_layout(self, public_point, cert_config, stub_signer):
        info = build_certification_request(public_point, cert_config, stub_signer).info
        _, start, end = read_tlv(info)

        # version INTEGER 0
        assert info[start:start + 3] == b"\x02\x01\x00"

        # subject
        subject_der = build_distinguished_name(cert_config).to_der()
        assert info[start + 3:start + 3 + len(subject_der)] == subject_der

        # SubjectPublicKeyInfo con il punto da 65 byte, poi attributi vuoti
        spki = build_subject_public_key_info(public_point)
        offset = start + 3 + len(subject_der)
        assert info[offset:offset + len(spki)] == spki
        assert info[offset + len(spki):end] == b"\xa0\x00"

    def test_spki_contains_uncompressed_point(self, public_point):
        spki = build_subject_public_key_info(public_point)
        assert spki.startswith(b"\x30\x59\x30\x13")
        assert spki.endswith(b"\x03\x42\x00" + public_point)
        assert len(spki) == 91

    def test_parsed_by_cryptography(self, public_point, cert_config, stub_signer):
        pem = create_csr_with_signer(public_point, cert_config, stub_signer)
        csr = x509.load_pem_x509_csr(pem.encode())
        assert csr.subject == build_distinguished_name(cert_config).to_x509_name()
        assert csr.signature == FIXED_SIGNATURE

    def test_pem_framing(self, public_point, cert_config, stub_signer):
        pem = create_csr_with_signer(public_point, cert_config, stub_signer)
        lines = pem.strip().splitlines()
        assert lines[0] == "-----BEGIN CERTIFICATE REQUEST-----"
        assert lines[-1] == "-----END CERTIFICATE REQUEST-----"
        assert all(len(line) <= 64 for line in lines[1:-1])
        assert public_point in pem_decode(pem, "CERTIFICATE REQUEST")

    def test_assemble_long_signature(self):
        info = b"\x30\x03\x02\x01\x00"
        der = assemble_certification_request(info, b"\x55" * 300)
        tag, start, end = read_tlv(der)
        assert tag == 0x30 and end == len(der)
        assert der[1] == 0x82


class TestCSRKeyValidation:
    """La chiave deve essere validata prima di chiedere la firma"""

    def test_compressed_key_rejected_without_signing(self, public_point, cert_config, stub_signer):
        compressed = b"\x03" + public_point[1:33]
        assert len(compressed) == 33
        with pytest.raises(UnsupportedKeyFormat):
            build_certification_request(compressed, cert_config, stub_signer)
        assert stub_signer.call_count == 0

    def test_bad_prefix_rejected(self, public_point, cert_config, stub_signer):
        with pytest.raises(UnsupportedKeyFormat):
            build_certification_request(b"\x05" + public_point[1:], cert_config, stub_signer)
        assert stub_signer.call_count == 0

    def test_point_not_on_curve(self, cert_config, stub_signer):
        with pytest.raises(InvalidKeyData):
            build_certification_request(b"\x04" + b"\x01" * 64, cert_config, stub_signer)
        assert stub_signer.call_count == 0

    def test_invalid_country_fails_before_signing(self, public_point, cert_config, stub_signer):
        with pytest.raises(CertificateCreationFailed):
            build_certification_request(public_point, replace(cert_config, country="U$"), stub_signer)
        assert stub_signer.call_count == 0

    def test_three_letter_country_rejected_like_chain(self, public_point, cert_config, stub_signer):
        config = replace(cert_config, country="USA")
        with pytest.raises(CertificateCreationFailed):
            build_certification_request(public_point, config, stub_signer)
        assert stub_signer.call_count == 0

        with pytest.raises(CertificateCreationFailed):
            build_certificate_chain(public_point, config)


class TestCSRSignerErrors:
    """Test errori del signer"""

    def test_signer_exception_becomes_signing_failed(self, public_point, cert_config):
        signer = StubSigner(error=RuntimeError("enclave unavailable"))
        with pytest.raises(SigningFailed) as exc_info:
            build_certification_request(public_point, cert_config, signer)
        assert "enclave unavailable" in str(exc_info.value)

    def test_certificate_errors_propagate_unchanged(self, public_point, cert_config):
        signer = StubSigner(error=UnsupportedAlgorithm("es384"))
        with pytest.raises(UnsupportedAlgorithm):
            build_certification_request(public_point, cert_config, signer)

    def test_empty_signature(self, public_point, cert_config):
        with pytest.raises(SigningFailed):
            build_certification_request(public_point, cert_config, StubSigner(signature=b""))


class TestCSRWithKeyStore:
    """CSR firmate tramite SoftwareKeyStore e SigningDelegate"""

    def test_signature_verifies(self, key_store, delegate, cert_config):
        handle = key_store.create_key("csr.device")
        pem = create_csr(handle.export_public_key(), cert_config, delegate)

        csr = x509.load_pem_x509_csr(pem.encode())
        assert csr.is_signature_valid
        assert csr.subject.get_attributes_for_oid(NameOID.COMMON_NAME)[0].value == "Test Device"
        assert csr.subject.get_attributes_for_oid(NameOID.EMAIL_ADDRESS)[0].value == "device@example.com"

    def test_create_csr_accepts_handle(self, key_store, delegate, cert_config):
        handle = key_store.create_key("csr.handle")
        csr = x509.load_pem_x509_csr(create_csr(handle, cert_config, delegate).encode())
        assert csr.is_signature_valid

    def test_create_csr_for_key_tag(self, key_store, delegate, cert_config_no_email):
        key_store.create_key("csr.by.tag")
        csr = x509.load_pem_x509_csr(
            create_csr_for_key_tag("csr.by.tag", cert_config_no_email, delegate).encode()
        )
        assert csr.is_signature_valid
        assert not csr.subject.get_attributes_for_oid(NameOID.EMAIL_ADDRESS)

    def test_unknown_public_key(self, delegate, public_point, cert_config):
        with pytest.raises(InvalidKeyData):
            create_csr(public_point, cert_config, delegate)

    def test_unknown_tag(self, delegate, cert_config):
        with pytest.raises(InvalidKeyData):
            create_csr_for_key_tag("missing.tag", cert_config, delegate)

    def test_unsupported_algorithm(self, key_store, delegate, cert_config):
        handle = key_store.create_key(
            "csr.es384", KeyPolicy(algorithms=frozenset({SigningAlgorithm.ES384}))
        )
        with pytest.raises(UnsupportedAlgorithm):
            create_csr(handle.export_public_key(), cert_config, delegate)

    def test_key_validated_before_lookup(self, key_store, delegate, cert_config, monkeypatch):
        lookups = []
        monkeypatch.setattr(key_store, "find_by_public_key", lambda point: lookups.append(point))
        with pytest.raises(UnsupportedKeyFormat):
            create_csr(b"\x04" * 33, cert_config, delegate)
        assert lookups == []
