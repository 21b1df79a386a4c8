"""
Test suite per la Certificate Chain Factory

Testa:
- Collegamento subject/issuer Root -> Intermediate -> End-Entity
- Periodi di validità (10x / 5x / 1x) con notBefore retrodatato di 5 minuti
- Estensioni: BasicConstraints, KeyUsage, EKU, SKI, AKI
- Validazione della chiave prima di qualunque generazione
- Output PEM
"""

from datetime import datetime, timedelta, timezone

import pytest
from cryptography import x509
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import ExtendedKeyUsageOID, ExtensionOID, NameOID

from protocols.certificates.chain import (
    CertificateBuilder,
    build_certificate_chain,
    create_self_signed_certificate_chain,
)
from protocols.certificates.keys import key_identifier, public_key_to_point
from protocols.certificates.names import build_distinguished_name
from protocols.core.errors import CertificateCreationFailed, InvalidKeyData, UnsupportedKeyFormat
from protocols.core.types import KeyUsagePurpose
from utils.cert_utils import load_pem_chain, verify_chain_linkage

NOW = datetime(2025, 10, 1, 12, 0, 0, tzinfo=timezone.utc)


def _ext(cert, oid):
    return cert.extensions.get_extension_for_oid(oid)


def _cn(name):
    return name.get_attributes_for_oid(NameOID.COMMON_NAME)[0].value


@pytest.fixture
def chain(public_point, cert_config):
    return build_certificate_chain(public_point, cert_config, now=NOW)


class TestChainLinkage:
    """Test collegamento della catena"""

    def test_subject_issuer_linkage(self, chain):
        assert chain.root.issuer == chain.root.subject
        assert chain.intermediate.issuer == chain.root.subject
        assert chain.end_entity.issuer == chain.intermediate.subject

    def test_ca_common_names(self, chain):
        assert _cn(chain.root.subject) == "Example Org Root CA"
        assert _cn(chain.intermediate.subject) == "Example Org Intermediate CA"
        assert _cn(chain.end_entity.subject) == "Test Device"

    def test_email_only_on_end_entity(self, chain):
        assert chain.end_entity.subject.get_attributes_for_oid(NameOID.EMAIL_ADDRESS)
        assert not chain.intermediate.subject.get_attributes_for_oid(NameOID.EMAIL_ADDRESS)
        assert not chain.root.subject.get_attributes_for_oid(NameOID.EMAIL_ADDRESS)

    def test_end_entity_subject_matches_config(self, chain, cert_config):
        expected = build_distinguished_name(cert_config).to_x509_name()
        assert chain.end_entity.subject == expected

    def test_signatures_verify(self, chain):
        assert verify_chain_linkage(chain.certificates)

    def test_end_entity_carries_given_key(self, chain, public_point):
        assert public_key_to_point(chain.end_entity.public_key()) == public_point

    def test_distinct_serials(self, chain):
        serials = {cert.serial_number for cert in chain.certificates}
        assert len(serials) == 3

    def test_fresh_ca_keys_per_call(self, public_point, cert_config):
        first = build_certificate_chain(public_point, cert_config, now=NOW)
        second = build_certificate_chain(public_point, cert_config, now=NOW)
        assert public_key_to_point(first.root.public_key()) != public_key_to_point(second.root.public_key())


class TestValidity:
    """Test periodi di validità"""

    def test_not_before_is_backdated(self, chain):
        for cert in chain.certificates:
            assert cert.not_valid_before_utc == NOW - timedelta(minutes=5)

    def test_validity_multipliers(self, chain):
        assert chain.root.not_valid_after_utc == NOW + timedelta(days=3650)
        assert chain.intermediate.not_valid_after_utc == NOW + timedelta(days=1825)
        assert chain.end_entity.not_valid_after_utc == NOW + timedelta(days=365)

    def test_custom_validity(self, public_point, cert_config):
        from dataclasses import replace

        chain = build_certificate_chain(public_point, replace(cert_config, validity_days=30), now=NOW)
        assert chain.root.not_valid_after_utc == NOW + timedelta(days=300)
        assert chain.intermediate.not_valid_after_utc == NOW + timedelta(days=150)
        assert chain.end_entity.not_valid_after_utc == NOW + timedelta(days=30)

    @pytest.mark.parametrize("validity_days", [400000, 1_000_000_000])
    def test_out_of_range_validity(self, public_point, cert_config, monkeypatch, validity_days):
        from dataclasses import replace

        generated = []
        monkeypatch.setattr(ec, "generate_private_key", lambda *a: generated.append(a))

        with pytest.raises(CertificateCreationFailed):
            build_certificate_chain(
                public_point, replace(cert_config, validity_days=validity_days), now=NOW
            )
        assert generated == []

    def test_root_validity_near_year_9999(self, public_point, cert_config):
        from dataclasses import replace

        # root 10x: 2025 + ~7900 anni
        days = (datetime(9999, 1, 1, tzinfo=timezone.utc) - NOW).days // 10
        chain = build_certificate_chain(public_point, replace(cert_config, validity_days=days), now=NOW)
        assert chain.root.not_valid_after_utc.year == 9998

    def test_default_now_is_current_time(self, public_point, cert_config):
        before = datetime.now(timezone.utc).replace(microsecond=0)
        chain = build_certificate_chain(public_point, cert_config)
        not_before = chain.end_entity.not_valid_before_utc
        assert before - timedelta(minutes=5, seconds=1) <= not_before
        assert not_before <= datetime.now(timezone.utc) - timedelta(minutes=4)


class TestExtensions:
    """Test estensioni X.509 v3"""

    def test_root_extensions(self, chain):
        basic = _ext(chain.root, ExtensionOID.BASIC_CONSTRAINTS)
        assert basic.critical
        assert basic.value.ca is True
        assert basic.value.path_length == 1

        usage = _ext(chain.root, ExtensionOID.KEY_USAGE)
        assert usage.critical
        assert usage.value.key_cert_sign and usage.value.crl_sign
        assert not usage.value.digital_signature

        ski = _ext(chain.root, ExtensionOID.SUBJECT_KEY_IDENTIFIER)
        assert not ski.critical

    def test_intermediate_extensions(self, chain):
        basic = _ext(chain.intermediate, ExtensionOID.BASIC_CONSTRAINTS)
        assert basic.critical
        assert basic.value.ca is True
        assert basic.value.path_length == 0

        usage = _ext(chain.intermediate, ExtensionOID.KEY_USAGE).value
        assert usage.key_cert_sign and usage.crl_sign

    def test_end_entity_extensions(self, chain):
        basic = _ext(chain.end_entity, ExtensionOID.BASIC_CONSTRAINTS)
        assert basic.critical
        assert basic.value.ca is False

        usage = _ext(chain.end_entity, ExtensionOID.KEY_USAGE)
        assert usage.critical
        assert usage.value.digital_signature
        assert not usage.value.key_cert_sign

        eku = _ext(chain.end_entity, ExtensionOID.EXTENDED_KEY_USAGE)
        assert not eku.critical
        assert list(eku.value) == [ExtendedKeyUsageOID.EMAIL_PROTECTION]

    def test_ski_is_sha1_of_point(self, chain, public_point):
        ski = _ext(chain.end_entity, ExtensionOID.SUBJECT_KEY_IDENTIFIER).value
        assert ski.digest == key_identifier(public_point)
        assert len(ski.digest) == 20

    def test_aki_matches_issuer_key(self, chain):
        for cert, issuer in ((chain.end_entity, chain.intermediate), (chain.intermediate, chain.root)):
            aki = _ext(cert, ExtensionOID.AUTHORITY_KEY_IDENTIFIER)
            assert not aki.critical
            assert aki.value.key_identifier == key_identifier(public_key_to_point(issuer.public_key()))
            assert aki.value.authority_cert_issuer is None
            assert aki.value.authority_cert_serial_number is None

    def test_root_has_no_aki(self, chain):
        with pytest.raises(x509.ExtensionNotFound):
            _ext(chain.root, ExtensionOID.AUTHORITY_KEY_IDENTIFIER)

    def test_custom_extended_key_usage(self, public_point, cert_config):
        chain = build_certificate_chain(
            public_point,
            cert_config,
            extended_key_usage=[KeyUsagePurpose.CODE_SIGNING, ExtendedKeyUsageOID.TIME_STAMPING],
            now=NOW,
        )
        eku = _ext(chain.end_entity, ExtensionOID.EXTENDED_KEY_USAGE).value
        assert list(eku) == [ExtendedKeyUsageOID.CODE_SIGNING, ExtendedKeyUsageOID.TIME_STAMPING]


class TestKeyValidation:
    """La chiave viene validata prima di generare o firmare qualsiasi cosa"""

    def test_compressed_point_rejected(self, private_key, cert_config, monkeypatch):
        generated = []
        monkeypatch.setattr(
            "protocols.certificates.chain.ec.generate_private_key",
            lambda curve: generated.append(curve),
        )
        compressed = b"\x02" + public_key_to_point(private_key.public_key())[1:33]
        with pytest.raises(UnsupportedKeyFormat):
            build_certificate_chain(compressed, cert_config)
        assert generated == []

    def test_wrong_length_rejected(self, cert_config):
        with pytest.raises(UnsupportedKeyFormat):
            build_certificate_chain(b"\x04" + b"\x00" * 63, cert_config)

    def test_point_not_on_curve(self, cert_config):
        with pytest.raises(InvalidKeyData):
            build_certificate_chain(b"\x04" + b"\x00" * 64, cert_config)

    def test_other_curve_rejected(self, cert_config):
        p384 = ec.generate_private_key(ec.SECP384R1()).public_key()
        with pytest.raises(UnsupportedKeyFormat):
            build_certificate_chain(p384, cert_config)

    def test_unknown_key_object(self, cert_config):
        with pytest.raises(InvalidKeyData):
            build_certificate_chain(object(), cert_config)

    def test_accepts_public_key_object_and_handle(self, private_key, key_store, cert_config):
        chain = build_certificate_chain(private_key.public_key(), cert_config, now=NOW)
        assert public_key_to_point(chain.end_entity.public_key()) == public_key_to_point(
            private_key.public_key()
        )

        handle = key_store.create_key("chain.handle")
        chain = build_certificate_chain(handle, cert_config, now=NOW)
        assert public_key_to_point(chain.end_entity.public_key()) == handle.export_public_key()


class TestPEMOutput:
    """Test output PEM della catena"""

    def test_three_blocks_leaf_first(self, public_point, cert_config):
        pem = create_self_signed_certificate_chain(public_point, cert_config)
        assert pem.count("-----BEGIN CERTIFICATE-----") == 3
        assert pem.endswith("-----END CERTIFICATE-----\n")
        assert "-----END CERTIFICATE-----\n-----BEGIN CERTIFICATE-----" in pem

        certs = load_pem_chain(pem)
        assert _cn(certs[0].subject) == "Test Device"
        assert _cn(certs[1].subject) == "Example Org Intermediate CA"
        assert _cn(certs[2].subject) == "Example Org Root CA"

    def test_subject_strings_survive_pem(self, public_point, cert_config):
        from dataclasses import replace

        config = replace(cert_config, common_name="Dispositivo è 1", locality="Zürich")
        certs = load_pem_chain(create_self_signed_certificate_chain(public_point, config))
        assert _cn(certs[0].subject) == "Dispositivo è 1"
        assert certs[0].subject.get_attributes_for_oid(NameOID.LOCALITY_NAME)[0].value == "Zürich"


class TestCertificateBuilder:
    """Test builder fluente"""

    def test_rejects_inverted_validity(self):
        with pytest.raises(ValueError):
            CertificateBuilder().with_validity_period(NOW, NOW - timedelta(seconds=1))

    def test_requires_subject_and_key(self, private_key):
        with pytest.raises(ValueError):
            CertificateBuilder().with_validity_period(NOW, NOW + timedelta(days=1)).build_and_sign(private_key)

    def test_self_issued_by_default(self, private_key, cert_config):
        cert = (
            CertificateBuilder()
            .with_subject(build_distinguished_name(cert_config))
            .with_public_key(private_key.public_key())
            .with_validity_period(NOW, NOW + timedelta(days=1))
            .build_and_sign(private_key)
        )
        assert cert.issuer == cert.subject
        assert cert.signature_hash_algorithm.name == "sha256"
