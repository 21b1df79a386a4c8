"""
Signing Certificates CLI

Genera catene di certificati di sviluppo e CSR PKCS #10 per chiavi P-256,
opzionalmente inviando la CSR al servizio di firma, e ispeziona i PEM prodotti.

Usage:
    pki-signing-certs chain --public-key device_pub.pem --cn "Device 1" --org "Example" \\
        --ou Devices --country US --state CA --locality "San Francisco"
    pki-signing-certs csr --key device_key.pem --cn "Device 1" ... [--submit]
    pki-signing-certs inspect pki_data/signing/device_1.csr.pem

Author: SecureRoad PKI Project
Date: October 2025
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from cryptography.hazmat.primitives import serialization

from config.pki_config import PKI_PATHS, get_enrollment_settings
from interfaces.pki_interfaces import KeyReference
from protocols.certificates.asn1_encoder import (
    csr_public_key_point,
    decode_csr_pem,
    subject_attributes,
    verify_csr_signature,
)
from protocols.certificates.chain import create_self_signed_certificate_chain
from protocols.certificates.csr import create_csr_for_key_tag
from protocols.certificates.names import CertificateConfig
from protocols.core.errors import CertificateError, EnrollmentError, KeyStoreError
from protocols.core.primitives import pem_decode
from protocols.core.types import PEM_LABEL_CERTIFICATE_REQUEST, KeyUsagePurpose
from protocols.security.key_store import SoftwareKeyStore
from protocols.security.signing import SigningDelegate
from services.enrollment_client import EnrollmentClient
from utils.cert_utils import (
    format_certificate_info,
    is_certificate_valid_at,
    load_pem_chain,
    verify_chain_linkage,
)

CLI_KEY_TAG = "cli.signing.key"


def add_subject_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--cn", required=True, help="Common name")
    parser.add_argument("--org", required=True, help="Organization")
    parser.add_argument("--ou", required=True, help="Organizational unit")
    parser.add_argument("--country", required=True, help="Two-letter country code")
    parser.add_argument("--state", required=True, help="State or province")
    parser.add_argument("--locality", required=True, help="Locality")
    parser.add_argument("--email", help="Email address (end-entity / CSR only)")
    parser.add_argument("--days", type=int, default=365, help="Base validity in days (default: 365)")
    parser.add_argument("--out", type=Path, default=PKI_PATHS.OUTPUT,
                        help=f"Output directory (default: {PKI_PATHS.OUTPUT})")


def config_from_args(args: argparse.Namespace) -> CertificateConfig:
    return CertificateConfig(
        common_name=args.cn,
        organization=args.org,
        organizational_unit=args.ou,
        country=args.country,
        state=args.state,
        locality=args.locality,
        email_address=args.email,
        validity_days=args.days,
    )


def output_path(out_dir: Path, common_name: str, suffix: str) -> Path:
    out_dir.mkdir(parents=True, exist_ok=True)
    stem = "".join(c if c.isalnum() else "_" for c in common_name).strip("_").lower() or "subject"
    return out_dir / f"{stem}{suffix}"


def load_key_into_store(key_path: Path, password: Optional[str]) -> SigningDelegate:
    store = SoftwareKeyStore()
    store.import_private_key(
        CLI_KEY_TAG,
        key_path.read_bytes(),
        password=password.encode() if password else None,
    )
    return SigningDelegate(store)


def cmd_chain(args: argparse.Namespace) -> int:
    config = config_from_args(args)
    purposes = [KeyUsagePurpose(name) for name in args.eku]

    if args.public_key:
        public_key = serialization.load_pem_public_key(args.public_key.read_bytes())
    else:
        delegate = load_key_into_store(args.key, args.password)
        public_key = delegate.find_key(KeyReference.from_tag(CLI_KEY_TAG))

    chain_pem = create_self_signed_certificate_chain(public_key, config, extended_key_usage=purposes)

    path = output_path(args.out, config.common_name, ".chain.pem")
    path.write_text(chain_pem)
    print(f"✅ Certificate chain written to {path}")
    return 0


def cmd_csr(args: argparse.Namespace) -> int:
    config = config_from_args(args)
    delegate = load_key_into_store(args.key, args.password)

    csr_pem = create_csr_for_key_tag(CLI_KEY_TAG, config, delegate)
    path = output_path(args.out, config.common_name, ".csr.pem")
    path.write_text(csr_pem)
    print(f"✅ CSR written to {path}")

    if not args.submit:
        return 0

    settings = get_enrollment_settings()
    base_url = args.url or settings.base_url
    if not base_url:
        print("❌ No enrollment URL: use --url or set PKI_ENROLLMENT_URL")
        return 2

    client = EnrollmentClient(
        base_url,
        bearer_token=args.token or settings.bearer_token,
        timeout=settings.timeout,
    )
    signed = client.submit_csr(csr_pem, device_id=args.device_id, app_version=args.app_version)

    chain_path = output_path(args.out, config.common_name, ".chain.pem")
    chain_path.write_text(signed.certificate_chain)
    print(f"✅ Certificate {signed.certificate_id} issued, chain written to {chain_path}")
    print(f"   Serial: {signed.serial_number}")
    print(f"   Expires: {signed.expires_at.isoformat()}")
    return 0


def cmd_inspect(args: argparse.Namespace) -> int:
    text = args.file.read_text()

    print(f"\n{'=' * 70}")
    print(f"  {args.file.name}")
    print(f"{'=' * 70}")

    if f"BEGIN {PEM_LABEL_CERTIFICATE_REQUEST}" in text:
        decoded = decode_csr_pem(text)
        print("Type: PKCS #10 certificate request")
        for oid, value in subject_attributes(decoded):
            print(f"  {oid}: {value}")
        print(f"Public key: {csr_public_key_point(decoded).hex()}")
        valid = verify_csr_signature(pem_decode(text, PEM_LABEL_CERTIFICATE_REQUEST))
        print(f"Signature: {'✅ valid' if valid else '❌ INVALID'}")
        return 0 if valid else 1

    chain = load_pem_chain(text)
    print(f"Type: certificate chain ({len(chain)} certificates)")
    for index, certificate in enumerate(chain):
        print(f"\n[{index}]")
        print(format_certificate_info(certificate))
        print(f"Valid now: {'yes' if is_certificate_valid_at(certificate) else 'no'}")

    linked = verify_chain_linkage(chain)
    print(f"\nChain linkage: {'✅ valid' if linked else '❌ INVALID'}")
    return 0 if linked else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pki-signing-certs",
        description="Development signing certificates and PKCS #10 CSRs for P-256 keys",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Self-signed development chain for an existing public key
  pki-signing-certs chain --public-key pub.pem --cn "Device 1" --org Example \\
      --ou Devices --country US --state CA --locality "San Francisco"

  # CSR for a private key, submitted to the signing service
  export PKI_ENROLLMENT_URL=http://127.0.0.1:8080
  pki-signing-certs csr --key key.pem --cn "Device 1" ... --submit

  # Inspect a CSR or a certificate chain
  pki-signing-certs inspect pki_data/signing/device_1.csr.pem
        """,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    chain = subparsers.add_parser("chain", help="Build a Root -> Intermediate -> End-Entity chain")
    key_source = chain.add_mutually_exclusive_group(required=True)
    key_source.add_argument("--public-key", type=Path, help="PEM SubjectPublicKeyInfo (P-256)")
    key_source.add_argument("--key", type=Path, help="PEM private key (P-256)")
    chain.add_argument("--password", help="Private key password")
    chain.add_argument(
        "--eku",
        nargs="+",
        default=[KeyUsagePurpose.EMAIL_PROTECTION.value],
        choices=[purpose.value for purpose in KeyUsagePurpose],
        help="End-entity extended key usage (default: emailProtection)",
    )
    add_subject_arguments(chain)
    chain.set_defaults(func=cmd_chain)

    csr = subparsers.add_parser("csr", help="Build a PKCS #10 CSR signed by a private key")
    csr.add_argument("--key", type=Path, required=True, help="PEM private key (P-256)")
    csr.add_argument("--password", help="Private key password")
    csr.add_argument("--submit", action="store_true", help="Submit the CSR to the signing service")
    csr.add_argument("--url", help="Signing service base URL (default: PKI_ENROLLMENT_URL)")
    csr.add_argument("--token", help="Bearer token (default: PKI_ENROLLMENT_TOKEN)")
    csr.add_argument("--device-id", help="Device identifier sent as metadata")
    csr.add_argument("--app-version", help="Application version sent as metadata")
    add_subject_arguments(csr)
    csr.set_defaults(func=cmd_csr)

    inspect = subparsers.add_parser("inspect", help="Decode a PEM CSR or certificate chain")
    inspect.add_argument("file", type=Path, help="PEM file")
    inspect.set_defaults(func=cmd_inspect)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        return args.func(args)
    except (CertificateError, KeyStoreError, EnrollmentError, ValueError, OSError) as e:
        print(f"❌ {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
