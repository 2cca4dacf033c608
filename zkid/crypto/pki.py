# zkid/crypto/pki.py
"""
Certificates for the optional TLS transport.

 - create_ca(common_name) -> (key, cert)
 - issue_cert(ca_key, ca_cert, name, hosts) -> (key, cert)
 - write_key / write_cert: PEM files
 - server_context / client_context: ssl.SSLContext for the verifier / prover
 - cert_fingerprint_hex / peer_fingerprint_hex
"""
import datetime
import ipaddress
import ssl

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID


def _now():
    return datetime.datetime.now(datetime.timezone.utc)


def _new_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


def create_ca(common_name: str = "zkid-root-ca", days: int = 3650):
    """Create a root CA key and self-signed certificate."""
    key = _new_key()
    subject = issuer = x509.Name([
        x509.NameAttribute(NameOID.COMMON_NAME, common_name),
    ])
    cert = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(_now() - datetime.timedelta(days=1))
        .not_valid_after(_now() + datetime.timedelta(days=days))
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .sign(key, hashes.SHA256())
    )
    return key, cert


def _san_entry(host: str):
    try:
        return x509.IPAddress(ipaddress.ip_address(host))
    except ValueError:
        return x509.DNSName(host)


def issue_cert(ca_key, ca_cert: x509.Certificate, name: str, hosts=("localhost", "127.0.0.1"),
               days: int = 365):
    """
    Issue a leaf certificate for `name` signed by the CA.
    `hosts` become subjectAltName entries (IP addresses or DNS names).
    """
    key = _new_key()
    subject = x509.Name([
        x509.NameAttribute(NameOID.COMMON_NAME, name),
    ])
    cert = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(ca_cert.subject)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(_now() - datetime.timedelta(days=1))
        .not_valid_after(_now() + datetime.timedelta(days=days))
        .add_extension(
            x509.SubjectAlternativeName([_san_entry(h) for h in hosts]),
            critical=False,
        )
        .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
        .sign(ca_key, hashes.SHA256())
    )
    return key, cert


def write_key(path: str, key) -> None:
    pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.TraditionalOpenSSL,
        serialization.NoEncryption(),
    )
    with open(path, "wb") as f:
        f.write(pem)


def write_cert(path: str, cert: x509.Certificate) -> None:
    with open(path, "wb") as f:
        f.write(cert.public_bytes(serialization.Encoding.PEM))


def load_key(path: str):
    with open(path, "rb") as f:
        return serialization.load_pem_private_key(f.read(), password=None)


def load_cert(path: str) -> x509.Certificate:
    with open(path, "rb") as f:
        return x509.load_pem_x509_certificate(f.read())


def server_context(cert_path: str, key_path: str) -> ssl.SSLContext:
    """TLS context for the verifier's listening side."""
    ctx = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    ctx.minimum_version = ssl.TLSVersion.TLSv1_2
    ctx.load_cert_chain(certfile=cert_path, keyfile=key_path)
    return ctx


def client_context(ca_path: str) -> ssl.SSLContext:
    """TLS context for the prover; trusts only our CA and checks the hostname."""
    ctx = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    ctx.minimum_version = ssl.TLSVersion.TLSv1_2
    ctx.load_verify_locations(cafile=ca_path)
    return ctx


def cert_fingerprint_hex(cert: x509.Certificate) -> str:
    """Return the SHA-256 fingerprint of the certificate as a hex string."""
    return cert.fingerprint(hashes.SHA256()).hex()


def peer_fingerprint_hex(sock) -> str:
    """Fingerprint of the certificate presented on a connected TLS socket, or '' if none."""
    getpeercert = getattr(sock, "getpeercert", None)
    if getpeercert is None:
        return ""
    der = getpeercert(binary_form=True)
    if not der:
        return ""
    return cert_fingerprint_hex(x509.load_der_x509_certificate(der))
