# scripts/gen_cert.py
"""
Issue a certificate signed by the root CA.
Usage: python scripts/gen_cert.py server [host ...]
Produces:
  certs/<name>_key.pem
  certs/<name>_cert.pem
Hosts default to localhost and 127.0.0.1 and go into subjectAltName.
"""
import os
import sys

from zkid import config
from zkid.crypto import pki


def issue(name, hosts):
    ca_key_path = os.path.join(config.CERT_DIR, "ca_key.pem")
    if not os.path.exists(ca_key_path) or not os.path.exists(config.CA_CERT):
        print("CA not found. Run scripts/gen_ca.py first.")
        return 1

    ca_key = pki.load_key(ca_key_path)
    ca_cert = pki.load_cert(config.CA_CERT)
    key, cert = pki.issue_cert(ca_key, ca_cert, name, hosts=hosts)

    key_path = os.path.join(config.CERT_DIR, f"{name}_key.pem")
    cert_path = os.path.join(config.CERT_DIR, f"{name}_cert.pem")
    pki.write_key(key_path, key)
    pki.write_cert(cert_path, cert)
    print("Wrote:", key_path, cert_path)
    print("Fingerprint:", pki.cert_fingerprint_hex(cert))
    return 0


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: python scripts/gen_cert.py <name> [host ...]")
        sys.exit(2)
    sys.exit(issue(sys.argv[1], sys.argv[2:] or ["localhost", "127.0.0.1"]))
