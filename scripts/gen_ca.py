# scripts/gen_ca.py
"""
Create a Root CA (RSA key + self-signed X.509). Writes:
  certs/ca_key.pem   (private)  -- DO NOT COMMIT
  certs/ca_cert.pem  (public)
"""
import os

from zkid import config
from zkid.crypto import pki


def main():
    os.makedirs(config.CERT_DIR, exist_ok=True)
    key, cert = pki.create_ca()
    key_path = os.path.join(config.CERT_DIR, "ca_key.pem")
    pki.write_key(key_path, key)
    pki.write_cert(config.CA_CERT, cert)
    print(f"Wrote {key_path} and {config.CA_CERT}. Do NOT commit ca_key.pem to git.")


if __name__ == "__main__":
    main()
