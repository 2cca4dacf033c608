# zkid/config.py
"""
Runtime defaults. Every value can be overridden from the environment, and the
CLIs accept flags that override these again.
"""
import os

HOST = os.environ.get("ZKID_HOST", "127.0.0.1")
PORT = int(os.environ.get("ZKID_PORT", "4000"))

# demo secret seed shared by both sides; see DESIGN.md
SEED = os.environ.get("ZKID_SEED", "demo-prover-secret")
# hex public key for the verifier; when unset the verifier derives it from SEED
PUBLIC_KEY = os.environ.get("ZKID_PUBLIC_KEY")

TLS = os.environ.get("ZKID_TLS", "0").lower() in ("1", "true", "yes")
CERT_DIR = os.environ.get("ZKID_CERT_DIR", "certs")
CA_CERT = os.path.join(CERT_DIR, "ca_cert.pem")
SERVER_CERT = os.path.join(CERT_DIR, "server_cert.pem")
SERVER_KEY = os.path.join(CERT_DIR, "server_key.pem")

# seconds a session may block on a single read
TIMEOUT = float(os.environ.get("ZKID_TIMEOUT", "30"))

# empty disables transcripts
TRANSCRIPT_DIR = os.environ.get("ZKID_TRANSCRIPT_DIR", "")

LOG_LEVEL = os.environ.get("ZKID_LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
