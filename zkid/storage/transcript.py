# zkid/storage/transcript.py
"""
Verifier-side session transcripts. One file per session, one
`seq|ts|kind|payload` line per protocol message and a closing `result` line.
Only public values are ever written here.
"""
import os

from zkid.common.protocol import payload_hex
from zkid.common.utils import now_ms, sha256_hex


class Transcript:
    def __init__(self, directory: str, session_id: str):
        os.makedirs(directory, exist_ok=True)
        self.path = os.path.join(directory, f"transcript_{session_id}.log")
        self.seq = 0

    def append(self, kind: str, payload: str) -> str:
        self.seq += 1
        line = f"{self.seq}|{now_ms()}|{kind}|{payload}\n"
        with open(self.path, "a") as f:
            f.write(line)
        return self.path

    def record(self, msg) -> str:
        """Append a protocol message (Commit, Challenge or Response)."""
        return self.append(msg.kind, payload_hex(msg))


def transcript_hash(path: str) -> str:
    with open(path, "rb") as f:
        data = f.read()
    return sha256_hex(data)
