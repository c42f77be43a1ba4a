"""Binding to the GPG key agent.

gpg is spawned once per operation and data is streamed over stdin/stdout;
nothing is staged in temporary files. Private keys never leave the agent.
"""
import logging
import os
import subprocess

from typing import List, Optional, Tuple

from envio.utils.errors import AgentUnavailableError, BadKeyError, CorruptError

logger = logging.getLogger(__name__)

_UNAVAILABLE_MARKERS = ("no gpg-agent running", "can't connect to the agent", "no agent running")
_CORRUPT_STATUS = ("BADMDC", "NODATA", "DECRYPTION_INFO_MISSING")


def _status_lines(stderr: str) -> List[List[str]]:
    return [line.split()[1:] for line in stderr.splitlines() if line.startswith("[GNUPG:] ")]


class GpgAgent:
    def __init__(self, binary: Optional[str] = None):
        self.binary = binary or os.environ.get("ENVIO_GPG", "gpg")

    def _run(self, args: List[str], data: Optional[bytes] = None) -> subprocess.CompletedProcess:
        cmd = [self.binary, "--batch", *args]
        logger.debug("running %s", " ".join(cmd))
        try:
            proc = subprocess.run(cmd, input=data, capture_output=True, check=False)
        except FileNotFoundError as exc:
            raise AgentUnavailableError(f"gpg executable not found: {self.binary}") from exc
        except OSError as exc:
            raise AgentUnavailableError(f"Failed to start gpg: {exc}") from exc
        if proc.returncode != 0:
            err = proc.stderr.decode("utf-8", "replace")
            if any(marker in err.lower() for marker in _UNAVAILABLE_MARKERS):
                raise AgentUnavailableError(f"gpg agent is not reachable: {err.strip()}")
        return proc

    def encrypt(self, plaintext: bytes, fingerprint: str) -> bytes:
        proc = self._run(
            ["--yes", "--trust-model", "always", "--encrypt", "--recipient", fingerprint, "--output", "-"],
            plaintext,
        )
        if proc.returncode != 0:
            err = proc.stderr.decode("utf-8", "replace").strip()
            raise BadKeyError(f"gpg refused to encrypt for key {fingerprint}: {err}")
        return proc.stdout

    def decrypt(self, ciphertext: bytes) -> Tuple[bytes, Optional[str]]:
        """Return the plaintext and, when gpg reports it, the primary key fingerprint."""
        proc = self._run(["--status-fd", "2", "--decrypt", "--output", "-"], ciphertext)
        stderr = proc.stderr.decode("utf-8", "replace")
        status = _status_lines(stderr)
        keywords = {fields[0] for fields in status if fields}
        if proc.returncode != 0:
            if keywords & set(_CORRUPT_STATUS) or "invalid packet" in stderr:
                raise CorruptError("gpg could not read the ciphertext: profile has been modified")
            raise BadKeyError("gpg could not decrypt the profile with any available key")

        fingerprint = None
        for fields in status:
            if fields and fields[0] == "DECRYPTION_KEY" and len(fields) >= 3:
                fingerprint = fields[2]
        return proc.stdout, fingerprint

    def list_keys(self) -> List[Tuple[str, str]]:
        """Secret keys known to the agent as ``(label, fingerprint)`` pairs."""
        proc = self._run(["--list-secret-keys", "--with-colons"])
        if proc.returncode != 0:
            err = proc.stderr.decode("utf-8", "replace").strip()
            raise AgentUnavailableError(f"gpg could not list keys: {err}")

        keys: List[Tuple[str, str]] = []
        fpr: Optional[str] = None
        want_fpr = False
        for line in proc.stdout.decode("utf-8", "replace").splitlines():
            fields = line.split(":")
            if fields[0] == "sec":
                fpr, want_fpr = None, True
            elif fields[0] == "ssb":
                want_fpr = False
            elif fields[0] == "fpr" and want_fpr and len(fields) > 9:
                fpr, want_fpr = fields[9], False
            elif fields[0] == "uid" and fpr and len(fields) > 9:
                keys.append((f"{fields[9]} ({fpr[-16:]})", fpr))
                fpr = None
        return keys
