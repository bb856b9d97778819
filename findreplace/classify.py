"""Cheap text/binary classification from a bounded file prefix.

This is a heuristic: a NUL byte in the probe, or too many C0 control bytes,
marks a file as binary. Bytes at or above 0x80 are never counted so UTF-8
text is not penalised. Misclassification is possible in both directions but
rare for real source trees.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

BINARY_PROBE_BYTES = 8_192
BINARY_CONTROL_THRESHOLD = 0.10

# tab, LF, VT, FF, CR, ESC
_ALLOWED_CONTROL_BYTES = frozenset({0x09, 0x0A, 0x0B, 0x0C, 0x0D, 0x1B})
_SUSPICIOUS_BYTES = bytes(
    code for code in range(0x20) if code not in _ALLOWED_CONTROL_BYTES
) + b"\x7f"


class Classification(Enum):
    TEXT = "text"
    BINARY = "binary"
    UNREADABLE = "unreadable"


def classify_sample(sample: bytes, threshold: float = BINARY_CONTROL_THRESHOLD) -> Classification:
    """Classify an in-memory prefix; empty samples count as text."""
    if not sample:
        return Classification.TEXT
    if b"\x00" in sample:
        return Classification.BINARY
    suspicious = len(sample) - len(sample.translate(None, _SUSPICIOUS_BYTES))
    if suspicious / len(sample) > threshold:
        return Classification.BINARY
    return Classification.TEXT


def read_probe(path: Path, probe_bytes: int = BINARY_PROBE_BYTES) -> bytes:
    """Read at most ``probe_bytes`` from the start of ``path``; ``OSError`` propagates."""
    with path.open("rb") as handle:
        return handle.read(max(1, probe_bytes))


def classify(
    path: Path,
    probe_bytes: int = BINARY_PROBE_BYTES,
    threshold: float = BINARY_CONTROL_THRESHOLD,
) -> Classification:
    """Classify ``path`` by probing at most ``probe_bytes`` from its start.

    Any ``OSError`` (permission denied, file vanished after enumeration,
    path turned into a directory) yields ``Classification.UNREADABLE``.
    Callers that need the reason use ``read_probe`` and ``classify_sample``.
    """
    try:
        sample = read_probe(path, probe_bytes)
    except OSError:
        return Classification.UNREADABLE
    return classify_sample(sample, threshold)


__all__ = [
    "BINARY_PROBE_BYTES",
    "BINARY_CONTROL_THRESHOLD",
    "Classification",
    "classify_sample",
    "read_probe",
    "classify",
]
