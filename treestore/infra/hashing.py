import hashlib
import json
import re
from typing import Any

_HEX_RE = re.compile(r"^[0-9a-f]+$")


def canonical_json_dumps(obj: Any) -> str:
    """Deterministic JSON serialization for content addressing.

    Rules:
    - UTF-8, no ASCII escaping
    - sorted keys
    - no insignificant whitespace
    """

    return json.dumps(obj, ensure_ascii=False, sort_keys=True, separators=(",", ":"))


def fingerprint(data: bytes, algorithm: str = "sha1") -> str:
    return hashlib.new(algorithm, data).hexdigest()


def digest_width(algorithm: str) -> int:
    """Number of hex characters produced by `algorithm`."""
    return hashlib.new(algorithm).digest_size * 2


def is_identifier(value: object, algorithm: str = "sha1") -> bool:
    if not isinstance(value, str):
        return False
    return len(value) == digest_width(algorithm) and bool(_HEX_RE.match(value))


def check_algorithm(algorithm: str) -> None:
    """Reject names hashlib does not know and variable-length digests."""
    try:
        digest_size = hashlib.new(algorithm).digest_size
    except (ValueError, TypeError):
        raise ValueError(f"Unknown hash algorithm: {algorithm}")
    if digest_size <= 0:
        raise ValueError(f"Hash algorithm has no fixed digest size: {algorithm}")
