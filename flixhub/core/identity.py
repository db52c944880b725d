"""
Provider Identity - Short unique identifiers for provider records.

Provider names are not unique, so every record carries an id derived from
its structural fingerprint plus random salt drawn from a clock-seeded
generator. The id is unique in practice but intentionally not reproducible:
building the same record twice yields two different ids.
"""

import hashlib
import json
import random
import time
from typing import Any, Mapping, Optional


ID_LENGTH = 15
SALT_SIZE = 30


def record_fingerprint(fields: Mapping[str, Any]) -> bytes:
    """
    Build a structural seed from a record's field mapping.

    Args:
        fields: Field name to value mapping

    Returns:
        Deterministic bytes for equal mappings
    """
    return json.dumps(fields, sort_keys=True, default=str).encode("utf-8")


def compute_id(seed: bytes, random_source: Optional[random.Random] = None) -> str:
    """
    Compute a short hex identifier from a seed and random salt.

    Args:
        seed: Opaque seed bytes, usually a record fingerprint
        random_source: Generator for the salt; defaults to one seeded
            from the wall clock

    Returns:
        Lowercase hex string of ID_LENGTH characters
    """
    if random_source is None:
        random_source = random.Random(time.time_ns())

    salt = bytes(random_source.getrandbits(8) for _ in range(SALT_SIZE))
    digest = hashlib.sha1(seed + salt).hexdigest()
    return digest[:ID_LENGTH]


def is_valid_id(value: str) -> bool:
    """Check whether a string has the shape of a provider id."""
    if len(value) != ID_LENGTH:
        return False
    return all(char in "0123456789abcdef" for char in value)


__all__ = ["ID_LENGTH", "compute_id", "record_fingerprint", "is_valid_id"]
