"""One-way digests for client metadata (IP addresses, user agents)."""

import hashlib


def one_way_hash(value: str) -> str:
    """
    SHA-256 hex digest of a string.

    Raw IPs and user agents are never persisted; only this digest is.
    """
    return hashlib.sha256(value.encode("utf-8")).hexdigest()
