"""Helpers for building version tokens.

Version tokens are opaque to the stores: they are compared by exact equality
and never ordered. Projections that derive their versions from an event
stream's sequence numbers can use these helpers to get a fixed-width token
and read it back.
"""

EMPTY_VERSION = b""
"""Token of a resource that has never been seen (no version record)."""

_SEQUENCE_WIDTH = 8


def encode_sequence(sequence_number: int) -> bytes:
    """Encode a sequence number as an 8-byte big-endian version token.

    Args:
        sequence_number: A positive stream position.

    Returns:
        The version token.

    Raises:
        ValueError: If the sequence number is not positive. Zero would be
            indistinguishable from "never seen" once decoded.

    Examples:
        >>> encode_sequence(3)
        b'\\x00\\x00\\x00\\x00\\x00\\x00\\x00\\x03'
    """
    if sequence_number <= 0:
        raise ValueError("sequence_number must be positive")
    return sequence_number.to_bytes(_SEQUENCE_WIDTH, "big")


def decode_sequence(version: bytes) -> int:
    """Decode a token produced by ``encode_sequence``.

    Args:
        version: The version token. The empty token decodes to 0.

    Returns:
        The sequence number the token represents.

    Raises:
        ValueError: If the token was not produced by ``encode_sequence``.
    """
    if version == EMPTY_VERSION:
        return 0
    if len(version) != _SEQUENCE_WIDTH:
        raise ValueError(f"Version token of {len(version)} bytes is not a sequence token")
    return int.from_bytes(version, "big")
