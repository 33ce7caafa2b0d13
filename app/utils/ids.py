"""
Random identifiers for connections and polls.
"""
import re
import secrets
import string
from typing import Container, Optional

# Exclude ambiguous characters: 0, 1, O, I, L
ALPHABET = "".join(c for c in string.ascii_lowercase + string.digits
                   if c not in "01oil")

# partysocket sends its own connection id as the `_pk` query parameter
CONNECTION_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


def generate_id(length: int = 8) -> str:
    """
    Generate a random identifier like "k7qm3xzt".

    Uses the `secrets` module so ids cannot be guessed by other peers.
    """
    return "".join(secrets.choice(ALPHABET) for _ in range(length))


def generate_unique_id(taken: Container[str], length: int = 8) -> str:
    """
    Generate an id that is not already present in `taken`.

    Raises:
        RuntimeError: if no free id was found after 10 attempts
    """
    for _ in range(10):  # Max 10 attempts
        candidate = generate_id(length)
        if candidate not in taken:
            return candidate
    raise RuntimeError("Failed to generate unique id after 10 attempts")


def connection_id(requested: Optional[str], taken: Container[str]) -> str:
    """
    Pick the id for a new connection.

    A client-supplied id is kept when it is well formed and not already used
    in the room; otherwise a fresh one is generated.
    """
    if requested and CONNECTION_ID_PATTERN.match(requested) and requested not in taken:
        return requested
    return generate_unique_id(taken, length=12)
