import secrets

from gds_trainer.types import PLACEHOLDER_PREFIX


# No 0/O, 1/I/L: locators are read aloud and copied by hand
LOCATOR_ALPHABET = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"
LOCATOR_LENGTH = 6


def generate_locator() -> str:
    return "".join(secrets.choice(LOCATOR_ALPHABET) for _ in range(LOCATOR_LENGTH))


def placeholder_locator() -> str:
    return f"{PLACEHOLDER_PREFIX}{secrets.randbelow(10000):04d}"


def is_permanent_locator(value: str) -> bool:
    return len(value) == LOCATOR_LENGTH and all(ch in LOCATOR_ALPHABET for ch in value)
