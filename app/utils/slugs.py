# app/utils/slugs.py
import re
import secrets
import string
from typing import Callable

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_SKU_ALPHABET = string.ascii_uppercase + string.digits


def slugify(text: str) -> str:
    return _NON_ALNUM.sub("-", text.lower().strip()).strip("-")


def unique_slug(name: str, exists: Callable[[str], bool]) -> str:
    """name -> slug, suffixed -1, -2, ... until exists() says it is free."""
    base = slugify(name) or "item"
    candidate = base
    suffix = 1

    while exists(candidate):
        candidate = f"{base}-{suffix}"
        suffix += 1

    return candidate


def generate_sku(exists: Callable[[str], bool], attempts: int = 10) -> str:
    for _ in range(attempts):
        candidate = "SKU-" + "".join(secrets.choice(_SKU_ALPHABET) for _ in range(9))
        if not exists(candidate):
            return candidate
    raise RuntimeError(f"Failed to generate unique SKU after {attempts} attempts")


def normalize_sku(sku: str) -> str:
    return sku.strip().upper()
