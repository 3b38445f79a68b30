"""Locale-style string comparison keys for sorting names."""

import unicodedata


def strip_accents(text: str) -> str:
    """Remove combining marks ("José" -> "Jose")."""
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def base_key(text: str) -> str:
    """
    Key that ignores case and accents.

    Strings that differ only by case or accents compare equal, so a stable
    sort keeps their input order.
    """
    return strip_accents(text).casefold()


def collation_key(text: str):
    """
    Full comparison key: base letters first, then accents, then case.

    Lowercase sorts before uppercase when everything else is equal
    ("a" < "A" < "b").
    """
    return (base_key(text), text.casefold(), text.swapcase())


def compare_text(a: str, b: str) -> int:
    """Three-way comparison of two strings using collation_key."""
    key_a, key_b = collation_key(a), collation_key(b)
    if key_a < key_b:
        return -1
    if key_a > key_b:
        return 1
    return 0
