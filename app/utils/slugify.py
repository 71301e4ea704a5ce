import re

from unidecode import unidecode


def slugify(text: str) -> str:
    """ASCII-fold, lowercase and hyphenate. ``"Foto Čakovec"`` -> ``"foto-cakovec"``."""
    text = unidecode(text or "").lower()
    return re.sub(r"[^a-z0-9]+", "-", text).strip("-")


def to_base36(value: int) -> str:
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    out = ""
    while value:
        value, rem = divmod(value, 36)
        out = digits[rem] + out
    return out or "0"
