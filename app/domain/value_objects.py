"""
Validated string wrappers: tenant slugs, e-mail addresses and gallery codes.

Each ``create`` normalises its input and returns a Result instead of raising,
so callers can report every rejection before touching the database.
"""

from __future__ import annotations

import re
import secrets
import string
from dataclasses import dataclass
from random import Random

from app.domain.result import ErrorKind, Ok, Result, fail
from app.utils.slugify import slugify

SLUG_PATTERN = re.compile(r"^[a-z0-9](?:-?[a-z0-9])*$")
SLUG_MIN_LENGTH = 3
SLUG_MAX_LENGTH = 63

RESERVED_SLUGS = frozenset(
    {
        "www",
        "api",
        "app",
        "admin",
        "dashboard",
        "login",
        "signup",
        "auth",
        "static",
        "assets",
        "cdn",
        "mail",
        "email",
        "support",
        "help",
        "docs",
        "blog",
        "status",
    }
)

# Not valid for new studios either, though existing tenants may hold them
SIGNUP_RESERVED_SLUGS = RESERVED_SLUGS | {"demo", "test", "staging", "dev"}

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")

CODE_PATTERN = re.compile(r"^[A-Z0-9]{4,12}$")
CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_RANDOM_LENGTH = 4
CODE_MAX_LENGTH = 12
CODE_PREFIX_LENGTH = 4

_system_random = secrets.SystemRandom()


@dataclass(frozen=True)
class TenantSlug:
    """URL-safe tenant identifier used as the subdomain."""

    value: str

    @classmethod
    def create(cls, raw: str) -> Result[TenantSlug, object]:
        normalized = (raw or "").strip().lower()

        if not normalized:
            return fail(ErrorKind.EMPTY, "Tenant slug cannot be empty", "slug")
        if len(normalized) < SLUG_MIN_LENGTH:
            return fail(ErrorKind.TOO_SHORT, f"Tenant slug must be at least {SLUG_MIN_LENGTH} characters", "slug")
        if len(normalized) > SLUG_MAX_LENGTH:
            return fail(ErrorKind.TOO_LONG, f"Tenant slug cannot exceed {SLUG_MAX_LENGTH} characters", "slug")
        if not SLUG_PATTERN.match(normalized):
            return fail(
                ErrorKind.INVALID_FORMAT,
                "Tenant slug must contain only lowercase letters, numbers and single hyphens",
                "slug",
            )
        if normalized in RESERVED_SLUGS:
            return fail(ErrorKind.RESERVED, "This slug is reserved", "slug")

        return Ok(cls(normalized))

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Email:
    value: str

    @classmethod
    def create(cls, raw: str) -> Result[Email, object]:
        normalized = (raw or "").strip().lower()

        if not normalized:
            return fail(ErrorKind.EMPTY, "Email cannot be empty", "email")
        if not EMAIL_PATTERN.match(normalized):
            return fail(ErrorKind.INVALID_FORMAT, "Invalid email format", "email")

        return Ok(cls(normalized))

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class GalleryCode:
    """
    Short access code clients type in to open a gallery (e.g. ``MYST7Q2K``).

    Uniqueness is not checked here; see gallery_service.create_gallery.
    """

    value: str

    @classmethod
    def create(cls, raw: str) -> Result[GalleryCode, object]:
        normalized = (raw or "").strip().upper()

        if not normalized:
            return fail(ErrorKind.EMPTY, "Gallery code cannot be empty", "code")
        if not CODE_PATTERN.match(normalized):
            return fail(ErrorKind.INVALID_FORMAT, "Gallery code must be 4-12 alphanumeric characters", "code")

        return Ok(cls(normalized))

    @classmethod
    def generate(cls, prefix: str = "", rng: Random | None = None) -> GalleryCode:
        """
        Uppercased prefix followed by 4 random characters, cut to 12.

        A prefix of 9+ characters eats into the random suffix; callers that
        need entropy keep the prefix short (see derive_code_prefix).
        """
        rng = rng or _system_random
        random_part = "".join(rng.choice(CODE_ALPHABET) for _ in range(CODE_RANDOM_LENGTH))
        return cls(f"{prefix.upper()}{random_part}"[:CODE_MAX_LENGTH])

    def __str__(self) -> str:
        return self.value


def derive_code_prefix(slug: str) -> str:
    """First 4 alphanumeric characters of a tenant slug, uppercased."""
    return "".join(ch for ch in slug if ch.isalnum())[:CODE_PREFIX_LENGTH].upper()


def slugify_studio_name(name: str) -> str:
    """
    Derive a candidate tenant slug from a studio name.

    Accents are folded to ASCII and runs of other characters collapse to
    one hyphen. Reserved results get a
    ``-studio`` suffix and names with nothing usable fall back to ``studio``.
    """
    slug = slugify(name)
    if not slug:
        slug = "studio"
    if slug in SIGNUP_RESERVED_SLUGS:
        slug = f"{slug}-studio"
    if len(slug) < SLUG_MIN_LENGTH:
        slug = f"{slug}-studio"
    return slug[:SLUG_MAX_LENGTH].rstrip("-")
