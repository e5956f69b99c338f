import re
import secrets
import string

_STRIP_RE = re.compile(r"[^\w\s-]", re.ASCII)
_SEPARATOR_RE = re.compile(r"[\s_]+")
_DASHES_RE = re.compile(r"-+")
_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits
_SUFFIX_LENGTH = 6


def generate_slug(text: str) -> str:
    slug = _STRIP_RE.sub("", text.lower().strip())
    slug = _SEPARATOR_RE.sub("-", slug)
    slug = _DASHES_RE.sub("-", slug)
    return slug.strip("-")


def generate_unique_slug(text: str) -> str:
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(_SUFFIX_LENGTH))
    base = generate_slug(text)
    return f"{base}-{suffix}" if base else suffix
