"""Practice slug extraction from the hosting page path."""

import re

from practice_site.core.errors import ConfigurationError

_SLUG_PATTERN = re.compile(r"^[a-z0-9][a-z0-9_-]*$", re.IGNORECASE)


def extract_slug(path: str) -> str:
    """Return the practice slug addressed by a page path.

    `/acme-clinic/` -> `acme-clinic`. A missing or malformed slug is a
    terminal configuration error; retrying cannot fix it.
    """
    slug = (path or "").strip().strip("/")
    if not slug:
        raise ConfigurationError("No se encontró el centro médico en la URL")
    if not _SLUG_PATTERN.match(slug):
        raise ConfigurationError(f"Identificador de centro médico inválido: {slug}")
    return slug
