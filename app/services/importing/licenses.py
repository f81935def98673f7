import re
from typing import Optional

from .errors import InvalidLicenseError

ALLOWED_LICENSES = {
    "cc by": "CC BY",
    "cc by 4.0": "CC BY 4.0",
    "cc by-sa": "CC BY-SA",
    "cc by-sa 4.0": "CC BY-SA 4.0",
    "cc by-nc-sa 4.0": "CC BY-NC-SA 4.0",
    "cc0": "CC0",
    "public domain": "Public Domain",
}

_SEPARATORS = re.compile(r"[\s_-]+")
_TRAILING_US = re.compile(r"\s+us$", re.IGNORECASE)
_TRAILING_PARENTHETICAL = re.compile(r"\s*\([^)]*\)\s*$")


def _lookup(raw_license: str) -> Optional[str]:
    normalized = raw_license.strip().lower()
    resolved = ALLOWED_LICENSES.get(normalized)
    if resolved:
        return resolved
    # Punctuation variants: CC-BY, cc_by, "CC  BY"
    compact = _SEPARATORS.sub(" ", normalized)
    resolved = ALLOWED_LICENSES.get(compact)
    if resolved:
        return resolved
    # "cc by sa 4.0" -> "cc by-sa 4.0" once separators are collapsed
    for key, label in ALLOWED_LICENSES.items():
        if _SEPARATORS.sub(" ", key) == compact:
            return label
    return None


def is_allowed_license(raw_license: Optional[str]) -> bool:
    return bool(raw_license) and _lookup(raw_license) is not None


def assert_license_allowed(raw_license: Optional[str]) -> str:
    """Return the canonical label for an allow-listed license, else raise InvalidLicenseError."""
    resolved = _lookup(raw_license or "")
    if resolved is None:
        raise InvalidLicenseError(raw_license, list(ALLOWED_LICENSES.values()))
    return resolved


def resolve_license(raw_license: Optional[str]) -> str:
    """Validate with fallbacks: as given, then without a trailing " us", then without a trailing parenthetical.

    Returns the first canonical match; raises the last InvalidLicenseError when none validates.
    """
    raw = (raw_license or "").strip()
    attempts = [
        raw,
        _TRAILING_US.sub("", raw).strip(),
        _TRAILING_PARENTHETICAL.sub("", raw).strip(),
    ]
    last_error: Optional[InvalidLicenseError] = None
    for attempt in attempts:
        if not attempt:
            continue
        try:
            return assert_license_allowed(attempt)
        except InvalidLicenseError as exc:
            last_error = exc
    if last_error is None:
        raise InvalidLicenseError(raw_license, list(ALLOWED_LICENSES.values()))
    raise last_error
