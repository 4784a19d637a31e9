"""Shared utility functions for service layer."""
import re
import unicodedata

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def escape_ilike(value: str) -> str:
    r"""
    Escape special ILIKE characters for safe use in LIKE/ILIKE patterns.

    PostgreSQL LIKE/ILIKE treats these characters specially:
    - % matches any sequence of characters
    - _ matches any single character
    - \\ is the escape character

    This function escapes them so they match literally.
    """
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def parameterize(value: str) -> str:
    """
    Turn free text into a URL-safe slug.

    Accented characters are transliterated to ASCII, everything is lowercased,
    runs of other characters collapse to a single hyphen, and leading/trailing
    hyphens are stripped: "Café Menu: Ideas!" -> "cafe-menu-ideas".
    """
    ascii_value = (
        unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    )
    return _NON_ALNUM.sub("-", ascii_value.lower()).strip("-")


def length_errors(
    label: str,
    value: str | None,
    minimum: int | None = None,
    maximum: int | None = None,
    required: bool = False,
) -> list[str]:
    """
    Validate a text field's presence and length.

    Returns the list of messages for the field (empty when valid), worded the
    way they are shown to users: "Title can't be blank",
    "Title is too short (minimum is 3 characters)".
    """
    if value is None or not value.strip():
        return [f"{label} can't be blank"] if required else []
    errors = []
    if minimum is not None and len(value) < minimum:
        errors.append(f"{label} is too short (minimum is {minimum} characters)")
    if maximum is not None and len(value) > maximum:
        errors.append(f"{label} is too long (maximum is {maximum} characters)")
    return errors
