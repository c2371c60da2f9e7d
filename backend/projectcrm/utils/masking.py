"""Masking of stored secrets for list views."""

MASK_CHAR = "•"


def mask_secret(value: str | None) -> str:
    """Hide all but the last four characters of a secret."""
    if not value or len(value) <= 4:
        return "****"
    return MASK_CHAR * (len(value) - 4) + value[-4:]
