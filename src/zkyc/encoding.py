"""Packing of identity data (strings, dates, small integers) into base-field elements."""

from collections.abc import Sequence
from datetime import date, timedelta

STRING_LIMBS = 5
CHARS_PER_LIMB = 4
MAX_STRING_LENGTH = STRING_LIMBS * CHARS_PER_LIMB
ORIGIN = date(1900, 1, 1)


def pack_string(value: str, limbs: int = STRING_LIMBS) -> list[int]:
    """Pack an ASCII string into `limbs` field elements, four characters per element as a u32 little-endian.

    Shorter strings are padded with NUL characters.

    Args:
        value (str): The string to pack.
        limbs (int): Number of output elements. Defaults to `STRING_LIMBS`.

    Returns:
        The list of `limbs` packed elements.

    Raises:
        ValueError: If `value` is not ASCII, contains NUL, or is longer than `4 * limbs` characters.
    """
    if not value.isascii() or "\x00" in value:
        msg = f"{value!r} must be a printable ASCII string"
        raise ValueError(msg)
    if len(value) > CHARS_PER_LIMB * limbs:
        msg = f"{value!r} is longer than {CHARS_PER_LIMB * limbs} characters"
        raise ValueError(msg)
    raw = value.encode("ascii").ljust(CHARS_PER_LIMB * limbs, b"\x00")
    return [int.from_bytes(raw[i : i + CHARS_PER_LIMB], "little") for i in range(0, len(raw), CHARS_PER_LIMB)]


def unpack_string(elements: Sequence[int]) -> str:
    """Inverse of :func:`pack_string`."""
    raw = b"".join(int(e).to_bytes(CHARS_PER_LIMB, "little") for e in elements)
    return raw.rstrip(b"\x00").decode("ascii")


def days_since_origin(day: date) -> int:
    """Number of days from 1900-01-01 to `day`.

    Raises:
        ValueError: If `day` is before the origin.
    """
    days = (day - ORIGIN).days
    if days < 0:
        msg = f"{day} is before {ORIGIN}"
        raise ValueError(msg)
    return days


def date_from_days(days: int) -> date:
    return ORIGIN + timedelta(days=days)


def years_before(day: date, years: int) -> date:
    """The same calendar day `years` earlier; February 29 maps to February 28 of a non-leap year."""
    try:
        return day.replace(year=day.year - years)
    except ValueError:
        return date(day.year - years, 2, 28)
