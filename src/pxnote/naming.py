"""Mapping between logical index names and physical generation names."""

from pxnote.errors import ParseError

SEPARATOR = "_"


def physical_name(logical: str, generation: int) -> str:
    """Format the physical name of a generation, e.g. note_index_3."""
    if generation < 0:
        raise ValueError(f"Generation must be >= 0, got {generation}")
    return f"{logical}{SEPARATOR}{generation}"


def parse_physical_name(physical: str) -> tuple[str, int]:
    """Split a physical name into (logical, generation).

    Raises:
        ParseError: If there is no separator, the logical part is empty, or the
            trailing segment is not a non-negative integer.
    """
    logical, sep, suffix = physical.rpartition(SEPARATOR)
    if not sep:
        raise ParseError(f"Index name has no '{SEPARATOR}' separator: {physical!r}", physical)
    if not logical:
        raise ParseError(f"Index name has an empty logical part: {physical!r}", physical)
    # isdigit() rejects signs, so "-1" and "+1" fail here
    if not suffix.isascii() or not suffix.isdigit():
        raise ParseError(f"Generation is not a non-negative integer: {physical!r}", physical)
    return logical, int(suffix)


def next_generation(current: int | None) -> int:
    """Return the generation that follows current (0 when nothing exists yet)."""
    if current is None:
        return 0
    return current + 1
