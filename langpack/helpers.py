import enum
from typing import Final


class Schema(enum.IntEnum):
    """Language file schema version.

    The schema selects record layouts, string lengths and the text encoding.
    Version 2 uses 32-bit offsets, versions 3 and 4 use 24-bit offsets and
    version 4 stores every string as UTF-8.
    """

    V2 = 2
    V3 = 3
    V4 = 4

    @property
    def offset_size(self) -> int:
        """Width in bytes of the offsets stored in the file header."""
        return 4 if self is Schema.V2 else 3

    @property
    def is_utf8(self) -> bool:
        return self is Schema.V4


# --------------------------------------------------------------------------- #
# Errors                                                                      #
# --------------------------------------------------------------------------- #
class LanguagePackError(Exception):
    """Base class of every error raised while decoding a language file."""


class FormatError(LanguagePackError, ValueError):
    """Raised when the file layout violates the schema. Always fatal."""


class UnsupportedSchemaError(FormatError):
    """Raised for an unknown schema or an offset width that does not match it."""


class FileLengthError(FormatError):
    """Raised when the file size differs from the length stated in its header."""


class DuplicateKeyError(FormatError):
    """Raised when two records of one index table share a key."""

    def __init__(self, table: str, key: int) -> None:
        super().__init__(f"{table}: duplicate key {key}")
        self.table = table
        self.key = key


class EmptySlotError(FormatError):
    """Raised when a table that requires a string or child offset stores 0."""


class FontFamilyMismatchError(FormatError):
    """Raised when a section header disagrees with the root font family."""


class RegionConflictError(FormatError):
    """Raised when two record types claim the same byte range."""


class BlobBoundsError(LanguagePackError, IndexError):
    """Raised when a read runs past the end of the file."""


class CharacterMapError(LanguagePackError, LookupError):
    """Raised when a codepoint is missing from the character map."""


class StringDecodeError(LanguagePackError, ValueError):
    """Raised when a single string cannot be decoded.

    Unlike the other errors this one is recoverable: it concerns one string
    only, and the caller decides whether to abort or report and continue.
    """

    def __init__(
        self,
        message: str,
        *,
        offset: int | None = None,
        partial: str = "",
        raw: bytes = b"",
    ) -> None:
        super().__init__(message)
        self.message = message
        self.offset = offset
        self.partial = partial
        self.raw = raw

    def at_offset(self, offset: int) -> "StringDecodeError":
        """Return a copy of this error annotated with the blob *offset*."""
        return StringDecodeError(
            self.message, offset=offset, partial=self.partial, raw=self.raw
        )

    def __str__(self) -> str:
        where = "" if self.offset is None else f"blob offset {self.offset}: "
        detail = f" (so far {self.partial!r} from {self.raw.hex(' ')})" if self.raw else ""
        return f"{where}{self.message}{detail}"


# --------------------------------------------------------------------------- #
# Field conversions                                                           #
# --------------------------------------------------------------------------- #
NEGATIVE_THRESHOLD: Final[int] = 0x7FFFFFF
U32_MAX: Final[int] = 0xFFFFFFFF
I32_SIGN: Final[int] = 0x80000000


def as_int32(raw: int) -> int:
    """Reinterpret the low 32 bits of *raw* as a two's complement value."""
    return ((raw & U32_MAX) ^ I32_SIGN) - I32_SIGN


def signed_value(raw: int) -> int:
    """Convert an unsigned 32-bit mnemonic value to its signed key.

    Values above ``0x7FFFFFF`` are negative and count down from
    ``0xFFFFFFFF``: ``0xFFFFFFFE`` is ``-1``. The distance from
    ``0xFFFFFFFF`` is itself a 32-bit signed quantity, so the key always
    fits in 32 bits.
    """
    if raw > NEGATIVE_THRESHOLD:
        return as_int32(-as_int32(U32_MAX - raw))
    return raw


def version_string(raw: int) -> str:
    """Render a packed little-endian version as ``V<major>.<minor>.<patch>.<build>``."""
    major = (raw >> 24) & 0xFF
    minor = (raw >> 16) & 0xFF
    patch = (raw >> 8) & 0xFF
    build = raw & 0xFF
    return f"V{major}.{minor}.{patch}.{build}"


def narrow_to_byte(raw: int, field: str) -> int:
    """Return the low byte of a 16-bit field whose high byte must be zero."""
    if raw > 0xFF:
        raise FormatError(f"{field} too large: {raw}")
    return raw
