from typing import Final, Protocol

from .characters import CharacterMaps
from .helpers import StringDecodeError

ESCAPE_MASK: Final[int] = 0xC0
LOW_BITS_MASK: Final[int] = 0x3F
PAIR_MARKER: Final[int] = 0x01


class StringDecoder(Protocol):
    """Turns the raw bytes of one stored string into text."""

    def decode(self, data: bytes) -> str: ...


class Utf8StringDecoder:
    """Decoder used by schema 4 files."""

    def decode(self, data: bytes) -> str:
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as err:
            raise StringDecodeError(
                f"Failed to decode UTF-8 string: {err.reason}", raw=data
            ) from err


def is_escape(byte: int) -> bool:
    """True when the top two bits of *byte* are set."""
    return (byte & ESCAPE_MASK) == ESCAPE_MASK


def pair_code(low: int, high: int) -> int:
    """Combine a two byte sequence into its 13-bit codepoint.

    *low* contributes its upper seven bits, *high* its lower six bits.
    """
    return ((high & LOW_BITS_MASK) << 7) | (low >> 1)


class CodepageStringDecoder:
    """Decoder for the legacy single/double byte codepage of schema 2 and 3.

    A byte with its low bit set that is followed by a byte whose top two
    bits are set starts a two byte character. A byte whose top two bits are
    set that does not form such a pair is a dangling escape. Every other
    byte is a single byte character.
    """

    def __init__(self, maps: CharacterMaps) -> None:
        self.maps = maps

    def decode(self, data: bytes) -> str:
        fragments: list[str] = []
        pos = 0

        while pos < len(data):
            current = data[pos]
            following = data[pos + 1] if pos + 1 < len(data) else None

            if (
                following is not None
                and is_escape(following)
                and current & PAIR_MARKER
            ):
                text = self.maps.decode_2bytes(pair_code(current, following))
                pos += 2
            elif is_escape(current):
                raise StringDecodeError(
                    "Dangling half word character",
                    partial="".join(fragments),
                    raw=data,
                )
            else:
                text = self.maps.decode_byte(current)
                pos += 1

            if text:
                fragments.append(text)

        return "".join(fragments)
