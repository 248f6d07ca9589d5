import codecs
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from logging import getLogger
from pathlib import Path
from types import MappingProxyType
from typing import Final, Mapping, Self

from .helpers import CharacterMapError

MAP_TAG: Final[str] = "characterMap"
CHAR_TAG: Final[str] = "char"

_logger = getLogger(__name__)


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


@dataclass(frozen=True)
class CharacterMap:
    """One codepage table: codepoint to Unicode text.

    Attributes:
        map_id: Identifier used by the font file
        bytes_per_char: 1 or 2
        chars: Codepoint to text; an empty text means "no glyph"
    """

    map_id: int
    bytes_per_char: int
    chars: Mapping[int, str]

    def get_unicode(self, code: int) -> str:
        try:
            return self.chars[code]
        except KeyError:
            raise CharacterMapError(
                f"Failed to find {code} in character map {self.map_id} "
                f"size {self.bytes_per_char}"
            ) from None


@dataclass(frozen=True)
class CharacterMaps:
    """Immutable set of character maps loaded from the XML definition."""

    maps: tuple[CharacterMap, ...] = ()

    def _map_for(self, width: int) -> CharacterMap:
        for char_map in self.maps:
            if char_map.bytes_per_char == width:
                return char_map
        raise CharacterMapError(f"No {width} byte character map defined")

    def decode_byte(self, code: int) -> str:
        return self._map_for(1).get_unicode(code)

    def decode_2bytes(self, code: int) -> str:
        return self._map_for(2).get_unicode(code)

    @classmethod
    def from_xml(cls, data: bytes) -> Self:
        """Parse a character map definition.

        Format::

            <characterMaps>
              <characterMap id="1" bytesPerCharacter="1">
                <char value="65" name="A"/>
              </characterMap>
            </characterMaps>

        Raises:
            CharacterMapError: If the XML is malformed
        """
        data = data.removeprefix(codecs.BOM_UTF8)
        try:
            root = ET.fromstring(data)
        except ET.ParseError as err:
            raise CharacterMapError(f"Invalid character map XML: {err}") from err

        maps: list[CharacterMap] = []
        for elem in root.iter():
            if _local_name(elem.tag) != MAP_TAG:
                continue
            chars: dict[int, str] = {}
            for child in elem:
                if _local_name(child.tag) != CHAR_TAG:
                    continue
                chars[int(child.get("value", "0"))] = child.get("name", "")
            maps.append(
                CharacterMap(
                    map_id=int(elem.get("id", "0")),
                    bytes_per_char=int(elem.get("bytesPerCharacter", "0")),
                    chars=MappingProxyType(chars),
                )
            )
            _logger.debug(
                "Character map %s: %d bytes per character, %d entries",
                elem.get("id"),
                maps[-1].bytes_per_char,
                len(chars),
            )

        return cls(tuple(maps))


def read_character_file(path: str | Path) -> CharacterMaps:
    """Load the character maps from the XML file at *path*."""
    return CharacterMaps.from_xml(Path(path).read_bytes())
