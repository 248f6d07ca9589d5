from dataclasses import dataclass
from logging import getLogger
from pathlib import Path
from typing import ClassVar, Final, Self

from bitstring import ConstBitStream, ReadError

from .helpers import BlobBoundsError

FILE_HEADER_FORMAT: Final[str] = (
    "uintle:32, uintle:32, uintle:16, uintle:16, uintle:16, uintle:16"
)
SECTION_HEADER_FORMAT: Final[str] = (
    "uint:8, pad:24, uint:8, uint:8, uint:8, uint:8, uintle:16, uintle:16"
)


@dataclass(frozen=True)
class FontSection:
    """Glyphs of one font family for one character map."""

    char_map: int
    font_family: int
    glyph_width: int
    glyph_height: int
    bytes_per_glyph: int
    min_codepoint: int
    max_codepoint: int
    glyphs: bytes

    @classmethod
    def read(cls, stream: ConstBitStream) -> Self:
        (
            char_map,
            font_family,
            glyph_width,
            glyph_height,
            bytes_per_glyph,
            min_codepoint,
            max_codepoint,
        ) = stream.readlist(SECTION_HEADER_FORMAT)
        size = bytes_per_glyph * (max_codepoint - min_codepoint + 1)
        glyphs = stream.read(f"bytes:{size}")
        return cls(
            char_map=char_map,
            font_family=font_family,
            glyph_width=glyph_width,
            glyph_height=glyph_height,
            bytes_per_glyph=bytes_per_glyph,
            min_codepoint=min_codepoint,
            max_codepoint=max_codepoint,
            glyphs=glyphs,
        )

    def matches(self, char_map: int, font_family: int) -> bool:
        return self.char_map == char_map and self.font_family == font_family


@dataclass(frozen=True)
class FontIndex:
    """Glyph bitmaps from the device font file."""

    _logger: ClassVar = getLogger(__name__)

    schema: int
    version: int
    sections: tuple[FontSection, ...]

    @classmethod
    def from_bytes(cls, data: bytes) -> Self:
        stream = ConstBitStream(data)
        try:
            file_len, file_crc, schema, version, num_fonts, table_pos = stream.readlist(
                FILE_HEADER_FORMAT
            )
            stream.bytepos = table_pos
            offsets = stream.readlist(", ".join(["uintle:32"] * num_fonts)) if num_fonts else []

            sections = []
            for offset in offsets:
                stream.bytepos = offset
                sections.append(FontSection.read(stream))
        except (ReadError, ValueError) as err:
            raise BlobBoundsError(f"Font file truncated: {err}") from err

        cls._logger.info("Font file length = %d, crc = %d", file_len, file_crc)
        cls._logger.info("Font file schema %d, version %d, %d fonts", schema, version, num_fonts)
        for section in sections:
            cls._logger.debug(
                "map = %d, id = %d, %d x %d, %d to %d",
                section.char_map,
                section.font_family,
                section.glyph_width,
                section.glyph_height,
                section.min_codepoint,
                section.max_codepoint,
            )
        return cls(schema, version, tuple(sections))

    def get_size(self, char_map: int, font_family: int) -> tuple[int, int] | None:
        """Glyph width and height of a font, if present."""
        for section in self.sections:
            if section.matches(char_map, font_family):
                return section.glyph_width, section.glyph_height
        return None

    def get_glyph(self, char_map: int, font_family: int, codepoint: int) -> bytes | None:
        """Bitmap of *codepoint*, if the font covers it."""
        for section in self.sections:
            if (
                section.matches(char_map, font_family)
                and section.min_codepoint <= codepoint <= section.max_codepoint
            ):
                start = (codepoint - section.min_codepoint) * section.bytes_per_glyph
                return section.glyphs[start : start + section.bytes_per_glyph]
        return None


def read_font_file(path: str | Path) -> FontIndex:
    return FontIndex.from_bytes(Path(path).read_bytes())
