from collections.abc import Iterator
from dataclasses import dataclass
from logging import getLogger
from pathlib import Path
from typing import ClassVar, Final, Self

from bitstring import ConstBitStream, ReadError

from .blob import FileBlob, RawBlob
from .characters import CharacterMaps
from .codepage_string import CodepageStringDecoder, StringDecoder, Utf8StringDecoder
from .enumerations import EnumerationsIndex
from .helpers import (
    BlobBoundsError,
    CharacterMapError,
    FormatError,
    Schema,
    StringDecodeError,
    UnsupportedSchemaError,
    narrow_to_byte,
    version_string,
)
from .keypad_strs import KeypadStrIndex
from .products import DEFAULT_PRODUCT_COUNT_RANGE, ProductIndex
from .records import TextEntry
from .regions import BlobRegion, CoverageReport
from .units import UnitsIndex

HEADER_SIZE: Final[int] = 52
NAME_SIZE: Final[int] = 16
# Offsets per schema, in header order. Schema 4 has no keypad string slot.
OFFSET_SLOTS: Final[dict[Schema, tuple[str, ...]]] = {
    Schema.V2: ("products", "enumerations", "keypad_strs", "units"),
    Schema.V3: ("products", "enumerations", "keypad_strs", "units"),
    Schema.V4: ("products", "enumerations", "units"),
}


def parse_schema(schema: int) -> Schema:
    try:
        return Schema(schema)
    except ValueError:
        raise UnsupportedSchemaError(f"Invalid format, schema = {schema}") from None


@dataclass(frozen=True)
class DecoderOptions:
    """Tunable checks of the decoder.

    Attributes:
        product_count_range: Expected bounds of the product table size
        strict_product_count: Raise instead of warning when out of bounds
    """

    product_count_range: tuple[int, int] = DEFAULT_PRODUCT_COUNT_RANGE
    strict_product_count: bool = False


@dataclass(frozen=True)
class HeaderOffsets:
    products: int
    enumerations: int
    keypad_strs: int
    units: int


@dataclass(frozen=True)
class LanguageHeader:
    """Fixed 52-byte header at the start of every language file."""

    _logger: ClassVar = getLogger(__name__)

    file_length: int
    file_crc: int
    schema: Schema
    locale_id: int
    version: str
    name: str
    font_family: int
    offset_size: int
    offsets: HeaderOffsets

    @staticmethod
    def peek(data: bytes) -> tuple[int, int, int]:
        """Return file length, CRC and schema without tagging any bytes."""
        try:
            return tuple(ConstBitStream(data).peeklist("uintle:32, uintle:32, uintle:16"))  # type: ignore[return-value]
        except ReadError as err:
            raise BlobBoundsError("File too short for a language header") from err

    @staticmethod
    def validate_schema(schema: int, offset_size: int) -> Schema:
        checked = parse_schema(schema)
        if offset_size != checked.offset_size:
            raise UnsupportedSchemaError(
                f"Invalid format, schema {schema} with offset size {offset_size}"
            )
        return checked

    @staticmethod
    def _read_offsets(fp: FileBlob, schema: Schema) -> HeaderOffsets:
        read = fp.read_le_4bytes if schema is Schema.V2 else fp.read_le_3bytes
        values = {slot: read(BlobRegion.HEADER) for slot in OFFSET_SLOTS[schema]}
        # Remainder of the offset table is reserved.
        if fp.pos < HEADER_SIZE:
            fp.read_fixed(HEADER_SIZE - fp.pos, BlobRegion.HEADER)
        return HeaderOffsets(
            products=values["products"],
            enumerations=values["enumerations"],
            keypad_strs=values.get("keypad_strs", 0),
            units=values["units"],
        )

    @classmethod
    def read(cls, fp: FileBlob) -> Self:
        fp.set_pos(0)
        file_length = fp.read_le_4bytes(BlobRegion.HEADER)
        file_crc = fp.read_le_4bytes(BlobRegion.HEADER)
        schema = fp.read_le_2bytes(BlobRegion.HEADER)
        locale_id = fp.read_le_2bytes(BlobRegion.HEADER)
        version = version_string(fp.read_le_4bytes(BlobRegion.HEADER))
        name = fp.read_fixed(NAME_SIZE, BlobRegion.HEADER)
        font_family = narrow_to_byte(fp.read_le_2bytes(BlobRegion.HEADER), "font family")
        offset_size = fp.read_le_2bytes(BlobRegion.HEADER)

        checked = cls.validate_schema(schema, offset_size)
        offsets = cls._read_offsets(fp, checked)

        header = cls(
            file_length=file_length,
            file_crc=file_crc,
            schema=checked,
            locale_id=locale_id,
            version=version,
            name=name.split(b"\0", 1)[0].decode("latin-1"),
            font_family=font_family,
            offset_size=offset_size,
            offsets=offsets,
        )
        cls._logger.info("Language file length = %d, crc = %d", file_length, file_crc)
        cls._logger.info(
            "Language file schema %d, offset_size %d, version %s",
            schema,
            offset_size,
            version,
        )
        cls._logger.info(
            "Language file locale_id %d, font family %d", locale_id, font_family
        )
        return header


def decoder_for(schema: Schema, maps: CharacterMaps | None) -> StringDecoder:
    """Schema 4 files are UTF-8, older ones use the codepage maps."""
    if schema.is_utf8:
        return Utf8StringDecoder()
    if maps is None:
        raise CharacterMapError(f"Schema {int(schema)} file needs a character map")
    return CodepageStringDecoder(maps)


@dataclass(frozen=True)
class Language:
    """Decoded language file."""

    _logger: ClassVar = getLogger(__name__)

    header: LanguageHeader
    products: ProductIndex
    enumerations: EnumerationsIndex
    keypad_strs: KeypadStrIndex
    units: UnitsIndex
    blob: RawBlob

    @property
    def schema(self) -> Schema:
        return self.header.schema

    @classmethod
    def from_bytes(
        cls,
        data: bytes,
        maps: CharacterMaps | None = None,
        options: DecoderOptions = DecoderOptions(),
    ) -> Self:
        """Decode a whole language file.

        Raises:
            LanguagePackError: Any fatal layout problem; there is no partial
                result
        """
        file_length, _, schema = LanguageHeader.peek(data)
        decoder = decoder_for(parse_schema(schema), maps)
        fp = FileBlob.load(data, file_length, decoder)

        header = LanguageHeader.read(fp)
        offsets = header.offsets

        fp.set_pos(offsets.products)
        products = ProductIndex.read(
            fp,
            header.schema,
            header.font_family,
            options.product_count_range,
            options.strict_product_count,
        )

        fp.set_pos(offsets.enumerations)
        enumerations = EnumerationsIndex.read(fp, header.schema, header.font_family)

        if offsets.keypad_strs > 0:
            fp.set_pos(offsets.keypad_strs)
            keypad_strs = KeypadStrIndex.read(fp, header.schema, header.font_family)
        elif header.schema is Schema.V2:
            raise FormatError("Missing Keypad strings in V2 language file")
        else:
            keypad_strs = KeypadStrIndex.empty()

        fp.set_pos(offsets.units)
        units = UnitsIndex.read(fp, header.schema, header.font_family)

        return cls(
            header=header,
            products=products,
            enumerations=enumerations,
            keypad_strs=keypad_strs,
            units=units,
            blob=fp.freeze(),
        )

    # ------------------------------------------------------------------ #
    # Traversal                                                          #
    # ------------------------------------------------------------------ #
    def text_entries(self) -> Iterator[TextEntry]:
        """Yield every entry that refers to a string, tree first."""
        for product in self.products.values():
            for mode in product.modes.values():
                for menu in mode.menus.values():
                    yield menu
                    for param in menu.params.values():
                        yield param
                        yield from param.mnemonics.values()
        yield from self.enumerations.values()
        yield from self.keypad_strs.values()
        yield from self.units.values()

    def resolve_all(self) -> list[StringDecodeError]:
        """Decode every string, collecting per-string failures.

        Fatal errors still propagate.
        """
        errors: list[StringDecodeError] = []
        for entry in self.text_entries():
            try:
                entry.to_string()
            except StringDecodeError as err:
                errors.append(err)
        return errors

    def coverage(self) -> CoverageReport:
        report = self.blob.diagnostics.report()
        if not report.is_complete:
            self._logger.warning(
                "%d of %d bytes not accounted for", report.unused_bytes, report.total_bytes
            )
        return report


def read_language_file(
    path: str | Path,
    maps: CharacterMaps | None = None,
    options: DecoderOptions = DecoderOptions(),
) -> Language:
    return Language.from_bytes(Path(path).read_bytes(), maps, options)
