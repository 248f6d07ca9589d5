from collections import defaultdict
from dataclasses import dataclass, field
from logging import getLogger
from typing import Final, Self

from .blob import FileBlob, RawBlob
from .helpers import DuplicateKeyError, FormatError, Schema
from .mnemonics import MnemonicIndex
from .records import (
    RecordIndex,
    TextEntry,
    check_entry_length,
    check_font_family,
    check_string_length,
    read_records,
)
from .regions import BlobRegion

TABLE: Final[str] = "ParameterIndex"
ENTRY_LENGTHS: Final[dict[Schema, int]] = {Schema.V2: 6, Schema.V3: 5, Schema.V4: 5}
MAX_STRING_LENGTHS: Final[dict[Schema, int]] = {
    Schema.V2: 32,
    Schema.V3: 32,
    Schema.V4: 256,
}
# Parameter slot holding the caption and tooltip of the owning menu.
MENU_CAPTION_PARAM: Final[int] = 255

_logger = getLogger(__name__)


@dataclass(frozen=True)
class ParameterRecord:
    """One parameter record as stored, before nested tables are read."""

    menu: int
    param: int
    caption_off: int
    tooltip_off: int
    mnemonic_off: int
    blob: RawBlob


@dataclass(frozen=True)
class MenuCaption:
    caption_off: int
    tooltip_off: int


@dataclass(frozen=True, eq=False)
class ParameterIndexEntry(TextEntry):
    """Caption/tooltip of one parameter and, in schema 4, its mnemonics."""

    mnemonics: MnemonicIndex = field(default_factory=MnemonicIndex.empty)

    # ------------------------------------------------------------------ #
    # Record loaders                                                     #
    # ------------------------------------------------------------------ #
    @staticmethod
    def load_v2(fp: FileBlob) -> ParameterRecord:
        """Schema 2 record: parameter, menu, 32-bit caption offset."""
        param = fp.read_byte(BlobRegion.PARAMETERS)
        menu = fp.read_byte(BlobRegion.PARAMETERS)
        caption_off = fp.read_le_4bytes(BlobRegion.PARAMETERS)
        return ParameterRecord(menu, param, caption_off, 0, 0, fp.freeze())

    @staticmethod
    def load_v3(fp: FileBlob) -> ParameterRecord:
        """Schema 3 record: parameter, zero byte, 24-bit caption offset."""
        param = fp.read_byte(BlobRegion.PARAMETERS)
        if fp.read_byte(BlobRegion.PARAMETERS) != 0:
            raise FormatError(f"{TABLE}: out of range param {param}")
        caption_off = fp.read_le_3bytes(BlobRegion.PARAMETERS)
        return ParameterRecord(0, param, caption_off, 0, 0, fp.freeze())

    @staticmethod
    def load_v4(fp: FileBlob) -> ParameterRecord:
        """Schema 4 record: parameter, caption, tooltip and mnemonic table offsets."""
        param = fp.read_byte(BlobRegion.PARAMETERS)
        caption_off = fp.read_le_3bytes(BlobRegion.PARAMETERS)
        tooltip_off = fp.read_le_3bytes(BlobRegion.PARAMETERS)
        mnemonic_off = fp.read_le_3bytes(BlobRegion.PARAMETERS)
        return ParameterRecord(
            0, param, caption_off, tooltip_off, mnemonic_off, fp.freeze()
        )


class ParameterIndex(RecordIndex[int, ParameterIndexEntry]):
    """Parameter number to parameter entry, for one menu."""

    @classmethod
    def empty(cls) -> Self:
        return cls(TABLE)

    @classmethod
    def from_records(
        cls,
        records: list[ParameterRecord],
        schema: Schema,
        mnemonics: dict[int, MnemonicIndex] | None = None,
    ) -> tuple[Self, MenuCaption]:
        """Build one menu's table and pull out its parameter 255.

        Records with a zero caption offset are absent slots and are dropped,
        but still count when looking for repeated parameter numbers.

        Returns:
            The table without parameter 255, and the menu caption/tooltip
            offsets parameter 255 carried (zeros when there was none)
        """
        max_length = MAX_STRING_LENGTHS[schema]
        mnemonics = mnemonics or {}
        pairs = []
        seen: set[int] = set()
        menu_caption = MenuCaption(0, 0)

        for record in records:
            if record.param in seen:
                raise DuplicateKeyError(TABLE, record.param)
            seen.add(record.param)
            if record.caption_off == 0:
                _logger.debug("Empty slot for parameter %d", record.param)
                continue
            entry = ParameterIndexEntry(
                caption_off=record.caption_off,
                tooltip_off=record.tooltip_off,
                max_length=max_length,
                blob=record.blob,
                mnemonics=mnemonics.get(record.mnemonic_off, MnemonicIndex.empty()),
            )
            pairs.append((record.param, entry))

        index = cls.build(TABLE, pairs)
        if schema is not Schema.V4:
            menu_caption = index._take_menu_caption()
        return index, menu_caption

    def _take_menu_caption(self) -> MenuCaption:
        sentinel = self._entries.pop(MENU_CAPTION_PARAM, None)
        if sentinel is None:
            return MenuCaption(0, 0)
        return MenuCaption(sentinel.caption_off, sentinel.tooltip_off)

    # ------------------------------------------------------------------ #
    # Readers                                                            #
    # ------------------------------------------------------------------ #
    @staticmethod
    def read_header(
        fp: FileBlob, schema: Schema, root_font_family: int
    ) -> tuple[int, int]:
        """Read a schema 2/3 parameter table header.

        Returns:
            Number of entries and declared entry length
        """
        num_entries = fp.read_le_2bytes(BlobRegion.PARAMETERS)
        max_str_len = fp.read_le_2bytes(BlobRegion.PARAMETERS)
        font_family = fp.read_byte(BlobRegion.PARAMETERS)
        idx_entry_len = fp.read_byte(BlobRegion.PARAMETERS)

        check_font_family(TABLE, root_font_family, font_family)
        # Schema 2 has no empty form of the table.
        if idx_entry_len != 0 or schema is Schema.V2:
            check_entry_length(TABLE, schema, idx_entry_len, ENTRY_LENGTHS)
            check_string_length(TABLE, schema, max_str_len, MAX_STRING_LENGTHS)
        return num_entries, idx_entry_len

    @classmethod
    def read_v2_menus(
        cls, fp: FileBlob, root_font_family: int
    ) -> dict[int, list[ParameterRecord]]:
        """Read the flat schema 2 parameter list grouped by menu number."""
        num_entries, _ = cls.read_header(fp, Schema.V2, root_font_family)

        by_menu: dict[int, list[ParameterRecord]] = defaultdict(list)
        for record in read_records(fp, num_entries, ParameterIndexEntry.load_v2):
            by_menu[record.menu].append(record)
        return dict(by_menu)

    @classmethod
    def read_v3(
        cls, fp: FileBlob, root_font_family: int
    ) -> tuple[Self, MenuCaption]:
        """Read a schema 3 table; parameter 255 becomes the menu caption."""
        num_entries, idx_entry_len = cls.read_header(fp, Schema.V3, root_font_family)
        if idx_entry_len == 0:
            return cls.empty(), MenuCaption(0, 0)

        records = read_records(fp, num_entries, ParameterIndexEntry.load_v3)
        return cls.from_records(records, Schema.V3)

    @classmethod
    def read_v4(cls, fp: FileBlob) -> Self:
        """Read a schema 4 table and the mnemonic tables it refers to."""
        num_entries = fp.read_le_2bytes(BlobRegion.PARAMETERS)
        idx_entry_len = fp.read_byte(BlobRegion.PARAMETERS)
        if idx_entry_len == 0:
            return cls.empty()

        check_entry_length(TABLE, Schema.V4, idx_entry_len, ENTRY_LENGTHS)
        records = read_records(fp, num_entries, ParameterIndexEntry.load_v4)

        mnemonics: dict[int, MnemonicIndex] = {}
        for record in records:
            if record.mnemonic_off and record.mnemonic_off not in mnemonics:
                fp.set_pos(record.mnemonic_off)
                mnemonics[record.mnemonic_off] = MnemonicIndex.read(fp)

        index, _ = cls.from_records(records, Schema.V4, mnemonics)
        return index
