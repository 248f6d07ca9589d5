from dataclasses import dataclass, field
from logging import getLogger
from typing import Final, Self

from .blob import FileBlob
from .helpers import Schema
from .parameters import MAX_STRING_LENGTHS, ParameterIndex
from .records import RecordIndex, TextEntry, check_entry_length, read_records
from .regions import BlobRegion

TABLE: Final[str] = "MenuIndex"
ENTRY_LENGTHS: Final[dict[Schema, int]] = {Schema.V3: 3, Schema.V4: 9}

_logger = getLogger(__name__)


@dataclass(frozen=True)
class MenuRecord:
    menu: int
    caption_off: int
    tooltip_off: int
    params_off: int


@dataclass(frozen=True, eq=False)
class MenuIndexEntry(TextEntry):
    """Caption/tooltip of one menu and its parameter table."""

    params: ParameterIndex = field(default_factory=ParameterIndex.empty)

    def get_params(self) -> ParameterIndex:
        return self.params


class MenuIndex(RecordIndex[int, MenuIndexEntry]):
    """Menu number to menu entry, for one mode."""

    @classmethod
    def read(cls, fp: FileBlob, schema: Schema, font_family: int) -> Self:
        match schema:
            case Schema.V2:
                return cls.from_v2(fp, font_family)
            case Schema.V3:
                return cls.from_v3(fp, font_family)
            case _:
                return cls.from_v4(fp)

    @classmethod
    def from_v2(cls, fp: FileBlob, font_family: int) -> Self:
        """Synthesize menus from a schema 2 parameter list.

        Schema 2 files have no menu table: every parameter record carries
        its menu number, and parameter 255 of each menu holds the menu's own
        caption and tooltip.
        """
        pairs = []
        for menu, records in sorted(ParameterIndex.read_v2_menus(fp, font_family).items()):
            params, menu_caption = ParameterIndex.from_records(records, Schema.V2)
            entry = MenuIndexEntry(
                caption_off=menu_caption.caption_off,
                tooltip_off=menu_caption.tooltip_off,
                max_length=MAX_STRING_LENGTHS[Schema.V2],
                blob=fp.freeze(),
                params=params,
            )
            pairs.append((menu, entry))
        return cls.build(TABLE, pairs)

    @classmethod
    def from_v3(cls, fp: FileBlob, font_family: int) -> Self:
        """Read a schema 3 menu table: one parameter table offset per slot."""
        num_menus = fp.read_byte(BlobRegion.MENUS)
        idx_entry_len = fp.read_byte(BlobRegion.MENUS)
        check_entry_length(TABLE, Schema.V3, idx_entry_len, ENTRY_LENGTHS)

        records = [
            MenuRecord(menu, 0, 0, offset)
            for menu, offset in enumerate(
                read_records(fp, num_menus, lambda f: f.read_le_3bytes(BlobRegion.MENUS))
            )
            if offset > 0
        ]

        pairs = []
        for record in records:
            fp.set_pos(record.params_off)
            params, menu_caption = ParameterIndex.read_v3(fp, font_family)
            entry = MenuIndexEntry(
                caption_off=menu_caption.caption_off,
                tooltip_off=menu_caption.tooltip_off,
                max_length=MAX_STRING_LENGTHS[Schema.V3],
                blob=fp.freeze(),
                params=params,
            )
            pairs.append((record.menu, entry))
        return cls.build(TABLE, pairs)

    @staticmethod
    def _load_v4(fp: FileBlob) -> tuple[int, int, int]:
        caption_off = fp.read_le_3bytes(BlobRegion.MENUS)
        tooltip_off = fp.read_le_3bytes(BlobRegion.MENUS)
        params_off = fp.read_le_3bytes(BlobRegion.MENUS)
        return caption_off, tooltip_off, params_off

    @classmethod
    def from_v4(cls, fp: FileBlob) -> Self:
        """Read a schema 4 menu table with inline caption and tooltip."""
        num_menus = fp.read_byte(BlobRegion.MENUS)
        idx_entry_len = fp.read_byte(BlobRegion.MENUS)
        check_entry_length(TABLE, Schema.V4, idx_entry_len, ENTRY_LENGTHS)

        records = [
            MenuRecord(menu, *fields)
            for menu, fields in enumerate(read_records(fp, num_menus, cls._load_v4))
            if fields[0] > 0
        ]

        pairs = []
        for record in records:
            if record.params_off:
                fp.set_pos(record.params_off)
                params = ParameterIndex.read_v4(fp)
            else:
                params = ParameterIndex.empty()
            entry = MenuIndexEntry(
                caption_off=record.caption_off,
                tooltip_off=record.tooltip_off,
                max_length=MAX_STRING_LENGTHS[Schema.V4],
                blob=fp.freeze(),
                params=params,
            )
            pairs.append((record.menu, entry))

        _logger.debug("%d menus", len(pairs))
        return cls.build(TABLE, pairs)

    def get_num_menus(self) -> int:
        return len(self)
