from dataclasses import dataclass
from enum import IntEnum
from logging import getLogger
from typing import Final, Self

from .blob import FileBlob
from .helpers import EmptySlotError, FormatError, Schema
from .menus import MenuIndex
from .records import RecordIndex, check_entry_length, read_records
from .regions import BlobRegion

TABLE: Final[str] = "ModeIndex"
ENTRY_LENGTHS: Final[dict[Schema, int]] = {Schema.V2: 5, Schema.V3: 3, Schema.V4: 3}
MIN_MODES: Final[int] = 1
MAX_MODES: Final[int] = 4

_logger = getLogger(__name__)


class DriveMode(IntEnum):
    """Drive operating mode a menu tree applies to."""

    ANY = 0
    OPEN_LOOP = 1
    RFC_A = 2
    RFC_S = 3
    REGEN = 4

    @property
    def label(self) -> str:
        return _MODE_LABELS[self]


_MODE_LABELS: Final[dict[DriveMode, str]] = {
    DriveMode.ANY: "Any",
    DriveMode.OPEN_LOOP: "Open Loop",
    DriveMode.RFC_A: "RFC-A",
    DriveMode.RFC_S: "RFC-S",
    DriveMode.REGEN: "Regen",
}


@dataclass(frozen=True)
class ModeIndexEntry:
    menus: MenuIndex

    def get_menus(self) -> MenuIndex:
        return self.menus

    def to_string(self, mode: int) -> str:
        return f"Mode '{DriveMode(mode).label}' num of menus = {len(self.menus)}"


class ModeIndex(RecordIndex[DriveMode, ModeIndexEntry]):
    """Drive mode to the menu tree used in that mode."""

    @staticmethod
    def _read_v2_entries(fp: FileBlob, num_entries: int) -> list[tuple[int, int]]:
        entries = []
        for i in range(num_entries):
            mode_num = fp.read_byte(BlobRegion.MODES)
            offset = fp.read_le_4bytes(BlobRegion.MODES)
            if num_entries > 1:
                if mode_num != i + 1:
                    raise FormatError(f"Out of seq mode numbers {mode_num} != {i + 1}")
            elif mode_num not in (0, 1):
                raise FormatError(f"Invalid mode_num {mode_num}")
            if offset == 0:
                raise EmptySlotError(f"{TABLE}: offset of mode {mode_num} is zero")
            entries.append((mode_num, offset))
        return entries

    @staticmethod
    def _read_v3_entries(fp: FileBlob, num_entries: int) -> list[tuple[int, int]]:
        offsets = read_records(
            fp, num_entries, lambda f: f.read_le_3bytes(BlobRegion.MODES)
        )
        if num_entries == 1:
            if offsets[0] == 0:
                raise EmptySlotError(f"{TABLE}: offset of mode 0 is zero")
            return [(DriveMode.ANY, offsets[0])]
        return [(i + 1, offset) for i, offset in enumerate(offsets) if offset != 0]

    @classmethod
    def read(cls, fp: FileBlob, schema: Schema, font_family: int) -> Self:
        num_modes = fp.read_byte(BlobRegion.MODES)
        idx_entry_len = fp.read_byte(BlobRegion.MODES)

        check_entry_length(TABLE, schema, idx_entry_len, ENTRY_LENGTHS)
        if not MIN_MODES <= num_modes <= MAX_MODES:
            raise FormatError(f"{TABLE}: {num_modes} modes, expected 1 to 4")

        if schema is Schema.V2:
            entries = cls._read_v2_entries(fp, num_modes)
        else:
            entries = cls._read_v3_entries(fp, num_modes)

        pairs = []
        for mode_num, offset in entries:
            fp.set_pos(offset)
            menus = MenuIndex.read(fp, schema, font_family)
            pairs.append((DriveMode(mode_num), ModeIndexEntry(menus)))
        return cls.build(TABLE, pairs)

    def get_num_modes(self) -> int:
        return len(self)
