from dataclasses import dataclass
from logging import getLogger
from typing import Final, Self

from .blob import FileBlob
from .helpers import EmptySlotError, Schema
from .records import RecordIndex, TextEntry, read_flat_header, read_records
from .regions import BlobRegion

TABLE: Final[str] = "KeypadStrIndex"
ENTRY_LENGTHS: Final[dict[Schema, int]] = {Schema.V2: 6}
MAX_STRING_LENGTHS: Final[dict[Schema, int]] = {Schema.V2: 32}

_logger = getLogger(__name__)


@dataclass(frozen=True, eq=False)
class KeypadStrIndexEntry(TextEntry):
    """Text shown on the keypad display; schema 2 only."""

    string_id: int = 0

    @classmethod
    def load_v2(cls, fp: FileBlob) -> Self:
        string_id = fp.read_le_2bytes(BlobRegion.KEYPAD_STRS)
        caption_off = fp.read_le_4bytes(BlobRegion.KEYPAD_STRS)
        if caption_off == 0:
            raise EmptySlotError(f"{TABLE}: empty slot for string {string_id}")
        return cls(
            caption_off=caption_off,
            tooltip_off=0,
            max_length=MAX_STRING_LENGTHS[Schema.V2],
            blob=fp.freeze(),
            string_id=string_id,
        )


class KeypadStrIndex(RecordIndex[int, KeypadStrIndexEntry]):
    """String id to keypad text."""

    @classmethod
    def empty(cls) -> Self:
        return cls(TABLE)

    @classmethod
    def read(cls, fp: FileBlob, schema: Schema, root_font_family: int) -> Self:
        num_entries = read_flat_header(
            fp,
            TABLE,
            BlobRegion.KEYPAD_STRS,
            schema,
            root_font_family,
            ENTRY_LENGTHS,
            MAX_STRING_LENGTHS,
        )
        entries = read_records(fp, num_entries, KeypadStrIndexEntry.load_v2)
        _logger.debug("%d keypad strings", len(entries))
        return cls.build(TABLE, ((entry.string_id, entry) for entry in entries))
