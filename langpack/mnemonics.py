from dataclasses import dataclass
from logging import getLogger
from typing import Final, Self

from .blob import FileBlob
from .helpers import EmptySlotError, Schema, signed_value
from .records import RecordIndex, TextEntry, check_entry_length, read_records
from .regions import BlobRegion

TABLE: Final[str] = "MnemonicIndex"
ENTRY_LENGTHS: Final[dict[Schema, int]] = {Schema.V4: 5}
MAX_STRING_LENGTH: Final[int] = 256

_logger = getLogger(__name__)


@dataclass(frozen=True, eq=False)
class MnemonicIndexEntry(TextEntry):
    """Caption and tooltip of one value of a parameter's selector list."""

    value: int = 0

    @classmethod
    def load(cls, fp: FileBlob) -> Self:
        """Read one 10-byte record: value, caption and tooltip offsets."""
        raw_value = fp.read_le_4bytes(BlobRegion.MNEMONICS)
        caption_off = fp.read_le_3bytes(BlobRegion.MNEMONICS)
        tooltip_off = fp.read_le_3bytes(BlobRegion.MNEMONICS)

        value = signed_value(raw_value)
        if caption_off == 0:
            raise EmptySlotError(f"{TABLE}: empty slot for value {value}")

        return cls(
            caption_off=caption_off,
            tooltip_off=tooltip_off,
            max_length=MAX_STRING_LENGTH,
            blob=fp.freeze(),
            value=value,
        )


class MnemonicIndex(RecordIndex[int, MnemonicIndexEntry]):
    """Signed value to mnemonic text, nested under schema 4 parameters."""

    @classmethod
    def empty(cls) -> Self:
        return cls(TABLE)

    @classmethod
    def read(cls, fp: FileBlob, schema: Schema = Schema.V4) -> Self:
        num_entries = fp.read_le_2bytes(BlobRegion.MNEMONICS)
        idx_entry_len = fp.read_byte(BlobRegion.MNEMONICS)

        if idx_entry_len == 0:
            return cls.empty()

        check_entry_length(TABLE, schema, idx_entry_len, ENTRY_LENGTHS)

        entries = read_records(fp, num_entries, MnemonicIndexEntry.load)
        _logger.debug("%d mnemonics", len(entries))
        return cls.build(TABLE, ((entry.value, entry) for entry in entries))
