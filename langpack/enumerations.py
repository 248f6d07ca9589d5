from dataclasses import dataclass
from logging import getLogger
from typing import Final, Self

from .blob import FileBlob
from .helpers import EmptySlotError, Schema
from .records import RecordIndex, TextEntry, read_flat_header, read_records
from .regions import BlobRegion

TABLE: Final[str] = "EnumerationsIndex"
ENTRY_LENGTHS: Final[dict[Schema, int]] = {Schema.V2: 6, Schema.V3: 5, Schema.V4: 5}
MAX_STRING_LENGTHS: Final[dict[Schema, int]] = {
    Schema.V2: 16,
    Schema.V3: 16,
    Schema.V4: 256,
}

_logger = getLogger(__name__)


@dataclass(frozen=True, eq=False)
class EnumerationsIndexEntry(TextEntry):
    """Text of one legacy enumeration string."""

    enum_id: int = 0


class EnumerationsIndex(RecordIndex[int, EnumerationsIndexEntry]):
    """Enumeration string id to text."""

    @staticmethod
    def _load(fp: FileBlob, schema: Schema) -> EnumerationsIndexEntry:
        enum_id = fp.read_le_2bytes(BlobRegion.ENUMERATIONS)
        if schema is Schema.V2:
            caption_off = fp.read_le_4bytes(BlobRegion.ENUMERATIONS)
        else:
            caption_off = fp.read_le_3bytes(BlobRegion.ENUMERATIONS)

        if caption_off == 0:
            raise EmptySlotError(f"{TABLE}: empty slot for enumeration {enum_id}")

        return EnumerationsIndexEntry(
            caption_off=caption_off,
            tooltip_off=0,
            max_length=MAX_STRING_LENGTHS[schema],
            blob=fp.freeze(),
            enum_id=enum_id,
        )

    @classmethod
    def read(cls, fp: FileBlob, schema: Schema, root_font_family: int) -> Self:
        num_entries = read_flat_header(
            fp,
            TABLE,
            BlobRegion.ENUMERATIONS,
            schema,
            root_font_family,
            ENTRY_LENGTHS,
            MAX_STRING_LENGTHS,
        )
        entries = read_records(fp, num_entries, lambda f: cls._load(f, schema))
        _logger.debug("%d enumerations", len(entries))
        return cls.build(TABLE, ((entry.enum_id, entry) for entry in entries))
