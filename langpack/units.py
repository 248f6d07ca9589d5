from dataclasses import dataclass
from logging import getLogger
from typing import Final, Self

from .blob import FileBlob
from .helpers import EmptySlotError, Schema
from .records import RecordIndex, TextEntry, read_flat_header, read_records
from .regions import BlobRegion

TABLE: Final[str] = "UnitsIndex"
ENTRY_LENGTHS: Final[dict[Schema, int]] = {Schema.V2: 6, Schema.V3: 5, Schema.V4: 8}
MAX_STRING_LENGTHS: Final[dict[Schema, int]] = {
    Schema.V2: 16,
    Schema.V3: 16,
    Schema.V4: 256,
}

_logger = getLogger(__name__)


@dataclass(frozen=True, eq=False)
class UnitsIndexEntry(TextEntry):
    """Display text of one unit of measure."""

    unit_id: int = 0


class UnitsIndex(RecordIndex[int, UnitsIndexEntry]):
    """Unit id to unit text."""

    @staticmethod
    def _load(fp: FileBlob, schema: Schema) -> UnitsIndexEntry:
        unit_id = fp.read_le_2bytes(BlobRegion.UNITS)
        tooltip_off = 0
        match schema:
            case Schema.V2:
                caption_off = fp.read_le_4bytes(BlobRegion.UNITS)
            case Schema.V3:
                caption_off = fp.read_le_3bytes(BlobRegion.UNITS)
            case _:
                caption_off = fp.read_le_3bytes(BlobRegion.UNITS)
                tooltip_off = fp.read_le_3bytes(BlobRegion.UNITS)

        if caption_off == 0:
            raise EmptySlotError(f"{TABLE}: empty slot for unit {unit_id}")

        return UnitsIndexEntry(
            caption_off=caption_off,
            tooltip_off=tooltip_off,
            max_length=MAX_STRING_LENGTHS[schema],
            blob=fp.freeze(),
            unit_id=unit_id,
        )

    @classmethod
    def read(cls, fp: FileBlob, schema: Schema, root_font_family: int) -> Self:
        num_entries = read_flat_header(
            fp,
            TABLE,
            BlobRegion.UNITS,
            schema,
            root_font_family,
            ENTRY_LENGTHS,
            MAX_STRING_LENGTHS,
        )
        entries = read_records(fp, num_entries, lambda f: cls._load(f, schema))
        _logger.debug("%d units", len(entries))
        return cls.build(TABLE, ((entry.unit_id, entry) for entry in entries))
