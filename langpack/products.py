from dataclasses import dataclass
from logging import getLogger
from typing import Final, Self

from .blob import FileBlob
from .helpers import EmptySlotError, FormatError, Schema
from .modes import ModeIndex
from .records import RecordIndex, check_entry_length, read_records
from .regions import BlobRegion

TABLE: Final[str] = "ProductIndex"
ENTRY_LENGTHS: Final[dict[Schema, int]] = {Schema.V2: 8, Schema.V3: 11, Schema.V4: 11}
MAX_V2_FLAGS: Final[int] = 15
ALL_DERIVATIVES: Final[tuple[int, int]] = (0, 0xFFFF)
DEFAULT_PRODUCT_COUNT_RANGE: Final[tuple[int, int]] = (10, 40)

_logger = getLogger(__name__)


@dataclass(frozen=True)
class ProductRecord:
    product_id: int
    derivative_id_low: int
    derivative_id_high: int
    flags: int
    modes_off: int


@dataclass(frozen=True)
class ProductIndexEntry:
    """One product (or range of derivatives of it) and its mode table."""

    product_id: int
    derivative_id_low: int
    derivative_id_high: int
    flags: int
    modes: ModeIndex

    @property
    def all_derivatives(self) -> bool:
        return (self.derivative_id_low, self.derivative_id_high) == ALL_DERIVATIVES

    def get_modes(self) -> ModeIndex:
        return self.modes

    def to_string(self) -> str:
        num_modes = len(self.modes)
        if self.all_derivatives:
            return f"ALL DERIVATIVES : num of modes = {num_modes}"
        if self.derivative_id_high > self.derivative_id_low:
            return (
                f"Derv {self.derivative_id_low} - {self.derivative_id_high} : "
                f"num_of_modes = {num_modes}"
            )
        return f"Derv {self.derivative_id_low} : num_of_modes = {num_modes}"


class ProductIndex(RecordIndex[int, ProductIndexEntry]):
    """Product id to product entry; the root of the menu tree."""

    @staticmethod
    def load_v2(fp: FileBlob) -> ProductRecord:
        """Schema 2 record: flags, derivative, product id, 32-bit offset."""
        flags = fp.read_byte(BlobRegion.PRODUCTS)
        if flags > MAX_V2_FLAGS:
            raise FormatError(f"Invalid flags in product index: {flags}")
        derivative_id = fp.read_byte(BlobRegion.PRODUCTS)
        product_id = fp.read_le_2bytes(BlobRegion.PRODUCTS)
        modes_off = fp.read_le_4bytes(BlobRegion.PRODUCTS)
        return ProductRecord(product_id, derivative_id, derivative_id, flags, modes_off)

    @staticmethod
    def load_v3(fp: FileBlob) -> ProductRecord:
        """Schema 3/4 record: product id, derivative range, flags, 24-bit offset."""
        product_id = fp.read_le_2bytes(BlobRegion.PRODUCTS)
        derivative_id_low = fp.read_le_2bytes(BlobRegion.PRODUCTS)
        derivative_id_high = fp.read_le_2bytes(BlobRegion.PRODUCTS)
        flags = fp.read_le_2bytes(BlobRegion.PRODUCTS)
        modes_off = fp.read_le_3bytes(BlobRegion.PRODUCTS)
        return ProductRecord(
            product_id, derivative_id_low, derivative_id_high, flags, modes_off
        )

    @staticmethod
    def check_count(
        num_products: int, count_range: tuple[int, int], strict: bool
    ) -> None:
        """Sanity check the number of products.

        The bounds come from known device files rather than the format, so a
        violation is only a warning unless *strict* is set.
        """
        low, high = count_range
        if low <= num_products <= high:
            return
        message = f"Unexpected number of products {num_products} (expected {low} to {high})"
        if strict:
            raise FormatError(message)
        _logger.warning(message)

    @classmethod
    def read(
        cls,
        fp: FileBlob,
        schema: Schema,
        font_family: int,
        count_range: tuple[int, int] = DEFAULT_PRODUCT_COUNT_RANGE,
        strict_count: bool = False,
    ) -> Self:
        num_products = fp.read_byte(BlobRegion.PRODUCTS)
        idx_entry_len = fp.read_byte(BlobRegion.PRODUCTS)

        check_entry_length(TABLE, schema, idx_entry_len, ENTRY_LENGTHS)
        cls.check_count(num_products, count_range, strict_count)

        load = cls.load_v2 if schema is Schema.V2 else cls.load_v3
        records = read_records(fp, num_products, load)

        pairs = []
        for record in records:
            if record.modes_off == 0:
                raise EmptySlotError(f"{TABLE}: empty slot for product {record.product_id}")
            fp.set_pos(record.modes_off)
            modes = ModeIndex.read(fp, schema, font_family)
            entry = ProductIndexEntry(
                product_id=record.product_id,
                derivative_id_low=record.derivative_id_low,
                derivative_id_high=record.derivative_id_high,
                flags=record.flags,
                modes=modes,
            )
            pairs.append((record.product_id, entry))

        _logger.debug("%d products", len(pairs))
        return cls.build(TABLE, pairs)
