from collections import Counter
from dataclasses import dataclass, field
from enum import IntEnum
from logging import getLogger
from types import MappingProxyType
from typing import ClassVar, Mapping

from .helpers import RegionConflictError


class BlobRegion(IntEnum):
    """Record type that consumed a byte of the language file."""

    EMPTY = 0
    HEADER = 1
    PRODUCTS = 2
    MODES = 3
    MENUS = 4
    PARAMETERS = 5
    MNEMONICS = 6
    UNITS = 7
    KEYPAD_STRS = 8
    ENUMERATIONS = 9
    TEXT = 10


@dataclass(frozen=True)
class CoverageReport:
    """Summary of how the bytes of one file were used.

    Attributes:
        total_bytes: File size
        unused_bytes: Bytes no reader or string claimed
        region_bytes: Byte count per region, EMPTY excluded
        distinct_strings: Number of different decoded texts
        duplicate_strings: Texts stored at more than one offset, counted per
            extra offset
        duplicate_bytes: Bytes spent on those extra copies
    """

    total_bytes: int
    unused_bytes: int
    region_bytes: Mapping[BlobRegion, int]
    distinct_strings: int
    duplicate_strings: int
    duplicate_bytes: int

    @property
    def is_complete(self) -> bool:
        return self.unused_bytes == 0

    def lines(self) -> list[str]:
        out = [
            f"File size          : {self.total_bytes}",
            f"Unused bytes       : {self.unused_bytes}",
        ]
        for region, count in sorted(self.region_bytes.items()):
            out.append(f"{region.name.replace('_', ' ').title():<19}: {count}")
        out += [
            f"Distinct strings   : {self.distinct_strings}",
            f"Duplicate strings  : {self.duplicate_strings}",
            f"Duplicate bytes    : {self.duplicate_bytes}",
        ]
        return out


@dataclass
class BlobDiagnostics:
    """Region tags and string usage of one file.

    Shared by every view of the blob. All mutation happens on the parsing
    thread, so no locking is done.
    """

    _logger: ClassVar = getLogger(__name__)

    size: int
    _tags: bytearray = field(init=False, repr=False)
    _first_offset: dict[str, int] = field(default_factory=dict, repr=False)
    _seen_offsets: dict[int, str] = field(default_factory=dict, repr=False)
    duplicate_strings: int = 0
    duplicate_bytes: int = 0

    def __post_init__(self) -> None:
        self._tags = bytearray(self.size)

    def tag(self, start: int, length: int, region: BlobRegion) -> None:
        """Mark ``[start, start + length)`` as consumed by *region*.

        Re-tagging with the same region is a no-op.

        Raises:
            RegionConflictError: If any byte already belongs to another region
        """
        end = min(start + length, self.size)
        for pos in range(start, end):
            current = self._tags[pos]
            if current == region:
                continue
            if current != BlobRegion.EMPTY:
                raise RegionConflictError(
                    f"Byte {pos} read as {region.name} "
                    f"but already read as {BlobRegion(current).name}"
                )
            self._tags[pos] = region

    def region_at(self, pos: int) -> BlobRegion:
        return BlobRegion(self._tags[pos])

    def record_string(self, text: str, offset: int, length: int) -> None:
        """Note that *text* was decoded from *length* bytes at *offset*."""
        if offset in self._seen_offsets:
            return
        self._seen_offsets[offset] = text

        first = self._first_offset.get(text)
        if first is None:
            self._first_offset[text] = offset
            return

        self.duplicate_strings += 1
        self.duplicate_bytes += length
        self._logger.debug(
            "String %r at %d duplicates offset %d", text, offset, first
        )

    def report(self) -> CoverageReport:
        counts = Counter(self._tags)
        region_bytes = {
            BlobRegion(tag): n for tag, n in counts.items() if tag != BlobRegion.EMPTY
        }
        return CoverageReport(
            total_bytes=self.size,
            unused_bytes=counts.get(BlobRegion.EMPTY, 0),
            region_bytes=MappingProxyType(region_bytes),
            distinct_strings=len(self._first_offset),
            duplicate_strings=self.duplicate_strings,
            duplicate_bytes=self.duplicate_bytes,
        )
