"""Machinery shared by the index table readers.

Every table is a mapping from a small integer key to an entry. Tables are
read in the same way for all schemas: a short header, a check of the
declared record width against the schema, then ``count`` fixed width
records decoded by a per-schema loader.
"""

from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field
from typing import Mapping, TypeVar

from .blob import FileBlob, RawBlob
from .helpers import (
    DuplicateKeyError,
    FontFamilyMismatchError,
    FormatError,
    Schema,
    UnsupportedSchemaError,
)
from .regions import BlobRegion

K = TypeVar("K", bound=int)
E = TypeVar("E")
R = TypeVar("R")


class RecordIndex(Mapping[K, E]):
    """Read-only table of entries keyed by a natural id.

    Iteration is in descending key order, whatever the order of the records
    in the file.
    """

    def __init__(self, name: str, entries: dict[K, E] | None = None) -> None:
        self.name = name
        self._entries: dict[K, E] = dict(entries or {})

    @classmethod
    def build(cls, name: str, pairs: Iterable[tuple[K, E]]):
        """Create a table from ``(key, entry)`` pairs.

        Raises:
            DuplicateKeyError: If a key appears twice
        """
        entries: dict[K, E] = {}
        for key, entry in pairs:
            if key in entries:
                raise DuplicateKeyError(name, key)
            entries[key] = entry
        return cls(name, entries)

    def __getitem__(self, key: K) -> E:
        return self._entries[key]

    def __iter__(self) -> Iterator[K]:
        return iter(sorted(self._entries, reverse=True))

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r}, {len(self)} entries)"


def read_records(
    fp: FileBlob, count: int, load: Callable[[FileBlob], R]
) -> list[R]:
    """Read *count* consecutive records with the loader *load*."""
    return [load(fp) for _ in range(count)]


def schema_value(table: str, schema: Schema, values: Mapping[Schema, R]) -> R:
    """Look up the per-schema constant of *table*.

    Raises:
        UnsupportedSchemaError: If *table* is not defined for *schema*
    """
    try:
        return values[schema]
    except KeyError:
        raise UnsupportedSchemaError(
            f"{table} not supported by schema {int(schema)}"
        ) from None


def check_entry_length(
    table: str, schema: Schema, actual: int, expected: Mapping[Schema, int]
) -> None:
    """Validate the declared record width of *table*.

    The width is a fixed value per schema and acts as a tripwire against
    layout drift.
    """
    required = schema_value(table, schema, expected)
    if actual != required:
        raise FormatError(
            f"{table} entry wrong size {required} != {actual} (schema {int(schema)})"
        )


def check_string_length(
    table: str, schema: Schema, actual: int, expected: Mapping[Schema, int]
) -> None:
    required = schema_value(table, schema, expected)
    if actual != required:
        raise FormatError(
            f"{table} max string length should be {required} not {actual}"
        )


def check_font_family(table: str, root: int, actual: int) -> None:
    if root != actual:
        raise FontFamilyMismatchError(
            f"{table}: font family {actual} does not match root {root}"
        )


def read_flat_header(
    fp: FileBlob,
    table: str,
    region: BlobRegion,
    schema: Schema,
    root_font_family: int,
    entry_lengths: Mapping[Schema, int],
    string_lengths: Mapping[Schema, int],
) -> int:
    """Read and validate the header of a flat top level table.

    Schema 2/3 headers hold the entry count, the maximum string length, the
    font family and the entry length. Schema 4 headers drop the string
    length and font family; the string length is then implied.

    Returns:
        Number of entries
    """
    num_entries = fp.read_le_2bytes(region)
    if schema is Schema.V4:
        max_str_len = schema_value(table, schema, string_lengths)
    else:
        max_str_len = fp.read_le_2bytes(region)
        check_font_family(table, root_font_family, fp.read_byte(region))
    idx_entry_len = fp.read_byte(region)

    check_entry_length(table, schema, idx_entry_len, entry_lengths)
    check_string_length(table, schema, max_str_len, string_lengths)
    return num_entries


@dataclass(frozen=True, eq=False)
class TextEntry:
    """Entry whose caption (and optional tooltip) live elsewhere in the blob.

    Entries compare equal by caption offset.
    """

    caption_off: int
    tooltip_off: int
    max_length: int
    blob: RawBlob = field(repr=False)

    def caption(self) -> str:
        return self.blob.get_string(self.caption_off, self.max_length)

    def tooltip(self) -> str | None:
        if self.tooltip_off == 0:
            return None
        return self.blob.get_string(self.tooltip_off, self.max_length)

    def to_string(self) -> str:
        """Caption, followed by `` / tooltip`` when there is one.

        Raises:
            StringDecodeError: If either string fails to decode
        """
        caption = self.caption()
        tooltip = self.tooltip()
        if tooltip is None:
            return caption
        return f"{caption} / {tooltip}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TextEntry):
            return NotImplemented
        return self.caption_off == other.caption_off

    def __hash__(self) -> int:
        return hash(self.caption_off)
