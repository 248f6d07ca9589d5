from dataclasses import dataclass
from logging import getLogger
from pathlib import Path
from typing import ClassVar, Final, Self

from bitstring import ConstBitStream, ReadError

from .codepage_string import StringDecoder
from .helpers import BlobBoundsError, FileLengthError, StringDecodeError
from .regions import BlobDiagnostics, BlobRegion

NO_STRING: Final[str] = "[-- no string --]"
EMPTY_STRING: Final[str] = "[-- empty string --]"
TERMINATOR: Final[int] = 0x00


@dataclass(frozen=True)
class _BlobData:
    data: bytes
    decoder: StringDecoder
    diagnostics: BlobDiagnostics


class RawBlob:
    """Read-only view of a loaded file.

    Index entries keep one of these to resolve their strings after the
    sequential parse has moved on. Views share the bytes and diagnostics of
    the file they were frozen from.
    """

    def __init__(self, blob: _BlobData) -> None:
        self._blob = blob

    @property
    def diagnostics(self) -> BlobDiagnostics:
        return self._blob.diagnostics

    def __len__(self) -> int:
        return len(self._blob.data)

    def _scan(self, offset: int, max_length: int) -> tuple[bytes, int]:
        """Return the string bytes at *offset* and the span consumed."""
        data = self._blob.data
        end = offset + max_length
        pos = offset

        while pos < end:
            if pos >= len(data):
                raise BlobBoundsError(
                    f"String at {offset} runs past end of file ({len(data)})"
                )
            if data[pos] == TERMINATOR:
                return data[offset:pos], pos + 1 - offset
            pos += 1

        return data[offset:end], max_length

    def get_string(self, offset: int, max_length: int) -> str:
        """Resolve the string stored at *offset*.

        The string ends at the first NUL or after *max_length* bytes.

        Returns:
            Decoded text, :data:`NO_STRING` for offset 0 or
            :data:`EMPTY_STRING` for a zero length string

        Raises:
            StringDecodeError: If the bytes cannot be decoded
            BlobBoundsError: If the string runs past the end of the file
        """
        if offset == 0:
            return NO_STRING

        raw, span = self._scan(offset, max_length)
        self.diagnostics.tag(offset, span, BlobRegion.TEXT)

        if not raw:
            return EMPTY_STRING

        try:
            text = self._blob.decoder.decode(raw)
        except StringDecodeError as err:
            raise err.at_offset(offset) from err

        self.diagnostics.record_string(text, offset, span)
        return text


class FileBlob:
    """Sequential cursor over a whole language file.

    Every read tags the bytes it consumed with a :class:`BlobRegion`, so
    that overlapping tables are detected.
    """

    _logger: ClassVar = getLogger(__name__)

    def __init__(self, blob: _BlobData) -> None:
        self._blob = blob
        self._bs = ConstBitStream(blob.data)
        self._pos = 0

    @classmethod
    def load(
        cls,
        source: str | Path | bytes | bytearray,
        expected_size: int,
        decoder: StringDecoder,
    ) -> Self:
        """Read the whole file into memory.

        Raises:
            FileLengthError: If the size differs from *expected_size*
        """
        if isinstance(source, (bytes, bytearray)):
            data = bytes(source)
        else:
            data = Path(source).read_bytes()

        if len(data) != expected_size:
            raise FileLengthError(
                f"File length incorrect: {len(data)} != {expected_size}"
            )

        cls._logger.debug("Loaded %d bytes", len(data))
        return cls(_BlobData(data, decoder, BlobDiagnostics(len(data))))

    # ------------------------------------------------------------------ #
    # Position                                                           #
    # ------------------------------------------------------------------ #
    @property
    def pos(self) -> int:
        """Current read position in *bytes*."""
        return self._pos

    def set_pos(self, pos: int) -> None:
        # Out of range positions fail on the next read.
        self._pos = pos

    @property
    def diagnostics(self) -> BlobDiagnostics:
        return self._blob.diagnostics

    def freeze(self) -> RawBlob:
        return RawBlob(self._blob)

    # ------------------------------------------------------------------ #
    # Primitive reads                                                    #
    # ------------------------------------------------------------------ #
    def _read(self, fmt: str, size: int, region: BlobRegion):
        start = self._pos
        if start + size > len(self._blob.data):
            raise BlobBoundsError(
                f"Read of {size} bytes at {start} beyond end of file"
            )
        try:
            self._bs.bytepos = start
            value = self._bs.read(fmt)
        except ReadError as err:
            raise BlobBoundsError(
                f"Read of {size} bytes at {start} beyond end of file"
            ) from err
        self._pos = start + size
        self.diagnostics.tag(start, size, region)
        return value

    def read_fixed(self, size: int, region: BlobRegion) -> bytes:
        """Consume exactly *size* bytes."""
        return self._read(f"bytes:{size}", size, region)

    def read_byte(self, region: BlobRegion) -> int:
        return self._read("uint:8", 1, region)

    def read_le_2bytes(self, region: BlobRegion) -> int:
        return self._read("uintle:16", 2, region)

    def read_le_3bytes(self, region: BlobRegion) -> int:
        return self._read("uintle:24", 3, region)

    def read_le_4bytes(self, region: BlobRegion) -> int:
        return self._read("uintle:32", 4, region)
