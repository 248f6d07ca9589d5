"""Language pack decoder utilities shared by the command line tools."""

from __future__ import annotations
import logging
from enum import Enum, unique
from pathlib import Path
from typing import Final, Iterator

from langpack.characters import CharacterMaps, read_character_file
from langpack.fonts import FontIndex, read_font_file

DEFAULT_EXTENSION: Final[str] = ".bin"
DEFAULT_CHARMAP: Final[str] = "CharacterMaps.xml"
DEFAULT_FONTS: Final[str] = "fonts.bft"
DUMP_SUFFIX: Final[str] = ".txt"


# ------------------------------------------------------------------
# Logging
# ------------------------------------------------------------------
@unique
class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    def to_int(self) -> int:
        return getattr(logging, self.value)


def setup_logging(level: LogLevel) -> None:
    logging.basicConfig(
        level=level.to_int(),
        format="%(asctime)s [%(levelname)s] %(name)s:%(lineno)d - %(message)s",
    )


# ------------------------------------------------------------------
# IO helpers
# ------------------------------------------------------------------
def language_files(directory: str | Path, extension: str = DEFAULT_EXTENSION) -> Iterator[Path]:
    """Yield the files in *directory* ending with *extension*, sorted by name."""
    for path in sorted(Path(directory).iterdir()):
        if path.is_file() and path.name.endswith(extension):
            yield path


def load_character_maps(path: str | Path) -> CharacterMaps | None:
    """Load the codepage maps, or *None* when the file does not exist."""
    path = Path(path)
    if not path.is_file():
        logging.getLogger(__name__).warning(
            "No character map at %s; schema 2/3 files cannot be decoded", path
        )
        return None
    return read_character_file(path)


def load_fonts(path: str | Path) -> FontIndex | None:
    path = Path(path)
    if not path.is_file():
        return None
    return read_font_file(path)


def dump_path(path: Path) -> Path:
    return path.with_name(path.name + DUMP_SUFFIX)
