import argparse
import logging
import sys
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Final, Sequence

# ---------------------------------------------------------------------------
# Shared decoder utilities
# ---------------------------------------------------------------------------
from decoder_core import (
    DEFAULT_CHARMAP,
    DEFAULT_EXTENSION,
    DEFAULT_FONTS,
    LogLevel,
    dump_path,
    language_files,
    load_character_maps,
    load_fonts,
    setup_logging,
)

# ---------------------------------------------------------------------------
# Language pack library
# ---------------------------------------------------------------------------
from langpack.characters import CharacterMaps
from langpack.helpers import LanguagePackError, StringDecodeError
from langpack.language import DecoderOptions, Language, LanguageHeader, read_language_file
from langpack.modes import DriveMode
from langpack.records import TextEntry
from langpack.regions import CoverageReport

SEP: Final[str] = "-" * 80
DSEP: Final[str] = "=" * 80

_logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Formatting helpers (human-readable dump)
# ---------------------------------------------------------------------------


def _text(entry: TextEntry) -> str:
    """Entry text, or a marker when a string fails to decode."""
    try:
        return entry.to_string()
    except StringDecodeError as err:
        return f"<decode error: {err}>"


def fmt_header(h: LanguageHeader) -> str:
    lines = [DSEP, "LANGUAGE FILE HEADER", SEP]
    for fld in fields(h):
        val = getattr(h, fld.name)
        if fld.name == "offsets":
            val = ", ".join(f"{o.name}={getattr(val, o.name)}" for o in fields(val))
        lines.append(f"{fld.name.replace('_', ' ').title():<25}: {val}")
    lines.append(DSEP)
    return "\n".join(lines)


def fmt_products(lang: Language) -> str:
    lines = ["Products ...."]
    for product_id, product in lang.products.items():
        lines.append(f"{product_id} => {product.to_string()}")
        for mode, mode_entry in product.modes.items():
            lines.append(f"- {mode_entry.to_string(DriveMode(mode))}")
            for menu, menu_entry in mode_entry.menus.items():
                lines.append(f"- - M.{menu} => {_text(menu_entry)}")
                for param, param_entry in menu_entry.params.items():
                    lines.append(f"- - - P.{param} => {_text(param_entry)}")
                    for value, mnemonic in param_entry.mnemonics.items():
                        lines.append(f"- - - - {value} => {_text(mnemonic)}")
    return "\n".join(lines)


def fmt_flat(title: str, table) -> str:
    lines = [f"{title} ...."]
    for key, entry in table.items():
        lines.append(f"{key} => {_text(entry)}")
    return "\n".join(lines)


def fmt_coverage(report: CoverageReport) -> str:
    return "\n".join([DSEP, "COVERAGE", SEP, *report.lines(), DSEP])


def fmt_language(lang: Language) -> str:
    """Full text dump of *lang*; strings that fail to decode are marked."""
    sections = [
        fmt_header(lang.header),
        fmt_products(lang),
        fmt_flat("Enumerations", lang.enumerations),
        fmt_flat("Keypad strs", lang.keypad_strs),
        fmt_flat("Units", lang.units),
        fmt_coverage(lang.coverage()),
    ]
    return "\n".join(sections) + "\n"


# ---------------------------------------------------------------------------
# CLI argument parsing
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class CliArgs:
    directory: str
    charmap: str
    fonts: str
    extension: str
    log_level: LogLevel
    strict_product_count: bool


def parse_args(argv: Sequence[str] | None = None) -> CliArgs:
    p = argparse.ArgumentParser("Language pack decoder (CLI)")
    p.add_argument(
        "directory",
        nargs="?",
        default=".",
        help="Directory scanned for language files",
    )
    p.add_argument("--charmap", default=DEFAULT_CHARMAP, help="Character map XML")
    p.add_argument("--fonts", default=DEFAULT_FONTS, help="Font glyph file")
    p.add_argument(
        "--extension", default=DEFAULT_EXTENSION, help="Language file extension"
    )
    p.add_argument(
        "-l",
        "--log-level",
        default=LogLevel.INFO.value,
        choices=[lvl.value for lvl in LogLevel],
        help="Logging level",
    )
    p.add_argument(
        "--strict-product-count",
        action="store_true",
        help="Fail when the product count is outside the expected bounds",
    )
    ns = p.parse_args(argv)
    return CliArgs(
        ns.directory,
        ns.charmap,
        ns.fonts,
        ns.extension,
        LogLevel(ns.log_level),
        ns.strict_product_count,
    )


# ---------------------------------------------------------------------------
# Decoder runner
# ---------------------------------------------------------------------------


def decode_file(
    path: Path, maps: CharacterMaps | None, options: DecoderOptions
) -> list[StringDecodeError]:
    """Decode one file and write its dump next to it."""
    _logger.info("Processing %s", path)
    lang = read_language_file(path, maps, options)
    errors = lang.resolve_all()
    dump_path(path).write_text(fmt_language(lang), encoding="utf-8")
    return errors


def run_decoder(args: CliArgs) -> int:
    """Decode every language file in the directory."""
    setup_logging(args.log_level)
    options = DecoderOptions(strict_product_count=args.strict_product_count)

    try:
        load_fonts(Path(args.directory) / args.fonts)
        maps = load_character_maps(Path(args.directory) / args.charmap)

        for path in language_files(args.directory, args.extension):
            try:
                errors = decode_file(path, maps, options)
            except LanguagePackError as exc:
                _logger.error("%s: %s", path, exc)
                return 1
            if errors:
                for err in errors:
                    _logger.error("%s: %s", path, err)
                return 1
        return 0

    except KeyboardInterrupt:
        return 0

    except Exception as exc:  # noqa: BLE001
        logging.exception("Fatal error: %s", exc)
        return 1


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: Sequence[str] | None = None) -> None:  # pragma: no cover
    sys.exit(run_decoder(parse_args(argv)))


if __name__ == "__main__":
    main()
