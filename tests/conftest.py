"""Builders for synthetic language files.

Tables are appended after the 52-byte header in whatever order the test
likes; each ``add`` returns the absolute file offset of what it wrote, and
``patch`` fills in child offsets that were not known yet.
"""

from __future__ import annotations

import codecs

import pytest
from bitstring import pack

from langpack.characters import CharacterMaps

HEADER_SIZE = 52
FONT_FAMILY = 3
PRODUCT_ID = 0x1234
HEADER_FORMAT = (
    "uintle:32, uintle:32, uintle:16, uintle:16, uintle:32, bytes:16, uintle:16, uintle:16"
)

CHARACTER_MAP_XML = codecs.BOM_UTF8 + """<?xml version="1.0" encoding="utf-8"?>
<characterMaps>
  <characterMap id="1" bytesPerCharacter="1">
{singles}
    <char value="127" name=""/>
  </characterMap>
  <characterMap id="2" bytesPerCharacter="2">
    <char value="737" name="Ω"/>
  </characterMap>
</characterMaps>
""".format(
    singles="\n".join(
        f'    <char value="{code}" name="{chr(code)}"/>'
        for code in range(0x30, 0x7B)
        if chr(code).isalnum()
    )
).encode("utf-8")


class FileBuilder:
    def __init__(self) -> None:
        self.body = bytearray()

    def here(self) -> int:
        return HEADER_SIZE + len(self.body)

    def add(self, fmt: str, *values) -> int:
        offset = self.here()
        self.body += pack(fmt, *values).tobytes()
        return offset

    def raw(self, data: bytes) -> int:
        offset = self.here()
        self.body += data
        return offset

    def string(self, text: str | bytes) -> int:
        data = text.encode("utf-8") if isinstance(text, str) else text
        return self.raw(data + b"\0")

    def patch(self, offset: int, fmt: str, *values) -> None:
        data = pack(fmt, *values).tobytes()
        start = offset - HEADER_SIZE
        self.body[start : start + len(data)] = data

    def build(
        self,
        schema: int,
        offsets: list[int],
        *,
        font_family: int = FONT_FAMILY,
        offset_size: int | None = None,
        length: int | None = None,
        name: bytes = b"English",
        locale_id: int = 9,
        version: int = 0x01020304,
        crc: int = 0xDEADBEEF,
    ) -> bytes:
        if offset_size is None:
            offset_size = 4 if schema == 2 else 3
        slot = "uintle:32" if schema == 2 else "uintle:24"
        table = pack(", ".join([slot] * len(offsets)), *offsets).tobytes()
        total = HEADER_SIZE + len(self.body)
        head = pack(
            HEADER_FORMAT,
            total if length is None else length,
            crc,
            schema,
            locale_id,
            version,
            name.ljust(16, b"\0"),
            font_family,
            offset_size,
        ).tobytes()
        return head + table.ljust(16, b"\0") + bytes(self.body)


def make_v3(
    *,
    units_font_family: int = FONT_FAMILY,
    enum_ids: tuple[int, ...] = (1,),
    units_at_enumerations: bool = False,
    speed: bytes = b"Speed",
    with_keypad: bool = False,
) -> bytes:
    """Schema 3 file: one product, mode 0, menu 0 with parameter 7."""
    b = FileBuilder()

    products = b.add("uint:8, uint:8", 1, 11)
    product = b.add(
        "uintle:16, uintle:16, uintle:16, uintle:16, uintle:24",
        PRODUCT_ID, 0, 0xFFFF, 0, 0,
    )
    modes = b.add("uint:8, uint:8, uintle:24", 1, 3, 0)
    b.patch(product + 8, "uintle:24", modes)
    menus = b.add("uint:8, uint:8, uintle:24", 1, 3, 0)
    b.patch(modes + 2, "uintle:24", menus)

    params = b.add("uintle:16, uintle:16, uint:8, uint:8", 2, 32, FONT_FAMILY, 5)
    b.patch(menus + 2, "uintle:24", params)
    param = b.add("uint:8, uint:8, uintle:24", 7, 0, 0)
    sentinel = b.add("uint:8, uint:8, uintle:24", 255, 0, 0)

    enumerations = b.add(
        "uintle:16, uintle:16, uint:8, uint:8", len(enum_ids), 16, FONT_FAMILY, 5
    )
    enum_records = [b.add("uintle:16, uintle:24", enum_id, 0) for enum_id in enum_ids]

    units = b.add("uintle:16, uintle:16, uint:8, uint:8", 1, 16, units_font_family, 5)
    unit = b.add("uintle:16, uintle:24", 4, 0)

    keypad = 0
    if with_keypad:
        keypad = b.add("uintle:16, uintle:16, uint:8, uint:8", 0, 32, FONT_FAMILY, 6)

    b.patch(param + 2, "uintle:24", b.string(speed))
    b.patch(sentinel + 2, "uintle:24", b.string("Motor"))
    off = b.string("Off")
    for record in enum_records:
        b.patch(record + 2, "uintle:24", off)
    b.patch(unit + 2, "uintle:24", b.string("rpm"))

    units_off = enumerations if units_at_enumerations else units
    return b.build(3, [products, enumerations, keypad, units_off])


def make_v2(*, with_keypad: bool = True) -> bytes:
    """Schema 2 file with a flat parameter list spread over menus 0 and 3."""
    b = FileBuilder()

    products = b.add("uint:8, uint:8", 1, 8)
    product = b.add("uint:8, uint:8, uintle:16, uintle:32", 2, 6, PRODUCT_ID, 0)
    modes = b.add("uint:8, uint:8, uint:8, uintle:32", 1, 5, 1, 0)
    b.patch(product + 4, "uintle:32", modes)

    params = b.add("uintle:16, uintle:16, uint:8, uint:8", 4, 32, FONT_FAMILY, 6)
    b.patch(modes + 3, "uintle:32", params)
    records = [
        (1, 0, "Speed"),
        (255, 0, "Motor"),
        (2, 3, "Accel"),
        (255, 3, "Setup"),
    ]
    positions = [
        (b.add("uint:8, uint:8, uintle:32", param, menu, 0), text)
        for param, menu, text in records
    ]

    enumerations = b.add("uintle:16, uintle:16, uint:8, uint:8", 1, 16, FONT_FAMILY, 6)
    enum_record = b.add("uintle:16, uintle:32", 1, 0)

    keypad = 0
    keypad_record = None
    if with_keypad:
        keypad = b.add("uintle:16, uintle:16, uint:8, uint:8", 1, 32, FONT_FAMILY, 6)
        keypad_record = b.add("uintle:16, uintle:32", 2, 0)

    units = b.add("uintle:16, uintle:16, uint:8, uint:8", 1, 16, FONT_FAMILY, 6)
    unit = b.add("uintle:16, uintle:32", 4, 0)

    for position, text in positions:
        b.patch(position + 2, "uintle:32", b.string(text))
    b.patch(enum_record + 2, "uintle:32", b.string("Off"))
    if keypad_record is not None:
        b.patch(keypad_record + 2, "uintle:32", b.string("Enter"))
    b.patch(unit + 2, "uintle:32", b.string("Hz"))

    return b.build(2, [products, enumerations, keypad, units])


def make_v4() -> bytes:
    """Schema 4 file: two parameters sharing one mnemonic table."""
    b = FileBuilder()

    products = b.add("uint:8, uint:8", 1, 11)
    product = b.add(
        "uintle:16, uintle:16, uintle:16, uintle:16, uintle:24",
        PRODUCT_ID, 10, 20, 1, 0,
    )
    modes = b.add("uint:8, uint:8, uintle:24, uintle:24", 2, 3, 0, 0)
    b.patch(product + 8, "uintle:24", modes)

    # Mode 1 gets one menu, mode 2 none worth reading (menu caption 0).
    menus = b.add("uint:8, uint:8", 2, 9)
    menu = b.add("uintle:24, uintle:24, uintle:24", 0, 0, 0)
    b.add("uintle:24, uintle:24, uintle:24", 0, 0, 0)
    b.patch(modes + 2, "uintle:24", menus)
    empty_menus = b.add("uint:8, uint:8, uintle:24, uintle:24, uintle:24", 1, 9, 0, 0, 0)
    b.patch(modes + 5, "uintle:24", empty_menus)

    params = b.add("uintle:16, uint:8", 2, 5)
    b.patch(menu + 6, "uintle:24", params)
    first = b.add("uint:8, uintle:24, uintle:24, uintle:24", 1, 0, 0, 0)
    second = b.add("uint:8, uintle:24, uintle:24, uintle:24", 2, 0, 0, 0)

    mnemonics = b.add("uintle:16, uint:8", 2, 5)
    minus_one = b.add("uintle:32, uintle:24, uintle:24", 0xFFFFFFFE, 0, 0)
    five = b.add("uintle:32, uintle:24, uintle:24", 5, 0, 0)
    b.patch(first + 7, "uintle:24", mnemonics)
    b.patch(second + 7, "uintle:24", mnemonics)

    enumerations = b.add("uintle:16, uint:8", 1, 5)
    enum_record = b.add("uintle:16, uintle:24", 1, 0)
    units = b.add("uintle:16, uint:8", 1, 8)
    unit = b.add("uintle:16, uintle:24, uintle:24", 4, 0, 0)

    b.patch(menu, "uintle:24, uintle:24", b.string("Réglages"), b.string("Menu 1"))
    b.patch(first + 1, "uintle:24, uintle:24", b.string("Vitesse"), b.string("tr/min"))
    b.patch(second + 1, "uintle:24", b.string("Température"))
    b.patch(minus_one + 4, "uintle:24", b.string("Arrêt"))
    b.patch(five + 4, "uintle:24, uintle:24", b.string("Marche"), b.string("Actif"))
    b.patch(enum_record + 2, "uintle:24", b.string("Non"))
    b.patch(unit + 2, "uintle:24, uintle:24", b.string("°C"), b.string("degrés"))

    return b.build(4, [products, enumerations, units])


@pytest.fixture
def character_maps() -> CharacterMaps:
    return CharacterMaps.from_xml(CHARACTER_MAP_XML)


@pytest.fixture
def v2_file() -> bytes:
    return make_v2()


@pytest.fixture
def v3_file() -> bytes:
    return make_v3()


@pytest.fixture
def v4_file() -> bytes:
    return make_v4()
