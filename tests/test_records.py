import pytest
from bitstring import pack

from langpack.blob import NO_STRING, FileBlob
from langpack.codepage_string import Utf8StringDecoder
from langpack.helpers import (
    DuplicateKeyError,
    EmptySlotError,
    FontFamilyMismatchError,
    FormatError,
    Schema,
    UnsupportedSchemaError,
    narrow_to_byte,
    signed_value,
    version_string,
)
from langpack.menus import MenuIndex
from langpack.mnemonics import MnemonicIndex
from langpack.parameters import (
    MENU_CAPTION_PARAM,
    MenuCaption,
    ParameterIndex,
    ParameterRecord,
)
from langpack.records import RecordIndex, TextEntry, check_entry_length


def load(data: bytes) -> FileBlob:
    return FileBlob.load(data, len(data), Utf8StringDecoder())


# =============================================================================
# RecordIndex
# =============================================================================


def test_iteration_is_descending_regardless_of_insertion():
    index = RecordIndex.build("T", [(1, "a"), (5, "b"), (3, "c")])
    assert list(index) == [5, 3, 1]
    assert list(index.values()) == ["b", "c", "a"]
    assert len(index) == 3
    assert 3 in index
    assert index.get(4) is None


def test_duplicate_key_is_fatal():
    with pytest.raises(DuplicateKeyError) as info:
        RecordIndex.build("UnitsIndex", [(4, "a"), (2, "b"), (4, "c")])
    assert info.value.key == 4
    assert info.value.table == "UnitsIndex"


def test_empty_index():
    index = RecordIndex("T")
    assert list(index) == []
    assert repr(index) == "RecordIndex('T', 0 entries)"


# =============================================================================
# TextEntry
# =============================================================================


def test_entries_compare_by_caption_offset():
    blob = load(b"\x00A\x00B\x00").freeze()
    first = TextEntry(1, 0, 16, blob)
    same_caption = TextEntry(1, 3, 16, blob)
    other = TextEntry(3, 0, 16, blob)

    assert first == same_caption
    assert hash(first) == hash(same_caption)
    assert first != other
    assert len({first, same_caption, other}) == 2


def test_to_string_with_and_without_tooltip():
    blob = load(b"\x00Speed\x00Motor speed\x00").freeze()
    assert TextEntry(1, 0, 32, blob).to_string() == "Speed"
    assert TextEntry(1, 7, 32, blob).to_string() == "Speed / Motor speed"
    assert TextEntry(0, 0, 32, blob).to_string() == NO_STRING


# =============================================================================
# Field helpers
# =============================================================================


@pytest.mark.parametrize(
    "raw, key",
    [
        (5, 5),
        (0, 0),
        (0x7FFFFFF, 0x7FFFFFF),
        (0xFFFFFFFE, -1),
        (0xFFFFFFFF, 0),
        (0xFFFFFFF0, -15),
        (0x10000000, 0x10000001),
        (0x7FFFFFFF, -(2**31)),
        (0x80000000, -(2**31 - 1)),
    ],
)
def test_signed_value(raw, key):
    assert signed_value(raw) == key


@pytest.mark.parametrize(
    "raw", [0x08000000, 0x10000000, 0x40000000, 0x7FFFFFFF, 0x80000000, 0xC0000000]
)
def test_signed_value_stays_in_int32_range(raw):
    assert -(2**31) <= signed_value(raw) < 2**31


def test_version_string():
    assert version_string(0x01020304) == "V1.2.3.4"


def test_narrow_to_byte():
    assert narrow_to_byte(0x00FF, "font family") == 0xFF
    with pytest.raises(FormatError, match="font family"):
        narrow_to_byte(0x0100, "font family")


def test_entry_length_tripwire():
    lengths = {Schema.V3: 5}
    check_entry_length("T", Schema.V3, 5, lengths)
    with pytest.raises(FormatError):
        check_entry_length("T", Schema.V3, 6, lengths)
    with pytest.raises(UnsupportedSchemaError):
        check_entry_length("T", Schema.V2, 5, lengths)


# =============================================================================
# Mnemonic index
# =============================================================================

MNEMONIC_RECORD = "uintle:32, uintle:24, uintle:24"


def mnemonic_table(entry_len: int = 5, first_caption: int = 24) -> bytes:
    # 1 pad byte, 3 header bytes, 2 records of 10 bytes, then strings at 24.
    return (
        pack(
            f"uint:8, uintle:16, uint:8, {MNEMONIC_RECORD}, {MNEMONIC_RECORD}",
            0, 2, entry_len,
            5, first_caption, 0,
            0xFFFFFFFE, 28, 33,
        ).tobytes()
        + b"Run\x00Stop\x00Halt\x00"
    )


def test_mnemonic_keys_are_signed_and_descending():
    fp = load(mnemonic_table())
    fp.set_pos(1)
    index = MnemonicIndex.read(fp)

    assert list(index) == [5, -1]
    assert index[5].to_string() == "Run"
    assert index[-1].to_string() == "Stop / Halt"
    assert fp.pos == 24


def test_mnemonic_wrong_entry_length_is_fatal():
    fp = load(mnemonic_table(entry_len=10))
    fp.set_pos(1)
    with pytest.raises(FormatError):
        MnemonicIndex.read(fp)


def test_mnemonic_zero_entry_length_is_empty():
    fp = load(mnemonic_table(entry_len=0))
    fp.set_pos(1)
    assert len(MnemonicIndex.read(fp)) == 0


def test_mnemonic_empty_caption_is_fatal():
    fp = load(mnemonic_table(first_caption=0))
    fp.set_pos(1)
    with pytest.raises(EmptySlotError):
        MnemonicIndex.read(fp)


# =============================================================================
# Parameter index
# =============================================================================

V3_PARAM_HEADER = "uintle:16, uintle:16, uint:8, uint:8"
V3_PARAM_RECORD = "uint:8, uint:8, uintle:24"


def test_sentinel_255_becomes_menu_caption():
    # Header at 1, one record at 7, caption string at 12.
    data = (
        pack(
            f"uint:8, {V3_PARAM_HEADER}, {V3_PARAM_RECORD}",
            0, 1, 32, 3, 5,
            MENU_CAPTION_PARAM, 0, 12,
        ).tobytes()
        + b"Drive\x00"
    )
    fp = load(data)
    fp.set_pos(1)
    params, caption = ParameterIndex.read_v3(fp, 3)

    assert caption == MenuCaption(12, 0)
    assert MENU_CAPTION_PARAM not in params
    assert list(params) == []


def test_v3_params_skip_empty_captions():
    data = (
        pack(
            f"uint:8, {V3_PARAM_HEADER}, {V3_PARAM_RECORD}, {V3_PARAM_RECORD}",
            0, 2, 32, 3, 5,
            10, 0, 0,
            11, 0, 17,
        ).tobytes()
        + b"Ramp\x00"
    )
    fp = load(data)
    fp.set_pos(1)
    params, caption = ParameterIndex.read_v3(fp, 3)

    assert list(params) == [11]
    assert params[11].to_string() == "Ramp"
    assert caption == MenuCaption(0, 0)


def test_v3_nonzero_second_byte_is_fatal():
    data = pack(
        f"uint:8, {V3_PARAM_HEADER}, {V3_PARAM_RECORD}", 0, 1, 32, 3, 5, 10, 1, 1
    ).tobytes()
    fp = load(data)
    fp.set_pos(1)
    with pytest.raises(FormatError, match="out of range"):
        ParameterIndex.read_v3(fp, 3)


def test_v3_font_family_mismatch_is_fatal():
    data = pack(f"uint:8, {V3_PARAM_HEADER}", 0, 0, 32, 3, 5).tobytes()
    fp = load(data)
    fp.set_pos(1)
    with pytest.raises(FontFamilyMismatchError):
        ParameterIndex.read_v3(fp, 4)


def test_zero_entry_length_means_empty_table():
    # Max string length is not checked for an empty table.
    data = pack(f"uint:8, {V3_PARAM_HEADER}", 0, 0, 0, 3, 0).tobytes()
    fp = load(data)
    fp.set_pos(1)
    params, caption = ParameterIndex.read_v3(fp, 3)
    assert len(params) == 0
    assert caption == MenuCaption(0, 0)


def test_duplicate_parameter_is_fatal():
    blob = load(b"\x00A\x00").freeze()
    records = [
        ParameterRecord(0, 3, 1, 0, 0, blob),
        ParameterRecord(0, 3, 1, 0, 0, blob),
    ]
    with pytest.raises(DuplicateKeyError):
        ParameterIndex.from_records(records, Schema.V3)


def test_duplicate_of_an_empty_slot_is_fatal():
    blob = load(b"\x00A\x00").freeze()
    records = [
        ParameterRecord(0, 3, 0, 0, 0, blob),
        ParameterRecord(0, 3, 1, 0, 0, blob),
    ]
    with pytest.raises(DuplicateKeyError) as info:
        ParameterIndex.from_records(records, Schema.V3)
    assert info.value.key == 3


V2_PARAM_HEADER = "uintle:16, uintle:16, uint:8, uint:8"
V2_PARAM_RECORD = "uint:8, uint:8, uintle:32"


def test_v2_duplicate_in_one_menu_is_fatal():
    data = pack(
        f"uint:8, {V2_PARAM_HEADER}, {V2_PARAM_RECORD}, {V2_PARAM_RECORD}",
        0, 2, 32, 3, 6,
        5, 0, 0,
        5, 0, 19,
    ).tobytes() + b"Ramp\x00"
    fp = load(data)
    fp.set_pos(1)
    with pytest.raises(DuplicateKeyError):
        MenuIndex.from_v2(fp, 3)


def test_v2_same_parameter_in_two_menus():
    data = pack(
        f"uint:8, {V2_PARAM_HEADER}, {V2_PARAM_RECORD}, {V2_PARAM_RECORD}",
        0, 2, 32, 3, 6,
        5, 0, 19,
        5, 1, 19,
    ).tobytes() + b"Ramp\x00"
    fp = load(data)
    fp.set_pos(1)
    menus = MenuIndex.from_v2(fp, 3)
    assert list(menus) == [1, 0]
    assert menus[0].params[5].to_string() == "Ramp"


def test_v2_zero_entry_length_is_fatal():
    data = pack(f"uint:8, {V2_PARAM_HEADER}", 0, 0, 0, 3, 0).tobytes()
    fp = load(data)
    fp.set_pos(1)
    with pytest.raises(FormatError, match="entry wrong size"):
        ParameterIndex.read_v2_menus(fp, 3)


def test_schema_4_keeps_parameter_255():
    blob = load(b"\x00A\x00").freeze()
    records = [ParameterRecord(0, MENU_CAPTION_PARAM, 1, 0, 0, blob)]
    params, caption = ParameterIndex.from_records(records, Schema.V4)
    assert MENU_CAPTION_PARAM in params
    assert caption == MenuCaption(0, 0)
