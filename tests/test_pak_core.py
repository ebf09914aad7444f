import logging
import struct

import pytest

from builders import ABC_PLAIN, ABC_STREAM, build_pak, compressed, stored
from jxasset.config import JxAssetConfig
from jxasset.errors import (
    ArchiveFormatError,
    DecompressionError,
    EntryNotFound,
    InputOverrun,
    UnsupportedCompressionType,
)
from jxasset.pak_core import (
    COMPRESSION_BZIP2,
    COMPRESSION_NONE,
    COMPRESSION_UCL,
    PACK_SIGNATURE,
    PakArchive,
)
from jxasset.path_hash import pack_path_hash

FILES = {
    "\\settings\\serverlist.ini": b"[List]\r\nCount=1\r\n",
    "\\spr\\item\\sword.spr": b"SPR\x00" + bytes(40),
    "\\spr\\npcres\\人物\\body01.spr": b"body",
}


@pytest.fixture
def pak_path(tmp_path):
    entries = [stored(p, d) for p, d in FILES.items()]
    entries.append(compressed("\\script\\abc.txt", ABC_STREAM, len(ABC_PLAIN)))
    return build_pak(tmp_path / "test.pak", entries)


def test_open_reads_header(pak_path):
    with PakArchive.open(pak_path) as pak:
        assert pak.header.signature == PACK_SIGNATURE
        assert pak.header.count == 4
        assert len(pak) == 4
        assert pak.path == str(pak_path)


def test_find_every_inserted_path(pak_path):
    with PakArchive.open(pak_path) as pak:
        offset = 24
        for path, data in FILES.items():
            entry = pak.find(path)
            assert entry is not None
            assert entry.id == pack_path_hash(path)
            assert entry.offset == offset
            assert entry.original_size == len(data)
            assert entry.stored_size == len(data)
            assert entry.compression_type == COMPRESSION_NONE
            offset += len(data)


def test_find_is_case_and_slash_insensitive(pak_path):
    with PakArchive.open(pak_path) as pak:
        assert pak.find("/SETTINGS/ServerList.ini") is pak.find("\\settings\\serverlist.ini")
        assert "settings/serverlist.ini" in pak


def test_miss_returns_none(pak_path):
    with PakArchive.open(pak_path) as pak:
        assert pak.find("\\settings\\missing.ini") is None
        assert "\\settings\\missing.ini" not in pak


def test_contains_accepts_ids(pak_path):
    with PakArchive.open(pak_path) as pak:
        entry_id = pack_path_hash("\\spr\\item\\sword.spr")
        assert entry_id in pak
        assert pak.get(entry_id).id == entry_id
        assert (entry_id ^ 1) not in pak


def test_read_stored(pak_path):
    with PakArchive.open(pak_path) as pak:
        for path, data in FILES.items():
            payload = pak.read(pak.find(path))
            assert payload.data == data
            assert not payload.degraded


def test_read_compressed(pak_path):
    with PakArchive.open(pak_path) as pak:
        entry = pak.find("\\script\\abc.txt")
        assert entry.compression_type == COMPRESSION_UCL
        assert entry.compression_name == "ucl"
        assert entry.stored_size == len(ABC_STREAM)
        assert pak.read(entry).data == ABC_PLAIN
        assert pak.read_file("\\script\\abc.txt") == ABC_PLAIN


def test_reads_are_repeatable(pak_path):
    with PakArchive.open(pak_path) as pak:
        entry = pak.find("\\script\\abc.txt")
        assert pak.read(entry) == pak.read(entry)


def test_read_file_miss_raises(pak_path):
    with PakArchive.open(pak_path) as pak:
        with pytest.raises(EntryNotFound) as info:
            pak.read_file("\\nothing\\here.txt")
    assert info.value.entry_id == pack_path_hash("\\nothing\\here.txt")
    assert isinstance(info.value, KeyError)
    assert "here.txt" in str(info.value)


def test_entries_iteration(pak_path):
    with PakArchive.open(pak_path) as pak:
        ids = {e.id for e in pak.entries()}
    assert ids == {pack_path_hash(p) for p in list(FILES) + ["\\script\\abc.txt"]}


def test_index_is_read_only(pak_path):
    with PakArchive.open(pak_path) as pak:
        with pytest.raises(TypeError):
            pak.index[1] = None


def test_zero_entry_archive(tmp_path):
    path = build_pak(tmp_path / "empty.pak", [])
    with PakArchive.open(path) as pak:
        assert len(pak) == 0
        assert pak.find("\\anything") is None
        assert list(pak.entries()) == []


def test_bad_signature(tmp_path):
    path = build_pak(tmp_path / "bad.pak", [stored("\\a", b"x")], signature=0x12345678)
    with pytest.raises(ArchiveFormatError) as info:
        PakArchive.open(path)
    assert info.value.path == str(path)


def test_truncated_header(tmp_path):
    path = tmp_path / "short.pak"
    path.write_bytes(b"PACK\x01\x00")
    with pytest.raises(ArchiveFormatError):
        PakArchive(path)


def test_truncated_index(tmp_path):
    path = build_pak(tmp_path / "trunc.pak", [stored("\\a", b"x"), stored("\\b", b"y")])
    raw = path.read_bytes()
    path.write_bytes(raw[:-8])
    with pytest.raises(ArchiveFormatError) as info:
        PakArchive.open(path)
    # first record intact, second cut short
    assert info.value.offset == len(raw) - 16


def test_duplicate_ids_last_wins(tmp_path):
    path = build_pak(tmp_path / "dup.pak", [stored(0xCAFE, b"first"), stored(0xCAFE, b"second!")])
    with PakArchive.open(path) as pak:
        assert len(pak) == 1
        assert pak.header.count == 2
        assert pak.read(pak.get(0xCAFE)).data == b"second!"


def test_corrupt_compressed_entry(tmp_path):
    path = build_pak(tmp_path / "corrupt.pak",
                     [compressed("\\bad.bin", ABC_STREAM[:-1], len(ABC_PLAIN))])
    with PakArchive.open(path) as pak:
        entry = pak.find("\\bad.bin")
        with pytest.raises(DecompressionError) as info:
            pak.read(entry)
    assert isinstance(info.value, InputOverrun)
    assert info.value.entry_id == entry.id
    assert info.value.archive == str(path)
    assert f"{entry.id:08X}" in str(info.value)


def test_unsupported_compression_is_degraded(tmp_path, caplog):
    raw = b"BZh91AY&SY"
    path = build_pak(tmp_path / "bz.pak", [compressed("\\x.dat", raw, 100, ctype=COMPRESSION_BZIP2)])
    with PakArchive.open(path) as pak:
        entry = pak.find("\\x.dat")
        with caplog.at_level(logging.WARNING):
            payload = pak.read(entry)
        assert payload.degraded
        assert payload.data == raw
        assert payload.compression_type == COMPRESSION_BZIP2
        assert "bzip2" in caplog.text
        assert pak.read_bytes(entry) == raw
        with pytest.raises(UnsupportedCompressionType) as info:
            pak.read_bytes(entry, strict=True)
    assert info.value.data == raw
    assert info.value.compression_type == COMPRESSION_BZIP2


def test_unknown_compression_type(tmp_path):
    path = build_pak(tmp_path / "odd.pak", [compressed("\\x.dat", b"zz", 2, ctype=7)])
    with PakArchive.open(path) as pak:
        entry = pak.find("\\x.dat")
        assert entry.compression_name == "unknown(7)"
        assert pak.read(entry).degraded


def test_stored_size_mismatch_warns(tmp_path, caplog):
    path = build_pak(tmp_path / "size.pak", [("\\a", b"abc", COMPRESSION_NONE, 10)])
    with PakArchive.open(path) as pak:
        with caplog.at_level(logging.WARNING):
            assert pak.read_file("\\a") == b"abc"
    assert "header says 10" in caplog.text


def test_stored_size_mismatch_strict(tmp_path):
    path = build_pak(tmp_path / "size.pak", [("\\a", b"abc", COMPRESSION_NONE, 10)])
    with PakArchive.open(path, JxAssetConfig(strict_sizes=True)) as pak:
        with pytest.raises(ArchiveFormatError):
            pak.read_file("\\a")


def test_payload_past_end_of_file(tmp_path):
    path = build_pak(tmp_path / "past.pak", [], extra_records=[(0xBEEF, 10_000, 4, 4)])
    with PakArchive.open(path) as pak:
        with pytest.raises(ArchiveFormatError) as info:
            pak.read(pak.get(0xBEEF))
    assert info.value.offset == 10_000


def test_custom_path_encoding(tmp_path):
    path = build_pak(tmp_path / "big5.pak", [stored("\\人物.txt", b"x")], encoding="big5")
    with PakArchive.open(path, JxAssetConfig(path_encoding="big5")) as pak:
        assert pak.read_file("\\人物.txt") == b"x"


def test_close(pak_path):
    with PakArchive.open(pak_path) as pak:
        assert not pak.closed
    assert pak.closed


def test_header_is_24_bytes(pak_path):
    raw = pak_path.read_bytes()
    first_path, first_data = next(iter(FILES.items()))
    assert raw[24:24 + len(first_data)] == first_data
    with PakArchive.open(pak_path) as pak:
        assert pak.header.reserved == b"\x00" * 4
        assert pak.find(first_path).offset == 24


def test_entry_count_larger_than_file(tmp_path):
    path = tmp_path / "huge.pak"
    path.write_bytes(struct.pack("<5I4s", PACK_SIGNATURE, 0xFFFFFFFF, 24, 24, 0, b"") + b"\x00" * 16)
    with pytest.raises(ArchiveFormatError) as info:
        PakArchive.open(path)
    assert info.value.offset == 24 + 16
    assert "of 4294967295 entries" in str(info.value)


def test_index_offset_past_end_of_file(tmp_path):
    path = tmp_path / "far.pak"
    path.write_bytes(struct.pack("<5I4s", PACK_SIGNATURE, 1, 5000, 24, 0, b""))
    with pytest.raises(ArchiveFormatError) as info:
        PakArchive.open(path)
    assert info.value.offset == 5000


def test_path_outside_code_page_is_a_miss(pak_path):
    with PakArchive.open(pak_path) as pak:
        assert pak.find("\\spr\\가.spr") is None
        assert "\\spr\\가.spr" not in pak
        with pytest.raises(EntryNotFound):
            pak.read_file("\\spr\\가.spr")
