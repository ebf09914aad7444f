from jxasset.path_hash import normalize_pack_path, pack_path_hash


def test_pinned_ascii_value():
    # "\a" -> bytes 5C 61
    assert pack_path_hash("\\a") == 0x92340DCD


def test_leading_backslash_is_added():
    assert pack_path_hash("a") == pack_path_hash("\\a")


def test_ascii_case_folding():
    assert pack_path_hash("\\A") == pack_path_hash("\\a")
    assert pack_path_hash("\\Settings\\ServerList.INI") == pack_path_hash("\\settings\\serverlist.ini")


def test_slash_normalization():
    assert pack_path_hash("a/b") == pack_path_hash("a\\b")
    assert pack_path_hash("/spr/npcres/man/body.spr") == pack_path_hash("\\spr\\npcres\\man\\body.spr")


def test_high_bytes_are_sign_extended():
    # 0x80 contributes 2 * -128, not 2 * 128
    assert pack_path_hash(b"\\\x80") == 0x92342FEF


def test_str_is_transcoded_to_gbk():
    assert pack_path_hash("\\中") == pack_path_hash(b"\\\xd6\xd0")
    assert pack_path_hash("\\中", encoding="gbk") == pack_path_hash(b"\xd6\xd0")


def test_bytes_input_is_normalized_too():
    assert pack_path_hash(b"a/b") == pack_path_hash("\\a\\b")


def test_result_is_unsigned_32_bit():
    long_path = "\\spr\\" + "x" * 5000 + "\\" + "人物" * 200 + ".spr"
    value = pack_path_hash(long_path)
    assert 0 <= value <= 0xFFFFFFFF
    assert value == pack_path_hash(long_path)


def test_distinct_paths_usually_differ():
    names = [f"\\spr\\item\\{i}.spr" for i in range(50)]
    assert len({pack_path_hash(n) for n in names}) == len(names)


def test_normalize_pack_path():
    assert normalize_pack_path("a/b/c") == "\\a\\b\\c"
    assert normalize_pack_path("\\a") == "\\a"
    assert normalize_pack_path("/a") == "\\a"
    assert normalize_pack_path("") == "\\"


def test_characters_outside_code_page_do_not_raise():
    value = pack_path_hash("\\spr\\가.spr")
    assert value == pack_path_hash("\\spr\\?.spr")
    assert 0 <= value <= 0xFFFFFFFF
