"""
jxasset
=======

Readers for the JX client asset pipeline: hash-addressed PAK archives
(stored / UCL NRV2B payloads) and SPR palette sprites with per-pixel alpha.

Basic Usage:
-----------
```python
import jxasset

with jxasset.PakArchive.open("data/spr.pak") as pak:
    entry = pak.find("\\spr\\npcres\\man\\body01.spr")
    if entry is not None:
        payload = pak.read(entry)
        spr = jxasset.parse_spr(payload.data)
        img = spr.frames[0].to_pil(spr.palette)
```

Headless helpers / command line:
-------------------------------
```python
import jxasset.jxasset_module as jxa

jxa.unpack_file("data/settings.pak", "\\settings\\serverlist.ini", "out")
frames = jxa.get_sprite_info("body01.spr")
```

    $ jxasset hash "\\settings\\serverlist.ini"

Classes:
--------
- PakArchive: open archive, id -> entry index, payload reader
- SprFile: decoded sprite (header, palette, frames)
- JxAssetConfig: settings (path encoding, strictness, output naming)
"""

__version__ = "1.0.0"
__author__ = "jxasset Development Team"

from .config import JxAssetConfig, configure_logging, create_config, load_config, save_config
from .errors import (
    ArchiveFormatError,
    DecompressionError,
    EntryNotFound,
    InputOverrun,
    JxAssetError,
    LookbehindOverrun,
    OutputOverrun,
    SpriteFormatError,
    UnsupportedCompressionType,
)
from .nrv2b import nrv2b_decompress
from .pak_core import PakArchive, PakEntry, PakHeader, PakPayload
from .path_hash import normalize_pack_path, pack_path_hash
from .spr_core import SprColor, SprFile, SprFrame, SprHeader, parse_spr

__all__ = [
    "JxAssetConfig",
    "configure_logging",
    "create_config",
    "load_config",
    "save_config",
    "JxAssetError",
    "ArchiveFormatError",
    "EntryNotFound",
    "DecompressionError",
    "InputOverrun",
    "OutputOverrun",
    "LookbehindOverrun",
    "SpriteFormatError",
    "UnsupportedCompressionType",
    "nrv2b_decompress",
    "PakArchive",
    "PakEntry",
    "PakHeader",
    "PakPayload",
    "normalize_pack_path",
    "pack_path_hash",
    "SprColor",
    "SprFile",
    "SprFrame",
    "SprHeader",
    "parse_spr",
    "open_spr_from_pak",
]


def open_spr_from_pak(pak_path, spr_path, config=None):
    """
    Read and decode a sprite stored in an archive.

    Args:
        pak_path (str): archive file
        spr_path (str): pack path of the sprite, e.g. '\\spr\\item\\sword.spr'
        config (JxAssetConfig, optional): settings

    Returns:
        SprFile: decoded sprite

    Raises:
        EntryNotFound: the path is not in the archive
        UnsupportedCompressionType: the entry could not be decompressed
    """
    with PakArchive.open(pak_path, config) as pak:
        data = pak.read_file(spr_path, strict=True)
    return parse_spr(data)
