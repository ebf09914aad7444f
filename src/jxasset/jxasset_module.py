# -*- coding: utf-8 -*-
"""
jxasset module interface: headless API and command line.

Usage:
    import jxasset.jxasset_module as jxa

    info = jxa.JxAssetAPI.get_pak_info("data/settings.pak")
    jxa.unpack_file("data/spr.pak", "\\spr\\npcres\\man\\body01.spr", "out")
    frames = jxa.get_sprite_info("out/spr/npcres/man/body01.spr")
    jxa.extract_sprite("out/spr/npcres/man/body01.spr", 0, "frame0.png")

Command line:
    jxasset hash "\\settings\\serverlist.ini"
    jxasset info data/settings.pak
    jxasset unpak data/settings.pak "\\settings\\serverlist.ini" -p out
    jxasset unpak data/spr.pak -f list.txt --from-json npcres.json -p out
    jxasset unpak data/spr.pak --npc-table npcres.txt --npc-root "\\spr\\npcres\\man"
    jxasset spr body01.spr -o spr_output
    jxasset spr --pak data/spr.pak "\\spr\\npcres\\man\\body01.spr"
"""

import argparse
import json
import logging
import os
import sys
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from PIL import Image

from .config import DEFAULT_CONFIG_FILE, JxAssetConfig, configure_logging, create_config, load_config
from .errors import JxAssetError
from .npc_tables import collect_full_paths, read_npc_table, read_path_list
from .pak_core import PakArchive
from .path_hash import pack_path_hash
from .spr_core import SprFile, get_frame_pil

__all__ = [
    "JxAssetAPI",
    "create_config",
    "get_sprite_info",
    "extract_sprite",
    "unpack_file",
    "unpack_paths",
    "save_entry",
    "export_spr_frames",
    "build_parser",
    "main",
]


# ------------------------------------------------------------
# Filesystem helpers
# ------------------------------------------------------------

def save_entry(pack_path: str, data: bytes, out_dir: str = ".") -> str:
    """
    Write ``data`` under ``out_dir`` at the location named by a pack path.

    '\\spr\\a.spr' -> <out_dir>/spr/a.spr. Parent directories are created.
    Raises ValueError for paths that would land outside out_dir.
    """
    clean = pack_path.replace("\\", "/").lstrip("/")
    if not clean:
        raise ValueError(f"empty pack path: {pack_path!r}")
    root = os.path.abspath(out_dir)
    target = os.path.abspath(os.path.join(root, *clean.split("/")))
    if os.path.commonpath([root, target]) != root or target == root:
        raise ValueError(f"pack path escapes output directory: {pack_path!r}")

    parent = os.path.dirname(target)
    if not os.path.exists(parent):
        os.makedirs(parent, exist_ok=True)
    with open(target, "wb") as f:
        f.write(data)
    return target


def export_spr_frames(spr: SprFile, out_dir: str, config: Optional[JxAssetConfig] = None,
                      opaque: bool = False) -> List[str]:
    """
    Save every frame as PNG plus a meta.json with the draw offsets.

    Empty frames get no PNG; their meta entry has "file": null.

    Returns:
        list: written PNG paths, in frame order
    """
    config = config or JxAssetConfig()
    os.makedirs(out_dir, exist_ok=True)

    written = []
    meta_frames = []
    for i, frame in enumerate(spr.frames):
        name = config.frame_name_format.format(
            direction=spr.direction_of(i),
            frame=spr.frame_in_direction(i),
            index=i,
        )
        if frame.pixel_count == 0:
            # PNG has no zero-sized images
            logging.warning(f"frame {i} is empty ({frame.width}x{frame.height}), no image written")
            name = None
        else:
            out_path = os.path.join(out_dir, name)
            frame.to_pil(spr.palette, opaque=opaque).save(out_path)
            written.append(out_path)
        meta_frames.append({
            "id": i,
            "file": name,
            "w": frame.width,
            "h": frame.height,
            "off_x": frame.offset_x,
            "off_y": frame.offset_y,
        })

    h = spr.header
    meta = {
        "width": h.width,
        "height": h.height,
        "center_x": h.center_x,
        "center_y": h.center_y,
        "directions": h.direction_count,
        "interval": h.interval,
        "frames_per_direction": spr.frames_per_direction,
        "frames": meta_frames,
    }
    with open(os.path.join(out_dir, "meta.json"), "w", encoding="utf-8") as f:
        json.dump(meta, f, ensure_ascii=False, indent=2)
    return written


# ------------------------------------------------------------
# Headless API
# ------------------------------------------------------------

class JxAssetAPI:
    """Stateless helpers; every call opens and closes its own files."""

    @staticmethod
    def get_pak_info(pak_path: str, config: Optional[JxAssetConfig] = None) -> Dict[str, Any]:
        with PakArchive.open(pak_path, config) as pak:
            h = pak.header
            by_type: Dict[str, int] = {}
            for entry in pak.entries():
                by_type[entry.compression_name] = by_type.get(entry.compression_name, 0) + 1
            return {
                "path": pak.path,
                "count": h.count,
                "unique_ids": len(pak),
                "index_offset": h.index_offset,
                "data_offset": h.data_offset,
                "compression": by_type,
            }

    @staticmethod
    def get_frame_list(spr_path: str) -> List[Dict[str, int]]:
        spr = SprFile.load(spr_path)
        return [
            {
                "index": i,
                "direction": spr.direction_of(i),
                "frame": spr.frame_in_direction(i),
                "width": f.width,
                "height": f.height,
                "offset_x": f.offset_x,
                "offset_y": f.offset_y,
            }
            for i, f in enumerate(spr.frames)
        ]

    @staticmethod
    def extract_file(pak_path: str, path: str, out_dir: str = ".",
                     config: Optional[JxAssetConfig] = None) -> str:
        with PakArchive.open(pak_path, config) as pak:
            data = pak.read_file(path)
        return save_entry(path, data, out_dir)

    @staticmethod
    def extract_frame_image(spr_path: str, index: int, output_path: Optional[str] = None,
                            opaque: bool = False) -> Union[Image.Image, bool, None]:
        """PIL image of one frame, or save it when output_path is given (returns success)."""
        spr = SprFile.load(spr_path)
        img = get_frame_pil(spr, index, opaque=opaque)
        if output_path is None:
            return img
        if img is None:
            logging.error(f"{spr_path}: frame {index} out of range ({len(spr.frames)} frames)")
            return False
        img.save(output_path)
        return True


def get_sprite_info(file_path: str) -> List[Dict[str, int]]:
    return JxAssetAPI.get_frame_list(file_path)


def extract_sprite(file_path: str, frame_index: int, output_path: Optional[str] = None):
    return JxAssetAPI.extract_frame_image(file_path, frame_index, output_path)


def unpack_file(pak_path: str, path: str, out_dir: Optional[str] = None,
                config: Optional[JxAssetConfig] = None) -> str:
    config = config or JxAssetConfig()
    return JxAssetAPI.extract_file(pak_path, path, out_dir or config.output_dir, config)


def unpack_paths(pak: PakArchive, paths: Iterable[str], out_dir: str,
                 verbose: bool = True) -> Tuple[List[str], List[str]]:
    """
    Extract each path; misses and broken entries are reported and skipped.

    Returns:
        tuple: (extracted paths, failed paths)
    """
    done: List[str] = []
    failed: List[str] = []
    for path in paths:
        entry = pak.find(path)
        if entry is None:
            print(f"NOT FOUND {path} (id {pak.hash_path(path):08X})")
            failed.append(path)
            continue
        if verbose:
            print(f"{path}: id {entry.id:08X}, size {entry.original_size}, "
                  f"stored {entry.stored_size}, compression {entry.compression_name}")
        try:
            payload = pak.read(entry)
            target = save_entry(path, payload.data, out_dir)
        except (JxAssetError, ValueError, OSError) as e:
            logging.error(f"{path}: {e}")
            failed.append(path)
            continue
        if payload.degraded:
            print(f"  saved undecoded ({entry.compression_name}): {target}")
        elif verbose:
            print(f"  saved: {target}")
        done.append(path)
    return done, failed


# ------------------------------------------------------------
# Command line
# ------------------------------------------------------------

def _cmd_hash(args, config: JxAssetConfig) -> int:
    for text in args.paths:
        print(f"String: {text}")
        print(f"Hash  : {pack_path_hash(text, encoding=config.path_encoding):08X}")
    return 0


def _cmd_info(args, config: JxAssetConfig) -> int:
    info = JxAssetAPI.get_pak_info(args.pak, config)
    print(f"PAK: {info['path']}")
    print(f"  entries     : {info['count']} ({info['unique_ids']} unique ids)")
    print(f"  index offset: 0x{info['index_offset']:08X}")
    for name, n in sorted(info["compression"].items()):
        print(f"  {name:<12}: {n}")
    return 0


def _cmd_unpak(args, config: JxAssetConfig) -> int:
    paths = list(args.paths)
    if args.list_file:
        with open(args.list_file, "r", encoding="utf-8") as f:
            paths.extend(read_path_list(f))
    if args.from_json:
        with open(args.from_json, "r", encoding="utf-8") as f:
            paths.extend(collect_full_paths(json.load(f)))
    if args.npc_table:
        # npc resource tables are saved in the client code page
        with open(args.npc_table, "r", encoding=config.path_encoding, errors="replace") as f:
            paths.extend(read_npc_table(f, args.npc_root))
    if not paths:
        print("nothing to extract: give paths, -f LIST, --from-json FILE or --npc-table FILE")
        return 2

    out_dir = args.out_dir or config.output_dir
    with PakArchive.open(args.pak, config) as pak:
        print(f"PAK {pak.path}: {len(pak)} entries")
        done, failed = unpack_paths(pak, paths, out_dir, verbose=not args.quiet)
    print(f"extracted {len(done)}, failed {len(failed)}")
    return 1 if failed else 0


def _cmd_spr(args, config: JxAssetConfig) -> int:
    if args.pak:
        with PakArchive.open(args.pak, config) as pak:
            spr = SprFile.parse(pak.read_file(args.spr, strict=True))
    else:
        spr = SprFile.load(args.spr)

    h = spr.header
    print(f"size      : {h.width}x{h.height}")
    print(f"center    : {h.center_x}, {h.center_y}")
    print(f"frames    : {h.frame_count}")
    print(f"directions: {h.direction_count} ({spr.frames_per_direction} frames each)")
    print(f"interval  : {h.interval}")

    stem = os.path.splitext(os.path.basename(args.spr.replace("\\", "/")))[0]
    out_dir = os.path.join(args.out_dir, stem)
    written = export_spr_frames(spr, out_dir, config, opaque=args.opaque)
    print(f"saved {len(written)} frames to {out_dir}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="jxasset", description="JX PAK / SPR asset tools")
    parser.add_argument("--config", default=None, help=f"settings file (default {DEFAULT_CONFIG_FILE})")
    parser.add_argument("--debug", action="store_true", help="debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("hash", help="print the pack hash of paths")
    p.add_argument("paths", nargs="+")
    p.set_defaults(func=_cmd_hash)

    p = sub.add_parser("info", help="show archive header and entry statistics")
    p.add_argument("pak")
    p.set_defaults(func=_cmd_info)

    p = sub.add_parser("unpak", help="extract files from an archive")
    p.add_argument("pak")
    p.add_argument("paths", nargs="*")
    p.add_argument("-f", "--list", dest="list_file", help="text file with one pack path per line")
    p.add_argument("--from-json", help="npcres JSON; every full_path value is extracted")
    p.add_argument("--npc-table", help="tab-separated npc resource table; every action sprite is extracted")
    p.add_argument("--npc-root", default="", help="pack directory the --npc-table sprite names live in")
    p.add_argument("-p", "--out-dir", default=None, help="output directory")
    p.add_argument("-q", "--quiet", action="store_true")
    p.set_defaults(func=_cmd_unpak)

    p = sub.add_parser("spr", help="export sprite frames to PNG + meta.json")
    p.add_argument("spr", help="SPR file, or pack path when --pak is given")
    p.add_argument("--pak", help="read the sprite from this archive")
    p.add_argument("-o", "--out-dir", default="spr_output")
    p.add_argument("--opaque", action="store_true", help="draw visible pixels fully opaque")
    p.set_defaults(func=_cmd_spr)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = load_config(args.config or DEFAULT_CONFIG_FILE)
    if args.debug:
        config.debug_mode = True
    configure_logging(config)

    try:
        return args.func(args, config)
    except (JxAssetError, OSError) as e:
        logging.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
