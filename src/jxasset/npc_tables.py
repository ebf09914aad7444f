# -*- coding: utf-8 -*-
"""
Static lookup tables used by the npc resource tooling.

Tables are read-only; code that consumes them takes the table as an argument
so callers can pass a different mapping for other client builds.

ACTION_COLUMNS drives row_action_paths / read_npc_table (`jxasset unpak
--npc-table`). ActionId and COMPONENT_SLOTS are reference data only: the
client ids and column names, kept for scripts that label npc sprites.
"""

from enum import IntEnum
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set

__all__ = [
    "ActionId",
    "ACTION_COLUMNS",
    "COMPONENT_SLOTS",
    "action_for_column",
    "collect_full_paths",
    "read_path_list",
    "row_action_paths",
    "read_npc_table",
]


class ActionId(IntEnum):
    FREE_STAND1 = 0
    FREE_STAND2 = 1
    FREE_STAND3 = 2
    MELEE_W_STAND = 3
    RANGE_W_STAND = 4
    DOUBLE_W_STAND = 5
    FREE_WALK = 6
    NORMAL_WALK = 7
    MELEE_W_WALK = 8
    RANGE_W_WALK = 9
    DOUBLE_W_WALK = 10
    FREE_RUN = 11
    NORMAL_RUN = 12
    MELEE_W_RUN = 13
    RANGE_W_RUN = 14
    DOUBLE_W_RUN = 15
    FREE_WOUND = 16
    MELEE_W_WOUND = 17
    RANGE_W_WOUND = 18
    DOUBLE_W_WOUND = 19
    FREE_DIE = 20
    MELEE_W_DIE = 21
    RANGE_W_DIE = 22
    DOUBLE_W_DIE = 23
    FREE_ATTACK = 24
    MELEE_W_PUNCTURE = 25
    MELEE_W_CUT = 26
    RANGE_W_PUNCTURE = 27
    RANGE_W_CUT = 28
    DOUBLE_W_PULL = 29
    DOUBLE_W_POUND = 30
    DART_THROW = 31
    FREE_MAGIC = 32
    MELEE_W_MAGIC = 33
    RANGE_W_MAGIC = 34
    DOUBLE_W_MAGIC = 35
    SIT_DOWN = 36
    JUMP_FLY = 37
    RIDE_STAND = 38
    RIDE_WALK = 39
    RIDE_RUN = 40
    RIDE_CUT = 41
    RIDE_PUNCTURE = 42
    RIDE_MAGIC = 43
    RIDE_WOUND = 44
    RIDE_DIE = 45
    RIDE_STAND1 = 46
    RIDE_STAND2 = 47


# column index (after the name column) of the npc resource tables -> action
ACTION_COLUMNS: Mapping[int, str] = MappingProxyType({
    0: "stand",
    1: "walk",
    2: "run",
    3: "fight_run",
    4: "fight_stand",
    5: "attack1",
    6: "attack2",
    7: "magic",
    8: "sit",
    9: "die",
})

# component columns of a special (player) npc, in table order
COMPONENT_SLOTS = (
    "Head",
    "Hair",
    "Shoulder",
    "Body",
    "LeftHand",
    "RightHead",
    "LeftWeapon",
    "RightWeapon",
    "HorseFront",
    "HorseMiddle",
    "HorseBack",
)


def action_for_column(column: int, table: Mapping[int, str] = ACTION_COLUMNS) -> Optional[str]:
    return table.get(column)


def collect_full_paths(node: Any) -> List[str]:
    """All non-blank "full_path" strings in a parsed npcres JSON tree, sorted, deduplicated."""
    found: Set[str] = set()
    stack = [node]
    while stack:
        value = stack.pop()
        if isinstance(value, dict):
            path = value.get("full_path")
            if isinstance(path, str) and path.strip():
                found.add(path)
            stack.extend(value.values())
        elif isinstance(value, list):
            stack.extend(value)
    return sorted(found)


def read_path_list(lines: Iterable[str]) -> List[str]:
    """One pack path per line; blank lines and '#' comments skipped."""
    paths = []
    for line in lines:
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        paths.append(line)
    return paths


def row_action_paths(row: Sequence[str], root: str = "",
                     table: Mapping[int, str] = ACTION_COLUMNS) -> Dict[str, str]:
    """
    Map one npc resource table row to {action name: pack path}.

    Column 0 is the npc / part name; column i + 1 holds the sprite of
    action ``table[i]``. Empty cells and '-' are skipped, columns with no
    action in ``table`` are ignored. Sprite names are joined onto ``root``.
    """
    base = root.replace("\\", "/").rstrip("/")
    paths: Dict[str, str] = {}
    for column, cell in enumerate(row[1:]):
        action = action_for_column(column, table)
        spr = cell.strip()
        if action is None or not spr or spr == "-":
            continue
        spr = spr.replace("\\", "/")
        paths[action] = f"{base}/{spr}" if base else spr
    return paths


def read_npc_table(lines: Iterable[str], root: str = "",
                   table: Mapping[int, str] = ACTION_COLUMNS, header: bool = True) -> List[str]:
    """Every action sprite path in a tab-separated npc resource table, sorted, deduplicated."""
    found: Set[str] = set()
    for n, line in enumerate(lines):
        if header and n == 0:
            continue
        line = line.rstrip("\r\n")
        if not line.strip() or line.startswith("#"):
            continue
        found.update(row_action_paths(line.split("\t"), root, table).values())
    return sorted(found)
