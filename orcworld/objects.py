"""Players and NPCs that live in the world."""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass, field
from enum import Enum, IntEnum


class State(Enum):
    FREE = "free"
    ALLOC = "alloc"
    INGAME = "ingame"


class Direction(IntEnum):
    UP = 1
    DOWN = 2
    LEFT = 3
    RIGHT = 4


class ObjectType(IntEnum):
    PLAYER = 0
    ORC_NPC = 1
    HUMAN = 2
    S_HUMAN = 3


_NPC_NAMES = {
    ObjectType.ORC_NPC: "{}번 오크",
    ObjectType.HUMAN: "{}번 마을사람",
    ObjectType.S_HUMAN: "{}번 전사",
}


@dataclass(eq=False)
class GameObject:
    """Anything placed on the map."""

    id: int = -1
    state: State = State.FREE
    x: int = 0
    y: int = 0
    hp: int = 100
    level: int = 1
    exp: int = 0
    name: str = ""
    o_type: ObjectType = ObjectType.PLAYER
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)


@dataclass(eq=False)
class User(GameObject):
    """A connected player with its view list and outgoing messages."""

    view_list: set[int] = field(default_factory=set)
    direction: Direction = Direction.DOWN
    last_move_time: int = 0
    is_live: bool = True
    able_attack: bool = True
    able_attack_skill: bool = True
    able_heal_skill: bool = True
    outbox: deque = field(default_factory=deque, repr=False)

    def send(self, message: object) -> None:
        """Queue a message for delivery to this player."""
        self.outbox.append(message)

    def drain(self) -> list:
        """Return and clear the queued messages, oldest first."""
        sent = list(self.outbox)
        self.outbox.clear()
        return sent


@dataclass(eq=False)
class Npc(GameObject):
    """A computer-controlled character anchored at its spawn point."""

    state: State = State.INGAME
    o_type: ObjectType = ObjectType.ORC_NPC
    is_active: bool = False
    target_id: int = -1
    sx: int | None = None
    sy: int | None = None
    _active_lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def __post_init__(self) -> None:
        if not self.name:
            template = _NPC_NAMES.get(ObjectType(self.o_type), "NPC{}")
            self.name = template.format(self.id)
        if self.sx is None:
            self.sx = self.x
        if self.sy is None:
            self.sy = self.y

    def try_activate(self) -> bool:
        """Mark the NPC active; False if it already was."""
        with self._active_lock:
            if self.is_active:
                return False
            self.is_active = True
            return True

    def deactivate(self) -> None:
        with self._active_lock:
            self.is_active = False


def has_special_char(name: str) -> bool:
    """True if the name holds anything other than ASCII letters and digits."""
    return any(not (ch.isascii() and ch.isalnum()) for ch in name)