"""Completion events for the worker loop and messages sent to players."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto

UID_MAX_LENGTH = 19


class CompletionType(Enum):
    ACCEPT = auto()
    RECV = auto()
    SEND = auto()
    PLAYER_ATTACK = auto()
    PLAYER_SKILL = auto()
    PLAYER_HEAL = auto()
    PLAYER_HEAL_SKILL = auto()
    PLAYER_DAMAGE = auto()
    OBJECT_RELIVE = auto()
    NPC_RANDOM_MOVE = auto()
    AI_HELLO = auto()
    NPC_FOLLOW = auto()
    DB_NEW_USER = auto()
    DB_LOAD_USER = auto()


@dataclass(frozen=True)
class UserRecord:
    """A stored player row."""

    uid: str
    x: int
    y: int
    level: int
    hp: int
    exp: int

    def __post_init__(self) -> None:
        if len(self.uid) > UID_MAX_LENGTH:
            raise ValueError(f"uid longer than {UID_MAX_LENGTH} characters")


@dataclass(frozen=True)
class Completion:
    """A unit of work for the worker loop, keyed by the object it concerns."""

    kind: CompletionType
    key: int
    target_id: int = -1
    record: UserRecord | None = None

    def __post_init__(self) -> None:
        if self.kind is CompletionType.DB_LOAD_USER and self.record is None:
            raise ValueError("a loaded user needs a record")


@dataclass(frozen=True)
class Move:
    id: int
    x: int
    y: int


@dataclass(frozen=True)
class Leave:
    id: int


@dataclass(frozen=True)
class StatChange:
    id: int
    hp: int
    level: int
    exp: int


@dataclass(frozen=True)
class StateChange:
    id: int
    state: int
    direction: int


@dataclass(frozen=True)
class LoginFail:
    reason: int


@dataclass(frozen=True)
class AvatarInfo:
    id: int
    name: str
    x: int
    y: int
    level: int
    hp: int


@dataclass(frozen=True)
class Enter:
    id: int
    name: str
    o_type: int
    x: int
    y: int
    hp: int


@dataclass(frozen=True)
class Chat:
    id: int
    message: str