"""The shared world: the object table, view lists and what players are told."""

from __future__ import annotations

import random
import threading
import time
from collections import deque
from collections.abc import Callable, Iterator

from .ai import CollisionMap
from .messages import (
    AvatarInfo,
    Chat,
    Completion,
    CompletionType,
    Enter,
    Leave,
    Move,
    StatChange,
    StateChange,
)
from .objects import GameObject, Npc, ObjectType, State, User
from .sector import SectorGrid, WorldConfig, can_agro, can_see, is_npc, is_pc
from .timers import TimerEvent, TimerKind, TimerQueue

AGRO_SHOUT = "오크녀석이 감히 마을에 들어와?!"
FOLLOW_DELAY = 0.5
NPC_MAX_HP = {
    ObjectType.ORC_NPC: 100,
    ObjectType.HUMAN: 100,
    ObjectType.S_HUMAN: 200,
}


class World:
    """Every object in the game, the sector grid and the pending work."""

    def __init__(
        self,
        config: WorldConfig,
        collision: CollisionMap,
        rng: random.Random | None = None,
    ) -> None:
        self.config = config
        self.collision = collision
        self.rng = rng or random.Random()
        self.sectors = SectorGrid(config)
        self.timers = TimerQueue()
        self.completions: deque[Completion] = deque()
        self.clock: Callable[[], float] = time.monotonic
        self._objects: dict[int, GameObject] = {}
        self._lock = threading.Lock()

    # -- object table -------------------------------------------------

    def add(self, obj: GameObject) -> GameObject:
        with self._lock:
            self._objects[obj.id] = obj
        return obj

    def get(self, object_id: int) -> GameObject | None:
        with self._lock:
            return self._objects.get(object_id)

    def _all(self) -> list[GameObject]:
        with self._lock:
            return list(self._objects.values())

    def new_client_id(self) -> int | None:
        """Lowest player id not yet taken, or None when the server is full."""
        with self._lock:
            for candidate in range(self.config.max_user):
                if candidate not in self._objects:
                    return candidate
        return None

    def connect(self) -> User:
        """Allocate a player slot for a new connection."""
        client_id = self.new_client_id()
        if client_id is None:
            raise RuntimeError("no free player slot")
        return self.add(User(id=client_id, state=State.ALLOC))

    def disconnect(self, user_id: int) -> None:
        user = self.get(user_id)
        if not isinstance(user, User):
            return
        self.sectors.remove(user.id, user.x, user.y)
        for other_id in set(user.view_list):
            other = self.get(other_id)
            if other is None or other.id == user_id:
                continue
            with other.lock:
                if other.state is not State.INGAME:
                    continue
            if isinstance(other, User):
                self.send_remove(other, user_id)
        with user.lock:
            user.state = State.FREE

    def user_in_game(self, name: str) -> bool:
        return any(
            isinstance(obj, User) and obj.name == name and obj.state is State.INGAME
            for obj in self._all()
        )

    # -- visibility -----------------------------------------------------

    def _is_pc(self, object_id: int) -> bool:
        return is_pc(object_id, self.config.max_user)

    def visible_ids(self, object_id: int) -> set[int]:
        """Ids of in-game objects, other than this one, that it can see."""
        source = self.get(object_id)
        if source is None:
            return set()
        found: set[int] = set()
        for other_id in self.sectors.nearby(source.x, source.y):
            if other_id == object_id:
                continue
            other = self.get(other_id)
            if other is None:
                continue
            with other.lock:
                if other.state is not State.INGAME:
                    continue
            if can_see(source, other, self.config.view_range):
                found.add(other_id)
        return found

    def _visible_users(self, object_id: int) -> Iterator[User]:
        for other_id in self.visible_ids(object_id):
            other = self.get(other_id)
            if isinstance(other, User):
                yield other

    # -- messages to one player ------------------------------------------

    def send_move(self, user: User, object_id: int) -> None:
        obj = self.get(object_id)
        if obj is not None:
            user.send(Move(object_id, obj.x, obj.y))

    def send_remove(self, user: User, object_id: int) -> None:
        if object_id not in user.view_list:
            return
        user.view_list.discard(object_id)
        user.send(Leave(object_id))

    def send_stat(self, user: User, object_id: int) -> None:
        obj = self.get(object_id)
        if obj is not None:
            user.send(StatChange(object_id, obj.hp, obj.level, obj.exp))

    def send_state(self, user: User, object_id: int, state: int, direction: int) -> None:
        if self.get(object_id) is not None:
            user.send(StateChange(object_id, int(state), int(direction)))

    def send_add_player(self, user: User, object_id: int) -> None:
        obj = self.get(object_id)
        if obj is None:
            return
        user.view_list.add(object_id)
        user.send(Enter(object_id, obj.name, int(ObjectType.PLAYER), obj.x, obj.y, obj.hp))

    def send_add_object(self, user: User, object_id: int) -> None:
        obj = self.get(object_id)
        if obj is None:
            return
        user.view_list.add(object_id)
        user.send(Enter(object_id, obj.name, int(obj.o_type), obj.x, obj.y, obj.hp))

    def send_login_info(self, user: User) -> None:
        user.send(AvatarInfo(user.id, user.name, user.x, user.y, user.level, user.hp))

    def _schedule(self, obj_id: int, delay: float, kind: TimerKind, target_id: int = 0) -> None:
        self.timers.push(TimerEvent(obj_id, self.clock() + delay, kind, target_id))

    def _agro(self, user: User, npc: Npc) -> None:
        if npc.o_type != ObjectType.S_HUMAN or not can_agro(npc, user):
            return
        if not npc.try_activate():
            return
        user.send(Chat(npc.id, AGRO_SHOUT))
        npc.target_id = user.id
        self._schedule(npc.id, FOLLOW_DELAY, TimerKind.FOLLOW_MOVE, user.id)

    # -- broadcasts -------------------------------------------------------

    def load_view_list(self, user_id: int) -> None:
        """Introduce a newly placed player and everything around it to each other."""
        user = self.get(user_id)
        if not isinstance(user, User):
            return
        for other_id in self.visible_ids(user_id):
            other = self.get(other_id)
            if isinstance(other, User):
                self.send_add_player(other, user_id)
                self.send_add_player(user, other_id)
            elif isinstance(other, Npc):
                self.send_add_object(user, other_id)
                if can_see(other, user, self.config.view_range):
                    self.wake_up(other_id, user_id)
                self._agro(user, other)

    def update_view_list(self, user_id: int) -> None:
        """Bring a player's view list up to date after it moved."""
        user = self.get(user_id)
        if not isinstance(user, User):
            return
        near = self.visible_ids(user_id)
        old = set(user.view_list)
        for other_id in near:
            other = self.get(other_id)
            if other is None:
                continue
            if isinstance(other, User):
                if user_id in other.view_list:
                    self.send_move(other, user_id)
                else:
                    self.send_add_player(other, user_id)
            elif isinstance(other, Npc):
                self.wake_up(other_id, user_id)
                self._agro(user, other)
            if other_id not in old:
                if self._is_pc(other_id):
                    self.send_add_player(user, other_id)
                else:
                    self.send_add_object(user, other_id)
                    self.wake_up(other_id, user_id)
        for other_id in old - near:
            self.send_remove(user, other_id)
            other = self.get(other_id)
            if isinstance(other, User):
                self.send_remove(other, user_id)

    def update_animation(self, object_id: int, state: int, direction: int) -> None:
        npc_source = is_npc(object_id, self.config.max_user)
        for user in self._visible_users(object_id):
            self.send_state(user, object_id, state, direction)
            if npc_source:
                self.send_stat(user, object_id)

    def update_chat(self, user_id: int, message: str) -> None:
        for user in self._visible_users(user_id):
            user.send(Chat(user_id, message))

    def update_leave(self, object_id: int) -> None:
        for user in self._visible_users(object_id):
            self.send_remove(user, object_id)

    def update_add(self, object_id: int) -> None:
        for user in self._visible_users(object_id):
            self.send_add_object(user, object_id)

    def update_move(self, object_id: int) -> None:
        for user in self._visible_users(object_id):
            self.send_move(user, object_id)

    # -- NPC support ------------------------------------------------------

    def keep_alive(self, npc_id: int) -> bool:
        """True while some player can see the NPC."""
        return any(self._is_pc(other_id) for other_id in self.visible_ids(npc_id))

    def wake_up(self, npc_id: int, waker_id: int) -> None:
        npc = self.get(npc_id)
        if npc is None:
            return
        if npc.o_type == ObjectType.ORC_NPC:
            self.completions.append(Completion(CompletionType.AI_HELLO, npc_id, waker_id))
        elif npc.o_type in (ObjectType.HUMAN, ObjectType.S_HUMAN):
            self.completions.append(Completion(CompletionType.PLAYER_DAMAGE, waker_id, npc_id))

    def _free_spot(self) -> tuple[int, int]:
        collision = self.collision
        if all(
            collision.is_blocked(x, y)
            for x in range(collision.width)
            for y in range(collision.height)
        ):
            raise ValueError("the collision map has no open cell")
        while True:
            x = self.rng.randrange(self.config.map_width)
            y = self.rng.randrange(self.config.map_height)
            if not collision.is_blocked(x, y):
                return x, y

    def _spawn(self, npc_id: int, o_type: ObjectType) -> Npc:
        x, y = self._free_spot()
        npc = Npc(id=npc_id, o_type=o_type, x=x, y=y)
        if o_type != ObjectType.ORC_NPC:
            npc.hp = NPC_MAX_HP[o_type]
        self.add(npc)
        self.sectors.insert(npc.id, x, y)
        return npc

    def init_npcs(self, humans: int = 100) -> list[Npc]:
        """Create one orc, then the given number of villager and warrior pairs."""
        if humans < 0:
            raise ValueError("humans must not be negative")
        next_id = self.config.max_user
        created = [self._spawn(next_id, ObjectType.ORC_NPC)]
        next_id += 1
        for _ in range(humans):
            created.append(self._spawn(next_id, ObjectType.HUMAN))
            created.append(self._spawn(next_id + 1, ObjectType.S_HUMAN))
            next_id += 2
        return created