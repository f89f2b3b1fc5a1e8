"""Player actions and the worker loop that applies queued work to the world."""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable

from . import ai
from .messages import Chat, Completion, CompletionType, LoginFail, UserRecord
from .objects import Direction, GameObject, Npc, ObjectType, State, User, has_special_char
from .sector import can_attack, can_skill
from .timers import TimerEvent, TimerKind, TimerQueue
from .world import NPC_MAX_HP, World

log = logging.getLogger(__name__)

# Animation states shown to clients.
IDLE, WALK, ATTACK, HURT, DEATH = range(5)

# Player actions.
ACTION_ATTACK = 1
ACTION_ATTACK_SKILL = 2
ACTION_HEAL_SKILL = 3

# Reasons a login is refused.
LOGIN_IN_USE = 1
LOGIN_BAD_NAME = 2
LOGIN_FULL = 3

# Requests queued for the storage layer.
DB_LOAD_INFO = "load_info"
DB_CREATE_USER = "create_user"
DB_SAVE_XY = "save_xy"
DB_SAVE_HP = "save_hp"
DB_SAVE_LEVEL = "save_level"

BASE_HP = 100
HP_PER_LEVEL = 20
DAMAGE_PER_LEVEL = 10
EXP_PER_LEVEL = 100
HEAL_SKILL_AMOUNT = 20
NPC_DAMAGE = {ObjectType.HUMAN: 5, ObjectType.S_HUMAN: 15}
NPC_EXP = {ObjectType.HUMAN: 20, ObjectType.S_HUMAN: 50}
SPAWN = (10, 10)
GREETING = "Hello"

PLEA = "사..살려주세요!"
DYING_WORDS = "크윽...오크녀석..."

ATTACK_COOLDOWN = 1.0
SKILL_COOLDOWN = 3.0
HEAL_PERIOD = 5.0
PLAYER_RELIVE_DELAY = 5.0
NPC_RELIVE_DELAY = 30.0
NPC_MOVE_PERIOD = 0.5

_CLIENT_DIRECTIONS = (Direction.DOWN, Direction.UP, Direction.LEFT, Direction.RIGHT)
_NPC_FACING = {
    Direction.UP: Direction.RIGHT,
    Direction.DOWN: Direction.DOWN,
    Direction.LEFT: Direction.UP,
    Direction.RIGHT: Direction.LEFT,
}
_TIMER_COMPLETIONS = {
    TimerKind.ATTACK: CompletionType.PLAYER_ATTACK,
    TimerKind.ATTACK_SKILL: CompletionType.PLAYER_SKILL,
    TimerKind.HEAL_SKILL: CompletionType.PLAYER_HEAL_SKILL,
    TimerKind.HEAL: CompletionType.PLAYER_HEAL,
    TimerKind.RELIVE: CompletionType.OBJECT_RELIVE,
    TimerKind.RANDOM_MOVE: CompletionType.NPC_RANDOM_MOVE,
    TimerKind.FOLLOW_MOVE: CompletionType.NPC_FOLLOW,
}
_SKILLS = {
    ACTION_ATTACK_SKILL: ("able_attack_skill", TimerKind.ATTACK_SKILL),
    ACTION_HEAL_SKILL: ("able_heal_skill", TimerKind.HEAL_SKILL),
}


def _max_hp(level: int) -> int:
    return BASE_HP + (level - 1) * HP_PER_LEVEL


def _damage(level: int) -> int:
    return DAMAGE_PER_LEVEL * level


def _exp_to_next(level: int) -> int:
    return EXP_PER_LEVEL * level


def _claim(obj: GameObject, flag: str) -> bool:
    """Switch a flag from True to False; False if it was already off."""
    with obj.lock:
        if not getattr(obj, flag):
            return False
        setattr(obj, flag, False)
        return True


def _restore(obj: GameObject, flag: str) -> bool:
    """Switch a flag from False to True; False if it was already on."""
    with obj.lock:
        if getattr(obj, flag):
            return False
        setattr(obj, flag, True)
        return True


class Game:
    """Applies player requests and queued work to a world."""

    def __init__(self, world: World, timers: TimerQueue | None = None) -> None:
        self.world = world
        if timers is not None:
            world.timers = timers
        self.timers = world.timers
        self.db_requests: deque[tuple[str, int]] = deque()
        self.spawn = SPAWN
        self._handlers: dict[CompletionType, Callable[[Completion], None]] = {
            CompletionType.PLAYER_ATTACK: lambda c: self._reenable(c.key, "able_attack"),
            CompletionType.PLAYER_SKILL: lambda c: self._reenable(c.key, "able_attack_skill"),
            CompletionType.PLAYER_HEAL_SKILL: lambda c: self._reenable(c.key, "able_heal_skill"),
            CompletionType.PLAYER_HEAL: self._on_heal,
            CompletionType.PLAYER_DAMAGE: self._on_damage,
            CompletionType.OBJECT_RELIVE: self._on_relive,
            CompletionType.NPC_RANDOM_MOVE: lambda c: self._on_npc_move(c, follow=False),
            CompletionType.NPC_FOLLOW: lambda c: self._on_npc_move(c, follow=True),
            CompletionType.AI_HELLO: self._on_hello,
            CompletionType.DB_LOAD_USER: lambda c: self.load_user(c.key, c.record),
            CompletionType.DB_NEW_USER: lambda c: self.new_user(c.key),
        }

    # -- helpers ------------------------------------------------------------

    def _user(self, user_id: int) -> User | None:
        obj = self.world.get(user_id)
        return obj if isinstance(obj, User) else None

    def _npc(self, npc_id: int) -> Npc | None:
        obj = self.world.get(npc_id)
        return obj if isinstance(obj, Npc) else None

    def _schedule(self, obj_id: int, delay: float, kind: TimerKind, target_id: int = 0) -> None:
        self.timers.push(TimerEvent(obj_id, self.world.clock() + delay, kind, target_id))

    def _db(self, request: str, object_id: int) -> None:
        self.db_requests.append((request, object_id))

    def _announce(self, user: User, text: str) -> None:
        log.info("%s", text)
        user.send(Chat(-1, text))

    def _relocate(self, obj: GameObject, old: tuple[int, int]) -> None:
        sectors = self.world.sectors
        if sectors.index_of(*old) != sectors.index_of(obj.x, obj.y):
            sectors.remove(obj.id, *old)
            sectors.insert(obj.id, obj.x, obj.y)

    def _reenable(self, user_id: int, flag: str) -> None:
        user = self._user(user_id)
        if user is not None:
            _restore(user, flag)

    # -- player requests ------------------------------------------------------

    def login(self, user_id: int, name: str) -> bool:
        """Check a login name and ask storage for the account; False if refused."""
        user = self._user(user_id)
        if user is None:
            return False
        if has_special_char(name):
            user.send(LoginFail(LOGIN_BAD_NAME))
            return False
        if self.world.user_in_game(name):
            user.send(LoginFail(LOGIN_IN_USE))
            return False
        if self.world.new_client_id() is None:
            user.send(LoginFail(LOGIN_FULL))
            return False
        user.name = name
        self._db(DB_LOAD_INFO, user_id)
        return True

    def move(self, user_id: int, direction: int) -> None:
        direction = Direction(direction)
        user = self._user(user_id)
        if user is None or not user.is_live:
            return
        config = self.world.config
        x, y = user.x, user.y
        nx, ny = x, y
        if direction is Direction.UP and y > 0:
            ny -= 1
        elif direction is Direction.DOWN and y < config.map_height - 1:
            ny += 1
        elif direction is Direction.LEFT and x > 0:
            nx -= 1
        elif direction is Direction.RIGHT and x < config.map_width - 1:
            nx += 1
        if (nx, ny) != (x, y) and not self.world.collision.is_blocked(nx, ny):
            user.x, user.y = nx, ny
            self._relocate(user, (x, y))
        user.direction = direction
        self._db(DB_SAVE_XY, user_id)
        self.world.send_move(user, user_id)
        self.world.update_view_list(user_id)

    def change_state(self, user_id: int, state: int, direction: int) -> None:
        user = self._user(user_id)
        if user is not None and user.is_live:
            self.world.update_animation(user_id, state, direction)

    def chat(self, user_id: int, message: str) -> None:
        user = self._user(user_id)
        if user is None:
            return
        user.send(Chat(user_id, message))
        self.world.update_chat(user_id, message)

    def attack(self, user_id: int, client_direction: int) -> None:
        """Basic attack; the client numbers directions down, up, left, right from 0."""
        if not 0 <= client_direction < len(_CLIENT_DIRECTIONS):
            raise ValueError(f"unknown client direction {client_direction}")
        user = self._user(user_id)
        if user is None or not user.is_live or not user.able_attack:
            return
        direction = _CLIENT_DIRECTIONS[client_direction]
        self.world.send_state(user, user_id, ATTACK, direction)
        self.world.update_animation(user_id, ATTACK, direction)
        user.direction = direction
        self.update_attack(user_id, ACTION_ATTACK, direction)
        if _claim(user, "able_attack"):
            self._schedule(user_id, ATTACK_COOLDOWN, TimerKind.ATTACK)

    def use_skill(self, user_id: int, action: int) -> None:
        user = self._user(user_id)
        if user is None or not user.is_live or action not in _SKILLS:
            return
        flag, kind = _SKILLS[action]
        if not getattr(user, flag):
            return
        self.update_attack(user_id, action, user.direction)
        if _claim(user, flag):
            self._schedule(user_id, SKILL_COOLDOWN, kind)

    def update_attack(self, user_id: int, action: int, direction: int) -> None:
        """Apply an attack or skill of a player to everything around it."""
        user = self._user(user_id)
        if user is None:
            return
        world = self.world
        for other_id in sorted(world.sectors.nearby(user.x, user.y)):
            if other_id == user_id:
                continue
            other = world.get(other_id)
            if other is None:
                continue
            with other.lock:
                if other.state is not State.INGAME:
                    continue
            if action == ACTION_ATTACK:
                if isinstance(other, Npc) and can_attack(user, other, direction):
                    self._strike(user, other, direction)
            elif action == ACTION_ATTACK_SKILL:
                if isinstance(other, Npc) and can_skill(user, other):
                    self._strike(user, other, direction)
            elif action == ACTION_HEAL_SKILL:
                if isinstance(other, User) and can_skill(user, other):
                    self._heal_other(user, other)

    def _strike(self, user: User, npc: Npc, direction: int) -> None:
        if npc.o_type == ObjectType.ORC_NPC:
            return
        world = self.world
        if npc.o_type == ObjectType.HUMAN and npc.try_activate():
            user.send(Chat(npc.id, PLEA))
            self._schedule(npc.id, NPC_MOVE_PERIOD, TimerKind.RANDOM_MOVE)
        amount = _damage(user.level)
        self._announce(user, f"{user.name}가 {npc.name}에게 {amount}데미지 공격!")
        npc.hp -= amount
        world.send_stat(user, npc.id)
        facing = _NPC_FACING[Direction(direction)]
        if npc.hp > 0:
            world.update_animation(npc.id, HURT, facing)
            return
        self._announce(user, f"{user.name}가 {npc.name}를 물리쳤다!")
        user.send(Chat(npc.id, DYING_WORDS))
        with npc.lock:
            npc.state = State.FREE
        world.sectors.remove(npc.id, npc.x, npc.y)
        world.update_animation(npc.id, DEATH, facing)
        self._schedule(npc.id, NPC_RELIVE_DELAY, TimerKind.RELIVE)
        user.exp += NPC_EXP.get(ObjectType(npc.o_type), 0)
        needed = _exp_to_next(user.level)
        if user.exp > needed:
            user.exp -= needed
            user.level += 1
        world.send_stat(user, user.id)
        self._db(DB_SAVE_LEVEL, user.id)

    def _heal_other(self, user: User, other: User) -> None:
        self._announce(user, f"{user.name}가 {other.name}에게 회복스킬 사용!")
        other.hp = min(_max_hp(other.level), other.hp + HEAL_SKILL_AMOUNT)
        self.world.send_stat(other, other.id)
        self._db(DB_SAVE_HP, other.id)

    # -- storage results --------------------------------------------------------

    def load_user(self, user_id: int, record: UserRecord) -> None:
        """Place a player using a stored account."""
        user = self._user(user_id)
        if user is None:
            return
        with user.lock:
            user.x, user.y = record.x, record.y
            user.level = record.level
            user.hp = record.hp
            user.exp = record.exp
            user.state = State.INGAME
        self.world.sectors.insert(user.id, user.x, user.y)
        self.world.send_login_info(user)
        self.world.load_view_list(user.id)
        if user.hp < _max_hp(user.level):
            self._schedule(user_id, HEAL_PERIOD, TimerKind.HEAL)

    def new_user(self, user_id: int) -> None:
        """Place a player that has no stored account at the spawn point."""
        user = self._user(user_id)
        if user is None:
            return
        with user.lock:
            user.x, user.y = self.spawn
            user.level = 1
            user.hp = BASE_HP
            user.state = State.INGAME
        self.world.sectors.insert(user.id, user.x, user.y)
        self.world.send_login_info(user)
        self.world.load_view_list(user.id)
        self._db(DB_CREATE_USER, user_id)

    # -- worker loop --------------------------------------------------------------

    def handle(self, completion: Completion) -> None:
        """Apply one queued unit of work."""
        handler = self._handlers.get(completion.kind)
        if handler is None:
            raise ValueError(f"unsupported completion {completion.kind.name}")
        handler(completion)

    def run_timers(self, now: float) -> list[Completion]:
        """Run the timers due by now and all pending work; return what was handled."""
        handled: list[Completion] = []
        for event in self.timers.pop_due(now):
            completion = Completion(_TIMER_COMPLETIONS[event.kind], event.obj_id, event.target_id)
            self.handle(completion)
            handled.append(completion)
        pending = self.world.completions
        while pending:
            completion = pending.popleft()
            self.handle(completion)
            handled.append(completion)
        return handled

    def _on_heal(self, completion: Completion) -> None:
        user = self._user(completion.key)
        if user is None or not user.is_live:
            return
        top = _max_hp(user.level)
        user.hp = min(top, user.hp + int(top * 0.1))
        self.world.send_stat(user, user.id)
        self._db(DB_SAVE_HP, user.id)
        if user.hp < top:
            self._schedule(user.id, HEAL_PERIOD, TimerKind.HEAL)

    def _on_damage(self, completion: Completion) -> None:
        me = self._user(completion.key)
        npc = self._npc(completion.target_id)
        if me is None or npc is None or (me.x, me.y) != (npc.x, npc.y):
            return
        world = self.world
        world.send_state(me, me.id, HURT, me.direction)
        world.update_animation(me.id, HURT, me.direction)
        if npc.o_type == ObjectType.S_HUMAN:
            world.update_animation(npc.id, ATTACK, _NPC_FACING[Direction(me.direction)])
        amount = NPC_DAMAGE.get(ObjectType(npc.o_type), 0)
        self._announce(me, f"{npc.name}가 :{me.name}에게 {amount}데미지 공격!")
        me.hp -= amount
        if me.hp <= 0:
            self._announce(me, f"{npc.name}가 :{me.name}를 죽였습니다...")
            if not _claim(me, "is_live"):
                return
            me.hp = 0
            me.exp //= 2
            world.send_state(me, me.id, DEATH, me.direction)
            self._schedule(me.id, PLAYER_RELIVE_DELAY, TimerKind.RELIVE)
            world.sectors.remove(me.id, me.x, me.y)
            world.update_leave(me.id)
            self._db(DB_SAVE_LEVEL, me.id)
        elif me.hp + amount >= _max_hp(me.level):
            self._schedule(me.id, HEAL_PERIOD, TimerKind.HEAL)
        world.send_stat(me, me.id)
        self._db(DB_SAVE_HP, me.id)

    def _on_relive(self, completion: Completion) -> None:
        world = self.world
        obj = world.get(completion.key)
        if isinstance(obj, User):
            if not _restore(obj, "is_live"):
                return
            obj.x, obj.y = self.spawn
            obj.hp = _max_hp(obj.level)
            world.send_move(obj, obj.id)
            world.send_stat(obj, obj.id)
            world.sectors.insert(obj.id, obj.x, obj.y)
            world.load_view_list(obj.id)
            for request in (DB_SAVE_XY, DB_SAVE_LEVEL, DB_SAVE_HP):
                self._db(request, obj.id)
        elif isinstance(obj, Npc):
            with obj.lock:
                obj.state = State.INGAME
                obj.hp = NPC_MAX_HP[ObjectType(obj.o_type)]
            world.sectors.insert(obj.id, obj.x, obj.y)
            world.update_add(obj.id)
            world.update_animation(obj.id, IDLE, 0)

    def _on_npc_move(self, completion: Completion, follow: bool) -> None:
        world = self.world
        npc = self._npc(completion.key)
        if npc is None:
            return
        if npc.state is not State.INGAME:
            npc.deactivate()
            return
        old = (npc.x, npc.y)
        if follow:
            target = world.get(npc.target_id)
            if target is None:
                direction = Direction.DOWN
            else:
                direction = ai.follow_move(npc, target, world.collision, world.config)
            kind = TimerKind.FOLLOW_MOVE
        else:
            direction = ai.random_move(npc, world.collision, world.config, world.rng)
            kind = TimerKind.RANDOM_MOVE
        self._relocate(npc, old)
        world.update_animation(npc.id, WALK, direction)
        world.update_move(npc.id)
        if world.keep_alive(npc.id):
            self._schedule(npc.id, NPC_MOVE_PERIOD, kind, npc.target_id if follow else 0)
        else:
            npc.deactivate()

    def _on_hello(self, completion: Completion) -> None:
        npc = self._npc(completion.key)
        user = self._user(completion.target_id)
        if npc is not None and user is not None:
            user.send(Chat(npc.id, GREETING))