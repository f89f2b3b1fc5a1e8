import random

import pytest

from orcworld.ai import CollisionMap
from orcworld.messages import (
    AvatarInfo,
    Chat,
    CompletionType,
    Enter,
    Leave,
    Move,
    StatChange,
    StateChange,
)
from orcworld.objects import Npc, ObjectType, State, User
from orcworld.sector import WorldConfig
from orcworld.timers import TimerKind
from orcworld.world import AGRO_SHOUT, World


def make_world(blocked=(), max_user=4):
    config = WorldConfig(map_width=100, map_height=100, sector_size=20, view_range=7, max_user=max_user)
    cells = [[(x, y) in blocked for y in range(10)] for x in range(10)]
    world = World(config, CollisionMap(cells), random.Random(1))
    world.clock = lambda: 0.0
    return world


def place_user(world, x, y, name=""):
    user = world.connect()
    user.x, user.y, user.name = x, y, name
    user.state = State.INGAME
    world.sectors.insert(user.id, x, y)
    return user


def place_npc(world, npc_id, o_type, x, y):
    npc = world.add(Npc(id=npc_id, o_type=o_type, x=x, y=y))
    world.sectors.insert(npc_id, x, y)
    return npc


def test_connect_allocates_lowest_ids_until_full():
    world = make_world(max_user=2)
    first = world.connect()
    second = world.connect()
    assert (first.id, second.id) == (0, 1)
    assert first.state is State.ALLOC
    assert world.get(1) is second
    assert world.new_client_id() is None
    with pytest.raises(RuntimeError):
        world.connect()


def test_get_unknown_id_returns_none():
    assert make_world().get(999) is None


def test_visible_ids_respects_range_and_state():
    world = make_world()
    a = place_user(world, 10, 10)
    b = place_user(world, 15, 10)
    c = place_user(world, 30, 10)
    d = place_user(world, 11, 11)
    d.state = State.FREE
    assert world.visible_ids(a.id) == {b.id}
    assert c.id not in world.visible_ids(b.id)


def test_send_remove_only_for_known_objects():
    world = make_world()
    a = place_user(world, 10, 10)
    b = place_user(world, 12, 10)
    world.send_remove(a, b.id)
    assert a.drain() == []
    world.send_add_player(a, b.id)
    assert b.id in a.view_list
    world.send_remove(a, b.id)
    assert a.drain()[-1] == Leave(b.id)
    assert b.id not in a.view_list


def test_send_add_player_and_login_info():
    world = make_world()
    a = place_user(world, 10, 10, name="alice")
    b = place_user(world, 12, 11, name="bob")
    world.send_add_player(a, b.id)
    world.send_login_info(b)
    assert a.drain() == [Enter(b.id, "bob", int(ObjectType.PLAYER), 12, 11, b.hp)]
    assert b.drain() == [AvatarInfo(b.id, "bob", 12, 11, b.level, b.hp)]


def test_load_view_list_introduces_players_both_ways():
    world = make_world()
    a = place_user(world, 10, 10)
    b = place_user(world, 12, 10)
    far = place_user(world, 50, 50)
    world.load_view_list(a.id)
    assert b.id in a.view_list and a.id in b.view_list
    assert far.id not in a.view_list
    assert far.drain() == []


def test_load_view_list_wakes_orc():
    world = make_world()
    user = place_user(world, 10, 10)
    orc = place_npc(world, 4, ObjectType.ORC_NPC, 12, 10)
    world.load_view_list(user.id)
    assert orc.id in user.view_list
    completion = world.completions.popleft()
    assert completion.kind is CompletionType.AI_HELLO
    assert (completion.key, completion.target_id) == (orc.id, user.id)


def test_warrior_agro_schedules_follow():
    world = make_world()
    user = place_user(world, 10, 10)
    warrior = place_npc(world, 5, ObjectType.S_HUMAN, 12, 10)
    world.load_view_list(user.id)
    assert warrior.is_active
    assert warrior.target_id == user.id
    assert Chat(warrior.id, AGRO_SHOUT) in user.drain()
    due = world.timers.pop_due(10.0)
    assert [(e.obj_id, e.kind, e.target_id) for e in due] == [
        (warrior.id, TimerKind.FOLLOW_MOVE, user.id)
    ]
    kinds = [c.kind for c in world.completions]
    assert kinds == [CompletionType.PLAYER_DAMAGE]


def test_update_view_list_moves_and_leaves():
    world = make_world()
    a = place_user(world, 10, 10)
    b = place_user(world, 12, 10)
    world.load_view_list(a.id)
    a.drain(), b.drain()

    a.x = 11
    world.update_view_list(a.id)
    assert b.drain() == [Move(a.id, 11, 10)]

    world.sectors.remove(a.id, a.x, a.y)
    a.x = 30
    world.sectors.insert(a.id, a.x, a.y)
    world.update_view_list(a.id)
    assert Leave(b.id) in a.drain()
    assert b.drain() == [Leave(a.id)]
    assert a.view_list == set() and b.view_list == set()


def test_update_animation_sends_stats_for_npcs():
    world = make_world()
    user = place_user(world, 10, 10)
    orc = place_npc(world, 4, ObjectType.ORC_NPC, 12, 10)
    world.update_animation(orc.id, 2, 3)
    assert user.drain() == [StateChange(orc.id, 2, 3), StatChange(orc.id, orc.hp, orc.level, orc.exp)]
    other = place_user(world, 11, 10)
    world.update_animation(other.id, 1, 2)
    assert user.drain() == [StateChange(other.id, 1, 2)]


def test_update_chat_reaches_only_visible_players():
    world = make_world()
    a = place_user(world, 10, 10)
    b = place_user(world, 12, 10)
    far = place_user(world, 60, 60)
    world.update_chat(a.id, "hello")
    assert b.drain() == [Chat(a.id, "hello")]
    assert far.drain() == []
    assert a.drain() == []


def test_update_leave_and_add_and_move():
    world = make_world()
    user = place_user(world, 10, 10)
    orc = place_npc(world, 4, ObjectType.ORC_NPC, 12, 10)
    world.update_add(orc.id)
    assert orc.id in user.view_list
    world.update_move(orc.id)
    world.update_leave(orc.id)
    messages = user.drain()
    assert messages[1:] == [Move(orc.id, 12, 10), Leave(orc.id)]
    assert orc.id not in user.view_list


def test_keep_alive_needs_a_player_in_view():
    world = make_world()
    orc = place_npc(world, 4, ObjectType.ORC_NPC, 12, 10)
    place_npc(world, 5, ObjectType.HUMAN, 13, 10)
    assert world.keep_alive(orc.id) is False
    place_user(world, 10, 10)
    assert world.keep_alive(orc.id) is True


def test_wake_up_human_posts_damage_for_waker():
    world = make_world()
    user = place_user(world, 10, 10)
    human = place_npc(world, 5, ObjectType.HUMAN, 10, 10)
    world.wake_up(human.id, user.id)
    completion = world.completions.popleft()
    assert completion.kind is CompletionType.PLAYER_DAMAGE
    assert (completion.key, completion.target_id) == (user.id, human.id)
    world.wake_up(999, user.id)
    assert not world.completions


def test_disconnect_frees_user_and_tells_neighbours():
    world = make_world()
    a = place_user(world, 10, 10)
    b = place_user(world, 12, 10)
    world.load_view_list(a.id)
    b.drain()
    world.disconnect(a.id)
    assert a.state is State.FREE
    assert b.drain() == [Leave(a.id)]
    assert a.id not in world.sectors.nearby(10, 10)


def test_user_in_game():
    world = make_world()
    user = place_user(world, 10, 10, name="alice")
    assert world.user_in_game("alice")
    assert not world.user_in_game("bob")
    user.state = State.FREE
    assert not world.user_in_game("alice")


def test_init_npcs_creates_orc_and_pairs_on_open_cells():
    blocked = {(x, y) for x in range(10) for y in range(10) if (x + y) % 2 == 0}
    world = make_world(blocked=blocked)
    npcs = world.init_npcs(3)
    assert len(npcs) == 7
    assert [n.id for n in npcs] == list(range(world.config.max_user, world.config.max_user + 7))
    assert npcs[0].o_type == ObjectType.ORC_NPC
    assert [n.o_type for n in npcs[1:3]] == [ObjectType.HUMAN, ObjectType.S_HUMAN]
    for npc in npcs:
        assert not world.collision.is_blocked(npc.x, npc.y)
        assert (npc.sx, npc.sy) == (npc.x, npc.y)
        assert world.get(npc.id) is npc
        assert npc.id in world.sectors.nearby(npc.x, npc.y)


def test_init_npcs_rejects_fully_blocked_map():
    blocked = {(x, y) for x in range(10) for y in range(10)}
    world = make_world(blocked=blocked)
    with pytest.raises(ValueError):
        world.init_npcs(1)


def test_connect_returns_user_type():
    world = make_world()
    user = world.connect()
    assert isinstance(user, User) and user.view_list == set()