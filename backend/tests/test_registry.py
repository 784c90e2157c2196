import random

import pytest

from werewolf.errors import NotFound, PreconditionFailed
from werewolf.models import GameState
from werewolf.services.games.registry import SessionRegistry, generate_game_code


def test_create_registers_host_in_lobby():
    registry = SessionRegistry(rng=random.Random(3))
    session = registry.create('sid-host', 'Moderator')
    assert session.state == GameState.LOBBY
    assert session.day == 0
    assert session.host_id == 'sid-host'
    assert session.host.is_host
    assert session.host.role is None
    assert registry.get(session.code) is session
    assert len(registry) == 1


def test_codes_are_four_digits_and_unique():
    registry = SessionRegistry(rng=random.Random(5))
    codes = {registry.create(f'h{i}', f'Host{i}').code for i in range(200)}
    assert len(codes) == 200
    assert all(len(c) == 4 and c.isdigit() for c in codes)


def test_code_generation_rerolls_on_collision():
    rng = random.Random(11)
    first = generate_game_code(set(), random.Random(11))
    assert generate_game_code({first}, rng) != first


def test_lookup_is_case_and_space_insensitive():
    registry = SessionRegistry()
    session = registry.create('h', 'Host')
    assert registry.get(f' {session.code.lower()} ') is session


def test_unknown_code_is_not_found():
    with pytest.raises(NotFound):
        SessionRegistry().get('0000')


def test_destroy_removes_and_closes():
    registry = SessionRegistry()
    session = registry.create('h', 'Host')
    assert registry.destroy(session.code) is session
    assert session.closed
    assert session.code not in registry
    assert registry.destroy(session.code) is None


def test_capacity_bound():
    registry = SessionRegistry(max_sessions=2)
    registry.create('a', 'A')
    registry.create('b', 'B')
    with pytest.raises(PreconditionFailed) as exc:
        registry.create('c', 'C')
    assert exc.value.type == 'capacityReached'
    assert len(registry) == 2


def test_idle_sessions():
    registry = SessionRegistry()
    old = registry.create('a', 'A')
    fresh = registry.create('b', 'B')
    old.touch(now=100.0)
    fresh.touch(now=950.0)
    assert registry.idle(600, now=1000.0) == [old]
    assert registry.idle(0, now=1000.0) == []
