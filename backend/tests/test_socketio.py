from collections import Counter


def _payloads(received, name):
    return [pkt['args'][0] if pkt['args'] else None for pkt in received if pkt['name'] == name]


def _create_room(sio_factory, players=4):
    host = sio_factory()
    host.emit('createGame', 'Moderator')
    created = _payloads(host.get_received(), 'gameCreated')[0]
    code = created['gameId']
    clients = []
    for i in range(players):
        player = sio_factory()
        player.emit('joinGame', {'gameId': code, 'playerName': f'P{i}'})
        joined = _payloads(player.get_received(), 'gameJoined')[0]
        assert joined['playerId'] == player.player_id
        clients.append(player)
    host.get_received()
    return host, code, clients


def test_socket_connect_greets_with_player_id(sio_factory):
    player = sio_factory()
    assert player.is_connected()
    assert player.player_id


def test_create_game_returns_numeric_code(sio_factory):
    host = sio_factory()
    host.emit('createGame', {'hostName': 'Moderator'})
    received = host.get_received()
    created = _payloads(received, 'gameCreated')[0]
    assert created['gameId'].isdigit() and len(created['gameId']) == 4
    assert created['playerId'] == host.player_id
    roster = _payloads(received, 'updatePlayers')[-1]
    assert roster == [{
        'id': host.player_id, 'name': 'Moderator', 'role': None,
        'alive': True, 'isHost': True, 'disconnected': False,
    }]


def test_invalid_payload_is_reported(sio_factory):
    host, code, _ = _create_room(sio_factory, players=0)
    stranger = sio_factory()
    stranger.emit('joinGame', {'gameId': code})
    error = _payloads(stranger.get_received(), 'error')[0]
    assert error['type'] == 'invalidPayload'
    assert 'playerName' in error['message']


def test_start_with_three_players_is_rejected(sio_factory):
    host, code, _ = _create_room(sio_factory, players=3)
    host.emit('startGame', {'gameId': code})
    error = _payloads(host.get_received(), 'error')[0]
    assert error['type'] == 'insufficientPlayers'


def test_full_game_round(sio_factory, client):
    host, code, players = _create_room(sio_factory, players=4)

    host.emit('startGame', {'gameId': code, 'playerId': host.player_id})
    host_received = host.get_received()
    assert _payloads(host_received, 'hostGameStarted')
    roles = []
    for player in players:
        received = player.get_received()
        roles.append(_payloads(received, 'roleAssigned')[0]['role'])
        state = _payloads(received, 'updateGameState')[-1]
        assert state['time'] == 'night'
        assert all(p['role'] is None for p in state['players'])
    assert Counter(roles) == Counter(['seer', 'werewolf', 'doctor', 'villager'])

    host.emit('advancePhase', code)
    night = _payloads(players[0].get_received(), 'nightEnd')[0]
    assert night['deadPlayers'] == []

    target = players[3]
    for voter in players[:3]:
        voter.emit('dayVote', {'gameId': code, 'targetId': target.player_id})
    votes = _payloads(players[3].get_received(), 'voteUpdate')
    assert [v['targetName'] for v in votes] == ['P3', 'P3', 'P3']

    players[0].emit('dayVote', {'gameId': code, 'targetId': players[1].player_id})
    assert _payloads(players[0].get_received(), 'error')[0]['type'] == 'alreadyVoted'

    host.emit('advancePhase', code)
    received = players[0].get_received()
    assert _payloads(received, 'dayEnd')[0]['eliminatedPlayer'] == 'P3'
    assert 'resetVotes' in [pkt['name'] for pkt in received]

    state = client.get(f'/api/games/{code}/state').get_json()
    assert state['day'] == 2
    assert state['time'] == 'night'
    eliminated = next(p for p in state['players'] if p['name'] == 'P3')
    assert eliminated['alive'] is False


def test_kick_disconnects_player(sio_factory):
    host, code, players = _create_room(sio_factory, players=2)
    victim = players[0]
    host.emit('kickPlayer', {'gameId': code, 'targetId': victim.player_id})

    assert not victim.is_connected()
    kicked = _payloads(players[1].get_received(), 'playerKicked')[0]
    assert kicked['name'] == 'P0'
    assert [p['name'] for p in kicked['players']] == ['Moderator', 'P1']


def test_reconnect_restores_role(sio_factory):
    host, code, players = _create_room(sio_factory, players=4)
    host.emit('startGame', {'gameId': code})
    leaving = players[1]
    role = _payloads(leaving.get_received(), 'roleAssigned')[0]['role']
    old_id = leaving.player_id
    leaving.disconnect()
    assert _payloads(host.get_received(), 'playerDisconnected')[0]['playerId'] == old_id

    returning = sio_factory()
    returning.emit('restoreSession', {'gameId': code, 'playerId': old_id})
    restored = _payloads(returning.get_received(), 'sessionRestored')[0]
    assert restored['playerId'] == returning.player_id
    assert restored['role'] == role
    assert restored['hasVoted'] is False
    assert _payloads(host.get_received(), 'playerReconnected')[0]['name'] == 'P1'


def test_cancel_game_ends_room(sio_factory, client):
    host, code, players = _create_room(sio_factory, players=2)
    host.emit('cancelGame', {'gameId': code})
    assert not players[0].is_connected()
    assert not host.is_connected()
    assert client.get(f'/api/games/{code}/state').status_code == 404
