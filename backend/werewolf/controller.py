"""Entry point for every client operation on a room.

Each operation runs to completion under the room's lock: check the caller
and the room state, mutate the session, then push the resulting views out
through the channel. Rule violations come back to the caller as an
``error`` notice and leave the room untouched.
"""
import functools
import logging
import random
import threading
import time
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional

from werewolf import messages as msg
from werewolf.channel import Channel
from werewolf.errors import Forbidden, GameError, NotFound, PreconditionFailed
from werewolf.models import GameState, Phase, Player, Session
from werewolf.services.games import outcome, reconnect
from werewolf.services.games.registry import SessionRegistry
from werewolf.services.games.roles import MIN_ROLE_PLAYERS, assign_roles
from werewolf.services.games.voting import VoteResult, resolve_votes

logger = logging.getLogger(__name__)


def reports_errors(operation):
    """Turn a GameError into an ``error`` notice for the requesting connection."""
    @functools.wraps(operation)
    def wrapper(self, sid, *args, **kwargs):
        try:
            return operation(self, sid, *args, **kwargs)
        except GameError as exc:
            logger.info(f"[rejected] op={operation.__name__} sid={sid} type={exc.type} reason={exc.message}")
            self.channel.deliver(sid, 'error', exc.to_payload())
            return None
    return wrapper


def _night_report(dead: List[str]) -> Dict[str, Any]:
    if not dead:
        return {'deadPlayers': dead, 'message': 'Nobody died tonight.', 'type': 'success'}
    verb = 'have' if len(dead) > 1 else 'has'
    return {'deadPlayers': dead, 'message': f"{', '.join(dead)} {verb} died tonight.", 'type': 'error'}


def _day_report(result: VoteResult, eliminated_name: Optional[str], names: Dict[str, str]) -> Dict[str, Any]:
    tally = [{'id': pid, 'name': names.get(pid), 'votes': count} for pid, count in result.tally.items()]
    if eliminated_name is not None:
        message, kind = f'{eliminated_name} was eliminated by vote.', 'info'
    elif result.tied:
        message, kind = 'There was a tie. Nobody is eliminated.', 'warning'
    else:
        message, kind = 'Nobody was eliminated this time.', 'success'
    return {'eliminatedPlayer': eliminated_name, 'tally': tally, 'message': message, 'type': kind}


class GameController:
    def __init__(self, channel: Channel, registry: Optional[SessionRegistry] = None,
                 rng: Optional[random.Random] = None, min_players: int = MIN_ROLE_PLAYERS):
        self.channel = channel
        self.registry = registry or SessionRegistry()
        self.rng = rng or random.Random()
        # Fewer players than the smallest role tier would leave players without roles
        self.min_players = max(min_players, MIN_ROLE_PLAYERS)
        self._bindings: Dict[str, str] = {}  # connection id -> game code
        self._bindings_lock = threading.Lock()

    # ---- plumbing ----

    @contextmanager
    def _locked(self, game_code: str) -> Iterator[Session]:
        session = self.registry.get(game_code)
        with session.lock:
            if session.closed:
                raise NotFound('Game not found')
            session.touch()
            yield session

    def _bind(self, sid: str, session: Session) -> None:
        with self._bindings_lock:
            self._bindings[sid] = session.code
        self.channel.join(sid, session.code)

    def _unbind(self, sid: str) -> Optional[str]:
        with self._bindings_lock:
            return self._bindings.pop(sid, None)

    def bound_game(self, sid: str) -> Optional[str]:
        return self._bindings.get(sid)

    def _require_unbound(self, sid: str, game_code: Optional[str] = None) -> None:
        bound = self.bound_game(sid)
        if bound is not None and bound != game_code:
            raise PreconditionFailed('This connection is already in another game', 'alreadyJoined')

    @staticmethod
    def _require_host(session: Session, sid: str, message: str) -> None:
        if not session.is_host(sid):
            raise Forbidden(message)

    def _fanout(self, session: Session, event: str, build: Callable[[bool], Any]) -> None:
        """Room gets the role-less view; the host gets the same event with roles."""
        self.channel.broadcast(session.code, event, build(False), skip=session.host_id)
        self.channel.deliver(session.host_id, event, build(True))

    def _broadcast_players(self, session: Session, event: str = 'updatePlayers') -> None:
        self._fanout(session, event, lambda roles: session.players_view(include_roles=roles))

    def _broadcast_state(self, session: Session) -> None:
        self._fanout(session, 'updateGameState', lambda roles: session.to_dict(include_roles=roles))

    def _close(self, session: Session) -> None:
        members = list(session.roster)
        for sid in members:
            self._unbind(sid)
        self.registry.destroy(session.code)
        for sid in members:
            self.channel.disconnect(sid)

    def _check_game_end(self, session: Session) -> None:
        verdict = outcome.evaluate(session.roster)
        if not verdict.over:
            return
        session.finish(verdict.winner)
        logger.info(f"[game-over] game={session.code} winner={verdict.winner.value} day={session.day}")
        self.channel.broadcast(session.code, 'gameOver', {
            'winner': verdict.winner.value,
            'roles': [
                {'name': p.name, 'role': p.role.value if p.role else None}
                for p in session.non_host_players()
            ],
        })

    def _target(self, session: Session, player_id: str) -> Player:
        player = session.player(player_id)
        if player is None:
            raise NotFound('Player not found')
        return player

    # ---- room lifecycle ----

    @reports_errors
    def create_game(self, sid: str, message: msg.CreateGame) -> Optional[Session]:
        self._require_unbound(sid)
        session = self.registry.create(sid, message.host_name)
        with session.lock:
            self._bind(sid, session)
            self.channel.deliver(sid, 'gameCreated', {
                'gameId': session.code,
                'playerId': sid,
                'playerRef': session.host.ref,
            })
            self._broadcast_players(session)
        return session

    @reports_errors
    def join_game(self, sid: str, message: msg.JoinGame) -> Optional[Player]:
        with self._locked(message.game_id) as session:
            if session.state != GameState.LOBBY:
                raise Forbidden('The game has already started')
            self._require_unbound(sid, session.code)
            if sid in session.roster:
                raise PreconditionFailed('You are already in this game', 'alreadyJoined')
            if any(p.name == message.player_name for p in session.roster.values()):
                raise PreconditionFailed('That name is already taken in this room', 'nameTaken')
            player = session.add_player(sid, message.player_name)
            self._bind(sid, session)
            logger.info(f"[join] game={session.code} player={player.name} players={len(session.non_host_players())}")
            self.channel.deliver(sid, 'gameJoined', {
                'gameId': session.code,
                'playerId': sid,
                'playerRef': player.ref,
            })
            self._broadcast_players(session)
            return player

    @reports_errors
    def start_game(self, sid: str, message: msg.StartGame) -> None:
        with self._locked(message.game_id) as session:
            self._require_host(session, sid, 'Only the host can start this game')
            if session.state != GameState.LOBBY:
                raise Forbidden('The game has already started')
            active = session.active_players()
            if len(active) < self.min_players:
                raise PreconditionFailed(
                    f'At least {self.min_players} active players (excluding the host) are needed',
                    'insufficientPlayers',
                )

            assignments = assign_roles([p.id for p in active], self.rng)
            session.begin(assignments)
            logger.info(f"[start] game={session.code} players={len(active)}")

            for player_id, role in assignments.items():
                self.channel.deliver(player_id, 'roleAssigned', {'role': role.value})
            self.channel.deliver(session.host_id, 'hostGameStarted', {
                'players': session.players_view(include_roles=True),
            })
            self.channel.broadcast(session.code, 'gameStarted')
            self._broadcast_state(session)

    @reports_errors
    def cancel_game(self, sid: str, message: msg.CancelGame) -> None:
        with self._locked(message.game_id) as session:
            self._require_host(session, sid, 'Only the host can cancel this room')
            if session.state != GameState.LOBBY:
                raise Forbidden('The game has already started')
            logger.info(f"[cancel] game={session.code}")
            self.channel.broadcast(session.code, 'gameCancelled', {'gameId': session.code})
            self._close(session)

    @reports_errors
    def play_again(self, sid: str, message: msg.PlayAgain) -> None:
        with self._locked(message.game_id) as session:
            session.reset()
            logger.info(f"[reset] game={session.code} players={len(session.non_host_players())}")
            self._fanout(session, 'gameReset', lambda roles: {
                'gameId': session.code,
                'players': session.players_view(include_roles=roles),
            })

    # ---- phases and votes ----

    @reports_errors
    def advance_phase(self, sid: str, message: msg.AdvancePhase) -> None:
        with self._locked(message.game_id) as session:
            self._require_host(session, sid, 'Only the host can advance the phase')
            if session.state != GameState.PLAYING:
                raise Forbidden('The game has not started')
            if session.game_over:
                raise Forbidden('The game is over')

            if session.phase == Phase.NIGHT:
                dead = session.end_night()
                logger.info(f"[advance] game={session.code} night->day day={session.day} dead={len(dead)}")
                self.channel.broadcast(session.code, 'nightEnd', _night_report(dead))
            else:
                names = {pid: p.name for pid, p in session.roster.items()}
                result = resolve_votes(session.votes, session.roster)
                eliminated = names.get(result.eliminated_id) if result.eliminated_id else None
                session.end_day(result.eliminated_id)
                logger.info(
                    f"[advance] game={session.code} day->night day={session.day} eliminated={eliminated} tally={result.tally}"
                )
                self.channel.broadcast(session.code, 'dayEnd', _day_report(result, eliminated, names))
                self.channel.broadcast(session.code, 'resetVotes')

            self._broadcast_state(session)
            self._check_game_end(session)

    @reports_errors
    def day_vote(self, sid: str, message: msg.DayVote) -> None:
        with self._locked(message.game_id) as session:
            if session.state != GameState.PLAYING or session.phase != Phase.DAY or session.game_over:
                raise Forbidden('Voting is only open during the day')
            voter = session.player(sid)
            if voter is None or voter.is_host or not voter.alive:
                raise Forbidden('Only living players can vote')
            session.cast_vote(sid, message.target_id)
            target = session.roster[message.target_id]
            self.channel.broadcast(session.code, 'voteUpdate', {
                'playerName': voter.name,
                'targetName': target.name,
            })
            self._broadcast_state(session)

    @reports_errors
    def update_player_status(self, sid: str, message: msg.UpdatePlayerStatus) -> None:
        with self._locked(message.game_id) as session:
            self._require_host(session, sid, 'Only the host can change player status')
            if session.state != GameState.PLAYING:
                raise Forbidden('The game has not started')
            target = self._target(session, message.player_id)
            if target.is_host:
                raise Forbidden('The host is not playing')
            session.set_alive(target.id, message.alive)
            logger.info(f"[status] game={session.code} player={target.name} alive={message.alive}")
            self._broadcast_state(session)

    # ---- host tools ----

    @reports_errors
    def request_players(self, sid: str, message: msg.RequestPlayers) -> None:
        with self._locked(message.game_id) as session:
            self._require_host(session, sid, 'Only the host can list players')
            players = session.players_view(include_roles=True)
            if session.state == GameState.LOBBY:
                self.channel.deliver(sid, 'playersList', players)
            else:
                self.channel.deliver(sid, 'playersListForManage', players)
                self.channel.deliver(sid, 'playersListForRoles', players)

    @reports_errors
    def show_player_role(self, sid: str, message: msg.ShowPlayerRole) -> None:
        with self._locked(message.game_id) as session:
            self._require_host(session, sid, 'Only the host can reveal roles')
            target = self._target(session, message.player_id)
            self.channel.deliver(session.host_id, 'displayPlayerRole', {
                'name': target.name,
                'role': target.role.value if target.role else None,
            })

    @reports_errors
    def kick_player(self, sid: str, message: msg.KickPlayer) -> None:
        with self._locked(message.game_id) as session:
            self._require_host(session, sid, 'Only the host can kick players')
            if session.state != GameState.LOBBY:
                raise Forbidden('Players can only be kicked from the lobby')
            target = self._target(session, message.target_id)
            if target.is_host:
                raise Forbidden('The host cannot be kicked')

            self.channel.deliver(target.id, 'kickedFromGame', {'message': 'You have been kicked from the room'})
            session.remove_player(target.id)
            self._unbind(target.id)
            self.channel.disconnect(target.id)
            logger.info(f"[kick] game={session.code} player={target.name}")
            self._fanout(session, 'playerKicked', lambda roles: {
                'name': target.name,
                'players': session.players_view(include_roles=roles),
            })

    @reports_errors
    def flip_card(self, sid: str, message: msg.FlipCard) -> None:
        with self._locked(message.game_id) as session:
            target = self._target(session, message.player_id)
            if target.is_host:
                raise Forbidden('The host has no card')
            self.channel.deliver(target.id, 'cardFlipped')

    # ---- connections ----

    @reports_errors
    def restore_session(self, sid: str, message: msg.RestoreSession) -> None:
        with self._locked(message.game_id) as session:
            self._require_unbound(sid, session.code)
            player = reconnect.reconcile(session, message.player_id, sid)
            self._bind(sid, session)
            self.channel.deliver(sid, 'sessionRestored', {
                'playerId': player.id,
                'playerRef': player.ref,
                'gameId': session.code,
                'role': player.role.value if (player.role and not player.is_host) else None,
                'alive': player.alive,
                'isHost': player.is_host,
                'hasVoted': player.id in session.votes,
                'state': session.to_dict(include_roles=player.is_host),
            })
            self.channel.deliver(session.host_id, 'playerReconnected', {
                'playerId': player.id,
                'name': player.name,
                'isHost': player.is_host,
            })
            self._broadcast_players(session)
            self._broadcast_state(session)

    @reports_errors
    def update_host_channel(self, sid: str, message: msg.UpdateHostChannel) -> None:
        with self._locked(message.game_id) as session:
            player = reconnect.find_player(session, message.player_id)
            if player is None:
                raise NotFound('Player not found')
            if not player.is_host:
                raise Forbidden('Only the host can claim the host channel')
            self._require_unbound(sid, session.code)
            reconnect.reconcile(session, message.player_id, sid)
            self._bind(sid, session)
            self.channel.deliver(sid, 'hostChannelUpdated', {'gameId': session.code, 'playerId': sid})

    def disconnect(self, sid: str) -> None:
        game_code = self._unbind(sid)
        if game_code is None:
            return
        try:
            with self._locked(game_code) as session:
                player = session.player(sid)
                if player is None:
                    return
                player.disconnected = True
                logger.info(f"[disconnect] game={session.code} player={player.name} host={player.is_host}")
                self.channel.deliver(session.host_id, 'playerDisconnected', {
                    'playerId': sid,
                    'name': player.name,
                    'isHost': player.is_host,
                })
                self._broadcast_state(session)
        except NotFound:
            logger.info(f"[disconnect] game={game_code} sid={sid} room already gone")

    # ---- lifetime ----

    def public_state(self, game_code: str) -> Dict[str, Any]:
        session = self.registry.get(game_code)
        with session.lock:
            if session.closed:
                raise NotFound('Game not found')
            return session.to_dict()

    def expire_idle_sessions(self, timeout: float, now: Optional[float] = None) -> List[str]:
        """Close rooms with no activity for ``timeout`` seconds."""
        now = time.monotonic() if now is None else now
        expired = []
        for session in self.registry.idle(timeout, now):
            with session.lock:
                if session.closed or now - session.last_activity < timeout:
                    continue
                self.channel.broadcast(session.code, 'sessionEnded', {'gameId': session.code, 'reason': 'idle'})
                self._close(session)
                expired.append(session.code)
        if expired:
            logger.info(f"[sweep] expired={expired} live={len(self.registry)}")
        return expired
