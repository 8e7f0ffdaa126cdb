"""
Pattern catalog for csgolog - regular expressions for log message bodies and
the builders that turn their captures into typed messages.

Each catalog entry couples one compiled pattern with the builder that reads
its named groups, so the two must always be edited together. The group count
of every pattern is checked when the catalog is built.

A pattern must match the whole message body. Player chat can contain text
that looks like any other message, and it must still parse as chat.

Two log dialects are supported. They differ only in the characters allowed
in player names and Steam IDs:

* ``cs2``  - any name not containing ``>"``, legacy ``STEAM_1:1:...`` or
  bracketed ``[U:1:...]`` IDs
* ``csgo`` - word-character names and legacy IDs only

The ``cs2`` dialect matches a strict superset of ``csgo`` lines and is the
default.
"""

import re
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

from .coerce import to_int, to_float32
from .events import (
    EventType, Message, Player, Position, PositionFloat, Velocity, Equation,
    ServerMessage, FreezTimeStart, WorldMatchStart, WorldRoundStart,
    WorldRoundRestart, WorldRoundEnd, WorldGameCommencing, TeamScored,
    TeamNotice, PlayerConnected, PlayerDisconnected, PlayerEntered,
    PlayerBanned, PlayerSwitched, PlayerSay, PlayerPurchase, PlayerKill,
    PlayerKillAssist, PlayerAttack, PlayerKilledBomb, PlayerKilledSuicide,
    PlayerPickedUp, PlayerDropped, PlayerMoneyChange, PlayerBombGot,
    PlayerBombPlanted, PlayerBombDropped, PlayerBombBeginDefuse,
    PlayerBombDefused, PlayerThrew, PlayerBlinded, ProjectileSpawned,
    GameOver,
)

logger = logging.getLogger(__name__)

SIDES = r'TERRORIST|CT'
TEAMS = r'Unassigned|Spectator|TERRORIST|CT'

DEFAULT_DIALECT = 'cs2'


class CatalogError(Exception):
    """Pattern catalog construction errors."""
    pass


@dataclass(frozen=True)
class Dialect:
    """Character classes for player identity in one log dialect."""

    name: str
    player_name: str
    steam_id: str

    def player(self, prefix: str = 'player', sides: Optional[str] = SIDES,
               capture_side: bool = True) -> str:
        """Build the quoted ``"name<id><steam_id><side>"`` sub-pattern.

        Args:
            prefix: Group name prefix (``player``, ``attacker``, ``victim``)
            sides: Side alternatives; None when the line has no side bracket
            capture_side: Capture the side as ``<prefix>_side``

        Returns:
            Regex source with 3 groups, or 4 when the side is captured
        """
        head = (
            f'"(?P<{prefix}_name>{self.player_name})'
            f'<(?P<{prefix}_id>\\d+)>'
            f'<(?P<{prefix}_steam_id>{self.steam_id})>'
        )
        if sides is None:
            return head + '"'
        if capture_side:
            return head + f'<(?P<{prefix}_side>{sides})>"'
        return head + f'<{sides}>"'


DIALECTS: Dict[str, Dialect] = {
    # A cs2 name may hold anything except the >" that closes a player token,
    # so one player token can never swallow a second one typed in chat.
    'cs2': Dialect('cs2', player_name=r'(?:(?!>").)+', steam_id=r'[\[\]\w:]+'),
    'csgo': Dialect('csgo', player_name=r'\w+', steam_id=r'[\w:]+'),
}


def position(prefix: str) -> str:
    """Build the ``[x y z]`` integer coordinate sub-pattern (3 groups)."""
    return (
        f'\\[(?P<{prefix}_x>-?\\d+) '
        f'(?P<{prefix}_y>-?\\d+) '
        f'(?P<{prefix}_z>-?\\d+)\\]'
    )


def float_triple(prefix: str) -> str:
    """Build the ``x y z`` decimal coordinate sub-pattern (3 groups)."""
    return (
        f'(?P<{prefix}_x>-?\\d+\\.\\d+) '
        f'(?P<{prefix}_y>-?\\d+\\.\\d+) '
        f'(?P<{prefix}_z>-?\\d+\\.\\d+)'
    )


class Captures:
    """Named capture groups of one match, with typed accessors.

    Groups that did not participate in the match read as empty strings.
    """

    def __init__(self, match: re.Match, strict: bool = False):
        self.groups = match.groupdict(default='')
        self.strict = strict

    def text(self, name: str) -> str:
        return self.groups[name]

    def integer(self, name: str, optional: bool = False) -> int:
        """Integer group; an absent optional group reads as 0 even in strict mode."""
        value = self.groups[name]
        if optional and not value:
            return 0
        return to_int(value, self.strict)

    def float32(self, name: str) -> float:
        return to_float32(self.groups[name], self.strict)

    def contains(self, name: str, substring: str) -> bool:
        return substring in self.groups[name]

    def player(self, prefix: str = 'player') -> Player:
        return Player(
            name=self.text(f'{prefix}_name'),
            id=self.integer(f'{prefix}_id'),
            steam_id=self.text(f'{prefix}_steam_id'),
            side=self.groups.get(f'{prefix}_side', ''),
        )

    def position(self, prefix: str) -> Position:
        return Position(
            x=self.integer(f'{prefix}_x'),
            y=self.integer(f'{prefix}_y'),
            z=self.integer(f'{prefix}_z'),
        )


Builder = Callable[[datetime, Captures], Message]


@dataclass(frozen=True)
class PatternEntry:
    """One catalog entry: a compiled body pattern and its message builder."""

    event_type: EventType
    regex: re.Pattern
    builder: Builder

    def match(self, body: str) -> Optional[re.Match]:
        """Match the whole body; a pattern found inside chat text does not count."""
        return self.regex.fullmatch(body)

    def build(self, timestamp: datetime, match: re.Match, strict: bool = False) -> Message:
        return self.builder(timestamp, Captures(match, strict))


# Builders

def new_server_message(ti: datetime, c: Captures) -> Message:
    return ServerMessage(time=ti, text=c.text('text'))


def new_freez_time_start(ti: datetime, c: Captures) -> Message:
    return FreezTimeStart(time=ti)


def new_world_match_start(ti: datetime, c: Captures) -> Message:
    return WorldMatchStart(time=ti, map=c.text('map'))


def new_world_round_start(ti: datetime, c: Captures) -> Message:
    return WorldRoundStart(time=ti)


def new_world_round_restart(ti: datetime, c: Captures) -> Message:
    return WorldRoundRestart(time=ti, timeleft=c.integer('timeleft'))


def new_world_round_end(ti: datetime, c: Captures) -> Message:
    return WorldRoundEnd(time=ti)


def new_world_game_commencing(ti: datetime, c: Captures) -> Message:
    return WorldGameCommencing(time=ti)


def new_team_scored(ti: datetime, c: Captures) -> Message:
    return TeamScored(
        time=ti,
        side=c.text('side'),
        score=c.integer('score'),
        num_players=c.integer('num_players'),
    )


def new_team_notice(ti: datetime, c: Captures) -> Message:
    return TeamNotice(
        time=ti,
        side=c.text('side'),
        notice=c.text('notice'),
        score_ct=c.integer('score_ct'),
        score_t=c.integer('score_t'),
    )


def new_player_connected(ti: datetime, c: Captures) -> Message:
    return PlayerConnected(time=ti, player=c.player(), address=c.text('address'))


def new_player_disconnected(ti: datetime, c: Captures) -> Message:
    return PlayerDisconnected(time=ti, player=c.player(), reason=c.text('reason'))


def new_player_entered(ti: datetime, c: Captures) -> Message:
    return PlayerEntered(time=ti, player=c.player())


def new_player_banned(ti: datetime, c: Captures) -> Message:
    return PlayerBanned(
        time=ti,
        player=c.player(),
        duration=c.text('duration'),
        by=c.text('by'),
    )


def new_player_switched(ti: datetime, c: Captures) -> Message:
    return PlayerSwitched(
        time=ti,
        player=c.player(),
        from_side=c.text('from'),
        to_side=c.text('to'),
    )


def new_player_say(ti: datetime, c: Captures) -> Message:
    return PlayerSay(
        time=ti,
        player=c.player(),
        text=c.text('text'),
        team=c.text('team') == '_team',
    )


def new_player_purchase(ti: datetime, c: Captures) -> Message:
    return PlayerPurchase(time=ti, player=c.player(), item=c.text('item'))


def new_player_kill(ti: datetime, c: Captures) -> Message:
    # headshot and penetrated share one optional group and may both be set
    return PlayerKill(
        time=ti,
        attacker=c.player('attacker'),
        attacker_position=c.position('attacker_pos'),
        victim=c.player('victim'),
        victim_position=c.position('victim_pos'),
        weapon=c.text('weapon'),
        headshot=c.contains('flags', 'headshot'),
        penetrated=c.contains('flags', 'penetrated'),
    )


def new_player_kill_assist(ti: datetime, c: Captures) -> Message:
    return PlayerKillAssist(
        time=ti,
        attacker=c.player('attacker'),
        victim=c.player('victim'),
    )


def new_player_attack(ti: datetime, c: Captures) -> Message:
    return PlayerAttack(
        time=ti,
        attacker=c.player('attacker'),
        attacker_position=c.position('attacker_pos'),
        victim=c.player('victim'),
        victim_position=c.position('victim_pos'),
        weapon=c.text('weapon'),
        damage=c.integer('damage'),
        damage_armor=c.integer('damage_armor'),
        health=c.integer('health'),
        armor=c.integer('armor'),
        hitgroup=c.text('hitgroup'),
    )


def new_player_killed_bomb(ti: datetime, c: Captures) -> Message:
    return PlayerKilledBomb(time=ti, player=c.player(), position=c.position('pos'))


def new_player_killed_suicide(ti: datetime, c: Captures) -> Message:
    return PlayerKilledSuicide(
        time=ti,
        player=c.player(),
        position=c.position('pos'),
        with_=c.text('with'),
    )


def new_player_picked_up(ti: datetime, c: Captures) -> Message:
    return PlayerPickedUp(time=ti, player=c.player(), item=c.text('item'))


def new_player_dropped(ti: datetime, c: Captures) -> Message:
    return PlayerDropped(time=ti, player=c.player(), item=c.text('item'))


def new_player_money_change(ti: datetime, c: Captures) -> Message:
    return PlayerMoneyChange(
        time=ti,
        player=c.player(),
        equation=Equation(
            a=c.integer('a'),
            b=c.integer('b'),
            result=c.integer('result'),
        ),
        purchase=c.text('purchase'),
    )


def new_player_bomb_got(ti: datetime, c: Captures) -> Message:
    return PlayerBombGot(time=ti, player=c.player())


def new_player_bomb_planted(ti: datetime, c: Captures) -> Message:
    return PlayerBombPlanted(time=ti, player=c.player())


def new_player_bomb_dropped(ti: datetime, c: Captures) -> Message:
    return PlayerBombDropped(time=ti, player=c.player())


def new_player_bomb_begin_defuse(ti: datetime, c: Captures) -> Message:
    return PlayerBombBeginDefuse(
        time=ti,
        player=c.player(),
        kit=c.text('without') != 'out',
    )


def new_player_bomb_defused(ti: datetime, c: Captures) -> Message:
    return PlayerBombDefused(time=ti, player=c.player())


def new_player_threw(ti: datetime, c: Captures) -> Message:
    return PlayerThrew(
        time=ti,
        player=c.player(),
        position=c.position('pos'),
        entindex=c.integer('entindex', optional=True),
        grenade=c.text('grenade'),
    )


def new_player_blinded(ti: datetime, c: Captures) -> Message:
    return PlayerBlinded(
        time=ti,
        attacker=c.player('attacker'),
        victim=c.player('victim'),
        for_=c.float32('duration'),
        entindex=c.integer('entindex'),
    )


def new_projectile_spawned(ti: datetime, c: Captures) -> Message:
    return ProjectileSpawned(
        time=ti,
        position=PositionFloat(
            x=c.float32('pos_x'),
            y=c.float32('pos_y'),
            z=c.float32('pos_z'),
        ),
        velocity=Velocity(
            x=c.float32('velocity_x'),
            y=c.float32('velocity_y'),
            z=c.float32('velocity_z'),
        ),
    )


def new_game_over(ti: datetime, c: Captures) -> Message:
    return GameOver(
        time=ti,
        mode=c.text('mode'),
        map_group=c.text('map_group'),
        map=c.text('map'),
        score_ct=c.integer('score_ct'),
        score_t=c.integer('score_t'),
        duration=c.integer('duration'),
    )


def pattern_table(d: Dialect) -> List[Tuple[EventType, str, Builder, int]]:
    """Return ``(event_type, regex source, builder, group count)`` rows for a dialect."""
    player = d.player()
    attacker = d.player('attacker')
    victim = d.player('victim')

    return [
        (EventType.SERVER_MESSAGE,
         r'server_message: "(?P<text>\w+)"',
         new_server_message, 1),
        (EventType.FREEZ_TIME_START,
         r'Starting Freeze period',
         new_freez_time_start, 0),
        (EventType.WORLD_MATCH_START,
         r'World triggered "Match_Start" on "(?P<map>\w+)"',
         new_world_match_start, 1),
        (EventType.WORLD_ROUND_START,
         r'World triggered "Round_Start"',
         new_world_round_start, 0),
        (EventType.WORLD_ROUND_RESTART,
         r'World triggered "Restart_Round_\((?P<timeleft>\d+)_second\)"?',
         new_world_round_restart, 1),
        (EventType.WORLD_ROUND_END,
         r'World triggered "Round_End"',
         new_world_round_end, 0),
        (EventType.WORLD_GAME_COMMENCING,
         r'World triggered "Game_Commencing"',
         new_world_game_commencing, 0),
        (EventType.TEAM_SCORED,
         r'Team "(?P<side>CT|TERRORIST)" scored "(?P<score>\d+)" '
         r'with "(?P<num_players>\d+)" players',
         new_team_scored, 3),
        (EventType.TEAM_NOTICE,
         r'Team "(?P<side>CT|TERRORIST)" triggered "(?P<notice>\w+)" '
         r'\(CT "(?P<score_ct>\d+)"\) \(T "(?P<score_t>\d+)"\)',
         new_team_notice, 4),
        (EventType.PLAYER_CONNECTED,
         d.player(sides='') + r' connected, address "(?P<address>.*)"',
         new_player_connected, 5),
        (EventType.PLAYER_DISCONNECTED,
         d.player(sides=r'TERRORIST|CT|Unassigned|Spectator|')
         + r' disconnected \(reason "(?P<reason>.+)"\)',
         new_player_disconnected, 5),
        (EventType.PLAYER_ENTERED,
         d.player(sides='') + r' entered the game',
         new_player_entered, 4),
        (EventType.PLAYER_BANNED,
         r'Banid: ' + d.player(sides=r'\w*', capture_side=False)
         + r' was banned "(?P<duration>[\w. ]+)" by "(?P<by>\w+)"',
         new_player_banned, 5),
        (EventType.PLAYER_SWITCHED,
         d.player(sides=None)
         + f' switched from team <(?P<from>{TEAMS})> to <(?P<to>{TEAMS})>',
         new_player_switched, 5),
        (EventType.PLAYER_SAY,
         player + r' say(?P<team>_team)? "(?P<text>.*)"',
         new_player_say, 6),
        (EventType.PLAYER_PURCHASE,
         player + r' purchased "(?P<item>\w+)"',
         new_player_purchase, 5),
        (EventType.PLAYER_KILL,
         attacker + ' ' + position('attacker_pos') + ' killed '
         + victim + ' ' + position('victim_pos')
         + r' with "(?P<weapon>\w+)" ?'
         r'(?:\(?(?P<flags>headshot penetrated|headshot|penetrated)?\))?',
         new_player_kill, 16),
        (EventType.PLAYER_KILL_ASSIST,
         attacker + ' assisted killing ' + victim,
         new_player_kill_assist, 8),
        (EventType.PLAYER_ATTACK,
         attacker + ' ' + position('attacker_pos') + ' attacked '
         + victim + ' ' + position('victim_pos')
         + r' with "(?P<weapon>\w+)" \(damage "(?P<damage>\d+)"\)'
         r' \(damage_armor "(?P<damage_armor>\d+)"\)'
         r' \(health "(?P<health>\d+)"\) \(armor "(?P<armor>\d+)"\)'
         r' \(hitgroup "(?P<hitgroup>[\w ]+)"\)',
         new_player_attack, 20),
        (EventType.PLAYER_KILLED_BOMB,
         player + ' ' + position('pos') + r' was killed by the bomb\.',
         new_player_killed_bomb, 7),
        (EventType.PLAYER_KILLED_SUICIDE,
         player + ' ' + position('pos') + r' committed suicide with "(?P<with>.*)"',
         new_player_killed_suicide, 8),
        (EventType.PLAYER_PICKED_UP,
         player + r' picked up "(?P<item>\w+)"',
         new_player_picked_up, 5),
        (EventType.PLAYER_DROPPED,
         d.player(sides=r'TERRORIST|CT|Unassigned') + r' dropped "(?P<item>\w+)"',
         new_player_dropped, 5),
        (EventType.PLAYER_MONEY_CHANGE,
         player + r' money change (?P<a>\d+)\+?(?P<b>-?\d+) = \$(?P<result>\d+)'
         r' \(tracked\)(?: \(purchase: (?P<purchase>\w+)\))?',
         new_player_money_change, 8),
        (EventType.PLAYER_BOMB_GOT,
         player + r' triggered "Got_The_Bomb"',
         new_player_bomb_got, 4),
        (EventType.PLAYER_BOMB_PLANTED,
         player + r' triggered "Planted_The_Bomb"',
         new_player_bomb_planted, 4),
        (EventType.PLAYER_BOMB_DROPPED,
         player + r' triggered "Dropped_The_Bomb"',
         new_player_bomb_dropped, 4),
        (EventType.PLAYER_BOMB_BEGIN_DEFUSE,
         player + r' triggered "Begin_Bomb_Defuse_With(?P<without>out)?_Kit"',
         new_player_bomb_begin_defuse, 5),
        (EventType.PLAYER_BOMB_DEFUSED,
         player + r' triggered "Defused_The_Bomb"',
         new_player_bomb_defused, 4),
        (EventType.PLAYER_THREW,
         player + r' threw (?P<grenade>\w+) ' + position('pos')
         + r'(?: flashbang entindex (?P<entindex>\d+))?\)?',
         new_player_threw, 9),
        (EventType.PLAYER_BLINDED,
         victim + r' blinded for (?P<duration>[\d.]+) by ' + attacker
         + r' from flashbang entindex (?P<entindex>\d+)',
         new_player_blinded, 10),
        (EventType.PROJECTILE_SPAWNED,
         r'Molotov projectile spawned at ' + float_triple('pos')
         + ', velocity ' + float_triple('velocity'),
         new_projectile_spawned, 6),
        (EventType.GAME_OVER,
         r'Game Over: (?P<mode>\w+) (?P<map_group>\w+) (?P<map>\w+)'
         r' score (?P<score_ct>\d+):(?P<score_t>\d+) after (?P<duration>\d+) min',
         new_game_over, 6),
    ]


def build_catalog(dialect: str = DEFAULT_DIALECT) -> Tuple[PatternEntry, ...]:
    """Compile and validate the pattern catalog for a dialect.

    Args:
        dialect: Dialect name, one of DIALECTS

    Returns:
        Immutable ordered tuple of catalog entries

    Raises:
        CatalogError: If the dialect is unknown, a pattern does not compile,
            or a pattern's groups do not match what its builder reads
    """
    if dialect not in DIALECTS:
        raise CatalogError(f"Unknown dialect: {dialect}")

    entries = []
    for event_type, source, builder, group_count in pattern_table(DIALECTS[dialect]):
        try:
            regex = re.compile(source)
        except re.error as e:
            raise CatalogError(f"Invalid regex for {event_type.value}: {e}") from e

        if regex.groups != group_count:
            raise CatalogError(
                f"Pattern for {event_type.value} has {regex.groups} groups, "
                f"expected {group_count}"
            )
        if len(regex.groupindex) != regex.groups:
            raise CatalogError(f"Pattern for {event_type.value} has unnamed groups")

        entries.append(PatternEntry(event_type, regex, builder))

    logger.debug(f"Built {len(entries)} patterns for dialect '{dialect}'")
    return tuple(entries)


CATALOGS: Dict[str, Tuple[PatternEntry, ...]] = {
    name: build_catalog(name) for name in DIALECTS
}

DEFAULT_CATALOG = CATALOGS[DEFAULT_DIALECT]
