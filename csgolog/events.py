"""
Event definitions for csgolog - typed messages parsed from server log lines.

Every message kind is a frozen dataclass bound to exactly one EventType.
The JSON form of a message is an object holding ``time`` and ``type``
followed by the message's own fields in declaration order.
"""

import json
from enum import Enum
from dataclasses import dataclass, field, fields, is_dataclass
from datetime import datetime, timezone
from typing import Dict, Any, ClassVar, Optional, Type

from .coerce import format_float32

TIME_FORMAT = '%Y-%m-%dT%H:%M:%SZ'


class EventType(Enum):
    """Counter-Strike server log message kinds."""

    # Server events
    SERVER_MESSAGE = "ServerMessage"
    FREEZ_TIME_START = "FreezTimeStart"

    # World events
    WORLD_MATCH_START = "WorldMatchStart"
    WORLD_ROUND_START = "WorldRoundStart"
    WORLD_ROUND_RESTART = "WorldRoundRestart"
    WORLD_ROUND_END = "WorldRoundEnd"
    WORLD_GAME_COMMENCING = "WorldGameCommencing"

    # Team events
    TEAM_SCORED = "TeamScored"
    TEAM_NOTICE = "TeamNotice"

    # Player session events
    PLAYER_CONNECTED = "PlayerConnected"
    PLAYER_DISCONNECTED = "PlayerDisconnected"
    PLAYER_ENTERED = "PlayerEntered"
    PLAYER_BANNED = "PlayerBanned"
    PLAYER_SWITCHED = "PlayerSwitched"
    PLAYER_SAY = "PlayerSay"

    # Combat events
    PLAYER_KILL = "PlayerKill"
    PLAYER_KILL_ASSIST = "PlayerKillAssist"
    PLAYER_ATTACK = "PlayerAttack"
    PLAYER_KILLED_BOMB = "PlayerKilledBomb"
    PLAYER_KILLED_SUICIDE = "PlayerKilledSuicide"
    PLAYER_BLINDED = "PlayerBlinded"

    # Item events
    PLAYER_PURCHASE = "PlayerPurchase"
    PLAYER_PICKED_UP = "PlayerPickedUp"
    PLAYER_DROPPED = "PlayerDropped"
    PLAYER_MONEY_CHANGE = "PlayerMoneyChange"
    PLAYER_THREW = "PlayerThrew"
    PROJECTILE_SPAWNED = "ProjectileSpawned"

    # Bomb events
    PLAYER_BOMB_GOT = "PlayerBombGot"
    PLAYER_BOMB_PLANTED = "PlayerBombPlanted"
    PLAYER_BOMB_DROPPED = "PlayerBombDropped"
    PLAYER_BOMB_BEGIN_DEFUSE = "PlayerBombBeginDefuse"
    PLAYER_BOMB_DEFUSED = "PlayerBombDefused"

    # Game events
    GAME_OVER = "GameOver"

    # Well-formed line that no pattern recognizes
    UNKNOWN = "Unknown"


def _key(name: str):
    """Dataclass field serialized under a JSON key other than its attribute name."""
    return field(metadata={'json': name})


@dataclass(frozen=True)
class Player:
    """A player as identified in a log line."""

    name: str
    id: int
    steam_id: str
    side: str = ""


@dataclass(frozen=True)
class Position:
    x: int
    y: int
    z: int


@dataclass(frozen=True)
class PositionFloat:
    x: float
    y: float
    z: float


@dataclass(frozen=True)
class Velocity:
    x: float
    y: float
    z: float


@dataclass(frozen=True)
class Equation:
    """Money change in the form ``a + b = result``; ``b`` is negative for spending."""

    a: int
    b: int
    result: int


MESSAGE_CLASSES: Dict[EventType, Type['Message']] = {}


@dataclass(frozen=True)
class Message:
    """Base for all parsed log messages."""

    time: datetime

    event_type: ClassVar[EventType]

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        event_type = cls.__dict__.get('event_type')
        if event_type is None:
            return
        if event_type in MESSAGE_CLASSES:
            raise TypeError(
                f"{cls.__name__} duplicates event type {event_type.value} "
                f"already bound to {MESSAGE_CLASSES[event_type].__name__}"
            )
        MESSAGE_CLASSES[event_type] = cls

    @property
    def type(self) -> str:
        """Kind tag of this message."""
        return self.event_type.value

    def to_dict(self) -> Dict[str, Any]:
        """Convert message to a JSON-serializable, ordered dictionary.

        Returns:
            Dictionary with ``time`` and ``type`` first, then message fields
        """
        data = {
            'time': format_time(self.time),
            'type': self.type,
        }
        for f in fields(self):
            if f.name == 'time':
                continue
            data[f.metadata.get('json', f.name)] = _serialize(getattr(self, f.name))
        return data

    def to_json(self, indent: Optional[int] = None) -> str:
        """Convert message to JSON text."""
        return to_json(self, indent=indent)

    def __str__(self) -> str:
        """String representation of the message."""
        values = ", ".join(
            f"{k}={v}" for k, v in self.to_dict().items() if k not in ('time', 'type')
        )
        return f"{self.type}({values})"


def format_time(value: datetime) -> str:
    """Render a timestamp as RFC3339 UTC (``2018-11-05T15:44:36Z``)."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime(TIME_FORMAT)


def _serialize(value: Any) -> Any:
    if is_dataclass(value):
        return {
            f.metadata.get('json', f.name): _serialize(getattr(value, f.name))
            for f in fields(value)
        }
    if isinstance(value, float):
        return format_float32(value)
    return value


def to_json(message: Optional[Message], indent: Optional[int] = None) -> str:
    """Serialize a message to JSON without escaping HTML characters.

    Player names and chat text are embedded verbatim, so ``<``, ``>`` and
    ``&`` are kept as-is and non-ASCII characters are not escaped.

    Args:
        message: Message to serialize, or None
        indent: Optional indentation level

    Returns:
        JSON text; ``null`` for None
    """
    if message is None:
        return json.dumps(None)
    return json.dumps(message.to_dict(), ensure_ascii=False, indent=indent)


@dataclass(frozen=True)
class ServerMessage(Message):
    event_type: ClassVar[EventType] = EventType.SERVER_MESSAGE
    text: str


@dataclass(frozen=True)
class FreezTimeStart(Message):
    """Freeze period before each round."""
    event_type: ClassVar[EventType] = EventType.FREEZ_TIME_START


@dataclass(frozen=True)
class WorldMatchStart(Message):
    event_type: ClassVar[EventType] = EventType.WORLD_MATCH_START
    map: str


@dataclass(frozen=True)
class WorldRoundStart(Message):
    event_type: ClassVar[EventType] = EventType.WORLD_ROUND_START


@dataclass(frozen=True)
class WorldRoundRestart(Message):
    """Server restarts the round after ``timeleft`` seconds."""
    event_type: ClassVar[EventType] = EventType.WORLD_ROUND_RESTART
    timeleft: int


@dataclass(frozen=True)
class WorldRoundEnd(Message):
    event_type: ClassVar[EventType] = EventType.WORLD_ROUND_END


@dataclass(frozen=True)
class WorldGameCommencing(Message):
    event_type: ClassVar[EventType] = EventType.WORLD_GAME_COMMENCING


@dataclass(frozen=True)
class TeamScored(Message):
    """Score of one team, logged at the end of each round."""
    event_type: ClassVar[EventType] = EventType.TEAM_SCORED
    side: str
    score: int
    num_players: int


@dataclass(frozen=True)
class TeamNotice(Message):
    """Round winner notice with both team scores."""
    event_type: ClassVar[EventType] = EventType.TEAM_NOTICE
    side: str
    notice: str
    score_ct: int
    score_t: int


@dataclass(frozen=True)
class PlayerConnected(Message):
    event_type: ClassVar[EventType] = EventType.PLAYER_CONNECTED
    player: Player
    address: str


@dataclass(frozen=True)
class PlayerDisconnected(Message):
    event_type: ClassVar[EventType] = EventType.PLAYER_DISCONNECTED
    player: Player
    reason: str


@dataclass(frozen=True)
class PlayerEntered(Message):
    event_type: ClassVar[EventType] = EventType.PLAYER_ENTERED
    player: Player


@dataclass(frozen=True)
class PlayerBanned(Message):
    event_type: ClassVar[EventType] = EventType.PLAYER_BANNED
    player: Player
    duration: str
    by: str


@dataclass(frozen=True)
class PlayerSwitched(Message):
    event_type: ClassVar[EventType] = EventType.PLAYER_SWITCHED
    player: Player
    from_side: str = _key('from')
    to_side: str = _key('to')


@dataclass(frozen=True)
class PlayerSay(Message):
    """Chat message; ``team`` is set for team-only chat."""
    event_type: ClassVar[EventType] = EventType.PLAYER_SAY
    player: Player
    text: str
    team: bool


@dataclass(frozen=True)
class PlayerPurchase(Message):
    event_type: ClassVar[EventType] = EventType.PLAYER_PURCHASE
    player: Player
    item: str


@dataclass(frozen=True)
class PlayerKill(Message):
    event_type: ClassVar[EventType] = EventType.PLAYER_KILL
    attacker: Player
    attacker_position: Position = _key('attacker_pos')
    victim: Player = _key('victim')
    victim_position: Position = _key('victim_pos')
    weapon: str = _key('weapon')
    headshot: bool = _key('headshot')
    penetrated: bool = _key('penetrated')


@dataclass(frozen=True)
class PlayerKillAssist(Message):
    event_type: ClassVar[EventType] = EventType.PLAYER_KILL_ASSIST
    attacker: Player
    victim: Player


@dataclass(frozen=True)
class PlayerAttack(Message):
    event_type: ClassVar[EventType] = EventType.PLAYER_ATTACK
    attacker: Player
    attacker_position: Position = _key('attacker_pos')
    victim: Player = _key('victim')
    victim_position: Position = _key('victim_pos')
    weapon: str = _key('weapon')
    damage: int = _key('damage')
    damage_armor: int = _key('damage_armor')
    health: int = _key('health')
    armor: int = _key('armor')
    hitgroup: str = _key('hitgroup')


@dataclass(frozen=True)
class PlayerKilledBomb(Message):
    event_type: ClassVar[EventType] = EventType.PLAYER_KILLED_BOMB
    player: Player
    position: Position = _key('pos')


@dataclass(frozen=True)
class PlayerKilledSuicide(Message):
    event_type: ClassVar[EventType] = EventType.PLAYER_KILLED_SUICIDE
    player: Player
    position: Position = _key('pos')
    with_: str = _key('with')


@dataclass(frozen=True)
class PlayerPickedUp(Message):
    event_type: ClassVar[EventType] = EventType.PLAYER_PICKED_UP
    player: Player
    item: str


@dataclass(frozen=True)
class PlayerDropped(Message):
    event_type: ClassVar[EventType] = EventType.PLAYER_DROPPED
    player: Player
    item: str


@dataclass(frozen=True)
class PlayerMoneyChange(Message):
    """Money received or spent; ``purchase`` is empty unless an item was bought."""
    event_type: ClassVar[EventType] = EventType.PLAYER_MONEY_CHANGE
    player: Player
    equation: Equation
    purchase: str


@dataclass(frozen=True)
class PlayerBombGot(Message):
    event_type: ClassVar[EventType] = EventType.PLAYER_BOMB_GOT
    player: Player


@dataclass(frozen=True)
class PlayerBombPlanted(Message):
    event_type: ClassVar[EventType] = EventType.PLAYER_BOMB_PLANTED
    player: Player


@dataclass(frozen=True)
class PlayerBombDropped(Message):
    event_type: ClassVar[EventType] = EventType.PLAYER_BOMB_DROPPED
    player: Player


@dataclass(frozen=True)
class PlayerBombBeginDefuse(Message):
    event_type: ClassVar[EventType] = EventType.PLAYER_BOMB_BEGIN_DEFUSE
    player: Player
    kit: bool


@dataclass(frozen=True)
class PlayerBombDefused(Message):
    event_type: ClassVar[EventType] = EventType.PLAYER_BOMB_DEFUSED
    player: Player


@dataclass(frozen=True)
class PlayerThrew(Message):
    """Grenade thrown; ``entindex`` is 0 unless the grenade is a flashbang."""
    event_type: ClassVar[EventType] = EventType.PLAYER_THREW
    player: Player
    position: Position = _key('pos')
    entindex: int = _key('entindex')
    grenade: str = _key('grenade')


@dataclass(frozen=True)
class PlayerBlinded(Message):
    event_type: ClassVar[EventType] = EventType.PLAYER_BLINDED
    attacker: Player
    victim: Player
    for_: float = _key('for')
    entindex: int = _key('entindex')


@dataclass(frozen=True)
class ProjectileSpawned(Message):
    """Molotov projectile spawn point and initial velocity."""
    event_type: ClassVar[EventType] = EventType.PROJECTILE_SPAWNED
    position: PositionFloat = _key('pos')
    velocity: Velocity = _key('velocity')


@dataclass(frozen=True)
class GameOver(Message):
    """Final result; ``duration`` is in minutes."""
    event_type: ClassVar[EventType] = EventType.GAME_OVER
    mode: str
    map_group: str
    map: str
    score_ct: int
    score_t: int
    duration: int


@dataclass(frozen=True)
class Unknown(Message):
    """Well-formed log line whose body matches no known pattern."""
    event_type: ClassVar[EventType] = EventType.UNKNOWN
    raw: str
