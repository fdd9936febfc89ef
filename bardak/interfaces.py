"""Interfaces shared between the server and its modules."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from enum import IntEnum
from functools import cached_property
from typing import Any, Optional, TypeVar

from .binmsg import RawMessage

LogFunc = Callable[[str], None]


class _Subscription:
    """Handle returned by Event.subscribe, used to unsubscribe later."""

    __slots__ = ("callback",)

    def __init__(self, callback: Callable[..., None]):
        self.callback = callback

    def __repr__(self) -> str:
        return f"<subscription {self.callback!r}>"


class Event:
    """A list of callbacks, all called in subscription order on emit."""

    def __init__(self):
        self._subscriptions: dict[_Subscription, Callable[..., None]] = {}

    def subscribe(self, callback: Callable[..., None]) -> _Subscription:
        """Add a callback; return a handle for unsubscribing it."""
        sub = _Subscription(callback)
        self._subscriptions[sub] = callback
        return sub

    def unsubscribe(self, subscription: _Subscription) -> None:
        """Remove a callback; ValueError if the handle is not subscribed."""
        try:
            del self._subscriptions[subscription]
        except KeyError:
            raise ValueError(f"{subscription!r} is not subscribed") from None

    def emit(self, *args: Any) -> int:
        """Call every callback with ``args``; return the number of subscriptions."""
        for callback in list(self._subscriptions.values()):
            callback(*args)
        return len(self._subscriptions)

    def subscriptions(self) -> list[Callable[..., None]]:
        """Subscribed callbacks, in subscription order."""
        return list(self._subscriptions.values())

    def __len__(self) -> int:
        return len(self._subscriptions)


class BmClient(ABC):
    """A connected client, as seen by modules."""

    id: int

    @abstractmethod
    def send_raw(self, data: bytes) -> None:
        """Send an already encoded message."""

    def next_msg_id(self) -> int:
        """Id for the next message sent to this client."""
        return 0

    def send(self, codec: Any, values: Optional[Mapping[str, Any]] = None, flags: int = 0) -> None:
        """Encode ``values`` with ``codec`` and send the result."""
        data = codec.encode(values or {}, self.next_msg_id(), flags)
        self.send_raw(data)


class BmServer(ABC):
    """The server, as seen by modules."""

    @abstractmethod
    def register_prefix(self, prefix: str, mod: BmServerModule) -> bool:
        """Become the only module responsible for ``prefix``; False if taken."""

    @abstractmethod
    def listen_prefix(self, prefix: str, mod: BmServerModule) -> None:
        """Observe messages with ``prefix`` without owning it."""

    @abstractmethod
    def listen_all(self, mod: BmServerModule) -> None:
        """Observe every incoming message."""

    @abstractmethod
    def for_all_clients(self, callback: Callable[[BmClient], None]) -> None:
        """Call ``callback`` for every connected client."""


class BmServerModule(ABC):
    """A module that takes part in networking.

    The default hooks remember the server and pass connections, disconnections
    and messages on to the ``connected``, ``disconnected`` and ``messages``
    events, which have no subscribers unless someone adds them.
    """

    server: Optional[BmServer] = None

    @cached_property
    def connected(self) -> Event:
        """Emitted with the client when a client connects."""
        return Event()

    @cached_property
    def disconnected(self) -> Event:
        """Emitted with the client when a client disconnects."""
        return Event()

    @cached_property
    def messages(self) -> Event:
        """Emitted with the client and the message when a message arrives."""
        return Event()

    def on_setup(self, server: BmServer) -> None:
        """The server is starting; register prefixes here."""
        self.server = server

    def on_connect(self, client: BmClient) -> None:
        """A client connected."""
        self.connected.emit(client)

    def on_disconnect(self, client: BmClient) -> None:
        """A client disconnected."""
        self.disconnected.emit(client)

    def on_message(self, client: BmClient, msg: RawMessage) -> None:
        """A client sent a message."""
        self.messages.emit(client, msg)


class TimerStage(IntEnum):
    ON_UPDATE = 0
    ON_UPDATE_DONE = 1


class TimerType(IntEnum):
    COUNTDOWN = 0
    CYCLE = 1


class Timer(ABC):
    """Tick-driven timers."""

    @abstractmethod
    def set_timer(
        self,
        delay: int,
        callback: Callable[[], None],
        stage: TimerStage = TimerStage.ON_UPDATE,
        kind: TimerType = TimerType.COUNTDOWN,
    ) -> int:
        """Schedule ``callback`` after ``delay`` ticks; return the timer id."""

    @abstractmethod
    def cancel_timer(self, timer_id: int) -> None:
        """Cancel a scheduled timer."""

    @abstractmethod
    def tick(self) -> int:
        """Advance one tick; return how many timers fired."""


@dataclass(frozen=True)
class Vec2i:
    x: int = 0
    y: int = 0


class TileType(IntEnum):
    GROUND = 0
    WALL = 1


class Unit(ABC):
    """Something standing on a map tile."""

    @property
    @abstractmethod
    def map(self) -> Map: ...

    @property
    @abstractmethod
    def tile(self) -> Tile: ...

    @property
    @abstractmethod
    def id(self) -> int: ...

    @property
    @abstractmethod
    def type(self) -> int: ...

    @property
    @abstractmethod
    def team_id(self) -> int: ...

    @property
    @abstractmethod
    def hp(self) -> int: ...

    @property
    @abstractmethod
    def max_hp(self) -> int: ...

    @abstractmethod
    def take_damage(self, damage: int) -> None: ...

    @abstractmethod
    def pick_up(self) -> None: ...

    @property
    @abstractmethod
    def weight(self) -> int: ...

    @property
    @abstractmethod
    def pos(self) -> Vec2i: ...

    @property
    @abstractmethod
    def asset_id(self) -> int: ...

    def move(self, to: Vec2i) -> None:
        """Move this unit to another tile of its map."""
        self.map._move_unit(self, to)

    def destroy(self) -> None:
        """Remove this unit from its map."""
        self.map._remove_unit(self)


class Tile(ABC):
    """One cell of a map."""

    @property
    @abstractmethod
    def pos(self) -> Vec2i: ...

    @property
    @abstractmethod
    def units(self) -> list[Unit]: ...

    @property
    @abstractmethod
    def type(self) -> int: ...


U = TypeVar("U", bound=Unit)


class Map(ABC):
    """A grid of tiles holding units."""

    _last_id: int = 0

    @abstractmethod
    def _add_unit(self, pos: Vec2i, unit: Unit) -> Unit: ...

    @abstractmethod
    def _move_unit(self, unit: Unit, pos: Vec2i) -> None: ...

    @abstractmethod
    def _remove_unit(self, unit: Unit) -> None: ...

    def spawn(self, unit_class: type[U], pos: Vec2i, *args: Any) -> U:
        """Create ``unit_class(map, pos, id, *args)`` with a fresh id and place it."""
        unit = unit_class(self, pos, self._last_id, *args)
        self._last_id += 1
        return self._add_unit(pos, unit)

    @abstractmethod
    def set_tile_type(self, pos: Vec2i, tile_type: int) -> None: ...

    @abstractmethod
    def load_from_file(self, path: str) -> bool: ...

    @abstractmethod
    def by_id(self, unit_id: int) -> Optional[Unit]: ...

    @property
    @abstractmethod
    def size(self) -> Vec2i: ...

    @abstractmethod
    def at(self, pos: Vec2i) -> Optional[Tile]: ...


@dataclass(frozen=True)
class ClientRoleInfo:
    id: str
    name: str
    prefix: str


class RoleMgr(BmServerModule):
    """Keeps track of which role each client plays."""

    @abstractmethod
    def register_role(
        self,
        role_id: str,
        name: str,
        prefix: str,
        on_selected: Callable[[BmClient], None],
    ) -> bool: ...

    @abstractmethod
    def role_of(self, client: BmClient) -> str: ...

    @abstractmethod
    def client_has_role(self, client: BmClient, role_id: str) -> bool: ...

    @abstractmethod
    def select_role(self, client: BmClient, role_id: str) -> bool: ...

    @abstractmethod
    def roles(self) -> Iterator[ClientRoleInfo]: ...


class LogStream:
    """Collects text and hands it to a sink in one piece when closed."""

    def __init__(self, sink: Optional[LogFunc]):
        self._sink = sink
        self._parts: list[str] = []

    @property
    def closed(self) -> bool:
        return self._sink is None

    def write(self, text: str) -> int:
        """Append text; return the number of characters written."""
        if self._sink is None:
            raise ValueError("write to a closed log stream")
        text = str(text)
        self._parts.append(text)
        return len(text)

    def close(self) -> None:
        """Pass the collected text to the sink; later calls do nothing."""
        sink, self._sink = self._sink, None
        if sink is not None:
            sink("".join(self._parts))
        self._parts.clear()

    def __enter__(self) -> LogStream:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()