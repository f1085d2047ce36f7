"""Channel transports used by the score sync client.

A transport only moves messages. Replies and broadcasts are handed to the
callbacks it is given, possibly from a background thread.
"""

import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional, Tuple

import socketio
from socketio import exceptions as sio_exceptions

from minigame.errors import NotConnectedError
from minigame.messages import JOIN_GAME, LEAVE_GAME

logger = logging.getLogger(__name__)

Reply = Callable[[Dict[str, Any]], None]
Handler = Callable[[Dict[str, Any]], None]


class ChannelTransport(ABC):
    @abstractmethod
    def join(self, topic: str, reply: Reply) -> None:
        ...

    @abstractmethod
    def leave(self, topic: str) -> None:
        ...

    @abstractmethod
    def push(self, topic: str, event: str, payload: Dict[str, Any], reply: Reply) -> None:
        """Send ``payload`` to the topic. Raise NotConnectedError if the link is down."""

    @abstractmethod
    def subscribe(self, topic: str, event: str, handler: Handler) -> None:
        ...


class SocketIOTransport(ChannelTransport):
    """Transport over a python-socketio client talking to the /ws namespace."""

    def __init__(self, url: str, namespace: str = '/ws', client: Optional[socketio.Client] = None,
                 headers: Optional[Dict[str, str]] = None):
        self.url = url
        self.namespace = namespace
        self.headers = headers or {}
        self.sio = client or socketio.Client(reconnection=False)
        self._handlers: Dict[Tuple[str, str], List[Handler]] = defaultdict(list)
        self._registered_events = set()

    def connect(self) -> None:
        if self.sio.connected:
            return
        try:
            self.sio.connect(self.url, namespaces=[self.namespace], headers=self.headers)
        except sio_exceptions.ConnectionError as exc:
            raise NotConnectedError(f"could not reach {self.url}: {exc}") from exc

    def disconnect(self) -> None:
        if self.sio.connected:
            self.sio.disconnect()

    def join(self, topic: str, reply: Reply) -> None:
        self._emit(JOIN_GAME, {'topic': topic}, callback=reply)

    def leave(self, topic: str) -> None:
        try:
            self._emit(LEAVE_GAME, {'topic': topic})
        except NotConnectedError:
            logger.debug(f"[leave-skipped] topic={topic} link already down")

    def push(self, topic: str, event: str, payload: Dict[str, Any], reply: Reply) -> None:
        self._emit(event, (topic, payload), callback=reply)

    def subscribe(self, topic: str, event: str, handler: Handler) -> None:
        self._handlers[(topic, event)].append(handler)
        if event in self._registered_events:
            return
        self._registered_events.add(event)

        def _dispatch(msg_topic, payload=None):
            for h in list(self._handlers.get((msg_topic, event), ())):
                h(payload or {})

        self.sio.on(event, handler=_dispatch, namespace=self.namespace)

    def _emit(self, event, data, callback=None):
        try:
            self.sio.emit(event, data, namespace=self.namespace, callback=callback)
        except sio_exceptions.SocketIOError as exc:
            raise NotConnectedError(f"cannot emit {event}: {exc}") from exc
