"""
Milvus Python Client - gRPC Transport

Channel handle with connectivity tracking and a bounded drain on shutdown,
plus the dispatcher that turns each unary call into an explicit outcome
value instead of letting transport faults escape as exceptions.

Copyright 2025 Milvus Client Contributors

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at

    http://www.apache.org/licenses/LICENSE-2.0

Unless required by applicable law or agreed to in writing, software
distributed under the License is distributed on an "AS IS" BASIS,
WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
See the License for the specific language governing permissions and
limitations under the License.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterator, Optional

import grpc

from . import protocol as pb2

logger = logging.getLogger(__name__)


class ConnectivityState(str, Enum):
    """Connectivity of the single managed channel"""
    NOT_CREATED = "not_created"
    IDLE = "idle"
    CONNECTING = "connecting"
    READY = "ready"
    TRANSIENT_FAILURE = "transient_failure"
    SHUTDOWN = "shutdown"
    TERMINATED = "terminated"


_GRPC_STATES = {
    grpc.ChannelConnectivity.IDLE: ConnectivityState.IDLE,
    grpc.ChannelConnectivity.CONNECTING: ConnectivityState.CONNECTING,
    grpc.ChannelConnectivity.READY: ConnectivityState.READY,
    grpc.ChannelConnectivity.TRANSIENT_FAILURE: ConnectivityState.TRANSIENT_FAILURE,
    grpc.ChannelConnectivity.SHUTDOWN: ConnectivityState.SHUTDOWN,
}


class ChannelHandle:
    """
    Wraps a grpc.Channel and records the latest connectivity it reports.

    grpc pushes connectivity changes to a subscriber; the handle keeps the
    most recent one so callers can poll it without blocking. In-flight calls
    are counted so shutdown can wait for them to drain.
    """

    def __init__(self, channel: grpc.Channel, target: str):
        self.target = target
        self._channel = channel
        self._state = ConnectivityState.IDLE
        self._in_flight = 0
        self._shutdown = False
        self._terminated = False
        self._cond = threading.Condition()
        self._channel.subscribe(self._on_connectivity_change, try_to_connect=True)

    def _on_connectivity_change(self, connectivity: grpc.ChannelConnectivity) -> None:
        with self._cond:
            if self._shutdown:
                return
            self._state = _GRPC_STATES.get(connectivity, ConnectivityState.IDLE)
        logger.debug(f"Channel {self.target} is {connectivity.name}")

    @property
    def state(self) -> ConnectivityState:
        if self._terminated:
            return ConnectivityState.TERMINATED
        if self._shutdown:
            return ConnectivityState.SHUTDOWN
        return self._state

    @property
    def is_shutdown(self) -> bool:
        return self._shutdown

    @property
    def is_terminated(self) -> bool:
        return self._terminated

    @property
    def in_flight(self) -> int:
        return self._in_flight

    def unary_unary(self, method: str, request_serializer: Callable, response_deserializer: Callable):
        return self._channel.unary_unary(
            method,
            request_serializer=request_serializer,
            response_deserializer=response_deserializer,
        )

    @contextmanager
    def track_call(self) -> Iterator[bool]:
        """Count a call as in flight; yields False once the handle is shut down.

        Admission is decided under the same lock shutdown takes, so no call
        starts on a channel that is being drained. The last call to leave a
        shut down handle closes the channel.
        """
        with self._cond:
            admitted = not self._shutdown
            if admitted:
                self._in_flight += 1
        try:
            yield admitted
        finally:
            if admitted:
                with self._cond:
                    self._in_flight -= 1
                    self._cond.notify_all()
                    if self._shutdown and self._in_flight == 0:
                        self._close_locked()

    def _close_locked(self) -> None:
        if self._terminated:
            return
        self._channel.close()
        self._terminated = True
        logger.debug(f"Channel {self.target} closed")

    def shutdown(self) -> None:
        """Stop tracking connectivity; new calls are no longer admitted"""
        with self._cond:
            if self._shutdown:
                return
            self._shutdown = True
        self._channel.unsubscribe(self._on_connectivity_change)

    def await_termination(self, timeout: float) -> bool:
        """Wait up to ``timeout`` seconds for in-flight calls, then close.

        Returns False if calls were still running when the wait ran out. The
        channel stays open for them and is closed when the last one finishes.
        """
        with self._cond:
            drained = self._cond.wait_for(lambda: self._in_flight == 0, timeout=timeout)
            if drained:
                self._close_locked()
        return drained


@dataclass(frozen=True)
class TransportFault:
    """A call-level failure reported by grpc"""
    code: Optional[grpc.StatusCode]
    details: str

    @classmethod
    def from_rpc_error(cls, error: grpc.RpcError) -> "TransportFault":
        code = error.code() if callable(getattr(error, "code", None)) else None
        details = error.details() if callable(getattr(error, "details", None)) else None
        return cls(code=code, details=details or str(error))

    def describe(self) -> str:
        name = self.code.name if self.code is not None else "UNKNOWN"
        if self.details:
            return f"{name}: {self.details}"
        return name

    def __str__(self) -> str:
        return self.describe()


@dataclass(frozen=True)
class CallOutcome:
    """Either a reply message or a transport fault, never both"""
    reply: Any = None
    fault: Optional[TransportFault] = None

    @property
    def ok(self) -> bool:
        return self.fault is None


class Dispatcher:
    """Blocking unary calls bound to one channel"""

    def __init__(self, handle: ChannelHandle):
        self._handle = handle
        self._calls: Dict[str, Callable] = {
            method_name: handle.unary_unary(
                pb2.method_path(method_name),
                request_serializer=request_cls.SerializeToString,
                response_deserializer=reply_cls.FromString,
            )
            for method_name, (request_cls, reply_cls) in pb2.METHODS.items()
        }

    def call(self, method_name: str, request) -> Optional[CallOutcome]:
        """Issue one call and wait for its reply; no client-side deadline.

        Returns None when the handle was shut down before the call started.
        """
        with self._handle.track_call() as admitted:
            if not admitted:
                logger.debug(f"{method_name} not issued, channel {self._handle.target} is shut down")
                return None
            try:
                reply = self._calls[method_name](request)
            except grpc.RpcError as e:
                return CallOutcome(fault=TransportFault.from_rpc_error(e))
            except ValueError as e:
                # grpc raises ValueError for a channel closed underneath the call
                return CallOutcome(fault=TransportFault(code=None, details=str(e)))
        return CallOutcome(reply=reply)
