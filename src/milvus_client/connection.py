"""
Milvus Python Client - Connection Management

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
import time
from typing import Callable, Optional, Union

import grpc

from .config import ClientConfig, DEFAULT_CONFIG
from .exceptions import (
    AlreadyConnectedError,
    ConnectFailedError,
    ConnectTimeoutError,
    PortOutOfRangeError,
)
from .models import Response, Status
from .transport import ChannelHandle, ConnectivityState, Dispatcher

logger = logging.getLogger(__name__)

MAX_PORT = 0xFFFF

ChannelFactory = Callable[..., grpc.Channel]


class ConnectionManager:
    """
    Owns the single channel to the server.

    connect() and disconnect() are serialised with a lock. Operations only
    read the dispatcher, so sharing one manager between threads is safe for
    calls but a disconnect will not wait for calls issued after it started.
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        channel_factory: Optional[ChannelFactory] = None,
    ):
        self.config = config or DEFAULT_CONFIG
        self._channel_factory = channel_factory or grpc.insecure_channel
        self._handle: Optional[ChannelHandle] = None
        self._dispatcher: Optional[Dispatcher] = None
        self._lock = threading.Lock()

    @property
    def state(self) -> ConnectivityState:
        if self._handle is None:
            return ConnectivityState.NOT_CREATED
        return self._handle.state

    @property
    def target(self) -> Optional[str]:
        return self._handle.target if self._handle else None

    @property
    def dispatcher(self) -> Optional[Dispatcher]:
        return self._dispatcher

    def is_connected(self) -> bool:
        """True only while the channel reports READY.

        IDLE and TRANSIENT_FAILURE count as not connected even though grpc
        may recover from them on the next call.
        """
        return self._handle is not None and self._handle.state is ConnectivityState.READY

    def connect(self, host: str, port: Union[int, str], timeout_ms: int) -> Response:
        """Create the channel and wait until it is ready.

        Raises:
            AlreadyConnectedError: a channel exists that is not shut down
            PortOutOfRangeError: port outside [0, 65535]
            ConnectTimeoutError: channel not ready within timeout_ms
            ConnectFailedError: any other failure while setting up
        """
        with self._lock:
            if self._handle is not None and not (self._handle.is_shutdown or self._handle.is_terminated):
                logger.warning(f"Channel to {self._handle.target} is not shutdown or terminated")
                raise AlreadyConnectedError(self._handle.target)

            try:
                port_number = int(port)
            except (TypeError, ValueError) as e:
                logger.error(f"Connect failed! Invalid port {port!r}")
                raise ConnectFailedError(f"Exception occurred: {e}", cause=e) from e

            if not 0 <= port_number <= MAX_PORT:
                logger.error(f"Connect failed! Port {port_number} out of range")
                raise PortOutOfRangeError(port_number)

            target = f"{host}:{port_number}"
            try:
                channel = self._channel_factory(target, options=self.config.get_channel_options())
                handle = ChannelHandle(channel, target)
            except Exception as e:
                logger.error(f"Connect failed! {target}: {e}")
                raise ConnectFailedError(f"Exception occurred: {e}", cause=e) from e

            self._handle = handle
            self._dispatcher = None
            self._wait_until_ready(handle, timeout_ms)
            self._dispatcher = Dispatcher(handle)

        logger.info(f"Connected successfully to {target}")
        return Response(status=Status.SUCCESS)

    def _wait_until_ready(self, handle: ChannelHandle, timeout_ms: int) -> None:
        interval = self.config.poll_interval_ms
        remaining = timeout_ms
        logger.info(f"Trying to connect to {handle.target}... timeout in {timeout_ms} ms")

        while handle.state is not ConnectivityState.READY:
            if remaining <= 0:
                logger.error(f"Connect timeout! {handle.target} is {handle.state.value}")
                raise ConnectTimeoutError(handle.target, timeout_ms)
            time.sleep(interval / 1000.0)
            remaining -= interval

    def disconnect(self) -> Response:
        """Shut the channel down, waiting up to drain_timeout for in-flight calls"""
        with self._lock:
            if not self.is_connected():
                logger.warning("You are not connected to Milvus server")
                return Response(status=Status.CLIENT_NOT_CONNECTED)

            handle = self._handle
            handle.shutdown()
            self._dispatcher = None

            if handle.await_termination(self.config.drain_timeout):
                logger.info(f"Channel to {handle.target} terminated")
                return Response(status=Status.SUCCESS)

        logger.error(
            f"Channel to {handle.target} still has {handle.in_flight} calls "
            f"after {self.config.drain_timeout}s; it closes when they finish"
        )
        return Response(
            status=Status.SHUTDOWN_TIMEOUT,
            message=f"Channel not terminated after {self.config.drain_timeout}s",
        )
