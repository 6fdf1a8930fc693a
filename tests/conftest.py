"""
Milvus Python SDK Test Configuration
Shared fixtures: a fake grpc channel that routes calls to an in-memory service
"""

import os
import sys
from typing import Any, Callable, Dict, List, Tuple

import grpc
import pytest

# Add the SDK source to the path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from milvus_client import protocol as pb2
from milvus_client.client import MilvusClient
from milvus_client.config import ClientConfig


class FakeRpcError(grpc.RpcError):
    """grpc.RpcError carrying a status code, like the one grpc raises for failed calls"""

    def __init__(self, code: grpc.StatusCode, details: str):
        super().__init__(details)
        self._code = code
        self._details = details

    def code(self) -> grpc.StatusCode:
        return self._code

    def details(self) -> str:
        return self._details


class FakeService:
    """Records requests and answers them from per-method handlers"""

    def __init__(self):
        self.handlers: Dict[str, Callable[[Any], Any]] = {}
        self.calls: List[Tuple[str, Any]] = []

    def reply_with(self, method_name: str, reply) -> None:
        self.handlers[method_name] = lambda request: reply

    def handle_with(self, method_name: str, handler: Callable[[Any], Any]) -> None:
        self.handlers[method_name] = handler

    def fail_with(self, method_name: str, code: grpc.StatusCode, details: str) -> None:
        def handler(request):
            raise FakeRpcError(code, details)
        self.handlers[method_name] = handler

    def requests(self, method_name: str) -> List[Any]:
        return [request for name, request in self.calls if name == method_name]

    def handle(self, method_name: str, request):
        self.calls.append((method_name, request))
        if method_name in self.handlers:
            return self.handlers[method_name](request)
        # zero-valued reply has error_code SUCCESS
        _, reply_cls = pb2.METHODS[method_name]
        return reply_cls()


class FakeChannel:
    """Stands in for grpc.Channel; serializes both ways so wire encoding is exercised"""

    def __init__(self, service: FakeService, target: str = "", options=None,
                 connectivity: grpc.ChannelConnectivity = grpc.ChannelConnectivity.READY):
        self.service = service
        self.target = target
        self.options = options
        self.connectivity = connectivity
        self.callbacks: List[Callable] = []
        self.closed = False

    def subscribe(self, callback, try_to_connect=False):
        self.callbacks.append(callback)
        callback(self.connectivity)

    def unsubscribe(self, callback):
        self.callbacks.remove(callback)

    def set_connectivity(self, connectivity: grpc.ChannelConnectivity) -> None:
        self.connectivity = connectivity
        for callback in list(self.callbacks):
            callback(connectivity)

    def unary_unary(self, method, request_serializer=None, response_deserializer=None, **kwargs):
        method_name = method.rsplit("/", 1)[-1]
        request_cls, _ = pb2.METHODS[method_name]

        def call(request, timeout=None, metadata=None, **call_kwargs):
            if self.closed:
                raise ValueError("Cannot invoke RPC on closed channel!")
            decoded = request_cls.FromString(request_serializer(request))
            reply = self.service.handle(method_name, decoded)
            return response_deserializer(reply.SerializeToString())

        return call

    def close(self):
        self.closed = True


class FakeChannelFactory:
    """Callable(target, options=...) that hands out FakeChannels"""

    def __init__(self, service: FakeService,
                 connectivity: grpc.ChannelConnectivity = grpc.ChannelConnectivity.READY):
        self.service = service
        self.connectivity = connectivity
        self.created: List[FakeChannel] = []

    def __call__(self, target, options=None):
        channel = FakeChannel(self.service, target, options, connectivity=self.connectivity)
        self.created.append(channel)
        return channel

    @property
    def last(self) -> FakeChannel:
        return self.created[-1]


@pytest.fixture
def fake_service() -> FakeService:
    return FakeService()


@pytest.fixture
def channel_factory(fake_service) -> FakeChannelFactory:
    return FakeChannelFactory(fake_service)


@pytest.fixture
def test_config() -> ClientConfig:
    """Short timeouts so connect/disconnect tests stay fast"""
    return ClientConfig(
        host="localhost",
        port=19530,
        connect_timeout_ms=200,
        poll_interval_ms=10,
        drain_timeout=0.5,
    )


@pytest.fixture
def client(test_config, channel_factory) -> MilvusClient:
    """Connected client backed by the fake service"""
    milvus = MilvusClient(config=test_config, channel_factory=channel_factory)
    milvus.connect()
    yield milvus
    if milvus.is_connected():
        milvus.disconnect()


@pytest.fixture
def disconnected_client(test_config, channel_factory) -> MilvusClient:
    return MilvusClient(config=test_config, channel_factory=channel_factory)
