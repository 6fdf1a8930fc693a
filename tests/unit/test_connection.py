"""
Unit tests for the connection lifecycle.
Covers connect validation, ready polling, strict readiness and disconnect.
"""

import threading
import time

import grpc
import pytest

from milvus_client.config import ClientConfig
from milvus_client.connection import ConnectionManager
from milvus_client.exceptions import (
    AlreadyConnectedError,
    ConnectError,
    ConnectFailedError,
    ConnectTimeoutError,
    PortOutOfRangeError,
)
from milvus_client.models import Status
from milvus_client.transport import ConnectivityState


@pytest.fixture
def manager(test_config, channel_factory) -> ConnectionManager:
    return ConnectionManager(test_config, channel_factory=channel_factory)


class TestConnect:
    """Test ConnectionManager.connect"""

    def test_connect_success(self, manager, channel_factory):
        """Test connecting to a channel that reports ready"""
        response = manager.connect("localhost", 19530, 1000)

        assert response.status == Status.SUCCESS
        assert manager.is_connected()
        assert manager.state is ConnectivityState.READY
        assert manager.target == "localhost:19530"
        assert manager.dispatcher is not None
        assert channel_factory.last.target == "localhost:19530"

    def test_connect_passes_channel_options(self, manager, channel_factory):
        """Test the receive size limit is handed to the channel"""
        manager.connect("localhost", 19530, 1000)
        assert ("grpc.max_receive_message_length", -1) in channel_factory.last.options

    def test_connect_accepts_numeric_string_port(self, manager, channel_factory):
        """Test port given as a string"""
        manager.connect("localhost", "19531", 1000)
        assert channel_factory.last.target == "localhost:19531"

    @pytest.mark.parametrize("port", [-1, 65536, 100000])
    def test_port_out_of_range(self, manager, channel_factory, port):
        """Test port range is checked before any channel is created"""
        with pytest.raises(PortOutOfRangeError) as exc_info:
            manager.connect("localhost", port, 1000)

        assert exc_info.value.port == port
        assert isinstance(exc_info.value, ConnectError)
        assert channel_factory.created == []
        assert manager.state is ConnectivityState.NOT_CREATED

    @pytest.mark.parametrize("port", [0, 65535])
    def test_port_range_bounds_are_valid(self, manager, port):
        """Test both ends of the port range are accepted"""
        assert manager.connect("localhost", port, 1000).ok()

    def test_non_numeric_port_fails(self, manager, channel_factory):
        """Test a port that cannot be parsed"""
        with pytest.raises(ConnectFailedError) as exc_info:
            manager.connect("localhost", "abc", 1000)

        assert isinstance(exc_info.value.cause, ValueError)
        assert channel_factory.created == []

    def test_channel_factory_failure_is_wrapped(self, test_config):
        """Test transport exceptions during setup become ConnectFailedError"""
        def broken_factory(target, options=None):
            raise RuntimeError("bad address")

        manager = ConnectionManager(test_config, channel_factory=broken_factory)

        with pytest.raises(ConnectFailedError) as exc_info:
            manager.connect("localhost", 19530, 1000)

        assert "bad address" in str(exc_info.value)
        assert isinstance(exc_info.value.cause, RuntimeError)
        assert not manager.is_connected()

    def test_already_connected(self, manager, channel_factory):
        """Test a second connect is rejected and leaves the first channel alone"""
        manager.connect("localhost", 19530, 1000)
        first = channel_factory.last

        with pytest.raises(AlreadyConnectedError):
            manager.connect("otherhost", 19530, 1000)

        assert len(channel_factory.created) == 1
        assert manager.target == "localhost:19530"
        assert manager.is_connected()
        assert not first.closed

    def test_connect_timeout(self, channel_factory):
        """Test a channel that never becomes ready times out after roughly the budget"""
        channel_factory.connectivity = grpc.ChannelConnectivity.CONNECTING
        manager = ConnectionManager(
            ClientConfig(poll_interval_ms=10), channel_factory=channel_factory
        )

        start = time.monotonic()
        with pytest.raises(ConnectTimeoutError) as exc_info:
            manager.connect("localhost", 19530, 100)
        elapsed = time.monotonic() - start

        assert exc_info.value.timeout_ms == 100
        assert 0.09 <= elapsed < 2.0
        # the channel is left as polling found it
        assert manager.state is ConnectivityState.CONNECTING
        assert not channel_factory.last.closed
        assert manager.dispatcher is None

    def test_connect_with_zero_timeout_fails_immediately_when_not_ready(self, channel_factory, test_config):
        """Test a zero budget does not sleep"""
        channel_factory.connectivity = grpc.ChannelConnectivity.IDLE
        manager = ConnectionManager(test_config, channel_factory=channel_factory)

        start = time.monotonic()
        with pytest.raises(ConnectTimeoutError):
            manager.connect("localhost", 19530, 0)
        assert time.monotonic() - start < 0.5

    def test_connect_waits_for_ready(self, channel_factory, test_config):
        """Test polling picks up a channel that becomes ready later"""
        channel_factory.connectivity = grpc.ChannelConnectivity.CONNECTING
        manager = ConnectionManager(test_config, channel_factory=channel_factory)

        def become_ready():
            while not channel_factory.created:
                time.sleep(0.005)
            time.sleep(0.03)
            channel_factory.last.set_connectivity(grpc.ChannelConnectivity.READY)

        worker = threading.Thread(target=become_ready)
        worker.start()
        try:
            response = manager.connect("localhost", 19530, 2000)
        finally:
            worker.join()

        assert response.ok()
        assert manager.is_connected()

    def test_reconnect_after_timeout_is_rejected(self, channel_factory, test_config):
        """Test a timed-out channel still counts as live for the next connect"""
        channel_factory.connectivity = grpc.ChannelConnectivity.CONNECTING
        manager = ConnectionManager(test_config, channel_factory=channel_factory)

        with pytest.raises(ConnectTimeoutError):
            manager.connect("localhost", 19530, 20)
        with pytest.raises(AlreadyConnectedError):
            manager.connect("localhost", 19530, 20)


class TestIsConnected:
    """Test the strict readiness check"""

    def test_not_connected_before_connect(self, manager):
        assert not manager.is_connected()
        assert manager.state is ConnectivityState.NOT_CREATED

    @pytest.mark.parametrize("connectivity", [
        grpc.ChannelConnectivity.IDLE,
        grpc.ChannelConnectivity.TRANSIENT_FAILURE,
        grpc.ChannelConnectivity.CONNECTING,
    ])
    def test_non_ready_states_are_not_connected(self, manager, channel_factory, connectivity):
        """Test IDLE and TRANSIENT_FAILURE are reported as not connected.

        A brief network blip that grpc would recover from still reads as
        disconnected here.
        """
        manager.connect("localhost", 19530, 1000)
        channel_factory.last.set_connectivity(connectivity)

        assert not manager.is_connected()

    def test_ready_again_after_transient_failure(self, manager, channel_factory):
        """Test readiness follows the channel back to READY"""
        manager.connect("localhost", 19530, 1000)
        channel_factory.last.set_connectivity(grpc.ChannelConnectivity.TRANSIENT_FAILURE)
        channel_factory.last.set_connectivity(grpc.ChannelConnectivity.READY)

        assert manager.is_connected()


class TestDisconnect:
    """Test ConnectionManager.disconnect"""

    def test_disconnect_when_never_connected(self, manager, channel_factory):
        """Test disconnect without a channel is a no-op result"""
        response = manager.disconnect()

        assert response.status == Status.CLIENT_NOT_CONNECTED
        assert channel_factory.created == []

    def test_disconnect_when_not_ready_does_not_tear_down(self, manager, channel_factory):
        """Test no shutdown is attempted on a channel that is not ready"""
        manager.connect("localhost", 19530, 1000)
        channel_factory.last.set_connectivity(grpc.ChannelConnectivity.IDLE)

        response = manager.disconnect()

        assert response.status == Status.CLIENT_NOT_CONNECTED
        assert not channel_factory.last.closed

    def test_disconnect_success(self, manager, channel_factory):
        """Test graceful shutdown closes the channel"""
        manager.connect("localhost", 19530, 1000)

        response = manager.disconnect()

        assert response.status == Status.SUCCESS
        assert channel_factory.last.closed
        assert manager.state is ConnectivityState.TERMINATED
        assert not manager.is_connected()
        assert manager.dispatcher is None
        assert channel_factory.last.callbacks == []

    def test_disconnect_twice(self, manager):
        """Test the second disconnect reports not connected"""
        manager.connect("localhost", 19530, 1000)
        manager.disconnect()

        assert manager.disconnect().status == Status.CLIENT_NOT_CONNECTED

    def test_reconnect_after_disconnect(self, manager, channel_factory):
        """Test a terminated channel can be replaced"""
        manager.connect("localhost", 19530, 1000)
        manager.disconnect()

        assert manager.connect("localhost", 19530, 1000).ok()
        assert len(channel_factory.created) == 2
        assert manager.is_connected()

    def test_disconnect_drain_timeout(self, channel_factory):
        """Test shutdown gives up when a call is still in flight"""
        manager = ConnectionManager(
            ClientConfig(poll_interval_ms=10, drain_timeout=0.05), channel_factory=channel_factory
        )
        manager.connect("localhost", 19530, 1000)
        handle = manager._handle

        with handle.track_call():
            start = time.monotonic()
            response = manager.disconnect()
            elapsed = time.monotonic() - start

            assert not channel_factory.last.closed
            assert manager.state is ConnectivityState.SHUTDOWN

        assert response.status == Status.SHUTDOWN_TIMEOUT
        assert response.message
        assert elapsed >= 0.04
        # a shut down channel no longer blocks a new connect
        assert manager.connect("localhost", 19530, 1000).ok()

    def test_abandoned_channel_closes_when_its_last_call_finishes(self, channel_factory):
        """Test a channel left open by a drain timeout is not leaked"""
        manager = ConnectionManager(
            ClientConfig(poll_interval_ms=10, drain_timeout=0.02), channel_factory=channel_factory
        )
        manager.connect("localhost", 19530, 1000)
        old_channel = channel_factory.last
        old_handle = manager._handle

        with old_handle.track_call():
            assert manager.disconnect().status == Status.SHUTDOWN_TIMEOUT
            manager.connect("localhost", 19530, 1000)
            assert not old_channel.closed

        assert old_channel.closed
        assert old_handle.is_terminated
        assert not channel_factory.last.closed
        assert manager.is_connected()
