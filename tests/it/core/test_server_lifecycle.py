import asyncio
import dataclasses
import socket

import pytest

from logwire.core.server import SyslogServer
from logwire.core.transport.tcp import TcpListener
from logwire.core.transport.udp import UdpListener
from tests.helpers import get_free_port


@pytest.fixture
def both_config(config):
    return dataclasses.replace(
        config,
        tcp_port=get_free_port(socket.SOCK_STREAM),
        udp_port=get_free_port(socket.SOCK_DGRAM),
    )


@pytest.mark.it
@pytest.mark.asyncio
async def test_receives_over_tcp_and_udp(both_config, collector):
    async with SyslogServer(both_config) as server:
        await server.start(collector)
        kinds = {type(listener) for listener in server.listeners}
        assert kinds == {TcpListener, UdpListener}

        _, writer = await asyncio.open_connection("127.0.0.1", both_config.tcp_port)
        writer.write(b"<13>1 - - - - - over tcp\n")
        await writer.drain()

        loop = asyncio.get_running_loop()
        sender, _ = await loop.create_datagram_endpoint(
            asyncio.DatagramProtocol, remote_addr=("127.0.0.1", both_config.udp_port)
        )
        sender.sendto(b"<13>1 - - - - - over udp")

        await collector.wait_for(2)
        assert sorted(collector.contents) == ["over tcp", "over udp"]

        writer.close()
        sender.close()

    assert server.running is False


@pytest.mark.it
@pytest.mark.asyncio
async def test_external_stop_event(both_config, collector, stop_event):
    server = SyslogServer(both_config)
    await server.start(collector, stop_event)
    assert server.running is True

    stop_event.set()
    for _ in range(50):
        if not server.running:
            break
        await asyncio.sleep(0.02)

    assert server.running is False
    await server.close()


@pytest.mark.it
@pytest.mark.asyncio
async def test_port_in_use_fails_start(both_config, collector):
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as busy:
        busy.bind(("127.0.0.1", 0))
        config = dataclasses.replace(both_config, udp_port=busy.getsockname()[1])
        server = SyslogServer(config)

        with pytest.raises(OSError):
            await server.start(collector)

    assert server.running is False
    assert server.listeners == []

    # tcp port was released again
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as probe:
        probe.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        probe.bind(("127.0.0.1", config.tcp_port))


@pytest.mark.it
@pytest.mark.asyncio
async def test_stop_waits_for_slow_callback(both_config):
    done = []

    async def slow(message, stop_event):
        await asyncio.sleep(0.2)
        done.append(message.content)

    config = dataclasses.replace(both_config, udp_port=0)
    server = SyslogServer(config)
    await server.start(slow)

    _, writer = await asyncio.open_connection("127.0.0.1", config.tcp_port)
    writer.write(b"<13>1 - - - - - slow\n")
    await writer.drain()
    await asyncio.sleep(0.05)

    await server.stop()
    assert done == ["slow"]
    writer.close()
