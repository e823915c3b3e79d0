import asyncio
import dataclasses

import pytest

from logwire.core.transport.tcp import TcpListener


async def start_listener(config, collector, stop_event):
    listener = TcpListener(config)
    await listener.start(collector, stop_event)
    task = asyncio.create_task(listener.serve(stop_event))
    return listener, task


async def stop_listener(stop_event, task):
    stop_event.set()
    await asyncio.wait_for(task, timeout=5)


@pytest.mark.it
@pytest.mark.asyncio
async def test_bind_on_ephemeral_port(config, collector, stop_event):
    listener, task = await start_listener(config, collector, stop_event)

    host, port = listener.listen
    assert host == "127.0.0.1"
    assert port > 0
    assert listener.running is True

    await stop_listener(stop_event, task)
    assert listener.running is False


@pytest.mark.it
@pytest.mark.asyncio
async def test_message_split_across_writes(config, collector, stop_event):
    listener, task = await start_listener(config, collector, stop_event)
    reader, writer = await asyncio.open_connection(*listener.listen)

    writer.write(b"<13>1 - - - - - hel")
    await writer.drain()
    await asyncio.sleep(0.05)
    writer.write(b"lo\n")
    await writer.drain()

    messages = await collector.wait_for(1)
    assert [m.content for m in messages] == ["hello"]
    assert messages[0].remote_addr == "127.0.0.1"

    writer.close()
    await writer.wait_closed()
    await stop_listener(stop_event, task)
    assert collector.contents == ["hello"]


@pytest.mark.it
@pytest.mark.asyncio
async def test_unterminated_message_dispatched_on_close(config, collector, stop_event):
    listener, task = await start_listener(config, collector, stop_event)
    reader, writer = await asyncio.open_connection(*listener.listen)

    writer.write(b"<13>1 - - - - - first\n<13>1 - - - - - last")
    await writer.drain()
    writer.close()
    await writer.wait_closed()

    await collector.wait_for(2)
    assert collector.contents == ["first", "last"]

    await stop_listener(stop_event, task)


@pytest.mark.it
@pytest.mark.asyncio
async def test_oversize_message_drops_connection(config, collector, stop_event):
    listener, task = await start_listener(config, collector, stop_event)
    reader, writer = await asyncio.open_connection(*listener.listen)

    writer.write(b"<13>1 - - - - - " + b"x" * config.max_message_size)
    await writer.drain()

    assert await asyncio.wait_for(reader.read(), timeout=2) == b""
    await asyncio.sleep(0.05)
    assert collector.messages == []
    assert not listener.state.connections

    writer.close()
    await stop_listener(stop_event, task)


@pytest.mark.it
@pytest.mark.asyncio
async def test_idle_connection_times_out(config, collector, stop_event):
    config = dataclasses.replace(config, read_timeout=0.2)
    listener, task = await start_listener(config, collector, stop_event)
    reader, writer = await asyncio.open_connection(*listener.listen)

    writer.write(b"<13>1 - - - - - pending")
    await writer.drain()

    assert await asyncio.wait_for(reader.read(), timeout=2) == b""
    await collector.wait_for(1)
    assert collector.contents == ["pending"]

    writer.close()
    await stop_listener(stop_event, task)


@pytest.mark.it
@pytest.mark.asyncio
async def test_clients_are_served_independently(config, collector, stop_event):
    listener, task = await start_listener(config, collector, stop_event)

    async def client(name):
        reader, writer = await asyncio.open_connection(*listener.listen)
        for i in range(3):
            writer.write(f"<13>1 - - {name} - - {name}-{i}\n".encode())
            await writer.drain()
        writer.close()
        await writer.wait_closed()

    await asyncio.gather(*(client(name) for name in ("a", "b", "c")))
    await collector.wait_for(9)

    for name in ("a", "b", "c"):
        sent = [m.content for m in collector.messages if m.app_name == name]
        assert sent == [f"{name}-0", f"{name}-1", f"{name}-2"]

    await stop_listener(stop_event, task)


@pytest.mark.it
@pytest.mark.asyncio
async def test_shutdown_closes_open_connections(config, collector, stop_event):
    listener, task = await start_listener(config, collector, stop_event)
    reader, writer = await asyncio.open_connection(*listener.listen)

    writer.write(b"<13>1 - - - - - before\n")
    await writer.drain()
    await collector.wait_for(1)

    await stop_listener(stop_event, task)

    assert await asyncio.wait_for(reader.read(), timeout=2) == b""
    assert not listener.state.connections
    assert not listener.state.tasks
    writer.close()
