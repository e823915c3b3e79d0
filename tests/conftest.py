import asyncio
import os
from typing import Generator

import pytest
import yaml

from logwire.core.models.config import ServerConfig
from logwire.core.models.state import ServerState
from tests.fake.fake_transport import FakeDatagramTransport, FakeTransport
from tests.helpers import FakeLogwireConfig, MessageCollector


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def datagram_transport():
    return FakeDatagramTransport()


@pytest.fixture
def server_state():
    return ServerState()


@pytest.fixture
def stop_event():
    return asyncio.Event()


@pytest.fixture
def collector():
    return MessageCollector()


@pytest.fixture
def config():
    return ServerConfig(
        host="127.0.0.1",
        udp_port=0,
        tcp_port=0,
        backlog=10,
        read_timeout=1.0,
        max_message_size=512,
        timeout_graceful_shutdown=1.0,
    )


@pytest.fixture
def config_file(tmp_path):
    file = tmp_path / "logwire.yaml"

    data = {
        "server": {
            "host": "127.0.0.1",
            "udp_port": 5514,
            "tcp_port": 0,
            "backlog": 10,
            "read_timeout": 2.5,
            "max_message_size": 4096,
            "timeout_graceful_shutdown": 1,
        },
        "output": {
            "format": "json",
        },
    }

    file.write_text(yaml.dump(data))
    return file


@pytest.fixture
def logwire_config(config_file) -> Generator[FakeLogwireConfig, None, None]:
    backup = os.environ.copy()

    try:
        os.environ["TEST_LOGWIRECONFIG"] = str(config_file)
        yield FakeLogwireConfig()
    finally:
        os.environ.clear()
        os.environ.update(backup)
