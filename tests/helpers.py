import asyncio
import os
import socket
from dataclasses import dataclass, field

from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, YamlConfigSettingsSource

from logwire.bootstrap.config.settings import LogwireConfig
from logwire.core.models.message import SyslogMessage


@dataclass
class MessageCollector:
    """
    Callback recording every message it receives. Tests await
    `wait_for(n)` to block until n messages have arrived.
    """
    messages: list[SyslogMessage] = field(default_factory=list)
    delay: float = 0.0
    _changed: asyncio.Event = field(default_factory=asyncio.Event)

    async def __call__(self, message: SyslogMessage, stop_event: asyncio.Event) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        self.messages.append(message)
        self._changed.set()

    async def wait_for(self, count: int, timeout: float = 2.0) -> list[SyslogMessage]:
        async def _wait() -> None:
            while len(self.messages) < count:
                self._changed.clear()
                await self._changed.wait()

        await asyncio.wait_for(_wait(), timeout=timeout)
        return self.messages

    @property
    def contents(self) -> list[str | None]:
        return [m.content for m in self.messages]


class FakeLogwireConfig(LogwireConfig, BaseSettings):
    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            YamlConfigSettingsSource(settings_cls, yaml_file=os.environ["TEST_LOGWIRECONFIG"]),
        )


def get_free_port(kind: int = socket.SOCK_STREAM) -> int:
    with socket.socket(socket.AF_INET, kind) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]
