from typing import Annotated, Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict, PydanticBaseSettingsSource, YamlConfigSettingsSource

from logwire.bootstrap.config.loader import get_configfile
from logwire.core.models.config import (
    DEFAULT_LISTEN_BACKLOG,
    DEFAULT_MAX_MESSAGE_SIZE,
    DEFAULT_READ_TIMEOUT,
    DEFAULT_SYSLOG_PORT,
    MIN_MESSAGE_SIZE,
    ServerConfig,
)


class ServerSettings(BaseModel):
    host: Annotated[
        str,
        Field(
            description=(
                "Bind address shared by the TCP and UDP listeners.\n"
                "Defaults to loopback; use 0.0.0.0 to accept remote senders."
            ),
            default="127.0.0.1"
        )
    ]

    udp_port: Annotated[
        int,
        Field(
            description="UDP port for syslog datagrams, 0 disables UDP.",
            default=DEFAULT_SYSLOG_PORT,
            ge=0,
            le=65535
        )
    ]

    tcp_port: Annotated[
        int,
        Field(
            description="TCP port for newline-framed syslog streams, 0 disables TCP.",
            default=DEFAULT_SYSLOG_PORT,
            ge=0,
            le=65535
        )
    ]

    backlog: Annotated[
        int,
        Field(
            description="Maximum number of pending TCP connections.",
            default=DEFAULT_LISTEN_BACKLOG,
            ge=1
        )
    ]

    read_timeout: Annotated[
        float,
        Field(
            description=(
                "Maximum time in seconds a single read may wait for data.\n"
                "An idle TCP connection is closed once it elapses."
            ),
            default=DEFAULT_READ_TIMEOUT,
            gt=0
        )
    ]

    max_message_size: Annotated[
        int,
        Field(
            description=(
                "Maximum size in bytes of a single message.\n"
                f"RFC 5424 requires receivers to accept at least {MIN_MESSAGE_SIZE} bytes."
            ),
            default=DEFAULT_MAX_MESSAGE_SIZE,
            ge=MIN_MESSAGE_SIZE
        )
    ]

    timeout_graceful_shutdown: Annotated[
        float,
        Field(
            description="Maximum time allowed for sessions to finish on shutdown.",
            default=3.0,
            ge=0
        )
    ]


class OutputSettings(BaseModel):
    format: Annotated[
        Literal["text", "json", "yaml"],
        Field(
            description=(
                "How received messages are written to stdout.\n"
                "text → canonical syslog line, json → one object per line,\n"
                "yaml → one document per message."
            ),
            default="text"
        )
    ]


class LogwireConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="LOGWIRE_",
        extra="allow"
    )

    server: Annotated[
        ServerSettings,
        Field(
            description=(
                "Listener configuration.\n"
                "Controls where syslog messages are accepted and the limits\n"
                "applied to every read and every message."
            ),
            default_factory=ServerSettings
        )
    ]

    output: Annotated[
        OutputSettings,
        Field(
            description="Rendering of received messages.",
            default_factory=OutputSettings
        )
    ]

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return init_settings, YamlConfigSettingsSource(settings_cls, yaml_file=get_configfile())

    def get_server_config(self) -> ServerConfig:
        server = self.server
        return ServerConfig(
            host=server.host,
            udp_port=server.udp_port,
            tcp_port=server.tcp_port,
            backlog=server.backlog,
            read_timeout=server.read_timeout,
            max_message_size=server.max_message_size,
            timeout_graceful_shutdown=server.timeout_graceful_shutdown,
        )
