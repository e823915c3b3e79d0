import json
from functools import lru_cache

from pydantic import ValidationError

from logwire.bootstrap.config.settings import LogwireConfig
from logwire.core.ports.render import Renderer
from logwire.core.server import SyslogServer
from logwire.infra.format_renderer import RENDERERS


@lru_cache
def get_config() -> LogwireConfig:
    try:
        return LogwireConfig()
    except FileNotFoundError as ex:
        raise SystemExit(f"Provide a correct configuration file path: {ex}")
    except ValidationError as ex:
        msg = ["Configuration validation failed:"]
        errs = json.loads(ex.json())
        for err in errs:
            loc = ".".join(str(part) for part in err["loc"])
            msg.append(f"  {loc}: {err['msg']}")
        raise SystemExit("\n".join(msg))


@lru_cache
def get_renderer() -> Renderer:
    config = get_config()
    return RENDERERS[config.output.format]()


def get_server() -> SyslogServer:
    config = get_config()
    return SyslogServer(config=config.get_server_config())
