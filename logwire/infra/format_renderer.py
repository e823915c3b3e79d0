import json

import yaml

from logwire.core.codec.syslog import SyslogCodec
from logwire.core.models.message import SyslogMessage
from logwire.core.ports.render import Renderer


class TextRenderer(Renderer):
    def render(self, message: SyslogMessage) -> str:
        return SyslogCodec.render(message)


class JsonRenderer(Renderer):
    def render(self, message: SyslogMessage) -> str:
        return json.dumps(message.to_dict(), sort_keys=False)


class YamlRenderer(Renderer):
    def render(self, message: SyslogMessage) -> str:
        dumped = yaml.safe_dump(message.to_dict(), sort_keys=False)
        return "---\n" + dumped.rstrip("\n")


RENDERERS: dict[str, type[Renderer]] = {
    "text": TextRenderer,
    "json": JsonRenderer,
    "yaml": YamlRenderer,
}
