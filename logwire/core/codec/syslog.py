import logging
import re
from datetime import datetime
from typing import Any

from logwire.core.models.message import Facility, Severity, SyslogMessage

MAX_PRIORITY = 191
NILVALUE = "-"
HEADER_FIELDS = ("timestamp", "hostname", "app_name", "proc_id", "msg_id")

_SD_KEY = re.compile(r"[A-Za-z][A-Za-z0-9_-]*=")
_QUOTES = frozenset("\"'")
_DIGITS = frozenset("0123456789")

_logger = logging.getLogger("core.codec.syslog")


class SyslogCodec:
    """
    Converts between raw syslog text and SyslogMessage records.

    The accepted grammar is a tolerant variant of RFC 5424:

        [<PRI>][VERSION] TIMESTAMP HOST APP PROCID MSGID [SD...] CONTENT

    Header fields are separated by exactly one space and may each be
    empty or the NILVALUE "-", in which case the record keeps its
    default. Only CONTENT is mandatory. Parsing never raises: a line
    that does not fit the grammar is reported through the boolean
    result and a log line.

    Rendering produces a canonical form of the record. It is not an
    exact inverse of parsing: timestamps are renormalized and unset
    header fields are written as "-".
    """

    @staticmethod
    def decode(data: bytes) -> str:
        return data.decode("utf-8", errors="replace")

    @classmethod
    def try_parse(cls, sender: Any, text: str | None) -> tuple[SyslogMessage, bool]:
        """
        Parse `text` received from `sender` into a new SyslogMessage.

        Returns the record together with a success flag. When the flag
        is False the record content is undefined and must be ignored.
        """
        message = SyslogMessage()

        if sender is None or not text:
            return message, False

        address = str(sender)
        message.remote_addr = address
        message.hostname = address

        if not cls._parse_into(message, text):
            _logger.warning(f"Could not understand received message '{text}'.")
            return message, False

        return message, True

    @classmethod
    def render(cls, message: SyslogMessage) -> str:
        parts = [
            f"<{message.priority}>{message.version}",
            message.timestamp.isoformat(),
            message.hostname or NILVALUE,
            message.app_name or NILVALUE,
            message.proc_id or NILVALUE,
            message.msg_id or NILVALUE,
        ]

        if message.structured_data:
            terms = " ".join(
                cls._render_term(key, value)
                for key, value in message.structured_data.items()
            )
            parts.append(f"[{terms}]")

        if message.content:
            parts.append(message.content)

        return " ".join(parts)

    @staticmethod
    def _render_term(key: str, value: str | None) -> str:
        if not value:
            return key
        escaped = value.replace('"', '\\"')
        return f'{key}="{escaped}"'

    @classmethod
    def _parse_into(cls, message: SyslogMessage, text: str) -> bool:
        n = len(text)
        pos = 0

        if text.startswith("<"):
            end = text.find(">", 1, 5)
            digits = text[1:end] if end > 1 else ""
            if not digits or not set(digits) <= _DIGITS:
                return False

            priority = int(digits)
            if priority > MAX_PRIORITY:
                return False

            message.facility = Facility(priority // 8)
            message.severity = Severity(priority % 8)
            pos = end + 1

        start = pos
        while pos < n and pos - start < 2 and text[pos] in _DIGITS:
            pos += 1
        if pos > start:
            message.version = int(text[start:pos])

        header: dict[str, str] = {}
        for name in HEADER_FIELDS:
            if pos >= n or text[pos] != " ":
                return False
            pos += 1

            end = pos
            while end < n and not text[end].isspace():
                end += 1
            header[name] = text[pos:end]
            pos = end

        if pos >= n or text[pos] != " ":
            return False
        pos += 1

        structured_data, content = cls._split_body(text, pos)
        if not content:
            return False

        cls._apply_header(message, header)
        message.structured_data.update(structured_data)
        message.content = content
        return True

    @staticmethod
    def _apply_header(message: SyslogMessage, header: dict[str, str]) -> None:
        for name, value in header.items():
            if not value or value == NILVALUE:
                continue

            if name == "timestamp":
                try:
                    message.timestamp = datetime.fromisoformat(value)
                except ValueError:
                    _logger.debug(f"Ignoring unparsable timestamp '{value}'")
                continue

            setattr(message, name, value)

    @classmethod
    def _split_body(cls, text: str, pos: int) -> tuple[dict[str, str | None], str]:
        """
        Split the part following MSGID into structured data and content.
        When the structured data would leave no content behind, the
        bracketed text is taken as the content instead.
        """
        fallback = text[pos:].lstrip(" ")

        if text.startswith(NILVALUE + " ", pos):
            content = text[pos + 2:].lstrip(" ")
            if content:
                return {}, content
            return {}, fallback

        data: dict[str, str | None] = {}
        end = pos
        while end < len(text) and text[end] == "[":
            closed = cls._parse_element(text, end + 1, data)
            if closed == -1:
                break
            end = closed

        if end == pos:
            return {}, fallback

        content = text[end:].lstrip(" ")
        if not content:
            return {}, fallback

        return data, content

    @classmethod
    def _parse_element(cls, text: str, pos: int, data: dict[str, str | None]) -> int:
        """
        Parse the terms of one SD element starting right after its "[".
        Returns the index following the closing "]", or -1 if the
        element is never closed.
        """
        n = len(text)
        while pos < n:
            ch = text[pos]
            if ch.isspace():
                pos += 1
                continue
            if ch == "]":
                return pos + 1

            key = None
            value_pos = pos
            match = _SD_KEY.match(text, pos)
            if match:
                after = match.end()
                if after < n and not text[after].isspace() and text[after] != "]":
                    key = match.group()[:-1]
                    value_pos = after

            if text[value_pos] in _QUOTES:
                value, end = cls._scan_quoted(text, value_pos)
            else:
                end = value_pos
                while end < n and not text[end].isspace() and text[end] != "]":
                    end += 1
                value = text[value_pos:end]

            if key is None:
                data.setdefault(text[pos:end], None)
            else:
                data.setdefault(key, value)
            pos = end

        return -1

    @staticmethod
    def _scan_quoted(text: str, pos: int) -> tuple[str, int]:
        """
        Read the quoted value opening at `pos`. An escaped instance of the
        opening quote is kept as a plain quote. A value missing its closing
        quote runs up to the next "]".
        """
        quote = text[pos]
        escaped = "\\" + quote
        n = len(text)

        i = pos + 1
        while i < n:
            if text.startswith(escaped, i):
                i += 2
                continue
            if text[i] == quote:
                return text[pos + 1:i].replace(escaped, quote), i + 1
            i += 1

        close = text.find("]", pos + 1)
        if close == -1:
            close = n
        return text[pos + 1:close].replace(escaped, quote), close
