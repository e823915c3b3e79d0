import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from logwire.core.transport.protocol import StreamProtocol


@dataclass
class ServerState:
    """
    Shared runtime state of a TcpListener.

    This object is mutated by:
    - StreamProtocol: adds/removes active connections and registers the
      session task of each connection
    - TcpListener.shutdown(): closes connections and waits for sessions
    """
    connections: set["StreamProtocol"] = field(default_factory=set)
    """
    Set of active StreamProtocol instances. Each TCP connection
    corresponds to one StreamProtocol.
    """

    tasks: set[asyncio.Task[None]] = field(default_factory=set)
    """
    Set of running session tasks. Each task removes itself on
    completion via task.add_done_callback(tasks.discard).
    """
