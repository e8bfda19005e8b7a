"""Asyncio stream transports that serve sessions over TCP."""

from __future__ import annotations

import asyncio
import codecs
import contextlib
import logging
from typing import Dict, Set

from ..evaluator import DeferredEvaluator
from ..session_config import SessionConfig
from ..session_controller import SessionController, SubmissionInFlightError
from .session_factory import DEFAULT_RUNTIME_SESSION_FACTORY, RuntimeSessionFactory

__all__ = [
    "SessionTransport",
    "WriterTerminal",
    "run_listen",
    "start_session_server",
]

logger = logging.getLogger(__name__)


class WriterTerminal:
    """Terminal surface that encodes text onto an asyncio stream writer."""

    def __init__(
        self,
        writer: asyncio.StreamWriter,
        *,
        encoding: str = "utf-8",
        newline: str | None = "\r\n",
    ) -> None:
        self.writer = writer
        self.encoding = encoding
        self.newline = newline

    def translate_outgoing(self, text: str) -> str:
        if self.newline is None or self.newline == "\n":
            return text
        return text.replace("\n", self.newline)

    def write(self, text: str) -> None:
        if not text:
            return
        payload = self.translate_outgoing(text).encode(self.encoding, errors="replace")
        self.writer.write(payload)

    def write_line(self, text: str = "") -> None:
        self.write(text + "\n")


class SessionTransport:
    """Bridge one :class:`SessionController` over a pair of asyncio streams.

    The server offers to echo and to suppress go-ahead so Telnet clients
    switch to character mode; the controller does all echoing itself.
    """

    _IAC = 0xFF
    _DONT = 0xFE
    _DO = 0xFD
    _WONT = 0xFC
    _WILL = 0xFB
    _SB = 0xFA
    _SE = 0xF0
    _ECHO = 0x01
    _SUPPRESS_GO_AHEAD = 0x03
    _OFFERED_OPTIONS = (_ECHO, _SUPPRESS_GO_AHEAD)

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        *,
        config: SessionConfig | None = None,
        factory: RuntimeSessionFactory | None = None,
        encoding: str = "utf-8",
        read_size: int = 1024,
        deferred: bool = False,
        negotiate: bool = True,
    ) -> None:
        self.reader = reader
        self.writer = writer
        self.config = config or SessionConfig()
        self.factory = factory or DEFAULT_RUNTIME_SESSION_FACTORY
        self.read_size = read_size
        self.deferred = deferred
        self.negotiate = negotiate
        self.terminal = WriterTerminal(writer, encoding=encoding)
        self.controller: SessionController | None = None
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._telnet_buffer = bytearray()
        self._expected_telnet_responses: Dict[int, Set[int]] = {}
        self._closing = False
        self._exit_requested = False

    def open(self) -> SessionController:
        """Negotiate character mode and write the first prompt."""

        if self.controller is not None:
            return self.controller
        if self.negotiate:
            for option in self._OFFERED_OPTIONS:
                self.writer.write(bytes([self._IAC, self._WILL, option]))
                self._expected_telnet_responses[option] = {self._DO, self._DONT}
        evaluator = self.factory.build_evaluator()
        if self.deferred:
            evaluator = DeferredEvaluator(evaluator, on_exit=self._request_exit)
        self.controller = self.factory.create_controller(
            self.terminal, config=self.config, evaluator=evaluator
        )
        return self.controller

    async def run(self) -> None:
        """Pump inbound bytes into the controller until the peer disconnects."""

        controller = self.open()
        try:
            await self.writer.drain()
            while not (self._closing or self._exit_requested):
                try:
                    data = await self.reader.read(self.read_size)
                except ConnectionError:
                    break
                if not data:
                    break
                payload, replies = self._filter_telnet_negotiations(data)
                for reply in replies:
                    self.writer.write(reply)
                text = self._decoder.decode(payload)
                if text:
                    try:
                        controller.feed(text)
                    except SubmissionInFlightError as exc:
                        logger.warning("dropping input: %s", exc)
                    except SystemExit:
                        logger.info("evaluator requested exit")
                        break
                try:
                    await self.writer.drain()
                except ConnectionError:
                    break
        finally:
            await self.close()

    def _request_exit(self) -> None:
        # Closing the writer ends the pending read with EOF.
        logger.info("evaluator requested exit")
        self._exit_requested = True
        self.writer.close()

    async def close(self) -> None:
        if self._closing:
            return
        self._closing = True
        self.writer.close()
        with contextlib.suppress(ConnectionError):
            await self.writer.wait_closed()

    # Telnet helpers -----------------------------------------------------

    def _filter_telnet_negotiations(self, data: bytes) -> tuple[bytes, list[bytes]]:
        buffer = self._telnet_buffer
        buffer.extend(data)
        payload = bytearray()
        replies: list[bytes] = []
        iac = self._IAC
        index = 0
        while index < len(buffer):
            byte = buffer[index]
            if byte != iac:
                payload.append(byte)
                index += 1
                continue
            if index + 1 >= len(buffer):
                break
            command = buffer[index + 1]
            if command == iac:
                payload.append(iac)
                index += 2
                continue
            if command == self._SB:
                end = self._find_subnegotiation_end(buffer, index + 2)
                if end < 0:
                    break
                index = end
                continue
            if command in (self._WILL, self._WONT, self._DO, self._DONT):
                if index + 2 >= len(buffer):
                    break
                reply = self._negotiation_reply(command, buffer[index + 2])
                if reply is not None:
                    replies.append(reply)
                index += 3
                continue
            # Two-byte commands such as NOP and GA carry no payload.
            index += 2
        del buffer[:index]
        return bytes(payload), replies

    def _find_subnegotiation_end(self, buffer: bytearray, start: int) -> int:
        index = start
        while index + 1 < len(buffer):
            if buffer[index] == self._IAC:
                if buffer[index + 1] == self._SE:
                    return index + 2
                index += 2
                continue
            index += 1
        return -1

    def _negotiation_reply(self, command: int, option: int) -> bytes | None:
        expected = self._expected_telnet_responses.get(option)
        if expected is not None and command in expected:
            del self._expected_telnet_responses[option]
            return None
        if command == self._WILL:
            return bytes([self._IAC, self._DONT, option])
        if command == self._DO and option not in self._OFFERED_OPTIONS:
            return bytes([self._IAC, self._WONT, option])
        return None


async def start_session_server(
    config: SessionConfig,
    host: str,
    port: int,
    *,
    factory: RuntimeSessionFactory | None = None,
    deferred: bool = False,
) -> asyncio.AbstractServer:
    """Start a TCP server that spawns one session per connection."""

    async def _client_handler(
        reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        peer = writer.get_extra_info("peername")
        logger.info("session opened for %s", peer)
        transport = SessionTransport(
            reader, writer, config=config, factory=factory, deferred=deferred
        )
        try:
            await transport.run()
        finally:
            logger.info("session closed for %s", peer)

    return await asyncio.start_server(_client_handler, host, port)


async def run_listen(
    config: SessionConfig,
    host: str,
    port: int,
    *,
    deferred: bool = False,
) -> None:
    """Serve incoming TCP sessions until cancelled."""

    server = await start_session_server(config, host, port, deferred=deferred)
    for sock in server.sockets:
        logger.info("listening on %s", sock.getsockname())
    async with server:
        await server.serve_forever()
