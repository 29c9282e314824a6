"""FIFO-backed channels that carry intercepted calls back to the harness.

Each mocked command owns one named pipe. The shell shim appends one record
per invocation; a daemon thread keeps the pipe open for the whole run, splits
what it reads into complete records and stores them in the command's
:class:`~bash_mox.recorder.CallRecorder`.

Record format
-------------
Every field (the command name first, then each argument) is followed by
:data:`FIELD_SEPARATOR`; the record ends with :data:`RECORD_TERMINATOR`.
Bytes are decoded as UTF-8 with ``surrogateescape`` so arbitrary argument
bytes survive the round trip.
"""

from __future__ import annotations

import errno
import logging
import os
import threading
import time
import typing as t

from ._validators import validate_positive_finite_timeout
from .errors import ChannelError
from .fs_utils import make_fifo
from .recorder import ArgumentVector, CallRecorder

if t.TYPE_CHECKING:  # pragma: no cover - used only for typing
    from pathlib import Path

logger = logging.getLogger(__name__)

FIELD_SEPARATOR: t.Final[str] = "\x1f"
RECORD_TERMINATOR: t.Final[str] = "\x1e\n"
ENCODING: t.Final[str] = "utf-8"
ENCODING_ERRORS: t.Final[str] = "surrogateescape"

# Bash cannot place NUL bytes in an argument, so no shim can forge this.
_SYNC_VECTOR: t.Final[ArgumentVector] = ("\x00bash-mox-sync",)
_MAX_POLL_INTERVAL: t.Final[float] = 0.1
_READ_SIZE: t.Final[int] = 65536


def encode_record(vector: t.Sequence[str]) -> bytes:
    """Return the wire form of *vector*, mirroring what the shell shim emits."""
    body = "".join(f"{field}{FIELD_SEPARATOR}" for field in vector)
    return f"{body}{RECORD_TERMINATOR}".encode(ENCODING, ENCODING_ERRORS)


def decode_records(data: bytes) -> list[ArgumentVector]:
    """Split drained channel bytes into argument vectors.

    A trailing fragment without a terminator is still decoded so a shim that
    was interrupted mid-record leaves a visible (if odd) trace.
    """
    text = data.decode(ENCODING, ENCODING_ERRORS)
    chunks = text.split(RECORD_TERMINATOR)
    tail = chunks.pop()
    if tail.strip("\r\n"):
        logger.warning("Unterminated record on intercept channel: %r", tail)
        chunks.append(tail)

    vectors: list[ArgumentVector] = []
    for chunk in chunks:
        fields = chunk.strip("\r\n").split(FIELD_SEPARATOR)
        if fields and fields[-1] == "":
            fields.pop()
        vectors.append(tuple(fields))
    return vectors


class InterceptChannel:
    """One named pipe plus the listener thread that drains it."""

    def __init__(
        self, command: str, path: Path, recorder: CallRecorder | None = None
    ) -> None:
        self.command = command
        self.path = path
        self.recorder = recorder if recorder is not None else CallRecorder(command)
        self._thread: threading.Thread | None = None
        self._stopping = threading.Event()
        self._cond = threading.Condition()
        self._sync_requested = 0
        self._sync_seen = 0
        self.error: OSError | None = None

    @property
    def listening(self) -> bool:
        """Return ``True`` while the listener thread is alive."""
        return self._thread is not None and self._thread.is_alive()

    def create(self) -> None:
        """Create the backing FIFO."""
        make_fifo(self.path)

    def start(self) -> None:
        """Start the background listener."""
        if self._thread is not None:
            msg = f"Listener for {self.command!r} already started"
            raise RuntimeError(msg)
        self._thread = threading.Thread(
            target=self._listen,
            name=f"bash-mox-listener-{self.command}",
            daemon=True,
        )
        self._thread.start()

    # ------------------------------------------------------------------
    # Listener thread
    # ------------------------------------------------------------------
    def _listen(self) -> None:
        logger.debug("Listening for %s calls on %s", self.command, self.path)
        try:
            try:
                # Holding a write end too keeps read() from reporting EOF
                # between shims, so the pipe never loses its last reader.
                fd = os.open(self.path, os.O_RDWR)
            except FileNotFoundError:
                logger.debug("Channel %s removed; listener exiting", self.path)
                return
            except OSError as exc:
                self.error = exc
                logger.exception("Listener for %s failed", self.command)
                return
            try:
                self._drain(fd)
            finally:
                os.close(fd)
        finally:
            with self._cond:
                self._cond.notify_all()

    def _drain(self, fd: int) -> None:
        terminator = RECORD_TERMINATOR.encode(ENCODING)
        pending = b""
        while True:
            try:
                chunk = os.read(fd, _READ_SIZE)
            except OSError as exc:
                self.error = exc
                logger.exception("Listener for %s failed", self.command)
                return
            pending += chunk
            end = pending.rfind(terminator)
            if end >= 0:
                end += len(terminator)
                self._consume(pending[:end])
                pending = pending[end:]
            if self._stopping.is_set():
                if pending:
                    self._consume(pending)
                logger.debug("Listener for %s stopped", self.command)
                return

    def _consume(self, data: bytes) -> None:
        for vector in decode_records(data):
            if vector == _SYNC_VECTOR:
                with self._cond:
                    self._sync_seen += 1
                    self._cond.notify_all()
                continue
            if vector[:1] != (self.command,):
                logger.warning(
                    "Malformed record on %s channel: %r", self.command, vector
                )
            self.recorder.append(vector)
            logger.debug("Recorded %s call: %r", self.command, vector)

    # ------------------------------------------------------------------
    # Control operations (harness thread)
    # ------------------------------------------------------------------
    def _write_marker(self, deadline: float) -> None:
        """Write a sync record once a reader is attached, polling until *deadline*."""
        record = encode_record(_SYNC_VECTOR)
        wait_time = 0.001
        while True:
            try:
                fd = os.open(self.path, os.O_WRONLY | os.O_NONBLOCK)
            except OSError as exc:
                # ENXIO: no reader has the FIFO open right now.
                if exc.errno != errno.ENXIO:
                    msg = f"Cannot open channel {self.path}: {exc}"
                    raise ChannelError(msg) from exc
            else:
                try:
                    os.write(fd, record)
                except BlockingIOError:
                    pass
                else:
                    return
                finally:
                    os.close(fd)

            remaining = deadline - time.monotonic()
            if remaining <= 0 or not self.listening:
                msg = f"No listener attached to {self.path} within timeout"
                raise ChannelError(msg)
            time.sleep(min(wait_time, remaining))
            wait_time = min(wait_time * 1.5, _MAX_POLL_INTERVAL)

    def sync(self, timeout: float) -> None:
        """Block until every record written before this call has been stored.

        Raises
        ------
        ChannelError
            If the listener is gone or does not catch up within *timeout*.
        """
        validate_positive_finite_timeout(timeout)
        if not self.listening:
            msg = f"Listener for {self.command!r} is not running"
            raise ChannelError(msg)

        deadline = time.monotonic() + timeout
        with self._cond:
            self._sync_requested += 1
            ticket = self._sync_requested
        self._write_marker(deadline)
        with self._cond:
            self._cond.wait_for(
                lambda: self._sync_seen >= ticket or not self.listening,
                timeout=max(deadline - time.monotonic(), 0),
            )
            if self._sync_seen < ticket:
                msg = f"Listener for {self.command!r} did not drain {self.path}"
                raise ChannelError(msg)

    def close(self, timeout: float) -> bool:
        """Stop the listener, waiting at most *timeout* seconds.

        A listener blocked in ``read()`` is woken with a sync record
        rather than joined blindly. Returns ``True`` when the thread is gone.
        """
        thread = self._thread
        if thread is None or not thread.is_alive():
            return True

        deadline = time.monotonic() + timeout
        self._stopping.set()
        try:
            self._write_marker(deadline)
        except ChannelError as exc:
            logger.warning("Could not wake listener for %s: %s", self.command, exc)
            return not thread.is_alive()

        thread.join(max(deadline - time.monotonic(), 0))
        if thread.is_alive():
            logger.warning(
                "Listener for %s still running after %.1fs", self.command, timeout
            )
            return False
        return True

    def __repr__(self) -> str:
        return (
            f"InterceptChannel(command={self.command!r}, path={str(self.path)!r}, "
            f"calls={len(self.recorder)})"
        )
