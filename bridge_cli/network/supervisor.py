"""Connection supervisor that owns the transport lifecycle and reconnect schedule."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from itertools import count
from typing import Callable, Optional, Set

from pydantic import BaseModel

from bridge_protocol import ConnectFrame, PingFrame, encode_frame, next_frame_id, peek_session_id
from bridge_protocol.codec import RawFrame

from bridge_cli.config import ClientSettings
from bridge_cli.network.backoff import BackoffPolicy
from bridge_cli.network.completion import CompletionGate
from bridge_cli.network.connection import Connection, ConnectionState
from bridge_cli.network.state import Effect, SupervisorEvent, SupervisorState, transition
from bridge_cli.network.transport.base import BaseTransport

LOGGER = logging.getLogger(__name__)

TransportFactory = Callable[[ClientSettings], BaseTransport]
FrameCallback = Callable[[RawFrame], None]
StateCallback = Callable[[SupervisorState, SupervisorState], None]
RetryCallback = Callable[[int, float], None]
LostCallback = Callable[[BaseException, bool], None]


class ConnectAttemptFailed(RuntimeError):
    """The transport failed or closed before the server acknowledged the session."""


class SupervisorStopped(RuntimeError):
    """The attempt was abandoned because shutdown was requested."""


class ConnectionSupervisor:
    """Keeps a single bridge connection alive across transport failures.

    ``start()`` returns a future that settles exactly once per call: it resolves
    with the server session id on the first frame received after the transport
    is ready, or rejects with :class:`ConnectAttemptFailed` if the transport
    fails first. Failures of the current connection schedule a retry using the
    backoff policy until ``stop()`` is called.
    """

    def __init__(
        self,
        settings: ClientSettings,
        transport_factory: TransportFactory,
        *,
        backoff: Optional[BackoffPolicy] = None,
        on_frame: Optional[FrameCallback] = None,
        on_state_change: Optional[StateCallback] = None,
        on_retry_scheduled: Optional[RetryCallback] = None,
        on_connection_lost: Optional[LostCallback] = None,
    ) -> None:
        self._settings = settings
        self._transport_factory = transport_factory
        self._backoff = backoff or BackoffPolicy.from_settings(settings)
        self._on_frame = on_frame
        self._on_state_change = on_state_change
        self._on_retry_scheduled = on_retry_scheduled
        self._on_connection_lost = on_connection_lost
        self._state = SupervisorState.IDLE
        self._connection: Optional[Connection] = None
        self._attempt_count = 0
        self._timer: Optional[asyncio.TimerHandle] = None
        self._shutdown = False
        self._serials = count(1)
        self._send_tasks: Set[asyncio.Task[bool]] = set()
        self._closing: Set[asyncio.Task[None]] = set()

    def set_listeners(
        self,
        *,
        on_frame: Optional[FrameCallback] = None,
        on_state_change: Optional[StateCallback] = None,
        on_retry_scheduled: Optional[RetryCallback] = None,
        on_connection_lost: Optional[LostCallback] = None,
    ) -> None:
        """Attach callbacks after construction; ``None`` keeps the current one."""

        self._on_frame = on_frame or self._on_frame
        self._on_state_change = on_state_change or self._on_state_change
        self._on_retry_scheduled = on_retry_scheduled or self._on_retry_scheduled
        self._on_connection_lost = on_connection_lost or self._on_connection_lost

    # Read-only views

    @property
    def state(self) -> SupervisorState:
        return self._state

    @property
    def attempt_count(self) -> int:
        return self._attempt_count

    @property
    def backoff(self) -> BackoffPolicy:
        return self._backoff

    @property
    def connection(self) -> Optional[Connection]:
        return self._connection

    @property
    def session_id(self) -> Optional[str]:
        return self._connection.session_id if self._connection else None

    @property
    def is_open(self) -> bool:
        connection = self._connection
        return (
            self._state is SupervisorState.OPEN
            and connection is not None
            and connection.acknowledged
            and connection.state is ConnectionState.OPEN
        )

    @property
    def retry_pending(self) -> bool:
        return self._timer is not None

    @property
    def shutdown_requested(self) -> bool:
        return self._shutdown

    @property
    def server_url(self) -> str:
        return self._settings.server_url

    # Operations

    def start(self) -> asyncio.Future[Optional[str]]:
        """Open a new transport and return the attempt's settlement future."""

        loop = asyncio.get_running_loop()
        gate: CompletionGate[Optional[str]] = CompletionGate(loop)
        if self._shutdown:
            LOGGER.debug("Ignoring start() after shutdown was requested")
            gate.reject(SupervisorStopped("Supervisor is shutting down"))
            return gate.future

        previous = self._connection
        effects = self._transition(SupervisorEvent.START)
        if Effect.CANCEL_TIMER in effects:
            self._cancel_timer()
        if Effect.CLOSE_TRANSPORT in effects and previous is not None:
            LOGGER.info("Superseding connection #%s", previous.serial)
            self._retire(previous, ConnectAttemptFailed("Connection attempt superseded"))
            self._close_in_background(previous)
            self._connection = None
        if Effect.OPEN_TRANSPORT not in effects:
            gate.reject(ConnectAttemptFailed(f"No transport opened in state {self._state.value}"))
            return gate.future

        try:
            transport = self._transport_factory(self._settings)
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("Could not create transport for %s: %s", self.server_url, exc)
            gate.reject(ConnectAttemptFailed(str(exc) or exc.__class__.__name__))
            self._drop(exc, was_open=False)
            return gate.future

        connection = Connection(serial=next(self._serials), transport=transport, gate=gate)
        self._connection = connection
        LOGGER.info(
            "Opening connection #%s to %s (attempt count %s)",
            connection.serial,
            self.server_url,
            self._attempt_count,
        )
        connection.reader_task = loop.create_task(
            self._run(connection),
            name=f"bridge-connection-{connection.serial}",
        )
        return gate.future

    async def stop(self) -> None:
        """Cancel any pending retry and close the live transport. Idempotent."""

        if self._shutdown:
            await self._await_closing()
            return
        self._shutdown = True
        effects = self._transition(SupervisorEvent.STOP)
        if Effect.CANCEL_TIMER in effects:
            self._cancel_timer()
        connection = self._connection
        self._connection = None
        for task in list(self._send_tasks):
            task.cancel()
        if Effect.CLOSE_TRANSPORT in effects and connection is not None:
            self._retire(connection, SupervisorStopped("Supervisor stopped"), state=ConnectionState.CLOSING)
            await self._close(connection)
        await self._await_closing()
        LOGGER.info("Connection supervisor stopped")

    def force_reconnect(self) -> asyncio.Future[Optional[str]]:
        """Reconnect now, bypassing (and resetting) the backoff schedule."""

        self._cancel_timer()
        if not self._shutdown:
            LOGGER.info("Manual reconnect requested; resetting attempt count from %s", self._attempt_count)
            self._attempt_count = 0
        return self.start()

    async def send(self, frame: BaseModel | dict) -> bool:
        """Send ``frame`` if the session is open; never raises for connection problems."""

        connection = self._connection
        if connection is None or not self.is_open:
            LOGGER.debug("Send skipped; connection is not open")
            return False
        try:
            await connection.transport.send(encode_frame(frame))
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001
            LOGGER.info("Send failed on connection #%s: %s", connection.serial, exc)
            self._handle_failure(connection, exc)
            return False
        return True

    def post(self, frame: BaseModel | dict) -> asyncio.Task[bool]:
        """Schedule ``send`` without waiting for it."""

        task = asyncio.get_running_loop().create_task(self.send(frame), name="bridge-send")
        self._send_tasks.add(task)
        task.add_done_callback(self._send_tasks.discard)
        return task

    # Transport event handlers

    async def _run(self, connection: Connection) -> None:
        try:
            connection.transition(ConnectionState.CONNECTING)
            try:
                await connection.transport.connect()
            except asyncio.CancelledError:
                raise
            except Exception as exc:  # noqa: BLE001
                self._handle_failure(connection, exc)
                return
            if not await self._handle_ready(connection):
                return
            while True:
                try:
                    raw = await connection.transport.receive()
                except asyncio.CancelledError:
                    raise
                except Exception as exc:  # noqa: BLE001
                    self._handle_failure(connection, exc)
                    return
                if not self._handle_message(connection, raw):
                    return
        finally:
            if connection.retired:
                with contextlib.suppress(Exception):
                    await connection.transport.close()

    async def _handle_ready(self, connection: Connection) -> bool:
        if connection is not self._connection:
            LOGGER.debug("Ignoring ready from stale connection #%s", connection.serial)
            return False
        connection.transition(ConnectionState.OPEN)
        LOGGER.info("Transport ready on connection #%s; announcing client", connection.serial)
        try:
            await connection.transport.send(encode_frame(self._connect_frame()))
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001
            self._handle_failure(connection, exc)
            return False
        return True

    def _handle_message(self, connection: Connection, raw: RawFrame) -> bool:
        if connection is not self._connection or self._shutdown:
            LOGGER.debug("Dropping frame from stale connection #%s", connection.serial)
            return False
        if not connection.gate.settled:
            self._acknowledge(connection, raw)
        if self._on_frame is not None:
            self._on_frame(raw)
        return True

    def _handle_failure(self, connection: Connection, exc: BaseException) -> None:
        if connection is not self._connection:
            LOGGER.debug("Ignoring failure from stale connection #%s: %s", connection.serial, exc)
            return
        was_open = connection.acknowledged
        self._connection = None
        self._retire(connection, ConnectAttemptFailed(str(exc) or exc.__class__.__name__))
        self._close_in_background(connection)
        if self._shutdown:
            return
        if was_open:
            LOGGER.info("Connection #%s lost: %s", connection.serial, exc)
        else:
            LOGGER.info("Connection #%s failed before acknowledgment: %s", connection.serial, exc)
        self._drop(exc, was_open)

    def _drop(self, exc: BaseException, was_open: bool) -> None:
        """Report a failed or lost attempt and schedule the next one."""

        if self._on_connection_lost is not None:
            self._on_connection_lost(exc, was_open)
        effects = self._transition(SupervisorEvent.DROPPED)
        if Effect.SCHEDULE_RETRY in effects:
            self._schedule_retry()

    def _acknowledge(self, connection: Connection, raw: RawFrame) -> None:
        connection.session_id = peek_session_id(raw)
        connection.acknowledged = True
        effects = self._transition(SupervisorEvent.ACKNOWLEDGED)
        if Effect.RESET_ATTEMPTS in effects and self._attempt_count:
            LOGGER.info("Attempt count reset from %s", self._attempt_count)
            self._attempt_count = 0
        LOGGER.info("Session acknowledged on connection #%s (session %s)", connection.serial, connection.session_id)
        connection.gate.resolve(connection.session_id)
        interval = float(self._settings.keepalive_interval_seconds or 0)
        if interval > 0:
            connection.keepalive_task = asyncio.get_running_loop().create_task(
                self._keepalive_loop(connection, interval),
                name=f"bridge-keepalive-{connection.serial}",
            )

    # Reconnect schedule

    def _schedule_retry(self) -> None:
        delay_ms = self._backoff.delay(self._attempt_count)
        self._attempt_count += 1
        self._cancel_timer()
        self._timer = asyncio.get_running_loop().call_later(delay_ms / 1000.0, self._fire_retry)
        LOGGER.info("Reconnect attempt %s scheduled in %.0fms", self._attempt_count, delay_ms)
        if self._on_retry_scheduled is not None:
            self._on_retry_scheduled(self._attempt_count, delay_ms)

    def _fire_retry(self) -> None:
        self._timer = None
        if self._shutdown:
            return
        self.start()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
            LOGGER.debug("Pending reconnect timer cancelled")

    # Helpers

    def _transition(self, event: SupervisorEvent) -> tuple[Effect, ...]:
        previous = self._state
        self._state, effects = transition(previous, event)
        if self._state is not previous:
            LOGGER.info("Supervisor %s → %s (%s)", previous.value, self._state.value, event.value)
            if self._on_state_change is not None:
                self._on_state_change(previous, self._state)
        return effects

    def _retire(
        self,
        connection: Connection,
        reason: BaseException,
        *,
        state: ConnectionState = ConnectionState.CLOSED,
    ) -> None:
        if not connection.retired:
            connection.transition(state)
        connection.gate.reject(reason)
        connection.cancel_tasks()

    def _close_in_background(self, connection: Connection) -> None:
        task = asyncio.get_running_loop().create_task(
            self._close(connection),
            name=f"bridge-close-{connection.serial}",
        )
        self._closing.add(task)
        task.add_done_callback(self._closing.discard)

    async def _close(self, connection: Connection) -> None:
        with contextlib.suppress(Exception):
            await connection.transport.close()
        connection.transition(ConnectionState.CLOSED)
        current = asyncio.current_task()
        for task in (connection.reader_task, connection.keepalive_task):
            if task is not None and task is not current:
                with contextlib.suppress(asyncio.CancelledError, Exception):
                    await task

    async def _await_closing(self) -> None:
        if self._closing:
            await asyncio.gather(*list(self._closing), return_exceptions=True)

    def _connect_frame(self) -> ConnectFrame:
        return ConnectFrame(
            client=self._settings.client_name,
            version=self._settings.client_version,
            domain=self._settings.domain,
            capabilities=list(self._settings.capabilities),
        )

    async def _keepalive_loop(self, connection: Connection, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            if connection is not self._connection or connection.retired:
                return
            try:
                await connection.transport.send(encode_frame(PingFrame(id=next_frame_id("ping"))))
            except asyncio.CancelledError:
                raise
            except Exception as exc:  # noqa: BLE001
                LOGGER.info("Keepalive failed on connection #%s: %s", connection.serial, exc)
                self._handle_failure(connection, exc)
                return
