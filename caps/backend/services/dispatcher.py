from __future__ import annotations

import logging
from typing import Callable, List, Protocol, Tuple

from caps.core.data_models import CommandResponse, HistoryItem, HistoryKind
from caps.core.errors import ConnectivityError, DispatchInProgressError

logger = logging.getLogger("caps.backend.dispatcher")

CONNECTIVITY_ERROR_MESSAGE = "Failed to connect to CAPS server."

HistoryListener = Callable[[HistoryItem], None]


class CommandService(Protocol):
    async def submit_command(self, transcript: str) -> CommandResponse: ...


class SessionHistoryStore:
    """Append-only log of interaction turns for the current session."""

    def __init__(self) -> None:
        self._items: List[HistoryItem] = []
        self._listeners: List[HistoryListener] = []

    def __len__(self) -> int:
        return len(self._items)

    def items(self) -> Tuple[HistoryItem, ...]:
        return tuple(self._items)

    def subscribe(self, listener: HistoryListener) -> Callable[[], None]:
        """Register a callback run after every append. Returns an unsubscribe hook."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def append(self, item: HistoryItem) -> HistoryItem:
        self._items.append(item)
        for listener in list(self._listeners):
            try:
                listener(item)
            except Exception:  # noqa: BLE001
                logger.exception("History listener %r failed", listener)
        return item


class CommandDispatcher:
    """Submits transcripts one at a time and records each outcome in the history."""

    def __init__(self, service: CommandService, history: SessionHistoryStore):
        self._service = service
        self.history = history
        self._in_flight = False

    @property
    def processing(self) -> bool:
        return self._in_flight

    async def submit(self, transcript: str) -> CommandResponse:
        """
        Send one transcript to the command service.

        A USER turn is recorded before the call, then either a SYSTEM turn with
        the response or an ERROR turn with a fixed message.

        Raises:
            DispatchInProgressError: another submission is still outstanding
            ConnectivityError: the command service call failed
        """
        if self._in_flight:
            raise DispatchInProgressError("A command is already being processed.")

        self._in_flight = True
        try:
            self.history.append(HistoryItem(kind=HistoryKind.USER, text=transcript))
            try:
                response = await self._service.submit_command(transcript)
            except Exception as exc:  # noqa: BLE001
                self.history.append(HistoryItem(kind=HistoryKind.ERROR, text=CONNECTIVITY_ERROR_MESSAGE))
                if isinstance(exc, ConnectivityError):
                    raise
                logger.error("Command service raised %s: %s", type(exc).__name__, exc)
                raise ConnectivityError(str(exc)) from exc

            self.history.append(HistoryItem(kind=HistoryKind.SYSTEM, response=response))
            logger.info(
                "Command processed: decision=%s intent=%s status=%s",
                response.policy_decision,
                response.intent.intent_type if response.intent else None,
                response.status,
            )
            return response
        finally:
            self._in_flight = False

