"""
Wallet notifications for external observers (audit, UI, alerting).

Events are never consumed by the wallet itself. Each event is:
- written as a structured log line (`event_type` = event name)
- kept in an in-process history (append-only)
- fanned out to registered subscribers after the operation has committed
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict

from custody.common.logging import log_event

from .models import utc_now

logger = logging.getLogger(__name__)

PROPOSAL_CREATED = "proposal.created"
PROPOSAL_EXECUTED = "proposal.executed"
PROPOSAL_STATUS_CHANGED = "proposal.status_changed"
FUNDS_RECEIVED = "funds.received"
FUNDS_RELEASED = "funds.released"


class WalletEvent(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    event_type: str = Field(..., min_length=1)
    at: datetime = Field(default_factory=utc_now)
    data: Dict[str, Any] = Field(default_factory=dict)

    def to_log_fields(self) -> Dict[str, Any]:
        return {"at": self.at.isoformat(), **self.data}


Subscriber = Callable[[WalletEvent], None]


class EventBus:
    def __init__(self, *, wallet_name: Optional[str] = None) -> None:
        self._wallet_name = wallet_name
        self._mu = threading.Lock()
        self._subscribers: List[Subscriber] = []
        self._history: List[WalletEvent] = []

    @property
    def wallet_name(self) -> Optional[str]:
        return self._wallet_name

    @wallet_name.setter
    def wallet_name(self, name: Optional[str]) -> None:
        self._wallet_name = name

    def subscribe(self, fn: Subscriber) -> Callable[[], None]:
        """Register `fn`; returns an unsubscribe callable."""
        with self._mu:
            self._subscribers.append(fn)

        def _unsubscribe() -> None:
            with self._mu:
                if fn in self._subscribers:
                    self._subscribers.remove(fn)

        return _unsubscribe

    @property
    def history(self) -> List[WalletEvent]:
        with self._mu:
            return list(self._history)

    def emit(self, event_type: str, **data: Any) -> WalletEvent:
        event = WalletEvent(event_type=event_type, data=data)
        with self._mu:
            self._history.append(event)
            subscribers = list(self._subscribers)

        log_event(logger, event_type, wallet=self._wallet_name, **event.to_log_fields())

        for fn in subscribers:
            try:
                fn(event)
            except Exception:
                # The operation already committed; a broken observer must not undo it.
                logger.exception("wallet.subscriber_failed event_type=%s subscriber=%r", event_type, fn)
        return event
