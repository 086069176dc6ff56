"""Live feed engine.

Owns the in-memory message window of one room and its live subscription.
The store is the single source of truth: sends are never inserted locally,
they show up through the next snapshot. Every snapshot replaces the window
wholesale.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime

from pawmap._api import messages as _messages_api
from pawmap.exceptions import EmptyMessageError, FeedDisconnectedError, SendFailedError, UnauthenticatedError
from pawmap.identity import IdentityProvider
from pawmap.models.message import Message
from pawmap.store import DocumentStore, LiveQuery

_logger = logging.getLogger(__name__)

UpdateCallback = Callable[[list[Message]], None]
DisconnectCallback = Callable[[FeedDisconnectedError], None]

_PENDING = datetime.max.replace(tzinfo=UTC)


def build_window(newest_first: list[Message], max_messages: int) -> list[Message]:
    """Derive the display window from a newest-first snapshot.

    Keeps the *max_messages* newest entries and returns them oldest first.
    Messages whose server timestamp is still pending sort as newest; ties
    keep the store's delivery order.
    """
    ascending = list(reversed(newest_first[:max_messages]))
    ascending.sort(key=lambda message: message.created_at or _PENDING)
    return ascending


class FeedSubscription:
    """Cancellation handle returned by :meth:`LiveFeed.subscribe`.

    Calling the handle (or :meth:`cancel`) stops delivery immediately and
    closes the live query. Cancelling more than once is a no-op.
    """

    def __init__(
        self,
        on_update: UpdateCallback,
        max_messages: int,
        on_disconnect: DisconnectCallback | None,
    ) -> None:
        self._on_update = on_update
        self._on_disconnect = on_disconnect
        self.max_messages = max_messages
        self._live: LiveQuery | None = None
        self._active = True
        self.disconnected: FeedDisconnectedError | None = None

    @property
    def active(self) -> bool:
        return self._active

    def _attach(self, live: LiveQuery) -> None:
        if self._active:
            self._live = live
        else:
            live.close()

    def _deliver(self, window: list[Message]) -> bool:
        if not self._active:
            return False
        self._on_update(window)
        return True

    def _disconnect(self, error: FeedDisconnectedError) -> None:
        if not self._active:
            return
        self.disconnected = error
        self.cancel()
        if self._on_disconnect is not None:
            self._on_disconnect(error)
        else:
            _logger.warning("Live feed disconnected: %s", error)

    def cancel(self) -> None:
        if not self._active:
            return
        self._active = False
        live = self._live
        self._live = None
        if live is not None:
            live.close()

    def __call__(self) -> None:
        self.cancel()


class LiveFeed:
    """Real-time ordered message feed.

    Usage::

        feed = LiveFeed(store, identity)
        unsubscribe = feed.subscribe(render)
        await feed.send("hello")
        unsubscribe()
    """

    def __init__(
        self,
        store: DocumentStore,
        identity: IdentityProvider,
        *,
        collection: str = "chat_messages",
        max_messages: int = 100,
    ) -> None:
        self._store = store
        self._identity = identity
        self._collection = collection
        self._max_messages = max_messages
        self._window: list[Message] = []
        self._subscription: FeedSubscription | None = None

    @property
    def window(self) -> list[Message]:
        """Current window, oldest first."""
        return list(self._window)

    @property
    def subscription(self) -> FeedSubscription | None:
        return self._subscription

    async def send(self, text: str) -> str:
        """Post *text* as the current actor and return the new message id.

        Raises
        ------
        UnauthenticatedError
            No actor is signed in.
        EmptyMessageError
            *text* is blank after trimming.
        SendFailedError
            The store rejected the write or was unreachable. Not retried.
        """
        actor = self._identity.current_actor()
        if actor is None:
            raise UnauthenticatedError("Sign in to post messages")
        body = (text or "").strip()
        if not body:
            raise EmptyMessageError("Message text is empty")

        try:
            return await _messages_api.append_message(self._store, self._collection, actor, body)
        except Exception as exc:
            _logger.debug("Message send failed", exc_info=True)
            raise SendFailedError(f"Could not send message: {exc}", cause=exc) from exc

    def subscribe(
        self,
        on_update: UpdateCallback,
        max_messages: int | None = None,
        *,
        on_disconnect: DisconnectCallback | None = None,
    ) -> FeedSubscription:
        """Start the live subscription, replacing any existing one.

        *on_update* receives the complete window (oldest first, at most
        *max_messages* entries) after every change. If the live query fails,
        the subscription stops and *on_disconnect* is called once with a
        :class:`FeedDisconnectedError`; it is not re-established
        automatically.
        """
        limit = max_messages if max_messages is not None else self._max_messages
        if limit <= 0:
            raise ValueError(f"max_messages must be positive, got {limit}")

        subscription = FeedSubscription(on_update, limit, on_disconnect)

        def _on_messages(newest_first: list[Message]) -> None:
            if not subscription.active:
                return
            window = build_window(newest_first, subscription.max_messages)
            self._window = window
            subscription._deliver(list(window))

        def _on_error(error: BaseException) -> None:
            subscription._disconnect(FeedDisconnectedError(f"Live feed terminated: {error}", cause=error))

        # Opened before touching the current subscription so a failure leaves it in place.
        live = _messages_api.watch_latest_messages(
            self._store,
            self._collection,
            limit,
            on_messages=_on_messages,
            on_error=_on_error,
        )

        previous = self._subscription
        if previous is not None and previous.active:
            _logger.debug("Replacing existing feed subscription")
            previous.cancel()
        self._subscription = subscription
        subscription._attach(live)
        return subscription

    def unsubscribe(self) -> None:
        """Cancel the current subscription, if any."""
        if self._subscription is not None:
            self._subscription.cancel()
