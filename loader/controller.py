"""
ResourceLoader: owns the lifecycle of one remote-collection fetch.

trigger() -> Loading -> fetch -> on_response / on_failure -> on_parsed
                                 -> Success | Empty | Failed

Every dispatched request gets a sequence number. Callbacks carrying a number
other than the latest one are dropped, so a slow earlier request can never
overwrite the outcome of a newer one. A new trigger while Loading supersedes
the request in flight.
"""

import asyncio
import json
from typing import Any, Callable, Iterable, List, Mapping, Optional, Sequence, Set

import structlog

from .config import Config
from .errors import LoaderError, ParseError, StatusError
from .fetcher import FetchResult, HTTPFetcher
from .state import Empty, Failed, FailureKind, Idle, Loading, LoadState, Success

logger = structlog.get_logger(__name__)

Listener = Callable[[LoadState], None]


class ResourceLoader:
    def __init__(
        self,
        fetcher,
        url: str,
        items_key: str = 'items',
        total_key: str = 'total',
        fallback_items: Optional[Iterable[Mapping[str, Any]]] = None
    ):
        """
        Args:
            fetcher: Object with an async fetch(url) returning a FetchResult and
                     raising LoaderError when the request cannot complete.
            url: Remote collection endpoint.
            items_key: Payload key holding the collection.
            total_key: Payload key holding the total count.
            fallback_items: When given, failures publish these items as a
                            degraded Success/Empty instead of Failed.
        """
        self.fetcher = fetcher
        self.url = url
        self.items_key = items_key
        self.total_key = total_key
        self._fallback = tuple(fallback_items) if fallback_items is not None else None
        self._state: LoadState = Idle()
        self._request_id = 0
        self._listeners: List[Listener] = []
        self._tasks: Set[asyncio.Task] = set()

    @classmethod
    def from_config(cls, config: Config, fetcher=None) -> 'ResourceLoader':
        source = config.source
        url = source.get('url')
        if not url:
            raise ValueError("source.url is not configured")

        fallback = config.fallback
        fallback_items = None
        if fallback.get('enabled', False):
            fallback_items = fallback.get('items') or []

        return cls(
            fetcher=fetcher if fetcher is not None else HTTPFetcher.from_config(config.fetcher),
            url=url,
            items_key=source.get('items_key', 'items'),
            total_key=source.get('total_key', 'total'),
            fallback_items=fallback_items
        )

    @property
    def request_id(self) -> int:
        """Sequence number of the most recently dispatched request."""
        return self._request_id

    def current_state(self) -> LoadState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call `listener` with every newly published state. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def trigger(self) -> asyncio.Task:
        """Publish Loading and dispatch a new request on the running loop.

        Raises RuntimeError when called outside a running event loop.
        """
        loop = asyncio.get_running_loop()

        self._request_id += 1
        request_id = self._request_id
        self._publish(Loading())
        logger.info("request_started", url=self.url, request_id=request_id)

        task = loop.create_task(self._load(request_id))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def refresh(self) -> LoadState:
        """Trigger a request and wait for it to settle."""
        await self.trigger()
        return self.current_state()

    async def _load(self, request_id: int):
        try:
            raw = await self.fetcher.fetch(self.url)
        except LoaderError as e:
            self.on_failure(e, request_id)
        except Exception as e:
            logger.error("request_crashed",
                         url=self.url,
                         request_id=request_id,
                         error=str(e),
                         exc_info=True)
            self.on_failure(e, request_id)
        else:
            try:
                self.on_response(raw, request_id)
            except Exception as e:
                logger.error("response_handling_crashed",
                             url=self.url,
                             request_id=request_id,
                             error=str(e),
                             exc_info=True)
                self.on_failure(e, request_id)

    def on_response(self, raw: FetchResult, request_id: Optional[int] = None):
        """Validate a completed response and hand the decoded payload to on_parsed."""
        if not self._accepts(request_id, "response"):
            return

        if not raw.success:
            self.on_failure(StatusError(raw.status_code), request_id)
            return

        try:
            collection, total = self._decode(raw)
        except ParseError as e:
            self.on_failure(e, request_id)
            return

        self.on_parsed(collection, total, request_id)

    def on_parsed(self, collection: Sequence[Mapping[str, Any]], total: int, request_id: Optional[int] = None):
        if not self._accepts(request_id, "parsed"):
            return
        self._publish(self._settle(collection, total))

    def on_failure(self, err: Exception, request_id: Optional[int] = None):
        """Turn a failed request into Failed, or into fallback data when configured."""
        if not self._accepts(request_id, "failure"):
            return

        failed = self._describe(err)

        if self._fallback is not None:
            logger.warning("serving_fallback_data",
                           url=self.url,
                           request_id=self._request_id,
                           reason=failed.message,
                           fallback_items=len(self._fallback))
            self._publish(self._settle(self._fallback, len(self._fallback), reason=failed.message))
            return

        logger.warning("request_failed",
                       url=self.url,
                       request_id=self._request_id,
                       kind=failed.kind.value,
                       error=failed.message)
        self._publish(failed)

    def _accepts(self, request_id: Optional[int], event: str) -> bool:
        """Only the latest request may settle, and only once."""
        latest = self._request_id
        if request_id is not None and request_id != latest:
            logger.debug("request_superseded", request_id=request_id, latest=latest, callback=event)
            return False
        if not isinstance(self._state, Loading):
            logger.debug("request_not_in_flight",
                         request_id=latest,
                         status=self._state.status,
                         callback=event)
            return False
        return True

    def _decode(self, raw: FetchResult):
        try:
            payload = json.loads(raw.text)
        except (ValueError, LookupError, RecursionError) as e:
            raise ParseError(f"Failed to parse response body: {e}") from e

        if not isinstance(payload, dict):
            raise ParseError(f"Expected a JSON object, got {type(payload).__name__}")

        items = payload.get(self.items_key)
        if not isinstance(items, list):
            raise ParseError(f"Expected a list under '{self.items_key}'")

        total = payload.get(self.total_key, len(items))
        if isinstance(total, bool) or not isinstance(total, int):
            raise ParseError(f"Expected an integer under '{self.total_key}', got {total!r}")

        return items, total

    def _settle(self, collection, total: int, reason: Optional[str] = None) -> LoadState:
        items = tuple(collection)
        degraded = reason is not None
        if not items:
            return Empty(total=total, degraded=degraded, reason=reason)
        return Success(items=items, total=total, degraded=degraded, reason=reason)

    def _describe(self, err: Exception) -> Failed:
        if isinstance(err, LoaderError):
            return Failed(
                message=err.message,
                kind=err.kind,
                status_code=getattr(err, 'status_code', None)
            )
        message = str(err)
        if message:
            message = f"{type(err).__name__}: {message}"
        else:
            message = type(err).__name__
        return Failed(message=message, kind=FailureKind.TRANSPORT)

    def _publish(self, state: LoadState):
        self._state = state
        logger.info("state_published", status=state.status, request_id=self._request_id)

        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception as e:
                logger.error("listener_failed",
                             status=state.status,
                             error=str(e),
                             exc_info=True)

    @property
    def in_flight(self) -> int:
        """Number of dispatched requests that have not finished, superseded ones included."""
        return len(self._tasks)

    async def aclose(self):
        """Cancel unfinished requests, then release the fetcher's connections."""
        pending = list(self._tasks)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._tasks.clear()

        close = getattr(self.fetcher, 'aclose', None)
        if close is not None:
            await close()
