"""Broadcast fan-out to connected push subscribers."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from threading import Lock
from typing import Any, Callable, Dict, List, Optional, Protocol
from uuid import uuid4

from models.errors import DeliveryFailure, EngineStateError
from models.records import SensorSnapshot, utc_now

logger = logging.getLogger(__name__)

SENSOR_DATA_EVENT = "sensor-data"


class Connection(Protocol):
    """Transport a subscriber is reached through (a Starlette WebSocket fits)."""

    async def send_json(self, data: Any) -> None: ...

    async def close(self, code: int = 1000) -> None: ...


@dataclass
class Subscriber:
    subscriber_id: str
    connection: Connection
    queue: "asyncio.Queue[Dict[str, Any]]"
    joined_at: datetime = field(default_factory=utc_now)
    task: Optional["asyncio.Task[None]"] = None


def sensor_data_event(snapshot: SensorSnapshot) -> Dict[str, Any]:
    return {"event": SENSOR_DATA_EVENT, "data": snapshot.to_payload()}


class SubscriberHub:
    """Tracks live subscribers and delivers every snapshot to each of them.

    Every subscriber gets a bounded outbound queue drained by its own task, and
    each send is bounded by ``send_timeout``. A subscriber whose queue is full
    or whose send fails is dropped; nobody else is affected.
    """

    def __init__(
        self,
        snapshot_source: Callable[[], SensorSnapshot],
        *,
        queue_size: int = 16,
        send_timeout: float = 1.0,
    ) -> None:
        if queue_size <= 0:
            raise ValueError("Subscriber queue size must be positive.")
        self._snapshot_source = snapshot_source
        self._queue_size = queue_size
        self._send_timeout = send_timeout
        self._members: Dict[str, Subscriber] = {}
        self._lock = Lock()
        self._closing_tasks: set[asyncio.Task[None]] = set()
        self._closed = False

    def __contains__(self, subscriber_id: object) -> bool:
        with self._lock:
            return subscriber_id in self._members

    def __len__(self) -> int:
        with self._lock:
            return len(self._members)

    @property
    def closed(self) -> bool:
        return self._closed

    def subscriber_ids(self) -> List[str]:
        with self._lock:
            return list(self._members)

    async def join(self, connection: Connection) -> str:
        """Register a connection and queue the current snapshot as its first payload."""
        if self._closed:
            raise EngineStateError("Subscriber hub is closed.")

        subscriber = Subscriber(
            subscriber_id=uuid4().hex,
            connection=connection,
            queue=asyncio.Queue(maxsize=self._queue_size),
        )
        # Queued before registration, so no broadcast can overtake it.
        subscriber.queue.put_nowait(sensor_data_event(self._snapshot_source()))
        with self._lock:
            self._members[subscriber.subscriber_id] = subscriber
            count = len(self._members)
        subscriber.task = asyncio.get_running_loop().create_task(
            self._deliver(subscriber), name=f"subscriber-{subscriber.subscriber_id}"
        )
        logger.info(
            "Subscriber joined",
            extra={"subscriber_id": subscriber.subscriber_id, "subscriber_count": count},
        )
        return subscriber.subscriber_id

    def leave(self, subscriber_id: str) -> None:
        """Remove a subscriber; unknown or already removed ids are ignored."""
        subscriber = self._remove(subscriber_id)
        if subscriber is None:
            return
        self._cancel_delivery(subscriber)
        logger.info(
            "Subscriber left",
            extra={"subscriber_id": subscriber_id, "subscriber_count": len(self)},
        )

    def broadcast(self, snapshot: SensorSnapshot) -> int:
        """Queue the snapshot for every member; return how many accepted it."""
        if self._closed:
            return 0
        payload = sensor_data_event(snapshot)
        with self._lock:
            members = list(self._members.values())

        delivered = 0
        for subscriber in members:
            try:
                subscriber.queue.put_nowait(payload)
            except asyncio.QueueFull:
                self._drop(subscriber.subscriber_id, reason="outbound queue full")
                continue
            delivered += 1
        return delivered

    async def close(self) -> None:
        """Stop all delivery and close every live connection."""
        self._closed = True
        with self._lock:
            members = list(self._members.values())
            self._members.clear()

        tasks = [subscriber.task for subscriber in members if subscriber.task is not None]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        for subscriber in members:
            await self._close_connection(subscriber)
        if self._closing_tasks:
            await asyncio.gather(*list(self._closing_tasks), return_exceptions=True)
        logger.info("Subscriber hub closed", extra={"subscriber_count": len(members)})

    async def _deliver(self, subscriber: Subscriber) -> None:
        try:
            while True:
                payload = await subscriber.queue.get()
                await self._send(subscriber, payload)
        except DeliveryFailure as exc:
            self._drop(subscriber.subscriber_id, reason=exc.reason)

    async def _send(self, subscriber: Subscriber, payload: Dict[str, Any]) -> None:
        try:
            await asyncio.wait_for(
                subscriber.connection.send_json(payload), timeout=self._send_timeout
            )
        except asyncio.TimeoutError as exc:
            raise DeliveryFailure(subscriber.subscriber_id, "send timed out") from exc
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            reason = str(exc) or type(exc).__name__
            raise DeliveryFailure(subscriber.subscriber_id, reason) from exc

    def _remove(self, subscriber_id: str) -> Optional[Subscriber]:
        with self._lock:
            return self._members.pop(subscriber_id, None)

    def _drop(self, subscriber_id: str, reason: str) -> None:
        subscriber = self._remove(subscriber_id)
        if subscriber is None:
            return
        logger.warning(
            "Dropping subscriber",
            extra={
                "subscriber_id": subscriber_id,
                "reason": reason,
                "subscriber_count": len(self),
            },
        )
        self._cancel_delivery(subscriber)
        task = asyncio.get_running_loop().create_task(self._close_connection(subscriber))
        self._closing_tasks.add(task)
        task.add_done_callback(self._closing_tasks.discard)

    @staticmethod
    def _cancel_delivery(subscriber: Subscriber) -> None:
        task = subscriber.task
        if task is None or task.done():
            return
        if task is asyncio.current_task():
            return
        task.cancel()

    async def _close_connection(self, subscriber: Subscriber) -> None:
        try:
            await asyncio.wait_for(subscriber.connection.close(), timeout=self._send_timeout)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.debug(
                "Closing subscriber connection failed",
                extra={"subscriber_id": subscriber.subscriber_id, "reason": repr(exc)},
            )
