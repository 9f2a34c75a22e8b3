"""Acompanhamento ao vivo dos pedidos.

Um laço asyncio relê os pedidos do visualizador a cada intervalo, troca o
snapshot inteiro e, para a equipe, avisa sobre itens que acabaram de ficar
prontos (somente os que não estavam prontos na leitura anterior).
"""
from __future__ import annotations

import asyncio
import inspect
import logging
import threading
from contextlib import AbstractContextManager
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional

from starlette.concurrency import run_in_threadpool

from order_tracking.core import config
from order_tracking.schemas.order import Order
from order_tracking.schemas.status import STAFF_ROLES, ItemStatus, UserRole
from order_tracking.schemas.tracking import TrackingSnapshot
from order_tracking.services.alerts import ReadyAlert
from order_tracking.services.event_bus import event_bus
from order_tracking.services.order_events import ITEM_READY_ALERT
from order_tracking.services.order_status import is_tracked_item
from order_tracking.services.order_store import OrderStore

logger = logging.getLogger(__name__)

FEED_IDLE = "idle"
FEED_POLLING = "polling"


@dataclass
class ViewerContext:
    role: UserRole
    company_id: Optional[str] = None
    user_id: Optional[str] = None
    name: Optional[str] = None

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    @property
    def has_scope(self) -> bool:
        if self.is_staff:
            return bool(self.company_id)
        return bool(self.user_id)


def ready_alerts_for(orders: Iterable[Order], *, company_id: str | None, detailed_tracking: bool) -> List[ReadyAlert]:
    alerts: dict[str, ReadyAlert] = {}
    for order in orders:
        for item in order.items:
            if item.status != ItemStatus.ready:
                continue
            if not is_tracked_item(item, detailed_tracking=detailed_tracking):
                continue
            alert = ReadyAlert(
                company_id=company_id or order.company_id,
                order_id=order.id,
                product_id=item.product_id,
                item_name=item.name,
            )
            alerts.setdefault(alert.key, alert)
    return list(alerts.values())


class ReadyItemTracker:
    """Guarda o conjunto de itens prontos da última leitura."""

    def __init__(self) -> None:
        self._previous: set[str] = set()

    @property
    def ready_keys(self) -> set[str]:
        return set(self._previous)

    def update(self, current: Iterable[ReadyAlert]) -> List[ReadyAlert]:
        current = list(current)
        fresh = [alert for alert in current if alert.key not in self._previous]
        # Sempre troca o conjunto: pronto -> entregue -> pronto avisa de novo.
        self._previous = {alert.key for alert in current}
        return fresh

    def reset(self) -> None:
        self._previous = set()


class CompanyReadyRegistry:
    """Itens prontos já publicados no event bus, por empresa.

    Várias telas da mesma empresa leem os mesmos pedidos; o alerta do servidor
    (som, métrica) sai uma vez por item, não uma vez por tela aberta.
    """

    def __init__(self) -> None:
        self._trackers: Dict[str, ReadyItemTracker] = {}
        self._lock = threading.Lock()

    def publishable(self, company_id: str, ready: Iterable[ReadyAlert]) -> List[ReadyAlert]:
        with self._lock:
            tracker = self._trackers.setdefault(company_id, ReadyItemTracker())
            return tracker.update(ready)

    def reset(self) -> None:
        with self._lock:
            self._trackers.clear()


ready_registry = CompanyReadyRegistry()


def build_snapshot(store: OrderStore, viewer: ViewerContext) -> tuple[TrackingSnapshot, List[ReadyAlert]]:
    if viewer.is_staff:
        orders = store.get_orders(company_id=viewer.company_id)
    else:
        orders = store.get_orders(user_id=viewer.user_id)
    orders = [order for order in orders if not order.is_archived]

    ready: List[ReadyAlert] = []
    if viewer.is_staff:
        ready = ready_alerts_for(
            orders,
            company_id=viewer.company_id,
            detailed_tracking=store.is_detailed_tracking_enabled(viewer.company_id),
        )

    snapshot = TrackingSnapshot(
        role=viewer.role.value,
        company_id=viewer.company_id,
        user_id=viewer.user_id,
        orders=orders,
        ready_items=[alert.key for alert in ready],
    )
    return snapshot, ready


def emit_ready_alert(alert: ReadyAlert) -> None:
    event_bus.emit(
        ITEM_READY_ALERT,
        {
            "company_id": alert.company_id,
            "order_id": alert.order_id,
            "product_id": alert.product_id,
            "item_name": alert.item_name,
        },
    )


async def _call(callback: Callable[..., Any] | None, *args: Any) -> None:
    if callback is None:
        return
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


class TrackingFeed:
    def __init__(
        self,
        store_scope: Callable[[], AbstractContextManager[OrderStore]],
        context_provider: Callable[[], Optional[ViewerContext]],
        *,
        interval: float | None = None,
        on_snapshot: Callable[[TrackingSnapshot], Any] | None = None,
        on_alert: Callable[[ReadyAlert], Any] | None = None,
        publish_alerts: bool = True,
        registry: CompanyReadyRegistry | None = None,
    ) -> None:
        self._store_scope = store_scope
        self._context_provider = context_provider
        self.interval = config.TRACKING_POLL_INTERVAL_SECONDS if interval is None else interval
        self._on_snapshot = on_snapshot
        self._on_alert = on_alert
        self._publish_alerts = publish_alerts
        self._registry = registry or ready_registry
        self.tracker = ReadyItemTracker()
        self.snapshot: Optional[TrackingSnapshot] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def state(self) -> str:
        if self._task is not None and not self._task.done():
            return FEED_POLLING
        return FEED_IDLE

    def _viewer(self) -> Optional[ViewerContext]:
        viewer = self._context_provider()
        if viewer is None or not viewer.has_scope:
            return None
        return viewer

    def start(self) -> bool:
        if self.state == FEED_POLLING:
            return True
        if self._viewer() is None:
            logger.debug("tracking feed not started: viewer without scope")
            return False
        self._task = asyncio.get_running_loop().create_task(self._run())
        return True

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self.tracker.reset()

    def _read(self, viewer: ViewerContext) -> tuple[TrackingSnapshot, List[ReadyAlert]]:
        with self._store_scope() as store:
            return build_snapshot(store, viewer)

    async def tick(self) -> Optional[TrackingSnapshot]:
        """Uma leitura. Em falha, registra e mantém o estado anterior."""
        viewer = self._viewer()
        if viewer is None:
            return None
        try:
            snapshot, ready = await run_in_threadpool(self._read, viewer)
        except Exception:
            logger.exception(
                "tracking feed tick failed role=%s company_id=%s",
                viewer.role.value,
                viewer.company_id,
            )
            return None

        self.snapshot = snapshot
        await _call(self._on_snapshot, snapshot)

        if viewer.is_staff:
            if self._publish_alerts:
                for alert in self._registry.publishable(viewer.company_id, ready):
                    emit_ready_alert(alert)
            for alert in self.tracker.update(ready):
                await _call(self._on_alert, alert)
        return snapshot

    async def _run(self) -> None:
        while True:
            if self._viewer() is None:
                logger.info("tracking feed idle: viewer lost scope")
                self.tracker.reset()
                return
            try:
                await self.tick()
            except asyncio.CancelledError:
                raise
            except Exception:
                # callbacks do cliente; a próxima leitura segue normalmente
                logger.exception("tracking feed callback failed")
            await asyncio.sleep(self.interval)
