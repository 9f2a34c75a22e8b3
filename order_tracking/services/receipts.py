"""Comprovante do pedido (QR Code) e validação pela equipe.

O token é ``ORDER-RECEIPT-<order_id>``. A validação só procura o pedido
entre os pedidos visíveis para quem está validando (empresa e não arquivados).
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from io import BytesIO
from typing import Callable, Iterable, List, Optional

import qrcode
from qrcode.constants import ERROR_CORRECT_H

from order_tracking.core import config
from order_tracking.schemas.order import Actor, Order
from order_tracking.schemas.status import ItemStatus
from order_tracking.services.errors import InvalidToken, OrderNotFound, TrackingError
from order_tracking.services.order_store import OrderStore

logger = logging.getLogger(__name__)

RECEIPT_PREFIX = "ORDER-RECEIPT-"

# Itens entregues na validação; "preparing" continua na cozinha.
DELIVERABLE_ON_RECEIPT = {ItemStatus.pending, ItemStatus.ready}


def build_receipt_token(order_id: str) -> str:
    return f"{RECEIPT_PREFIX}{order_id}"


def parse_receipt_token(raw: str) -> str:
    if not isinstance(raw, str) or not raw.startswith(RECEIPT_PREFIX):
        raise InvalidToken()
    order_id = raw[len(RECEIPT_PREFIX):]
    if not order_id:
        raise InvalidToken()
    return order_id


def render_receipt_qr(order_id: str, *, box_size: int = 10, border: int = 4) -> bytes:
    """PNG do QR Code do comprovante (correção de erro nível H)."""
    qr = qrcode.QRCode(error_correction=ERROR_CORRECT_H, box_size=box_size, border=border)
    qr.add_data(build_receipt_token(order_id))
    qr.make(fit=True)
    image = qr.make_image(fill_color="black", back_color="white")
    buffer = BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def receipt_success_message(order_id: str) -> str:
    return f"Pedido #{order_id[-4:]} validado e entregue!"


@dataclass
class ReceiptValidationResult:
    order_id: str
    message: str
    delivered_items: List[int] = field(default_factory=list)
    order: Optional[Order] = None


def validate_receipt(
    store: OrderStore,
    raw: str,
    visible_orders: Iterable[Order],
    actor: Actor | None = None,
) -> ReceiptValidationResult:
    order_id = parse_receipt_token(raw)
    order = next((candidate for candidate in visible_orders if candidate.id == order_id), None)
    if order is None:
        logger.info("receipt validation: order not visible order_id=%s", order_id)
        raise OrderNotFound(order_id)

    delivered: List[int] = []
    latest = order
    for index, item in enumerate(order.items):
        if item.status in DELIVERABLE_ON_RECEIPT:
            latest = store.update_order_item_status(order_id, index, ItemStatus.delivered, actor=actor)
            delivered.append(index)

    logger.info(
        "receipt validated order_id=%s delivered_items=%s",
        order_id,
        delivered,
        extra={"order_id": order_id},
    )
    return ReceiptValidationResult(
        order_id=order_id,
        message=receipt_success_message(order_id),
        delivered_items=delivered,
        order=latest,
    )


@dataclass
class ReceiptFeedback:
    ok: bool
    message: str
    shown_at: float
    order_id: Optional[str] = None


class ReceiptValidationDesk:
    """Balcão de validação: campo de código, botão validar e aviso temporário."""

    def __init__(
        self,
        validate: Callable[[str], ReceiptValidationResult],
        *,
        feedback_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._validate = validate
        self._clock = clock
        self.feedback_seconds = (
            config.RECEIPT_FEEDBACK_SECONDS if feedback_seconds is None else feedback_seconds
        )
        self.input = ""
        self._feedback: Optional[ReceiptFeedback] = None

    def type_code(self, value: str) -> None:
        self.input = value

    def on_decode(self, payload: str) -> ReceiptFeedback:
        self.input = payload
        return self.submit()

    def submit(self, code: str | None = None) -> ReceiptFeedback:
        raw = code if code is not None else self.input
        try:
            result = self._validate(raw)
            feedback = ReceiptFeedback(
                ok=True,
                message=result.message,
                shown_at=self._clock(),
                order_id=result.order_id,
            )
        except TrackingError as exc:
            feedback = ReceiptFeedback(ok=False, message=exc.message, shown_at=self._clock())
        self.input = ""
        self._feedback = feedback
        return feedback

    @property
    def feedback(self) -> Optional[ReceiptFeedback]:
        if self._feedback and self._clock() - self._feedback.shown_at >= self.feedback_seconds:
            self._feedback = None
        return self._feedback
