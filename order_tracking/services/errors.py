from __future__ import annotations


class TrackingError(Exception):
    """Erro de domínio do acompanhamento de pedidos."""

    message = "Erro no acompanhamento de pedidos"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        self.message = message or self.message


class InvalidToken(TrackingError):
    message = "QR Code inválido!"


class OrderNotFound(TrackingError):
    message = "Pedido não encontrado!"

    def __init__(self, order_id: str | None = None) -> None:
        super().__init__()
        self.order_id = order_id


class ItemNotFound(TrackingError):
    message = "Item não encontrado no pedido"

    def __init__(self, order_id: str, item_index: int) -> None:
        super().__init__()
        self.order_id = order_id
        self.item_index = item_index


class InvalidTransition(TrackingError):
    def __init__(self, current, target) -> None:
        current_value = getattr(current, "value", current)
        target_value = getattr(target, "value", target)
        super().__init__(f"Transição inválida: {current_value} -> {target_value}")
        self.current = current
        self.target = target


class ConcurrentModification(TrackingError):
    message = "Pedido alterado por outra pessoa. Atualize e tente novamente."

    def __init__(self, order_id: str, expected_version: int | None, current_version: int | None) -> None:
        super().__init__()
        self.order_id = order_id
        self.expected_version = expected_version
        self.current_version = current_version


class StoreUnavailable(TrackingError):
    message = "Falha ao gravar o pedido"


class CameraUnavailable(TrackingError):
    message = "Não foi possível acessar a câmera. Verifique as permissões."
