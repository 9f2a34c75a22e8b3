"""Leitor de QR Code por câmera para o balcão de validação.

A câmera só fica aberta enquanto o leitor está ativo e é liberada sempre:
ao ler um código, ao cancelar, em erro ou ao digitar o código manualmente.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Optional, Protocol

from order_tracking.services.errors import CameraUnavailable

logger = logging.getLogger(__name__)

STATE_IDLE = "idle"
STATE_SCANNING = "scanning"
STATE_DECODED = "decoded"
STATE_ERROR = "error"
STATE_CLOSED = "closed"


class CameraSource(Protocol):
    def read_frame(self) -> Any:
        ...

    def release(self) -> None:
        ...


FrameDecoder = Callable[[Any], Optional[str]]


class ReceiptScanner:
    def __init__(
        self,
        camera_factory: Callable[[], CameraSource],
        decoder: FrameDecoder,
        on_decode: Callable[[str], Any],
        *,
        on_close: Callable[[], Any] | None = None,
        frame_interval: float = 0.05,
    ) -> None:
        self._camera_factory = camera_factory
        self._decoder = decoder
        self._on_decode = on_decode
        self._on_close = on_close
        self._frame_interval = frame_interval
        self._camera: Optional[CameraSource] = None
        self._cancelled = False
        self.state = STATE_IDLE
        self.error: Optional[str] = None

    @property
    def camera_active(self) -> bool:
        return self._camera is not None

    def _acquire(self) -> CameraSource:
        try:
            camera = self._camera_factory()
        except CameraUnavailable:
            raise
        except Exception as exc:
            logger.warning("camera acquisition failed: %s", exc)
            raise CameraUnavailable() from exc
        self._camera = camera
        return camera

    def _release(self) -> None:
        camera, self._camera = self._camera, None
        if camera is None:
            return
        try:
            camera.release()
        except Exception:
            logger.debug("camera release failed", exc_info=True)

    async def run(self) -> Optional[str]:
        """Lê quadros até decodificar um código ou ser cancelado."""
        self._cancelled = False
        self.error = None
        try:
            camera = self._acquire()
        except CameraUnavailable as exc:
            self.state = STATE_ERROR
            self.error = exc.message
            return None

        self.state = STATE_SCANNING
        try:
            while not self._cancelled:
                try:
                    payload = self._decoder(camera.read_frame())
                except Exception:
                    # quadro ilegível: tenta o próximo
                    logger.debug("frame decode failed", exc_info=True)
                    payload = None
                if payload:
                    self._release()
                    self.state = STATE_DECODED
                    self._on_decode(payload)
                    return payload
                await asyncio.sleep(self._frame_interval)
        finally:
            self._release()

        if self.state == STATE_SCANNING:
            self.state = STATE_CLOSED
        return None

    async def retry(self) -> Optional[str]:
        return await self.run()

    def cancel(self) -> None:
        self._cancelled = True
        self._release()
        self.state = STATE_CLOSED
        if self._on_close:
            self._on_close()

    def submit_manual(self, code: str) -> Optional[str]:
        code = (code or "").strip()
        if not code:
            return None
        self._cancelled = True
        self._release()
        self.state = STATE_DECODED
        self._on_decode(code)
        return code
