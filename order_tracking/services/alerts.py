from __future__ import annotations

import logging
import shlex
import subprocess
from dataclasses import dataclass
from typing import Protocol

from order_tracking.core import config

logger = logging.getLogger(__name__)


@dataclass
class ReadyAlert:
    company_id: str | None
    order_id: str
    product_id: str
    item_name: str | None = None

    @property
    def key(self) -> str:
        return f"{self.order_id}-{self.product_id}"


class AlertPlayer(Protocol):
    def play(self, alert: ReadyAlert) -> None:
        ...


class LogAlertPlayer:
    def play(self, alert: ReadyAlert) -> None:
        logger.info(
            "ready alert company_id=%s order_id=%s product_id=%s",
            alert.company_id,
            alert.order_id,
            alert.product_id,
        )


class CommandAlertPlayer:
    """Toca o som chamando um comando externo (ex.: ``aplay``)."""

    def __init__(self, command: str, sound_file: str = "") -> None:
        self.args = shlex.split(command)
        if sound_file:
            self.args.append(sound_file)
        self._running: list[subprocess.Popen] = []

    @property
    def running(self) -> int:
        return len(self._running)

    def reap(self) -> None:
        """Recolhe os processos que já terminaram."""
        self._running = [process for process in self._running if process.poll() is None]

    def play(self, alert: ReadyAlert) -> None:
        self.reap()
        process = subprocess.Popen(self.args, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
        self._running.append(process)


def build_alert_player() -> AlertPlayer:
    if config.ALERT_SOUND_COMMAND:
        return CommandAlertPlayer(config.ALERT_SOUND_COMMAND, config.ALERT_SOUND_FILE)
    return LogAlertPlayer()


_player: AlertPlayer | None = None


def get_alert_player() -> AlertPlayer:
    global _player
    if _player is None:
        _player = build_alert_player()
    return _player


def set_alert_player(player: AlertPlayer | None) -> None:
    global _player
    _player = player


def play_alert(alert: ReadyAlert, player: AlertPlayer | None = None) -> bool:
    """Dispara e esquece: falha ao tocar nunca interrompe o acompanhamento."""
    try:
        (player or get_alert_player()).play(alert)
    except Exception:
        logger.debug("ready alert playback failed order_id=%s", alert.order_id, exc_info=True)
        return False
    return True
