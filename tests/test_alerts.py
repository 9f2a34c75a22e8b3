from __future__ import annotations

from order_tracking.core.metrics import request_metrics
from order_tracking.services import alerts
from order_tracking.services.alerts import CommandAlertPlayer, LogAlertPlayer, ReadyAlert, play_alert

ALERT = ReadyAlert(company_id="company-alerts", order_id="1000", product_id="1", item_name="Hambúrguer")


class RecordingPlayer:
    def __init__(self) -> None:
        self.played: list[ReadyAlert] = []

    def play(self, alert: ReadyAlert) -> None:
        self.played.append(alert)


class BrokenPlayer:
    def play(self, alert: ReadyAlert) -> None:
        raise RuntimeError("audio device busy")


def test_play_alert_swallows_player_failures() -> None:
    assert play_alert(ALERT, BrokenPlayer()) is False


def test_play_alert_uses_given_player() -> None:
    player = RecordingPlayer()

    assert play_alert(ALERT, player) is True
    assert player.played == [ALERT]


def test_command_player_failure_is_swallowed(monkeypatch) -> None:
    def fail_popen(*_args, **_kwargs):
        raise OSError("aplay not found")

    monkeypatch.setattr(alerts.subprocess, "Popen", fail_popen)
    player = CommandAlertPlayer("aplay -q", "/tmp/ding.wav")

    assert player.args == ["aplay", "-q", "/tmp/ding.wav"]
    assert play_alert(ALERT, player) is False


class FakeProcess:
    def __init__(self) -> None:
        self.returncode = None

    def poll(self):
        return self.returncode


def test_command_player_reaps_finished_processes(monkeypatch) -> None:
    started: list[FakeProcess] = []

    def fake_popen(*_args, **_kwargs):
        started.append(FakeProcess())
        return started[-1]

    monkeypatch.setattr(alerts.subprocess, "Popen", fake_popen)
    player = CommandAlertPlayer("aplay -q")

    player.play(ALERT)
    player.play(ALERT)
    assert player.running == 2

    started[0].returncode = 0
    player.play(ALERT)
    assert player.running == 2

    for process in started:
        process.returncode = 0
    player.reap()
    assert player.running == 0


def test_default_player_is_log_only_without_command(monkeypatch) -> None:
    monkeypatch.setattr(alerts.config, "ALERT_SOUND_COMMAND", "")

    assert isinstance(alerts.build_alert_player(), LogAlertPlayer)


def test_ready_alert_handler_plays_and_counts(monkeypatch) -> None:
    from order_tracking.services.event_handlers import handle_item_ready

    player = RecordingPlayer()
    alerts.set_alert_player(player)
    try:
        before = request_metrics.snapshot_per_company().get("company-alerts", {}).get("ready_alerts", 0)
        handle_item_ready(
            {"company_id": "company-alerts", "order_id": "1000", "product_id": "1", "item_name": "Hambúrguer"}
        )
    finally:
        alerts.set_alert_player(None)

    assert [alert.key for alert in player.played] == ["1000-1"]
    assert request_metrics.snapshot_per_company()["company-alerts"]["ready_alerts"] == before + 1
