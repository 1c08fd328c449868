import threading

import pytest

from bridge import GamepadBridge
from bus.publisher import MessagePublisher
from core.errors import DeviceDisconnected, DeviceNotFound, PublishError
from core.events import AxisChanged, ButtonChanged, Disconnected
from core.message import decode
from core.reader import DeviceSelector
from fakes import RecordingSession, ScriptedReader


def _bridge(reader, token, **kwargs):
    kwargs.setdefault("poll_timeout", 0.01)
    return GamepadBridge(reader, MessagePublisher("pad"), DeviceSelector(), token, **kwargs)


def _messages(session):
    return [decode(payload) for _, payload in session.puts]


def test_publishes_one_snapshot_per_event(token):
    reader = ScriptedReader(
        script=[[ButtonChanged("A", True)], [ButtonChanged("A", False)], [AxisChanged("X", 0.75)]],
        on_idle=lambda r: token.cancel(),
    )
    session = RecordingSession()

    _bridge(reader, token).run(session)

    msgs = _messages(session)
    assert [m.sequence for m in msgs] == [0, 1, 2, 3]
    assert msgs[0].state.connected is True and msgs[0].state.name == "Test Pad"
    last = msgs[-1].state
    assert last.buttons == {"A": False}
    assert last.axes == {"X": 0.75}
    assert last.connected is True
    assert reader.releases == 1


def test_disconnect_exits_by_default(token):
    reader = ScriptedReader(script=[[ButtonChanged("1", True)], [Disconnected()]])
    session = RecordingSession()

    with pytest.raises(DeviceDisconnected):
        _bridge(reader, token).run(session)

    final = _messages(session)[-1].state
    assert final.connected is False
    assert final.buttons == {"1": True}
    assert reader.releases == 1


def test_reconnect_keeps_last_known_state(token):
    reader = ScriptedReader(
        script=[[ButtonChanged("1", True)], [Disconnected()]],
        reopen_script=[[AxisChanged("0", 0.5)]],
        on_idle=lambda r: token.cancel(),
    )
    session = RecordingSession()

    _bridge(reader, token, on_disconnect="reconnect", reconnect_interval=0.01).run(session)

    states = [m.state for m in _messages(session)]
    assert reader.opens == 2
    assert [s.connected for s in states] == [True, True, False, True, True]
    assert states[-1].buttons == {"1": True}
    assert states[-1].axes == {"0": 0.5}


def test_reconnect_wait_stops_on_cancel(token):
    reader = ScriptedReader(script=[[Disconnected()]], reopen_fails=True)
    timer = threading.Timer(0.1, token.cancel)
    timer.start()
    try:
        _bridge(reader, token, on_disconnect="reconnect", reconnect_interval=0.01).run(RecordingSession())
    finally:
        timer.cancel()
    assert token.cancelled
    assert reader.opens == 1


def test_publish_error_is_fatal_by_default(token):
    reader = ScriptedReader(script=[[ButtonChanged("1", True)]])
    session = RecordingSession(fail_puts={1})

    with pytest.raises(PublishError):
        _bridge(reader, token).run(session)
    assert reader.releases == 1


def test_publish_error_can_be_skipped(token):
    reader = ScriptedReader(
        script=[[ButtonChanged("1", True)], [ButtonChanged("2", True)]],
        on_idle=lambda r: token.cancel(),
    )
    session = RecordingSession(fail_puts={1})

    _bridge(reader, token, on_publish_error="skip").run(session)

    msgs = _messages(session)
    assert [m.sequence for m in msgs] == [0, 1]
    assert msgs[-1].state.buttons == {"1": True, "2": True}


def test_missing_device_publishes_nothing(token):
    session = RecordingSession()
    with pytest.raises(DeviceNotFound):
        _bridge(ScriptedReader(missing=True), token).run(session)
    assert session.attempts == 0


def test_cancel_before_start_publishes_nothing(token):
    reader = ScriptedReader(script=[[ButtonChanged("1", True)]])
    token.cancel()
    session = RecordingSession()
    _bridge(reader, token).run(session)
    assert session.attempts == 0
    assert reader.releases == 1


def test_idle_controller_republishes_snapshot(token):
    reader = ScriptedReader(
        script=[[ButtonChanged("A", True)]],
        on_idle=lambda r: r.idle_polls >= 10 and token.cancel(),
    )
    session = RecordingSession()

    _bridge(reader, token, poll_timeout=0.02).run(session)

    msgs = _messages(session)
    assert len(msgs) >= 2 + 5
    assert [m.sequence for m in msgs] == list(range(len(msgs)))
    heartbeats = msgs[2:]
    assert all(m.state == msgs[1].state for m in heartbeats)
    times = [m.time for m in msgs]
    assert times == sorted(times)
    assert heartbeats[-1].time > msgs[1].time


def test_heartbeat_interval_is_respected(token):
    reader = ScriptedReader(on_idle=lambda r: r.idle_polls >= 12 and token.cancel())
    session = RecordingSession()

    _bridge(reader, token, poll_timeout=0.02, heartbeat_interval=0.1).run(session)

    # well under one message per idle poll
    assert 2 <= len(session.puts) <= 6


def test_heartbeat_can_be_disabled(token):
    reader = ScriptedReader(on_idle=lambda r: r.idle_polls >= 5 and token.cancel())
    session = RecordingSession()

    _bridge(reader, token, poll_timeout=0.02, heartbeat_interval=0).run(session)

    assert len(session.puts) == 1
    assert _messages(session)[0].state.connected is True


def test_disconnected_snapshot_repeats_while_reconnecting(token):
    reader = ScriptedReader(script=[[Disconnected()]], reopen_fails=True)
    session = RecordingSession()
    timer = threading.Timer(0.15, token.cancel)
    timer.start()
    try:
        _bridge(reader, token, on_disconnect="reconnect", reconnect_interval=0.02).run(session)
    finally:
        timer.cancel()

    msgs = _messages(session)
    assert [m.sequence for m in msgs] == list(range(len(msgs)))
    assert len(msgs) >= 2 + 2
    assert [m.state.connected for m in msgs[:2]] == [True, False]
    assert all(m.state == msgs[1].state for m in msgs[2:])
