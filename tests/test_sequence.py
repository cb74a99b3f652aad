import pytest

from robodog.channel import MotorBus
from robodog.motor import Motor
from robodog.sequence import (
    FOLD_POSITIONS,
    PHASE_DURATIONS,
    STAND_POSITIONS,
    WIDE_POSITIONS,
    ControlGains,
    StandUpSequence,
    control_mode,
    format_motor_status,
    format_statistics,
)


def _run_until(seq, bus, done, limit=6000):
    for _ in range(limit):
        if done(seq):
            return
        seq.step(bus)
    raise AssertionError("sequence did not reach the expected state")


def _assert_commanded(bus, gains, targets):
    for leg, row in enumerate(bus.motors):
        for joint, motor in enumerate(row):
            ref = Motor()
            ref.set_joint_command(
                leg, joint, gains.tor_des, gains.spd_des,
                targets[leg * 3 + joint], gains.k_pos, gains.k_spd,
            )
            assert motor.pos_des == pytest.approx(ref.pos_des)
            assert motor.k_pos == pytest.approx(ref.k_pos)
            assert motor.k_spd == pytest.approx(ref.k_spd)


def test_control_modes():
    assert control_mode("stop") == ControlGains()
    assert control_mode("tor") == ControlGains(tor_des=0.25)
    assert control_mode("speed") == ControlGains(spd_des=6.28, k_spd=0.4)
    assert control_mode("pos") == ControlGains(k_pos=60.0, k_spd=5.0)


def test_unknown_mode_raises():
    with pytest.raises(ValueError):
        control_mode("fly")


def test_first_step_settles_motors_and_records_start():
    bus = MotorBus()
    for row in bus.motors:
        for motor in row:
            motor.set_control_params(1.0, 1.0, 1.0, 1.0, 1.0)
    seq = StandUpSequence(control_mode("pos"))
    seq.step(bus)

    assert seq.progress[0] == pytest.approx(1 / PHASE_DURATIONS[0])
    assert seq.progress[1:] == [0.0, 0.0, 0.0, 0.0]
    _assert_commanded(bus, ControlGains(), [0.0] * 12)
    for leg, row in enumerate(bus.motors):
        for joint, motor in enumerate(row):
            assert motor.tor_des == 0
            assert motor.spd_des == 0
            assert seq.start_positions[leg * 3 + joint] == pytest.approx(motor.position(leg, joint))


def test_fold_phase_starts_after_settling():
    bus = MotorBus()
    seq = StandUpSequence(control_mode("pos"))
    _run_until(seq, bus, lambda s: s.progress[0] == 1)
    assert 0 < seq.progress[1] < 1
    t = seq.progress[1]
    targets = [
        (1 - t) * start + t * fold
        for start, fold in zip(seq.start_positions, FOLD_POSITIONS)
    ]
    _assert_commanded(bus, control_mode("pos"), targets)


def test_hold_phase_commands_standing_pose():
    bus = MotorBus()
    gains = control_mode("pos")
    seq = StandUpSequence(gains)
    _run_until(seq, bus, lambda s: s.progress[2] == 1)
    assert seq.progress[3] < 1
    _assert_commanded(bus, gains, STAND_POSITIONS)


def test_sequence_finishes_in_wide_pose():
    bus = MotorBus()
    gains = control_mode("tor")
    seq = StandUpSequence(gains)
    _run_until(seq, bus, lambda s: s.progress[4] == 1)
    assert seq.progress == [1.0] * 5
    _assert_commanded(bus, gains, WIDE_POSITIONS)
    seq.step(bus)
    _assert_commanded(bus, gains, WIDE_POSITIONS)


def test_progress_is_monotonic_and_bounded():
    bus = MotorBus()
    seq = StandUpSequence(control_mode("stop"))
    previous = list(seq.progress)
    for _ in range(1200):
        seq.step(bus)
        assert all(0.0 <= p <= 1.0 for p in seq.progress)
        assert all(now >= before for now, before in zip(seq.progress, previous))
        previous = list(seq.progress)


def test_motor_status_lines():
    bus = MotorBus()
    text = format_motor_status(bus)
    lines = text.splitlines()
    assert len(lines) == 12
    assert lines[0].startswith("Channel 0, Motor 0 - Output Torque: 0")
    assert "Output Position: -0.917742" in lines[0]
    assert lines[0].endswith("Temp: 0, Error: 0")
    assert lines[-1].startswith("Channel 3, Motor 2")


def test_statistics_table_and_reset():
    bus = MotorBus()
    motor = bus.motor(0, 0)
    motor.send_count = 10
    motor.receive_count = 8
    lines = format_statistics(bus).splitlines()
    assert lines[0] == "Channel | Motor | Sent | Received | Lost | Loss Rate | Errors"
    assert lines[1] == "--------|-------|------|----------|------|-----------|-------"
    assert len(lines) == 14
    assert lines[2] == "      0 |     0 |   10 |        8 |    2 |     20.00% |     0"
    assert motor.send_count == 0
    assert motor.receive_count == 0


def test_statistics_never_negative_loss():
    bus = MotorBus()
    motor = bus.motor(1, 1)
    motor.send_count = 3
    motor.receive_count = 5
    row = format_statistics(bus).splitlines()[2 + 4]
    fields = [f.strip() for f in row.split("|")]
    assert fields[:5] == ["1", "1", "3", "5", "0"]
    assert fields[5] == "0.00%"