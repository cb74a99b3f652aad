"""Stand-up motion sequence, control modes and status reports."""

from __future__ import annotations

from dataclasses import dataclass

from robodog.channel import MotorBus
from robodog.motor import MOTORS_PER_CHANNEL

FOLD_POSITIONS = (
    0.0, 1.36, -2.65, 0.0, 1.36, -2.65,
    -0.2, 1.36, -2.65, 0.2, 1.36, -2.65,
)
STAND_POSITIONS = (
    0.0, 0.67, -1.3, 0.0, 0.67, -1.3,
    0.0, 0.67, -1.3, 0.0, 0.67, -1.3,
)
WIDE_POSITIONS = (
    -0.35, 1.36, -2.65, 0.35, 1.36, -2.65,
    -0.5, 1.36, -2.65, 0.5, 1.36, -2.65,
)

PHASE_DURATIONS = (500, 500, 500, 1000, 900)


@dataclass(frozen=True)
class ControlGains:
    """Joint-side feed-forward values and gains applied during the sequence."""

    tor_des: float = 0.0
    spd_des: float = 0.0
    pos_des: float = 0.0
    k_pos: float = 0.0
    k_spd: float = 0.0


_MODES = {
    "stop": ControlGains(),
    "tor": ControlGains(tor_des=0.25),
    "speed": ControlGains(spd_des=6.28, k_spd=0.4),
    "pos": ControlGains(k_pos=60.0, k_spd=5.0),
}


def control_mode(name: str) -> ControlGains:
    """Gains for a named mode: stop, tor, speed or pos."""
    try:
        return _MODES[name]
    except KeyError:
        raise ValueError(f"invalid mode {name!r}; use 'stop', 'tor', 'speed' or 'pos'") from None


def _joints(bus: MotorBus):
    for leg, row in enumerate(bus.motors):
        for joint, motor in enumerate(row):
            yield leg, joint, motor


def _slot(leg: int, joint: int) -> int:
    return leg * MOTORS_PER_CHANNEL + joint


class StandUpSequence:
    """Five phases: settle and read positions, fold, stand, hold, spread.

    Each call to ``step`` advances the active phases by one tick;
    ``progress`` holds each phase's completion from 0 to 1.
    """

    def __init__(self, gains):
        self.gains = gains
        self.progress = [0.0] * len(PHASE_DURATIONS)
        self.start_positions = [0.0] * len(FOLD_POSITIONS)

    def _ramp(self, phase: int) -> float:
        value = min(self.progress[phase] + 1.0 / PHASE_DURATIONS[phase], 1.0)
        self.progress[phase] = value
        return value

    def _command(self, bus: MotorBus, start, target, t: float) -> None:
        g = self.gains
        for leg, joint, motor in _joints(bus):
            k = _slot(leg, joint)
            pos = (1 - t) * start[k] + t * target[k]
            motor.set_joint_command(leg, joint, g.tor_des, g.spd_des, pos, g.k_pos, g.k_spd)

    def step(self, bus: MotorBus) -> None:
        """Advance the sequence by one tick, commanding every motor on the bus."""
        with bus.lock:
            p = self.progress
            if p[0] < 1:
                self._ramp(0)
                for leg, joint, motor in _joints(bus):
                    motor.set_joint_command(leg, joint, 0, 0, 0, 0, 0)
                    self.start_positions[_slot(leg, joint)] = motor.position(leg, joint)
            if p[0] == 1 and p[1] < 1:
                t = self._ramp(1)
                self._command(bus, self.start_positions, FOLD_POSITIONS, t)
            if p[1] == 1 and p[2] < 1:
                t = self._ramp(2)
                self._command(bus, FOLD_POSITIONS, STAND_POSITIONS, t)
            if p[1] == 1 and p[2] == 1 and p[3] < 1:
                self._ramp(3)
                self._command(bus, STAND_POSITIONS, STAND_POSITIONS, 1.0)
            if p[1] == 1 and p[2] == 1 and p[3] == 1 and p[4] <= 1:
                t = self._ramp(4)
                self._command(bus, STAND_POSITIONS, WIDE_POSITIONS, t)


def format_motor_status(bus: MotorBus) -> str:
    """One line per motor with its joint-side torque, speed, position, temperature and error."""
    with bus.lock:
        lines = [
            f"Channel {leg}, Motor {joint}"
            f" - Output Torque: {motor.torque(leg, joint):g}"
            f", Output Speed: {motor.speed(leg, joint):g}"
            f", Output Position: {motor.position(leg, joint):g}"
            f", Temp: {motor.temperature:g}"
            f", Error: {motor.error}"
            for leg, joint, motor in _joints(bus)
        ]
    return "\n".join(lines)


def format_statistics(bus: MotorBus) -> str:
    """Link statistics table; the counters of every motor are reset afterwards."""
    lines = [
        "Channel | Motor | Sent | Received | Lost | Loss Rate | Errors",
        "--------|-------|------|----------|------|-----------|-------",
    ]
    errors = 0
    with bus.lock:
        for leg, joint, motor in _joints(bus):
            sent = motor.send_count
            received = motor.receive_count
            lost = sent - received if sent > received else 0
            loss_rate = lost / sent * 100 if sent > 0 else 0.0
            lines.append(
                f"{leg:7d} | {joint:5d} | {sent:4d} | {received:8d} | {lost:4d}"
                f" | {loss_rate:9.2f}% | {errors:5d}"
            )
            motor.reset_stats()
    return "\n".join(lines)