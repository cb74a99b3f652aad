"""Motor state, joint calibration and conversion between rotor and joint units."""

from __future__ import annotations

from dataclasses import dataclass

from robodog.protocol import ControlPacket, FeedbackPacket, MotorCommand, MotorMode

NUM_CHANNELS = 4
MOTORS_PER_CHANNEL = 3
MAX_BUFFER_SIZE = 1024
GEAR_RATIO = 6.33
MAX_RETRY_COUNT = 3
COMM_TIMEOUT_MS = 5

KNEE_RATIO = 1.88
RADIANS_PER_TURN = 6.28318
GAIN_FULL_SCALE = 25.6

_STATUS_RUNNING = 1


@dataclass(frozen=True)
class JointCalibration:
    """Mounting of one joint: rotation sense, zero offset and extra reduction."""

    direction: int
    offset: float
    ratio: float = 1.0

    @property
    def reduction(self) -> float:
        return GEAR_RATIO * self.ratio


_CALIBRATION = {
    (0, 0): JointCalibration(1, 0.917742),
    (0, 1): JointCalibration(-1, -1.775659),
    (0, 2): JointCalibration(1, 3.205968, KNEE_RATIO),
    (1, 0): JointCalibration(1, 0.83411),
    (1, 1): JointCalibration(1, -0.950479),
    (1, 2): JointCalibration(-1, 2.6572986, KNEE_RATIO),
    (2, 0): JointCalibration(-1, 0.036858),
    (2, 1): JointCalibration(-1, -1.4168),
    (2, 2): JointCalibration(1, 3.2397, KNEE_RATIO),
    (3, 0): JointCalibration(-1, -0.414653),
    (3, 1): JointCalibration(1, -0.42181),
    (3, 2): JointCalibration(-1, 2.231182, KNEE_RATIO),
}


def joint_calibration(leg: int, joint: int) -> JointCalibration:
    """Return the calibration of a joint; raise ValueError for an unknown one."""
    if not 0 <= leg < NUM_CHANNELS:
        raise ValueError(f"invalid motor ID {leg}; valid IDs are 0, 1, 2, or 3")
    if not 0 <= joint < MOTORS_PER_CHANNEL:
        raise ValueError(f"invalid motor number {joint}; valid numbers are 0, 1, or 2")
    return _CALIBRATION[(leg, joint)]


@dataclass
class Motor:
    """One motor: commanded values and feedback on the rotor side, plus link statistics."""

    tor_des: float = 0.0
    spd_des: float = 0.0
    pos_des: float = 0.0
    k_pos: float = 0.0
    k_spd: float = 0.0

    rotor_torque: float = 0.0
    rotor_speed: float = 0.0
    rotor_position: float = 0.0
    temperature: float = 0.0
    error: int = 0

    send_count: int = 0
    receive_count: int = 0

    def set_control_params(self, tor_des, spd_des, pos_des, k_pos, k_spd) -> None:
        """Set the rotor-side command as is."""
        self.tor_des = tor_des
        self.spd_des = spd_des
        self.pos_des = pos_des
        self.k_pos = k_pos
        self.k_spd = k_spd

    def set_joint_command(self, leg, joint, tor_des, spd_des, pos_des, k_pos, k_spd) -> None:
        """Set the command from joint-side values, converting through the joint's gearing."""
        cal = joint_calibration(leg, joint)
        reduction = cal.reduction
        self.set_control_params(
            cal.direction * tor_des / reduction,
            cal.direction * spd_des * reduction,
            cal.direction * (pos_des + cal.offset) * reduction,
            k_pos / GEAR_RATIO / GEAR_RATIO,
            k_spd / GEAR_RATIO / GEAR_RATIO,
        )

    def update_feedback(self, packet: FeedbackPacket) -> None:
        """Store the physical values carried by a feedback packet."""
        fbk = packet.feedback
        self.rotor_torque = fbk.torque / 256.0
        self.rotor_speed = fbk.speed / 256.0 * RADIANS_PER_TURN
        self.rotor_position = RADIANS_PER_TURN * fbk.position / 32768.0
        self.temperature = float(fbk.temperature)
        self.error = fbk.error

    def create_control_packet(self, motor_id: int) -> ControlPacket:
        """Build the command packet for this motor with its checksum set."""
        packet = ControlPacket(
            mode=MotorMode(id=motor_id, status=_STATUS_RUNNING, reserve=0),
            command=MotorCommand(
                tor_des=int(self.tor_des * 256.0),
                spd_des=int(self.spd_des / RADIANS_PER_TURN * 256.0),
                pos_des=int(self.pos_des / RADIANS_PER_TURN * 32768.0),
                k_pos=int(self.k_pos / GAIN_FULL_SCALE * 32768.0),
                k_spd=int(self.k_spd / GAIN_FULL_SCALE * 32768.0),
            ),
        )
        packet.crc = packet.compute_crc()
        return packet

    def torque(self, leg: int, joint: int) -> float:
        """Joint-side torque."""
        cal = joint_calibration(leg, joint)
        return cal.direction * self.rotor_torque * cal.reduction

    def speed(self, leg: int, joint: int) -> float:
        """Joint-side speed in rad/s."""
        cal = joint_calibration(leg, joint)
        return cal.direction * self.rotor_speed / cal.reduction

    def position(self, leg: int, joint: int) -> float:
        """Joint-side position in rad."""
        cal = joint_calibration(leg, joint)
        return cal.direction * self.rotor_position / cal.reduction - cal.offset

    def increment_send_count(self) -> None:
        self.send_count += 1

    def increment_receive_count(self) -> None:
        self.receive_count += 1

    def reset_stats(self) -> None:
        self.send_count = 0
        self.receive_count = 0