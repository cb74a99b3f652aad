import itertools

import pytest

from robodog.motor import (
    GEAR_RATIO,
    MOTORS_PER_CHANNEL,
    NUM_CHANNELS,
    Motor,
    joint_calibration,
)
from robodog.protocol import (
    SEND_HEADER,
    ControlPacket,
    FeedbackPacket,
    MotorFeedback,
    MotorMode,
)

ALL_JOINTS = list(itertools.product(range(NUM_CHANNELS), range(MOTORS_PER_CHANNEL)))


@pytest.mark.parametrize("leg, joint", [(-1, 0), (4, 0), (0, 3), (2, -1)])
def test_joint_calibration_rejects_unknown(leg, joint):
    with pytest.raises(ValueError):
        joint_calibration(leg, joint)


def test_joint_calibration_offsets_from_source():
    assert joint_calibration(0, 0).offset == pytest.approx(0.917742)
    assert joint_calibration(1, 2).offset == pytest.approx(2.6572986)
    assert joint_calibration(3, 2).ratio == pytest.approx(1.88)


@pytest.mark.parametrize("leg, joint", ALL_JOINTS)
def test_position_command_round_trip(leg, joint):
    motor = Motor()
    motor.set_joint_command(leg, joint, 0.0, 0.0, 1.36, 60.0, 5.0)
    motor.rotor_position = motor.pos_des
    assert motor.position(leg, joint) == pytest.approx(1.36)


@pytest.mark.parametrize("leg, joint", ALL_JOINTS)
def test_speed_and_torque_round_trip(leg, joint):
    motor = Motor()
    motor.set_joint_command(leg, joint, 0.25, 6.28, 0.0, 0.0, 0.4)
    motor.rotor_speed = motor.spd_des
    motor.rotor_torque = motor.tor_des
    assert motor.speed(leg, joint) == pytest.approx(6.28)
    assert motor.torque(leg, joint) == pytest.approx(0.25)


@pytest.mark.parametrize("leg, joint", ALL_JOINTS)
def test_gains_scaled_by_gear_ratio_squared(leg, joint):
    motor = Motor()
    motor.set_joint_command(leg, joint, 0.0, 0.0, 0.0, 60.0, 5.0)
    assert motor.k_pos * GEAR_RATIO**2 == pytest.approx(60.0)
    assert motor.k_spd * GEAR_RATIO**2 == pytest.approx(5.0)


def test_invalid_joint_command_leaves_state():
    motor = Motor()
    motor.set_control_params(1.0, 2.0, 3.0, 4.0, 5.0)
    with pytest.raises(ValueError):
        motor.set_joint_command(4, 0, 9.0, 9.0, 9.0, 9.0, 9.0)
    assert (motor.tor_des, motor.spd_des, motor.pos_des, motor.k_pos, motor.k_spd) == (
        1.0,
        2.0,
        3.0,
        4.0,
        5.0,
    )


@pytest.mark.parametrize("getter", ["torque", "speed", "position"])
def test_getters_reject_unknown_leg(getter):
    with pytest.raises(ValueError):
        getattr(Motor(), getter)(7, 0)


def test_update_feedback_converts_units():
    motor = Motor()
    packet = FeedbackPacket(
        mode=MotorMode(id=1, status=1),
        feedback=MotorFeedback(torque=256, speed=256, position=32768, temperature=40, error=2),
    )
    motor.update_feedback(packet)
    assert motor.rotor_torque == pytest.approx(1.0)
    assert motor.rotor_speed == pytest.approx(6.28318)
    assert motor.rotor_position == pytest.approx(6.28318)
    assert motor.temperature == 40.0
    assert motor.error == 2


def test_create_control_packet_scaling():
    motor = Motor()
    motor.set_control_params(1.0, 6.28318, 6.28318, 0.0, 0.0)
    packet = motor.create_control_packet(2)
    assert packet.command.tor_des == 256
    assert packet.command.spd_des == 256
    assert packet.command.pos_des == 32768
    assert packet.mode == MotorMode(id=2, status=1, reserve=0)


def test_create_control_packet_wire_round_trip():
    motor = Motor()
    motor.set_joint_command(0, 2, 0.0, 0.0, -2.65, 60.0, 5.0)
    packet = motor.create_control_packet(2)
    data = packet.pack()
    assert data[:2] == SEND_HEADER
    assert len(data) == ControlPacket.SIZE
    decoded = ControlPacket.unpack(data)
    assert decoded.crc_valid
    assert decoded.command == packet.command
    assert decoded.crc == packet.crc


def test_stop_command_yields_zero_gains_on_wire():
    motor = Motor()
    motor.set_joint_command(1, 1, 0, 0, 0, 0, 0)
    command = motor.create_control_packet(1).command
    assert (command.tor_des, command.spd_des, command.k_pos, command.k_spd) == (0, 0, 0, 0)


def test_counters_and_reset():
    motor = Motor()
    for _ in range(3):
        motor.increment_send_count()
    motor.increment_receive_count()
    assert (motor.send_count, motor.receive_count) == (3, 1)
    motor.reset_stats()
    assert (motor.send_count, motor.receive_count) == (0, 0)


def test_new_motor_reads_zero_rotor_state():
    motor = Motor()
    assert motor.rotor_position == 0.0
    assert motor.position(0, 0) == pytest.approx(-0.917742)
    assert motor.torque(2, 2) == 0.0