"""Shared motor table and the per-channel polling loops."""

from __future__ import annotations

import logging
import threading
import time

from robodog.motor import MAX_RETRY_COUNT, MOTORS_PER_CHANNEL, NUM_CHANNELS, Motor
from robodog.protocol import FeedbackPacket
from robodog.serial_link import CommunicationError, open_serial_port

log = logging.getLogger(__name__)

CYCLE_PERIOD_S = 0.001
RETRY_DELAY_S = 0.001
ALGORITHM_PERIOD_S = 0.01


class MotorBus:
    """All motors of all channels, the lock guarding them and the run flag."""

    def __init__(self):
        self.motors = [
            [Motor() for _ in range(MOTORS_PER_CHANNEL)] for _ in range(NUM_CHANNELS)
        ]
        self.lock = threading.Lock()
        self._running = threading.Event()
        self._running.set()

    def motor(self, channel: int, index: int) -> Motor:
        if not (0 <= channel < NUM_CHANNELS and 0 <= index < MOTORS_PER_CHANNEL):
            raise IndexError(f"no motor {index} on channel {channel}")
        return self.motors[channel][index]

    def stop(self) -> None:
        self._running.clear()

    def is_running(self) -> bool:
        return self._running.is_set()


def channel_port_name(channel: int) -> str:
    """Device path of a channel: channel 0 is /dev/ttyMotorA, 3 is /dev/ttyMotorD."""
    if not 0 <= channel < NUM_CHANNELS:
        raise ValueError(f"invalid channel {channel}")
    return f"/dev/ttyMotor{chr(ord('A') + channel)}"


def exchange_with_retries(bus: MotorBus, channel: int, index: int, link) -> FeedbackPacket | None:
    """Send one motor its command, retrying, and record the outcome on the motor.

    Returns the feedback packet, or None when every attempt failed.
    """
    with bus.lock:
        motor = bus.motor(channel, index)
        packet = motor.create_control_packet(index)

    response = None
    for _ in range(MAX_RETRY_COUNT):
        try:
            response = link.exchange(packet, index)
            break
        except CommunicationError as exc:
            log.debug("%s", exc)
            time.sleep(RETRY_DELAY_S)

    with bus.lock:
        motor.increment_send_count()
        if response is not None:
            motor.update_feedback(response)
            motor.increment_receive_count()

    if response is None:
        log.error("failed to communicate with motor %d after %d retries", index, MAX_RETRY_COUNT)
    return response


def poll_channel_once(bus: MotorBus, channel: int, link) -> list[FeedbackPacket | None]:
    """Exchange with every motor of a channel in order."""
    return [
        exchange_with_retries(bus, channel, index, link) for index in range(MOTORS_PER_CHANNEL)
    ]


def run_channel(bus: MotorBus, channel: int, link_factory=open_serial_port) -> None:
    """Poll a channel's motors once per cycle until the bus is stopped."""
    port_name = channel_port_name(channel)
    try:
        link = link_factory(port_name)
    except CommunicationError as exc:
        log.error("failed to initialize port %s: %s", port_name, exc)
        return

    with link:
        next_send = time.monotonic()
        while bus.is_running():
            next_send += CYCLE_PERIOD_S
            poll_channel_once(bus, channel, link)
            delay = next_send - time.monotonic()
            if delay > 0:
                time.sleep(delay)


def algorithm_control_loop(bus: MotorBus) -> None:
    """Idle control loop that ticks until the bus is stopped."""
    print("Algorithm control thread started.", flush=True)
    while bus.is_running():
        time.sleep(ALGORITHM_PERIOD_S)
    print("Algorithm control thread stopped.", flush=True)