"""Command line entry: start the channel threads and run the stand-up sequence."""

from __future__ import annotations

import logging
import os
import sys
import threading
import time

from robodog.channel import MotorBus, algorithm_control_loop, run_channel
from robodog.motor import NUM_CHANNELS
from robodog.sequence import (
    StandUpSequence,
    control_mode,
    format_motor_status,
    format_statistics,
)

PROG = "robodog"
STARTUP_DELAY_S = 2.0
CONTROL_PERIOD_S = 0.01
REPORT_EVERY = 100


def _tune_current_thread(cpu: int, label: str) -> None:
    try:
        priority = os.sched_get_priority_max(os.SCHED_FIFO)
        os.sched_setscheduler(0, os.SCHED_FIFO, os.sched_param(priority))
    except (AttributeError, OSError):
        print(f"Failed to set thread priority for {label}.", file=sys.stderr)
    try:
        os.sched_setaffinity(0, {cpu})
    except (AttributeError, OSError):
        print(f"Failed to set CPU affinity for {label}.", file=sys.stderr)


def _channel_worker(bus: MotorBus, channel: int) -> None:
    _tune_current_thread(0, f"channel {channel}")
    run_channel(bus, channel)


def _algorithm_worker(bus: MotorBus) -> None:
    _tune_current_thread(1, "algorithm control thread")
    algorithm_control_loop(bus)


def _control_loop(bus: MotorBus, sequence: StandUpSequence) -> None:
    tick = 0
    while bus.is_running():
        time.sleep(CONTROL_PERIOD_S)
        sequence.step(bus)
        report = tick > REPORT_EVERY
        tick = 0 if report else tick + 1
        if report:
            print(format_motor_status(bus))
            print(format_statistics(bus))
            print(flush=True)


def main(argv=None) -> int:
    args = sys.argv[1:] if argv is None else list(argv)
    if len(args) != 1:
        print(f"Usage: {PROG} <mode>", file=sys.stderr)
        print("Modes: stop, tor, speed", file=sys.stderr)
        return 1

    mode = args[0]
    print(f"Starting motor control in mode: {mode}", flush=True)
    try:
        gains = control_mode(mode)
    except ValueError:
        print("Invalid mode. Use 'stop', 'tor', or 'speed'.", file=sys.stderr)
        return 1

    logging.basicConfig(level=logging.WARNING, format="%(message)s")
    bus = MotorBus()
    if mode == "pos":
        with bus.lock:
            for leg, row in enumerate(bus.motors):
                for joint, motor in enumerate(row):
                    motor.set_joint_command(leg, joint, 0, 0, 0, 0, 0)

    threads = [
        threading.Thread(target=_channel_worker, args=(bus, channel), name=f"channel-{channel}")
        for channel in range(NUM_CHANNELS)
    ]
    threads.append(threading.Thread(target=_algorithm_worker, args=(bus,), name="algorithm"))
    for thread in threads:
        thread.start()
    print("All channel threads started.", flush=True)

    try:
        time.sleep(STARTUP_DELAY_S)
        _control_loop(bus, StandUpSequence(gains))
    except KeyboardInterrupt:
        pass
    finally:
        bus.stop()
        for thread in threads:
            thread.join()
    return 0


if __name__ == "__main__":
    sys.exit(main())