# robodog

This package drives the twelve joint motors of a quadruped robot. The robot has
four legs, with three motors on each leg. Each leg has its own serial channel.

The package does the following:

- It builds the binary control frames and checks them with CRC-CCITT.
- It converts between joint-side (output) values and rotor-side (motor) values.
- It runs a timed stand-up sequence.

## Installation

```
pip install .
```

To install the test tools as well:

```
pip install .[test]
```

## Running

```
robodog <mode>
```

`<mode>` must be one of the following:

| Mode    | Effect                                              |
|---------|-----------------------------------------------------|
| `stop`  | All targets and gains are zero.                     |
| `tor`   | Feed-forward joint torque of 0.25.                  |
| `speed` | Target joint speed of 6.28 rad/s, with speed gain 0.4. |
| `pos`   | Position gain 60 and speed gain 5.                  |

In `pos` mode, every motor is first given a zero command.

If there is not exactly one argument, or the mode is unknown, the command prints a message to stderr and exits with status 1.

### Threads and channels

The command starts one thread per leg. Each thread opens a serial port:

- Leg 0 uses `/dev/ttyMotorA`.
- Leg 1 uses `/dev/ttyMotorB`.
- Leg 2 uses `/dev/ttyMotorC`.
- Leg 3 uses `/dev/ttyMotorD`.

Each port runs at 4 Mbaud, 8N1, with no flow control.

Each channel thread polls its three motors in a 1 ms cycle. An exchange is tried up to three times, and each try waits up to 5 ms for a valid reply. A reply is valid when its header, its CRC and its motor id are all correct.

If a port cannot be opened, that channel logs an error and stops. The other channels keep running.

### Scheduling

Each thread tries to get `SCHED_FIFO` priority:

- Channel threads are pinned to CPU 0.
- The control thread is pinned to CPU 1.

If this fails, the thread prints a notice and carries on.

### The stand-up sequence

After a 2 second start-up delay, the main loop steps `StandUpSequence` every 10 ms. The sequence has five phases:

1. Settle with a zero command for 500 ticks, and record each joint's position.
2. Move from the recorded pose to the folded pose over 500 ticks.
3. Move from the folded pose to the standing pose over 500 ticks.
4. Hold the standing pose for 1000 ticks.
5. Spread the legs over 900 ticks. The last pose is then held.

### Status output

About every 102 ticks, the command prints two things:

- One status line per motor: joint-side torque, speed and position, temperature and error code.
- A table of link statistics: sent, received, lost and loss rate. The counters are reset after each table.

Ctrl-C stops all threads and exits with status 0.

## Library use

```python
from robodog.motor import Motor
from robodog.protocol import (
    FeedbackPacket,
    MotorFeedback,
    MotorMode,
    PacketError,
)

motor = Motor()
motor.set_joint_command(0, 1, 0.0, 0.0, 0.67, 60.0, 5.0)
frame = motor.create_control_packet(1).pack()   # 17 bytes, CRC appended

# A 16-byte reply frame; unpack raises PacketError if it is too short.
raw = FeedbackPacket(
    mode=MotorMode(id=1, status=1),
    feedback=MotorFeedback(torque=256, speed=0, position=32768, temperature=30),
).pack()
reply = FeedbackPacket.unpack(raw)
assert reply.header_valid and reply.crc_valid
motor.update_feedback(reply)
print(motor.position(0, 1), motor.speed(0, 1), motor.torque(0, 1))
```

### Modules

**`robodog.protocol`** handles the wire format:

- Packet classes: `ControlPacket` and `FeedbackPacket`.
- Field types: `MotorMode`, `MotorCommand` and `MotorFeedback`.
- Checksum functions: `crc_ccitt` and `crc_ccitt_byte`. The initial value is `CRC_INIT = 0x2CBB`.
- `PacketError`, raised for fields that are out of range and for frames that are too short.

**`robodog.motor`** holds per-motor data:

- `Motor` keeps the rotor-side command, the feedback and the packet counters.
- `joint_calibration(leg, joint)` returns the direction, zero offset and extra reduction of a joint. It raises `ValueError` for an unknown joint.

**`robodog.serial_link`** talks to the serial port:

- `open_serial_port(port_name)` opens a port and returns a `SerialLink`.
- `SerialLink.exchange(packet, motor_id)` sends a packet and returns the matching `FeedbackPacket`. It raises `CommunicationError` if the exchange fails.
- `SerialLink` is a context manager.
- It accepts any port-like object that has `reset_input_buffer`, `write`, `read` and `close`.

**`robodog.channel`** runs the channels:

- `MotorBus` holds the shared motor table, its lock and the run flag.
- Polling functions: `exchange_with_retries`, `poll_channel_once` and `run_channel`.
- `channel_port_name` returns the device path of a channel.

**`robodog.sequence`** holds the stand-up logic and the reports:

- `StandUpSequence` steps through the stand-up poses.
- `control_mode` returns the `ControlGains` for a mode name.
- `format_motor_status` and `format_statistics` build the status lines and the statistics table.

## Limitations

- There is no gait or balance control. `algorithm_control_loop` only idles until the bus is stopped.
- Apart from choosing a mode, the stand-up poses and timings cannot be configured from the command line.
- The "Errors" column of the statistics table is always 0.