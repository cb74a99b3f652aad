"""Serial link to a chain of motors: opening the port and command/response exchange."""

from __future__ import annotations

import logging
import time

import serial

from robodog.motor import COMM_TIMEOUT_MS, MAX_BUFFER_SIZE
from robodog.protocol import ControlPacket, FeedbackPacket, PacketError

log = logging.getLogger(__name__)

BAUD_RATE = 4_000_000
READ_TIMEOUT_S = 0.001


class CommunicationError(Exception):
    """A motor did not answer, or the port could not be used."""


class SerialLink:
    """Sends control packets over a serial port and waits for the matching feedback.

    ``port`` is any object with ``reset_input_buffer``, ``write``, ``read`` and
    ``close``, such as an open ``serial.Serial``.
    """

    def __init__(self, port, timeout_ms=COMM_TIMEOUT_MS):
        self.port = port
        self.timeout_ms = timeout_ms

    def exchange(self, packet: ControlPacket, motor_id: int) -> FeedbackPacket:
        """Send ``packet`` and return the first valid reply from ``motor_id``.

        Raises CommunicationError when the write fails or no valid reply
        arrives within the timeout.
        """
        data = packet.pack()
        try:
            self.port.reset_input_buffer()
            written = self.port.write(data)
        except OSError as exc:
            raise CommunicationError(f"failed to send command to motor {motor_id}: {exc}") from exc
        if written != len(data):
            raise CommunicationError(
                f"failed to send command to motor {motor_id}; bytes written: {written}"
            )

        deadline = time.monotonic() + self.timeout_ms / 1000.0
        while time.monotonic() < deadline:
            try:
                chunk = self.port.read(MAX_BUFFER_SIZE)
            except OSError as exc:
                raise CommunicationError(
                    f"failed to read response from motor {motor_id}: {exc}"
                ) from exc
            response = self._accept(chunk, motor_id)
            if response is not None:
                return response

        raise CommunicationError(f"timeout waiting for response from motor {motor_id}")

    @staticmethod
    def _accept(chunk: bytes, motor_id: int) -> FeedbackPacket | None:
        if len(chunk) < FeedbackPacket.SIZE:
            return None
        try:
            packet = FeedbackPacket.unpack(chunk)
        except PacketError:
            return None
        if not packet.header_valid:
            return None
        if not packet.crc_valid:
            log.warning("CRC error in response from motor %d", packet.mode.id)
            return None
        if packet.mode.id != motor_id:
            log.warning(
                "unexpected motor ID in response: %d (expected %d)", packet.mode.id, motor_id
            )
            return None
        return packet

    def close(self) -> None:
        self.port.close()

    def __enter__(self) -> SerialLink:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def open_serial_port(port_name: str) -> SerialLink:
    """Open ``port_name`` raw at 4 Mbaud, 8N1, no flow control, and flush it."""
    try:
        port = serial.Serial(
            port=port_name,
            baudrate=BAUD_RATE,
            bytesize=serial.EIGHTBITS,
            parity=serial.PARITY_NONE,
            stopbits=serial.STOPBITS_ONE,
            xonxoff=False,
            rtscts=False,
            timeout=READ_TIMEOUT_S,
        )
    except (serial.SerialException, ValueError) as exc:
        raise CommunicationError(f"error opening {port_name}: {exc}") from exc
    try:
        port.reset_input_buffer()
        port.reset_output_buffer()
    except (serial.SerialException, OSError) as exc:
        port.close()
        raise CommunicationError(f"error configuring {port_name}: {exc}") from exc
    return SerialLink(port, COMM_TIMEOUT_MS)