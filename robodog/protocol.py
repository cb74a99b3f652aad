"""Wire format of the motor serial protocol: packets, bit fields and CRC."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from functools import reduce
from typing import ClassVar

SEND_HEADER = b"\xfe\xee"
RECV_HEADER = b"\xfd\xee"
CRC_INIT = 0x2CBB

_CRC_POLY_REFLECTED = 0x8408

_CONTROL_BODY = struct.Struct("<2sBhhihh")
_FEEDBACK_BODY = struct.Struct("<2sBhhibH")
_CRC = struct.Struct("<H")


class PacketError(ValueError):
    """A packet cannot be encoded or decoded."""


def _make_crc_table() -> tuple[int, ...]:
    def entry(byte: int) -> int:
        crc = byte
        for _ in range(8):
            crc = (crc >> 1) ^ _CRC_POLY_REFLECTED if crc & 1 else crc >> 1
        return crc

    return tuple(entry(byte) for byte in range(256))


_CRC_TABLE = _make_crc_table()


def crc_ccitt_byte(crc: int, c: int) -> int:
    """Feed one byte into a reflected CRC-CCITT value."""
    return ((crc & 0xFFFF) >> 8) ^ _CRC_TABLE[(crc ^ c) & 0xFF]


def crc_ccitt(crc: int, data: bytes) -> int:
    """Feed a run of bytes into a reflected CRC-CCITT value."""
    return reduce(crc_ccitt_byte, bytes(data), crc & 0xFFFF)


@dataclass(frozen=True)
class MotorMode:
    """Mode byte: motor id (4 bits), status (3 bits) and a reserved bit."""

    id: int = 0
    status: int = 0
    reserve: int = 0

    def to_byte(self) -> int:
        if not 0 <= self.id <= 0xF:
            raise PacketError(f"motor id {self.id} does not fit in 4 bits")
        if not 0 <= self.status <= 0x7:
            raise PacketError(f"status {self.status} does not fit in 3 bits")
        if self.reserve not in (0, 1):
            raise PacketError(f"reserve bit must be 0 or 1, got {self.reserve}")
        return self.id | (self.status << 4) | (self.reserve << 7)

    @classmethod
    def from_byte(cls, value: int) -> MotorMode:
        if not 0 <= value <= 0xFF:
            raise PacketError(f"mode byte {value} out of range")
        return cls(id=value & 0xF, status=(value >> 4) & 0x7, reserve=(value >> 7) & 0x1)


@dataclass(frozen=True)
class MotorCommand:
    """Raw command fields as sent on the wire."""

    tor_des: int = 0
    spd_des: int = 0
    pos_des: int = 0
    k_pos: int = 0
    k_spd: int = 0


@dataclass(frozen=True)
class MotorFeedback:
    """Raw feedback fields as received from the wire."""

    torque: int = 0
    speed: int = 0
    position: int = 0
    temperature: int = 0
    error: int = 0
    force: int = 0
    reserved: int = 0


def _pack_crc(crc: int) -> bytes:
    try:
        return _CRC.pack(crc)
    except struct.error as exc:
        raise PacketError(f"CRC value {crc} out of range") from exc


def _check_head(head: bytes) -> None:
    if len(head) != 2:
        raise PacketError(f"packet header must be 2 bytes, got {len(head)}")


@dataclass
class ControlPacket:
    """Command packet sent to a motor.

    When ``crc`` is None the checksum is computed while packing.
    """

    SIZE: ClassVar[int] = _CONTROL_BODY.size + _CRC.size

    mode: MotorMode = field(default_factory=MotorMode)
    command: MotorCommand = field(default_factory=MotorCommand)
    head: bytes = SEND_HEADER
    crc: int | None = None

    def _body(self) -> bytes:
        _check_head(self.head)
        c = self.command
        try:
            return _CONTROL_BODY.pack(
                bytes(self.head),
                self.mode.to_byte(),
                c.tor_des,
                c.spd_des,
                c.pos_des,
                c.k_pos,
                c.k_spd,
            )
        except struct.error as exc:
            raise PacketError(f"command field out of range: {exc}") from exc

    def compute_crc(self) -> int:
        return crc_ccitt(CRC_INIT, self._body())

    @property
    def crc_valid(self) -> bool:
        return self.crc is None or self.crc == self.compute_crc()

    def pack(self) -> bytes:
        body = self._body()
        crc = crc_ccitt(CRC_INIT, body) if self.crc is None else self.crc
        return body + _pack_crc(crc)

    @classmethod
    def unpack(cls, data: bytes) -> ControlPacket:
        """Decode the leading bytes of ``data``; extra bytes are ignored."""
        data = bytes(data)
        if len(data) < cls.SIZE:
            raise PacketError(f"control packet needs {cls.SIZE} bytes, got {len(data)}")
        head, mode, tor, spd, pos, kp, kd = _CONTROL_BODY.unpack_from(data)
        (crc,) = _CRC.unpack_from(data, _CONTROL_BODY.size)
        return cls(
            mode=MotorMode.from_byte(mode),
            command=MotorCommand(tor_des=tor, spd_des=spd, pos_des=pos, k_pos=kp, k_spd=kd),
            head=head,
            crc=crc,
        )


@dataclass
class FeedbackPacket:
    """Feedback packet received from a motor.

    When ``crc`` is None the checksum is computed while packing.
    """

    SIZE: ClassVar[int] = _FEEDBACK_BODY.size + _CRC.size

    mode: MotorMode = field(default_factory=MotorMode)
    feedback: MotorFeedback = field(default_factory=MotorFeedback)
    head: bytes = RECV_HEADER
    crc: int | None = None

    def _body(self) -> bytes:
        _check_head(self.head)
        f = self.feedback
        if not 0 <= f.error <= 0x7:
            raise PacketError(f"error code {f.error} does not fit in 3 bits")
        if not 0 <= f.force <= 0xFFF:
            raise PacketError(f"force {f.force} does not fit in 12 bits")
        if f.reserved not in (0, 1):
            raise PacketError(f"reserved bit must be 0 or 1, got {f.reserved}")
        bits = f.error | (f.force << 3) | (f.reserved << 15)
        try:
            return _FEEDBACK_BODY.pack(
                bytes(self.head),
                self.mode.to_byte(),
                f.torque,
                f.speed,
                f.position,
                f.temperature,
                bits,
            )
        except struct.error as exc:
            raise PacketError(f"feedback field out of range: {exc}") from exc

    def compute_crc(self) -> int:
        return crc_ccitt(CRC_INIT, self._body())

    @property
    def crc_valid(self) -> bool:
        return self.crc is None or self.crc == self.compute_crc()

    @property
    def header_valid(self) -> bool:
        return bytes(self.head) == RECV_HEADER

    def pack(self) -> bytes:
        body = self._body()
        crc = crc_ccitt(CRC_INIT, body) if self.crc is None else self.crc
        return body + _pack_crc(crc)

    @classmethod
    def unpack(cls, data: bytes) -> FeedbackPacket:
        """Decode the leading bytes of ``data``; extra bytes are ignored."""
        data = bytes(data)
        if len(data) < cls.SIZE:
            raise PacketError(f"feedback packet needs {cls.SIZE} bytes, got {len(data)}")
        head, mode, torque, speed, pos, temp, bits = _FEEDBACK_BODY.unpack_from(data)
        (crc,) = _CRC.unpack_from(data, _FEEDBACK_BODY.size)
        return cls(
            mode=MotorMode.from_byte(mode),
            feedback=MotorFeedback(
                torque=torque,
                speed=speed,
                position=pos,
                temperature=temp,
                error=bits & 0x7,
                force=(bits >> 3) & 0xFFF,
                reserved=(bits >> 15) & 0x1,
            ),
            head=head,
            crc=crc,
        )