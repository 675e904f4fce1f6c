"""
Framing used between a bus connection and the simulator backend.

Request:  0xA5 | op | bus type | source | target | bus | read len | data len (2) | data | checksum
Reply:    0x5A | status | len | payload | checksum

source, target and bus are UTF-8 fields with a one byte length prefix. The
data length is two bytes, big-endian. The checksum is the low byte of the
sum of every preceding byte in the frame. A non-zero reply status carries a
UTF-8 error message instead of data.
"""

from dataclasses import dataclass

from simterm.communicator.errors import BusError

REQUEST_SYNC = 0xA5
REPLY_SYNC = 0x5A

OP_WRITE = 0x01
OP_READ = 0x02
OP_TRANSACT = 0x03

MAX_FIELD_LENGTH = 255
MAX_DATA_LENGTH = 0xFFFF


def checksum(frame: bytes) -> int:
    return sum(frame) & 0xFF


def _field(value: bytes) -> bytes:
    if len(value) > MAX_FIELD_LENGTH:
        raise BusError(f"Field of {len(value)} bytes exceeds the {MAX_FIELD_LENGTH} byte frame limit")
    return bytes([len(value)]) + value


def encode_request(op: int, bus_type: int, source: bytes, target: bytes, bus: bytes,
                   read_length: int = 0, data: bytes = b"") -> bytes:
    if not 0 <= read_length <= MAX_FIELD_LENGTH:
        raise BusError(f"Read length {read_length} is outside 0..{MAX_FIELD_LENGTH}")
    frame = bytes([REQUEST_SYNC, op, bus_type])
    frame += _field(source) + _field(target) + _field(bus)
    if len(data) > MAX_DATA_LENGTH:
        raise BusError(f"Payload of {len(data)} bytes exceeds the {MAX_DATA_LENGTH} byte frame limit")
    frame += bytes([read_length]) + len(data).to_bytes(2, "big") + data
    return frame + bytes([checksum(frame)])


@dataclass
class Request:
    op: int
    bus_type: int
    source: bytes
    target: bytes
    bus: bytes
    read_length: int
    data: bytes


def decode_request(frame: bytes) -> Request:
    """Parses one complete request frame, the inverse of encode_request."""
    if len(frame) < 2 or frame[0] != REQUEST_SYNC:
        raise BusError("Bad request sync byte")
    if checksum(frame[:-1]) != frame[-1]:
        raise BusError("Request checksum mismatch")

    pos = 3
    fields = []
    for _ in range(3):
        length = frame[pos]
        fields.append(bytes(frame[pos + 1:pos + 1 + length]))
        pos += 1 + length
    read_length = frame[pos]
    data_length = int.from_bytes(frame[pos + 1:pos + 3], "big")
    data = bytes(frame[pos + 3:pos + 3 + data_length])
    return Request(frame[1], frame[2], *fields, read_length, data)


def encode_reply(status: int, payload: bytes = b"") -> bytes:
    frame = bytes([REPLY_SYNC, status]) + _field(payload)
    return frame + bytes([checksum(frame)])


def read_reply(port) -> bytes:
    """
    Reads one reply frame from a pyserial-style port and returns its data.

    Raises BusError on timeout, a corrupt frame, or a non-zero status.
    """
    header = port.read(3)
    if len(header) < 3:
        raise BusError("Timed out waiting for a reply from the simulator backend")
    if header[0] != REPLY_SYNC:
        raise BusError(f"Bad reply sync byte 0x{header[0]:02X}")

    length = header[2]
    body = port.read(length + 1)
    if len(body) < length + 1:
        raise BusError("Reply from the simulator backend was truncated")

    payload, received = body[:length], body[length]
    if checksum(header + payload) != received:
        raise BusError("Reply checksum mismatch")

    status = header[1]
    if status != 0:
        raise BusError(payload.decode("utf-8", errors="replace") or f"Backend error status {status}")
    return payload
