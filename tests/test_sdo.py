import pytest

from enitech_thruster.message import CanMessage, read16, write16
from enitech_thruster.protocol import NodeState, Protocol
from enitech_thruster.sdo import (
    Read8,
    Read16,
    ReadBG149Temperature,
    ReadString,
    SDOError,
    UnexpectedSDOReply,
    Write,
    WriteHeartbeatPeriod,
    WriteUpdatePeriod,
)

NODE = 3


def reply(command, index, subindex, payload=b"", node=NODE, size=8, time=0.0):
    message = CanMessage(can_id=0x580 + node, size=size, time=time)
    message.data[0] = command
    write16(message, 1, index)
    message.data[3] = subindex
    for offset, byte in enumerate(payload):
        message.data[4 + offset] = byte
    return message


def error_reply(index, subindex, w0, w1):
    message = reply(0x80, index, subindex)
    write16(message, 4, w0)
    write16(message, 6, w1)
    return message


@pytest.fixture
def protocol():
    return Protocol(NODE)


def test_read_request_frame(protocol):
    request = Read8(protocol, 0x2001, 0x02)
    assert request.message.can_id == 0x600 + NODE
    assert request.message.size == 8
    assert request.message.data[0] == 0x40
    assert read16(request.message, 1) == 0x2001
    assert request.message.data[3] == 0x02


def test_non_sdo_frames_are_forwarded(protocol):
    request = Read8(protocol, 0x2001, 0)
    heartbeat = CanMessage(can_id=0x700 + NODE, size=1, data=bytes([0x05]))
    assert request.update(heartbeat) is False
    assert protocol.last_known_state == NodeState.RUNNING


def test_reply_for_other_node_raises(protocol):
    request = Read8(protocol, 0x2001, 0)
    with pytest.raises(UnexpectedSDOReply):
        request.update(reply(0x42, 0x2001, 0, node=NODE + 1))


def test_reply_with_wrong_size_raises(protocol):
    request = Read8(protocol, 0x2001, 0)
    with pytest.raises(UnexpectedSDOReply):
        request.update(reply(0x42, 0x2001, 0, size=7))


def test_reply_for_other_object_raises(protocol):
    request = Read8(protocol, 0x2001, 0)
    with pytest.raises(UnexpectedSDOReply, match="different object"):
        request.update(reply(0x42, 0x2002, 0))


def test_reply_for_other_subindex_raises(protocol):
    request = Read8(protocol, 0x2001, 0)
    with pytest.raises(UnexpectedSDOReply, match="different subindex"):
        request.update(reply(0x42, 0x2001, 1))


@pytest.mark.parametrize(
    "w0, w1, text",
    [
        (0x0602, 0x0000, "object does not exist"),
        (0x0609, 0x0011, "sub-index does not exist"),
        (0x0800, 0x0024, "no data available"),
        (0x1234, 0x5678, "unknown SDO error"),
    ],
)
def test_error_reply_raises_sdo_error(protocol, w0, w1, text):
    request = Read16(protocol, 0x2001, 0)
    with pytest.raises(SDOError) as info:
        request.update(error_reply(0x2001, 0, w0, w1))
    assert str(info.value) == text


def test_read8_decodes_value_and_time(protocol):
    request = Read8(protocol, 0x2001, 4)
    assert request.update(reply(0x42, 0x2001, 4, bytes([0xAB]), time=12.5)) is True
    assert request.value == 0xAB
    assert request.time == 12.5


def test_read16_round_trips_value(protocol):
    request = Read16(protocol, 0x2001, 0)
    message = reply(0x42, 0x2001, 0)
    write16(message, 4, 0xBEEF)
    assert request.update(message) is True
    assert request.value == 0xBEEF


def test_read_string(protocol):
    request = ReadString(protocol, 0x1008, 0)
    assert request.update(reply(0x42, 0x1008, 0, b"ABCD")) is True
    assert request.value == "ABCD"


def test_read_rejects_write_reply(protocol):
    request = Read8(protocol, 0x2001, 0)
    with pytest.raises(UnexpectedSDOReply, match="SDO read"):
        request.update(reply(0x60, 0x2001, 0))


def test_bg149_temperature_request(protocol):
    request = ReadBG149Temperature(protocol, 2)
    assert read16(request.message, 1) == 0x3010
    assert request.message.data[3] == 2
    message = reply(0x42, 0x3010, 2)
    write16(message, 4, 45)
    assert request.update(message) is True
    assert request.value == 45


def test_write16_frame_and_ack(protocol):
    request = Write(protocol, 0x2200, 0, 0x1234, 16)
    assert request.message.data[0] == 0x22
    assert read16(request.message, 4) == 0x1234
    assert request.update(reply(0x60, 0x2200, 0)) is True


def test_write8_frame(protocol):
    request = Write(protocol, 0x2200, 1, 0x7F, 8)
    assert request.message.data[4] == 0x7F
    assert request.message.data[5] == 0


def test_write_rejects_read_reply(protocol):
    request = Write(protocol, 0x2200, 0, 1, 16)
    with pytest.raises(UnexpectedSDOReply, match="SDO write"):
        request.update(reply(0x42, 0x2200, 0))


def test_write_rejects_invalid_width(protocol):
    with pytest.raises(ValueError):
        Write(protocol, 0x2200, 0, 1, 32)


def test_write_heartbeat_period(protocol):
    request = WriteHeartbeatPeriod(protocol, 2.0)
    assert read16(request.message, 1) == 0x1017
    assert read16(request.message, 4) == 2000


def test_write_update_period(protocol):
    request = WriteUpdatePeriod(protocol, 0.1)
    assert read16(request.message, 1) == 0x2200
    assert read16(request.message, 4) == 100