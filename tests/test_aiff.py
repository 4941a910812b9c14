import io
import struct

import pytest

from pomme3d.aiff import AIFFError, SampledSoundInfo, load_aiff, read_aiff_info
from pomme3d.fourcc import fourcc
from pomme3d.streams import EndOfStreamError

# 44100 Hz as an 80-bit extended float, as found in common AIFF files.
RATE_44100 = bytes.fromhex("400EAC44000000000000")


def chunk(ck_id: bytes, body: bytes) -> bytes:
    data = ck_id + struct.pack(">I", len(body)) + body
    if len(body) % 2:
        data += b"\x00"
    return data


def form(form_type: bytes, *chunks: bytes) -> bytes:
    body = form_type + b"".join(chunks)
    return b"FORM" + struct.pack(">I", len(body)) + body


def pstring(text: bytes) -> bytes:
    data = bytes([len(text)]) + text
    if len(data) % 2:
        data += b"\x00"
    return data


def comm(channels=1, packets=4, bits=16, compression=None, name=b"") -> bytes:
    body = struct.pack(">HIH", channels, packets, bits) + RATE_44100
    if compression is not None:
        body += compression + pstring(name)
    return chunk(b"COMM", body)


def ssnd(samples: bytes, offset=0) -> bytes:
    return chunk(b"SSND", struct.pack(">Q", offset) + samples)


def mark(*markers) -> bytes:
    body = struct.pack(">h", len(markers))
    for marker_id, position, name in markers:
        body += struct.pack(">HI", marker_id, position) + pstring(name)
    return chunk(b"MARK", body)


def inst(base_note, play_mode, begin, end) -> bytes:
    return chunk(b"INST", struct.pack(">b5xhHHH6x", base_note, 0, play_mode, begin, end))


SAMPLES = bytes(range(8))


def test_plain_aiff():
    info, data = load_aiff(form(b"AIFF", comm(), ssnd(SAMPLES)))
    assert data == SAMPLES
    assert info.n_channels == 1
    assert info.n_packets == 4
    assert info.codec_bit_depth == 16
    assert info.sample_rate == 44100.0
    assert info.compression_type == fourcc("NONE")
    assert info.big_endian is True
    assert info.is_compressed is False
    assert info.base_note == 60
    assert info.compressed_length == len(SAMPLES)
    assert info.decompressed_length == info.compressed_length


def test_aifc_little_endian():
    blob = form(b"AIFC", chunk(b"FVER", struct.pack(">I", 0xA2805140)),
                comm(compression=b"sowt", name=b"little"), ssnd(SAMPLES))
    info, data = load_aiff(blob)
    assert info.compression_name == "sowt"
    assert info.big_endian is False
    assert info.is_compressed is False
    assert data == SAMPLES


def test_aifc_ima4_decompressed_length():
    packets = b"\x00" * 68
    info, data = load_aiff(form(b"AIFC", comm(channels=1, packets=2, compression=b"ima4"), ssnd(packets)))
    assert info.is_compressed is True
    assert info.compressed_length == len(packets)
    assert info.decompressed_length == 256
    assert data == packets


def test_stream_left_at_data():
    blob = form(b"AIFF", comm(), ssnd(SAMPLES))
    stream = io.BytesIO(blob)
    info = read_aiff_info(stream)
    assert stream.tell() == info.data_offset
    assert stream.read(len(SAMPLES)) == SAMPLES


def test_unknown_chunk_with_odd_size_is_skipped():
    blob = form(b"AIFF", chunk(b"APPL", b"abc"), comm(), ssnd(SAMPLES))
    info, data = load_aiff(blob)
    assert data == SAMPLES
    assert blob[info.data_offset:info.data_offset + len(SAMPLES)] == SAMPLES


def test_loop_from_markers():
    blob = form(b"AIFF", comm(), mark((1, 2, b"start"), (2, 7, b"end")), inst(48, 1, 1, 2), ssnd(SAMPLES))
    info = read_aiff_info(blob)
    assert info.base_note == 48
    assert (info.loop_start, info.loop_end) == (2, 7)


def test_no_loop_play_mode():
    blob = form(b"AIFF", comm(), inst(72, 0, 0, 0), ssnd(SAMPLES))
    info = read_aiff_info(blob)
    assert info.base_note == 72
    assert (info.loop_start, info.loop_end) == (0, 0)


def test_loop_with_missing_marker():
    blob = form(b"AIFF", comm(), mark((1, 2, b"start")), inst(60, 1, 1, 9), ssnd(SAMPLES))
    with pytest.raises(AIFFError):
        read_aiff_info(blob)


def test_unsupported_play_mode():
    blob = form(b"AIFF", comm(), inst(60, 2, 0, 0), ssnd(SAMPLES))
    with pytest.raises(AIFFError):
        read_aiff_info(blob)


def test_unknown_compression():
    with pytest.raises(AIFFError):
        read_aiff_info(form(b"AIFC", comm(compression=b"zzzz"), ssnd(SAMPLES)))


def test_not_a_form():
    with pytest.raises(AIFFError):
        read_aiff_info(b"RIFF" + bytes(8))


def test_wrong_form_type():
    with pytest.raises(AIFFError):
        read_aiff_info(form(b"WAVE", comm()))


def test_ssnd_before_comm():
    with pytest.raises(AIFFError):
        read_aiff_info(form(b"AIFF", ssnd(SAMPLES), comm()))


def test_bad_fver():
    with pytest.raises(AIFFError):
        read_aiff_info(form(b"AIFC", chunk(b"FVER", struct.pack(">I", 1)), comm(compression=b"NONE")))


def test_nonzero_ssnd_offset():
    with pytest.raises(AIFFError):
        read_aiff_info(form(b"AIFF", comm(), ssnd(SAMPLES, offset=4)))


def test_truncated_file():
    blob = form(b"AIFF", comm(), ssnd(SAMPLES))
    with pytest.raises(EndOfStreamError):
        read_aiff_info(blob[:30])


def test_defaults_without_sound_data():
    info = read_aiff_info(form(b"AIFF", comm()))
    assert info.compressed_length == 0
    assert info.data_offset == 0
    assert info.base_note == SampledSoundInfo().base_note