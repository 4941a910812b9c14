"""Reading sampled sound from AIFF and AIFF-C files."""

from __future__ import annotations

from dataclasses import dataclass
from typing import BinaryIO, Union

from .fourcc import fourcc, fourcc_string
from .streams import BigEndianReader

__all__ = ["AIFFError", "SampledSoundInfo", "read_aiff_info", "load_aiff"]

_FORM = fourcc("FORM")
_AIFF = fourcc("AIFF")
_AIFC = fourcc("AIFC")
_FVER = fourcc("FVER")
_COMM = fourcc("COMM")
_MARK = fourcc("MARK")
_INST = fourcc("INST")
_SSND = fourcc("SSND")
_NONE = fourcc("NONE")

_FVER_AIFC_VERSION_1 = 0xA2805140

# compression type -> (big endian, compressed)
_COMPRESSION_TYPES = {
    fourcc("NONE"): (True, False),
    fourcc("twos"): (True, False),
    fourcc("sowt"): (False, False),
    fourcc("raw "): (True, False),
    fourcc("MAC3"): (True, True),
    fourcc("ima4"): (True, True),
    fourcc("ulaw"): (True, True),
    fourcc("alaw"): (True, True),
}

# Samples each codec packet decodes to, per channel.
_SAMPLES_PER_PACKET = {
    fourcc("MAC3"): 6,
    fourcc("ima4"): 64,
    fourcc("ulaw"): 1,
    fourcc("alaw"): 1,
}

Source = Union[BinaryIO, bytes, bytearray]


class AIFFError(ValueError):
    """Raised when an AIFF file is malformed or uses unsupported features."""


def _check(condition: bool, message: str) -> None:
    if not condition:
        raise AIFFError(message)


@dataclass
class SampledSoundInfo:
    """What an AIFF file says about its sampled sound data."""

    n_channels: int = 0
    n_packets: int = 0
    codec_bit_depth: int = 0
    sample_rate: float = 0.0
    compression_type: int = _NONE
    big_endian: bool = False
    is_compressed: bool = False
    base_note: int = 60  # middle C
    loop_start: int = 0
    loop_end: int = 0
    compressed_length: int = 0
    decompressed_length: int = 0
    data_offset: int = 0

    @property
    def compression_name(self) -> str:
        """The compression type as text, such as ``'sowt'``."""
        return fourcc_string(self.compression_type)


def _parse_comm(f: BigEndianReader, info: SampledSoundInfo, is_aifc: bool) -> None:
    info.n_channels = f.read_u16()
    info.n_packets = f.read_u32()
    info.codec_bit_depth = f.read_u16()
    info.sample_rate = f.read_extended()

    if is_aifc:
        info.compression_type = f.read_u32()
        f.read_pascal_string(2)  # human-readable compression name
    else:
        info.compression_type = _NONE

    layout = _COMPRESSION_TYPES.get(info.compression_type)
    if layout is None:
        raise AIFFError(
            f"unknown AIFF-C compression type '{fourcc_string(info.compression_type)}'"
        )
    info.big_endian, info.is_compressed = layout


def _parse_mark(f: BigEndianReader, markers: dict[int, int]) -> None:
    for _ in range(f.read_i16()):
        marker_id = f.read_u16()
        position = f.read_u32()
        f.read_pascal_string(2)  # marker name
        markers[marker_id] = position


def _parse_inst(f: BigEndianReader, info: SampledSoundInfo, markers: dict[int, int]) -> None:
    info.base_note = f.read_i8()
    f.skip(5)  # detune, low note, high note, low velocity, high velocity
    f.skip(2)  # gain
    play_mode = f.read_u16()
    begin_marker = f.read_u16()
    end_marker = f.read_u16()
    f.skip(6)  # release loop

    if play_mode == 0:
        return
    if play_mode != 1:
        raise AIFFError(f"unsupported AIFF INST playMode {play_mode}")
    try:
        info.loop_start = markers[begin_marker]
        info.loop_end = markers[end_marker]
    except KeyError as exc:
        raise AIFFError(f"AIFF: loop refers to undefined marker {exc.args[0]}") from None


def _read_info(f: BigEndianReader) -> SampledSoundInfo:
    _check(f.read_u32() == _FORM, "AIFF: invalid FORM")
    form_size = f.read_u32()
    end_of_form = f.tell() + form_size
    form_type = f.read_u32()
    _check(form_type in (_AIFF, _AIFC), "AIFF: not an AIFF or AIFC file")

    info = SampledSoundInfo()
    markers: dict[int, int] = {}
    got_comm = False

    while f.tell() < end_of_form:
        chunk_id = f.read_u32()
        chunk_size = f.read_u32()
        end_of_chunk = f.tell() + chunk_size

        if chunk_id == _FVER:
            _check(f.read_u32() == _FVER_AIFC_VERSION_1, "AIFF: unrecognized FVER")
        elif chunk_id == _COMM:
            _parse_comm(f, info, form_type == _AIFC)
            got_comm = True
        elif chunk_id == _MARK:
            _parse_mark(f, markers)
        elif chunk_id == _INST:
            _parse_inst(f, info, markers)
        elif chunk_id == _SSND:
            _check(got_comm, "AIFF: reached SSND before COMM")
            _check(f.read_u64() == 0, "AIFF: unexpected offset/blockSize in SSND")
            info.data_offset = f.tell()
            ssnd_size = chunk_size - 8
            _check(ssnd_size >= 0, "AIFF: SSND chunk too small")
            info.compressed_length = ssnd_size
            if info.is_compressed:
                samples = _SAMPLES_PER_PACKET[info.compression_type]
                info.decompressed_length = info.n_channels * info.n_packets * samples * 2
            else:
                info.decompressed_length = ssnd_size
            f.skip(ssnd_size)
        else:
            f.seek(end_of_chunk)

        _check(f.tell() == end_of_chunk, "AIFF: incorrect end-of-chunk position")

        # Chunks are padded to an even length.
        if f.tell() & 1 and f.tell() < f.length():
            f.skip(1)

    f.seek(info.data_offset)
    return info


def read_aiff_info(stream: Source) -> SampledSoundInfo:
    """Describe the sound in an AIFF or AIFF-C stream.

    Reading starts at the stream's current position; afterwards the stream
    is left at the start of the sampled sound data.
    """
    return _read_info(BigEndianReader(stream))


def load_aiff(stream: Source) -> tuple[SampledSoundInfo, bytes]:
    """Read an AIFF or AIFF-C stream: its description and its raw sound data."""
    f = BigEndianReader(stream)
    info = _read_info(f)
    f.seek(info.data_offset)
    return info, f.read_bytes(info.compressed_length)