"""
Raw PCM <-> RIFF/WAVE transcoding.

Gemini TTS returns base64 raw PCM (16-bit signed, little-endian, mono,
24 kHz) with no container. These helpers turn it into normalized float
samples and back into a playable 16-bit PCM WAV file.

Encoding is bit-exact: samples are clamped to [-1, 1], negatives scale
by 32768 and non-negatives by 32767 (so +1.0 maps to 32767, not an
overflowing 32768), and the product is truncated toward zero.
"""

import base64
import binascii
import struct

import numpy as np

from scriptgenie.config import (
    DEFAULT_CHANNELS,
    DEFAULT_SAMPLE_RATE,
    PCM_BITS_PER_SAMPLE,
    WAV_HEADER_BYTES,
)

WAV_MIME_TYPE = "audio/wav"

_BYTES_PER_SAMPLE = PCM_BITS_PER_SAMPLE // 8
_PCM_FORMAT_TAG = 1
_FMT_CHUNK_SIZE = 16

# RIFF header, fmt chunk, data chunk header; little-endian throughout.
_HEADER = struct.Struct("<4sI4s4sIHHIIHH4sI")


def pcm_to_wav(
    samples: np.ndarray | list[float],
    sample_rate: int = DEFAULT_SAMPLE_RATE,
    channels: int = DEFAULT_CHANNELS,
) -> bytes:
    """
    Encode normalized float samples as a 16-bit PCM WAV file.

    Args:
        samples: Float samples, nominally in [-1.0, 1.0]. Out-of-range
            values are clamped; NaN encodes as silence.
        sample_rate: Samples per second written to the header.
        channels: Channel count written to the header. Multi-channel
            input must already be interleaved.

    Returns the complete file: 44-byte header followed by sample data.
    """
    data = np.asarray(samples, dtype=np.float64).ravel()
    data = np.nan_to_num(data, nan=0.0)
    data = np.clip(data, -1.0, 1.0)

    scaled = np.where(data < 0, data * 32768.0, data * 32767.0)
    pcm = np.trunc(scaled).astype("<i2")

    data_len = pcm.size * _BYTES_PER_SAMPLE
    header = _HEADER.pack(
        b"RIFF",
        36 + data_len,
        b"WAVE",
        b"fmt ",
        _FMT_CHUNK_SIZE,
        _PCM_FORMAT_TAG,
        channels,
        sample_rate,
        sample_rate * channels * _BYTES_PER_SAMPLE,
        channels * _BYTES_PER_SAMPLE,
        PCM_BITS_PER_SAMPLE,
        b"data",
        data_len,
    )
    return header + pcm.tobytes()


def decode_pcm_base64(
    payload: str,
    sample_rate: int = DEFAULT_SAMPLE_RATE,
) -> np.ndarray:
    """
    Decode base64 raw 16-bit little-endian PCM into float32 samples.

    `sample_rate` documents the rate the provider emitted; it does not
    change the decoded values.

    Raises ValueError for invalid base64 or an odd byte count.
    """
    try:
        raw = base64.b64decode(payload, validate=False)
    except binascii.Error as e:
        raise ValueError(f"Audio payload is not valid base64: {e}") from e

    if len(raw) % _BYTES_PER_SAMPLE:
        raise ValueError(
            f"PCM payload has {len(raw)} bytes, not a whole number of 16-bit samples."
        )

    ints = np.frombuffer(raw, dtype="<i2")
    return (ints.astype(np.float64) / 32768.0).astype(np.float32)


def wav_duration_sec(wav: bytes) -> float:
    """Duration of a WAV produced by `pcm_to_wav`, read from its header."""
    if len(wav) < WAV_HEADER_BYTES:
        raise ValueError("Not a WAV file: shorter than the 44-byte header.")

    fields = _HEADER.unpack_from(wav)
    if fields[0] != b"RIFF" or fields[2] != b"WAVE":
        raise ValueError("Not a RIFF/WAVE file.")

    byte_rate = fields[8]
    data_len = fields[12]
    if byte_rate == 0:
        return 0.0
    return data_len / byte_rate
