"""Loading WAV files as 48 kHz mono floating-point audio."""

from __future__ import annotations

import struct
from pathlib import Path

import numpy as np

AUDIO_RATE = 48000

_FORMAT_PCM = 1
_FORMAT_FLOAT = 3
_FORMAT_EXTENSIBLE = 0xFFFE


def _parse(raw: bytes) -> tuple[int, int, int, int, bytes]:
    """Return (format tag, channels, rate, bits per sample, data bytes)."""
    if len(raw) < 12 or raw[:4] != b"RIFF" or raw[8:12] != b"WAVE":
        raise ValueError("not a RIFF/WAVE file")
    fmt = None
    data = None
    offset = 12
    while offset + 8 <= len(raw):
        chunk_id, size = struct.unpack_from("<4sI", raw, offset)
        body = raw[offset + 8: offset + 8 + size]
        if chunk_id == b"fmt ":
            if len(body) < 16:
                raise ValueError("truncated fmt chunk")
            tag, channels, rate, _byte_rate, _align, bits = struct.unpack_from("<HHIIHH", body)
            if tag == _FORMAT_EXTENSIBLE and len(body) >= 26:
                tag = struct.unpack_from("<H", body, 24)[0]
            fmt = (tag, channels, rate, bits)
        elif chunk_id == b"data":
            data = body
        offset += 8 + size + (size & 1)
    if fmt is None:
        raise ValueError("missing fmt chunk")
    if data is None:
        raise ValueError("missing data chunk")
    return (*fmt, data)


def _decode(tag: int, bits: int, data: bytes) -> np.ndarray:
    if tag == _FORMAT_PCM:
        if bits == 8:
            return (np.frombuffer(data, dtype=np.uint8).astype(np.float64) - 128.0) / 128.0
        if bits == 16:
            return np.frombuffer(data, dtype="<i2").astype(np.float64) / 32768.0
        if bits == 24:
            b = np.frombuffer(data, dtype=np.uint8).reshape(-1, 3).astype(np.int32)
            values = b[:, 0] | (b[:, 1] << 8) | (b[:, 2] << 16)
            values = np.where(values >= 1 << 23, values - (1 << 24), values)
            return values.astype(np.float64) / float(1 << 23)
        if bits == 32:
            return np.frombuffer(data, dtype="<i4").astype(np.float64) / float(1 << 31)
    elif tag == _FORMAT_FLOAT:
        if bits == 32:
            return np.frombuffer(data, dtype="<f4").astype(np.float64)
        if bits == 64:
            return np.frombuffer(data, dtype="<f8").astype(np.float64)
    raise ValueError(f"unsupported sample format (tag {tag}, {bits} bits)")


def _resample(samples: np.ndarray, rate: int) -> np.ndarray:
    if rate == AUDIO_RATE or samples.size == 0:
        return samples
    out_count = int(round(samples.size * AUDIO_RATE / rate))
    positions = np.arange(out_count) * (rate / AUDIO_RATE)
    return np.interp(positions, np.arange(samples.size), samples)


def load_wav(filename) -> np.ndarray:
    """Load a WAV file as 48 kHz float32 mono, converting if needed."""
    try:
        raw = Path(filename).read_bytes()
        tag, channels, rate, bits, data = _parse(raw)
        if channels == 0 or rate == 0 or bits == 0 or bits % 8 != 0:
            raise ValueError("invalid fmt chunk")
        frame_bytes = channels * bits // 8
        data = data[: len(data) - len(data) % frame_bytes]
        samples = _decode(tag, bits, data)
    except (OSError, ValueError, struct.error) as exc:
        raise ValueError(f"Failed to load WAV file '{filename}'; {exc}") from exc

    needed = not (tag == _FORMAT_FLOAT and bits == 32 and channels == 1 and rate == AUDIO_RATE)
    if needed:
        print(
            f"WAV file '{filename}' didn't load as {AUDIO_RATE} Hz, float32, mono; converting."
        )
    mono = samples.reshape(-1, channels).mean(axis=1)
    result = _resample(mono, rate).astype(np.float32)

    low = min(0.0, float(result.min())) if result.size else 0.0
    high = max(0.0, float(result.max())) if result.size else 0.0
    print(f"Range: {low}, {high}")
    return result