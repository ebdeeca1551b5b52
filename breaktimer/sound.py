from __future__ import annotations

import io
import logging
import math
import os
import struct
import wave
from dataclasses import dataclass
from typing import Iterable


SAMPLE_RATE = 44100
CHIME_NOTES = (880.0, 1318.5)
NOTE_SECONDS = 0.35


class SoundDecodeError(Exception):
    pass


@dataclass
class Clip:
    path: str
    channels: int
    sample_width: int
    frame_rate: int
    frames: int

    @property
    def duration(self) -> float:
        if self.frame_rate <= 0:
            return 0.0
        return self.frames / float(self.frame_rate)


def _tone(frequency: float, seconds: float, sample_rate: int, volume: float) -> Iterable[int]:
    count = int(seconds * sample_rate)
    for i in range(count):
        t = i / sample_rate
        envelope = math.exp(-6.0 * t / seconds)
        yield int(32767 * volume * envelope * math.sin(2 * math.pi * frequency * t))


def synthesize_chime(
    notes: Iterable[float] = CHIME_NOTES,
    note_seconds: float = NOTE_SECONDS,
    sample_rate: int = SAMPLE_RATE,
    volume: float = 0.5,
) -> bytes:
    samples: list[int] = []
    for frequency in notes:
        samples.extend(_tone(frequency, note_seconds, sample_rate, volume))
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav:
        wav.setnchannels(1)
        wav.setsampwidth(2)
        wav.setframerate(sample_rate)
        wav.writeframes(struct.pack(f"<{len(samples)}h", *samples))
    return buffer.getvalue()


def decode_wav(data: bytes, path: str = "") -> Clip:
    try:
        with wave.open(io.BytesIO(data), "rb") as wav:
            clip = Clip(
                path=path,
                channels=wav.getnchannels(),
                sample_width=wav.getsampwidth(),
                frame_rate=wav.getframerate(),
                frames=wav.getnframes(),
            )
    except (wave.Error, EOFError) as exc:
        raise SoundDecodeError(f"unable to decode notification sound: {exc}") from exc
    if clip.frames <= 0:
        raise SoundDecodeError("notification sound has no audio frames")
    return clip


def ensure_sound_file(path: str) -> str:
    if os.path.exists(path):
        return path
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "wb") as f:
        f.write(synthesize_chime())
    logging.info("notification sound written: %s", path)
    return path


def load_clip(path: str) -> Clip:
    try:
        with open(path, "rb") as f:
            data = f.read()
    except OSError as exc:
        raise SoundDecodeError(f"unable to read notification sound: {exc}") from exc
    clip = decode_wav(data, path=path)
    logging.info("notification sound loaded: %s (%.2fs)", path, clip.duration)
    return clip
