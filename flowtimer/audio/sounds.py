"""Run sounds, synthesised with numpy and played through QSoundEffect.

Each sound is a short table of notes.  A note is a sine with a quieter
octave partial, a few milliseconds of linear attack and an exponential
tail, so the cues read as soft bells rather than beeps.  Rendered WAVs
are written once to ``SOUNDS_DIR`` and loaded from there afterwards.
"""

from __future__ import annotations

import io
import logging
import wave
from pathlib import Path
from typing import NamedTuple

import numpy as np

from PyQt6.QtCore import QObject, QUrl
from PyQt6.QtMultimedia import QSoundEffect

from ..database.db import APP_SUPPORT_DIR


logger = logging.getLogger(__name__)

SOUNDS_DIR = APP_SUPPORT_DIR / "sounds"
SAMPLE_RATE = 44100
ATTACK_S = 0.006


class Note(NamedTuple):
    freq: float       # Hz
    onset: float      # seconds from the start of the sound
    length: float     # seconds until the tail is cut
    decay: float      # seconds for the tail to fall to 1/e
    gain: float = 0.45


# G4 B4 D5, quick and light
FLOW_START = (
    Note(392.00, 0.00, 0.25, 0.08),
    Note(493.88, 0.09, 0.25, 0.08),
    Note(587.33, 0.18, 0.40, 0.12),
)

# C5 E5 G5 then a held C6
FLOW_COMPLETE = (
    Note(523.25, 0.00, 0.30, 0.10),
    Note(659.25, 0.12, 0.30, 0.10),
    Note(783.99, 0.24, 0.30, 0.10),
    Note(1046.50, 0.36, 1.10, 0.35, gain=0.5),
)

SOUNDS: dict[str, tuple[Note, ...]] = {
    "flow_start": FLOW_START,
    "flow_complete": FLOW_COMPLETE,
}
SOUND_NAMES = tuple(SOUNDS)


# ── synthesis ────────────────────────────────────────────────────────────


def _note_samples(note: Note) -> np.ndarray:
    t = np.arange(int(note.length * SAMPLE_RATE)) / SAMPLE_RATE
    tone = np.sin(2 * np.pi * note.freq * t) + 0.3 * np.sin(4 * np.pi * note.freq * t)
    envelope = np.exp(-t / note.decay) * np.minimum(t / ATTACK_S, 1.0)
    return note.gain * tone * envelope / 1.3


def render(notes: tuple[Note, ...]) -> np.ndarray:
    """Mix *notes* into one float buffer in -1..1."""
    end = max(n.onset + n.length for n in notes)
    out = np.zeros(int(end * SAMPLE_RATE) + 1)
    for note in notes:
        samples = _note_samples(note)
        start = int(note.onset * SAMPLE_RATE)
        out[start:start + len(samples)] += samples
    return np.clip(out, -1.0, 1.0)


def wav_bytes(samples: np.ndarray) -> bytes:
    """16-bit mono PCM WAV."""
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)
        wf.setframerate(SAMPLE_RATE)
        wf.writeframes((samples * 32767).astype("<i2").tobytes())
    return buf.getvalue()


# ── playback ─────────────────────────────────────────────────────────────


class SoundManager(QObject):
    """Plays the run sounds.  Doubles as the engine's audible sink."""

    def __init__(
        self,
        parent: QObject | None = None,
        *,
        sounds_dir: Path | None = None,
    ) -> None:
        super().__init__(parent)
        self._enabled = True
        self._volume = 0.7
        self._sounds_dir = sounds_dir or SOUNDS_DIR
        self._sounds_dir.mkdir(parents=True, exist_ok=True)
        self._effects: dict[str, QSoundEffect] = {
            name: self._load(name, notes) for name, notes in SOUNDS.items()
        }

    @property
    def volume(self) -> int:
        return round(self._volume * 100)

    @property
    def enabled(self) -> bool:
        return self._enabled

    def set_volume(self, level: int) -> None:
        """Volume as 0-100, clamped."""
        self._volume = max(0, min(level, 100)) / 100.0
        for effect in self._effects.values():
            effect.setVolume(self._volume)

    def set_enabled(self, enabled: bool) -> None:
        self._enabled = enabled

    def play(self, name: str) -> None:
        if not self._enabled:
            return
        effect = self._effects.get(name)
        if effect is not None:
            effect.play()

    def play_completion_sound(self) -> None:
        self.play("flow_complete")

    def _load(self, name: str, notes: tuple[Note, ...]) -> QSoundEffect:
        path = self._sounds_dir / f"{name}.wav"
        if not path.exists():
            logger.debug("Synthesising %s", path)
            path.write_bytes(wav_bytes(render(notes)))
        effect = QSoundEffect(self)
        effect.setSource(QUrl.fromLocalFile(str(path)))
        effect.setVolume(self._volume)
        return effect
