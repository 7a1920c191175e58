"""Sliding-window sample accumulator with periodic extraction triggers.

Keeps the most recent window_sec of int16 audio. Every trigger_sec of newly
appended audio it snapshots the whole window; the buffer is never cleared by
a trigger, so consecutive snapshots overlap.
"""

from __future__ import annotations

import enum
import threading
from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from voice_transcriber.audio.features import RingBuffer


@dataclass(frozen=True)
class StreamingConfig:
    """Streaming transcription parameters."""

    window_sec: float = 30.0
    trigger_sec: float = 3.0
    chunk_sec: float = 0.1
    sample_rate: int = 16_000

    def __post_init__(self) -> None:
        if self.trigger_samples < 1:
            raise ValueError("trigger_sec must cover at least one sample")
        if self.trigger_samples >= self.window_samples:
            raise ValueError("trigger_sec must be shorter than window_sec")

    @property
    def window_samples(self) -> int:
        return int(self.window_sec * self.sample_rate)

    @property
    def trigger_samples(self) -> int:
        return int(self.trigger_sec * self.sample_rate)

    @property
    def chunk_samples(self) -> int:
        return int(self.chunk_sec * self.sample_rate)


class AccumulatorState(enum.Enum):
    IDLE = "idle"  # window not yet full
    ACCUMULATING = "accumulating"


class StreamAccumulator:
    """Rolling int16 buffer plus trigger counter, guarded by one lock.

    Interface:
      acc = StreamAccumulator(StreamingConfig())
      for snapshot in acc.append(chunk):
          ...  # full window as of the trigger point

    A chunk that crosses several trigger boundaries yields one snapshot per
    boundary, each taken at the sample that reached it.
    """

    def __init__(self, config: Optional[StreamingConfig] = None):
        self.config = config or StreamingConfig()
        self._ring = RingBuffer(self.config.window_samples, dtype=np.int16)
        self._since_trigger = 0
        self._triggers = 0
        self._lock = threading.Lock()

    def append(self, samples: np.ndarray, suppress_triggers: bool = False) -> List[np.ndarray]:
        """Append samples, evict the oldest beyond the window, and collect trigger snapshots.

        With suppress_triggers the samples are buffered but earn no trigger
        credit and no snapshot is taken.
        """
        samples = np.asarray(samples)
        if samples.ndim != 1:
            raise ValueError(f"samples must be 1-D, got shape {samples.shape}")

        snapshots: List[np.ndarray] = []
        trigger = self.config.trigger_samples
        with self._lock:
            if suppress_triggers:
                self._ring.push(samples)
                return snapshots

            pos = 0
            while pos < len(samples):
                take = min(len(samples) - pos, trigger - self._since_trigger)
                self._ring.push(samples[pos : pos + take])
                self._since_trigger += take
                pos += take
                if self._since_trigger >= trigger:
                    snapshots.append(self._ring.get_all())
                    self._since_trigger = 0
                    self._triggers += 1
        return snapshots

    def snapshot(self) -> np.ndarray:
        """Copy of the current window without touching the trigger counter."""
        with self._lock:
            return self._ring.get_all()

    def clear(self) -> None:
        """Drop buffered audio and reset the trigger counter."""
        with self._lock:
            self._ring.clear()
            self._since_trigger = 0

    @property
    def state(self) -> AccumulatorState:
        with self._lock:
            return AccumulatorState.ACCUMULATING if self._ring.is_full else AccumulatorState.IDLE

    @property
    def buffer_size(self) -> int:
        with self._lock:
            return len(self._ring)

    @property
    def samples_since_trigger(self) -> int:
        with self._lock:
            return self._since_trigger

    @property
    def triggers_fired(self) -> int:
        with self._lock:
            return self._triggers
