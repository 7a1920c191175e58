"""Audio capture at mono 16 kHz, signed 16-bit PCM."""

import queue
from pathlib import Path
from typing import Iterator, Optional, Union

import numpy as np

try:
    import sounddevice as sd
except (ImportError, OSError):
    sd = None  # type: ignore

from voice_transcriber.audio.config import AudioConfig


class AudioCollector:
    """Records int16 audio chunks from an input device in streaming or batch mode."""

    def __init__(self, config: Optional[AudioConfig] = None):
        self.config = config or AudioConfig()

    def record_chunk(
        self,
        duration_sec: float,
        device: Optional[int] = None,
    ) -> np.ndarray:
        """Record a single chunk of audio.

        Args:
            duration_sec: Recording duration in seconds.
            device: Input device index (None = default).

        Returns:
            Mono int16 array, shape (n_samples,).
        """
        if sd is None:
            raise ImportError("sounddevice is required for recording. pip install sounddevice")

        samples = int(duration_sec * self.config.sample_rate)
        rec = sd.rec(
            samples,
            samplerate=self.config.sample_rate,
            channels=self.config.channels,
            dtype=self.config.dtype,
            device=device,
        )
        sd.wait()
        return rec.reshape(-1)

    def record_stream(
        self,
        chunk_duration_sec: float = 0.1,
        device: Optional[int] = None,
    ) -> Iterator[np.ndarray]:
        """Stream audio chunks continuously.

        Yields:
            Mono int16 chunks, shape (n_samples,).
        """
        if sd is None:
            raise ImportError("sounddevice is required for recording. pip install sounddevice")

        chunk_samples = int(chunk_duration_sec * self.config.sample_rate)
        q: "queue.Queue[np.ndarray]" = queue.Queue()

        def callback(indata: np.ndarray, _frames: int, _time: object, _status: object) -> None:
            q.put(indata.copy().reshape(-1))

        with sd.InputStream(
            samplerate=self.config.sample_rate,
            channels=self.config.channels,
            dtype=self.config.dtype,
            blocksize=chunk_samples,
            device=device,
            callback=callback,
        ):
            while True:
                yield q.get()

    def record_to_file(
        self,
        filepath: Union[str, Path],
        duration_sec: float,
        device: Optional[int] = None,
    ) -> None:
        """Record audio and save as mono 16 kHz 16-bit WAV."""
        import scipy.io.wavfile as wavfile

        audio = self.record_chunk(duration_sec, device=device)
        wavfile.write(str(filepath), self.config.sample_rate, audio.astype(np.int16))


def read_wav(path: Union[str, Path], sample_rate: int = 16_000) -> np.ndarray:
    """Load a mono WAV file as int16 samples.

    Float WAVs are scaled from [-1, 1]; multi-channel audio is averaged.
    """
    import scipy.io.wavfile as wavfile

    sr, audio = wavfile.read(str(path))
    if sr != sample_rate:
        raise ValueError(f"Expected {sample_rate} Hz, got {sr} Hz. Resample the file.")
    is_float = np.issubdtype(audio.dtype, np.floating)
    if audio.ndim > 1:
        audio = audio.mean(axis=1)
    if is_float:
        audio = np.clip(audio, -1.0, 1.0) * 32767
    return np.round(audio).astype(np.int16)


def read_wav_chunks(
    path: Union[str, Path],
    chunk_samples: int,
    sample_rate: int = 16_000,
) -> Iterator[np.ndarray]:
    """Yield int16 chunks of chunk_samples from a WAV file (last chunk may be short)."""
    audio = read_wav(path, sample_rate=sample_rate)
    for i in range(0, len(audio), chunk_samples):
        chunk = audio[i : i + chunk_samples]
        if len(chunk) > 0:
            yield chunk
