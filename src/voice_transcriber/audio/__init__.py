"""Audio capture, spectral utilities and log-Mel feature extraction."""

from voice_transcriber.audio.config import AudioConfig
from voice_transcriber.audio.collector import AudioCollector, read_wav, read_wav_chunks
from voice_transcriber.audio.features import ExtractionReport, LogMelExtractor, RingBuffer
from voice_transcriber.audio.fft import fft, ifft, next_power_of_two
from voice_transcriber.audio.filterbank import FilterbankProjector, mel_filterbank
from voice_transcriber.audio.spectral import hann_window, pad_or_truncate, power_spectrum

__all__ = [
    "AudioConfig",
    "AudioCollector",
    "ExtractionReport",
    "FilterbankProjector",
    "LogMelExtractor",
    "RingBuffer",
    "fft",
    "hann_window",
    "ifft",
    "mel_filterbank",
    "next_power_of_two",
    "pad_or_truncate",
    "power_spectrum",
    "read_wav",
    "read_wav_chunks",
]
