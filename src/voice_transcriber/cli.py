"""CLI for recording, feature extraction and streaming transcription."""

import argparse
import logging
import sys
from pathlib import Path

from voice_transcriber.audio import AudioCollector, FilterbankProjector, LogMelExtractor
from voice_transcriber.audio.collector import read_wav, read_wav_chunks
from voice_transcriber.audio.config import AudioConfig
from voice_transcriber.audio.filterbank import mel_filterbank, write_filterbank
from voice_transcriber.errors import TranscriptionError
from voice_transcriber.models import TensorStager
from voice_transcriber.pipeline import StreamingConfig, StreamingTranscriber, TranscriptionEngine


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Streaming log-Mel transcription (mono 16 kHz, 16-bit PCM)"
    )
    parser.add_argument(
        "--list-devices",
        action="store_true",
        help="List available audio input devices and exit",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command")

    rec = sub.add_parser("record", help="Record audio to a WAV file")
    rec.add_argument(
        "--duration",
        type=float,
        default=5.0,
        help="Recording duration in seconds (default: 5)",
    )
    rec.add_argument(
        "--output",
        "-o",
        type=Path,
        default=Path("recording.wav"),
        help="Output WAV file path",
    )
    rec.add_argument("--device", type=int, default=None, help="Input device index")

    feat = sub.add_parser("features", help="Extract the fixed-shape log-Mel matrix from a WAV file")
    feat.add_argument("input", type=Path, help="Mono 16 kHz WAV file")
    feat.add_argument("--filters", type=Path, default=None, help="Mel filterbank resource")
    feat.add_argument(
        "--stage",
        type=Path,
        default=None,
        help="Write the staged float32 tensor bytes to this path",
    )

    mk = sub.add_parser("make-filters", help="Write a synthesized mel filterbank resource")
    mk.add_argument("output", type=Path, help="Output resource path")

    tr = sub.add_parser("transcribe", help="Stream audio through the model and print text")
    tr.add_argument("--model", type=Path, required=True, help="TorchScript token model")
    tr.add_argument("--vocab", type=Path, required=True, help="Vocabulary JSON (token -> id)")
    tr.add_argument("--filters", type=Path, default=None, help="Mel filterbank resource")
    tr.add_argument("--file", type=Path, default=None, help="WAV file instead of the microphone")
    tr.add_argument("--device", type=int, default=None, help="Input device index")
    tr.add_argument("--torch-device", default=None, help="Torch device (default: cuda if available)")
    tr.add_argument("--window-sec", type=float, default=30.0, help="Rolling context (default: 30)")
    tr.add_argument("--trigger-sec", type=float, default=3.0, help="Inference interval (default: 3)")
    return parser


def _cmd_features(args: argparse.Namespace, config: AudioConfig) -> None:
    projector = FilterbankProjector.from_file(args.filters, config)
    extractor = LogMelExtractor(config, projector)
    audio = read_wav(args.input, sample_rate=config.sample_rate)
    features, report = extractor.extract_with_report(audio)
    print(f"Extracted {features.shape[0]} Mel bins x {features.shape[1]} steps "
          f"from {len(audio)} samples ({report.n_frames} frames, "
          f"{len(report.skipped_frames)} skipped)")
    if projector.is_fallback:
        print("Warning: fallback mel filters in use", file=sys.stderr)
    if args.stage is not None:
        data = TensorStager(config).stage(features)
        args.stage.write_bytes(data)
        print(f"Staged tensor: {len(data)} bytes -> {args.stage}")


def _cmd_transcribe(args: argparse.Namespace, config: AudioConfig) -> None:
    streaming = StreamingConfig(
        window_sec=args.window_sec,
        trigger_sec=args.trigger_sec,
        sample_rate=config.sample_rate,
    )
    engine = TranscriptionEngine.from_resources(
        args.model,
        args.vocab,
        filters_path=args.filters,
        device=args.torch_device,
        audio_config=config,
        streaming_config=streaming,
    )
    if not engine.ready:
        print("Engine not ready; check model and vocabulary", file=sys.stderr)
        sys.exit(1)

    transcriber = StreamingTranscriber(engine, on_text=print)
    audio_iterator = None
    if args.file is not None:
        audio_iterator = read_wav_chunks(args.file, streaming.chunk_samples, config.sample_rate)
    try:
        transcriber.run(audio_iterator=audio_iterator, device=args.device)
    except KeyboardInterrupt:
        pass
    finally:
        engine.release()
    if transcriber.transcript:
        print(f"\nTranscript: {transcriber.transcript}")


def main() -> None:
    args = _build_parser().parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.list_devices:
        try:
            import sounddevice as sd
            print(sd.query_devices())
        except ImportError:
            print("sounddevice not installed: pip install sounddevice", file=sys.stderr)
            sys.exit(1)
        return

    config = AudioConfig()
    try:
        if args.command == "record":
            collector = AudioCollector(config)
            print(f"Recording {args.duration}s to {args.output} (mono {config.sample_rate} Hz)...")
            collector.record_to_file(args.output, args.duration, args.device)
            print(f"Saved: {args.output}")
        elif args.command == "features":
            _cmd_features(args, config)
        elif args.command == "make-filters":
            weights = mel_filterbank(config.n_mels, config.frame_size, float(config.sample_rate))
            write_filterbank(args.output, weights)
            print(f"Wrote {weights.shape[0]} x {weights.shape[1]} mel filters to {args.output}")
        elif args.command == "transcribe":
            _cmd_transcribe(args, config)
        else:
            print("No command given; see --help", file=sys.stderr)
            sys.exit(2)
    except (TranscriptionError, ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
