"""CLI interface for the decibel meter."""

import argparse
import logging
import math
import sys
import time

from . import __version__
from .audio import LevelTracker, ReadingLogHook, SyntheticCapture
from .config import DecibelMeterConfig
from .exceptions import ConfigurationError, DecibelMeterError
from .meter_logic import format_db_label, level_bar, threshold_status


class ConsoleMeter:
    """Observer printing one live line per reading and tracking extremes."""

    def __init__(self, stream=None, width: int = 40):
        self.stream = stream
        self.width = width
        self.updates = 0
        self.max_rms_db = None
        self.max_peak_db = None
        self.passes = 0

    def __call__(self, event) -> None:
        if not event.is_reading:
            return

        reading = event.reading
        self.updates += 1
        if self.max_rms_db is None or reading.rms_db > self.max_rms_db:
            self.max_rms_db = reading.rms_db
        if self.max_peak_db is None or reading.peak_db > self.max_peak_db:
            self.max_peak_db = reading.peak_db

        status = threshold_status(reading.rms_db, event.target_db)
        if status == "PASS":
            self.passes += 1

        line = (
            f"\r  {level_bar(reading.rms_db, self.width, target_db=event.target_db)} "
            f"{format_db_label(reading.rms_db):>9}  peak {format_db_label(reading.peak_db):>9}"
        )
        if status is not None:
            line += f"  {status}"
        print(line, end='', file=self.stream or sys.stdout, flush=True)

    def summary(self) -> str:
        lines = [
            f"Level updates: {self.updates}",
            f"Max level: {format_db_label(self.max_rms_db)}",
            f"Max peak: {format_db_label(self.max_peak_db)}",
        ]
        if self.updates and self.passes:
            lines.append(f"At or above target: {self.passes}/{self.updates}")
        return "\n".join(lines)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="decibel-meter",
        description="Show the live microphone level in dB",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--duration", type=float, default=None,
        help="Seconds to measure (default: until Ctrl+C)",
    )
    parser.add_argument("--target-db", type=float, default=None, help="Target level for PASS/FAIL")
    parser.add_argument("--block-size", type=int, default=None, help="Samples per block")
    parser.add_argument("--sample-rate", type=int, default=None, help="Sample rate in Hz")
    parser.add_argument(
        "--synthetic",
        choices=SyntheticCapture.WAVEFORMS,
        default=None,
        help="Use generated input instead of the microphone",
    )
    parser.add_argument(
        "--verbose", action="store_true", help="Show detailed progress"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv=None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    # Configure logging
    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format='%(levelname)s: %(message)s',
            stream=sys.stderr,
        )
    else:
        logging.basicConfig(level=logging.WARNING)

    try:
        config = DecibelMeterConfig.load()
        if args.sample_rate is not None:
            config.audio.sample_rate = args.sample_rate
        if args.block_size is not None:
            config.audio.block_size = args.block_size
        if args.target_db is not None:
            config.meter.target_db = args.target_db
        config.validate()
        if args.duration is not None and not (math.isfinite(args.duration) and args.duration > 0):
            raise ConfigurationError(
                f"Invalid duration {args.duration}. Must be a finite number of seconds greater than 0"
            )

        capture = None
        if args.synthetic:
            capture = SyntheticCapture(
                waveform=args.synthetic,
                sample_rate=config.audio.sample_rate,
                block_size=config.audio.block_size,
            )

        console = ConsoleMeter()
        interrupted = False
        with LevelTracker.from_config(config, capture=capture) as tracker:
            tracker.subscribe(console)
            if config.meter.log_interval > 0:
                tracker.subscribe(ReadingLogHook(interval=config.meter.log_interval, level=logging.INFO))

            tracker.start()
            try:
                if args.duration is None:
                    while True:
                        time.sleep(1.0)
                else:
                    time.sleep(args.duration)
            except KeyboardInterrupt:
                interrupted = True
            finally:
                tracker.stop()
                tracker.flush(timeout=1.0)

        print("\n" + console.summary())
        if args.verbose:
            print(f"Stats: {tracker.stats}", file=sys.stderr)
        if interrupted:
            print("Interrupted by user", file=sys.stderr)
            return 130
        return 0

    except DecibelMeterError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
