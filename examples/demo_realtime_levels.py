#!/usr/bin/env python3
"""
Real-time Audio Level Monitoring Demo

Subscribes to a LevelTracker and draws the live level and peak.
Press Ctrl+C to stop.

Usage: python demo_realtime_levels.py [duration_seconds] [target_db]
"""

import sys
import time


def create_level_bar(value, max_value=1.0, width=50):
    """Create a visual level bar."""
    filled = max(0, min(width, int((value / max_value) * width)))
    bar = "█" * filled + "░" * (width - filled)
    return bar


def main():
    """Demo real-time level monitoring."""
    from decibel_meter import DecibelMeterConfig, LevelTracker
    from decibel_meter.meter_logic import threshold_status

    duration = int(sys.argv[1]) if len(sys.argv) > 1 else 10
    target_db = float(sys.argv[2]) if len(sys.argv) > 2 else None

    print("="*70)
    print("  Real-time Audio Level Monitor")
    print("="*70)
    print("\nMake sounds into your microphone to see the levels change.\n")

    config = DecibelMeterConfig.load()

    # Track statistics
    stats = {
        'max_peak_db': None,
        'max_rms_db': None,
        'updates': 0
    }

    def on_event(event):
        """Display real-time levels."""
        if not event.is_reading:
            print(f"\n  [recording={event.is_recording}, target={event.target_db}]")
            return

        level = event.reading
        stats['updates'] += 1
        if stats['max_peak_db'] is None or level.peak_db > stats['max_peak_db']:
            stats['max_peak_db'] = level.peak_db
        if stats['max_rms_db'] is None or level.rms_db > stats['max_rms_db']:
            stats['max_rms_db'] = level.rms_db

        # Peak spans -60..0 dBFS, level spans 30..120 dB
        peak_bar = create_level_bar(level.peak_db + 60.0, max_value=60.0, width=30)
        rms_bar = create_level_bar(level.rms_db - 30.0, max_value=90.0, width=30)
        status = threshold_status(level.rms_db, event.target_db) or ""

        print(f"\r  Level: {rms_bar} {level.rms_db:6.1f} dB  |  "
              f"Peak: {peak_bar} {level.peak_db:6.1f} dB  {status}", end='', flush=True)

    with LevelTracker.from_config(config) as tracker:
        tracker.subscribe(on_event)
        if target_db is not None:
            tracker.set_target_level(target_db)

        print(f"🎤 Monitoring for {duration} seconds...\n")

        tracker.start()
        try:
            time.sleep(duration)
        except KeyboardInterrupt:
            print("\n\n⚠️  Stopped by user")
        tracker.stop()
        tracker.flush(timeout=1.0)

    # Show statistics
    print("\n\n" + "="*70)
    print("  Statistics")
    print("="*70)
    print(f"\n  Level updates: {stats['updates']}")
    print(f"  Blocks processed: {tracker.stats.blocks_processed}")
    print(f"  Blocks dropped: {tracker.stats.blocks_dropped}")
    if stats['updates']:
        print(f"  Max level: {stats['max_rms_db']:.1f} dB")
        print(f"  Max peak: {stats['max_peak_db']:.1f} dB")

    print("\n" + "="*70 + "\n")


if __name__ == "__main__":
    try:
        main()
    except Exception as e:
        print(f"\n❌ Error: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)
