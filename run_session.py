#!/usr/bin/env python3
"""
Eclipse Commander CLI

Plan an eclipse observing session: contact times, capture plan and an
optional live countdown.

Usage:
    python run_session.py --config configs/session_default.yaml
"""

import argparse
import logging
import sys
import time
from datetime import datetime, timedelta, timezone
from typing import Optional


def _fmt(instant: Optional[datetime], tz) -> str:
    if instant is None:
        return '-'
    return instant.astimezone(tz).strftime('%Y-%m-%d %H:%M:%S %Z')


def run_session(
    config_path: str,
    output_dir: Optional[str] = None,
    skip_plots: bool = False,
    countdown: bool = False,
    simulate_from: Optional[float] = None,
) -> int:
    """
    Run the planning pipeline for one configuration file.

    Args:
        config_path: Path to YAML configuration file
        output_dir: Override output directory from config (optional)
        skip_plots: Skip plot generation
        countdown: Drive a live countdown after planning
        simulate_from: Start the countdown this many seconds before C1
            (C2 for total eclipses) on a simulated clock instead of wall time

    Returns:
        Process exit code
    """
    import pytz

    from eclipse_commander.config import load_config
    from eclipse_commander.session import EclipseSession
    from eclipse_commander.contacts import validate_contact_times
    from eclipse_commander.sequences import (
        estimate_total_frames, sequence_to_dataframe, validate_sequence,
    )
    from eclipse_commander.optics import assess_suitability, optical_report
    from eclipse_commander.utils import format_duration, format_exposure
    from eclipse_commander.errors import EclipseCommanderError

    print("=" * 60)
    print("Eclipse Commander")
    print("=" * 60)

    print(f"\nLoading configuration from: {config_path}")
    config = load_config(config_path)
    if output_dir:
        config.output_dir = output_dir

    tz = pytz.timezone(config.display_timezone)

    try:
        session = EclipseSession.from_config(config)
        contacts = session.contact_times
    except EclipseCommanderError as e:
        print(f"\nError: {e}")
        return 1

    record = session.record
    visibility = session.visibility
    print(f"\nEclipse: {record.name} ({record.type.value}, magnitude {record.magnitude:.3f})")
    print(f"Observer: {config.observer.name or ''} "
          f"({session.coordinate.latitude:.4f}, {session.coordinate.longitude:.4f})")
    print(f"Visibility: {visibility.type.value}, coverage {visibility.coverage_percent:.1f}%, "
          f"{visibility.distance_km:.0f} km from central line")

    print("\nContact Times:")
    print(f"  C1:  {_fmt(contacts.c1, tz)}")
    print(f"  C2:  {_fmt(contacts.c2, tz)}")
    print(f"  MAX: {_fmt(contacts.max_time, tz)}")
    print(f"  C3:  {_fmt(contacts.c3, tz)}")
    print(f"  C4:  {_fmt(contacts.c4, tz)}")
    if contacts.is_total:
        print(f"  Totality: {format_duration(contacts.totality_duration_seconds)}")

    check = validate_contact_times(contacts)
    for warning in check['warnings']:
        print(f"  Warning: {warning}")

    sun = session.sun_at_maximum()
    print(f"\nSun at maximum: altitude {sun.altitude:.1f}°, azimuth {sun.azimuth:.1f}°")
    if not sun.is_visible:
        print("  Warning: the Sun is below the horizon at maximum eclipse")
    alignment = session.polar_alignment()
    print(f"Polar alignment: {alignment.instructions} ({alignment.pole_star})")

    if session.optical_system is not None:
        report = optical_report(session.optical_system)
        print(f"\nEquipment: {session.equipment.name}")
        print(f"  f/{report['focal_ratio']} ({report['speed_class']}), {report['sensor_format']} sensor")
        print(f"  Sampling: {report['sampling_arcsec_px']}\"/px ({report['sampling_status']})")
        print(f"  {report['sampling_advice']}")
        print(f"  Sun diameter: {report['sun_diameter_px']} px, fits in frame: {report['sun_fits']}")
        suitability = assess_suitability(session.optical_system)
        print("  Suitability: " + ", ".join(
            f"{kind} {entry['score']}/5" for kind, entry in suitability.items()))
        solar = session.solar_exposure()
        print(f"  White-light solar (ND5): {format_exposure(solar['shutter_s'], as_fraction=True)} "
              f"({format_exposure(solar['min_s'], False)} to {format_exposure(solar['max_s'], False)})")
    else:
        print("\nEquipment: not configured, using the generic sequence")

    sequence = session.sequence
    as_fraction = session.preferences.camera_kind.value != 'cmos'
    print(f"\nCapture Plan ({len(sequence)} steps, {estimate_total_frames(sequence)} frames):")
    for step in sequence:
        ladder = ', '.join(format_exposure(e, as_fraction) for e in step.exposure_ladder) or 'alert'
        filt = 'filter' if step.requires_solar_filter else 'NO FILTER'
        print(f"  {step.start_time.astimezone(tz).strftime('%H:%M:%S')}  "
              f"{step.display_name:<28} {step.duration_seconds:6.0f}s  {filt:<9}  "
              f"x{step.shots_per_exposure:<3} [{ladder}]")

    size = session.data_size()
    if size is not None:
        print(f"  Storage: {size['total_text']} ({size['frame_mb']} MB per frame), "
              f"card of at least {size['recommended_card_gb']} GB recommended")

    seq_check = validate_sequence(sequence, contacts)
    for error in seq_check['errors']:
        print(f"  Error: {error}")

    output_path = config.output_path
    output_path.mkdir(parents=True, exist_ok=True)
    csv_path = output_path / f"{record.id}_sequence.csv"
    sequence_to_dataframe(sequence).to_csv(csv_path, index=False)
    print(f"\nSequence table written to: {csv_path}")

    if not skip_plots:
        import matplotlib
        matplotlib.use('Agg')  # Non-interactive backend for CLI
        import matplotlib.pyplot as plt

        from eclipse_commander.astronomy import sun_track
        from eclipse_commander.plots import plot_eclipse_path, plot_sequence_timeline, plot_sun_altitude

        plots_path = config.plots_path
        plots_path.mkdir(parents=True, exist_ok=True)

        fig = plot_sequence_timeline(sequence, contacts, plots_path / 'capture_plan.png',
                                     dpi=config.plot_dpi, figsize=config.plot_figsize)
        plt.close(fig)
        if contacts.is_total:
            fig = plot_sequence_timeline(sequence, contacts, plots_path / 'capture_plan_totality.png',
                                         dpi=config.plot_dpi, figsize=config.plot_figsize,
                                         around_totality=True)
            plt.close(fig)
        fig = plot_eclipse_path(record, session.coordinate, plots_path / 'eclipse_path.png',
                                dpi=config.plot_dpi)
        plt.close(fig)
        track = sun_track(contacts.c1 - timedelta(hours=3), contacts.c4 + timedelta(hours=3),
                          session.coordinate)
        fig = plot_sun_altitude(track, contacts, plots_path / 'sun_altitude.png', dpi=config.plot_dpi)
        plt.close(fig)
        print(f"Plots written to: {plots_path}")

    if countdown:
        _run_countdown(session, config.countdown.tick_interval_s, tz, simulate_from)

    print("\nDone!")
    return 0


def _run_countdown(session, tick_interval_s: float, tz, simulate_from: Optional[float]):
    """Drive the countdown at the configured interval until after C4."""
    from eclipse_commander.data_model import EclipsePhase

    engine = session.create_countdown()
    contacts = session.contact_times

    if simulate_from is not None:
        anchor = contacts.c2 if contacts.c2 is not None else contacts.c1
        clock_offset = (anchor - timedelta(seconds=simulate_from)) - datetime.now(timezone.utc)
    else:
        clock_offset = timedelta(0)

    print("\nCountdown (Ctrl+C to stop)")
    engine.start()
    try:
        while True:
            now = datetime.now(timezone.utc) + clock_offset
            result = engine.tick(now)
            state = result.state
            for alert in result.alerts:
                print(f"  [{now.astimezone(tz).strftime('%H:%M:%S')}] ALERT {alert.message}")
            if state.current_phase == EclipsePhase.POST:
                print("  Eclipse over")
                break
            step = state.active_step.display_name if state.active_step else '-'
            print(f"  {state.current_phase.value:<14} {state.next_boundary or '':<4} "
                  f"{state.countdown_text:>9}  filter {'ON ' if state.filter_required else 'OFF'}  {step}",
                  end='\r')
            time.sleep(tick_interval_s)
    except KeyboardInterrupt:
        print("\n  Countdown interrupted")
    finally:
        engine.stop()


def main():
    """CLI entry point for Eclipse Commander."""
    parser = argparse.ArgumentParser(
        description='Solar eclipse photography planner',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python run_session.py --config configs/session_default.yaml
    python run_session.py --config configs/session_default.yaml --skip-plots
    python run_session.py --config configs/session_default.yaml --countdown --simulate-from 90
        """
    )

    parser.add_argument(
        '--config', '-c',
        type=str,
        required=True,
        help='Path to YAML configuration file'
    )

    parser.add_argument(
        '--output-dir', '-o',
        type=str,
        default=None,
        help='Override output directory from config'
    )

    parser.add_argument(
        '--skip-plots',
        action='store_true',
        help='Skip plot generation'
    )

    parser.add_argument(
        '--countdown',
        action='store_true',
        help='Run the live countdown after planning'
    )

    parser.add_argument(
        '--simulate-from',
        type=float,
        default=None,
        metavar='SECONDS',
        help='Simulate the countdown starting this many seconds before C2 (C1 if partial)'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose output'
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    sys.exit(run_session(
        config_path=args.config,
        output_dir=args.output_dir,
        skip_plots=args.skip_plots,
        countdown=args.countdown,
        simulate_from=args.simulate_from,
    ))


if __name__ == '__main__':
    main()
