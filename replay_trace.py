"""
Replay a recorded GPS fix stream through a tracking session.

Feeds every fix of a CSV (lat, lng, accuracy, heading) to a
TrackingSession in arrival order, one timer tick per fix, finalizes when
the capture rules allow it and saves the conquest against an optional set
of rival conquests.

Usage:
  python3 replay_trace.py --fixes walk.csv --owner alice
  python3 replay_trace.py --fixes walk.csv --owner bob --mode livre --rivals conquests.json
  python3 replay_trace.py --fixes walk.csv --owner alice --finalize-on-close --geojson out.geojson
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import zonna

logger = logging.getLogger("zonna.replay")


def replay(fixes: List[zonna.RawFix], owner: str, mode: zonna.CaptureMode,
           config: zonna.ZonnaConfig,
           finalize_on_close: bool = False) -> Optional[zonna.ConquestRequest]:
    """
    Drive a session with recorded fixes.

    Recording starts at the first fix that passes the accuracy gate.

    Returns:
        The ConquestRequest, or None if finalize never became allowed.
    """
    session = zonna.TrackingSession(owner, mode, config)

    for fix in fixes:
        session.on_fix(fix)
        if not session.is_recording:
            if session.current_fix is not None:
                session.start()
            continue

        session.tick()
        if finalize_on_close and session.can_finalize:
            return session.finalize()

    if session.can_finalize:
        return session.finalize()

    logger.warning("Finalize not allowed at end of replay: %s", session.snapshot())
    return None


def main():
    parser = argparse.ArgumentParser(
        description="Replay a recorded GPS fix stream and claim the resulting territory"
    )
    parser.add_argument(
        "--fixes",
        type=str,
        required=True,
        help="CSV file with lat, lng, accuracy, heading columns"
    )
    parser.add_argument(
        "--owner",
        type=str,
        required=True,
        help="User id that will own the conquest"
    )
    parser.add_argument(
        "--mode",
        type=str,
        default=zonna.CaptureMode.DOMINIO.value,
        choices=[m.value for m in zonna.CaptureMode],
        help="Capture mode: 'dominio' (closed loop, default) or 'livre' (corridor)"
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="TOML config file (overrides ~/.config/zonna/config.toml)"
    )
    parser.add_argument(
        "--rivals",
        type=str,
        default=None,
        help="JSON list of existing conquests to check for conflicts"
    )
    parser.add_argument(
        "--finalize-on-close",
        action="store_true",
        help="Finalize as soon as it is allowed instead of at the end of the stream"
    )
    parser.add_argument(
        "--geojson",
        type=str,
        default=None,
        help="Write the conquest and its conflicts as GeoJSON to this file"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        help="Logging level (default: INFO)"
    )

    args = parser.parse_args()
    zonna.configure_logging(args.log_level)

    try:
        config = zonna.load_config(user_config_path=Path(args.config) if args.config else None)
    except zonna.ConfigError as exc:
        print(f"Config error: {exc}", file=sys.stderr)
        return 2

    fixes = zonna.load_raw_fixes(Path(args.fixes))
    print(f"Loaded {len(fixes)} fixes from: {args.fixes}")

    request = replay(fixes, args.owner, zonna.CaptureMode(args.mode), config,
                     finalize_on_close=args.finalize_on_close)
    if request is None:
        print("No conquest: the walk never met the capture rules")
        return 1

    optimized = zonna.optimize_path(request.trace, config.smoothing.window,
                                    config.smoothing.tolerance_m)

    conquests = zonna.InMemoryConquestStore()
    conflicts = zonna.InMemoryConflictStore()
    if args.rivals:
        for rival in zonna.load_conquests(Path(args.rivals)):
            conquests.add(rival)

    service = zonna.TerritoryService(conquests, conflicts,
                                     min_conflict_area_m2=config.conflicts.min_area_m2)
    result = service.save_conquest(request)

    print(f"\n{'='*60}")
    print(f"Conquest {result.conquest.id} ({request.mode.value})")
    print(f"{'='*60}")
    print(f"  Area:      {request.area} m²")
    print(f"  Distance:  {request.distance:.3f} km")
    print(f"  Duration:  {zonna.format_duration(request.duration or 0)}")
    print(f"  Pace:      {request.pace:.2f} min/km")
    print(f"  Trace:     {len(request.trace)} points ({len(optimized)} after smoothing)")
    print(f"  Conflicts: {len(result.conflicts)}")
    for conflict in result.conflicts:
        print(f"    - {conflict.victim_id}: {conflict.area_invaded} m² "
              f"at ({conflict.latitude:.6f}, {conflict.longitude:.6f})")

    if args.geojson:
        collection = zonna.conquests_to_geojson([result.conquest])
        collection["features"].extend(zonna.conflicts_to_geojson(result.conflicts)["features"])
        Path(args.geojson).write_text(json.dumps(collection, indent=2), encoding="utf-8")
        print(f"Saved GeoJSON to: {args.geojson}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
