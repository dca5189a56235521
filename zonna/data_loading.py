"""
Data Loading for the Zonna Territory Engine

This module loads recorded fix streams (CSV) and stored conquests (JSON)
for replays and fixtures.
"""

import json
import logging
from pathlib import Path
from typing import List
import pandas as pd
from . import utils
from .errors import GeometryError
from .models import CaptureMode, ClosedPolygon, Conquest, RawFix

logger = logging.getLogger(__name__)

# Accepted column spellings -> canonical name
COLUMN_ALIASES = {
    "latitude": "lat",
    "lon": "lng",
    "long": "lng",
    "longitude": "lng",
    "acc": "accuracy",
    "accuracy_m": "accuracy",
    "bearing": "heading",
}


def load_raw_fixes(csv_path: Path) -> List[RawFix]:
    """
    Load a recorded fix stream.

    Expected columns: ``lat``, ``lng`` and optionally ``accuracy`` and
    ``heading``. Common spellings (``latitude``, ``lon``...) are accepted.
    Missing accuracy stays unknown and will fail the accuracy gate.

    Args:
        csv_path: Path to the CSV file.

    Returns:
        Fixes in file order. Rows without a numeric position are skipped.

    Raises:
        ValueError: If the file has no latitude/longitude columns.
    """
    df = pd.read_csv(csv_path)
    df = df.rename(columns=lambda c: COLUMN_ALIASES.get(str(c).strip().lower(), str(c).strip().lower()))

    if "lat" not in df.columns or "lng" not in df.columns:
        raise ValueError(f"{csv_path}: expected lat and lng columns, got {list(df.columns)}")

    fixes = []
    skipped = 0
    for row in df.to_dict(orient="records"):
        lat = utils.optional_float(row.get("lat"))
        lng = utils.optional_float(row.get("lng"))
        if lat is None or lng is None:
            skipped += 1
            continue
        fixes.append(RawFix.from_coords(
            lat,
            lng,
            accuracy_m=utils.optional_float(row.get("accuracy")),
            heading_deg=utils.optional_float(row.get("heading")),
        ))

    if skipped:
        logger.warning("%s: skipped %d row(s) without a position", csv_path, skipped)
    logger.info("Loaded %d fix(es) from %s", len(fixes), csv_path)
    return fixes


def load_conquests(json_path: Path) -> List[Conquest]:
    """
    Load stored conquests from a JSON list.

    Each record needs ``id``, ``user_id`` and ``path`` (``[[lat, lng], ...]``);
    ``holes``, ``area``, ``distance``, ``duration`` and ``mode`` are
    optional. Records with a malformed or out-of-range path are logged and
    skipped.
    """
    with Path(json_path).open("r", encoding="utf-8") as file:
        records = json.load(file)

    conquests = []
    for record in records:
        try:
            polygon = ClosedPolygon.from_pairs(record.get("path"), record.get("holes"))
        except GeometryError as exc:
            logger.warning("Skipping stored conquest %s: %s", record.get("id"), exc)
            continue

        conquests.append(Conquest(
            id=str(record["id"]),
            owner_id=str(record["user_id"]),
            path=polygon,
            area=int(record.get("area") or 0),
            distance=float(record.get("distance") or 0.0),
            duration=record.get("duration"),
            mode=CaptureMode(record.get("mode") or CaptureMode.DOMINIO.value),
        ))

    logger.info("Loaded %d conquest(s) from %s", len(conquests), json_path)
    return conquests
