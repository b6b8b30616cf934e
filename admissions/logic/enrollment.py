"""Grade band rollup of enrollment counts."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

logger = logging.getLogger(__name__)

GRADE_BANDS: dict[str, frozenset[str]] = {
    "K-2": frozenset({"K", "TK", "0", "1", "2"}),
    "3-5": frozenset({"3", "4", "5"}),
    "6-8": frozenset({"6", "7", "8"}),
}


@dataclass(slots=True)
class GradeBandCount:
    grade_band: str
    enrollment_count: int


def band_for_grade(grade: Any) -> str | None:
    normalized = str(grade).strip().upper()
    for band, grades in GRADE_BANDS.items():
        if normalized in grades:
            return band
    return None


def _count(value: Any) -> int:
    if value is None or value == "":
        return 0
    return int(float(value))


def grade_bands(rows: Iterable[Mapping[str, Any]]) -> list[GradeBandCount]:
    """Sum enrollment per band. Every band is returned, unmapped grades are dropped."""
    counts = dict.fromkeys(GRADE_BANDS, 0)
    for row in rows:
        band = band_for_grade(row.get("grade"))
        if band is None:
            logger.info("Grade %r is outside the reported bands", row.get("grade"))
            continue
        counts[band] += _count(row.get("enrollment_count"))
    return [GradeBandCount(grade_band=band, enrollment_count=count) for band, count in counts.items()]
