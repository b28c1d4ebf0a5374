"""
Pet health model — usage-to-limit ratio → score (0..100) → mood.

Score curve (piecewise linear, strictly non-increasing in the ratio):

  ratio ≤ 0.50  → 100
  0.75          →  90
  1.00          →  70
  1.25          →  40
  1.50          →  15
  ratio ≥ 2.00  →   0

Mood bands on the score:
  [90,100] fullHealth · [70,90) happy · [50,70) content · [20,50) sad · [0,20) sick
"""
from __future__ import annotations

import math
from dataclasses import dataclass


class Mood:
    FULL_HEALTH = "fullHealth"
    HAPPY       = "happy"
    CONTENT     = "content"
    SAD         = "sad"
    SICK        = "sick"


_CURVE: tuple[tuple[float, int], ...] = (
    (0.50, 100),
    (0.75, 90),
    (1.00, 70),
    (1.25, 40),
    (1.50, 15),
    (2.00, 0),
)


@dataclass(frozen=True)
class HealthReading:
    score: int
    mood: str
    usage_ratio: float


def score_for_ratio(ratio: float) -> int:
    if ratio <= _CURVE[0][0]:
        return _CURVE[0][1]
    for (x0, y0), (x1, y1) in zip(_CURVE, _CURVE[1:]):
        if ratio <= x1:
            fraction = (ratio - x0) / (x1 - x0)
            return int(math.floor(y0 - fraction * (y0 - y1)))
    return 0


def mood_for_score(score: int) -> str:
    if score >= 90:
        return Mood.FULL_HEALTH
    if score >= 70:
        return Mood.HAPPY
    if score >= 50:
        return Mood.CONTENT
    if score >= 20:
        return Mood.SAD
    return Mood.SICK


def health_score(total_used_minutes: int, total_limit_minutes: int) -> HealthReading:
    if total_limit_minutes <= 0:
        return HealthReading(score=100, mood=Mood.FULL_HEALTH, usage_ratio=0.0)
    ratio = max(0, total_used_minutes) / total_limit_minutes
    score = max(0, min(100, score_for_ratio(ratio)))
    return HealthReading(score=score, mood=mood_for_score(score), usage_ratio=ratio)
