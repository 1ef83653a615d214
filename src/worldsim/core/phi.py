"""
Golden-ratio constants shared by the needs, wellbeing and market models.

Every tuning ratio in the world is a power of phi.  The constants below are
the defaults ``WorldConfig`` starts from; components read the values from
their injected config so tests can vary them independently.

The conjugate field pairs a charging pressure (accumulation, supply) with a
discharging pressure (consumption, demand).  Its health is 1.0 while the
ratio stays inside the golden band ``[Matter, Being]`` and falls off
linearly outside it.
"""

from __future__ import annotations

import math

PHI = (1.0 + math.sqrt(5.0)) / 2.0

AGNOSIS = PHI ** -3   # ~0.236
PSYCHE = PHI ** -2    # ~0.382
MATTER = PHI ** -1    # ~0.618
BEING = PHI           # ~1.618
NOUS = PHI ** 2       # ~2.618
TOTALITY = PHI ** 3   # ~4.236


def health_ratio(charging: float, discharging: float) -> float:
    """Bounded health of a conjugate pressure pair, in [0, 1]."""
    discharging = max(discharging, AGNOSIS)
    ratio = charging / discharging
    if MATTER <= ratio <= BEING:
        return 1.0
    return max(0.0, 1.0 - abs(ratio - 1.0) / TOTALITY)


def null_point(charging: float, discharging: float) -> float:
    """Distance of the pair from balance."""
    return abs(charging - discharging)
