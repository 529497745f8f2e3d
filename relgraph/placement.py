"""Initial placement of new nodes on a spherical shell"""

from __future__ import annotations

import math
import random
from typing import Optional


def sample_shell_position(
    radius_min: Optional[float] = None,
    radius_max: Optional[float] = None,
    rng: Optional[random.Random] = None,
) -> tuple[float, float, float]:
    """
    Sample a point uniformly over a sphere with a random radius.

    Azimuth is uniform in [0, 2pi); the polar angle is arccos of a uniform
    variable in [-1, 1] so points do not bunch up at the poles.

    Args:
        radius_min: Inner shell radius. Defaults to settings.
        radius_max: Outer shell radius. Defaults to settings.
        rng: Random source (seed it for reproducible layouts)

    Returns:
        (x, y, z)
    """
    from .db.config import settings

    radius_min = settings.spawn_radius_min if radius_min is None else radius_min
    radius_max = settings.spawn_radius_max if radius_max is None else radius_max
    if radius_max < radius_min:
        raise ValueError(f"radius_max ({radius_max}) < radius_min ({radius_min})")

    rng = rng or random.Random()
    theta = rng.random() * 2 * math.pi
    phi = math.acos(2 * rng.random() - 1)
    r = radius_min + rng.random() * (radius_max - radius_min)

    return (
        r * math.sin(phi) * math.cos(theta),
        r * math.sin(phi) * math.sin(theta),
        r * math.cos(phi),
    )
