"""Tests for spawn-shell placement"""

import math
import random

import pytest

from relgraph.placement import sample_shell_position


def test_points_lie_within_shell():
    rng = random.Random(42)
    for _ in range(500):
        x, y, z = sample_shell_position(8.0, 12.0, rng=rng)
        assert 8.0 <= math.sqrt(x * x + y * y + z * z) <= 12.0


def test_defaults_come_from_settings():
    from relgraph.db.config import settings

    x, y, z = sample_shell_position(rng=random.Random(1))
    r = math.sqrt(x * x + y * y + z * z)
    assert settings.spawn_radius_min <= r <= settings.spawn_radius_max


def test_fixed_radius():
    x, y, z = sample_shell_position(5.0, 5.0, rng=random.Random(3))
    assert math.isclose(math.sqrt(x * x + y * y + z * z), 5.0)


def test_no_pole_clustering():
    """cos(polar angle) is uniform, so each z-band holds about the same share"""
    rng = random.Random(11)
    n = 4000
    bands = [0, 0, 0, 0]
    for _ in range(n):
        x, y, z = sample_shell_position(1.0, 1.0, rng=rng)
        bands[min(int((z + 1.0) / 0.5), 3)] += 1

    for count in bands:
        assert abs(count / n - 0.25) < 0.04


def test_seeded_rng_is_reproducible():
    assert sample_shell_position(8, 12, rng=random.Random(5)) == sample_shell_position(
        8, 12, rng=random.Random(5)
    )


def test_inverted_range_rejected():
    with pytest.raises(ValueError):
        sample_shell_position(12.0, 8.0)
