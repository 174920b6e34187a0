import math

import pytest

from neowatch.services.impact import J_PER_MT, energy_megatons, radius_km_from_energy_mt


class TestEnergyMegatons:
    def test_reference_value(self):
        # 100 m stony sphere at 20 km/s
        mass = 3000.0 * (4.0 / 3.0) * math.pi * 50.0 ** 3
        expected = 0.5 * mass * 20000.0 ** 2 / J_PER_MT
        assert energy_megatons(100.0, 20.0) == pytest.approx(expected)
        assert energy_megatons(100.0, 20.0) == pytest.approx(75.0858, rel=1e-4)

    def test_non_negative(self):
        for d, v in [(0.0, 10.0), (10.0, 0.0), (1.0, 1.0), (1500.0, 70.0)]:
            assert energy_megatons(d, v) >= 0

    def test_monotonic_in_diameter(self):
        energies = [energy_megatons(d, 15.0) for d in (1, 10, 50, 100, 500, 1000)]
        assert energies == sorted(energies)
        assert len(set(energies)) == len(energies)

    def test_monotonic_in_velocity(self):
        energies = [energy_megatons(120.0, v) for v in (0.5, 5, 11, 20, 40, 72)]
        assert energies == sorted(energies)
        assert len(set(energies)) == len(energies)

    def test_density_scales_linearly(self):
        assert energy_megatons(100.0, 20.0, density=6000) == pytest.approx(2 * energy_megatons(100.0, 20.0, density=3000))

    def test_non_finite_inputs_propagate(self):
        assert math.isnan(energy_megatons(math.nan, 20.0))
        assert math.isinf(energy_megatons(100.0, math.inf))


class TestRadius:
    def test_zero_energy(self):
        assert radius_km_from_energy_mt(0.0) == 0.0

    def test_cube_root_scaling(self):
        assert radius_km_from_energy_mt(1000.0) == pytest.approx(0.012 * 10.0)
        assert radius_km_from_energy_mt(8.0, k=1.0) == pytest.approx(2.0)

    def test_monotonic(self):
        radii = [radius_km_from_energy_mt(e) for e in (0, 0.001, 1, 75, 1e4, 1e8)]
        assert radii == sorted(radii)

    def test_deterministic(self):
        assert radius_km_from_energy_mt(energy_megatons(340.0, 12.6)) == radius_km_from_energy_mt(energy_megatons(340.0, 12.6))
