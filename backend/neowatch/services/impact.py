"""
Impact Estimator

First-order kinetic impact model:
- the object is a sphere of the given diameter and bulk density
- impact energy is its kinetic energy at the relative approach velocity
- destruction radius scales with the cube root of the energy

Both functions are pure; ranking reproducibility depends on that.
"""

import math

J_PER_MT = 4.184e15  # joules per megaton TNT
DEFAULT_DENSITY = 3000.0  # kg/m³, stony asteroid
DEFAULT_RADIUS_K = 0.012


def energy_megatons(diameter_m: float, rel_vel_kms: float, density: float = DEFAULT_DENSITY) -> float:
    """Kinetic energy in megatons TNT. Non-finite inputs propagate."""
    r = diameter_m / 2.0
    volume = (4.0 / 3.0) * math.pi * r ** 3
    mass = density * volume
    v = rel_vel_kms * 1000.0
    joules = 0.5 * mass * v ** 2
    return joules / J_PER_MT


def radius_km_from_energy_mt(energy_mt: float, k: float = DEFAULT_RADIUS_K) -> float:
    # real cube root
    return k * math.copysign(abs(energy_mt) ** (1.0 / 3.0), energy_mt)
