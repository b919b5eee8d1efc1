"""Default laser and material catalog.

These are conservative starting points; users should adjust to their
specific source, optics and stock.
"""

from ..core.profiles import (
    AssistGas,
    GasType,
    LaserProfile,
    LaserType,
    MaterialProfile,
    MopaSettings,
    ProfileRegistry,
)

MOPA_PULSE_SHAPES = ("0-25ns", "0-50ns", "0-200ns", "0-500ns")


def _fiber(name, power, focus_height, pulse_frequency, pulse_width,
           gas_pressure, mopa=False) -> LaserProfile:
    return LaserProfile(
        name=name,
        type=LaserType.FIBER,
        power=power,
        wavelength=1064,
        min_power=1,
        max_power=power,
        focus_height=focus_height,
        beam_diameter=0.05,
        pulse_frequency=pulse_frequency,
        pulse_width=pulse_width,
        assist_gas=AssistGas(GasType.NITROGEN, gas_pressure),
        mopa=MopaSettings(MOPA_PULSE_SHAPES, True, 0.001) if mopa else None,
    )


def default_lasers() -> list[LaserProfile]:
    return [
        _fiber("Seamann 50W Fiber", 50, 0.12, 20000, 0.05, 8),
        _fiber("Raycus 50W Fiber", 50, 0.12, 30000, 0.04, 8),
        _fiber("JPT 70W MOPA", 70, 0.15, 50000, 0.02, 10, mopa=True),
        _fiber("Raycus 100W Fiber", 100, 0.15, 30000, 0.04, 10),
        _fiber("MaxPhotonics 120W MOPA", 120, 0.18, 60000, 0.02, 12, mopa=True),
        _fiber("IPG 150W Fiber", 150, 0.2, 50000, 0.03, 15),
        _fiber("nLight 200W Fiber", 200, 0.25, 70000, 0.02, 18),
    ]


def default_materials() -> list[MaterialProfile]:
    nitrogen = AssistGas(GasType.NITROGEN, 8)
    air = AssistGas(GasType.AIR, 2)
    return [
        MaterialProfile("Stainless Steel 304", "metal", 1.0, 80, 300, passes=10,
                        assist_gas=nitrogen),
        MaterialProfile("Aluminum 6061", "metal", 1.0, 70, 400, passes=8,
                        assist_gas=nitrogen),
        MaterialProfile("Brass", "metal", 1.0, 85, 250, passes=12,
                        assist_gas=nitrogen),
        MaterialProfile("Soda-lime Glass", "glass", 3.0, 40, 800, passes=4,
                        assist_gas=air, refractive_index=1.52),
        MaterialProfile("Fused Silica", "glass", 3.0, 45, 700, passes=4,
                        assist_gas=air, refractive_index=1.46),
    ]


def build_default_registry() -> ProfileRegistry:
    """Return a ProfileRegistry pre-populated with the fiber catalog."""
    return ProfileRegistry(default_lasers(), default_materials())
