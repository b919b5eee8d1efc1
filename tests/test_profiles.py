"""Tests for laser/material profiles and the registry."""

import json
import threading

import pytest

from depthengrave.config.defaults import build_default_registry
from depthengrave.core.profiles import (
    CURVE_LENGTH,
    LaserProfile,
    LaserType,
    MaterialProfile,
    ProfileRegistry,
    linear_curve,
)
from depthengrave.errors import InvalidInput, ProfileNotFound


@pytest.fixture
def registry() -> ProfileRegistry:
    return build_default_registry()


def _diode(name="Test Diode", **kw) -> LaserProfile:
    base = dict(name=name, type=LaserType.DIODE, power=10, wavelength=455,
                min_power=0, max_power=10, focus_height=0.1, beam_diameter=0.08)
    base.update(kw)
    return LaserProfile(**base)


# ---------------------------------------------------------------------------
# Default catalog
# ---------------------------------------------------------------------------


class TestDefaultCatalog:
    def test_seven_fiber_sources(self, registry):
        fibers = registry.list_by_type("fiber")
        assert len(fibers) == 7
        assert all(p.wavelength == 1064 for p in fibers)

    def test_mopa_sources(self, registry):
        jpt = registry.require("JPT 70W MOPA")
        assert jpt.mopa is not None
        assert jpt.mopa.burst_mode
        assert "0-500ns" in jpt.mopa.pulse_shapes
        assert registry.require("IPG 150W Fiber").mopa is None

    def test_power_range_matches_rating(self, registry):
        for p in registry.list_profiles():
            assert p.min_power == 1
            assert p.max_power == p.power

    def test_list_profiles_sorted_by_power(self, registry):
        powers = [p.power for p in registry.list_profiles()]
        assert powers == sorted(powers)

    def test_glass_has_refractive_index(self, registry):
        glass = registry.materials("glass")
        assert glass
        assert all(m.refractive_index and m.refractive_index > 1 for m in glass)


# ---------------------------------------------------------------------------
# Profile validation
# ---------------------------------------------------------------------------


class TestLaserProfile:
    def test_curve_length(self):
        with pytest.raises(InvalidInput, match=str(CURVE_LENGTH)):
            _diode(power_curve=[0.0, 1.0])

    def test_curve_monotonic(self):
        curve = list(linear_curve())
        curve[10] = 0.9
        with pytest.raises(InvalidInput, match="monotonic"):
            _diode(power_curve=curve)

    def test_power_range(self):
        with pytest.raises(InvalidInput):
            _diode(min_power=8, max_power=4)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class TestRegistry:
    def test_get_unknown_is_none(self, registry):
        assert registry.get("nope") is None

    def test_require_unknown_raises(self, registry):
        with pytest.raises(ProfileNotFound):
            registry.require("nope")

    def test_last_write_wins(self):
        reg = ProfileRegistry()
        reg.register(_diode(max_power=5))
        reg.register(_diode(max_power=8))
        assert reg.require("Test Diode").max_power == 8
        assert len(reg.list_profiles()) == 1

    def test_materials_append(self):
        reg = ProfileRegistry()
        reg.register_material(MaterialProfile("A", "wood", 3, 50, 100))
        reg.register_material(MaterialProfile("B", "wood", 6, 70, 80))
        assert [m.name for m in reg.materials("wood")] == ["A", "B"]
        assert reg.material_types() == ["wood"]
        assert reg.get_material("B").thickness == 6

    def test_concurrent_registration(self):
        reg = ProfileRegistry()
        threads = [
            threading.Thread(target=reg.register, args=(_diode(f"D{i}"),))
            for i in range(32)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(reg.list_profiles()) == 32


# ---------------------------------------------------------------------------
# Import / export
# ---------------------------------------------------------------------------


class TestEnvelopes:
    def test_laser_round_trip(self, registry):
        text = registry.export_profile("MaxPhotonics 120W MOPA")
        envelope = json.loads(text)
        assert envelope["type"] == "laser"
        assert envelope["version"] == "1.0"
        assert "timestamp" in envelope

        other = ProfileRegistry()
        imported = other.import_profile(text)
        assert imported == registry.require("MaxPhotonics 120W MOPA")
        assert other.get("MaxPhotonics 120W MOPA") is not None

    def test_material_round_trip(self, registry):
        text = registry.export_profile("Soda-lime Glass", kind="material")
        other = ProfileRegistry()
        imported = other.import_profile(text)
        assert imported.refractive_index == pytest.approx(1.52)
        assert other.materials("glass") == [imported]

    def test_printer_rejected(self, registry):
        text = json.dumps({"type": "printer", "profile": {"name": "P"}})
        with pytest.raises(InvalidInput, match="printer"):
            registry.import_profile(text)

    def test_malformed_json(self, registry):
        with pytest.raises(InvalidInput):
            registry.import_profile("{not json")

    def test_missing_fields(self, registry):
        text = json.dumps({"type": "laser", "profile": {"name": "X"}})
        with pytest.raises(InvalidInput, match="malformed"):
            registry.import_profile(text)

    @pytest.mark.parametrize("document", [
        {"type": "laser", "profile": []},
        {"type": "laser", "profile": "x"},
        {"type": "material", "profile": None},
        {"type": "material", "profile": {"name": "M", "type": "metal",
                                          "thickness": 1, "settings": None}},
        {"type": "laser", "profile": {"name": "L", "settings": [1, 2]}},
        {"type": "material", "profile": {"name": "M", "type": "metal", "thickness": 1,
                                          "settings": {"power": 50, "speed": 100,
                                                       "assistGas": [1]}}},
    ])
    def test_wrongly_shaped_documents(self, registry, document):
        with pytest.raises(InvalidInput, match="malformed"):
            registry.import_profile(json.dumps(document))
        assert registry.get("L") is None
        assert registry.get_material("M") is None

    def test_export_unknown(self, registry):
        with pytest.raises(ProfileNotFound):
            registry.export_profile("nope")
