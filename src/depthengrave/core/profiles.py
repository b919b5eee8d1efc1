"""Laser and material profile definitions and the profile registry.

Profiles round-trip through the JSON shape used by the profile manager
(camelCase keys, device curves and pulse options nested under ``settings``)
so exported documents can be re-imported unchanged.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from ..errors import InvalidInput, ProfileNotFound

logger = logging.getLogger(__name__)

CURVE_LENGTH = 256
ENVELOPE_VERSION = "1.0"


class LaserType(Enum):
    FIBER = "fiber"
    CO2 = "co2"
    DIODE = "diode"


class GasType(Enum):
    AIR = "air"
    NITROGEN = "nitrogen"
    OXYGEN = "oxygen"


@dataclass(frozen=True)
class AssistGas:
    type: GasType
    pressure: float  # bar

    def to_dict(self) -> dict:
        return {"type": self.type.value, "pressure": self.pressure}

    @classmethod
    def from_dict(cls, d: dict) -> AssistGas:
        return cls(type=GasType(d["type"]), pressure=float(d["pressure"]))


@dataclass(frozen=True)
class MopaSettings:
    """Pulse-shaping options of MOPA fiber sources."""
    pulse_shapes: tuple[str, ...] = ()
    burst_mode: bool = False
    burst_spacing: float = 0.0

    def to_dict(self) -> dict:
        return {
            "pulseShapes": list(self.pulse_shapes),
            "burstMode": self.burst_mode,
            "burstSpacing": self.burst_spacing,
        }

    @classmethod
    def from_dict(cls, d: dict) -> MopaSettings:
        return cls(
            pulse_shapes=tuple(d.get("pulseShapes", ())),
            burst_mode=bool(d.get("burstMode", False)),
            burst_spacing=float(d.get("burstSpacing", 0.0)),
        )


def linear_curve() -> tuple[float, ...]:
    return tuple(i / (CURVE_LENGTH - 1) for i in range(CURVE_LENGTH))


def quadratic_curve() -> tuple[float, ...]:
    return tuple((i / (CURVE_LENGTH - 1)) ** 2 for i in range(CURVE_LENGTH))


def _settings_of(d: dict) -> dict:
    s = d.get("settings") or {}
    if not isinstance(s, dict):
        raise TypeError(f"settings must be an object, got {type(s).__name__}")
    return s


@dataclass(frozen=True)
class LaserProfile:
    """A laser source definition.  Powers are in watts, wavelength in nm."""

    name: str
    type: LaserType
    power: float
    wavelength: float
    min_power: float
    max_power: float
    focus_height: float
    beam_diameter: float
    power_curve: tuple[float, ...] = field(default_factory=linear_curve, repr=False)
    speed_curve: tuple[float, ...] = field(default_factory=quadratic_curve, repr=False)
    pulse_frequency: float = 20000.0   # Hz
    pulse_width: float = 0.05
    assist_gas: Optional[AssistGas] = None
    mopa: Optional[MopaSettings] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "power_curve", tuple(float(v) for v in self.power_curve))
        object.__setattr__(self, "speed_curve", tuple(float(v) for v in self.speed_curve))
        for label, curve in (("power", self.power_curve), ("speed", self.speed_curve)):
            if len(curve) != CURVE_LENGTH:
                raise InvalidInput(
                    f"{self.name}: {label} curve must have {CURVE_LENGTH} "
                    f"entries, got {len(curve)}"
                )
            if any(b < a for a, b in zip(curve, curve[1:])):
                raise InvalidInput(f"{self.name}: {label} curve must be monotonic")
        if not 0 <= self.min_power <= self.max_power:
            raise InvalidInput(
                f"{self.name}: need 0 <= min_power <= max_power "
                f"(got {self.min_power}, {self.max_power})"
            )

    def to_dict(self) -> dict:
        settings: dict = {
            "powerCurve": list(self.power_curve),
            "speedCurve": list(self.speed_curve),
            "pulseFrequency": self.pulse_frequency,
            "pulseWidth": self.pulse_width,
        }
        if self.assist_gas is not None:
            settings["assistGas"] = self.assist_gas.to_dict()
        if self.mopa is not None:
            settings["mopaSettings"] = self.mopa.to_dict()
        return {
            "name": self.name,
            "type": self.type.value,
            "power": self.power,
            "wavelength": self.wavelength,
            "minPower": self.min_power,
            "maxPower": self.max_power,
            "focusHeight": self.focus_height,
            "beamDiameter": self.beam_diameter,
            "settings": settings,
        }

    @classmethod
    def from_dict(cls, d: dict) -> LaserProfile:
        s = _settings_of(d)
        gas = s.get("assistGas")
        mopa = s.get("mopaSettings")
        kwargs = {}
        if "powerCurve" in s:
            kwargs["power_curve"] = s["powerCurve"]
        if "speedCurve" in s:
            kwargs["speed_curve"] = s["speedCurve"]
        return cls(
            name=d["name"],
            type=LaserType(d["type"]),
            power=float(d["power"]),
            wavelength=float(d["wavelength"]),
            min_power=float(d["minPower"]),
            max_power=float(d["maxPower"]),
            focus_height=float(d["focusHeight"]),
            beam_diameter=float(d["beamDiameter"]),
            pulse_frequency=float(s.get("pulseFrequency", 20000.0)),
            pulse_width=float(s.get("pulseWidth", 0.05)),
            assist_gas=AssistGas.from_dict(gas) if gas else None,
            mopa=MopaSettings.from_dict(mopa) if mopa else None,
            **kwargs,
        )


@dataclass(frozen=True)
class MaterialProfile:
    """Nominal process settings for one material stock."""

    name: str
    type: str
    thickness: float          # mm
    power: float              # %
    speed: float              # mm/s
    passes: int = 1
    z_offset: float = 0.0     # mm
    assist_gas: Optional[AssistGas] = None
    refractive_index: Optional[float] = None

    def to_dict(self) -> dict:
        settings: dict = {
            "power": self.power,
            "speed": self.speed,
            "passes": self.passes,
            "zOffset": self.z_offset,
        }
        if self.assist_gas is not None:
            settings["assistGas"] = self.assist_gas.to_dict()
        d = {
            "name": self.name,
            "type": self.type,
            "thickness": self.thickness,
            "settings": settings,
        }
        if self.refractive_index is not None:
            d["refractiveIndex"] = self.refractive_index
        return d

    @classmethod
    def from_dict(cls, d: dict) -> MaterialProfile:
        s = _settings_of(d)
        gas = s.get("assistGas")
        ri = d.get("refractiveIndex")
        return cls(
            name=d["name"],
            type=d["type"],
            thickness=float(d["thickness"]),
            power=float(s["power"]),
            speed=float(s["speed"]),
            passes=int(s.get("passes", 1)),
            z_offset=float(s.get("zOffset", 0.0)),
            assist_gas=AssistGas.from_dict(gas) if gas else None,
            refractive_index=float(ri) if ri is not None else None,
        )


class ProfileRegistry:
    """In-memory catalog of laser and material profiles.

    Registration is last-write-wins for lasers (keyed by name); materials are
    appended to the list for their material type.  Writers are serialized by
    a lock.  Readers never take it: every write publishes a new dict / list
    object, so a reader sees either the old or the new catalog.
    """

    def __init__(
        self,
        profiles: tuple[LaserProfile, ...] | list[LaserProfile] = (),
        materials: tuple[MaterialProfile, ...] | list[MaterialProfile] = (),
    ):
        self._lock = threading.Lock()
        self._lasers: dict[str, LaserProfile] = {}
        self._materials: dict[str, list[MaterialProfile]] = {}
        for p in profiles:
            self.register(p)
        for m in materials:
            self.register_material(m)

    # -- lasers ---------------------------------------------------------

    def register(self, profile: LaserProfile) -> None:
        with self._lock:
            lasers = dict(self._lasers)
            lasers[profile.name] = profile
            self._lasers = lasers
        logger.debug("registered laser profile %r", profile.name)

    def get(self, name: str) -> Optional[LaserProfile]:
        return self._lasers.get(name)

    def require(self, name: str) -> LaserProfile:
        profile = self._lasers.get(name)
        if profile is None:
            raise ProfileNotFound(f"laser profile not registered: {name!r}")
        return profile

    def list_by_type(self, laser_type: LaserType | str) -> list[LaserProfile]:
        laser_type = LaserType(laser_type)
        return [p for p in self._lasers.values() if p.type is laser_type]

    def list_profiles(self) -> list[LaserProfile]:
        return sorted(self._lasers.values(), key=lambda p: (p.power, p.name))

    # -- materials ------------------------------------------------------

    def register_material(self, material: MaterialProfile) -> None:
        with self._lock:
            materials = dict(self._materials)
            materials[material.type] = [*materials.get(material.type, []), material]
            self._materials = materials
        logger.debug("registered material profile %r (%s)",
                     material.name, material.type)

    def materials(self, material_type: str) -> list[MaterialProfile]:
        return list(self._materials.get(material_type, []))

    def material_types(self) -> list[str]:
        return list(self._materials)

    def get_material(self, name: str) -> Optional[MaterialProfile]:
        # Latest registration wins when names repeat
        found = None
        for group in self._materials.values():
            for m in group:
                if m.name == name:
                    found = m
        return found

    # -- serialized envelopes -------------------------------------------

    def import_profile(self, text: str) -> LaserProfile | MaterialProfile:
        """Register the profile carried by a JSON envelope and return it.

        Raises InvalidInput for malformed documents or unsupported kinds.
        """
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise InvalidInput(f"profile document is not valid JSON: {exc}") from exc
        if not isinstance(data, dict) or "type" not in data or "profile" not in data:
            raise InvalidInput("profile document needs 'type' and 'profile' keys")

        kind = data["type"]
        if not isinstance(data["profile"], dict):
            raise InvalidInput(f"malformed {kind} profile: 'profile' must be an object")
        try:
            if kind == "laser":
                profile = LaserProfile.from_dict(data["profile"])
                self.register(profile)
            elif kind == "material":
                profile = MaterialProfile.from_dict(data["profile"])
                self.register_material(profile)
            elif kind == "printer":
                raise InvalidInput("printer profiles are not used by the engraving engine")
            else:
                raise InvalidInput(f"unknown profile type {kind!r}")
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            if isinstance(exc, InvalidInput):
                raise
            raise InvalidInput(f"malformed {kind} profile: {exc}") from exc

        logger.info("imported %s profile %r", kind, profile.name)
        return profile

    def export_profile(self, name: str, kind: str = "laser") -> str:
        """Serialize a registered profile into a JSON envelope."""
        if kind == "laser":
            profile = self.require(name)
        elif kind == "material":
            profile = self.get_material(name)
            if profile is None:
                raise ProfileNotFound(f"material profile not registered: {name!r}")
        else:
            raise InvalidInput(f"cannot export profile type {kind!r}")

        return json.dumps({
            "type": kind,
            "profile": profile.to_dict(),
            "version": ENVELOPE_VERSION,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }, indent=2)
