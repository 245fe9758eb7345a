"""Data structures for gas species, mixtures and reactions."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Callable, Iterator, Mapping

import numpy as np

if TYPE_CHECKING:
    from atmosreact.constants import AtmosConstants
    from atmosreact.thermo import ThermoInterface


class Gas(str, Enum):
    """Closed set of gas species tracked by the reaction engine."""

    O2 = "O2"
    N2 = "N2"
    CO2 = "CO2"
    Pl = "Pl"  # plasma
    H2 = "H2"  # tritium
    H2O = "H2O"  # water vapor
    N2O = "N2O"
    NO2 = "NO2"  # nitryl
    BZ = "BZ"
    ST = "ST"  # stimulum
    HNb = "HNb"  # hyper-noblium
    PlOx = "PlOx"  # pluoxium

    @property
    def position(self) -> int:
        return _GAS_INDEX[self]

    @classmethod
    def from_label(cls, label: str) -> Gas:
        try:
            return cls(label)
        except ValueError:
            raise ValueError(f"Unknown gas species: {label!r}") from None


GASES: tuple[Gas, ...] = tuple(Gas)
_GAS_INDEX = {gas: position for position, gas in enumerate(GASES)}


@dataclass(frozen=True)
class SpeciesProperties:
    heat_capacity: float  # J/mol/K
    fusion_power: float = 0.0  # dimensionless weight used by fusion instability


class GasVector:
    """Read-only fixed-width vector of moles, one entry per species."""

    __slots__ = ("_moles",)

    def __init__(self, moles: np.ndarray | None = None):
        if moles is None:
            values = np.zeros(len(GASES), dtype=np.float64)
        else:
            values = np.array(moles, dtype=np.float64)
            if values.shape != (len(GASES),):
                raise ValueError(
                    f"Gas vector needs {len(GASES)} entries, got shape {values.shape}"
                )
        values.flags.writeable = False
        self._moles = values

    @classmethod
    def from_mapping(cls, amounts: Mapping[Gas | str, float]) -> GasVector:
        values = np.zeros(len(GASES), dtype=np.float64)
        for key, amount in amounts.items():
            gas = key if isinstance(key, Gas) else Gas.from_label(key)
            values[gas.position] += float(amount)
        return cls(values)

    @classmethod
    def zeros(cls) -> GasVector:
        return cls()

    @property
    def moles(self) -> np.ndarray:
        return self._moles

    def __getitem__(self, gas: Gas) -> float:
        return float(self._moles[gas.position])

    def __iter__(self) -> Iterator[tuple[Gas, float]]:
        for gas in GASES:
            yield gas, float(self._moles[gas.position])

    def __add__(self, other: GasVector) -> GasVector:
        if not isinstance(other, GasVector):
            return NotImplemented
        return GasVector(self._moles + other._moles)

    def __sub__(self, other: GasVector) -> GasVector:
        if not isinstance(other, GasVector):
            return NotImplemented
        return GasVector(self._moles - other._moles)

    def __neg__(self) -> GasVector:
        return GasVector(-self._moles)

    def __mul__(self, factor: float) -> GasVector:
        return GasVector(self._moles * float(factor))

    __rmul__ = __mul__

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GasVector):
            return NotImplemented
        return bool(np.array_equal(self._moles, other._moles))

    def __hash__(self) -> int:
        # Adding 0.0 folds -0.0 into 0.0 so equal vectors hash alike.
        return hash((self._moles + 0.0).tobytes())

    def __repr__(self) -> str:
        present = ", ".join(f"{gas.value}={amount!r}" for gas, amount in self if amount)
        return f"GasVector({present})"

    def clamped(self) -> GasVector:
        """Return a copy with negative entries raised to zero."""
        return GasVector(np.maximum(self._moles, 0.0))

    def total(self) -> float:
        return float(np.sum(self._moles))

    def is_finite(self) -> bool:
        return bool(np.all(np.isfinite(self._moles)))

    def to_dict(self, include_zero: bool = False) -> dict[str, float]:
        return {gas.value: amount for gas, amount in self if include_zero or amount != 0.0}


@dataclass(frozen=True)
class GasMixture:
    """Closed gas parcel: moles per species, volume (L) and temperature (K).

    Mixtures are immutable values. Two mixtures are equal when every mole
    entry, the volume and the temperature are exactly equal.
    """

    gases: GasVector
    volume: float
    temperature: float = 0.0

    def __post_init__(self) -> None:
        if not isinstance(self.gases, GasVector):
            object.__setattr__(self, "gases", GasVector.from_mapping(self.gases))
        object.__setattr__(self, "volume", float(self.volume))
        object.__setattr__(self, "temperature", float(self.temperature))
        if not self.gases.is_finite():
            raise ValueError("Gas moles must be finite")
        if np.any(self.gases.moles < 0.0):
            raise ValueError("Gas moles must be non-negative")
        if not math.isfinite(self.volume) or self.volume <= 0.0:
            raise ValueError(f"Volume must be positive, got {self.volume}")
        if not math.isfinite(self.temperature) or self.temperature < 0.0:
            raise ValueError(f"Temperature must be non-negative, got {self.temperature}")
        # No matter, no heat: every species has a positive heat capacity.
        if self.gases.total() == 0.0:
            object.__setattr__(self, "temperature", 0.0)

    @classmethod
    def from_mapping(cls, data: Mapping[str, object]) -> GasMixture:
        """Build a mixture from ``{"volume": .., "temperature": .., "gases": {..}}``."""
        return cls(
            gases=GasVector.from_mapping(data.get("gases", {})),
            volume=float(data["volume"]),
            temperature=float(data.get("temperature", 0.0)),
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "volume": self.volume,
            "temperature": self.temperature,
            "gases": self.gases.to_dict(),
        }

    def __getitem__(self, gas: Gas) -> float:
        return self.gases[gas]

    def with_temperature(self, temperature: float) -> GasMixture:
        return GasMixture(self.gases, self.volume, temperature)


@dataclass(frozen=True)
class DeltaMixture:
    """Per-species mole changes paired with an energy release (J)."""

    gases: GasVector = field(default_factory=GasVector.zeros)
    energy: float = 0.0

    @classmethod
    def of(cls, changes: Mapping[Gas | str, float], energy: float = 0.0) -> DeltaMixture:
        """Build a delta from a sparse ``{species: change}`` mapping."""
        return cls(GasVector.from_mapping(changes), float(energy))

    def is_finite(self) -> bool:
        return self.gases.is_finite() and math.isfinite(self.energy)


ReactionFormula = Callable[["GasMixture", "AtmosConstants", "ThermoInterface"], "GasMixture"]


@dataclass(frozen=True)
class Reaction:
    """A gated transformation of a gas mixture.

    The reaction is active when every species in ``min_moles`` is present in
    at least the given amount and the temperature is at least
    ``min_temperature``. Inactive reactions leave the mixture untouched.
    """

    name: str
    min_moles: Mapping[Gas, float]
    min_temperature: float
    formula: ReactionFormula

    def is_active(self, mixture: GasMixture) -> bool:
        if mixture.temperature < self.min_temperature:
            return False
        return all(mixture[gas] >= amount for gas, amount in self.min_moles.items())

    def apply(
        self,
        mixture: GasMixture,
        constants: AtmosConstants,
        thermo: ThermoInterface,
    ) -> GasMixture:
        if not self.is_active(mixture):
            return mixture
        return self.formula(mixture, constants, thermo)
