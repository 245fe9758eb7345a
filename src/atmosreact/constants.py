"""Physical constants and the tunable parameter block used by the reactions."""

from __future__ import annotations

import dataclasses
import json
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from atmosreact.models import Gas, SpeciesProperties

R_GAS = 8.31  # kPa·L/(mol·K)
T0C = 273.15  # K
ONE_ATMOSPHERE = 101.325  # kPa

DEFAULT_SPECIES_PROPERTIES: Mapping[Gas, SpeciesProperties] = {
    Gas.O2: SpeciesProperties(heat_capacity=20.0, fusion_power=0.0),
    Gas.N2: SpeciesProperties(heat_capacity=20.0, fusion_power=0.0),
    Gas.CO2: SpeciesProperties(heat_capacity=30.0, fusion_power=3.0),
    Gas.Pl: SpeciesProperties(heat_capacity=200.0, fusion_power=0.0),
    Gas.H2: SpeciesProperties(heat_capacity=10.0, fusion_power=5.0),
    Gas.H2O: SpeciesProperties(heat_capacity=40.0, fusion_power=8.0),
    Gas.N2O: SpeciesProperties(heat_capacity=40.0, fusion_power=10.0),
    Gas.NO2: SpeciesProperties(heat_capacity=20.0, fusion_power=16.0),
    Gas.BZ: SpeciesProperties(heat_capacity=20.0, fusion_power=8.0),
    Gas.ST: SpeciesProperties(heat_capacity=5.0, fusion_power=7.0),
    Gas.HNb: SpeciesProperties(heat_capacity=2000.0, fusion_power=5.0),
    Gas.PlOx: SpeciesProperties(heat_capacity=80.0, fusion_power=10.0),
}

# Fields used as divisors or logarithm bases; they must stay strictly positive.
_POSITIVE_FIELDS = (
    "r_ideal_gas",
    "one_atmosphere",
    "minimum_mole_count",
    "plasma_temp_scale",
    "plasma_burn_rate_delta",
    "plasma_oxygen_fullburn",
    "fire_minimum_temperature_to_exist",
    "tritium_burn_oxy_factor",
    "tritium_burn_trit_factor",
    "fusion_temperature_threshold",
    "fusion_scale_divisor",
    "fusion_minimal_scale",
    "fusion_buffer_divisor",
    "fusion_slope_divisor",
    "fusion_middle_energy_reference",
    "stimulum_heat_scale",
)


@dataclass(frozen=True)
class AtmosConstants:
    """Single injected block of tuning constants for the reaction catalogue.

    Temperatures are in kelvin, energies in joules, moles in mol and
    pressures in kPa. ``species`` holds the per-species heat capacity and
    fusion-power weight.
    """

    r_ideal_gas: float = R_GAS
    one_atmosphere: float = ONE_ATMOSPHERE
    minimum_mole_count: float = 0.01
    minimum_heat_capacity: float = 0.0003

    # N2O decomposition
    n2o_decomposition_min_temperature: float = 800.0
    n2o_decomposition_energy_released: float = 200_000.0

    # Plasma fire
    plasma_minimum_burn_temperature: float = 100.0 + T0C
    plasma_temp_scale: float = 1270.0
    plasma_burn_rate_delta: float = 9.0
    plasma_oxygen_fullburn: float = 10.0
    oxygen_burn_rate_base: float = 1.4
    super_saturation_threshold: float = 96.0
    fire_plasma_energy_released: float = 3_000_000.0

    # Tritium fire
    tritium_burn_temperature: float = 100.0 + T0C
    tritium_burn_oxy_factor: float = 100.0
    tritium_burn_trit_factor: float = 10.0
    fire_hydrogen_energy_released: float = 280_000.0

    # Fusion
    fusion_tritium_moles_used: float = 1.0
    fusion_mole_threshold: float = 50.0
    fusion_temperature_threshold: float = 10_000.0
    fusion_scale_divisor: float = 10.0
    fusion_minimal_scale: float = 50.0
    toroid_calculated_threshold: float = 5.96
    fusion_base_tempscale: float = 6.0
    fusion_buffer_divisor: float = 1.0
    fusion_slope_divisor: float = 1250.0
    instability_gas_power_factor: float = 3.0
    fusion_instability_endothermality: float = 2.0
    plasma_binding_energy: float = 20_000_000.0
    fusion_middle_energy_reference: float = 1e6
    fusion_energy_translation_exponent: float = 1.25
    fusion_tritium_conversion_coefficient: float = 0.002

    # Nitryl formation
    fire_minimum_temperature_to_exist: float = 100.0 + T0C
    nitryl_formation_energy: float = 100_000.0

    # BZ synthesis
    fire_carbon_energy_released: float = 100_000.0

    # Stimulum synthesis
    stimulum_heat_scale: float = 100_000.0
    stimulum_first_rise: float = 0.65
    stimulum_first_drop: float = 0.065
    stimulum_second_rise: float = 0.0009
    stimulum_absolute_drop: float = 0.00000335

    # Hyper-noblium synthesis
    noblium_formation_energy: float = 2e9

    species: Mapping[Gas, SpeciesProperties] = field(
        default_factory=lambda: dict(DEFAULT_SPECIES_PROPERTIES)
    )

    def __post_init__(self) -> None:
        for f in dataclasses.fields(self):
            if f.name == "species":
                continue
            value = float(getattr(self, f.name))
            if not math.isfinite(value):
                raise ValueError(f"Constant {f.name} must be finite, got {value}")
            object.__setattr__(self, f.name, value)
        for name in _POSITIVE_FIELDS:
            if getattr(self, name) <= 0.0:
                raise ValueError(f"Constant {name} must be positive")
        if self.fusion_energy_translation_exponent <= 0.0 or self.fusion_energy_translation_exponent == 1.0:
            raise ValueError("fusion_energy_translation_exponent must be positive and not 1")
        if self.oxygen_burn_rate_base <= 1.0:
            raise ValueError("oxygen_burn_rate_base must exceed 1")

        missing = [gas.value for gas in Gas if gas not in self.species]
        if missing:
            raise ValueError(f"Missing species properties for: {', '.join(missing)}")
        for gas, props in self.species.items():
            if not props.heat_capacity > 0.0:
                raise ValueError(f"Heat capacity of {gas.value} must be positive")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> AtmosConstants:
        """Build a constants block from a plain mapping, e.g. parsed JSON.

        Scalar keys match the dataclass field names. An optional ``species``
        entry maps species labels to ``{"heat_capacity": .., "fusion_power": ..}``
        and is merged over the defaults.
        """
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown constants: {', '.join(unknown)}")

        scalars = {key: float(value) for key, value in data.items() if key != "species"}
        species = dict(DEFAULT_SPECIES_PROPERTIES)
        for label, props in data.get("species", {}).items():
            gas = Gas.from_label(label)
            base = species[gas]
            species[gas] = SpeciesProperties(
                heat_capacity=float(props.get("heat_capacity", base.heat_capacity)),
                fusion_power=float(props.get("fusion_power", base.fusion_power)),
            )
        return cls(species=species, **scalars)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            f.name: getattr(self, f.name) for f in dataclasses.fields(self) if f.name != "species"
        }
        data["species"] = {
            gas.value: {"heat_capacity": props.heat_capacity, "fusion_power": props.fusion_power}
            for gas, props in self.species.items()
        }
        return data


def load_constants(path: str | Path) -> AtmosConstants:
    """Read a JSON constants file; missing keys keep their defaults."""
    with open(path, "r") as f:
        return AtmosConstants.from_mapping(json.load(f))
