"""Ideal gas thermodynamics."""

from __future__ import annotations

import math
from typing import Mapping

import numpy as np

from atmosreact.constants import R_GAS
from atmosreact.models import GASES, DeltaMixture, Gas, GasMixture, GasVector, SpeciesProperties
from atmosreact.thermo.base import ThermoInterface


class IdealGasThermo(ThermoInterface):
    """Ideal gas thermodynamics with constant per-species heat capacities."""

    def __init__(self, properties: Mapping[Gas, SpeciesProperties], r_gas: float = R_GAS):
        self.properties = properties
        self.r_gas = r_gas
        self._heat_capacities = np.array(
            [properties[gas].heat_capacity for gas in GASES], dtype=np.float64
        )
        self._fusion_powers = np.array(
            [properties[gas].fusion_power for gas in GASES], dtype=np.float64
        )

    def heat_capacity(self, gases: GasVector) -> float:
        return float(np.dot(gases.moles, self._heat_capacities))

    def thermal_energy(self, mixture: GasMixture) -> float:
        return self.heat_capacity(mixture.gases) * mixture.temperature

    def pressure(self, mixture: GasMixture) -> float:
        """Calculate pressure using the ideal gas law, P = nRT / V."""
        return mixture.gases.total() * self.r_gas * mixture.temperature / mixture.volume

    def fusion_power(self, gases: GasVector) -> float:
        return float(np.dot(gases.moles, self._fusion_powers))

    def compose(self, mixture: GasMixture, delta: DeltaMixture) -> GasMixture:
        """Merge a delta into a mixture.

        Moles are clamped at zero and the temperature is recomputed from the
        pre-merge thermal energy plus the released energy over the new heat
        capacity. An empty result has zero temperature.
        """
        if not delta.is_finite():
            raise ValueError("Delta mixture must be finite")
        energy = self.thermal_energy(mixture) + delta.energy
        gases = (mixture.gases + delta.gases).clamped()
        return GasMixture(gases, mixture.volume, self._temperature_for(gases, energy))

    def adjust_thermal_energy(
        self,
        mixture: GasMixture,
        delta_gases: GasVector,
        energy_use: float,
    ) -> GasMixture:
        """Merge moles at constant temperature, then withdraw ``energy_use`` joules."""
        gases = (mixture.gases + delta_gases).clamped()
        energy = self.heat_capacity(gases) * mixture.temperature - abs(energy_use)
        return GasMixture(gases, mixture.volume, self._temperature_for(gases, energy))

    def _temperature_for(self, gases: GasVector, energy: float) -> float:
        heat_capacity = self.heat_capacity(gases)
        if not heat_capacity > 0.0:
            return 0.0
        temperature = energy / heat_capacity
        # Non-finite values pass through so mixture validation rejects them.
        if math.isfinite(temperature) and temperature < 0.0:
            return 0.0
        return temperature
