"""Base interface for thermodynamic models."""

from __future__ import annotations

from abc import ABC, abstractmethod

from atmosreact.models import DeltaMixture, GasMixture, GasVector


class ThermoInterface(ABC):
    """Abstract base class for gas-mixture property packages."""

    @abstractmethod
    def heat_capacity(self, gases: GasVector) -> float:
        """Calculate the total heat capacity of a set of moles (J/K)."""
        pass

    @abstractmethod
    def thermal_energy(self, mixture: GasMixture) -> float:
        """Calculate the thermal energy of a mixture (J)."""
        pass

    @abstractmethod
    def pressure(self, mixture: GasMixture) -> float:
        """Calculate the mixture pressure (kPa)."""
        pass

    @abstractmethod
    def fusion_power(self, gases: GasVector) -> float:
        """Calculate the weighted fusion power of a set of moles."""
        pass

    @abstractmethod
    def compose(self, mixture: GasMixture, delta: DeltaMixture) -> GasMixture:
        """Apply a delta while keeping the energy ledger balanced."""
        pass

    @abstractmethod
    def adjust_thermal_energy(
        self,
        mixture: GasMixture,
        delta_gases: GasVector,
        energy_use: float,
    ) -> GasMixture:
        """Merge moles at constant temperature, then withdraw energy (J)."""
        pass
