"""atmosreact core package."""

from atmosreact.constants import AtmosConstants
from atmosreact.kinetics import atmos_mod, build_catalogue
from atmosreact.models import DeltaMixture, Gas, GasMixture, GasVector, Reaction, SpeciesProperties
from atmosreact.reactors import (
    FixedPointResult,
    ReactionEngine,
    react_each_once,
    react_each_several,
    react_each_until_done,
    react_once,
    react_several,
    react_until_done,
)

__all__ = [
    "AtmosConstants",
    "DeltaMixture",
    "FixedPointResult",
    "Gas",
    "GasMixture",
    "GasVector",
    "Reaction",
    "ReactionEngine",
    "SpeciesProperties",
    "atmos_mod",
    "build_catalogue",
    "react_each_once",
    "react_each_several",
    "react_each_until_done",
    "react_once",
    "react_several",
    "react_until_done",
]
