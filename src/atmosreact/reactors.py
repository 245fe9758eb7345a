"""Tick drivers for the reaction engine.

A tick applies every reaction of the catalogue once, in a fixed order, each
reaction observing the products of the ones before it. Drivers apply ticks
once, a fixed number of times, or until the mixture stops changing.

Steps whose arithmetic leaves the finite domain (NaN, infinities, math domain
errors) are treated as no-ops, so a tick never raises for a valid mixture.
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from atmosreact.constants import AtmosConstants
from atmosreact.kinetics import HNB_QUENCH_MOLES, build_catalogue
from atmosreact.models import Gas, GasMixture, Reaction
from atmosreact.thermo import IdealGasThermo

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 10_000


@dataclass(frozen=True)
class FixedPointResult:
    """Outcome of iterating ticks towards a fixed point.

    Attributes:
        mixture: The last mixture produced.
        iterations: Number of ticks applied.
        converged: False when the iteration cap was reached first.
    """

    mixture: GasMixture
    iterations: int
    converged: bool


class ReactionEngine:
    """Reaction catalogue bound to one block of tuning constants."""

    def __init__(
        self,
        constants: AtmosConstants | None = None,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
    ):
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self.constants = constants if constants is not None else AtmosConstants()
        self.max_iterations = max_iterations
        self.thermo = IdealGasThermo(self.constants.species, self.constants.r_ideal_gas)
        self.reactions: tuple[Reaction, ...] = build_catalogue(self.constants)

    def step(self, reaction: Reaction, mixture: GasMixture) -> GasMixture:
        """Apply one reaction, falling back to identity on non-finite results."""
        try:
            with np.errstate(all="ignore"):
                result = reaction.apply(mixture, self.constants, self.thermo)
        except (ArithmeticError, ValueError) as exc:
            logger.debug("Reaction %s trapped: %s", reaction.name, exc)
            return mixture
        return result

    def react_once(self, mixture: GasMixture) -> GasMixture:
        if mixture[Gas.HNb] >= HNB_QUENCH_MOLES:
            logger.debug("Hyper-noblium quench at %.3f mol", mixture[Gas.HNb])
            return mixture
        for reaction in self.reactions:
            mixture = self.step(reaction, mixture)
        return mixture

    def react_several(self, mixture: GasMixture, times: int) -> list[GasMixture]:
        if times < 0:
            raise ValueError(f"times must be non-negative, got {times}")
        history: list[GasMixture] = []
        current = mixture
        for _ in range(times):
            current = self.react_once(current)
            history.append(current)
        return history

    def react_until_done_report(self, mixture: GasMixture) -> FixedPointResult:
        """Tick until two consecutive mixtures are exactly equal.

        Stops after ``max_iterations`` ticks even when no fixed point has been
        reached; the result then reports ``converged=False``.
        """
        previous = mixture
        current = self.react_once(mixture)
        iterations = 1
        while previous != current:
            if iterations >= self.max_iterations:
                logger.warning(
                    "No fixed point after %d ticks; returning last mixture", iterations
                )
                return FixedPointResult(current, iterations, converged=False)
            previous = current
            current = self.react_once(current)
            iterations += 1
        return FixedPointResult(current, iterations, converged=True)

    def react_until_done(self, mixture: GasMixture) -> GasMixture:
        return self.react_until_done_report(mixture).mixture

    def react_each_once(self, mixtures: Sequence[GasMixture]) -> list[GasMixture]:
        return [self.react_once(mixture) for mixture in mixtures]

    def react_each_several(
        self, mixtures: Sequence[GasMixture], times: int
    ) -> list[list[GasMixture]]:
        return [self.react_several(mixture, times) for mixture in mixtures]

    def react_each_until_done(self, mixtures: Sequence[GasMixture]) -> list[GasMixture]:
        return [self.react_until_done(mixture) for mixture in mixtures]


@functools.lru_cache(maxsize=None)
def default_engine() -> ReactionEngine:
    """Engine over the default constants, built on first use."""
    return ReactionEngine()


def react_once(mixture: GasMixture, engine: ReactionEngine | None = None) -> GasMixture:
    return (engine or default_engine()).react_once(mixture)


def react_several(
    mixture: GasMixture, times: int, engine: ReactionEngine | None = None
) -> list[GasMixture]:
    return (engine or default_engine()).react_several(mixture, times)


def react_until_done(mixture: GasMixture, engine: ReactionEngine | None = None) -> GasMixture:
    return (engine or default_engine()).react_until_done(mixture)


def react_each_once(
    mixtures: Sequence[GasMixture], engine: ReactionEngine | None = None
) -> list[GasMixture]:
    return (engine or default_engine()).react_each_once(mixtures)


def react_each_several(
    mixtures: Sequence[GasMixture], times: int, engine: ReactionEngine | None = None
) -> list[list[GasMixture]]:
    return (engine or default_engine()).react_each_several(mixtures, times)


def react_each_until_done(
    mixtures: Sequence[GasMixture], engine: ReactionEngine | None = None
) -> list[GasMixture]:
    return (engine or default_engine()).react_each_until_done(mixtures)
