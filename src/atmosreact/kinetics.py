"""Reaction formulas and the ordered reaction catalogue.

Each formula receives a mixture on which its reaction is already known to be
active and returns the post-reaction mixture. Formulas never mutate their
input; energy bookkeeping goes through the thermodynamic package.
"""

from __future__ import annotations

from typing import Mapping

import numpy as np

from atmosreact.constants import AtmosConstants
from atmosreact.models import DeltaMixture, Gas, GasMixture, GasVector, Reaction
from atmosreact.thermo import ThermoInterface

HNB_QUENCH_MOLES = 5.0


def atmos_mod(lhs: float, rhs: float) -> float:
    """Floored modulo, ``lhs - rhs * floor(lhs / rhs)``."""
    return float(lhs - rhs * np.floor(lhs / rhs))


def n2o_decomposition(gm: GasMixture, c: AtmosConstants, thermo: ThermoInterface) -> GasMixture:
    n2o = gm[Gas.N2O]
    t = gm.temperature
    burned_fuel = max(0.0, 2e-5 * (t - 1e-5 * t**2)) * n2o

    if burned_fuel <= 0.0:
        return gm
    return thermo.compose(
        gm,
        DeltaMixture.of(
            {
                Gas.N2O: -burned_fuel,
                Gas.O2: burned_fuel / 2.0,
                Gas.N2: burned_fuel,
            },
            c.n2o_decomposition_energy_released * burned_fuel,
        ),
    )


def plasma_fire(gm: GasMixture, c: AtmosConstants, thermo: ThermoInterface) -> GasMixture:
    pl = gm[Gas.Pl]
    o2 = gm[Gas.O2]
    t = gm.temperature

    temperature_scale = min(1.0, (t - c.plasma_minimum_burn_temperature) / c.plasma_temp_scale)

    plasma_burn_rate = pl * temperature_scale / c.plasma_burn_rate_delta
    if o2 <= pl * c.plasma_oxygen_fullburn:
        plasma_burn_rate /= c.plasma_oxygen_fullburn

    oxygen_burn_rate = c.oxygen_burn_rate_base - temperature_scale
    plasma_burn_rate = min(pl, plasma_burn_rate, o2 / oxygen_burn_rate)

    # Oxygen-rich fires yield tritium instead of carbon dioxide.
    is_saturated = o2 / pl > c.super_saturation_threshold
    product = Gas.H2 if is_saturated else Gas.CO2

    return thermo.compose(
        gm,
        DeltaMixture.of(
            {
                Gas.Pl: -plasma_burn_rate,
                Gas.O2: -plasma_burn_rate * oxygen_burn_rate,
                product: plasma_burn_rate,
            },
            plasma_burn_rate * c.fire_plasma_energy_released,
        ),
    )


def tritium_fire(gm: GasMixture, c: AtmosConstants, thermo: ThermoInterface) -> GasMixture:
    energy = thermo.thermal_energy(gm)
    h2 = gm[Gas.H2]
    o2 = gm[Gas.O2]

    no_combust = o2 < h2 or energy < c.minimum_heat_capacity
    burned_fuel = o2 / c.tritium_burn_oxy_factor if no_combust else h2
    primary_energy = c.fire_hydrogen_energy_released * burned_fuel
    extra_energy = 0.0 if no_combust else primary_energy * (c.tritium_burn_trit_factor - 1.0)

    changes: dict[Gas, float] = {Gas.H2O: burned_fuel}
    if no_combust:
        changes[Gas.H2] = -burned_fuel
    else:
        changes[Gas.H2] = -burned_fuel / c.tritium_burn_trit_factor
        changes[Gas.O2] = -h2 * (1.0 - 1.0 / c.tritium_burn_trit_factor)

    return thermo.compose(gm, DeltaMixture.of(changes, primary_energy + extra_energy))


def fusion(gm: GasMixture, c: AtmosConstants, thermo: ThermoInterface) -> GasMixture:
    """Toroidal fusion of plasma and carbon dioxide, fuelled by tritium.

    Plasma and carbon dioxide are folded back into a toroid whose size grows
    with temperature; the plasma lost from the toroid sets the reaction energy,
    which is then translated on a logarithmic scale around a reference energy
    so that large mixtures cannot run away.
    """
    energy = thermo.thermal_energy(gm)
    pl = gm[Gas.Pl]
    co2 = gm[Gas.CO2]

    scale_factor = max(c.fusion_minimal_scale, gm.volume / c.fusion_scale_divisor)
    temperature_scale = np.log10(gm.temperature)

    if temperature_scale <= c.fusion_base_tempscale:
        toroid_offset = (temperature_scale - c.fusion_base_tempscale) / c.fusion_buffer_divisor
    else:
        toroid_offset = (
            np.power(4.0, temperature_scale - c.fusion_base_tempscale) / c.fusion_slope_divisor
        )
    toroidal_size = c.toroid_calculated_threshold + toroid_offset

    gas_power = thermo.fusion_power(gm.gases)
    instability = atmos_mod(gas_power * c.instability_gas_power_factor, toroidal_size)

    scaled_plasma = (pl - c.fusion_mole_threshold) / scale_factor
    scaled_carbon = (co2 - c.fusion_mole_threshold) / scale_factor

    plasma_mod = atmos_mod(scaled_plasma - instability * np.sin(scaled_carbon), toroidal_size)
    carbon_mod = atmos_mod(scaled_carbon - plasma_mod, toroidal_size)

    new_plasma = plasma_mod * scale_factor + c.fusion_mole_threshold
    new_carbon = carbon_mod * scale_factor + c.fusion_mole_threshold

    delta_plasma = new_plasma - pl
    delta_carbon = new_carbon - co2

    active_plasma = min(pl - new_plasma, toroidal_size * scale_factor * 1.5)

    endothermic_limit = c.fusion_instability_endothermality
    if instability <= endothermic_limit or active_plasma > 0.0:
        reaction_energy = max(0.0, active_plasma * c.plasma_binding_energy)
    else:
        reaction_energy = (
            active_plasma * c.plasma_binding_energy * np.sqrt(instability - endothermic_limit)
        )

    if reaction_energy == 0.0 and instability > endothermic_limit:
        return gm

    if reaction_energy != 0.0:
        exponent = c.fusion_energy_translation_exponent
        middle_energy = (
            c.fusion_mole_threshold + c.toroid_calculated_threshold * scale_factor / 2.0
        ) * (200.0 * c.fusion_middle_energy_reference)
        assert energy > 0.0 and middle_energy > 0.0, "fusion requires positive energies"

        e_alpha = middle_energy * np.power(exponent, np.log10(energy / middle_energy))
        clipped = max(
            min(reaction_energy, e_alpha * (exponent**2 - 1.0)),
            e_alpha * (exponent**-2 - 1.0),
        )
        translated = np.log((e_alpha + clipped) / middle_energy) / np.log(exponent)
        new_energy = middle_energy * np.power(10.0, translated)
    else:
        new_energy = energy

    waste_out = scale_factor * c.fusion_tritium_conversion_coefficient * c.fusion_tritium_moles_used
    changes = {
        Gas.Pl: max(delta_plasma, -pl),
        Gas.CO2: max(delta_carbon, -co2),
        Gas.H2: -c.fusion_tritium_moles_used,
        Gas.O2: waste_out,
        Gas.H2O if active_plasma > 0.0 else Gas.BZ: waste_out,
    }
    return thermo.compose(gm, DeltaMixture.of(changes, float(new_energy - energy)))


def nitryl_formation(gm: GasMixture, c: AtmosConstants, thermo: ThermoInterface) -> GasMixture:
    n2 = gm[Gas.N2]
    o2 = gm[Gas.O2]
    t = gm.temperature

    heat_efficiency = min(t / c.fire_minimum_temperature_to_exist / 60.0, n2, o2)
    energy_use = heat_efficiency * c.nitryl_formation_energy

    # Energy is withdrawn after the merge rather than released into it.
    return thermo.adjust_thermal_energy(
        gm,
        GasVector.from_mapping(
            {
                Gas.N2: -heat_efficiency,
                Gas.O2: -heat_efficiency,
                Gas.NO2: 2.0 * heat_efficiency,
            }
        ),
        energy_use,
    )


def bz_synthesis(gm: GasMixture, c: AtmosConstants, thermo: ThermoInterface) -> GasMixture:
    pressure = thermo.pressure(gm)
    pl = gm[Gas.Pl]
    n2o = gm[Gas.N2O]

    half_atm_pressure = 2.0 * pressure / c.one_atmosphere
    # A cold, pressureless mixture gives infinite efficiency.
    with np.errstate(divide="ignore"):
        efficiency = np.reciprocal(np.float64(half_atm_pressure * max(1.0, pl / n2o)))
    usage = float(min(efficiency, n2o, pl / 2.0))

    is_balanced = usage == n2o
    bz_produced = usage - max(1.0, pressure)

    changes = {Gas.N2O: -usage, Gas.Pl: -2.0 * usage}
    if is_balanced:
        changes[Gas.BZ] = bz_produced
        changes[Gas.O2] = max(1.0, pressure)

    return thermo.compose(
        gm, DeltaMixture.of(changes, 2.0 * usage * c.fire_carbon_energy_released)
    )


def stimulum_synthesis(gm: GasMixture, c: AtmosConstants, thermo: ThermoInterface) -> GasMixture:
    coefficients = (
        1.0,
        c.stimulum_first_rise,
        -c.stimulum_first_drop,
        c.stimulum_second_rise,
        -c.stimulum_absolute_drop,
    )
    heat_scale = min(
        gm.temperature / c.stimulum_heat_scale, gm[Gas.Pl], gm[Gas.NO2], gm[Gas.H2]
    )
    # Powers 1..4 pair with the first four coefficients.
    energy_delta = sum(
        coefficient * heat_scale**power
        for power, coefficient in zip(range(1, 5), coefficients)
    )

    return thermo.compose(
        gm,
        DeltaMixture.of(
            {
                Gas.ST: heat_scale / 10.0,
                Gas.Pl: -heat_scale,
                Gas.NO2: -heat_scale,
                Gas.H2: -heat_scale,
            },
            energy_delta,
        ),
    )


def hnb_synthesis(gm: GasMixture, c: AtmosConstants, thermo: ThermoInterface) -> GasMixture:
    n2 = gm[Gas.N2]
    h2 = gm[Gas.H2]
    bz = gm[Gas.BZ]

    nob_formed = min(0.01 * (n2 + h2), h2 / 10.0, n2 / 20.0)
    energy_used = nob_formed * c.noblium_formation_energy / max(1.0, bz)

    return thermo.compose(
        gm,
        DeltaMixture.of(
            {
                Gas.H2: -10.0 * nob_formed,
                Gas.N2: -20.0 * nob_formed,
                Gas.HNb: nob_formed,
            },
            -energy_used,
        ),
    )


def build_catalogue(c: AtmosConstants) -> tuple[Reaction, ...]:
    """Return the reactions in the order they are evaluated within a tick."""
    minimum = c.minimum_mole_count

    def gate(**amounts: float) -> Mapping[Gas, float]:
        return {Gas(label): amount for label, amount in amounts.items()}

    return (
        Reaction(
            "n2o_decomposition",
            gate(N2O=minimum),
            c.n2o_decomposition_min_temperature,
            n2o_decomposition,
        ),
        Reaction(
            "tritium_fire",
            gate(H2=minimum, O2=minimum),
            c.tritium_burn_temperature,
            tritium_fire,
        ),
        Reaction(
            "plasma_fire",
            gate(Pl=minimum, O2=minimum),
            c.plasma_minimum_burn_temperature,
            plasma_fire,
        ),
        Reaction(
            "fusion",
            gate(
                H2=c.fusion_tritium_moles_used,
                Pl=c.fusion_mole_threshold,
                CO2=c.fusion_mole_threshold,
            ),
            c.fusion_temperature_threshold,
            fusion,
        ),
        Reaction(
            "nitryl_formation",
            gate(N2=20.0, O2=20.0, PlOx=5.0),
            c.fire_minimum_temperature_to_exist * 60.0,
            nitryl_formation,
        ),
        Reaction(
            "bz_synthesis",
            gate(N2O=10.0, Pl=10.0),
            float("-inf"),
            bz_synthesis,
        ),
        Reaction(
            "stimulum_synthesis",
            gate(H2=30.0, Pl=10.0, BZ=20.0, NO2=30.0),
            c.stimulum_heat_scale / 2.0,
            stimulum_synthesis,
        ),
        Reaction(
            "hnb_synthesis",
            gate(N2=10.0, H2=5.0),
            5e6,
            hnb_synthesis,
        ),
    )
