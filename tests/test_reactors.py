import dataclasses
import unittest

from atmosreact.constants import AtmosConstants
from atmosreact.models import DeltaMixture, Gas, GasMixture, GasVector, Reaction
from atmosreact.reactors import (
    FixedPointResult,
    ReactionEngine,
    default_engine,
    react_each_once,
    react_each_several,
    react_each_until_done,
    react_once,
    react_several,
    react_until_done,
)


def mixture(volume=1000.0, temperature=293.15, **gases):
    return GasMixture(GasVector.from_mapping(gases), volume, temperature)


def _nan_energy(gm, constants, thermo):
    return thermo.compose(gm, DeltaMixture.of({Gas.O2: -1.0}, float("nan")))


def _divide_by_zero(gm, constants, thermo):
    return gm.with_temperature(1.0 / 0.0)


SAMPLES = [
    mixture(temperature=1000.0, N2O=100.0),
    mixture(temperature=500.0, H2=100.0, O2=200.0),
    mixture(temperature=900.0, Pl=100.0, O2=300.0, N2=50.0),
    mixture(temperature=1e7, H2=100.0, Pl=100.0, CO2=100.0),
    mixture(temperature=50_000.0, N2=100.0, O2=100.0, PlOx=10.0),
    mixture(temperature=0.0, N2O=50.0, Pl=50.0),
    mixture(temperature=3e5, H2=100.0, Pl=100.0, BZ=50.0, NO2=100.0),
    mixture(temperature=6e6, N2=100.0, H2=50.0),
    mixture(volume=50.0, temperature=2e4, **{gas.value: 40.0 for gas in Gas if gas is not Gas.HNb}),
]


class TestReactOnce(unittest.TestCase):
    def setUp(self):
        self.engine = ReactionEngine()

    def test_invariants_hold_over_many_ticks(self):
        for sample in SAMPLES:
            for result in self.engine.react_several(sample, 25):
                self.assertTrue((result.gases.moles >= 0.0).all())
                self.assertGreaterEqual(result.temperature, 0.0)
                self.assertEqual(result.volume, sample.volume)
                if self.engine.thermo.heat_capacity(result.gases) == 0.0:
                    self.assertEqual(result.temperature, 0.0)

    def test_input_is_not_mutated(self):
        sample = mixture(temperature=1000.0, N2O=100.0)
        before = sample.gases.moles.copy()
        self.engine.react_once(sample)
        self.assertTrue((sample.gases.moles == before).all())
        self.assertEqual(sample.temperature, 1000.0)

    def test_n2o_only(self):
        # Only N2O decomposition is active.
        sample = mixture(temperature=1000.0, N2O=100.0)
        result = self.engine.react_once(sample)

        self.assertAlmostEqual(result[Gas.N2O], 98.02)
        self.assertAlmostEqual(result[Gas.O2], 0.99)
        self.assertAlmostEqual(result[Gas.N2], 1.98)
        self.assertAlmostEqual(result.temperature, (4.0e6 + 396_000.0) / 3980.2, places=6)

    def test_tritium_fire(self):
        sample = mixture(temperature=500.0, H2=100.0, O2=200.0)
        result = self.engine.react_once(sample)

        self.assertAlmostEqual(result[Gas.H2O], 100.0)
        self.assertAlmostEqual(result[Gas.H2], 90.0)
        self.assertAlmostEqual(result[Gas.O2], 110.0)
        self.assertAlmostEqual(result.temperature, (2.5e6 + 2.8e8) / 7100.0, places=6)

    def test_plasma_fire_temperature_gate(self):
        cold = mixture(temperature=300.0, Pl=100.0, O2=1000.0)
        self.assertEqual(self.engine.react_once(cold), cold)

        hot = cold.with_temperature(self.engine.constants.plasma_minimum_burn_temperature + 1.0)
        result = self.engine.react_once(hot)
        self.assertNotEqual(result, hot)
        self.assertLess(result[Gas.Pl], hot[Gas.Pl])
        self.assertLess(result[Gas.O2], hot[Gas.O2])

    def test_fusion(self):
        sample = mixture(temperature=1e7, H2=100.0, Pl=100.0, CO2=100.0)
        result = self.engine.react_once(sample)

        self.assertEqual(result[Gas.H2], 100.0 - self.engine.constants.fusion_tritium_moles_used)
        self.assertTrue(result[Gas.H2O] > 0.0 or result[Gas.BZ] > 0.0)
        self.assertEqual(result.volume, sample.volume)

    def test_hnb_quench(self):
        gases = {gas.value: 100.0 for gas in Gas}
        gases["HNb"] = 10.0
        sample = mixture(temperature=1e7, **gases)

        self.assertIs(self.engine.react_once(sample), sample)
        history = self.engine.react_several(sample, 50)
        self.assertEqual(len(history), 50)
        self.assertTrue(all(m == sample for m in history))
        self.assertEqual(self.engine.react_until_done(sample), sample)

    def test_quench_threshold(self):
        just_below = mixture(temperature=6e6, N2=100.0, H2=50.0, HNb=4.999)
        self.assertNotEqual(self.engine.react_once(just_below), just_below)
        at_limit = mixture(temperature=6e6, N2=100.0, H2=50.0, HNb=5.0)
        self.assertEqual(self.engine.react_once(at_limit), at_limit)

    def test_inert_mixture(self):
        air = mixture(temperature=293.15, O2=21.0, N2=79.0)
        self.assertEqual(self.engine.react_once(air), air)
        self.assertEqual(self.engine.react_once(mixture()), mixture())

    def test_empty_mixture_has_no_temperature(self):
        vacuum = mixture(temperature=293.15)
        self.assertEqual(vacuum.temperature, 0.0)

        result = self.engine.react_once(vacuum)
        self.assertEqual(self.engine.thermo.heat_capacity(result.gases), 0.0)
        self.assertEqual(result.temperature, 0.0)

    def test_order_is_significant(self):
        # Tritium fire runs before plasma fire and consumes the shared oxygen.
        sample = mixture(temperature=1000.0, H2=50.0, Pl=50.0, O2=60.0)
        tritium_first = self.engine.react_once(sample)

        reordered = ReactionEngine()
        by_name = {r.name: r for r in reordered.reactions}
        reordered.reactions = tuple(
            by_name[name]
            for name in ("n2o_decomposition", "plasma_fire", "tritium_fire", "fusion",
                         "nitryl_formation", "bz_synthesis", "stimulum_synthesis", "hnb_synthesis")
        )
        self.assertNotEqual(reordered.react_once(sample), tritium_first)


class TestNumericTrap(unittest.TestCase):
    def setUp(self):
        self.engine = ReactionEngine()
        self.sample = mixture(temperature=500.0, O2=10.0)

    def test_non_finite_step_is_identity(self):
        reaction = Reaction("nan", {Gas.O2: 1.0}, 0.0, _nan_energy)
        self.assertIs(self.engine.step(reaction, self.sample), self.sample)

    def test_arithmetic_error_is_identity(self):
        reaction = Reaction("div", {Gas.O2: 1.0}, 0.0, _divide_by_zero)
        with self.assertLogs("atmosreact.reactors", level="DEBUG"):
            self.assertIs(self.engine.step(reaction, self.sample), self.sample)

    def test_overflowing_temperature(self):
        sample = mixture(temperature=1e200, N2O=100.0)
        self.assertEqual(self.engine.react_once(sample), sample)


class TestDrivers(unittest.TestCase):
    def setUp(self):
        self.engine = ReactionEngine()

    def test_react_several_length(self):
        sample = mixture(temperature=1000.0, N2O=100.0)
        for times in (0, 1, 7):
            self.assertEqual(len(self.engine.react_several(sample, times)), times)
        with self.assertRaises(ValueError):
            self.engine.react_several(sample, -1)

    def test_react_several_chains_ticks(self):
        sample = mixture(temperature=1000.0, N2O=100.0)
        history = self.engine.react_several(sample, 3)
        self.assertEqual(history[0], self.engine.react_once(sample))
        self.assertEqual(history[2], self.engine.react_once(self.engine.react_once(history[0])))

    def test_fixed_point(self):
        # Noblium forms once, then the mixture is too cold to continue.
        sample = mixture(temperature=6e6, N2=200.0, H2=100.0)
        report = self.engine.react_until_done_report(sample)

        self.assertIsInstance(report, FixedPointResult)
        self.assertTrue(report.converged)
        self.assertEqual(report.iterations, 2)
        self.assertAlmostEqual(report.mixture[Gas.HNb], 3.0)
        self.assertEqual(self.engine.react_once(report.mixture), report.mixture)
        self.assertEqual(self.engine.react_until_done(sample), report.mixture)

    def test_below_minimum_moles_terminates_immediately(self):
        gases = {gas.value: 0.01 - 1e-6 for gas in Gas if gas is not Gas.HNb}
        sample = mixture(temperature=1e7, **gases)
        report = self.engine.react_until_done_report(sample)

        self.assertEqual(report.iterations, 1)
        self.assertTrue(report.converged)
        self.assertEqual(report.mixture, sample)

    def test_iteration_cap(self):
        engine = ReactionEngine(max_iterations=1)
        sample = mixture(temperature=1000.0, N2O=100.0)
        with self.assertLogs("atmosreact.reactors", level="WARNING"):
            report = engine.react_until_done_report(sample)

        self.assertFalse(report.converged)
        self.assertEqual(report.iterations, 1)
        self.assertEqual(report.mixture, engine.react_once(sample))

    def test_invalid_cap(self):
        with self.assertRaises(ValueError):
            ReactionEngine(max_iterations=0)

    def test_vectorized_forms(self):
        samples = [
            mixture(temperature=1000.0, N2O=100.0),
            mixture(temperature=6e6, N2=200.0, H2=100.0),
        ]
        self.assertEqual(
            self.engine.react_each_once(samples), [self.engine.react_once(m) for m in samples]
        )
        several = self.engine.react_each_several(samples, 4)
        self.assertEqual(len(several), 2)
        self.assertTrue(all(len(history) == 4 for history in several))
        self.assertEqual(self.engine.react_each_until_done(samples[1:]), [
            self.engine.react_until_done(samples[1])
        ])
        self.assertEqual(self.engine.react_each_once([]), [])

    def test_custom_constants(self):
        constants = dataclasses.replace(AtmosConstants(), n2o_decomposition_min_temperature=1500.0)
        engine = ReactionEngine(constants)
        sample = mixture(temperature=1000.0, N2O=100.0)
        self.assertEqual(engine.react_once(sample), sample)


class TestModuleFunctions(unittest.TestCase):
    def test_default_engine(self):
        engine = ReactionEngine()
        sample = mixture(temperature=6e6, N2=200.0, H2=100.0)

        self.assertEqual(react_once(sample), engine.react_once(sample))
        self.assertEqual(react_several(sample, 3), engine.react_several(sample, 3))
        self.assertEqual(react_until_done(sample), engine.react_until_done(sample))
        self.assertEqual(react_each_once([sample]), [engine.react_once(sample)])
        self.assertEqual(react_each_several([sample], 2), [engine.react_several(sample, 2)])
        self.assertEqual(react_each_until_done([sample]), [engine.react_until_done(sample)])

    def test_default_engine_is_shared(self):
        self.assertIs(default_engine(), default_engine())

    def test_explicit_engine(self):
        constants = dataclasses.replace(AtmosConstants(), n2o_decomposition_min_temperature=1500.0)
        engine = ReactionEngine(constants)
        sample = mixture(temperature=1000.0, N2O=100.0)
        self.assertEqual(react_once(sample, engine=engine), sample)


if __name__ == '__main__':
    unittest.main()
