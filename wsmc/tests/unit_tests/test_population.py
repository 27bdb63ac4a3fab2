import unittest

import numpy as np

from wsmc.smc.swarm import ParticlePopulation
from wsmc.tests.utilities.models import FailingModel, GaussianMeanModel, UniformModel, absolute_distance
from wsmc.utils.exceptions import DegenerateThresholdError, SimulationError


class TestParticlePopulation(unittest.TestCase):
    seed = 1234567

    def setUp(self):
        self.rng = np.random.default_rng(self.seed)
        self.model = UniformModel()

    def test_initialize(self):
        population = ParticlePopulation.initialize(20, self.model, self.rng)

        self.assertEqual(population.thetas.shape, (20, 1))
        np.testing.assert_allclose(population.weights, np.full(20, 0.05))
        self.assertTrue(np.all(population.missing_distances))
        self.assertFalse(np.any(population.needs_move))

    def test_initialize_multivariate(self):
        population = ParticlePopulation.initialize(15, GaussianMeanModel(), self.rng)

        self.assertEqual(population.thetas.shape, (15, 2))
        self.assertEqual(population.dimension, 2)

    def test_evaluate_distances_counts_simulations(self):
        population = ParticlePopulation.initialize(20, self.model, self.rng)

        num_simulations = population.evaluate_distances(self.model, absolute_distance, 0.5, self.rng)

        self.assertEqual(num_simulations, 20)
        np.testing.assert_allclose(population.distances, np.abs(population.thetas[:, 0] - 0.5))

        self.assertEqual(population.evaluate_distances(self.model, absolute_distance, 0.5, self.rng), 0)

    def test_evaluate_only_missing(self):
        population = ParticlePopulation([[0.1], [0.2], [0.3]], distances=[0.4, np.nan, 0.2])

        num_simulations = population.evaluate_distances(self.model, absolute_distance, 0.5, self.rng)

        self.assertEqual(num_simulations, 1)
        np.testing.assert_allclose(population.distances, [0.4, 0.3, 0.2])

    def test_reweight(self):
        population = ParticlePopulation([[0.1], [0.2], [0.3], [0.4]], distances=[0.4, 0.3, 0.2, 0.1])

        population.reweight(0.25)

        np.testing.assert_allclose(population.weights, [0.0, 0.0, 0.5, 0.5])
        self.assertAlmostEqual(population.weights.sum(), 1.0)
        self.assertEqual(population.diversity(), 0.5)
        self.assertAlmostEqual(population.effective_sample_size(), 2.0)

    def test_reweight_exclusive(self):
        population = ParticlePopulation([[0.1], [0.2], [0.3]], distances=[0.2, 0.2, 0.1])

        population.reweight(0.2, inclusive=False)

        np.testing.assert_allclose(population.weights, [0.0, 0.0, 1.0])

    def test_reweight_degenerate(self):
        population = ParticlePopulation([[0.1], [0.2]], distances=[0.4, 0.3])

        with self.assertRaises(DegenerateThresholdError) as cm:
            population.reweight(0.1)

        self.assertEqual(cm.exception.threshold, 0.1)

    def test_effective_sample_size_uniform(self):
        population = ParticlePopulation(np.zeros((10, 1)))

        self.assertAlmostEqual(population.effective_sample_size(), 10.0)

    def test_resample_marks_duplicates(self):
        population = ParticlePopulation([[0.1], [0.2], [0.3], [0.4]], distances=[0.4, 0.3, 0.2, 0.1])

        resampled = population.resample([2, 2, 3, 2])

        np.testing.assert_allclose(resampled.thetas[:, 0], [0.3, 0.3, 0.4, 0.3])
        np.testing.assert_allclose(resampled.distances, [0.2, 0.2, 0.1, 0.2])
        np.testing.assert_allclose(resampled.weights, np.full(4, 0.25))
        np.testing.assert_array_equal(resampled.needs_move, [False, True, False, True])
        self.assertEqual(resampled.num_unique(), 2)

    def test_resample_does_not_alias(self):
        population = ParticlePopulation([[0.1], [0.2]], distances=[0.4, 0.3])

        resampled = population.resample([1, 1])
        resampled.thetas[1] = 0.9

        np.testing.assert_allclose(population.thetas[:, 0], [0.1, 0.2])

    def test_resample_size_mismatch(self):
        population = ParticlePopulation([[0.1], [0.2]])

        with self.assertRaises(ValueError):
            population.resample([0])

    def test_simulation_error_names_particle(self):
        model = FailingModel(fail_above=0.5)

        population = ParticlePopulation([[0.1], [0.7], [0.2]])

        with self.assertRaises(SimulationError) as cm:
            population.evaluate_distances(model, absolute_distance, 0.5, self.rng)

        self.assertEqual(cm.exception.particle_idx, 1)
        self.assertIsInstance(cm.exception.__cause__, RuntimeError)

    def test_invalid_distance(self):
        population = ParticlePopulation([[0.1], [0.7]])

        def negative_distance(simulated, observed):
            return -1.0

        with self.assertRaises(SimulationError) as cm:
            population.evaluate_distances(self.model, negative_distance, 0.5, self.rng)

        self.assertEqual(cm.exception.particle_idx, 0)

    def test_copy(self):
        population = ParticlePopulation([[0.1], [0.2]], distances=[0.4, 0.3])

        copied = population.copy()
        copied.distances[0] = 1.0

        self.assertEqual(population.distances[0], 0.4)


if __name__ == "__main__":
    unittest.main()
