import unittest

import numpy as np

from wsmc.smc.resampling import RESAMPLERS, resample, residual_resample, systematic_resample


class TestResampling(unittest.TestCase):
    seed = 8754309

    def setUp(self):
        self.rng = np.random.default_rng(self.seed)

    def test_population_size_is_preserved(self):
        weights = self.rng.dirichlet(np.ones(37))

        for scheme in RESAMPLERS:
            with self.subTest(scheme=scheme):
                indices = resample(weights, self.rng, scheme=scheme)
                self.assertEqual(len(indices), 37)
                self.assertTrue(np.all((indices >= 0) & (indices < 37)))

    def test_num_samples(self):
        weights = np.full(10, 0.1)

        for scheme in RESAMPLERS:
            with self.subTest(scheme=scheme):
                self.assertEqual(len(resample(weights, self.rng, scheme=scheme, num_samples=25)), 25)

    def test_zero_weights_never_selected(self):
        weights = np.zeros(50)
        weights[[3, 17, 18, 40]] = [0.1, 0.4, 0.3, 0.2]

        for scheme in RESAMPLERS:
            for _ in range(100):
                indices = resample(weights, self.rng, scheme=scheme)
                with self.subTest(scheme=scheme):
                    self.assertTrue(set(indices.tolist()) <= {3, 17, 18, 40})

    def test_systematic_exact_multiplicities(self):
        weights = np.array([0.0, 0.5, 0.0, 0.5])

        for _ in range(50):
            indices = systematic_resample(weights, self.rng)
            np.testing.assert_array_equal(np.bincount(indices, minlength=4), [0, 2, 0, 2])

    def test_residual_uniform_weights_keep_every_particle(self):
        weights = np.full(8, 1 / 8)

        np.testing.assert_array_equal(residual_resample(weights, self.rng), np.arange(8))

    def test_single_survivor(self):
        weights = np.zeros(20)
        weights[7] = 1.0

        for scheme in RESAMPLERS:
            with self.subTest(scheme=scheme):
                np.testing.assert_array_equal(resample(weights, self.rng, scheme=scheme), np.full(20, 7))

    def test_invalid_weights(self):
        for weights in ([], [0.0, 0.0], [0.5, -0.1], [np.nan, 1.0]):
            with self.subTest(weights=weights):
                with self.assertRaises(ValueError):
                    systematic_resample(np.array(weights, dtype=float), self.rng)


if __name__ == "__main__":
    unittest.main()
