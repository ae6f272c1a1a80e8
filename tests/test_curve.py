import unittest

import numpy as np

from swara_drill.evaluation.curve import (
    NO_TRAINER_PITCH,
    NO_USER_PITCH,
    TOO_SHORT,
    compare_pitch_curves,
    describe_verdict,
    grid_size,
    rate_score,
    resample,
)


def flat_curve(start, span, pitch, step=20):
    times = list(range(start, start + span + 1, step))
    return times, [pitch] * len(times)


def shifted(pitch, semitones):
    return pitch * 2 ** (semitones / 12)


class TestComparePitchCurves(unittest.TestCase):
    def test_identical_curves_at_different_times(self):
        user_t, user_p = flat_curve(5000, 1000, 220.0)
        trainer_t, trainer_p = flat_curve(0, 1000, 220.0)
        verdict = compare_pitch_curves(user_t, user_p, trainer_t, trainer_p)
        self.assertAlmostEqual(verdict.avg_diff_semitones, 0.0)
        self.assertAlmostEqual(verdict.score, 100.0)
        self.assertEqual(verdict.rating, "excellent")
        self.assertTrue(verdict.passed)
        self.assertEqual(verdict.points, 50)

    def test_constant_shift(self):
        trainer_t, trainer_p = flat_curve(0, 1000, 220.0)
        for delta, rating in ((1.0, "good"), (1.75, "fair"), (2.5, "poor"), (6.0, "very_poor")):
            with self.subTest(delta=delta):
                user_t, user_p = flat_curve(3000, 1000, shifted(220.0, delta))
                verdict = compare_pitch_curves(user_t, user_p, trainer_t, trainer_p)
                self.assertAlmostEqual(verdict.avg_diff_semitones, delta, places=6)
                self.assertAlmostEqual(verdict.score, max(0.0, 100 - 20 * delta), places=4)
                self.assertEqual(verdict.rating, rating)

    def test_shift_direction_does_not_matter(self):
        trainer_t, trainer_p = flat_curve(0, 1000, 220.0)
        user_t, user_p = flat_curve(0, 1000, shifted(220.0, -1.0))
        verdict = compare_pitch_curves(user_t, user_p, trainer_t, trainer_p)
        self.assertAlmostEqual(verdict.avg_diff_semitones, 1.0, places=6)

    def test_pass_threshold(self):
        trainer_t, trainer_p = flat_curve(0, 1000, 220.0)
        user_t, user_p = flat_curve(0, 1000, shifted(220.0, 1.2))
        verdict = compare_pitch_curves(user_t, user_p, trainer_t, trainer_p)
        self.assertLess(verdict.score, 80)
        self.assertFalse(verdict.passed)

    def test_glides_are_aligned_at_their_starts(self):
        trainer_t = list(range(0, 801, 10))
        trainer_p = [200.0 + 0.1 * t for t in trainer_t]
        user_t = [t + 2000 for t in trainer_t]
        verdict = compare_pitch_curves(user_t, trainer_p, trainer_t, trainer_p)
        self.assertAlmostEqual(verdict.score, 100.0)

    def test_overlap_is_shorter_span(self):
        user_t, user_p = flat_curve(0, 400, 220.0)
        trainer_t, trainer_p = flat_curve(0, 1000, 220.0)
        verdict = compare_pitch_curves(user_t, user_p, trainer_t, trainer_p)
        self.assertEqual(verdict.overlap_ms, 400)
        self.assertEqual(verdict.points, 20)

    def test_insufficient_data(self):
        trainer_t, trainer_p = flat_curve(0, 1000, 220.0)
        verdict = compare_pitch_curves([], [], trainer_t, trainer_p)
        self.assertIsNone(verdict.score)
        self.assertEqual(verdict.suggestion, NO_USER_PITCH)

        user_t, user_p = flat_curve(0, 1000, 220.0)
        verdict = compare_pitch_curves(user_t, user_p, [], [])
        self.assertIsNone(verdict.rating)
        self.assertEqual(verdict.suggestion, NO_TRAINER_PITCH)

        user_t, user_p = flat_curve(0, 80, 220.0)
        verdict = compare_pitch_curves(user_t, user_p, trainer_t, trainer_p)
        self.assertIsNone(verdict.score)
        self.assertEqual(verdict.suggestion, TOO_SHORT)
        self.assertFalse(verdict.passed)

    def test_non_positive_pitches_are_ignored(self):
        user_t, user_p = flat_curve(0, 1000, 220.0)
        user_p[3] = 0.0
        user_p[7] = float("nan")
        trainer_t, trainer_p = flat_curve(0, 1000, 220.0)
        verdict = compare_pitch_curves(user_t, user_p, trainer_t, trainer_p)
        self.assertAlmostEqual(verdict.score, 100.0)

    def test_describe_verdict(self):
        trainer_t, trainer_p = flat_curve(0, 1000, 220.0)
        verdict = compare_pitch_curves(trainer_t, trainer_p, trainer_t, trainer_p)
        info = describe_verdict(verdict)
        self.assertEqual(info["score"], 100.0)
        self.assertEqual(info["rating"], "excellent")


class TestCurveHelpers(unittest.TestCase):
    def test_grid_size(self):
        self.assertEqual(grid_size(100), 10)
        self.assertEqual(grid_size(500), 25)
        self.assertEqual(grid_size(1019), 50)
        self.assertEqual(grid_size(5000), 50)

    def test_rate_score(self):
        expected = {
            100: "excellent",
            90: "excellent",
            89.9: "good",
            75: "good",
            60: "fair",
            40: "poor",
            39.9: "very_poor",
            0: "very_poor",
        }
        for score, rating in expected.items():
            with self.subTest(score=score):
                self.assertEqual(rate_score(score)[0], rating)

    def test_resample_holds_edges(self):
        times = np.array([0.0, 100.0])
        pitches = np.array([200.0, 300.0])
        curve = resample(times, pitches, 200.0, 5)
        np.testing.assert_allclose(curve, [200.0, 250.0, 300.0, 300.0, 300.0])


if __name__ == "__main__":
    unittest.main()
