import math
import unittest
from unittest import mock

from swara_drill.constants import NOTE_LABELS
from swara_drill.note_utils import (
    closest_note,
    frequency_for_label,
    label_for_semitone,
    match_result,
    note_by_label,
    note_value,
    round_half_up,
)

TONIC = 261.63


class TestLabels(unittest.TestCase):
    def test_label_for_semitone(self):
        self.assertEqual(label_for_semitone(0), "S")
        self.assertEqual(label_for_semitone(7), "P")
        self.assertEqual(label_for_semitone(12), "S'")
        self.assertEqual(label_for_semitone(24), "S''")
        self.assertEqual(label_for_semitone(-1), "N2.")
        self.assertEqual(label_for_semitone(-12), "S.")
        self.assertEqual(label_for_semitone(-13), "N2..")

    def test_semitone_round_trip(self):
        for semitone in range(-24, 25):
            with self.subTest(semitone=semitone):
                self.assertEqual(note_by_label(label_for_semitone(semitone)).semitone, semitone)

    def test_label_round_trip(self):
        for base in NOTE_LABELS:
            for suffix in ("", "'", "''", ".", ".."):
                label = base + suffix
                with self.subTest(label=label):
                    self.assertEqual(label_for_semitone(note_by_label(label).semitone), label)

    def test_invalid_labels(self):
        for label in ("", "X", "s", "S'.", "P.'", "'", "R3"):
            with self.subTest(label=label):
                self.assertIsNone(note_by_label(label))

    def test_frequency_for_label(self):
        self.assertAlmostEqual(frequency_for_label(TONIC, "S'"), 2 * TONIC)
        self.assertAlmostEqual(frequency_for_label(TONIC, "S."), TONIC / 2)
        self.assertAlmostEqual(frequency_for_label(TONIC, "P"), TONIC * 2 ** (7 / 12))
        self.assertIsNone(frequency_for_label(TONIC, "Q"))


class TestNoteValue(unittest.TestCase):
    def test_octave(self):
        self.assertAlmostEqual(note_value(TONIC, 2 * TONIC), 12.0)
        self.assertAlmostEqual(note_value(TONIC, TONIC), 0.0)

    def test_non_positive_input(self):
        self.assertTrue(math.isnan(note_value(TONIC, 0.0)))
        self.assertTrue(math.isnan(note_value(0.0, 440.0)))

    def test_round_half_up(self):
        self.assertEqual(round_half_up(0.5), 1)
        self.assertEqual(round_half_up(1.5), 2)
        self.assertEqual(round_half_up(2.5), 3)
        self.assertEqual(round_half_up(-0.5), 0)
        self.assertEqual(round_half_up(-1.5), -1)
        self.assertEqual(round_half_up(6.49), 6)


class TestClosestNote(unittest.TestCase):
    def test_slightly_flat_pa(self):
        closest = closest_note(TONIC, 391.0)
        self.assertEqual(closest.note.label, "P")
        self.assertEqual(closest.semitone, 7)
        self.assertAlmostEqual(closest.cents, -4.43, delta=0.05)
        self.assertEqual(closest.display_label, "P -0.04")

    def test_exact_note_has_plain_label(self):
        closest = closest_note(TONIC, TONIC)
        self.assertEqual(closest.display_label, "S")
        self.assertAlmostEqual(closest.cents, 0.0)

    def test_half_semitone_rounds_up(self):
        with mock.patch("swara_drill.note_utils.note_value", return_value=6.5):
            closest = closest_note(TONIC, 380.0)
        self.assertEqual(closest.note.label, "P")
        self.assertAlmostEqual(closest.cents, -50.0)

        with mock.patch("swara_drill.note_utils.note_value", return_value=-0.5):
            closest = closest_note(TONIC, 250.0)
        self.assertEqual(closest.note.label, "S")
        self.assertAlmostEqual(closest.cents, -50.0)

    def test_unplaceable_pitch(self):
        self.assertIsNone(closest_note(TONIC, 0.0))
        self.assertIsNone(closest_note(0.0, 440.0))


class TestMatchResult(unittest.TestCase):
    def test_good_match(self):
        match = match_result(391.0, 0.9, TONIC, "P")
        self.assertTrue(match.is_good)
        self.assertEqual(match.closest.note.label, "P")

    def test_wrong_target(self):
        match = match_result(391.0, 0.9, TONIC, "D2")
        self.assertFalse(match.is_good)

    def test_octave_matters(self):
        self.assertFalse(match_result(2 * 391.0, 0.9, TONIC, "P").is_good)
        self.assertTrue(match_result(2 * 391.0, 0.9, TONIC, "P'").is_good)

    def test_weak_readings(self):
        self.assertIsNone(match_result(0.0, 0.9, TONIC, "P"))
        self.assertIsNone(match_result(391.0, 0.69, TONIC, "P"))

    def test_closest_note_for_a4(self):
        match = match_result(440.0, 0.9, TONIC, "P")
        self.assertEqual(match.closest.note.label, "D2")
        self.assertFalse(match.is_good)


if __name__ == "__main__":
    unittest.main()
