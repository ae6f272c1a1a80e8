import unittest
from dataclasses import replace

from swara_drill.audio.interfaces import SilentTargetPlayer
from swara_drill.director import Action, RetryPolicy, SequenceDirector, verdict_passed
from swara_drill.metronome import Metronome, create_metronome
from swara_drill.note_types import Sequence
from swara_drill.sequences import MODE_SEQUENCES, get_sequence, sample_labels
from swara_drill.utterance import CurveVerdict, DiscreteVerdict

PASS = DiscreteVerdict(True, True, True, True)
FAIL = DiscreteVerdict(True, False, True, True)


class TestDecisions(unittest.TestCase):
    def setUp(self):
        self.player = SilentTargetPlayer()
        self.director = SequenceDirector(mode="sp", player=self.player)

    def test_pass_advances(self):
        decision = self.director.decide(PASS, 1000)
        self.assertEqual(decision.action, Action.ADVANCE)
        self.assertEqual(decision.index, 1)
        self.assertEqual(decision.label, "P")
        self.assertEqual(self.director.current_label, "P")

    def test_any_failed_check_retries(self):
        for field_name in ("is_stable", "is_expected_note", "is_expected_length", "is_at_expected_time"):
            with self.subTest(check=field_name):
                director = SequenceDirector(mode="sp")
                decision = director.decide(replace(PASS, **{field_name: False}), 0)
                self.assertEqual(decision.action, Action.RETRY)
                self.assertEqual(decision.index, 0)

    def test_unevaluated_check_retries(self):
        decision = self.director.decide(replace(PASS, is_stable=None), 0)
        self.assertEqual(decision.action, Action.RETRY)

    def test_sequence_wraps_around(self):
        self.director.decide(PASS, 0)
        decision = self.director.decide(PASS, 1000)
        self.assertEqual(decision.index, 0)
        self.assertEqual(decision.label, "S")

    def test_countdown_resets_after_attempts(self):
        actions = [self.director.decide(FAIL, t) for t in (0, 1000, 2000)]
        self.assertEqual([d.action for d in actions], [Action.RETRY, Action.RETRY, Action.RESET])
        self.assertEqual([d.attempts_left for d in actions], [2, 1, 3])
        self.assertEqual(self.director.index, 0)

    def test_pass_refills_attempts(self):
        self.director.decide(FAIL, 0)
        decision = self.director.decide(PASS, 1000)
        self.assertEqual(decision.attempts_left, 3)

    def test_replay_policy_never_counts_down(self):
        director = SequenceDirector(mode="sp", policy=RetryPolicy.REPLAY)
        for t in range(5):
            decision = director.decide(FAIL, t * 1000)
            self.assertEqual(decision.action, Action.RETRY)
            self.assertIsNone(decision.attempts_left)

    def test_curve_verdicts(self):
        self.assertTrue(verdict_passed(CurveVerdict(score=80.0, rating="good", suggestion="")))
        self.assertFalse(verdict_passed(CurveVerdict(score=79.9, rating="good", suggestion="")))
        self.assertFalse(verdict_passed(CurveVerdict(score=None, rating=None, suggestion="")))

    def test_unknown_verdict_type(self):
        with self.assertRaises(TypeError):
            verdict_passed({"passed": True})

    def test_invalid_attempt_count(self):
        with self.assertRaises(ValueError):
            SequenceDirector(attempt_count=0)


class TestScheduling(unittest.TestCase):
    def setUp(self):
        self.player = SilentTargetPlayer()
        self.director = SequenceDirector(mode="sp", player=self.player)

    def test_start_plays_immediately(self):
        self.director.start(100)
        self.assertTrue(self.director.active)
        self.assertEqual(len(self.player.played), 1)
        now, label, frequency = self.player.played[0]
        self.assertEqual((now, label), (100, "S"))
        self.assertAlmostEqual(frequency, 261.63)
        self.assertIsNone(self.director.pending)

    def test_expected_start_follows_target(self):
        self.assertEqual(self.director.expectation(50).expected_start_time, 50)
        self.director.start(100)
        expectation = self.director.expectation(900)
        self.assertEqual(expectation.expected_start_time, 100 + 1200 + 200)
        self.assertEqual(expectation.expected_note, "S")
        self.assertEqual(expectation.expected_duration, 1000)

    def test_decision_rearms_and_schedules(self):
        self.director.start(0)
        self.director.decide(PASS, 3000)
        self.assertIsNone(self.director.context.target_play_time)
        self.assertEqual(self.director.context.metronome.start_time, 3000)
        self.assertEqual(self.director.pending, 3500)
        self.assertEqual(self.director.expectation(3100).expected_start_time, 3100)

    def test_rearm_keeps_tempo(self):
        director = SequenceDirector(mode="sp", tempo_bpm=90)
        director.decide(PASS, 2000)
        self.assertEqual(director.context.metronome.bpm, 90)
        self.assertEqual(director.context.metronome.start_time, 2000)

    def test_poll_plays_when_due(self):
        self.director.decide(PASS, 0)
        self.assertIsNone(self.director.poll(499))
        self.assertEqual(self.director.poll(500), "P")
        self.assertIsNone(self.director.pending)
        self.assertEqual(self.director.context.target_play_time, 500)
        self.assertIsNone(self.director.poll(600))

    def test_last_schedule_wins(self):
        self.director.decide(FAIL, 0)
        self.director.decide(FAIL, 200)
        self.assertEqual(self.director.pending, 700)
        self.assertIsNone(self.director.poll(600))
        self.assertEqual(self.director.poll(700), "S")
        self.assertEqual(len(self.player.played), 1)

    def test_cancel_pending(self):
        self.director.decide(PASS, 0)
        self.director.cancel_pending()
        self.assertIsNone(self.director.poll(10000))
        self.assertEqual(self.player.played, [])

    def test_stop(self):
        self.director.start(0)
        self.director.decide(PASS, 1000)
        self.director.stop()
        self.assertFalse(self.director.active)
        self.assertIsNone(self.director.pending)

    def test_play_counts(self):
        self.director.start(0)
        self.director.decide(FAIL, 1000)
        self.director.poll(1500)
        self.assertEqual(self.director.play_counts, {"S": 2})

    def test_set_mode_resets_position(self):
        self.director.decide(PASS, 0)
        self.director.set_mode("sargam")
        self.assertEqual(self.director.index, 0)
        self.assertIsNone(self.director.pending)
        self.assertEqual(len(self.director.sequence), 8)
        with self.assertRaises(ValueError):
            self.director.set_mode("raga")

    def test_explicit_sequence(self):
        director = SequenceDirector(sequence=Sequence.of(["G2", "M1"], [600, 800]))
        self.assertEqual(director.current_label, "G2")
        self.assertEqual(director.current_duration_ms, 600)


class TestMetronome(unittest.TestCase):
    def test_tempo(self):
        metronome = Metronome(bpm=60, start_time=1000)
        self.assertEqual(metronome.beats_per_second, 1)
        self.assertEqual(metronome.ms_per_beat, 1000)

    def test_beat_time(self):
        beat = create_metronome(1000, bpm=60).beat_time(3500)
        self.assertEqual(beat["elapsed_ms"], 2500)
        self.assertEqual(beat["current_beat"], 2)
        self.assertAlmostEqual(beat["beat_progress"], 0.5)

    def test_reset(self):
        self.assertEqual(Metronome(bpm=90, start_time=0).reset(500), Metronome(bpm=90, start_time=500))

    def test_invalid_bpm(self):
        with self.assertRaises(ValueError):
            Metronome(bpm=0, start_time=0)


class TestSequences(unittest.TestCase):
    def test_modes(self):
        self.assertEqual(get_sequence("sp").labels, ("S", "P"))
        self.assertEqual(get_sequence("sps").labels, ("S", "P", "S'"))
        self.assertEqual(MODE_SEQUENCES["sargam"].labels[-1], "S'")
        with self.assertRaises(ValueError):
            get_sequence("unknown")

    def test_mismatched_sequence(self):
        with self.assertRaises(ValueError):
            Sequence(("S", "P"), (1000,))
        with self.assertRaises(ValueError):
            Sequence.of([])

    def test_sample_labels(self):
        labels = sample_labels()
        self.assertIn("S'", labels)
        self.assertEqual(len(labels), len(set(labels)))


if __name__ == "__main__":
    unittest.main()
