import json
import tempfile
import unittest
from pathlib import Path

from swara_drill.core.config import DEFAULT_CONFIGS, ConfigManager, DrillSettings
from swara_drill.core.events import EventEmitter, SessionEvents, SessionEventType


class TestConfigManager(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.config_dir = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def test_creates_default_files(self):
        manager = ConfigManager(str(self.config_dir))
        for name in DEFAULT_CONFIGS:
            self.assertTrue((self.config_dir / f"{name}.json").exists())
            self.assertEqual(manager.get_config(name), DEFAULT_CONFIGS[name])

    def test_update_persists(self):
        manager = ConfigManager(str(self.config_dir))
        self.assertTrue(manager.update_config("director", {"mode": "sp", "tonic": 293.66}))
        reloaded = ConfigManager(str(self.config_dir))
        self.assertEqual(reloaded.get_config("director")["mode"], "sp")
        self.assertEqual(reloaded.get_config("director")["tonic"], 293.66)

    def test_missing_keys_are_filled(self):
        (self.config_dir / "segmenter.json").write_text(json.dumps({"min_duration_ms": 250}))
        manager = ConfigManager(str(self.config_dir))
        segmenter = manager.get_config("segmenter")
        self.assertEqual(segmenter["min_duration_ms"], 250)
        self.assertEqual(segmenter["silence_duration_ms"], 100)

    def test_corrupt_file_falls_back_to_defaults(self):
        (self.config_dir / "pitch.json").write_text("{not json")
        manager = ConfigManager(str(self.config_dir))
        self.assertEqual(manager.get_config("pitch"), DEFAULT_CONFIGS["pitch"])

    def test_reset(self):
        manager = ConfigManager(str(self.config_dir))
        manager.update_config("evaluator", {"use_curve_comparison": True})
        self.assertTrue(manager.reset_config("evaluator"))
        self.assertFalse(manager.get_config("evaluator")["use_curve_comparison"])

    def test_unknown_section(self):
        manager = ConfigManager(str(self.config_dir))
        self.assertFalse(manager.update_config("graphics", {"fps": 60}))
        self.assertFalse(manager.reset_config("graphics"))
        self.assertEqual(manager.get_config("graphics"), {})

    def test_get_config_returns_copy(self):
        manager = ConfigManager(str(self.config_dir))
        manager.get_config("pitch")["threshold"] = 0.9
        self.assertEqual(manager.get_config("pitch")["threshold"], 0.15)

    def test_settings_from_manager(self):
        manager = ConfigManager(str(self.config_dir))
        manager.update_config("evaluator", {"timing_tolerance_ms": None})
        settings = DrillSettings.from_manager(manager)
        self.assertIsNone(settings.evaluator["timing_tolerance_ms"])
        self.assertEqual(settings.audio_input["frames_per_buffer"], 4096)

    def test_default_settings_are_independent(self):
        settings = DrillSettings.defaults()
        settings.director["mode"] = "sp"
        self.assertEqual(DEFAULT_CONFIGS["director"]["mode"], "sargam")


class TestEvents(unittest.TestCase):
    def test_emit_calls_listeners(self):
        emitter = EventEmitter()
        received = []
        emitter.on("tick", lambda value: received.append(value))
        emitter.emit("tick", 5)
        self.assertEqual(received, [5])

    def test_listener_errors_do_not_stop_others(self):
        emitter = EventEmitter()
        received = []

        def broken(_):
            raise RuntimeError("boom")

        emitter.on("tick", broken)
        emitter.on("tick", received.append)
        emitter.emit("tick", 1)
        self.assertEqual(received, [1])

    def test_clear(self):
        emitter = EventEmitter()
        received = []
        emitter.on("tick", received.append)
        emitter.clear()
        emitter.emit("tick", 2)
        self.assertEqual(received, [])

    def test_duplicate_registration(self):
        emitter = EventEmitter()
        received = []
        emitter.on("tick", received.append)
        emitter.on("tick", received.append)
        emitter.emit("tick", 1)
        self.assertEqual(received, [1])

    def test_session_events(self):
        events = SessionEvents()
        played = []
        events.on_target_played(lambda label, now: played.append((label, now)))
        events.emit(SessionEventType.TARGET_PLAYED, "P", 500)
        events.emit(SessionEventType.DECISION, object())
        self.assertEqual(played, [("P", 500)])


if __name__ == "__main__":
    unittest.main()
