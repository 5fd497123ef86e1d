import shutil
import tempfile
import unittest

from click.testing import CliRunner

from ear_trainer.cli import main
from ear_trainer.core.config import ConfigManager
from ear_trainer.core.interfaces import INotePlayer
from ear_trainer.app import TrainingApp
from ear_trainer.training import TrainingState


class SilentPlayer(INotePlayer):
    def __init__(self):
        self.sequences = 0
        self.instrument = None
        self.closed = False

    def play_note(self, note):
        pass

    def play_sequence(self, notes, inter_note_delay_ms=1000):
        self.sequences += 1

    def set_instrument(self, instrument):
        self.instrument = instrument

    def close(self):
        self.closed = True


class TestTrainingApp(unittest.TestCase):
    def setUp(self):
        self.config_dir = tempfile.mkdtemp()
        self.config_manager = ConfigManager(self.config_dir)
        self.player = SilentPlayer()

    def tearDown(self):
        shutil.rmtree(self.config_dir)

    def make_app(self, **overrides):
        return TrainingApp(
            player=self.player,
            input_device=None,
            config_manager=self.config_manager,
            overrides=overrides,
            sleep=lambda seconds: None,
        )

    def test_overrides_apply_to_this_run_only(self):
        app = self.make_app(notes_per_turn=3, instrument="synth", max_interval=None)
        self.assertEqual(app.training_settings.notes_per_turn, 3)
        self.assertEqual(app.training_settings.max_interval, 5)
        self.assertEqual(self.player.instrument, "synth")
        self.assertEqual(self.config_manager.get_config("training")["notes_per_turn"], 1)

    def test_invalid_override(self):
        with self.assertRaises(ValueError):
            self.make_app(notes_per_turn=9)

    def test_run_uses_simulation_without_input_and_cleans_up(self):
        app = self.make_app()
        state = app.run(max_iterations=5)

        self.assertEqual(state, TrainingState.AWAITING_INPUT)
        self.assertEqual(self.player.sequences, 3)
        self.assertFalse(app.controller.is_listening())
        self.assertTrue(self.player.closed)

    def test_volume_threshold_reaches_detector(self):
        app = self.make_app()
        app.set_volume_threshold(0.02)
        self.assertEqual(app.controller.volume_threshold, 0.02)
        with self.assertRaises(ValueError):
            app.set_volume_threshold(0.5)


class TestCli(unittest.TestCase):
    def test_help(self):
        result = CliRunner().invoke(main, ["--help"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("train", result.output)
        self.assertIn("devices", result.output)

    def test_out_of_range_option(self):
        result = CliRunner().invoke(main, ["train", "--notes-per-turn", "9"])
        self.assertEqual(result.exit_code, 2)


if __name__ == "__main__":
    unittest.main()
