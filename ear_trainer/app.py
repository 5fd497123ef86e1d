"""Host application: wires config, detection, playback and the orchestrator."""

import time
from dataclasses import replace
from typing import Any, Callable, Dict, Optional

from .core.config import ConfigManager
from .core.interfaces import IInputDevice, INotePlayer
from .detection import DetectionSessionController, EnvironmentCapabilities
from .logger import get_logger
from .settings import DetectionSettings, TrainingSettings
from .training import TrainingOrchestrator, TrainingState

logger = get_logger(__name__)


class TrainingApp:
    """Runs one training session on the calling thread until it finishes."""

    # Seconds slept per loop iteration
    LOOP_DELAY = 0.01

    def __init__(
        self,
        player: INotePlayer,
        input_device: Optional[IInputDevice] = None,
        config_manager: Optional[ConfigManager] = None,
        overrides: Optional[Dict[str, Any]] = None,
        simulate: bool = False,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the application.

        Args:
            player: Output collaborator
            input_device: Audio input, None to run on simulated detection
            config_manager: Persisted configuration, defaults to ``~/.config/ear_trainer``
            overrides: Training values that apply to this run only
            simulate: Skip real audio input even if a device is available
            sleep: Blocking delay for the loop and playback gaps
        """
        self.config_manager = config_manager or ConfigManager()
        training = self.config_manager.get_config("training")
        training.update({k: v for k, v in (overrides or {}).items() if v is not None})
        self.training_settings = TrainingSettings.from_dict(training)
        self.detection_settings = DetectionSettings.from_dict(
            self.config_manager.get_config("detection")
        )

        self.player = player
        self._sleep = sleep
        capabilities = EnvironmentCapabilities(
            spectral_analysis=not simulate and input_device is not None
        )

        self.controller = DetectionSessionController(
            input_device=input_device,
            settings=self.detection_settings,
            volume_threshold=self.training_settings.volume_threshold,
            capabilities=capabilities,
        )
        self.player.set_instrument(self.training_settings.instrument)
        self.controller.set_instrument(self.training_settings.instrument)

        self.orchestrator = TrainingOrchestrator(
            self.controller,
            self.player,
            self.training_settings,
            sleep=sleep,
        )

    def set_volume_threshold(self, threshold: float) -> None:
        self._update_settings(volume_threshold=threshold)
        self.controller.set_volume_threshold(threshold)

    def set_instrument(self, instrument: str) -> None:
        self._update_settings(instrument=instrument)
        self.player.set_instrument(instrument)
        self.controller.set_instrument(instrument)

    def _update_settings(self, **changes) -> None:
        settings = replace(self.training_settings, **changes)
        settings.validate()
        self.training_settings = settings
        self.orchestrator.settings = settings

    def run(self, max_iterations: Optional[int] = None) -> TrainingState:
        """Run until the orchestrator finishes, or for ``max_iterations`` loops.

        The detection controller is stopped and the player closed on every
        exit path, including KeyboardInterrupt.
        """
        iterations = 0
        try:
            self.orchestrator.start()
            logger.info(f"Listening via {self.controller.strategy_name} detection")

            while not self.orchestrator.finished:
                if max_iterations is not None and iterations >= max_iterations:
                    break
                self.controller.pump()
                self.orchestrator.process_events()
                iterations += 1
                self._sleep(self.LOOP_DELAY)
        finally:
            self.controller.stop()
            self.player.close()

        return self.orchestrator.state
