"""Detection session controller: start, pause, resume and stop the pitch pipeline."""

from __future__ import annotations
import time
from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, List, Optional

from ..core.interfaces import DetectionCallback, IDetectionSession, IInputDevice
from ..core.scheduler import Scheduler, TimerHandle
from ..errors import AcquisitionFailure, PermissionDenied
from ..logger import get_logger
from ..notes import NOTE_TABLE, NoteTable
from ..settings import DetectionSettings
from .acquisition import (
    AcquisitionStrategy,
    DegradedAcquisition,
    EnvironmentCapabilities,
    FullSpectralAcquisition,
)
from .estimators import FrequencyEstimator, build_estimators
from .pitch_estimator import PitchEstimator
from .stability import StabilityFilter

logger = get_logger(__name__)

# Seconds between volume log lines
VOLUME_LOG_INTERVAL = 1.0


class SessionState(Enum):
    STOPPED = auto()
    LISTENING = auto()
    PAUSED = auto()


@dataclass
class DetectionSession:
    """Mutable state of the active session, owned by one controller."""

    state: SessionState = SessionState.STOPPED
    strategy: Optional[AcquisitionStrategy] = None
    timer: Optional[TimerHandle] = None
    callback: Optional[DetectionCallback] = None
    ticks: int = 0


class DetectionSessionController(IDetectionSession):
    """Runs the pitch pipeline on a timer and reports ``(note, volume)`` per tick.

    Pause and resume keep the input stream and analysis buffers open so the
    orchestrator can mute self-detection during playback without paying for
    a new stream or a new permission request.
    """

    def __init__(
        self,
        input_device: Optional[IInputDevice] = None,
        settings: Optional[DetectionSettings] = None,
        volume_threshold: float = 0.01,
        capabilities: Optional[EnvironmentCapabilities] = None,
        scheduler: Optional[Scheduler] = None,
        note_table: Optional[NoteTable] = None,
        estimators: Optional[List[FrequencyEstimator]] = None,
        degraded_factory: Optional[Callable[[DetectionSettings], AcquisitionStrategy]] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the controller.

        Args:
            input_device: Permission and stream collaborator, None when the host has no input
            settings: Detection tuning, defaults to ``DetectionSettings()``
            volume_threshold: Minimum frame RMS that is analysed
            capabilities: Environment probe result, defaults to full capability
            scheduler: Cadence timer, defaults to a new ``Scheduler``
            note_table: Catalog used to resolve stable frequencies
            estimators: Pre-built estimators, otherwise built from settings at start
            degraded_factory: Builds the fallback strategy, defaults to ``DegradedAcquisition``
            clock: Time source for log throttling
        """
        self._input_device = input_device
        self._settings = settings or DetectionSettings()
        self._capabilities = capabilities or EnvironmentCapabilities()
        self._scheduler = scheduler or Scheduler()
        self._injected_estimators = estimators
        self._degraded_factory = degraded_factory or (
            lambda s: DegradedAcquisition(interval=s.degraded_interval, sample_rate=s.sample_rate)
        )
        self._clock = clock
        self._last_volume_log: Optional[float] = None

        self._estimator = PitchEstimator(
            [],
            volume_threshold=volume_threshold,
            min_frequency=self._settings.min_frequency,
            max_frequency=self._settings.max_frequency,
        )
        self._filter = StabilityFilter(
            note_table=note_table or NOTE_TABLE,
            history_size=self._settings.history_size,
            min_stable_count=self._settings.min_stable_count,
            stability_bound=self._settings.stability_bound,
            match_tolerance=self._settings.match_tolerance,
        )
        self._session = DetectionSession()
        self.instrument: Optional[str] = None

    # State

    @property
    def state(self) -> SessionState:
        return self._session.state

    @property
    def strategy_name(self) -> Optional[str]:
        strategy = self._session.strategy
        return strategy.name if strategy else None

    @property
    def volume_threshold(self) -> float:
        return self._estimator.volume_threshold

    @property
    def stability_filter(self) -> StabilityFilter:
        return self._filter

    def is_listening(self) -> bool:
        return self._session.state is SessionState.LISTENING

    # Lifecycle

    def start(self, callback: DetectionCallback) -> bool:
        """Select an acquisition strategy and begin the sampling cadence.

        Never fails for lack of audio input: a refused permission or a stream
        that will not open degrades to the simulated strategy.

        Returns:
            True if a session was started, False if one was already active
        """
        if self._session.state is not SessionState.STOPPED:
            logger.warning("Pitch detection already started")
            return False

        self._filter.reset()
        strategy = self._select_strategy()
        self._session = DetectionSession(
            state=SessionState.LISTENING,
            strategy=strategy,
            callback=callback,
        )
        self._schedule()
        logger.info(f"Pitch detection started ({strategy.name}, every {strategy.interval * 1000:.0f}ms)")
        return True

    def _select_strategy(self) -> AcquisitionStrategy:
        if self._capabilities.spectral_analysis and self._input_device is not None:
            try:
                return self._open_spectral()
            except PermissionDenied as e:
                logger.warning(f"Permission to record audio was denied: {e}")
            except AcquisitionFailure as e:
                logger.warning(f"Could not open audio input: {e}")
            except Exception as e:
                logger.error(f"Spectral pitch detection unavailable: {e}", exc_info=True)
            logger.warning("Falling back to simulated pitch detection")
        else:
            logger.info("Spectral analysis unavailable in this environment")

        strategy = self._degraded_factory(self._settings)
        strategy.open()
        self._estimator = PitchEstimator(
            [],
            volume_threshold=self._estimator.volume_threshold,
            min_frequency=self._settings.min_frequency,
            max_frequency=self._settings.max_frequency,
        )
        return strategy

    def _open_spectral(self) -> FullSpectralAcquisition:
        if not self._input_device.request_microphone_permission():
            raise PermissionDenied("input device refused access")

        strategy = FullSpectralAcquisition(
            self._input_device,
            sample_rate=self._settings.sample_rate,
            frame_size=self._settings.frame_size,
            interval=self._settings.spectral_interval,
        )
        strategy.open()
        try:
            estimators = self._injected_estimators
            if estimators is None:
                # The stream may have settled on another rate than requested
                estimators = build_estimators(
                    self._settings.estimators,
                    sample_rate=strategy.sample_rate,
                    frame_size=strategy.frame_size,
                    min_frequency=self._settings.min_frequency,
                    max_frequency=self._settings.max_frequency,
                )
        except Exception:
            strategy.close()
            raise
        self._estimator = PitchEstimator(
            estimators,
            volume_threshold=self._estimator.volume_threshold,
            min_frequency=self._settings.min_frequency,
            max_frequency=self._settings.max_frequency,
        )
        return strategy

    def pause(self) -> None:
        """Halt the cadence, keeping the stream and buffers. No-op unless listening."""
        if self._session.state is not SessionState.LISTENING:
            logger.debug("Pitch detection not listening, nothing to pause")
            return

        self._cancel_timer()
        self._filter.reset()
        self._session.state = SessionState.PAUSED
        logger.debug("Pitch detection paused")

    def resume(self) -> None:
        """Restart the cadence with the configuration in force before pause()."""
        if self._session.state is not SessionState.PAUSED:
            logger.debug("Pitch detection was not paused, nothing to resume")
            return

        self._session.state = SessionState.LISTENING
        self._schedule()
        logger.debug("Pitch detection resumed")

    def stop(self) -> None:
        """Halt the cadence and release the stream and analysis buffers."""
        session = self._session
        self._cancel_timer()
        self._filter.reset()
        if session.strategy is not None:
            session.strategy.close()
        self._estimator.release()
        self._session = DetectionSession()
        if session.state is not SessionState.STOPPED:
            logger.info(f"Pitch detection stopped after {session.ticks} ticks")

    # Configuration

    def set_volume_threshold(self, threshold: float) -> None:
        """Takes effect on the next tick."""
        self._estimator.volume_threshold = threshold
        logger.info(f"Volume threshold set to: {threshold}")

    def set_instrument(self, instrument: str) -> None:
        """Record the playback instrument. Detection does not depend on it."""
        self.instrument = instrument
        logger.debug(f"Instrument set to: {instrument}")

    # Cadence

    def pump(self) -> int:
        """Run due ticks on the caller's thread. Returns the number fired."""
        return self._scheduler.run_pending()

    def _schedule(self) -> None:
        self._cancel_timer()
        self._session.timer = self._scheduler.call_every(
            self._session.strategy.interval, self._tick
        )

    def _cancel_timer(self) -> None:
        if self._session.timer is not None:
            self._session.timer.cancel()
            self._session.timer = None

    def _tick(self) -> None:
        session = self._session
        if session.state is not SessionState.LISTENING or session.strategy is None:
            return
        session.ticks += 1

        try:
            reading = session.strategy.read(self._estimator)
        except Exception as e:
            logger.warning(f"Could not read audio this tick: {e}")
            return

        result = self._filter.update(reading)
        self._log_volume(reading.volume)

        if session.callback is not None:
            try:
                session.callback(result.note, result.volume)
            except Exception as e:
                logger.error(f"Error in pitch detection callback: {e}", exc_info=True)

    def _log_volume(self, volume: float) -> None:
        now = self._clock()
        if self._last_volume_log is None or now - self._last_volume_log >= VOLUME_LOG_INTERVAL:
            logger.debug(f"Volume: {volume:.4f}, Threshold: {self._estimator.volume_threshold}")
            self._last_volume_log = now
