"""Command line interface for the ear trainer."""

import sys

import click

from .core.config import ConfigManager
from .logger import get_logger
from .logging_config import setup_logging
from .settings import INSTRUMENTS

logger = get_logger(__name__)


def _open_input_device(device, input_file):
    """Return the input collaborator for this run, or None to simulate."""
    if input_file:
        from .audio.wav_input import WavFileInput

        return WavFileInput(input_file)

    try:
        from .audio.microphone import SoundDeviceInput
    except (ImportError, OSError) as e:
        # PortAudio missing from the host
        logger.warning(f"Audio input unavailable: {e}")
        return None
    return SoundDeviceInput(device_id=device)


@click.group()
def main():
    """Ear trainer: listen to a short sequence, then play it back."""


@main.command()
@click.option("--notes-per-turn", "-n", type=click.IntRange(1, 5), help="Notes in each sequence")
@click.option("--max-interval", "-i", type=click.IntRange(1, 12), help="Largest step between notes, in semitones")
@click.option("--repetitions", "-r", type=click.IntRange(1, 10), help="Correct repetitions needed per sequence")
@click.option("--total-sequences", "-t", type=click.IntRange(0, 100), help="Sequences per session (0 = endless)")
@click.option("--volume-threshold", "-v", type=click.FloatRange(0.001, 0.05), help="Minimum input RMS that is analysed")
@click.option("--instrument", type=click.Choice(INSTRUMENTS), help="Timbre of the demonstrated notes")
@click.option("--device", "-d", type=int, default=None, help="Audio input device ID (default: system default)")
@click.option("--input-file", type=click.Path(exists=True, dir_okay=False), help="Use a WAV file instead of the microphone")
@click.option("--simulate", is_flag=True, help="Skip audio input and simulate detection")
@click.option("--sounds-dir", type=click.Path(file_okay=False), help="Directory with <instrument>/<sample> files")
@click.option("--config-dir", type=click.Path(file_okay=False), help="Configuration directory (default: ~/.config/ear_trainer)")
@click.option("--debug", is_flag=True, help="Show debug information")
def train(
    notes_per_turn,
    max_interval,
    repetitions,
    total_sequences,
    volume_threshold,
    instrument,
    device,
    input_file,
    simulate,
    sounds_dir,
    config_dir,
    debug,
):
    """Run a training session until it finishes or Ctrl-C."""
    setup_logging("DEBUG" if debug else None)

    from .app import TrainingApp
    from .audio.playback import PygameNotePlayer

    overrides = {
        "notes_per_turn": notes_per_turn,
        "max_interval": max_interval,
        "repetitions_required": repetitions,
        "total_sequences": total_sequences,
        "volume_threshold": volume_threshold,
        "instrument": instrument,
    }
    input_device = None if simulate else _open_input_device(device, input_file)

    try:
        app = TrainingApp(
            player=PygameNotePlayer(sounds_dir=sounds_dir),
            input_device=input_device,
            config_manager=ConfigManager(config_dir),
            overrides=overrides,
            simulate=simulate,
        )
    except ValueError as e:
        raise click.BadParameter(str(e))

    try:
        state = app.run()
    except KeyboardInterrupt:
        click.echo("\nTraining interrupted.")
        return

    progress = app.orchestrator.progress
    click.echo(f"Training {state.name.lower()} after {progress.current_sequence} sequence(s).")


@main.command()
def devices():
    """List available audio input devices."""
    try:
        from .audio.microphone import list_input_devices

        found = list_input_devices()
    except (ImportError, OSError) as e:
        click.echo(f"Error querying audio devices: {e}", err=True)
        sys.exit(1)

    if not found:
        click.echo("No audio input devices found.")
        return

    click.echo("Available audio input devices:")
    for device_id, info in found:
        click.echo(
            f"  {device_id}: {info['name']} "
            f"(inputs: {info['max_input_channels']}, "
            f"default rate: {info['default_samplerate']:.0f} Hz)"
        )


if __name__ == "__main__":
    main()
