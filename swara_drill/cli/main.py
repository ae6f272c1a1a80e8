"""Main entry point for the Swara Drill CLI."""

import sys
import time
from typing import Optional

import click
import pyfiglet

from ..constants import NOTE_LABELS, TONIC_OPTIONS
from ..core.config import ConfigManager, DrillSettings
from ..director import DirectorDecision
from ..evaluation.curve import describe_verdict
from ..logging_config import get_logger, setup_logging
from ..note_utils import frequency_for_label, label_for_semitone
from ..sequences import MODE_SEQUENCES, sample_labels
from ..session import DrillSession
from ..utterance import CurveVerdict, Utterance

logger = get_logger(__name__)


def parse_tonic(value: str) -> float:
    """Accept a frequency in Hz or a tonic name such as 'C4' or 'A#3'."""
    for option in TONIC_OPTIONS:
        if option["label"].lower() == value.lower():
            return float(option["freq"])
    try:
        tonic = float(value)
    except ValueError:
        raise click.BadParameter(
            f"'{value}' is neither a frequency nor one of "
            f"{TONIC_OPTIONS[0]['label']}..{TONIC_OPTIONS[-1]['label']}"
        )
    if tonic <= 0:
        raise click.BadParameter("tonic must be positive")
    return tonic


def format_utterance(utterance: Utterance) -> str:
    """One-line report of an evaluated utterance."""
    verdict = utterance.verdict
    duration = utterance.duration(utterance.end_time or utterance.start_time)
    head = f"{utterance.id} [{utterance.expected_note}] {duration}ms"
    if isinstance(verdict, CurveVerdict):
        info = describe_verdict(verdict)
        body = f"score={info['score']} rating={info['rating']}"
    else:
        marks = {True: "ok", False: "no", None: "-"}
        body = (
            f"stable={marks[verdict.is_stable]} note={marks[verdict.is_expected_note]} "
            f"length={marks[verdict.is_expected_length]} timing={marks[verdict.is_at_expected_time]}"
        )
    result = "PASS" if verdict.passed else "RETRY"
    lines = [f"{head} {body} -> {result}"]
    lines.extend(f"  - {s}" for s in utterance.suggestions)
    return "\n".join(lines)


def drill_tick(session: DrillSession, buffered, sample_rate: float, trainer_feed=None,
               now: Optional[int] = None) -> bool:
    """Run one display-rate tick of the live drill.

    Analyses the current capture window (the most recent analysis-window of
    samples, so frames are spaced by the tick rate, not the capture block
    size) and at most one queued block of trainer output.

    Returns:
        True if a capture frame was processed
    """
    if now is None:
        now = session.clock()
    if trainer_feed is not None:
        played = trainer_feed.pop()
        if played is not None:
            timestamp, block, rate = played
            session.record_trainer_buffer(block, rate, now=timestamp)
    window = buffered.window()
    if window is None:
        return False
    session.process_buffer(window, sample_rate, now=now)
    return True


def load_settings(config_dir: Optional[str]) -> DrillSettings:
    if config_dir is None:
        return DrillSettings.defaults()
    return DrillSettings.from_manager(ConfigManager(config_dir))


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--config-dir", type=click.Path(file_okay=False), default=None,
              help="Directory with JSON configuration (defaults are used if omitted)")
@click.pass_context
def cli(ctx, debug, config_dir):
    """Swara Drill - call and response pitch training."""
    setup_logging(level="DEBUG" if debug else "WARNING")
    ctx.ensure_object(dict)
    ctx.obj["config_dir"] = config_dir


@cli.command()
@click.option("--tonic", "-t", default="C4", help="Tonic as a name (C4) or in Hz")
def notes(tonic):
    """List the swara labels and their frequencies for a tonic."""
    tonic_hz = parse_tonic(tonic)
    click.echo(f"Tonic {tonic_hz:.2f} Hz")
    for semitone in range(-len(NOTE_LABELS), 2 * len(NOTE_LABELS) + 1):
        label = label_for_semitone(semitone)
        click.echo(f"{label:>5} {semitone:>4} {frequency_for_label(tonic_hz, label):8.2f} Hz")
    click.echo("Trainer sample labels: " + " ".join(sample_labels()))


@cli.command()
@click.argument("wav_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--tonic", "-t", default="C4", help="Tonic as a name (C4) or in Hz")
@click.option("--mode", "-m", type=click.Choice(sorted(MODE_SEQUENCES)), default=None,
              help="Sequence whose first note is the target")
@click.option("--chunk-size", default=4096, show_default=True, help="Analysis buffer size")
@click.option("--hop-ms", default=16, show_default=True, help="Frame spacing in ms")
@click.pass_context
def analyze(ctx, wav_file, tonic, mode, chunk_size, hop_ms):
    """Segment and score the attempts sung in a WAV file."""
    from ..audio.wav_provider import iter_wav_frames

    settings = load_settings(ctx.obj.get("config_dir"))
    session = DrillSession.from_settings(settings)
    session.set_tonic(parse_tonic(tonic))
    if mode:
        session.set_mode(mode)

    evaluated = []
    session.events.on_utterance_evaluated(evaluated.append)

    sample_rate = None
    last = 0
    for timestamp, chunk, sample_rate in iter_wav_frames(wav_file, chunk_size, hop_ms=hop_ms):
        session.process_buffer(chunk, sample_rate, now=timestamp)
        last = timestamp
    # Trailing silence closes an attempt that runs to the end of the file
    if sample_rate is not None:
        silence = [0.0] * chunk_size
        for step in range(1, 20):
            session.process_buffer(silence, sample_rate, now=last + step * hop_ms)

    if not evaluated:
        click.echo("No attempts found.")
        return
    for utterance in evaluated:
        click.echo(format_utterance(utterance))


@cli.command()
@click.option("--tonic", "-t", default="C4", help="Tonic as a name (C4) or in Hz")
@click.option("--mode", "-m", type=click.Choice(sorted(MODE_SEQUENCES)), default="sargam",
              show_default=True)
@click.option("--device", type=int, default=None, help="Audio input device ID")
@click.option("--curve", is_flag=True, help="Score attempts by pitch curve comparison")
@click.option("--wav", "wav_file", type=click.Path(exists=True, dir_okay=False), default=None,
              help="Stream a WAV file instead of the microphone")
@click.option("--duration", "-d", default=120, show_default=True, help="Session length in seconds")
@click.pass_context
def listen(ctx, tonic, mode, device, curve, wav_file, duration):
    """Run a live call and response drill."""
    from ..audio.buffering import BufferedInput, OutputFeed
    from ..audio.live import LiveAudioProvider, SineTargetPlayer
    from ..audio.wav_provider import WavFileAudioProvider

    settings = load_settings(ctx.obj.get("config_dir"))
    settings.director["mode"] = mode
    settings.director["tonic"] = parse_tonic(tonic)
    if curve:
        settings.evaluator["use_curve_comparison"] = True
    audio = settings.audio_input

    trainer_feed = OutputFeed() if curve else None
    player = SineTargetPlayer(sample_rate=audio["sample_rate"], block_size=audio["frames_per_buffer"],
                              device_id=device, feed=trainer_feed)
    session = DrillSession.from_settings(settings, player=player)

    def show_target(label, _now):
        click.echo(pyfiglet.figlet_format(label))

    def show_result(utterance):
        click.echo(format_utterance(utterance))

    def show_decision(decision: DirectorDecision):
        if decision.attempts_left is not None:
            click.echo(f"{decision.action.value}: next {decision.label} ({decision.attempts_left} attempts left)")
        else:
            click.echo(f"{decision.action.value}: next {decision.label}")

    session.events.on_target_played(show_target)
    session.events.on_utterance_evaluated(show_result)
    session.events.on_decision(show_decision)

    if wav_file:
        provider = WavFileAudioProvider(wav_file, chunk_size=audio["capture_block_size"])
    else:
        provider = LiveAudioProvider(device, audio["sample_rate"], audio["channels"],
                                     audio["capture_block_size"])
    buffered = BufferedInput(audio["frames_per_buffer"])
    provider.start(buffered.push)
    session.start_call_and_response()
    deadline = time.time() + duration
    try:
        while time.time() < deadline:
            drill_tick(session, buffered, provider.sample_rate, trainer_feed)
            time.sleep(1 / 60)
    except KeyboardInterrupt:
        click.echo("Stopping.")
    finally:
        session.stop()
        provider.stop()
        session.events.clear()
        logger.info("Drill finished")


def main(args=None) -> int:
    try:
        cli.main(args=args, standalone_mode=False)
    except click.ClickException as e:
        e.show()
        return e.exit_code
    except click.Abort:
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
