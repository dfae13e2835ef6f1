"""
Enso Piano - chord explorer
Main entry point

Commands:
    chords KEY MODE            List diatonic and borrowed chords of a key
    play KEY MODE NUMERAL...   Play a numeral progression on the default output
"""
import asyncio
import logging
from typing import Annotated, List

import typer

from audio.device import SoundDevicePlayback
from audio.playback import SafePlayback
from audio.scheduler import ProgressionScheduler
from core.constants import NOTE_NAMES, note_index
from core.models import ChordDefinition
from core.progression import Progression
from core.settings import Settings
from core.theory import (
    find_chord,
    get_borrowed_chords,
    get_chord_frequencies,
    get_scale_chords,
    get_scale_degree_label,
    group_borrowed,
)
from core.timers import AsyncioTimerService

logger = logging.getLogger(__name__)

app = typer.Typer(no_args_is_help=True, help="Explore and play chords in a key.")


def _configure_logging(verbose: bool):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _format_chord(chord: ChordDefinition, key: str, mode: str) -> str:
    root = note_index(chord.root_note)
    notes = [NOTE_NAMES[(root + i) % 12] for i in chord.base_intervals]
    degrees = [get_scale_degree_label(root + i, key, mode) for i in chord.base_intervals]
    freqs = get_chord_frequencies(chord.root_note, chord.base_intervals)
    return (
        f"{chord.roman_numeral:<8} {chord.root_note:<3} "
        f"{' '.join(notes):<14} {' '.join(degrees):<14} "
        f"{' '.join(f'{f:.1f}' for f in freqs)}"
    )


@app.command()
def chords(
    key: Annotated[str, typer.Argument(help="Tonic, e.g. C, F#, Bb")],
    mode: Annotated[str, typer.Argument(help="major, minor, dorian, ...")] = "major",
    sevenths: Annotated[bool, typer.Option("--sevenths", help="Show seventh chords")] = False,
):
    """List the diatonic and borrowed chords of a key."""
    try:
        diatonic = get_scale_chords(key, mode, sevenths=sevenths)
        borrowed = get_borrowed_chords(key, mode)
    except ValueError as e:
        raise typer.BadParameter(str(e))

    typer.echo(f"Chords in {diatonic[0].root_note} {mode}")
    for chord in diatonic:
        typer.echo(f"  {_format_chord(chord, key, mode)}  ({chord.harmonic_function.value})")

    for group, members in group_borrowed(borrowed).items():
        typer.echo(f"Borrowed ({group})")
        for chord in members:
            typer.echo(f"  {_format_chord(chord, key, mode)}")


@app.command()
def play(
    key: Annotated[str, typer.Argument(help="Tonic, e.g. C, F#, Bb")],
    mode: Annotated[str, typer.Argument(help="major, minor, dorian, ...")],
    numerals: Annotated[List[str], typer.Argument(help="Roman numerals, e.g. I V vi IV")],
    tempo: Annotated[float, typer.Option(help="Tempo in BPM")] = 120.0,
    beats: Annotated[int, typer.Option(help="Beats per chord")] = 4,
    loop: Annotated[bool, typer.Option("--loop", help="Repeat until interrupted")] = False,
    verbose: Annotated[bool, typer.Option("--verbose", "-v")] = False,
):
    """Play a roman-numeral progression."""
    _configure_logging(verbose)
    settings = Settings.from_dict({"playback": {"tempo": tempo, "loop": loop}})

    progression = Progression()
    try:
        for numeral in numerals:
            progression.append(find_chord(key, mode, numeral), duration=beats)
    except ValueError as e:
        raise typer.BadParameter(str(e))

    device = SoundDevicePlayback(sample_rate=settings.audio.sample_rate)
    if not device.open():
        typer.echo("No audio output available; running silently.", err=True)

    try:
        asyncio.run(_run_progression(progression, device, settings))
    except KeyboardInterrupt:
        typer.echo("Stopped.")
    finally:
        device.close()


async def _run_progression(progression: Progression,
                           device: SoundDevicePlayback,
                           settings: Settings):
    finished = asyncio.Event()

    def on_time_update(index: int):
        entry = progression[index]
        typer.echo(f"  > {entry.numeral} ({entry.root_note})")

    scheduler = ProgressionScheduler(
        SafePlayback(device, settings.audio.master_volume),
        AsyncioTimerService(asyncio.get_running_loop()),
        progression=progression,
        on_time_update=on_time_update,
        on_playback_end=finished.set,
        audio=settings.audio,
    )
    scheduler.play(progression, settings.playback.tempo, settings.playback.loop)
    try:
        await finished.wait()
        # Let the last chord ring out
        await asyncio.sleep(settings.audio.chord_duration)
    finally:
        scheduler.teardown()


if __name__ == "__main__":
    app()
