"""HandBody CLI.

Usage:
    handbody run        Live camera overlay (hand / body skeletons, pinch drawing)
    handbody replay     Replay a recorded session through the core
    handbody config     Write the default configuration as YAML
"""

from __future__ import annotations

import logging
import sys
import time
from pathlib import Path
from typing import Optional

import typer
import yaml

from handbody.config import EngineConfig, load_config
from handbody.pipeline import Mode

app = typer.Typer(
    name="handbody",
    help="✋ Hand and body skeleton overlay with pinch drawing.",
    add_completion=False,
)


def _setup_logging(level: str):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )


def _load(config_path: Optional[str]) -> EngineConfig:
    if config_path and not Path(config_path).exists():
        typer.echo(f"❌ Config not found: {config_path}", err=True)
        raise typer.Exit(1)
    try:
        return load_config(config_path)
    except ValueError as e:
        typer.echo(f"❌ Invalid config: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def run(
    mode: Mode = typer.Option(Mode.HAND, help="hand, body or draw"),
    camera: Optional[int] = typer.Option(None, help="Camera device index (overrides config)"),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to YAML config"),
    record: Optional[str] = typer.Option(None, help="Also record raw joints to this JSON file"),
    log_level: str = typer.Option("info", help="Log level"),
):
    """Open the camera and draw the live overlay. Keys: q quit, c clear, m switch hand/body.

    In draw mode a double click on the window also clears the drawing.
    With --record the mode cannot be switched.
    """
    import cv2

    from handbody.capture import CaptureWorker
    from handbody.detector import DetectionFailure
    from handbody.pipeline import FrameProcessor
    from handbody.recorder import SessionRecorder
    from handbody.render import OverlayRenderer
    from handbody.session import DrawingSession

    _setup_logging(log_level)
    config = _load(config_path)
    camera_index = camera if camera is not None else config.camera_index

    def start_worker(current: Mode) -> CaptureWorker:
        worker = CaptureWorker(
            FrameProcessor(mode=current, config=config),
            camera_index=camera_index,
            width=config.camera_width,
            height=config.camera_height,
        )
        worker.start()
        return worker

    try:
        worker = start_worker(mode)
    except (RuntimeError, ImportError) as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(1)

    renderer = OverlayRenderer(config)
    session = DrawingSession(config)
    recorder = SessionRecorder(mode) if record else None
    if recorder:
        recorder.start()

    window = "HandBody"
    cv2.namedWindow(window)

    def on_mouse(event, x, y, flags, param):
        if event == cv2.EVENT_LBUTTONDBLCLK:
            session.clear()

    cv2.setMouseCallback(window, on_mouse)
    typer.echo(f"🎥 Camera {camera_index}, mode {mode.value}. Press q to quit.")

    try:
        while True:
            try:
                item = worker.poll(timeout=0.1)
            except DetectionFailure as e:
                typer.echo(f"❌ {e}", err=True)
                raise typer.Exit(1)

            if item is not None:
                frame, result = item
                if recorder:
                    recorder.add_frame(result.raw_groups)

                if mode == Mode.DRAW:
                    update = session.apply(result, now=time.monotonic())
                    renderer.draw_strokes(frame, session.strokes)
                    renderer.draw_tips(frame, update.tips, update.highlight)
                elif mode == Mode.BODY:
                    renderer.draw_bodies(frame, result.bodies)
                else:
                    renderer.draw_hands(frame, result.hands)

                cv2.imshow(window, frame)
            elif mode == Mode.DRAW:
                # Keep the idle timer running when no frames arrive
                session.update(None, now=time.monotonic())

            key = cv2.waitKey(1) & 0xFF
            if key == ord("q"):
                break
            if key == ord("c"):
                session.clear()
            if key == ord("m") and mode != Mode.DRAW:
                if recorder:
                    # A recording holds joints of a single mode
                    typer.echo("   Mode is fixed while recording")
                    continue
                worker.stop()
                mode = Mode.BODY if mode == Mode.HAND else Mode.HAND
                worker = start_worker(mode)
                typer.echo(f"   Switched to {mode.value}")
    finally:
        worker.stop()
        cv2.destroyAllWindows()
        if recorder:
            recorder.stop()
            recorder.save(record)
            typer.echo(f"💾 Saved {recorder.frame_count} frames to {record}")


@app.command()
def replay(
    recording: str = typer.Argument(..., help="Path to recording file"),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to YAML config"),
    realtime: bool = typer.Option(False, help="Play at original timing"),
    speed: float = typer.Option(1.0, help="Playback speed multiplier"),
    log_level: str = typer.Option("warning", help="Log level"),
):
    """Replay a recorded session through the skeleton builder and gesture machine."""
    from handbody.pipeline import FrameProcessor
    from handbody.recorder import SessionPlayer
    from handbody.session import DrawingSession

    _setup_logging(log_level)
    path = Path(recording)
    if not path.exists():
        typer.echo(f"❌ Recording not found: {recording}", err=True)
        raise typer.Exit(1)

    config = _load(config_path)
    player = SessionPlayer.load(path)
    typer.echo(
        f"▶️  Replaying {path.name} ({player.frame_count} frames, "
        f"{player.duration:.1f}s, mode {player.mode.value})"
    )

    processor = FrameProcessor(mode=player.mode, config=config)
    session = DrawingSession(config)
    hands = bodies = 0

    frames = player.play_realtime(speed=speed) if realtime else player.play()
    for frame in frames:
        result = processor.process_groups(frame.groups, frame.timestamp)
        hands += sum(1 for h in result.hands if h.is_renderable)
        bodies += len(result.bodies)

        if player.mode == Mode.DRAW:
            update = session.apply(result, now=frame.timestamp)
            if update.changed:
                typer.echo(f"   {frame.timestamp:7.3f}s  {update.state.value}")

    if player.mode == Mode.DRAW:
        strokes = session.strokes
        segments = sum(s.segment_count for s in strokes)
        typer.echo(f"\n✅ {len(strokes)} stroke(s), {segments} segment(s), final state {session.state.value}")
    else:
        typer.echo(f"\n✅ {hands} renderable hand(s), {bodies} complete body skeleton(s)")


@app.command("config")
def write_config(
    output: Optional[str] = typer.Option(None, "-o", help="Write to file instead of stdout"),
):
    """Print or save the default configuration."""
    config = EngineConfig()
    if output:
        config.to_yaml(output)
        typer.echo(f"💾 Saved to {output}")
    else:
        yaml.dump(config.to_dict(), sys.stdout, default_flow_style=False, sort_keys=False)


def main():
    app()


if __name__ == "__main__":
    main()
