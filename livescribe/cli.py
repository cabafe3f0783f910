"""Command line entrypoint: record from the microphone and transcribe every interval."""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import logging
from pathlib import Path
from typing import Optional, Sequence

from pydantic import ValidationError

from .audio.capture import MicrophoneSource
from .config import LiveScribeSettings, get_settings
from .errors import LiveScribeError
from .services.display import ConsoleDisplay
from .services.inference import build_transcriber
from .services.processor import SegmentProcessor
from .services.session import SessionController
from .services.storage import FileWriter
from .store.settings_store import BACKENDS, ConnectionSettings, SettingsStore

LOGGER = logging.getLogger("livescribe.cli")

_CONNECTION_ARGS = {
    "backend": "backend",
    "endpoint": "endpoint_name",
    "url": "server_url",
    "api_key": "api_key",
    "region": "region",
    "profile": "profile",
    "insecure": "insecure_tls",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="livescribe",
        description="Record from the microphone and transcribe it in fixed-length windows.",
    )
    parser.add_argument("--interval", type=float, help="Window length in seconds (default: 30).")
    parser.add_argument("--duration", type=float, help="Stop automatically after this many seconds.")
    parser.add_argument("--device", help="Input device index or name (see --list-devices).")
    parser.add_argument("--output-dir", type=Path, help="Directory for the saved WAV windows.")
    parser.add_argument("--no-save-audio", action="store_true", help="Do not keep WAV copies of the windows.")
    parser.add_argument("--backend", choices=BACKENDS, help="Inference backend.")
    parser.add_argument("--endpoint", help="SageMaker endpoint name.")
    parser.add_argument("--url", help="HTTP inference URL (http backend).")
    parser.add_argument("--api-key", help="API key sent as X-API-Key (http backend).")
    parser.add_argument("--region", help="AWS region.")
    parser.add_argument("--profile", help="AWS credential profile.")
    parser.add_argument(
        "--insecure",
        action="store_true",
        default=None,
        help="Skip TLS certificate validation for the inference call.",
    )
    parser.add_argument("--save", action="store_true", help="Persist the connection options given here.")
    parser.add_argument("--list-devices", action="store_true", help="List input devices and exit.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    return parser


def resolve_connection(args: argparse.Namespace, store: SettingsStore) -> ConnectionSettings:
    overrides = {
        field: getattr(args, arg)
        for arg, field in _CONNECTION_ARGS.items()
        if getattr(args, arg, None) is not None
    }
    if args.save:
        return store.update(**overrides)
    return dataclasses.replace(store.get(), **overrides)


def resolve_settings(args: argparse.Namespace, settings: LiveScribeSettings) -> LiveScribeSettings:
    update = {}
    if args.interval is not None:
        update["interval_seconds"] = args.interval
    if args.device is not None:
        update["input_device"] = args.device
    if args.output_dir is not None:
        update["output_dir"] = str(args.output_dir)
    if args.no_save_audio:
        update["keep_audio"] = False
    if args.verbose:
        update["log_level"] = "DEBUG"
    return LiveScribeSettings.model_validate({**settings.model_dump(), **update})


async def run(settings: LiveScribeSettings, connection: ConnectionSettings, duration: Optional[float] = None) -> int:
    transcriber = build_transcriber(connection)
    source = MicrophoneSource(settings.capture_rate, device=settings.device, block_ms=settings.block_ms)
    writer = FileWriter(Path(settings.output_dir)) if settings.keep_audio else None
    processor = SegmentProcessor(
        transcriber,
        target_rate=settings.target_rate,
        writer=writer,
        display=ConsoleDisplay(),
    )
    controller = SessionController(source, processor, interval=settings.interval_seconds)
    try:
        controller.start_session()
        print("Recording... press Ctrl+C to stop.", flush=True)
        await _wait_until_stopped(controller, duration)
    finally:
        controller.stop_session()
        await controller.wait_idle()
        await transcriber.close()
    LOGGER.info("Session finished with %d transcription(s)", len(controller.results))
    return 1 if controller.last_error is not None else 0


async def _wait_until_stopped(controller: SessionController, duration: Optional[float]) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + duration if duration else None
    while controller.is_running:
        if deadline is not None and loop.time() >= deadline:
            return
        await asyncio.sleep(0.2)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        settings = resolve_settings(args, get_settings())
    except ValidationError as exc:
        parser.error(f"invalid settings: {exc}")
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if args.list_devices:
        for device in MicrophoneSource.list_devices():
            print(f"{device['index']:>3}  {device['name']}  ({device['channels']} ch, {device['sample_rate']} Hz)")
        return 0

    connection = resolve_connection(args, SettingsStore(Path(settings.settings_path)))
    try:
        return asyncio.run(run(settings, connection, args.duration))
    except LiveScribeError as exc:
        LOGGER.error("%s", exc)
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
