#!/usr/bin/env python3
"""
Sound Sensing - live runner

Listens to the microphone (and optionally a second input used as "project"
audio), polls the engine once per host tick and logs calibrated band and
spectral-flux peaks.
"""

import argparse
import cProfile
import sys
import time
from pathlib import Path

from config import AudioSourcePolicy, Band
from config_persistence import get_report_dir, load_config
from logging_utils import add_log_file, log_event, remove_log_file, set_log_level


def print_devices() -> None:
    from mic_capture import list_input_devices

    print("Available Input Devices:\n")
    for d in list_input_devices():
        print(f"[{d['index']}] {d['name']}")
        print(f"    Input: {d['channels']} channels, Default SR: {d['sample_rate']} Hz")
        print()


def run_engine(args: argparse.Namespace) -> int:
    # sounddevice needs PortAudio; import only when actually capturing
    from mic_capture import CaptureHost, DeviceCapture
    from sound_engine import SoundSensingEngine

    config = load_config(args.config)
    set_log_level(args.log_level or config.log_level)
    if args.source:
        config.audio_source = AudioSourcePolicy.parse(args.source)
    if args.tick_ms:
        config.capture.tick_ms = args.tick_ms
    if args.device is not None:
        config.capture.device_index = args.device
    if args.project_device is not None:
        config.capture.project_device_index = args.project_device

    microphone = DeviceCapture(config, config.capture.device_index, name="Microphone")
    project = None
    if config.capture.project_device_index is not None:
        project = DeviceCapture(config, config.capture.project_device_index, name="Project")
        if not project.start():
            return 1

    host = CaptureHost(config, microphone, project)
    report_dir = None if args.no_report else get_report_dir()
    engine = SoundSensingEngine(host, config, report_dir=report_dir)

    tick_s = config.capture.tick_ms / 1000.0
    deadline = time.monotonic() + args.duration if args.duration else None
    log_event("INFO", "Run", "Listening", source=config.audio_source.name.lower(), tick_ms=config.capture.tick_ms)
    try:
        while deadline is None or time.monotonic() < deadline:
            fired = [band.name.lower() for band in Band if engine.is_band_peak(band)]
            if fired:
                log_event(
                    "INFO",
                    "Peak",
                    "Band peak",
                    bands=",".join(fired),
                    energy=[engine.current_energy(band) for band in Band],
                )
            if engine.is_flux_peak():
                log_event("INFO", "Peak", "Sound changed",
                          flux=engine.current_flux(), threshold=engine.current_flux_threshold())
            time.sleep(tick_s)
    except KeyboardInterrupt:
        pass
    finally:
        host.stop_all()
        engine.close()
        host.close()
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the sound sensing engine on live input")
    parser.add_argument("--list-devices", action="store_true", help="List input devices and exit")
    parser.add_argument("--source", choices=[p.name.lower() for p in AudioSourcePolicy],
                        help="Audio source policy (default from config)")
    parser.add_argument("--device", type=int, help="Microphone device index")
    parser.add_argument("--project-device", type=int,
                        help="Second input device treated as project audio (e.g. loopback)")
    parser.add_argument("--tick-ms", type=float, help="Host poll interval in milliseconds")
    parser.add_argument("--duration", type=float, default=0.0, help="Stop after N seconds (0 = until Ctrl+C)")
    parser.add_argument("--config", type=Path, help="Config file (default ~/.soundsensing/config.json)")
    parser.add_argument("--log-level", help="DEBUG/INFO/WARNING/ERROR")
    parser.add_argument("--log-file", type=Path, help="Also write log output to this file")
    parser.add_argument("--no-report", action="store_true", help="Do not write a session report on exit")
    parser.add_argument(
        "--profile",
        action="store_true",
        help="Enable cProfile and save stats to --profile-out",
    )
    parser.add_argument(
        "--profile-out",
        default="profile.prof",
        help="Path to save cProfile stats (default: profile.prof)",
    )
    args = parser.parse_args()

    if args.list_devices:
        print_devices()
        sys.exit(0)

    file_handler = add_log_file(args.log_file) if args.log_file else None

    if args.profile:
        profiler = cProfile.Profile()
        profiler.enable()
        exit_code = run_engine(args)
        profiler.disable()
        profiler.dump_stats(args.profile_out)
    else:
        exit_code = run_engine(args)

    if file_handler is not None:
        remove_log_file(file_handler)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
