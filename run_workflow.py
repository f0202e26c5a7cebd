#!/usr/bin/env python3
"""Run the capture -> 3D model workflow once from the command line.

Usage:
    python run_workflow.py photo.jpg
    python run_workflow.py --mock            # offline, grey placeholder frame
"""
from __future__ import annotations

import argparse
import asyncio
import sys

from dotenv import load_dotenv

from palace3d.core.logger import setup_logging
from palace3d.core.settings import settings
from palace3d.services.capture import FileCaptureSource, PlaceholderCaptureSource
from palace3d.services.workflow import build_orchestrator


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Turn a captured image into a saved GLB model")
    parser.add_argument("image", nargs="?", default=None, help="Image file used as the captured frame")
    parser.add_argument("--mock", action="store_true", help="Use mock captioning, image and 3D services")
    parser.add_argument("--out", default=None, help="Persistent data directory (models go in <out>/3DModels)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    args = parse_args(sys.argv[1:] if argv is None else argv)
    setup_logging("DEBUG" if args.verbose else settings.log_level)

    providers = {}
    if args.mock:
        providers = {"caption_provider": "mock", "image_provider": "mock", "mesh_provider": "mock"}
    if args.out:
        settings.persistent_dir = args.out

    capture = FileCaptureSource(args.image) if args.image else PlaceholderCaptureSource()
    orchestrator = build_orchestrator(capture, caption_sink=lambda text: print(f"Caption: {text}"), **providers)
    result = asyncio.run(orchestrator.run())

    if not result.ok:
        print(f"[!] Failed at {result.stage.value} ({result.error_kind}): {result.error}")
        return 1
    print(f"[+] Saved {result.asset.path} ({result.asset.size_bytes} bytes)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
