"""CLI entry point for the video storefront generator."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from frame_extraction import TimestampPolicy
from frame_extraction.models import MAX_FRAME_COUNT
from product_generation import DEFAULT_IMAGE_MODEL, DEFAULT_TEXT_MODEL, GeminiGateway
from product_generation.gemini_client import _load_env_key
from . import __version__
from .logging_setup import configure_logging
from .pipeline import chat, extract_frames_to_dir, run, run_end_to_end


def _frame_count(value: str) -> int:
    count = int(value)
    if not 1 <= count <= MAX_FRAME_COUNT:
        raise argparse.ArgumentTypeError(f"must be between 1 and {MAX_FRAME_COUNT}")
    return count


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Turn a product video into an AI-generated storefront")
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print version and exit",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--log-file", type=Path, default=None, help="Also write logs to this file")

    sub = parser.add_subparsers(dest="command")

    frames = sub.add_parser("frames", help="Extract representative frames from a video")
    frames.add_argument("--video", type=Path, required=True, help="Path to local video file")
    frames.add_argument("--count", type=_frame_count, default=3, help="How many frames to extract")
    frames.add_argument(
        "--policy",
        choices=[p.value for p in TimestampPolicy],
        default=TimestampPolicy.EVEN.value,
        help="Timestamp selection policy",
    )
    frames.add_argument(
        "--outdir",
        type=Path,
        default=Path("artifacts/frames"),
        help="Directory to store extracted frames",
    )

    generate = sub.add_parser("generate", help="Generate product listings from a video")
    generate.add_argument("--video", type=Path, required=True, help="Path to local video file")
    generate.add_argument("--frame", type=int, default=0, help="Index of the extracted frame to use")
    generate.add_argument("--count", type=_frame_count, default=3, help="How many frames to extract")
    generate.add_argument("--no-images", action="store_true", help="Skip AI product photography")
    generate.add_argument(
        "--manifest",
        type=Path,
        default=Path("artifacts/storefront/products.json"),
        help="Where to write the products manifest",
    )
    generate.add_argument(
        "--images-dir",
        type=Path,
        default=Path("artifacts/storefront/images"),
        help="Directory for product images",
    )
    generate.add_argument("--text-model", default=None, help=f"Model override (default: {DEFAULT_TEXT_MODEL})")
    generate.add_argument("--image-model", default=None, help=f"Model override (default: {DEFAULT_IMAGE_MODEL})")
    generate.add_argument(
        "--api-key", default=None, help="API key override (else GEMINI_API_KEY/GOOGLE_API_KEY)"
    )

    assistant = sub.add_parser("chat", help="Chat with the AI business assistant")
    assistant.add_argument("--location", default=None, help="Where the shop is based, to localise advice")

    sub.add_parser("interactive", help="Guided video -> storefront session")

    return parser


def main() -> None:
    # Load .env if present (ignored if values already in env)
    _load_env_key()

    parser = build_parser()
    args = parser.parse_args()

    if args.version:
        print(__version__)
        return

    configure_logging(logging.DEBUG if args.verbose else logging.INFO, log_file=args.log_file)

    if args.command == "frames":
        for path in extract_frames_to_dir(args.video, args.outdir, count=args.count, policy=args.policy):
            print(path)
        return

    if args.command == "generate":
        gateway = None
        if args.api_key:
            gateway = GeminiGateway(args.api_key, text_model=args.text_model, image_model=args.image_model)
        elif args.text_model or args.image_model:
            gateway = GeminiGateway.from_env(text_model=args.text_model, image_model=args.image_model)
        result = run_end_to_end(
            video_path=args.video,
            manifest_path=args.manifest,
            images_dir=args.images_dir,
            frame_index=args.frame,
            frame_count=args.count,
            synthesize_images=not args.no_images,
            gateway=gateway,
        )
        print(json.dumps(result, indent=2, ensure_ascii=False))
        return

    if args.command == "chat":
        chat(location=args.location)
        return

    if args.command == "interactive":
        run()
        return

    parser.print_help()


if __name__ == "__main__":
    main()
