#!/usr/bin/env python3
"""Render a storyboard for a script file with the configured provider."""

import argparse
import asyncio
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from api.config import get_settings
from core.models import RunStatus
from llm.factory import get_image_provider
from services.storyboard import StoryboardService

_EXTENSIONS = {"image/png": ".png", "image/jpeg": ".jpg", "image/webp": ".webp"}


def parse_args() -> argparse.Namespace:
    settings = get_settings()
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "script",
        nargs="?",
        default=settings.sample_script_path,
        help="Screenplay file (default: bundled sample)",
    )
    parser.add_argument(
        "-o", "--output", default="storyboard_out", help="Directory for generated frames"
    )
    parser.add_argument(
        "--check", action="store_true", help="Only run the provider health check"
    )
    return parser.parse_args()


async def main() -> None:
    """Generate frames for every scene and write them to the output directory."""
    args = parse_args()
    settings = get_settings()

    print(f"🔧 Provider: {settings.llm_provider}")
    print("=" * 60)

    provider = get_image_provider(settings)

    if args.check:
        if await provider.health_check():
            print("✅ Provider is healthy")
        else:
            print("❌ Provider health check failed")
            sys.exit(1)
        return

    script = Path(args.script).read_text(encoding="utf-8")
    output_dir = Path(args.output)
    output_dir.mkdir(parents=True, exist_ok=True)

    service = StoryboardService(provider)
    written = 0
    final = None

    async for run in service.iter_run(script):
        final = run
        if run.progress:
            print(f"⏳ {run.progress}")
        # Write frames as soon as they appear in a snapshot
        for index, item in enumerate(run.items[written:], start=written + 1):
            ext = _EXTENSIONS.get(item.mime_type, ".img")
            path = output_dir / f"scene_{index:02d}{ext}"
            path.write_bytes(item.image)
            print(f"🖼  {item.label} -> {path}")
        written = len(run.items)

    if final is None or final.status != RunStatus.DONE:
        print(f"\n❌ {final.error if final else 'No result'}")
        sys.exit(1)

    print(f"\n✅ {written} frames written to {output_dir}")


if __name__ == "__main__":
    asyncio.run(main())
