#!/usr/bin/env python3
"""
Render the "daily limit reached" audio asset.

Synthesizes LIMIT_MESSAGE once through the TTS provider and writes the raw
PCM to LIMIT_AUDIO_PATH, so rate-limited requests never call the provider.

Usage:
    cd backend
    python scripts/render_limit_audio.py
    python scripts/render_limit_audio.py --output assets/limit_reached.pcm
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from swift_assistant.config.settings import settings
from swift_assistant.infrastructure.ai.speech_synthesis_service import SpeechSynthesisService
from swift_assistant.infrastructure.exceptions import DownstreamUnavailable

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def render(output: Path, message: str) -> int:
    """Synthesize ``message`` into ``output``. Returns the byte count."""
    synthesizer = SpeechSynthesisService()
    audio = await synthesizer.synthesize(message)

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(audio)
    return len(audio)


def main():
    parser = argparse.ArgumentParser(description="Render the limit-reached audio asset")
    parser.add_argument(
        "--output",
        type=Path,
        default=Path(settings.limit_audio_path or "assets/limit_reached.pcm"),
        help="Where to write the raw PCM audio",
    )
    parser.add_argument(
        "--message",
        default=settings.limit_message,
        help="Text to synthesize",
    )
    args = parser.parse_args()

    if not settings.cartesia_api_key:
        logger.error("CARTESIA_API_KEY is not set")
        sys.exit(1)

    try:
        size = asyncio.run(render(args.output, args.message))
    except DownstreamUnavailable as e:
        logger.error(f"Synthesis failed: {e.message} ({e.status_code}) {e.body}")
        sys.exit(1)

    logger.info(f"Wrote {size} bytes to {args.output}")


if __name__ == "__main__":
    main()
