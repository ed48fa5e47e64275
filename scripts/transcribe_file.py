from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

from scribeflow.config import Settings
from scribeflow.models.events import ErrorEvent, FinalResult, ProgressEvent
from scribeflow.repositories import DatabasePool, TranscriptRepository
from scribeflow.services.transcription import TranscriptionService
from scribeflow.utils.logging_setup import setup_logging


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Transcribe a local audio file with ScribeFlow.")
    parser.add_argument("--media", required=True, help="Path to local audio/video file")
    parser.add_argument("--provider", default=None, help="ASR provider id (openai, lemonfox, glm_asr)")
    parser.add_argument("--model", default=None, help="Override the provider's model")
    parser.add_argument("--chunk-duration-s", type=float, default=None, help="Segment length in seconds")
    parser.add_argument("--prompt", default=None, help="Initial context prompt for the first segment")
    parser.add_argument("--output", default=None, help="Write the transcript to this file")
    parser.add_argument("--save", action="store_true", help="Persist the transcript to PostgreSQL")
    parser.add_argument("--json", action="store_true", help="Print events as JSON lines")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args()


async def _run() -> int:
    args = _parse_args()
    media_path = Path(args.media)
    if not media_path.exists():
        raise SystemExit(f"Media not found: {media_path}")

    settings = Settings()
    setup_logging(settings, level="DEBUG" if args.verbose else None)

    overrides: dict[str, Any] = {}
    if args.chunk_duration_s is not None:
        overrides["chunk_duration_s"] = float(args.chunk_duration_s)
    if args.prompt:
        overrides["initial_prompt"] = str(args.prompt)

    records = None
    if args.save:
        pool = await DatabasePool.get_pool(settings)
        records = TranscriptRepository(pool)
        await records.ensure_schema()

    service = TranscriptionService(settings, records=records)
    exit_code = 1
    try:
        async for event in service.submit_file(media_path, args.provider, overrides, model=args.model):
            if args.json:
                print(json.dumps(event.to_dict(), ensure_ascii=False), flush=True)
            elif isinstance(event, ProgressEvent):
                print(f"[{event.percent:3d}%] {event.message}", file=sys.stderr, flush=True)
            elif isinstance(event, ErrorEvent):
                print(f"error code={event.code}: {event.message}", file=sys.stderr)

            if isinstance(event, FinalResult):
                exit_code = 0
                if args.output:
                    Path(args.output).write_text(event.transcript_text, encoding="utf-8")
                elif not args.json:
                    print(event.transcript_text)
                if event.failed_segments:
                    print(
                        f"warning: {event.failed_segments} of {len(event.segments or [])} segments failed",
                        file=sys.stderr,
                    )
    finally:
        if args.save:
            await DatabasePool.close()
    return exit_code


def main() -> None:
    raise SystemExit(asyncio.run(_run()))


if __name__ == "__main__":
    main()
