"""Command-line entry point: ``media-optimizer serve|analyze|batch``."""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from media_optimizer.config import settings
from media_optimizer.errors import ExtractionError
from media_optimizer.services.batch_service import BatchCoordinator
from media_optimizer.services.metadata_extractor import MetadataExtractor
from media_optimizer.services.recommendation_service import RecommendationEngine
from media_optimizer.services.report_service import ReportService, EXPORT_FILENAMES
from media_optimizer.utils.file_utils import format_file_size, format_duration, format_bitrate
from media_optimizer.utils.media_file import LocalMediaFile

logger = logging.getLogger(__name__)


def _open_files(paths: List[str]) -> List[LocalMediaFile]:
    files = []
    for path in paths:
        try:
            files.append(LocalMediaFile(path))
        except OSError as e:
            raise SystemExit(f"Cannot open {path}: {e.strerror}")
    return files


def _print_report(engine: RecommendationEngine):
    metadata = engine.metadata
    estimate = engine.estimate_output_size()
    print(f"== {metadata.filename}")
    print(f"   Source:   {metadata.source}{'' if metadata.is_real_analysis else ' (estimated)'}")
    print(f"   Size:     {format_file_size(metadata.size)}  Duration: {format_duration(metadata.duration)}"
          f"  Bitrate: {format_bitrate(metadata.total_bitrate)}")
    print(f"   Video:    {metadata.video.codec_name} {metadata.video.resolution}")
    print(f"   Audio:    {metadata.audio.codec_name} {metadata.audio.channels}")
    print(f"   Profile:  {engine.profile.name}")
    for rec in engine.generate_recommendations():
        print(f"   - [{rec.impact}] {rec.category}: {rec.from_value} -> {rec.to} ({rec.reason})")
    print(f"   Estimate: {format_file_size(estimate.optimized)} "
          f"(saves {format_file_size(estimate.saved)}, {estimate.percentage}%)")
    print(f"   Command:  {engine.generate_command()}")
    print()


async def _analyze(args) -> int:
    extractor = MetadataExtractor()
    status = 0
    for file in _open_files(args.files):
        try:
            metadata = await extractor.analyze(file)
        except ExtractionError as e:
            print(f"{file.name}: {e.reason}", file=sys.stderr)
            status = 1
            continue
        engine = RecommendationEngine(metadata, args.profile, is_profile=True)
        if args.json:
            print(engine.to_response().model_dump_json(by_alias=True, indent=2))
        else:
            _print_report(engine)
    return status


async def _batch(args) -> int:
    coordinator = BatchCoordinator(args.profile, is_profile=True)
    await coordinator.add_files(_open_files(args.files))
    content, default_name, _ = ReportService(coordinator).export(args.format)

    if args.output:
        mode = "wb" if isinstance(content, bytes) else "w"
        with open(args.output, mode) as f:
            f.write(content)
        stats = coordinator.aggregate_stats()
        print(f"Wrote {args.output} ({stats.count} file(s), {stats.failed_count} failed, "
              f"estimated savings {format_file_size(stats.total_saved)})")
    elif isinstance(content, bytes):
        print(f"The {args.format} export is binary; pass --output (e.g. {default_name})", file=sys.stderr)
        return 2
    else:
        sys.stdout.write(content)

    return 1 if coordinator.failed_entries else 0


def _serve(args) -> int:
    import uvicorn

    uvicorn.run(
        "media_optimizer.main:app",
        host=args.host,
        port=args.port,
        log_level=settings.LOG_LEVEL.lower(),
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="media-optimizer", description="Media file encoding optimizer")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default=settings.API_HOST)
    serve.add_argument("--port", type=int, default=settings.API_PORT)

    analyze = sub.add_parser("analyze", help="Analyze files and print recommendations")
    analyze.add_argument("files", nargs="+", metavar="FILE")
    analyze.add_argument("--profile", default=settings.DEFAULT_PROFILE)
    analyze.add_argument("--json", action="store_true", help="Print the full response as JSON")

    batch = sub.add_parser("batch", help="Analyze files and write a batch export")
    batch.add_argument("files", nargs="+", metavar="FILE")
    batch.add_argument("--profile", default=settings.DEFAULT_PROFILE)
    batch.add_argument("--format", choices=sorted(EXPORT_FILENAMES), default="bash")
    batch.add_argument("--output", "-o", default=None)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    level = logging.DEBUG if args.verbose else getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(level=level, stream=sys.stderr,
                        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s")

    if args.command == "serve":
        return _serve(args)
    if args.command == "analyze":
        return asyncio.run(_analyze(args))
    return asyncio.run(_batch(args))


if __name__ == "__main__":
    sys.exit(main())
