"""
Thread Mention Tally - Main Entry Point

Counts how many replies in a thread name the same title, using reaction
detection, candidate extraction, cached validation and reply-chain
inheritance.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from authorities import get_validation_authority
from config import Config
from corpus import Corpus
from error_handling import ConfigurationError, CorpusError
from monitoring import setup_logging
from pipeline import PipelineOrchestrator, PipelineResult, run_with_retries
from prompt_detector import PromptDetector, detect_media_type
from validation_cache import ValidationCache
from validation_ledger import open_ledger

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_USAGE = 2


class TallyEngine:
    """Wires corpus, authority, ledger and pipeline together for one run."""

    def __init__(
        self,
        ledger_path: Optional[str] = None,
        ledger_format: Optional[str] = None,
        authority: Optional[str] = None,
        api_url: Optional[str] = None,
        media_type: Optional[str] = None,
        list_file: Optional[str] = None,
        concurrency: Optional[int] = None,
    ):
        self.ledger = open_ledger(ledger_path, ledger_format)
        self.authority_name = authority
        self.api_url = api_url
        self.media_type = media_type
        self.list_file = list_file
        self.concurrency = concurrency or Config.VALIDATION_CONCURRENCY

    def _media_type_for(self, corpus: Corpus) -> str:
        if self.media_type or Config.VALIDATION_MEDIA_TYPE:
            return (self.media_type or Config.VALIDATION_MEDIA_TYPE).upper()
        detector = PromptDetector()
        detected = detect_media_type(corpus.root.text)
        logger.info(
            "Detected media type %s (%s confidence) from the root prompt",
            detected.value,
            detector.get_confidence(corpus.root.text, detected),
        )
        return detected.value

    def analyze(self, fixture: str | Path) -> PipelineResult:
        """Load a thread fixture and tally it."""
        corpus = Corpus.load(fixture)
        authority = get_validation_authority(
            self.authority_name,
            api_url=self.api_url,
            media_type=self._media_type_for(corpus),
            list_file=self.list_file,
        )
        cache = ValidationCache(authority, self.ledger)
        cache.load()

        orchestrator = PipelineOrchestrator(cache, max_workers=self.concurrency)
        result = run_with_retries(orchestrator, corpus)
        cache.save()
        return result


def print_result(result: PipelineResult, top: Optional[int] = None) -> None:
    """Human-readable ranking plus diagnostics."""
    counts = result.aggregate.top(top)
    print("\n=== Mention Tally ===")
    if not counts:
        print("  (no titles found)")
    for rank, mc in enumerate(counts, start=1):
        print(f"  {rank:>3}. {mc.mention} ({mc.count})")
    print(f"\n  Uncategorized posts: {len(result.uncategorized)}")

    d = result.diagnostics
    print("\n=== Diagnostics ===")
    print(f"  Posts: {d.posts_total} ({d.reactions} reactions, {d.content_posts} content)")
    print(f"  Candidates: {d.candidates_total} ({d.unique_candidates} unique)")
    print(
        f"  Cache hits: {d.cache_hits}  Fresh validations: {d.fresh_validations}"
        f"  Failures: {d.failures}"
    )
    print(
        f"  Inherited: {d.inherited}  No parent title: {d.no_parent_title}"
        f"  (orphans: {d.orphan_parents}, cycle guards: {d.cycle_guards})"
    )
    if d.dropped_corrupt:
        print(f"  ⚠️ Dropped corrupt ledger entries: {d.dropped_corrupt}")
    print(f"  Duration: {d.timings.total_ms:.0f}ms")


def cmd_analyze(args: argparse.Namespace) -> int:
    engine = TallyEngine(
        ledger_path=args.ledger,
        ledger_format=args.ledger_format,
        authority=args.authority,
        api_url=args.api_url,
        media_type=args.media_type,
        list_file=args.list_file,
        concurrency=args.concurrency,
    )
    result = engine.analyze(args.fixture)
    for title in args.exclude or []:
        result.aggregate.exclude(title)

    if args.json:
        payload = result.to_dict()
        payload["label_of"] = result.aggregate.label_of()
        payload["mention_counts"] = [mc.to_dict() for mc in result.aggregate.top(args.top)]
        print(json.dumps(payload, indent=2, ensure_ascii=False))
    else:
        print_result(result, args.top)
    return EXIT_OK


def cmd_ledger(args: argparse.Namespace) -> int:
    ledger = open_ledger(args.ledger, args.ledger_format)
    if args.action == "stats":
        stats = ledger.stats()
        if args.json:
            print(json.dumps(stats, indent=2))
            return EXIT_OK
        print(f"=== Validation Ledger ({ledger!r}) ===")
        print(f"  Entries: {stats['total']}")
        print(f"  Validated: {stats['validated']}  Rejected: {stats['rejected']}")
        print(f"  Dropped (corrupt): {stats['dropped_corrupt']}")
        for level, count in sorted(stats["by_confidence"].items()):
            print(f"  Confidence {level}: {count}")
        for source, count in sorted(stats["by_source"].items()):
            print(f"  Source {source}: {count}")
        return EXIT_OK

    entries = sorted(ledger.load_all().values(), key=lambda e: e.key)
    if args.json:
        print(json.dumps([e.to_dict() for e in entries], indent=2, ensure_ascii=False))
        return EXIT_OK
    for entry in entries:
        verdict = entry.canonical_title if entry.validated else "✗ rejected"
        print(f"  {entry.key!r:40} -> {verdict} [{entry.confidence.label}]")
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="thread-tally",
        description="Thread Mention Tally - count titles named in a reply thread",
    )
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    parser.add_argument(
        "--log-json", action="store_true", help="Structured JSON logs on stderr"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    ledger_opts = argparse.ArgumentParser(add_help=False)
    ledger_opts.add_argument("--ledger", default=None, help="Ledger path")
    ledger_opts.add_argument(
        "--ledger-format", choices=("sqlite", "json"), default=None
    )

    analyze = subparsers.add_parser(
        "analyze", parents=[ledger_opts], help="Tally a thread fixture"
    )
    analyze.add_argument("fixture", help="Thread fixture JSON file")
    analyze.add_argument(
        "--authority", choices=("http", "list", "static", "self"), default=None
    )
    analyze.add_argument("--api-url", default=None, help="Validation endpoint URL")
    analyze.add_argument(
        "--media-type",
        default=None,
        help="MOVIE, TV_SHOW, MUSIC, BOOK or VIDEO_GAME (default: detect)",
    )
    analyze.add_argument("--list-file", default=None, help="Answer list or title map")
    analyze.add_argument(
        "--concurrency", type=int, default=None, help="Parallel validation calls"
    )
    analyze.add_argument(
        "--exclude", nargs="+", metavar="TITLE", help="Titles to leave out"
    )
    analyze.add_argument("--top", type=int, default=None, help="Show only the top N")
    analyze.add_argument("--json", action="store_true", help="Print JSON")
    analyze.set_defaults(func=cmd_analyze)

    ledger = subparsers.add_parser(
        "ledger", parents=[ledger_opts], help="Inspect the validation ledger"
    )
    ledger.add_argument("action", choices=("stats", "show"))
    ledger.add_argument("--json", action="store_true", help="Print JSON")
    ledger.set_defaults(func=cmd_ledger)

    config = subparsers.add_parser("config", help="Show configuration and exit")
    config.set_defaults(func=lambda _args: Config.print_config() or EXIT_OK)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(
        log_level=args.log_level or Config.LOG_LEVEL,
        json_format=args.log_json or Config.LOG_JSON,
        log_file=Path(Config.LOG_FILE) if Config.LOG_FILE else None,
    )

    if getattr(args, "concurrency", None) is not None and args.concurrency < 1:
        parser.error("--concurrency must be at least 1")

    try:
        return args.func(args)
    except (CorpusError, ConfigurationError) as e:
        logger.error("❌ %s", e)
        return EXIT_FATAL


if __name__ == "__main__":
    sys.exit(main())
