"""
LexiClear - Command Line Entry Point

Ingests legal documents into bundles, answers questions grounded in a bundle,
simplifies a bundle, verifies answers and prints stored bundles for audit.
Results are printed as JSON.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, List, Optional

from lexiclear.core.exceptions import CapabilityUnavailableError, InputError
from lexiclear.core.settings import SettingsError, load_settings
from lexiclear.ingestion.pipeline import IngestionPipeline
from lexiclear.observability.logger import get_logger
from lexiclear.storage.bundle_store import BundleStore
from lexiclear.verification.verifier import Verifier

DEFAULT_SETTINGS_PATH = Path("config/settings.yaml")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="lexiclear", description=__doc__.strip().splitlines()[0])
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_SETTINGS_PATH,
        help="Path to settings.yaml (default: config/settings.yaml)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    ingest = subparsers.add_parser("ingest", help="Segment a text file into a new bundle")
    ingest.add_argument("file", type=Path)
    ingest.add_argument("--title", default=None)
    ingest.add_argument("--uploader", default=None)

    ask = subparsers.add_parser("ask", help="Answer a question from a bundle")
    ask.add_argument("bundle_id")
    ask.add_argument("question")
    ask.add_argument("--top-k", type=int, default=None)

    simplify = subparsers.add_parser("simplify", help="Summarize a bundle in plain language")
    simplify.add_argument("bundle_id")
    simplify.add_argument("--reading-level", default="lay", choices=["lay", "business", "lawyer"])

    verify = subparsers.add_parser("verify", help="Verify an answer file against a bundle")
    verify.add_argument("bundle_id")
    verify.add_argument("answer_file", type=Path)
    verify.add_argument("--retrieved", nargs="*", default=None, metavar="CHUNK_ID")

    show = subparsers.add_parser("show", help="Print a stored bundle for audit")
    show.add_argument("bundle_id")
    show.add_argument(
        "--strip-embeddings", action="store_true", help="Omit embedding vectors from the output"
    )

    subparsers.add_parser("list", help="List stored bundles, newest first")
    return parser


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def run(args: argparse.Namespace, settings: Any) -> Any:
    store = BundleStore(settings=settings)

    if args.command == "ingest":
        text = args.file.read_text(encoding="utf-8")
        bundle = IngestionPipeline(settings).create_bundle(
            text, title=args.title or args.file.name, uploader_id=args.uploader
        )
        path = store.save(bundle)
        return {
            "bundle_id": bundle.bundle_id,
            "num_segments": len(bundle.segments),
            "path": str(path),
        }

    if args.command == "list":
        return store.list_bundles()

    bundle = store.load(args.bundle_id)

    if args.command == "show":
        payload = bundle.to_dict()
        if args.strip_embeddings:
            for segment in payload["segments"]:
                segment["embedding"] = None
        return payload

    if args.command == "verify":
        answer = args.answer_file.read_text(encoding="utf-8")
        return Verifier(settings).verify(bundle, answer, args.retrieved).to_dict()

    from lexiclear.services.grounded_qa import GroundedQAService

    service = GroundedQAService.from_settings(settings)
    if args.command == "ask":
        result = service.ask(bundle, args.question, args.top_k)
    else:
        result = service.simplify(bundle, args.reading_level)
    # Persist embeddings computed during retrieval
    store.save(bundle)
    return result.to_dict()


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the LexiClear command line.

    Returns:
        int: Exit code (0 for success, non-zero for failure)
    """
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(args.config)
    except SettingsError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1

    logger = get_logger(log_level=settings.observability.log_level)

    try:
        payload = run(args, settings)
    except (InputError, FileNotFoundError, ValueError) as exc:
        logger.error("%s", exc)
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    except CapabilityUnavailableError as exc:
        logger.error("External capability unavailable: %s", exc)
        print(f"Service unavailable: {exc}", file=sys.stderr)
        return 3

    _print_json(payload)
    return 0


if __name__ == "__main__":
    sys.exit(main())
