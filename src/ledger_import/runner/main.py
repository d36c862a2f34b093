"""
CLI main entry point.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from ..config import Config, create_default_config, load_config
from ..ledger_client import LedgerClient, LedgerError
from ..schemas.transactions import CandidateTransaction
from ..services.import_pipeline import (
    ImportPipeline,
    ZeroAmountError,
    build_stage_rows,
    select_candidates,
)
from ..services.progress import (
    CompositeProgressObserver,
    LoggingProgressObserver,
    QueueProgressObserver,
)
from ..services.reconciliation import ReconciliationService
from ..suggestion import Provenance

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def create_cli() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="ledger-import",
        description="Reconcile parsed transactions against the ledger and import them",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=Path("config.yaml"),
        help="Path to config file (default: config.yaml)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # init-config command
    init_parser = subparsers.add_parser("init-config", help="Write a default config file")
    init_parser.add_argument(
        "path",
        type=Path,
        nargs="?",
        help="Where to write the config (default: the --config path)",
    )

    # check command
    subparsers.add_parser("check", help="Validate config and test the ledger connection")

    # review command
    review_parser = subparsers.add_parser(
        "review", help="Flag duplicates and suggest accounts for candidates"
    )
    review_parser.add_argument("file", type=Path, help="Candidates JSON file")
    review_parser.add_argument(
        "--provenance",
        choices=[p.value for p in Provenance],
        default=Provenance.DOCUMENT.value,
        help="Where the candidates came from (default: document)",
    )
    review_parser.add_argument(
        "--output",
        type=Path,
        help="Write the reviewed candidates to this file instead of stdout",
    )

    # import command
    import_parser = subparsers.add_parser(
        "import", help="Stage, map and post selected candidates to the ledger"
    )
    import_parser.add_argument("file", type=Path, help="Reviewed candidates JSON file")
    import_parser.add_argument(
        "--force-cash",
        action="store_true",
        help="Use the cash account as counter-account instead of the bank account",
    )
    import_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be staged without contacting the ledger",
    )
    import_parser.add_argument(
        "--events",
        action="store_true",
        help="Print the stage transitions of the run after the results",
    )

    return parser


def load_candidates(path: Path) -> list[CandidateTransaction]:
    """
    Load candidate transactions from a JSON file.

    Accepts a list of records or an object with a "candidates" list.

    Raises:
        ValueError: If the file does not hold candidate records.
    """
    with open(path) as f:
        data = json.load(f)

    if isinstance(data, dict):
        data = data.get("candidates")
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a list of candidate transactions")

    candidates = []
    for index, record in enumerate(data):
        try:
            candidates.append(CandidateTransaction.from_dict(record))
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"{path}: candidate #{index + 1} is invalid: {e}") from e
    return candidates


def _client(config: Config) -> LedgerClient:
    return LedgerClient.from_config(config.ledger)


def cmd_init_config(path: Path) -> int:
    """Write a default config file."""
    if path.exists():
        print(f"❌ Config file already exists: {path}")
        return 1
    create_default_config(path)
    print(f"✓ Wrote default config to {path}")
    return 0


def cmd_check(config: Config) -> int:
    """Validate config and test connectivity."""
    errors = config.validate()
    if errors:
        print("❌ Invalid configuration:")
        for error in errors:
            print(f"   - {error}")
        return 1
    print("✓ Configuration valid")

    print(f"  → Connecting to ledger: {config.ledger.base_url}")
    if not _client(config).test_connection():
        print("❌ Failed to connect to the ledger")
        print("   Check LEDGER_URL and LEDGER_TOKEN")
        return 1
    print("  ✓ Ledger connection OK")
    return 0


def cmd_review(
    config: Config,
    file: Path,
    provenance: str,
    output: Path | None = None,
) -> int:
    """Flag duplicates and suggest accounts."""
    try:
        candidates = load_candidates(file)
    except (OSError, ValueError) as e:
        print(f"❌ Failed to read candidates: {e}")
        return 1

    print(f"🔍 Reviewing {len(candidates)} candidate(s) from {file}...", file=sys.stderr)

    service = ReconciliationService(_client(config), config)
    try:
        prepared = service.prepare(candidates, Provenance(provenance))
    except LedgerError as e:
        print(f"❌ Failed to load ledger data: {e}", file=sys.stderr)
        return 1

    for warning in prepared.warnings:
        print(f"⚠️  {warning}", file=sys.stderr)

    payload = json.dumps(prepared.to_dict(), indent=2)
    if output:
        output.write_text(payload + "\n")
        print(f"✓ Wrote reviewed candidates to {output}", file=sys.stderr)
    else:
        print(payload)

    print(
        f"✓ {len(prepared.candidates)} candidate(s), "
        f"{prepared.duplicate_count} possible duplicate(s)",
        file=sys.stderr,
    )
    return 0


def cmd_import(
    config: Config,
    file: Path,
    force_cash: bool,
    dry_run: bool,
    show_events: bool = False,
) -> int:
    """Import selected candidates into the ledger."""
    try:
        candidates = load_candidates(file)
    except (OSError, ValueError) as e:
        print(f"❌ Failed to read candidates: {e}")
        return 1

    selected = select_candidates(candidates)
    print(f"📤 {len(selected)} of {len(candidates)} candidate(s) selected for import")

    zero_rows = [c for c in selected if c.amount == 0]
    if zero_rows:
        print(f"❌ {ZeroAmountError(zero_rows)}")
        for candidate in zero_rows[:5]:
            print(f"   - {candidate.date} {candidate.description}")
        if len(zero_rows) > 5:
            print(f"   ...and {len(zero_rows) - 5} more")
        return 1

    if dry_run:
        print("  ℹ️  DRY RUN mode - nothing will be sent to the ledger")
        for row in build_stage_rows(selected):
            print(f"  • {row['sourceUid']}  {row['description']}")
        return 0

    client = _client(config)
    try:
        accounts = client.list_accounts()
    except LedgerError as e:
        print(f"❌ Failed to load accounts: {e}")
        return 1

    events = QueueProgressObserver(maxsize=config.imports.progress_queue_size)
    pipeline = ImportPipeline(
        client,
        accounts,
        observer=CompositeProgressObserver([LoggingProgressObserver(), events]),
        force_cash=force_cash or config.imports.force_cash,
        source_label=config.ledger.source_label,
    )
    result = pipeline.run(candidates)
    if result is None:
        print("⚠️  An import is already running")
        return 1

    print()
    print("📊 Import Results")
    print("=" * 40)
    print(f"  Status:              {result.state.value}")
    print(f"  Batch:               {result.batch_id if result.batch_id is not None else '-'}")
    print(f"  Inserted:            {result.inserted}")
    print(f"  Duplicates skipped:  {result.duplicates}")
    print(f"  Mappings applied:    {result.patched}")
    print(f"  Posted:              {result.posted}")
    print(f"  Skipped:             {result.skipped}")
    print(f"  Duration:            {result.duration_ms}ms")
    print()

    if result.row_errors:
        print(f"⚠️  {len(result.row_errors)} row(s) reported errors in preview:")
        for row in result.row_errors:
            print(f"   - row {row.row_id} ({row.source_uid}): {row.error}")
        print()

    if show_events:
        print("⏱  Stage transitions:")
        for event in events.drain():
            print(f"   {event.timestamp:%H:%M:%S}  {event.stage.value:<8} {event.status.value}")
        if events.dropped:
            print(f"   ...{events.dropped} transition(s) dropped")
        print()

    if result.success:
        print("✓ Import completed successfully")
        return 0

    print(f"❌ Import failed at {result.failed_stage.value if result.failed_stage else '?'} stage")
    print(f"   {result.error_message}")
    return 1


def main(args: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_cli()
    parsed = parser.parse_args(args)

    setup_logging(parsed.verbose)

    if not parsed.command:
        parser.print_help()
        return 1

    if parsed.command == "init-config":
        return cmd_init_config(parsed.path or parsed.config)

    # Load config
    try:
        config = load_config(parsed.config)
    except Exception as e:
        print(f"❌ Failed to load config: {e}")
        return 1

    # Route to command
    if parsed.command == "check":
        return cmd_check(config)
    elif parsed.command == "review":
        return cmd_review(config, parsed.file, parsed.provenance, parsed.output)
    elif parsed.command == "import":
        return cmd_import(
            config, parsed.file, parsed.force_cash, parsed.dry_run, parsed.events
        )
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
