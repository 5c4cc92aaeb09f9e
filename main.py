"""
PLEXUS MAIN - Entry Point and CLI

Commands:
    inspect  - Load a snapshot into a fresh editor and report its health
    convert  - Re-encode a snapshot between JSON and msgpack

Usage:
    # Check a snapshot (exit code 1 if it has invariant errors)
    python main.py inspect graph.json

    # msgpack input
    python main.py inspect graph.msgpack --format msgpack

    # Convert JSON to msgpack
    python main.py convert graph.json graph.msgpack --to msgpack

    # Verbose event trace while importing
    PLEXUS_LOG_LEVEL=DEBUG python main.py inspect graph.json
"""
import asyncio
import sys
from pathlib import Path
from typing import Optional

# Add plexus to path for imports
sys.path.insert(0, str(Path(__file__).parent))

from core.editor import NodeEditor
from core.graph_invariants import validate_editor
from core.serialization import SNAPSHOT_FORMATS, decode_snapshot, encode_snapshot
from infrastructure.config import configure_logging, load_settings
from infrastructure.logger import EventRecorder


def _guess_format(path: Path, explicit: Optional[str], default: str) -> str:
    if explicit:
        return explicit
    if path.suffix in (".msgpack", ".mpk"):
        return "msgpack"
    if path.suffix == ".json":
        return "json"
    return default


def _print_report(report) -> None:
    for key, value in report.metrics.items():
        print(f"  {key}: {value}")

    if report.violations:
        print("\nViolations:")
        for v in report.violations:
            print(f"  [{v.severity.value.upper()}] {v.invariant}: {v.message}")
    else:
        print("\nNo violations.")


async def _inspect(path: Path, format: str, settings) -> int:
    snapshot = decode_snapshot(path.read_bytes(), format)
    print(f"Snapshot: {path}")

    # Duplicate ids cannot be imported, so check the raw snapshot first
    report = validate_editor(snapshot)
    if not report.valid:
        print(f"  nodes:       {len(snapshot.nodes)}")
        print(f"  connections: {len(snapshot.connections)}")
        _print_report(report)
        return 1

    editor = NodeEditor(settings.editor.name)
    recorder = EventRecorder.from_settings(settings).attach(editor)
    try:
        await editor.import_snapshot(snapshot)
        report = validate_editor(editor)

        print(f"  nodes:       {editor.node_count}")
        print(f"  connections: {editor.connection_count}")
        print(f"  events:      {len(recorder)}")
        _print_report(report)
    finally:
        recorder.close()
    return 0 if report.valid else 1


def cmd_inspect(args) -> int:
    """Decode, import and validate a snapshot."""
    settings = load_settings(args.config)
    configure_logging(settings)

    path = Path(args.snapshot)
    format = _guess_format(path, args.format, settings.serialization.format)
    return asyncio.run(_inspect(path, format, settings))


def cmd_convert(args) -> int:
    """Re-encode a snapshot."""
    settings = load_settings(args.config)
    configure_logging(settings)

    src = Path(args.input)
    dst = Path(args.output)
    src_format = _guess_format(src, args.source_format, settings.serialization.format)
    dst_format = _guess_format(dst, args.to, settings.serialization.format)

    snapshot = decode_snapshot(src.read_bytes(), src_format)
    dst.write_bytes(encode_snapshot(snapshot, dst_format))

    print(f"Wrote {len(snapshot.nodes)} nodes, {len(snapshot.connections)} connections to {dst} ({dst_format})")
    return 0


def main(argv=None) -> int:
    """Main entry point with subcommands."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Plexus - Event-governed node editor core",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--config", help="Path to a plexus.toml (default: config/plexus.toml)")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # inspect command
    inspect_parser = subparsers.add_parser("inspect", help="Validate a snapshot file")
    inspect_parser.add_argument("snapshot", help="Path to snapshot file")
    inspect_parser.add_argument("--format", choices=SNAPSHOT_FORMATS, help="Snapshot format")
    inspect_parser.set_defaults(func=cmd_inspect)

    # convert command
    convert_parser = subparsers.add_parser("convert", help="Convert a snapshot file")
    convert_parser.add_argument("input", help="Source snapshot")
    convert_parser.add_argument("output", help="Destination snapshot")
    convert_parser.add_argument("--from", dest="source_format", choices=SNAPSHOT_FORMATS)
    convert_parser.add_argument("--to", choices=SNAPSHOT_FORMATS)
    convert_parser.set_defaults(func=cmd_convert)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 2

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
