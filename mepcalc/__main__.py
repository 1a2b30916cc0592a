"""
MEP Calculation Engine - CLI Entry Point

Commands:
    types     - List calculation types
    preview   - Run a calculation without saving it
    create    - Run and save a calculation
    list      - List saved calculations of a project
    get       - Show a saved calculation
    update    - Update a saved calculation (recomputes on new inputs)
    delete    - Delete a saved calculation
    export    - Export a calculation to Excel, or a project list to CSV
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from . import __version__
from .calculators import default_registry
from .config import load_settings
from .engine.tables import default_store
from .errors import MepCalcError, ValidationError

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )


def load_json_arg(value: str) -> Any:
    """Parse inline JSON, or read it from a file when value names one."""
    try:
        if value.lstrip().startswith(("{", "[")):
            return json.loads(value)
        with open(Path(value), encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        raise ValidationError(f"Input file not found: {value}", ["input"]) from None
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid JSON input: {e}", ["input"]) from None


def print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, default=str))


def build_manager(args):
    """Record manager over the configured database."""
    from .records import CalculationRecordManager, init_db, make_engine, make_session_factory

    settings = load_settings(args.config)
    if args.db:
        settings = settings.model_copy(update={"database_url": args.db})

    engine = make_engine(settings)
    init_db(engine)
    registry = default_registry(default_store(settings.rules_dir))
    return CalculationRecordManager(make_session_factory(engine), registry,
                                    default_actor=settings.default_actor)


def cmd_types(args):
    """List calculation types."""
    settings = load_settings(args.config)
    registry = default_registry(default_store(settings.rules_dir))
    for name in registry.types:
        print(name)
    return 0


def cmd_preview(args):
    """Run a calculation without saving it."""
    settings = load_settings(args.config)
    registry = default_registry(default_store(settings.rules_dir))
    results, summary = registry.run(args.type, load_json_arg(args.input))
    print_json(summary if args.summary else {"results": results, "summary": summary})
    return 0


def cmd_create(args):
    """Run and save a calculation."""
    manager = build_manager(args)
    record = manager.create({
        "project_id": args.project,
        "calculation_type": args.type,
        "calculation_name": args.name,
        "input_parameters": load_json_arg(args.input),
        "building_id": args.building,
        "remarks": args.remarks,
        "created_by": args.by,
        "calculated_by": args.by,
    })
    print(f"Created calculation {record['id']} (version {record['version']})")
    print_json(record["summary"])
    return 0


def cmd_list(args):
    """List saved calculations of a project."""
    manager = build_manager(args)
    records = manager.list(args.project, args.type)

    print(f"{'ID':<6} {'Type':<20} {'Name':<30} {'Status':<14} {'Ver':<4}")
    print("-" * 78)
    for r in records:
        print(f"{r['id']:<6} {r['calculation_type']:<20} {r['calculation_name'][:28]:<30} "
              f"{r['status']:<14} {r['version']:<4}")
    print(f"\n{len(records)} calculation(s)")
    return 0


def cmd_get(args):
    """Show a saved calculation."""
    manager = build_manager(args)
    print_json(manager.get(args.id))
    return 0


def cmd_update(args):
    """Update a saved calculation."""
    manager = build_manager(args)

    payload: Dict[str, Any] = load_json_arg(args.payload) if args.payload else {}
    if args.name:
        payload["calculation_name"] = args.name
    if args.input:
        payload["input_parameters"] = load_json_arg(args.input)
    if args.status:
        payload["status"] = args.status
    if args.remarks is not None:
        payload["remarks"] = args.remarks
    if args.expected_version is not None:
        payload["expected_version"] = args.expected_version
    if args.by:
        payload["updated_by"] = args.by

    record = manager.update(args.id, payload)
    print(f"Updated calculation {record['id']} (version {record['version']})")
    print_json(record["summary"])
    return 0


def cmd_delete(args):
    """Delete a saved calculation."""
    manager = build_manager(args)
    manager.delete(args.id)
    print(f"Deleted calculation {args.id}")
    return 0


def cmd_export(args):
    """Export one calculation to Excel, or a project's calculations to CSV."""
    from .export import export_record_workbook, export_records_csv

    manager = build_manager(args)
    if args.id is not None:
        path = export_record_workbook(manager.get(args.id), Path(args.output))
    elif args.project is not None:
        path = export_records_csv(manager.list(args.project, args.type), Path(args.output))
    else:
        raise ValidationError("export needs --id or --project", ["id", "project"])
    print(f"Exported to: {path}")
    return 0


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="MEP Calculation Engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Preview a cable sizing run
  python -m mepcalc preview --type cable_selection --input '{"loadKW": 10}'

  # Save a calculation from a JSON file
  python -m mepcalc create --project 1 --type fire_pump --name "Tower A" --input inputs.json

  # Recompute with new inputs
  python -m mepcalc update 3 --input inputs.json --expected-version 1
        """
    )

    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable verbose logging')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('--config', type=Path, default=None,
                        help='Settings file (default: mepcalc.yaml or $MEPCALC_CONFIG)')
    parser.add_argument('--db', default=None,
                        help='Database URL (overrides settings)')

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    types_parser = subparsers.add_parser('types', help='List calculation types')
    types_parser.set_defaults(func=cmd_types)

    preview_parser = subparsers.add_parser('preview', help='Run without saving')
    preview_parser.add_argument('--type', '-t', required=True, help='Calculation type')
    preview_parser.add_argument('--input', '-i', default='{}',
                                help='Input parameters: JSON file or inline JSON')
    preview_parser.add_argument('--summary', action='store_true',
                                help='Print the summary only')
    preview_parser.set_defaults(func=cmd_preview)

    create_parser = subparsers.add_parser('create', help='Run and save')
    create_parser.add_argument('--project', '-p', type=int, required=True, help='Project ID')
    create_parser.add_argument('--type', '-t', required=True, help='Calculation type')
    create_parser.add_argument('--name', '-n', required=True, help='Calculation name')
    create_parser.add_argument('--input', '-i', required=True,
                               help='Input parameters: JSON file or inline JSON')
    create_parser.add_argument('--building', type=int, help='Building ID')
    create_parser.add_argument('--remarks', help='Remarks')
    create_parser.add_argument('--by', help='Actor ID')
    create_parser.set_defaults(func=cmd_create)

    list_parser = subparsers.add_parser('list', help='List saved calculations')
    list_parser.add_argument('--project', '-p', type=int, required=True, help='Project ID')
    list_parser.add_argument('--type', '-t', help='Filter by calculation type')
    list_parser.set_defaults(func=cmd_list)

    get_parser = subparsers.add_parser('get', help='Show a saved calculation')
    get_parser.add_argument('id', type=int, help='Calculation ID')
    get_parser.set_defaults(func=cmd_get)

    update_parser = subparsers.add_parser('update', help='Update a saved calculation')
    update_parser.add_argument('id', type=int, help='Calculation ID')
    update_parser.add_argument('--payload', help='Update document: JSON file or inline JSON')
    update_parser.add_argument('--name', '-n', help='New calculation name')
    update_parser.add_argument('--input', '-i', help='New input parameters (recomputes)')
    update_parser.add_argument('--status', choices=['Draft', 'Under Review', 'Approved'],
                               help='Review status')
    update_parser.add_argument('--remarks', help='Remarks')
    update_parser.add_argument('--expected-version', type=int,
                               help='Fail if the stored version differs')
    update_parser.add_argument('--by', help='Actor ID')
    update_parser.set_defaults(func=cmd_update)

    delete_parser = subparsers.add_parser('delete', help='Delete a saved calculation')
    delete_parser.add_argument('id', type=int, help='Calculation ID')
    delete_parser.set_defaults(func=cmd_delete)

    export_parser = subparsers.add_parser('export', help='Export to Excel or CSV')
    export_parser.add_argument('--id', type=int, help='Calculation ID (Excel workbook)')
    export_parser.add_argument('--project', '-p', type=int, help='Project ID (CSV list)')
    export_parser.add_argument('--type', '-t', help='Filter by calculation type (CSV list)')
    export_parser.add_argument('--output', '-o', required=True, help='Output file')
    export_parser.set_defaults(func=cmd_export)

    args = parser.parse_args(argv)

    setup_logging(args.verbose)

    if not args.command:
        parser.print_help()
        return 0

    try:
        return args.func(args)
    except ValidationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except MepCalcError as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
