"""
Command-line interface for the Points Conversion Engine.
Query commands (convert, routes, reachable, sources, transfers) and
data-management commands (programs, list, search, stats, validate, repair).
"""

import argparse
import json
import logging
import math
import sys
from pathlib import Path

from points_engine.catalog import Catalog
from points_engine.integrity import auto_repair, generate_report
from points_engine.models import ProgramType
from points_engine.planner import (
    STATUS_DIRECT,
    STATUS_MULTI_STEP_ONLY,
    plan_conversion,
)
from points_engine.routing import (
    effective_rate,
    find_direct_conversion,
    find_multi_step_conversions,
    get_reachable_programs,
    get_source_programs,
    get_transfers_from,
    get_transfers_to,
)
from points_engine.source import CatalogLoadError, SourceConfig, fetch_catalog, load_catalog_file


def load_catalog(args) -> Catalog:
    """
    Load the catalog from --url (with --data as fallback) or from --data.

    Exits with status 1 if nothing could be loaded.
    """
    try:
        if args.url:
            return fetch_catalog(args.url, fallback_path=args.data)
        return load_catalog_file(args.data)
    except CatalogLoadError as exc:
        print(f"Error: {exc}")
        sys.exit(1)


def load_document(path: Path) -> dict:
    """Read the raw conversions document for validation and repair."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            document = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        print(f"Error: Could not read {path}: {exc}")
        sys.exit(1)
    if not isinstance(document, dict):
        print(f"Error: {path} does not contain a JSON object")
        sys.exit(1)
    return document


def program_name(catalog: Catalog, program_id: str) -> str:
    program = catalog.get_program(program_id)
    return program.name if program else program_id


def require_program(catalog: Catalog, program_id: str, label: str):
    if not catalog.has_program(program_id):
        known = ", ".join(sorted(catalog.programs))
        print(f"Error: Unknown {label} program '{program_id}'. Must be one of: {known}")
        sys.exit(1)


def describe_step(catalog: Catalog, step) -> str:
    text = f"{program_name(catalog, step.from_id)} → {program_name(catalog, step.to_id)} (1:{effective_rate(step):g})"
    if step.bonus:
        text += " BONUS"
    return text


def cmd_convert(args):
    """
    Convert an amount between two programs and list every option.

    Args:
        args: Parsed command-line arguments with fields:
            - from_id, to_id: program ids
            - amount: float
            - no_multi_step: skip two-step routes
    """
    if not math.isfinite(args.amount) or args.amount <= 0:
        print(f"Error: Amount must be greater than 0. Got: {args.amount}")
        sys.exit(1)
    if args.from_id == args.to_id:
        print("Error: Please select different programs.")
        sys.exit(1)

    catalog = load_catalog(args)
    require_program(catalog, args.from_id, "source")
    require_program(catalog, args.to_id, "destination")

    plan = plan_conversion(
        catalog,
        args.from_id,
        args.to_id,
        args.amount,
        include_multi_step=not args.no_multi_step,
    )

    from_name = program_name(catalog, args.from_id)
    to_name = program_name(catalog, args.to_id)

    print(f"\n=== Conversion ===\n")
    if plan.status == STATUS_DIRECT:
        direct = plan.direct
        conversion = direct.steps[0]
        print(f"{args.amount:,.0f} {from_name} → {direct.converted_amount:,} {to_name}")
        print(f"  Exchange Rate: 1:{direct.rate:g}")
        print(f"  Transfer Type: {'Instant' if conversion.instant_transfer else 'May take 1-2 days'}")
        if conversion.bonus:
            line = f"  BONUS ACTIVE: regular 1:{conversion.rate:g} → bonus 1:{conversion.bonus_rate:g}"
            if conversion.bonus_end_date:
                line += f" (ends {conversion.bonus_end_date.date().isoformat()})"
            print(line)
        if conversion.note:
            print(f"  Note: {conversion.note}")
        for warning in direct.warnings:
            print(f"  ⚠ {warning}")
    elif plan.status == STATUS_MULTI_STEP_ONLY:
        print("No direct conversion available")
        print("Consider these multi-step conversion routes:")
    else:
        print("No conversion path found")
        print("There is no direct or 2-step conversion path between these programs.")

    if plan.routes:
        heading = "Alternative" if plan.direct else "Route"
        print(f"\n--- Multi-step Routes ---\n")
        for i, option in enumerate(plan.routes, 1):
            print(f"{heading} {i}: {option.converted_amount:,} {to_name}")
            current = args.amount
            for step, amount_after in zip(option.steps, option.step_amounts):
                print(f"   • {current:,.0f} → {amount_after:,}  {describe_step(catalog, step)}")
                current = amount_after
            print(f"   Total Rate: 1:{option.rate:.2f}")
            for warning in option.warnings:
                print(f"   ⚠ {warning}")
            print()

    if plan.best is not None and plan.routes:
        best_label = "direct" if plan.best.is_direct else f"via {program_name(catalog, plan.best.steps[0].to_id)}"
        print(f"Best option: {plan.best.converted_amount:,} {to_name} ({best_label})")
        if plan.best.dollar_value is not None:
            print(f"Estimated value: ${plan.best.dollar_value:,.2f}")
    print()


def cmd_routes(args):
    """Show the direct rate and every two-step rate between two programs."""
    catalog = load_catalog(args)

    direct = find_direct_conversion(catalog, args.from_id, args.to_id)
    routes = find_multi_step_conversions(catalog, args.from_id, args.to_id)

    print(f"\n=== Routes {args.from_id} → {args.to_id} ===\n")
    if direct:
        print(f"Direct: 1:{effective_rate(direct):g}")
    else:
        print("Direct: none")
    if not routes:
        print("Two-step: none")
    for route in routes:
        print(f"Via {program_name(catalog, route.via)}: 1:{route.total_rate:.4g}")
    print()


def cmd_reachable(args):
    """List programs reachable from a program within two hops."""
    catalog = load_catalog(args)
    reachable = get_reachable_programs(catalog, args.from_id)

    print(f"\n=== Reachable from {program_name(catalog, args.from_id)} ===\n")
    if not reachable:
        print("  (No reachable programs)")
    for program_id in sorted(reachable):
        print(f"  {program_id}: {program_name(catalog, program_id)}")
    print()


def cmd_sources(args):
    """List programs that can reach a program within two hops."""
    catalog = load_catalog(args)
    sources = get_source_programs(catalog, args.to_id)

    print(f"\n=== Sources for {program_name(catalog, args.to_id)} ===\n")
    if not sources:
        print("  (No source programs)")
    for program_id in sorted(sources):
        print(f"  {program_id}: {program_name(catalog, program_id)}")
    print()


def cmd_transfers(args):
    """
    Preview transfers leaving (--from) or arriving at (--to) a program.

    Two-step transfers are shown only with --multi-step.
    """
    if bool(args.from_id) == bool(args.to_id):
        print("Error: Specify exactly one of --from or --to.")
        sys.exit(1)

    catalog = load_catalog(args)
    if args.from_id:
        summary = get_transfers_from(catalog, args.from_id)
        print(f"\n=== Transfer {program_name(catalog, args.from_id)} points to: ===\n")
        for conversion in summary.direct:
            speed = "Instant" if conversion.instant_transfer else "1-2 days"
            bonus = " • BONUS ACTIVE" if conversion.bonus else ""
            print(f"  {program_name(catalog, conversion.to_id)} • Rate: 1:{effective_rate(conversion):g} • {speed}{bonus}")
        if args.multi_step:
            for route in summary.two_step:
                path = " → ".join(program_name(catalog, pid) for pid in (args.from_id, route.via, route.to_id))
                print(f"  {program_name(catalog, route.to_id)} • Rate: 1:{route.total_rate:.2f} (2 steps) • Via: {path}")
    else:
        summary = get_transfers_to(catalog, args.to_id)
        print(f"\n=== Transfer points to {program_name(catalog, args.to_id)} from: ===\n")
        for conversion in summary.direct:
            speed = "Instant" if conversion.instant_transfer else "1-2 days"
            bonus = " • BONUS ACTIVE" if conversion.bonus else ""
            print(f"  {program_name(catalog, conversion.from_id)} • Rate: 1:{effective_rate(conversion):g} • {speed}{bonus}")
        if args.multi_step:
            for route in summary.two_step:
                path = " → ".join(program_name(catalog, pid) for pid in (route.from_id, route.via, args.to_id))
                print(f"  {program_name(catalog, route.from_id)} • Rate: 1:{route.total_rate:.2f} (2 steps) • Via: {path}")

    if not summary.direct and not (args.multi_step and summary.two_step):
        print("  (No transfers available)")
    print()


def cmd_programs(args):
    """List programs grouped by type."""
    catalog = load_catalog(args)
    programs = catalog.programs.values()

    for program_type in ProgramType:
        if args.type and args.type != program_type.value:
            continue
        group = sorted((p for p in programs if p.type is program_type), key=lambda p: p.name)
        if not group:
            continue
        print(f"\n{program_type.value.title()} Programs:")
        for program in group:
            print(f"  {program.id}: {program.name} ({program.short_name}) ${program.dollar_value:.4f}/pt")
    print()


def cmd_list(args):
    """List every conversion in catalog order."""
    catalog = load_catalog(args)
    for i, conversion in enumerate(catalog.conversions, 1):
        print(f"{i:3d}. {describe_step(catalog, conversion)}")


def cmd_search(args):
    """Search conversions by program id or name (case-insensitive)."""
    catalog = load_catalog(args)
    term = args.term.lower()

    matches = [
        c for c in catalog.conversions
        if term in c.from_id.lower()
        or term in c.to_id.lower()
        or term in program_name(catalog, c.from_id).lower()
        or term in program_name(catalog, c.to_id).lower()
    ]
    if not matches:
        print(f"No conversions matching '{args.term}'.")
        return
    print(f"Found {len(matches)} conversion(s):")
    for conversion in matches:
        print(f"  {describe_step(catalog, conversion)}")


def cmd_stats(args):
    """Show catalog statistics."""
    catalog = load_catalog(args)
    conversions = catalog.conversions

    print(f"\n=== Catalog Statistics ===\n")
    print(f"Programs: {len(catalog.programs)}")
    for program_type in ProgramType:
        count = sum(1 for p in catalog.programs.values() if p.type is program_type)
        if count:
            print(f"  {program_type.value}: {count}")
    print(f"Conversions: {len(conversions)}")
    print(f"  Active bonuses: {sum(1 for c in conversions if c.bonus)}")
    print(f"  Instant transfers: {sum(1 for c in conversions if c.instant_transfer)}")
    if catalog.last_updated:
        print(f"Last updated: {catalog.last_updated.date().isoformat()}")
    if catalog.data_source:
        print(f"Source: {catalog.data_source}")
    print()


def cmd_validate(args):
    """Validate the document schema and referential integrity."""
    document = load_document(args.data)
    report = generate_report(document)

    if report.valid:
        print("Data validation passed!")
        return

    print(f"Found {report.total_issues} issue(s), {report.critical_issues} critical")
    for error in report.schema.errors:
        print(f"  • schema {error['path']}: {error['message']}")
    for orphan in report.integrity.orphaned_conversions:
        print(f"  • orphaned #{orphan.index + 1}: {orphan.issue}")
    for issue in report.integrity.issues:
        print(f"  • {issue.type}: {issue.message}")
    sys.exit(1)


def cmd_repair(args):
    """Write a repaired copy of the document to --output."""
    document = load_document(args.data)
    result = auto_repair(document)

    if not result.repairs:
        print("No repairs needed.")
        return

    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    with open(output, "w", encoding="utf-8") as f:
        json.dump(result.document, f, indent=2)
        f.write("\n")

    print(f"Applied {result.repair_count} repair(s):")
    for repair in result.repairs:
        print(f"  • {repair}")
    print(f"Repaired data written to {output}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Points Conversion Engine CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument("--data", type=Path, default=SourceConfig.CATALOG_PATH,
                        help=f"Conversions JSON file (default: {SourceConfig.CATALOG_PATH})")
    parser.add_argument("--url", action="append", default=list(SourceConfig.API_URLS),
                        help="Conversions API URL; may be repeated, --data is the fallback")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Convert command
    parser_convert = subparsers.add_parser("convert", help="Convert points between programs")
    parser_convert.add_argument("--from", dest="from_id", required=True, help="Source program id")
    parser_convert.add_argument("--to", dest="to_id", required=True, help="Destination program id")
    parser_convert.add_argument("--amount", type=float, required=True, help="Points to convert")
    parser_convert.add_argument("--no-multi-step", action="store_true", help="Only consider direct transfers")

    # Routes command
    parser_routes = subparsers.add_parser("routes", help="Show direct and two-step rates")
    parser_routes.add_argument("--from", dest="from_id", required=True, help="Source program id")
    parser_routes.add_argument("--to", dest="to_id", required=True, help="Destination program id")

    # Reachable command
    parser_reachable = subparsers.add_parser("reachable", help="Programs reachable within two hops")
    parser_reachable.add_argument("--from", dest="from_id", required=True, help="Source program id")

    # Sources command
    parser_sources = subparsers.add_parser("sources", help="Programs that reach a program within two hops")
    parser_sources.add_argument("--to", dest="to_id", required=True, help="Destination program id")

    # Transfers command
    parser_transfers = subparsers.add_parser("transfers", help="Preview transfers from or to a program")
    parser_transfers.add_argument("--from", dest="from_id", default=None, help="Source program id")
    parser_transfers.add_argument("--to", dest="to_id", default=None, help="Destination program id")
    parser_transfers.add_argument("--multi-step", action="store_true", help="Include two-step transfers")

    # Programs command
    parser_programs = subparsers.add_parser("programs", help="List programs")
    parser_programs.add_argument("--type", choices=[t.value for t in ProgramType], help="Filter by program type")

    subparsers.add_parser("list", help="List all conversions")

    parser_search = subparsers.add_parser("search", help="Search conversions")
    parser_search.add_argument("term", help="Program id or name fragment")

    subparsers.add_parser("stats", help="Show catalog statistics")
    subparsers.add_parser("validate", help="Validate data integrity")

    parser_repair = subparsers.add_parser("repair", help="Auto-repair data issues")
    parser_repair.add_argument("--output", required=True, help="Where to write the repaired JSON")

    return parser


COMMANDS = {
    "convert": cmd_convert,
    "routes": cmd_routes,
    "reachable": cmd_reachable,
    "sources": cmd_sources,
    "transfers": cmd_transfers,
    "programs": cmd_programs,
    "list": cmd_list,
    "search": cmd_search,
    "stats": cmd_stats,
    "validate": cmd_validate,
    "repair": cmd_repair,
}


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        sys.exit(1)

    COMMANDS[args.command](args)


if __name__ == "__main__":
    main()
