#!/usr/bin/env python3
"""
Unified CLI for fleet maintenance tracking.

Commands:
  status        - Dashboard: totals, compliance and what is overdue
  list          - List the vehicles in the fleet
  history       - View a vehicle's maintenance history
  add           - Add a vehicle
  edit          - Change a vehicle's details
  delete        - Remove a vehicle and its history
  update-usage  - Update a vehicle's km / hour counter
  log           - Record a maintenance intervention
  ask           - Ask the advisory service about the fleet
  scan          - Read brand, model and plate from a photo
"""

import argparse
import mimetypes
import sys
from datetime import date
from pathlib import Path
from tabulate import tabulate
from typing import List, Optional, Tuple

from fleetpro import (
    DueStatus,
    Fleet,
    FleetError,
    MaintenanceRecord,
    MaintenanceType,
    Reason,
    Vehicle,
    VehicleType,
    YamlFleetStore,
)
from fleetpro.config import Settings
from fleetpro.log import setup_logging

VEHICLE_TYPES = {"road": VehicleType.ROAD, "construction": VehicleType.CONSTRUCTION}
MAINTENANCE_TYPES = {
    "scheduled": MaintenanceType.SCHEDULED,
    "extraordinary": MaintenanceType.EXTRAORDINARY,
}

# =============================================================================
# Formatting helpers
# =============================================================================


def format_usage(value: Optional[float], vehicle_type: VehicleType) -> str:
    """Format a usage reading with its unit."""
    return f"{value:,.0f} {vehicle_type.unit}" if value is not None else "-"


def format_months(months: Optional[float]) -> str:
    """Format elapsed months (e.g. '13.0 mo')."""
    return f"{months:.1f} mo" if months is not None else "-"


def format_date(value: Optional[date]) -> str:
    return value.isoformat() if value is not None else "-"


def format_percent(value: float) -> str:
    return f"{value:.0f}%"


def truncate(text: Optional[str], max_len: int = 30) -> str:
    """Truncate text with ellipsis if too long."""
    if not text:
        return "-"
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def reason_label(vehicle: Vehicle, status: DueStatus) -> str:
    """Reason wording, naming km or hours for usage."""
    if status.reason is Reason.USAGE:
        return "Usage (km)" if vehicle.type is VehicleType.ROAD else "Usage (hours)"
    return status.reason.display_name


# =============================================================================
# Table builders
# =============================================================================


def make_status_table(statuses: List[Tuple[Vehicle, DueStatus]]) -> List[List[str]]:
    """Convert (vehicle, status) pairs to table rows."""
    rows = []
    for vehicle, status in statuses:
        rows.append(
            [
                vehicle.vehicle_number or "-",
                vehicle.name,
                format_usage(vehicle.current_usage, vehicle.type),
                "OVERDUE" if status.overdue else "OK",
                reason_label(vehicle, status),
                format_usage(status.usage_since_service, vehicle.type),
                format_months(status.months_since_service),
                format_usage(status.next_service_usage, vehicle.type),
                format_date(status.next_service_date),
                format_date(status.next_inspection_date),
            ]
        )
    return rows


def make_fleet_table(vehicles: List[Vehicle]) -> List[List[str]]:
    """Convert vehicles to table rows."""
    rows = []
    for v in vehicles:
        inspection = v.effective_inspection_interval_months
        rows.append(
            [
                v.id[:8],
                v.vehicle_number or "-",
                v.name,
                v.license_plate or "-",
                v.type.display_name,
                format_usage(v.current_usage, v.type),
                f"{format_usage(v.maintenance_frequency, v.type)} / "
                f"{v.maintenance_interval_months:g} mo",
                f"{inspection:g} mo" if inspection else "N/A",
            ]
        )
    return rows


def make_history_table(vehicle: Vehicle) -> List[List[str]]:
    """Convert a vehicle's history (most recent first) to table rows."""
    rows = []
    for record in vehicle.maintenance_history:
        rows.append(
            [
                record.date,
                record.type.display_name,
                format_usage(record.usage_value, vehicle.type),
                ", ".join(record.checklist) or "-",
                truncate(record.parts_replaced),
            ]
        )
    return rows


def resolve_vehicle(fleet: Fleet, ref: str) -> Optional[Vehicle]:
    """Find a vehicle by id, then by unique id prefix or vehicle number."""
    if ref in fleet:
        return fleet.get(ref)
    vehicles = fleet.vehicles()
    by_prefix = [v for v in vehicles if v.id.startswith(ref)]
    if len(by_prefix) == 1:
        return by_prefix[0]
    by_number = [v for v in vehicles if v.vehicle_number.lower() == ref.lower()]
    if len(by_number) == 1:
        return by_number[0]
    if len(by_number) > 1 or len(by_prefix) > 1:
        print(f"Error: '{ref}' matches more than one vehicle, use the id")
    else:
        print(f"Error: Unknown vehicle '{ref}'")
    return None


def parse_date_arg(value: Optional[str]) -> Optional[str]:
    """Validate a YYYY-MM-DD argument; None passes through."""
    if value is None:
        return None
    try:
        return date.fromisoformat(value).isoformat()
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid date '{value}', use YYYY-MM-DD")


# =============================================================================
# Status command
# =============================================================================


def cmd_status(args, fleet: Fleet) -> int:
    """Dashboard: totals, compliance and what is overdue."""
    now = args.as_of or date.today()
    stats = fleet.stats(now)

    print(f"Fleet: {args.fleet_file}")
    print(f"As of: {now.isoformat()}")
    print(
        f"Vehicles: {stats.total} "
        f"(road {stats.road}, construction {stats.construction})"
    )
    print(f"Maintenance alerts: {stats.overdue}")
    print(f"Compliance: {format_percent(stats.compliance_percent)}")
    print()

    statuses = fleet.statuses(now)
    overdue = [(v, s) for v, s in statuses if s.overdue]
    ok = [(v, s) for v, s in statuses if not s.overdue]

    headers = [
        "No.",
        "Vehicle",
        "Usage",
        "Status",
        "Reason",
        "Since service",
        "Elapsed",
        "Due at",
        "Due by",
        "Inspection by",
    ]

    # Inspections first, then usage, then time; by vehicle number within
    priority = {Reason.INSPECTION: 0, Reason.USAGE: 1, Reason.TIME: 2}
    overdue.sort(key=lambda p: (priority[p[1].reason], p[0].vehicle_number))
    ok.sort(key=lambda p: p[0].vehicle_number)

    if overdue:
        print("OVERDUE:")
        print(tabulate(make_status_table(overdue), headers=headers, tablefmt="simple"))
        print()

    if ok and not args.overdue_only:
        print("OK:")
        print(tabulate(make_status_table(ok), headers=headers, tablefmt="simple"))
        print()

    if not statuses:
        print("No vehicles in the fleet.")

    return 0


# =============================================================================
# List / history commands
# =============================================================================


def cmd_list(args, fleet: Fleet) -> int:
    """List the vehicles in the fleet."""
    vehicles = sorted(fleet.vehicles(), key=lambda v: v.vehicle_number)
    print(f"Fleet: {args.fleet_file}")
    print(f"Vehicles: {len(vehicles)}")
    print()
    if not vehicles:
        print("No vehicles in the fleet.")
        return 0

    headers = ["Id", "No.", "Vehicle", "Plate", "Type", "Usage", "Service every", "Inspection"]
    print(tabulate(make_fleet_table(vehicles), headers=headers, tablefmt="simple"))
    return 0


def cmd_history(args, fleet: Fleet) -> int:
    """View a vehicle's maintenance history."""
    vehicle = resolve_vehicle(fleet, args.vehicle)
    if vehicle is None:
        return 1

    print(f"Vehicle: {vehicle.vehicle_number} {vehicle.name}")
    print(f"Current usage: {format_usage(vehicle.current_usage, vehicle.type)}")
    print(f"Interventions: {len(vehicle.maintenance_history)}")
    print()

    if not vehicle.maintenance_history:
        print("No maintenance recorded.")
        return 0

    headers = ["Date", "Type", "Usage", "Checklist", "Parts replaced"]
    print(tabulate(make_history_table(vehicle), headers=headers, tablefmt="simple"))
    return 0


# =============================================================================
# Add / edit / delete commands
# =============================================================================


def cmd_add(args, fleet: Fleet) -> int:
    """Add a vehicle."""
    today = date.today().isoformat()
    vehicle_type = VEHICLE_TYPES[args.type]
    vehicle = Vehicle(
        vehicle_number=args.number,
        brand=args.brand,
        model=args.model,
        type=vehicle_type,
        current_usage=args.usage,
        maintenance_frequency=args.frequency,
        maintenance_interval_months=args.interval_months,
        registration_date=args.registration_date or today,
        purchase_date=args.purchase_date or today,
        license_plate=args.plate,
        last_inspection_date=args.inspection_date if vehicle_type is VehicleType.ROAD else None,
        inspection_interval_months=(
            args.inspection_months if vehicle_type is VehicleType.ROAD else None
        ),
    )

    print(f"Adding vehicle to {args.fleet_file}:")
    print(f"  Number:  {vehicle.vehicle_number}")
    print(f"  Vehicle: {vehicle.name} ({vehicle_type.display_name})")
    if vehicle.license_plate:
        print(f"  Plate:   {vehicle.license_plate}")
    print(f"  Usage:   {format_usage(vehicle.current_usage, vehicle_type)}")
    print(
        f"  Service: every {format_usage(vehicle.maintenance_frequency, vehicle_type)}"
        f" or {vehicle.maintenance_interval_months:g} months"
    )
    print()

    if args.dry_run:
        print("(dry run - no changes made)")
        return 0

    saved = fleet.add_vehicle(vehicle)
    print(f"Vehicle saved (id {saved.id}).")
    return 0


def cmd_edit(args, fleet: Fleet) -> int:
    """Change a vehicle's details (full replace of the stored record)."""
    vehicle = resolve_vehicle(fleet, args.vehicle)
    if vehicle is None:
        return 1

    changes = {
        "vehicle_number": args.number,
        "brand": args.brand,
        "model": args.model,
        "license_plate": args.plate,
        "maintenance_frequency": args.frequency,
        "maintenance_interval_months": args.interval_months,
        "last_inspection_date": args.inspection_date,
        "inspection_interval_months": args.inspection_months,
        "registration_date": args.registration_date,
        "purchase_date": args.purchase_date,
    }
    changes = {k: v for k, v in changes.items() if v is not None}
    if not changes:
        print("Nothing to change.")
        return 0

    print(f"Editing {vehicle.vehicle_number} {vehicle.name}:")
    for field, value in changes.items():
        print(f"  {field}: {getattr(vehicle, field)} -> {value}")
        setattr(vehicle, field, value)
    print()

    if args.dry_run:
        print("(dry run - no changes made)")
        return 0

    fleet.update_vehicle(vehicle)
    print("Vehicle updated.")
    return 0


def cmd_delete(args, fleet: Fleet) -> int:
    """Remove a vehicle and its whole history."""
    vehicle = resolve_vehicle(fleet, args.vehicle)
    if vehicle is None:
        return 1

    print(f"Vehicle: {vehicle.vehicle_number} {vehicle.name}")
    print(f"Interventions that will be lost: {len(vehicle.maintenance_history)}")
    if not args.yes:
        print("Error: Deleting is irreversible; pass --yes to confirm")
        return 1

    fleet.delete_vehicle(vehicle.id)
    print("Vehicle deleted.")
    return 0


# =============================================================================
# Update usage / log commands
# =============================================================================


def cmd_update_usage(args, fleet: Fleet) -> int:
    """Update a vehicle's km / hour counter."""
    vehicle = resolve_vehicle(fleet, args.vehicle)
    if vehicle is None:
        return 1

    print(f"Vehicle: {vehicle.vehicle_number} {vehicle.name}")
    print(f"Current usage: {format_usage(vehicle.current_usage, vehicle.type)}")
    print(f"New usage:     {format_usage(args.value, vehicle.type)}")
    print()

    if args.dry_run:
        print("(dry run - no changes made)")
        return 0

    fleet.record_usage_update(vehicle.id, args.value, allow_decrease=args.force)
    print("Usage updated.")
    return 0


def cmd_log(args, fleet: Fleet) -> int:
    """Record a maintenance intervention."""
    vehicle = resolve_vehicle(fleet, args.vehicle)
    if vehicle is None:
        return 1

    record = MaintenanceRecord(
        date=args.date or date.today().isoformat(),
        usage_value=args.usage if args.usage is not None else vehicle.current_usage,
        type=MAINTENANCE_TYPES[args.type],
        parts_replaced=args.parts or "",
        oil_change=args.oil_change,
        air_filter=args.air_filter,
        oil_filter=args.oil_filter,
        fuel_filter=args.fuel_filter,
    )

    print(f"Adding maintenance to {vehicle.vehicle_number} {vehicle.name}:")
    print(f"  Type:    {record.type.display_name}")
    print(f"  Date:    {record.date}")
    print(f"  Usage:   {format_usage(record.usage_value, vehicle.type)}")
    if record.checklist:
        print(f"  Done:    {', '.join(record.checklist)}")
    if record.parts_replaced:
        print(f"  Parts:   {record.parts_replaced}")
    print()

    if args.dry_run:
        print("(dry run - no changes made)")
        return 0

    fleet.apply_maintenance_record(vehicle.id, record, allow_decrease=args.force)
    print("Maintenance saved.")
    return 0


# =============================================================================
# Advisory commands
# =============================================================================


def cmd_ask(args, fleet: Fleet, advisor=None) -> int:
    """Ask the advisory service about the fleet."""
    if advisor is None:
        from fleetpro.advisor import FleetAdvisor

        advisor = FleetAdvisor(Settings.from_env())
    print(advisor.advise(fleet.vehicles(), args.question))
    return 0


def cmd_scan(args, fleet: Fleet, advisor=None) -> int:
    """Read brand, model and plate from a vehicle photo."""
    if not args.image.exists():
        print(f"Error: File not found: {args.image}")
        return 1
    if advisor is None:
        from fleetpro.advisor import FleetAdvisor

        advisor = FleetAdvisor(Settings.from_env())
    mime_type = mimetypes.guess_type(str(args.image))[0] or "image/jpeg"
    fields = advisor.analyze_image(args.image.read_bytes(), mime_type)

    print(f"Brand: {fields.get('brand', '-')}")
    print(f"Model: {fields.get('model', '-')}")
    print(f"Plate: {fields.get('licensePlate', '-')}")
    return 0


# =============================================================================
# Main
# =============================================================================


def add_vehicle_fields(parser: argparse.ArgumentParser, required: bool) -> None:
    """Vehicle detail flags shared by add and edit."""
    parser.add_argument("--number", required=required, help="Company vehicle number")
    parser.add_argument("--brand", required=required, help="Brand")
    parser.add_argument("--model", required=required, help="Model")
    parser.add_argument("--plate", help="License plate")
    parser.add_argument(
        "--frequency",
        type=float,
        required=required,
        help="Service interval in km (road) or hours (construction)",
    )
    parser.add_argument(
        "--interval-months",
        type=float,
        required=required,
        help="Service interval in months",
    )
    parser.add_argument(
        "--inspection-date",
        type=parse_date_arg,
        help="Last legal inspection (YYYY-MM-DD, road vehicles)",
    )
    parser.add_argument(
        "--inspection-months",
        type=float,
        help="Legal inspection interval in months (road vehicles, usually 24)",
    )
    parser.add_argument(
        "--registration-date", type=parse_date_arg, help="Registration date (YYYY-MM-DD)"
    )
    parser.add_argument(
        "--purchase-date", type=parse_date_arg, help="Purchase date (YYYY-MM-DD)"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be saved without saving",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Fleet maintenance tracker",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s fleet.yaml status
  %(prog)s fleet.yaml status --overdue-only --as-of 2025-06-30
  %(prog)s fleet.yaml list
  %(prog)s fleet.yaml add --number M12 --brand Iveco --model Daily \\
      --type road --usage 42000 --frequency 30000 --interval-months 12
  %(prog)s fleet.yaml update-usage M12 45500
  %(prog)s fleet.yaml log M12 --usage 45500 --oil-change --oil-filter
  %(prog)s fleet.yaml history M12
  %(prog)s fleet.yaml ask "Which vehicles need service this month?"
""",
    )
    parser.add_argument("fleet_file", type=Path, help="Path to fleet YAML file")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Log progress to stderr"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # Status subcommand
    status_parser = subparsers.add_parser(
        "status", help="Dashboard: totals, compliance and what is overdue"
    )
    status_parser.add_argument(
        "--overdue-only", action="store_true", help="Only list overdue vehicles"
    )
    status_parser.add_argument(
        "--as-of",
        type=lambda s: date.fromisoformat(parse_date_arg(s)),
        help="Evaluate as of this date (YYYY-MM-DD, default: today)",
    )

    subparsers.add_parser("list", help="List the vehicles in the fleet")

    history_parser = subparsers.add_parser("history", help="View maintenance history")
    history_parser.add_argument("vehicle", help="Vehicle id or number")

    # Add / edit / delete subcommands
    add_parser = subparsers.add_parser("add", help="Add a vehicle")
    add_parser.add_argument(
        "--type", choices=sorted(VEHICLE_TYPES), default="road", help="Vehicle type"
    )
    add_parser.add_argument(
        "--usage", type=float, default=0, help="Current km or hours (default: 0)"
    )
    add_vehicle_fields(add_parser, required=True)

    edit_parser = subparsers.add_parser("edit", help="Change a vehicle's details")
    edit_parser.add_argument("vehicle", help="Vehicle id or number")
    add_vehicle_fields(edit_parser, required=False)

    delete_parser = subparsers.add_parser("delete", help="Remove a vehicle")
    delete_parser.add_argument("vehicle", help="Vehicle id or number")
    delete_parser.add_argument(
        "--yes", action="store_true", help="Confirm the irreversible delete"
    )

    # Usage / log subcommands
    usage_parser = subparsers.add_parser(
        "update-usage", help="Update a vehicle's km / hour counter"
    )
    usage_parser.add_argument("vehicle", help="Vehicle id or number")
    usage_parser.add_argument("value", type=float, help="New km or hours reading")
    usage_parser.add_argument(
        "--force",
        action="store_true",
        help="Accept a reading below the current one (counter replaced)",
    )
    usage_parser.add_argument(
        "--dry-run", action="store_true", help="Show what would be updated without saving"
    )

    log_parser = subparsers.add_parser("log", help="Record a maintenance intervention")
    log_parser.add_argument("vehicle", help="Vehicle id or number")
    log_parser.add_argument(
        "--usage", type=float, help="Km or hours at the intervention (default: current)"
    )
    log_parser.add_argument(
        "--date", type=parse_date_arg, help="Date in YYYY-MM-DD format (default: today)"
    )
    log_parser.add_argument(
        "--type", choices=sorted(MAINTENANCE_TYPES), default="scheduled",
        help="Intervention type",
    )
    log_parser.add_argument("--parts", help="Parts replaced")
    log_parser.add_argument("--oil-change", action="store_true", help="Oil changed")
    log_parser.add_argument("--air-filter", action="store_true", help="Air filter replaced")
    log_parser.add_argument("--oil-filter", action="store_true", help="Oil filter replaced")
    log_parser.add_argument("--fuel-filter", action="store_true", help="Fuel filter replaced")
    log_parser.add_argument(
        "--force",
        action="store_true",
        help="Accept a reading below the current one (counter replaced)",
    )
    log_parser.add_argument(
        "--dry-run", action="store_true", help="Show what would be added without saving"
    )

    # Advisory subcommands
    ask_parser = subparsers.add_parser("ask", help="Ask the advisory service")
    ask_parser.add_argument("question", help="Free-text question about the fleet")

    scan_parser = subparsers.add_parser("scan", help="Read vehicle details from a photo")
    scan_parser.add_argument("image", type=Path, help="Photo of the vehicle or its papers")

    return parser


COMMANDS = {
    "status": cmd_status,
    "list": cmd_list,
    "history": cmd_history,
    "add": cmd_add,
    "edit": cmd_edit,
    "delete": cmd_delete,
    "update-usage": cmd_update_usage,
    "log": cmd_log,
    "ask": cmd_ask,
    "scan": cmd_scan,
}


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging("INFO" if args.verbose else "WARNING", fmt="text")

    # Only 'add' may start a new fleet file
    if args.command != "add" and not args.fleet_file.exists():
        print(f"Error: File not found: {args.fleet_file}")
        return 1

    try:
        fleet = Fleet.load(YamlFleetStore(args.fleet_file))
        return COMMANDS[args.command](args, fleet)
    except FleetError as e:
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main() or 0)
