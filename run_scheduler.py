"""
Main Execution Script for the Clerkship Scheduler.
Loads a JSON dataset, runs the engine, reports, and optionally exports the schedule.
"""

import os
import sys
import json
import logging
import argparse
from datetime import date

from pydantic import ValidationError

# Add current directory to path so imports work
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from datastore import JsonDataStore
from models import EngineOptions, SchedulingResult
from scheduler.engine import SchedulingEngine, SchedulingPersistenceError

logger = logging.getLogger("Main")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Assign students to clinical preceptors.")
    parser.add_argument("--data", required=True, help="JSON dataset (entities keyed by type)")
    parser.add_argument("--start", required=True, type=date.fromisoformat, help="First date, YYYY-MM-DD")
    parser.add_argument("--end", required=True, type=date.fromisoformat, help="Last date, YYYY-MM-DD")
    parser.add_argument("--students", nargs="*", help="Student ids (default: all)")
    parser.add_argument("--clerkships", nargs="*", help="Clerkship ids (default: all)")
    parser.add_argument("--fallbacks", action="store_true", help="Enable the fallback phase")
    parser.add_argument("--team-formation", action="store_true", help="Validate team constraints")
    parser.add_argument("--dry-run", action="store_true", help="Do not persist or write the dataset back")
    parser.add_argument("--max-retries", type=int, default=3)
    parser.add_argument("--export", help="Write the schedule grouped by date to this JSON file")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser.parse_args(argv)


def export_schedule_data(result: SchedulingResult, filename: str) -> None:
    """
    Serializes the result into a JSON document grouped by date.
    """
    logger.info(f"Exporting schedule to {filename}...")

    data = {
        "run_id": result.run_id,
        "success": result.success,
        "statistics": result.statistics.model_dump(mode='json'),
        "schedule": {},
        "unmet": [u.model_dump(mode='json') for u in result.unmet_requirements],
        "violations": {},
        "pending_approvals": [p.model_dump(mode='json') for p in result.pending_approvals],
    }

    # Schedule (Grouped by Date)
    for a in result.assignments:
        data["schedule"].setdefault(a.date.isoformat(), []).append(a.model_dump(mode='json'))

    # Violations (Grouped by Date; undated ones under "general")
    for v in result.violations:
        key = v.date.isoformat() if v.date else "general"
        data["violations"].setdefault(key, []).append(v.model_dump(mode='json'))

    with open(filename, 'w') as f:
        json.dump(data, f, indent=2)
    logger.info("Schedule exported.")


def print_report(result: SchedulingResult) -> None:
    stats = result.statistics

    print("\n" + "=" * 50)
    print("FINAL SCHEDULING REPORT")
    print("=" * 50)
    print(f"Success:               {result.success}")
    print(f"Students:              {stats.total_students} "
          f"(full {stats.fully_scheduled_students}, partial {stats.partially_scheduled_students}, "
          f"none {stats.unscheduled_students})")
    print(f"Assignments:           {stats.total_assignments} ({stats.fallback_assignments} via fallback)")
    print(f"Preceptors used:       {stats.total_preceptors_used} "
          f"(avg {stats.average_assignments_per_preceptor} each)")
    print(f"Completion rate:       {stats.completion_rate}%")

    if result.unmet_requirements:
        print("\nFAILURE ANALYSIS")
        for entry in result.failure_report():
            print(f"- {entry['reason']}")
            print(f"   {entry['count']} requirement(s), {entry['missing_days']} day(s) missing: "
                  f"{', '.join(entry['students'])}")

    if result.pending_approvals:
        print(f"\n{len(result.pending_approvals)} fallback assignment group(s) awaiting approval")


def main(argv=None) -> int:
    args = parse_args(argv)

    # Configure logging
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler()]
    )

    # --- PHASE 1: DATA ---
    try:
        store = JsonDataStore.from_file(args.data)
    except (FileNotFoundError, json.JSONDecodeError) as e:
        logger.error(f"Could not read {args.data}: {e}")
        return 1
    except ValidationError as e:
        logger.error(f"Invalid data in {args.data}:\n{e}")
        return 1

    try:
        options = EngineOptions(
            start_date=args.start,
            end_date=args.end,
            enable_team_formation=args.team_formation,
            enable_fallbacks=args.fallbacks,
            max_retries_per_student=args.max_retries,
            dry_run=args.dry_run
        )
    except ValidationError as e:
        logger.error(f"Invalid options:\n{e}")
        return 1

    # --- PHASE 2: SCHEDULING ---
    engine = SchedulingEngine(store, logger=logging.getLogger("scheduler"))
    try:
        result = engine.schedule(args.students, args.clerkships, options)
    except SchedulingPersistenceError as e:
        logger.error(f"Schedule built but not saved: {e}")
        print_report(e.result)
        return 2

    # --- PHASE 3: REPORTING ---
    print_report(result)

    if args.export:
        export_schedule_data(result, args.export)

    # --- PHASE 4: WRITE BACK ---
    if not args.dry_run:
        store.dump()

    return 0 if result.success else 3


if __name__ == "__main__":
    sys.exit(main())
