"""
Command-line interface for the pairing engine.

Generates a couple workout from stored profiles and reports plan and couple
progress. Storage is Postgres in production (when configured) and JSON files
under the data directory otherwise.
"""
import argparse
import json
import sys

from psycopg import OperationalError
from psycopg_pool import PoolTimeout

from pairfit.config import settings
from pairfit.core.catalog import load_catalog
from pairfit.core.models import SessionContext, WorkoutType
from pairfit.core.orchestrator import Orchestrator
from pairfit.data_access.dal import DataAccessLayer
from pairfit.data_access.json_dal import JsonDal
from pairfit.data_access.postgres_dal import PostgresDal
from pairfit.infra import log_utils

POOL_WAIT_SECONDS = 10


def build_dal() -> DataAccessLayer:
    if settings.DATABASE_URL and settings.ENVIRONMENT == "production":
        try:
            dal = PostgresDal()
            dal.pool.wait(timeout=POOL_WAIT_SECONDS)
            return dal
        except (OperationalError, PoolTimeout) as e:
            log_utils.log_message(f"Postgres DAL init failed: {e}. Falling back to JSON.", "WARN")
    return JsonDal()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pairfit", description="Couple workout pairing engine.")
    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="Generate a paired workout and print it as JSON.")
    gen.add_argument("--couple-id", required=True)
    gen.add_argument("--person-a", required=True)
    gen.add_argument("--person-b", required=True)
    gen.add_argument("--duration", type=int, default=30, help="Session length in minutes.")
    gen.add_argument("--type", choices=[t.value for t in WorkoutType], default=WorkoutType.STRENGTH.value)
    gen.add_argument("--equipment", nargs="*", default=[], help="Available equipment, e.g. dumbbell mat.")
    gen.add_argument("--space", choices=["minimal", "small", "medium", "large"], default="medium")
    gen.add_argument("--focus", nargs="*", default=None, help="Muscle groups to target.")

    status = sub.add_parser("plan-status", help="Print a person's periodization status.")
    status.add_argument("--user-id", required=True)

    couple = sub.add_parser("couple-summary", help="Print a couple's progress summary.")
    couple.add_argument("--couple-id", required=True)
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    log_utils.log_message(f"pairfit CLI invoked: {args.command}", "INFO")

    dal = build_dal()
    orchestrator = Orchestrator(dal, load_catalog())

    if args.command == "generate":
        context = SessionContext(
            duration=args.duration,
            equipment=args.equipment,
            space=args.space,
            workout_type=WorkoutType(args.type),
            focus=args.focus or None,
        )
        workout = orchestrator.generate_for_couple(args.couple_id, args.person_a, args.person_b, context)
        print(workout.model_dump_json(indent=2))
        for warning in workout.warnings:
            print(f"warning: {warning}", file=sys.stderr)
        return 0

    if args.command == "plan-status":
        plan = dal.get_plan(args.user_id)
        if plan is None:
            print(f"No periodization plan for {args.user_id}", file=sys.stderr)
            return 1
        print(json.dumps(orchestrator.periodization.get_plan_status(plan), indent=2))
        return 0

    profile = dal.get_couple_profile(args.couple_id)
    if profile is None:
        print(f"No couple profile for {args.couple_id}", file=sys.stderr)
        return 1
    summary = orchestrator.couples.get_progress_summary(profile)
    print(json.dumps(summary, indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
