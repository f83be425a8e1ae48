import argparse
import asyncio
from datetime import date

from sqlalchemy import func, select

from gymdesk.core.logging_config import get_logger, setup_logging
from gymdesk.crud.subscriptionsCrud import SUBSCRIPTION_MODELS, expire_overdue_subscriptions
from gymdesk.db.postgresql import SessionLocal, engine

logger = get_logger("expire_subscriptions")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Mark active memberships and trainings past their end date as expired."
    )
    parser.add_argument("--org", dest="org_id", default=None, help="Limit the sweep to one organization.")
    parser.add_argument(
        "--today",
        type=date.fromisoformat,
        default=None,
        help="Reference date (YYYY-MM-DD); defaults to the current date.",
    )
    parser.add_argument(
        "--apply",
        action="store_true",
        help="Apply changes (otherwise only counts overdue subscriptions).",
    )
    return parser.parse_args()


async def count_overdue(db, today: date, org_id) -> dict:
    counts = {}
    for kind, model in SUBSCRIPTION_MODELS.items():
        stmt = select(func.count()).select_from(model).where(
            model.status == "active", model.end_date < today
        )
        if org_id:
            stmt = stmt.where(model.org_id == org_id)
        counts[kind] = (await db.execute(stmt)).scalar_one()
    return counts


async def main() -> None:
    args = parse_args()
    setup_logging()
    today = args.today or date.today()

    async with SessionLocal() as db:
        if not args.apply:
            counts = await count_overdue(db, today, args.org_id)
            for kind, count in counts.items():
                print(f"{kind}: {count} overdue")
            print("Run with --apply to modify data.")
        else:
            changed = await expire_overdue_subscriptions(db, today=today, org_id=args.org_id)
            logger.info(f"Expired {changed} subscriptions as of {today.isoformat()}")
            print(f"Expired {changed} subscriptions.")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
