"""
Generate synthetic daily reports for every active medical representative.
Run with: python -m scripts.generate_reports
Run with: python -m scripts.generate_reports --days 60 --skip-rate 0.2
"""

import argparse
import asyncio
import random
from datetime import date, timedelta
from sqlalchemy import select
from medrep_portal.aggregation import COUNTER_FIELDS
from medrep_portal.database import engine, async_session
from medrep_portal.main import create_tables, seed_demo_users
from medrep_portal.models.daily_report import DailyReport
from medrep_portal.models.user import ROLE_MEDREP, User

SUMMARIES = [
    "Visited the district hospital and two private clinics; strong interest in the new antibiotic line.",
    "Met general practitioners at the health centre, followed up on last week's samples.",
    "Pharmacy round in town centre, restocked two dispensaries.",
    "Paediatric ward visit, left product literature with the head nurse.",
    "Short day: one clinic and a pharmacy, most doctors in conference.",
    "Dental clinics across the sector, took three new orders.",
]

# Upper bound of a plausible daily count per counter
COUNTER_RANGES = {field: 4 for field in COUNTER_FIELDS}
COUNTER_RANGES.update({"general_practitioners": 6, "pharmacies": 6})


def random_report(user: User, report_date: date) -> DailyReport:
    counters = {field: random.randint(0, high) for field, high in COUNTER_RANGES.items()}
    orders_count = random.randint(0, 10)
    return DailyReport(
        user_id=user.id,
        report_date=report_date,
        region=user.region or "Unassigned",
        orders_count=orders_count,
        orders_value=float(orders_count * random.randrange(20_000, 90_000, 500)),
        summary=random.choice(SUMMARIES),
        **counters,
    )


async def generate(days: int, skip_rate: float):
    await create_tables()
    await seed_demo_users()

    async with async_session() as db:
        reps = (await db.execute(
            select(User).where(User.role == ROLE_MEDREP, User.is_active.is_(True))
        )).scalars().all()

        created = 0
        for rep in reps:
            existing = set((await db.execute(
                select(DailyReport.report_date).where(DailyReport.user_id == rep.id)
            )).scalars().all())
            for offset in range(1, days + 1):
                report_date = date.today() - timedelta(days=offset)
                if report_date in existing or report_date.weekday() == 6 or random.random() < skip_rate:
                    continue
                db.add(random_report(rep, report_date))
                created += 1
        await db.commit()

    print(f"Created {created} reports for {len(reps)} representatives.")
    await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Generate synthetic daily reports")
    parser.add_argument("--days", type=int, default=45, help="How many past days to cover")
    parser.add_argument("--skip-rate", type=float, default=0.15, help="Chance a working day has no report")
    args = parser.parse_args()

    asyncio.run(generate(days=args.days, skip_rate=args.skip_rate))
