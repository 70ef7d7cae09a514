from __future__ import annotations

import argparse
import asyncio
import json
from datetime import date

from meetwhen.core.database import AsyncSessionLocal, create_all
from meetwhen.services.db_service import DBService
from meetwhen.services.slot_service import SlotService

WEEKDAYS = range(1, 6)  # Monday .. Friday


async def seed(username: str, timezone: str, day: date | None) -> None:
    await create_all()
    async with AsyncSessionLocal() as session:
        db = DBService(session)
        host = await db.get_host_by_username(username)
        if host is None:
            host = await db.create_host(
                {
                    "name": username.title(),
                    "email": f"{username}@example.com",
                    "username": username,
                    "timezone": timezone,
                }
            )
            await db.replace_availability_rules(
                host.id,
                [{"day_of_week": d, "start_time": "09:00", "end_time": "17:00"} for d in WEEKDAYS],
            )
            await db.create_event_type(
                {"host_id": host.id, "title": "Intro call", "slug": "intro", "duration": 30}
            )

        event_type = await db.get_event_type_by_slug(host.id, "intro")
        output = {"host_id": str(host.id), "event_type_id": str(event_type.id)}
        if day is not None:
            slots = await SlotService(db).day_slots(host, event_type, day)
            output["date"] = day.isoformat()
            output["slots"] = slots.slots
        print(json.dumps(output, indent=2))


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create a demo host with weekday hours.")
    parser.add_argument("--username", default="demo", help="Public username of the host")
    parser.add_argument("--timezone", default="UTC", help="IANA timezone of the host")
    parser.add_argument("--date", type=date.fromisoformat, help="Print the slots of this date")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    asyncio.run(seed(args.username, args.timezone, args.date))


if __name__ == "__main__":
    main()
