# scripts/smoke_match_local.py
import argparse
import asyncio

from swishmatch.service_layer.use_cases.matching import MatchingService


async def main(booking_id: int, limit: int) -> None:
    svc = MatchingService()
    res = await svc.rank(booking_id, limit=limit)

    print("funnel:", res.eligibility.stats.as_dict())
    for w in res.eligibility.warnings:
        print("warning:", w)
    for x in res.eligibility.excluded:
        print(f"  excluded cleaner={x.cleaner_id} at {x.stage}: {x.reason}")
    for r in res.ranked:
        c = r.candidate
        print(r.rank, c.cleaner.id, c.cleaner.name, c.distance_mi, r.score.total, r.score.breakdown.as_dict())


if __name__ == "__main__":
    ap = argparse.ArgumentParser()
    ap.add_argument("booking_id", type=int)
    ap.add_argument("--limit", type=int, default=15)
    args = ap.parse_args()
    asyncio.run(main(args.booking_id, args.limit))
