"""Weekly launch histogram over the cached launch set."""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

BUCKET_WIDTH = timedelta(days=7)


def parse_net(net: str) -> datetime:
    """Parse an upstream NET timestamp such as 2025-01-05T12:00:00Z.

    Values without an offset are taken as UTC.
    """
    parsed = datetime.fromisoformat(net.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def bucket_label(start: datetime) -> str:
    """Short label like 'Jan 5'."""
    return f"{start.strftime('%b')} {start.day}"


def build_histogram(launches: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Group launches into consecutive 7-day buckets.

    The first bucket starts at the earliest launch's NET; buckets are emitted
    while their start is not after the latest NET, so empty weeks in between
    are kept with a zero count.
    """
    if not launches:
        return []

    dated = sorted(
        ((parse_net(launch["net"]), launch["id"]) for launch in launches),
        key=lambda item: item[0],
    )
    first_date = dated[0][0]
    last_date = dated[-1][0]

    buckets = []
    bucket_start = first_date
    index = 0
    while bucket_start <= last_date:
        bucket_end = bucket_start + BUCKET_WIDTH
        launch_ids = []
        while index < len(dated) and dated[index][0] < bucket_end:
            launch_ids.append(dated[index][1])
            index += 1

        buckets.append(
            {
                "start_date": bucket_start.isoformat(),
                "end_date": bucket_end.isoformat(),
                "count": len(launch_ids),
                "label": bucket_label(bucket_start),
                "launch_ids": launch_ids,
            }
        )
        bucket_start = bucket_end

    return buckets
