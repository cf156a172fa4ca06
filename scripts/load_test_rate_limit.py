#!/usr/bin/env python3
"""Hammer the sign-in endpoint and show the limiter kicking in.

RUN:  python scripts/load_test_rate_limit.py

Needs a running server (uvicorn sharedplan.main:app --port 8000).  Every
attempt uses a wrong password, so allowed attempts answer 401 and
throttled ones 429.
"""

from __future__ import annotations

import time
from collections import Counter

import httpx

BASE_URL = "http://localhost:8000"
TOTAL_REQUESTS = 30


def main() -> None:
    print(f"Sending {TOTAL_REQUESTS} sign-in attempts to {BASE_URL}/auth/login")
    statuses: Counter[int] = Counter()
    start = time.monotonic()
    with httpx.Client(base_url=BASE_URL, timeout=10) as client:
        for _ in range(TOTAL_REQUESTS):
            resp = client.post(
                "/auth/login",
                json={"email": "nobody@example.com", "password": "wrong-password"},
            )
            statuses[resp.status_code] += 1
            if resp.status_code == 429:
                retry_after = resp.headers.get("Retry-After")
                print(f"  429  retry after {retry_after}s")
    elapsed = time.monotonic() - start

    print()
    for code, count in sorted(statuses.items()):
        print(f"  {code}: {count}")
    print(f"  elapsed: {elapsed:.2f}s")


if __name__ == "__main__":
    main()
