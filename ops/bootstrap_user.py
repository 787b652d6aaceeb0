from __future__ import annotations

import argparse
import json
import os
import sys
from typing import Any
import urllib.request
import urllib.error


DEFAULT_BASE_URL = os.getenv("PANEL_BASE_URL", "http://localhost:8000")
DEFAULT_ADMIN_KEY = os.getenv("INTERNAL_ADMIN_KEY", "")

DEFAULT_TIMEOUT_SECONDS = 30


def http_post(url: str, payload: dict[str, Any], admin_key: str) -> dict[str, Any]:
    data = json.dumps(payload).encode("utf-8")
    req = urllib.request.Request(
        url=url,
        data=data,
        method="POST",
        headers={
            "Content-Type": "application/json",
            "X-Internal-Admin-Key": admin_key,
        },
    )
    try:
        with urllib.request.urlopen(req, timeout=DEFAULT_TIMEOUT_SECONDS) as resp:
            raw = resp.read().decode("utf-8")
            return json.loads(raw) if raw else {}
    except urllib.error.HTTPError as e:
        body = e.read().decode("utf-8", errors="replace")
        print(f"HTTP {e.code} {e.reason} for {url}", file=sys.stderr)
        if body:
            print(body, file=sys.stderr)
        return {"error": {"status": e.code, "reason": e.reason, "body": body}}
    except urllib.error.URLError as e:
        print(f"Network error for {url}: {e}", file=sys.stderr)
        return {"error": {"reason": str(e)}}


def main() -> int:
    p = argparse.ArgumentParser(description="Create a merchant user and print its API key (shown once).")
    p.add_argument("--display-name", required=True)
    p.add_argument("--email")
    p.add_argument("--base-url", default=DEFAULT_BASE_URL)
    p.add_argument("--admin-key", default=DEFAULT_ADMIN_KEY)
    args = p.parse_args()

    if not args.admin_key:
        print("Missing INTERNAL_ADMIN_KEY (env) or --admin-key", file=sys.stderr)
        return 2

    out = http_post(
        f"{args.base_url.rstrip('/')}/v1/users/bootstrap",
        {"display_name": args.display_name, "email": args.email},
        args.admin_key,
    )
    if "error" in out:
        return 1

    print(json.dumps(out, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
