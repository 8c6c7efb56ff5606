"""Create a checkout session against a running storefront, or verify one.

Useful for checking gateway credentials end to end without a browser.
"""

import argparse
import json

import httpx


def main() -> None:
    """CLI entrypoint for checkout smoke checks."""

    parser = argparse.ArgumentParser(description="Create or verify a storefront payment session.")
    parser.add_argument("--base-url", default="http://localhost:8080")
    parser.add_argument("--session-id", default=None, help="Verify this session instead of creating one")
    parser.add_argument("--session-result", default="", help="sessionResult blob returned by the drop-in")
    args = parser.parse_args()

    with httpx.Client(base_url=args.base_url, timeout=10.0) as client:
        if args.session_id is None:
            resp = client.post("/api/sessions")
        else:
            resp = client.get(
                "/order/confirmation",
                params={"sessionId": args.session_id, "sessionResult": args.session_result},
            )

    if resp.is_redirect:
        print(f"redirected to {resp.headers['location']}")
        return
    resp.raise_for_status()
    print(json.dumps(resp.json(), indent=2))


if __name__ == "__main__":
    main()
