#!/usr/bin/env python3
"""Generate a VAPID key pair for the push fan-out service.

Prints environment assignments ready to paste into a
.env file or a hosting dashboard.

Usage:
    uv run scripts/generate_vapid_keys.py [--subject mailto:you@example.com]
"""

from __future__ import annotations

import argparse

from pushfanout.notifications.vapid import (
    generate_vapid_keys,
    load_vapid_credentials,
)


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate VAPID keys")
    parser.add_argument(
        "--subject",
        default="mailto:admin@localhost",
        help="Contact URI sent in the VAPID sub claim",
    )
    args = parser.parse_args()

    public_key, private_key = generate_vapid_keys()
    # Round-trip through the same check the server runs at startup
    load_vapid_credentials(public_key, private_key, args.subject)

    print(f"VAPID_PUBLIC_KEY={public_key}")
    print(f"VAPID_PRIVATE_KEY={private_key}")
    print(f"VAPID_SUBJECT={args.subject}")


if __name__ == "__main__":
    main()
