#!/usr/bin/env python3
"""
Print a fresh VAPID keypair as .env lines.

The API never generates keys itself: rotating them invalidates every stored
browser subscription, so run this once per deployment and keep the output.

Usage:
    python scripts/generate_vapid_keys.py [claims-email]
"""

import sys

from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat
from py_vapid.utils import b64urlencode
from pywebpush import Vapid


def generate_keypair() -> tuple[str, str]:
    """Return (public, private) as unpadded base64url, the form browsers and pywebpush expect."""
    vapid = Vapid()
    vapid.generate_keys()

    private_value = vapid.private_key.private_numbers().private_value
    private_key = b64urlencode(private_value.to_bytes(32, "big"))
    public_key = b64urlencode(
        vapid.public_key.public_bytes(Encoding.X962, PublicFormat.UncompressedPoint)
    )
    return public_key, private_key


def main() -> None:
    claims_email = sys.argv[1] if len(sys.argv) > 1 else "admin@example.com"
    public_key, private_key = generate_keypair()

    print(f"VAPID_PUBLIC_KEY={public_key}")
    print(f"VAPID_PRIVATE_KEY={private_key}")
    print(f"VAPID_CLAIMS_EMAIL=mailto:{claims_email.removeprefix('mailto:')}")
    print("# Keep VAPID_PRIVATE_KEY out of version control.", file=sys.stderr)


if __name__ == "__main__":
    main()
