#!/usr/bin/env python3
"""Launch the booking API with uvicorn, honoring PORT and COURIER_HOST."""

import os
import subprocess
import sys


def _port() -> int:
    raw = os.environ.get("PORT", "8000")
    try:
        return int(raw)
    except ValueError:
        print(f"Warning: Invalid PORT value '{raw}', using default 8000", file=sys.stderr)
        return 8000


def main() -> int:
    src_path = os.path.join(os.getcwd(), "src")
    if not os.path.isdir(src_path):
        print(f"Error: src directory not found at {src_path}", file=sys.stderr)
        return 1

    pythonpath = os.environ.get("PYTHONPATH")
    os.environ["PYTHONPATH"] = os.pathsep.join(filter(None, [src_path, pythonpath]))

    port = _port()
    host = os.environ.get("COURIER_HOST", "0.0.0.0")
    cmd = [
        sys.executable,
        "-m",
        "uvicorn",
        "courier.main:app",
        "--host",
        host,
        "--port",
        str(port),
        "--proxy-headers",
        "--forwarded-allow-ips",
        "*",
    ]
    print(f"Starting courier booking API on {host}:{port}...", file=sys.stderr)
    try:
        return subprocess.call(cmd)
    except KeyboardInterrupt:
        print("Server interrupted by user", file=sys.stderr)
        return 0


if __name__ == "__main__":
    sys.exit(main())
