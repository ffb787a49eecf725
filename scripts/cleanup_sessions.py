"""
Delete expired sessions and OTP codes.

Usage:
    python -m scripts.cleanup_sessions
"""
import asyncio

from app.features.auth import models  # noqa: F401
from app.features.auth.workers.maintenance import run_cleanup


def main():
    result = asyncio.run(run_cleanup())
    print(
        f"Removed {result['sessions_deleted']} session(s) and "
        f"{result['otps_deleted']} OTP code(s) at {result['timestamp']}"
    )


if __name__ == "__main__":
    main()
