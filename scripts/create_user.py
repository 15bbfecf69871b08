import argparse
import asyncio
import getpass
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from hotel_api.config import load_settings
from hotel_api.service import build_store
from hotel_api.store import StoreError


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Register a hotel reservation API user")
    parser.add_argument("email", help="Email address used to log in")
    parser.add_argument(
        "--config",
        default=None,
        help="Path to a YAML configuration file (defaults to HOTEL_API_CONFIG)",
    )
    return parser.parse_args(argv)


def prompt_for_password() -> str:
    for _ in range(3):
        password = getpass.getpass("Password: ")
        confirm = getpass.getpass("Confirm password: ")
        if password != confirm:
            print("Passwords do not match. Try again.", file=sys.stderr)
            continue
        if not password:
            print("Password must not be empty.", file=sys.stderr)
            continue
        return password
    raise SystemExit("Failed to set password after three attempts.")


async def register(settings, email: str, password: str) -> dict:
    store = build_store(settings)
    try:
        return await store.sign_up(email, password)
    finally:
        await store.aclose()


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        settings = load_settings(Path(args.config).expanduser() if args.config else None)
    except (OSError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    password = prompt_for_password()

    try:
        user = asyncio.run(register(settings, args.email.strip().lower(), password))
    except StoreError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        return 1

    print(f"Registered user {user.get('id', '<pending confirmation>')} <{args.email.strip().lower()}>")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
