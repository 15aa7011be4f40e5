#!/usr/bin/env python3
"""
Session check script.
Shows whether the stored portal session is still usable, optionally logging in first.
"""

import argparse
import getpass
import sys

from dotenv import load_dotenv

load_dotenv()

from app.core.config import config  # noqa: E402
from app.services.auth import AuthService  # noqa: E402
from app.services.session import SessionChecker  # noqa: E402
from app.services.token_store import JsonFileTokenStore  # noqa: E402
from portal_client import AuthenticationRejected, LoginFailed, PortalClient  # noqa: E402


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Check the stored portal session")
    parser.add_argument("--login", metavar="USERNAME", help="log in before checking")
    parser.add_argument("--store", default=config.TOKEN_STORE_PATH, help="token store file")
    args = parser.parse_args(argv)

    store = JsonFileTokenStore(args.store)

    print(f"📍 API host: {config.API_HOST or 'Not set'}")
    print(f"🗂  Store:   {args.store}")
    print("-" * 50)

    if args.login:
        if not config.API_HOST:
            print("❌ API_HOST is not set. Update your .env file.")
            return 2
        password = getpass.getpass("Password: ")
        auth = AuthService(PortalClient(config.API_HOST, timeout=config.PORTAL_HTTP_TIMEOUT), store)
        try:
            result = auth.login(args.login, password)
        except AuthenticationRejected as exc:
            print(f"❌ {exc.message}")
            return 1
        except LoginFailed as exc:
            print(f"❌ {exc.message}")
            return 1
        print(f"✅ Logged in. Dashboard: {result.dashboard_route}")

    checker = SessionChecker(store)
    state = checker.mount()
    if state.is_authenticated:
        print(f"✅ Session valid for another {checker.seconds_remaining()}s")
        return 0
    print("❌ No valid session stored")
    return 1


if __name__ == "__main__":
    sys.exit(main())
