"""Open a page like a browser would: hydrate its query state and render UsersClient."""
import argparse
import asyncio
import os

from frontend.browser import BrowserSession


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Fetch a page and render the users client component")
    parser.add_argument("--base-url", default=os.getenv("APP_BASE_URL", "http://localhost:8000"))
    parser.add_argument("--path", default="/users", help="Page to open, e.g. /users or /users/lazy")
    parser.add_argument("--email", help="Log in with this email before opening the page")
    parser.add_argument("--password", default="")
    return parser.parse_args()


async def run(args: argparse.Namespace) -> None:
    async with BrowserSession(args.base_url) as browser:
        if args.email:
            resp = await browser.submit_form("/login", {"email": args.email, "password": args.password})
            print(f"login -> {resp.status_code} {resp.url}")

        resp = await browser.open(args.path)
        print(f"GET {args.path} -> {resp.status_code} {resp.url}")
        print(f"hydrated queries: {browser.hydrated_queries}")

        html = await browser.render_users()
        print(html)


def main() -> None:
    asyncio.run(run(parse_args()))


if __name__ == "__main__":
    main()
