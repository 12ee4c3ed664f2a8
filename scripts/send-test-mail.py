#!/usr/bin/env python3
"""
Send a system report through a running mail relay.

The script collects disk and memory usage (df -h, free -m), base64 encodes
the report and posts it to the relay's /send endpoint, which is a quick way
to check the whole path from HTTP to the SMTP server.

Usage:
    python scripts/send-test-mail.py [--url http://localhost:3333]
        [--from sender@example.com] [--to receiver@example.com ...]
        [--subject "System report"]

Exit Codes:
    0 - Mail accepted by the relay
    1 - The relay returned an error or could not be reached
"""

import argparse
import base64
import subprocess
import sys

import httpx

EXIT_SUCCESS = 0
EXIT_SEND_ERROR = 1


def collect_report() -> str:
    """Return the output of df -h and free -m, skipping missing commands."""
    sections = []
    for command in (["df", "-h"], ["free", "-m"]):
        try:
            result = subprocess.run(command, capture_output=True, text=True, check=False)
        except FileNotFoundError:
            sections.append(f"$ {' '.join(command)}\n(command not available)")
            continue
        sections.append(f"$ {' '.join(command)}\n{result.stdout}")
    return "\n".join(sections)


def main():
    parser = argparse.ArgumentParser(description="Send a system report through the mail relay")
    parser.add_argument("--url", default="http://localhost:3333", help="Mail relay base URL")
    parser.add_argument("--from", dest="sender", default="sender@example.com", help="Sender address")
    parser.add_argument(
        "--to",
        dest="recipients",
        action="append",
        help="Recipient address (repeatable, default: receiver@example.com)",
    )
    parser.add_argument("--subject", default="System report", help="Mail subject")
    args = parser.parse_args()

    report = collect_report()
    payload = {
        "mail": {
            "from": args.sender,
            "to": args.recipients or ["receiver@example.com"],
            "subject": args.subject,
            "text": base64.b64encode(report.encode("utf-8")).decode("ascii"),
            "encoding": "base64",
        }
    }

    try:
        response = httpx.post(f"{args.url.rstrip('/')}/send", json=payload, timeout=90.0)
    except httpx.RequestError as e:
        print(f"Failed to reach mail relay at {args.url}: {e}", file=sys.stderr)
        sys.exit(EXIT_SEND_ERROR)

    print(response.text)
    if response.status_code != 200:
        sys.exit(EXIT_SEND_ERROR)
    sys.exit(EXIT_SUCCESS)


if __name__ == "__main__":
    main()
