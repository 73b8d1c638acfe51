"""Signed webhook sender.

Development script that POSTs a signed GitHub webhook to /webhook of a
running `blobmirror web` process.
"""

import argparse
import hashlib
import hmac
import http.client
import json
import os
import sys


def create_parser() -> argparse.ArgumentParser:
    """Create the command line parser."""
    parser = argparse.ArgumentParser(
        description="Send a signed GitHub webhook to blob-mirror",
    )
    parser.add_argument(
        "event",
        choices=["ping", "push", "installation"],
        help="Webhook event kind",
    )
    parser.add_argument(
        "-H",
        "--host",
        default="localhost",
        help="Server host (default: localhost)",
    )
    parser.add_argument(
        "-p",
        "--port",
        type=int,
        default=8000,
        help="Server port (default: 8000)",
    )
    parser.add_argument(
        "-s",
        "--secret",
        default=os.environ.get("GITHUB_WEBHOOK_SECRET", ""),
        help="Webhook secret (default: $GITHUB_WEBHOOK_SECRET)",
    )
    parser.add_argument("--repo-id", type=int, default=42, help="Repository ID")
    parser.add_argument(
        "--full-name", default="octocat/hello-world", help="Repository owner/name"
    )
    parser.add_argument(
        "--action",
        default="created",
        help="Installation action (default: created)",
    )
    return parser


def build_payload(args: argparse.Namespace) -> dict:
    """Build the webhook body for the selected event."""
    repo = {"id": args.repo_id, "full_name": args.full_name}
    if args.event == "push":
        return {"ref": "refs/heads/master", "repository": repo}
    if args.event == "installation":
        return {
            "action": args.action,
            "repositories": [repo],
            "installation": {"id": 1},
        }
    return {"zen": "Keep it logically awesome."}


def send_webhook(
    host: str, port: int, event: str, body: bytes, secret: str
) -> tuple[bool, str]:
    """Send one webhook.

    Returns:
        (success flag, message) tuple
    """
    signature = "sha256=" + hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()

    try:
        conn = http.client.HTTPConnection(host, port, timeout=30)
        try:
            conn.request(
                "POST",
                "/webhook",
                body=body,
                headers={
                    "Content-Type": "application/json",
                    "X-GitHub-Event": event,
                    "X-Hub-Signature-256": signature,
                },
            )
            response = conn.getresponse()
            text = response.read().decode("utf-8")
            if response.status == 200:
                return True, text
            return False, f"{response.status} {response.reason}: {text}"
        finally:
            conn.close()
    except ConnectionRefusedError:
        return False, "Connection refused"
    except TimeoutError:
        return False, "Connection timeout"
    except OSError as e:
        return False, str(e)


def main() -> int:
    """Main entry point."""
    args = create_parser().parse_args()
    if not args.secret:
        print("Error: webhook secret is required", file=sys.stderr)
        return 1

    body = json.dumps(build_payload(args)).encode("utf-8")
    print(f"Sending {args.event} to http://{args.host}:{args.port}/webhook...")
    success, message = send_webhook(args.host, args.port, args.event, body, args.secret)
    if not success:
        print(f"Error: {message}")
        return 1

    print(message)
    return 0


if __name__ == "__main__":
    sys.exit(main())
