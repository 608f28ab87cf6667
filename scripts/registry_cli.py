#!/usr/bin/env python3
"""Operator CLI for a running registry.

RUN:  python scripts/registry_cli.py <command> [args]

Commands:
  add-issuer ADDR                       grant the issuer role to ADDR
  register ADDR NAME                    register a participant
  issue ADDR URI HASH COHORT            issue a certificate
  verify TOKEN_ID                       verify a certificate and show details
  certificates ADDR                     list a participant's certificates
  revoke TOKEN_ID                       revoke a certificate
  check-issuer ADDR                     does ADDR hold the issuer role?

Environment:
  REGISTRY_URL    base URL of the API (default http://localhost:8000)
  REGISTRY_TOKEN  bearer token for write commands; without it, --as ADDR
                  asks a dev/test server for a session token
"""

from __future__ import annotations

import argparse
import os
import sys
from datetime import UTC, datetime

import httpx

DEFAULT_URL = "http://localhost:8000"


class CliError(Exception):
    pass


def _check(resp: httpx.Response) -> dict:
    if resp.is_success:
        return resp.json() if resp.content else {}
    try:
        detail = resp.json().get("detail")
    except ValueError:
        detail = resp.text
    if isinstance(detail, dict):
        detail = detail.get("reason", detail)
    raise CliError(f"{resp.status_code}: {detail}")


def session_token(client: httpx.Client, address: str) -> str:
    return _check(client.post("/v1/sessions", json={"address": address}))["access_token"]


def add_issuer(client: httpx.Client, headers: dict, address: str) -> None:
    print(f"Granting issuer role to {address}...")
    body = _check(
        client.post("/v1/roles/issuer/grant", json={"account": address}, headers=headers)
    )
    print("Issuer role granted." if body["changed"] else "Already an issuer.")


def register(client: httpx.Client, headers: dict, address: str, name: str) -> None:
    print(f"Registering participant {name} ({address})...")
    _check(
        client.post(
            "/v1/participants", json={"address": address, "name": name}, headers=headers
        )
    )
    print("Participant registered.")


def issue(
    client: httpx.Client,
    headers: dict,
    address: str,
    uri: str,
    content_hash: str,
    cohort: str,
) -> int:
    print(f"Issuing certificate to {address}...")
    body = _check(
        client.post(
            "/v1/certificates",
            json={
                "recipient": address,
                "token_uri": uri,
                "content_hash": content_hash,
                "cohort": cohort,
            },
            headers=headers,
        )
    )
    print(f"Certificate issued. Token ID: {body['token_id']}")
    return body["token_id"]


def verify(client: httpx.Client, token_id: int) -> dict:
    print(f"Verifying certificate {token_id}...")
    body = _check(client.get(f"/v1/certificates/{token_id}/verify"))
    issued = datetime.fromtimestamp(body["issued_at"], UTC).isoformat()
    print("Certificate Details:")
    print(f"  Valid: {body['is_valid']}")
    print(f"  Recipient: {body['recipient']}")
    print(f"  Content Hash: {body['content_hash']}")
    print(f"  Cohort: {body['cohort']}")
    print(f"  Issued At: {issued}")
    return body


def certificates(client: httpx.Client, address: str) -> list[int]:
    print(f"Getting certificates for {address}...")
    token_ids = _check(client.get(f"/v1/participants/{address}/certificates"))["token_ids"]
    print(f"Found {len(token_ids)} certificate(s): {', '.join(map(str, token_ids))}")
    return token_ids


def revoke(client: httpx.Client, headers: dict, token_id: int) -> None:
    print(f"Revoking certificate {token_id}...")
    _check(client.post(f"/v1/certificates/{token_id}/revoke", headers=headers))
    print("Certificate revoked.")


def check_issuer(client: httpx.Client, address: str) -> bool:
    has_role = _check(client.get(f"/v1/roles/issuer/members/{address}"))["has_role"]
    print(f"{address} has issuer role: {has_role}")
    return has_role


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="registry_cli", description="Soulbound certificate registry CLI"
    )
    parser.add_argument("--url", default=os.environ.get("REGISTRY_URL", DEFAULT_URL))
    parser.add_argument(
        "--as",
        dest="as_address",
        metavar="ADDR",
        help="act as ADDR using a dev session token",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("add-issuer", help="grant the issuer role")
    p.add_argument("address")

    p = sub.add_parser("register", help="register a participant")
    p.add_argument("address")
    p.add_argument("name")

    p = sub.add_parser("issue", help="issue a certificate")
    p.add_argument("address")
    p.add_argument("uri")
    p.add_argument("content_hash", metavar="hash")
    p.add_argument("cohort")

    p = sub.add_parser("verify", help="verify a certificate")
    p.add_argument("token_id", type=int)

    p = sub.add_parser("certificates", help="list a participant's certificates")
    p.add_argument("address")

    p = sub.add_parser("revoke", help="revoke a certificate")
    p.add_argument("token_id", type=int)

    p = sub.add_parser("check-issuer", help="check the issuer role")
    p.add_argument("address")

    return parser


def _auth_headers(client: httpx.Client, args: argparse.Namespace) -> dict:
    token = os.environ.get("REGISTRY_TOKEN")
    if not token and args.as_address:
        token = session_token(client, args.as_address)
    if not token:
        raise CliError("write commands need REGISTRY_TOKEN or --as ADDR")
    return {"Authorization": f"Bearer {token}"}


def run(args: argparse.Namespace, client: httpx.Client) -> None:
    if args.command == "verify":
        verify(client, args.token_id)
    elif args.command == "certificates":
        certificates(client, args.address)
    elif args.command == "check-issuer":
        check_issuer(client, args.address)
    else:
        headers = _auth_headers(client, args)
        if args.command == "add-issuer":
            add_issuer(client, headers, args.address)
        elif args.command == "register":
            register(client, headers, args.address, args.name)
        elif args.command == "issue":
            issue(client, headers, args.address, args.uri, args.content_hash, args.cohort)
        elif args.command == "revoke":
            revoke(client, headers, args.token_id)


def main(argv: list[str] | None = None, client: httpx.Client | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        if client is not None:
            run(args, client)
        else:
            with httpx.Client(base_url=args.url, timeout=10) as owned:
                run(args, owned)
    except CliError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except httpx.HTTPError as e:
        print(f"Error: cannot reach {args.url}: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
