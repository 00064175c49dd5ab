#!/usr/bin/env python3
"""
Almanac CLI: keys, deployment, publishing and verification.

Usage:
    python -m almanac.cli keygen
    python -m almanac.cli deploy                      # reads ALMANAC_ADMIN_ADDRESS / ALMANAC_DEPLOYER_KEY
    python -m almanac.cli commit 2025Q2 --file q2.pdf --location https://example.org/q2.pdf --value 215
    python -m almanac.cli read 2025Q2
    python -m almanac.cli transfer <address>
    python -m almanac.cli events [--period-key 2025Q2]
    python -m almanac.cli verify 2025Q2
"""
from __future__ import annotations

import argparse
import json
import os
from pathlib import Path
from typing import Any, Optional

import httpx

from .client import RegistryClient
from .deploy import DeploymentError, deploy_from_env
from .errors import RegistryError
from .identity import address_from_public_key, generate_keypair
from .models import hash_document
from .observability import configure_logging


def _emit(payload: Any, output_format: str) -> None:
    if output_format == "json":
        print(json.dumps(payload, sort_keys=True))
        return
    if isinstance(payload, dict):
        for key, value in payload.items():
            print(f"{key}: {value}")
        return
    print(payload)


def _fail(message: str, output_format: str, *, code: int = 1) -> None:
    payload = {"status": "error", "error": message, "exit_code": code}
    _emit(payload if output_format == "json" else message, output_format)
    raise SystemExit(code)


def _client(args: argparse.Namespace, *, authenticate: bool = False) -> RegistryClient:
    client = RegistryClient(args.url, token=args.token)
    if authenticate and not client.token:
        if not args.key:
            client.close()
            raise ValueError("commit/transfer need --key or ALMANAC_KEY (hex private key), or --token")
        client.authenticate(args.key)
    return client


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Almanac quarterly statistics registry")
    parser.add_argument("--url", default=os.getenv("ALMANAC_URL", "http://localhost:8000"))
    parser.add_argument("--token", default=os.getenv("ALMANAC_TOKEN"))
    parser.add_argument("--key", default=os.getenv("ALMANAC_KEY"), help="hex Ed25519 private key")
    parser.add_argument("--format", choices=["text", "json"], default="text")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("keygen", help="generate a keypair and its address")

    p_deploy = sub.add_parser("deploy", help="initialize a registry store from the environment")
    p_deploy.add_argument("--db-path", type=Path, default=None)

    p_commit = sub.add_parser("commit", help="hash a document and publish a period record")
    p_commit.add_argument("period_key")
    src = p_commit.add_mutually_exclusive_group(required=True)
    src.add_argument("--file", type=Path, help="document to hash")
    src.add_argument("--hash", dest="content_hash", help="precomputed 32-byte hex hash")
    p_commit.add_argument("--location", required=True)
    p_commit.add_argument("--value", type=int, required=True, help="indicator in tenths")

    p_read = sub.add_parser("read", help="read a period record")
    p_read.add_argument("period_key")

    p_transfer = sub.add_parser("transfer", help="hand control to another address")
    p_transfer.add_argument("new_holder")

    p_events = sub.add_parser("events", help="list notifications")
    p_events.add_argument("--period-key")
    p_events.add_argument("--name", choices=["ControlTransferred", "NewEntry"])
    p_events.add_argument("--after-id", type=int, default=0)
    p_events.add_argument("--limit", type=int, default=100)

    p_verify = sub.add_parser("verify", help="fetch a record's document and check its hash")
    p_verify.add_argument("period_key")
    return parser


def run(args: argparse.Namespace) -> Any:
    if args.command == "keygen":
        private_key, public_key = generate_keypair()
        return {
            "private_key": private_key.decode(),
            "public_key": public_key.decode(),
            "address": address_from_public_key(public_key),
        }
    if args.command == "deploy":
        return deploy_from_env(args.db_path).to_dict()

    client: Optional[RegistryClient] = None
    try:
        if args.command == "commit":
            client = _client(args, authenticate=True)
            digest = hash_document(args.file.read_bytes()) if args.file else bytes.fromhex(args.content_hash)
            client.commit(args.period_key, digest, args.location, args.value)
            return {"status": "ok", "period_key": args.period_key, "content_hash": digest.hex()}
        if args.command == "transfer":
            client = _client(args, authenticate=True)
            client.transfer_control(args.new_holder)
            return {"status": "ok", "administrator": client.administrator()}
        client = _client(args)
        if args.command == "read":
            record = client.read(args.period_key)
            return {"period_key": args.period_key, **record.to_dict()}
        if args.command == "events":
            return client.events(name=args.name, period_key=args.period_key,
                                 after_id=args.after_id, limit=args.limit)
        if args.command == "verify":
            return client.fetch_and_verify(args.period_key)
        raise ValueError(f"Unknown command: {args.command}")
    finally:
        if client is not None:
            client.close()


def main(argv: Optional[list[str]] = None) -> None:
    configure_logging("WARNING")
    args = build_parser().parse_args(argv)
    try:
        result = run(args)
    except RegistryError as e:
        _fail(f"{e.code}: {e.message}", args.format, code=2)
    except (DeploymentError, ValueError, RuntimeError, OSError, httpx.HTTPError) as e:
        _fail(str(e), args.format)
    else:
        _emit(result, args.format)
        if args.command == "verify" and not result["verified"]:
            raise SystemExit(3)


if __name__ == "__main__":
    main()
