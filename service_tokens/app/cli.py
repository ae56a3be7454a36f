#!/usr/bin/env python3
"""
Inspect an access token from the command line.

Prints the decoded header fields and claims. With ``--keys-url`` the token is
also verified against the keys published by that token service, and
``--scope``/``--audience`` run the same authorization check protected
endpoints use.
"""

import argparse
import asyncio
import json
import os
import sys
from typing import List, Optional

import httpx
from cryptography.exceptions import InvalidSignature

from shared.errors import TokenServiceException
from .discovery import SigningKeysClient
from .tokens import Token, decode, validate


def _describe(token: Token) -> dict:
    return {
        "kid": token.key_id,
        "alg": token.algorithm,
        "claims": token.to_claims(),
    }


async def _verify(keys_url: str, token_string: str) -> Token:
    client = SigningKeysClient(keys_url)
    try:
        return await client.verify(token_string)
    finally:
        await client.close()


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Decode, verify and check an access token.")
    parser.add_argument("token", help="Encoded token (a leading 'Bearer ' is ignored)")
    parser.add_argument("--keys-url", default=os.getenv("TOKENS_KEYS_URL"), help="Base URL of the token service publishing /token_keys")
    parser.add_argument("--scope", action="append", default=[], help="Required scope (repeatable)")
    parser.add_argument("--audience", action="append", default=[], help="Required audience (repeatable)")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    token_string = args.token
    if token_string.startswith("Bearer "):
        token_string = token_string[7:]

    try:
        if args.keys_url:
            token = asyncio.run(_verify(args.keys_url, token_string))
        else:
            token = decode(token_string)
    except TokenServiceException as exc:
        print(f"Token rejected: {exc.message}", file=sys.stderr)
        return 1
    except InvalidSignature:
        print("Token rejected: signature does not match", file=sys.stderr)
        return 1
    except httpx.HTTPError as exc:
        print(f"Token rejected: signing keys unavailable from {args.keys_url}: {exc}", file=sys.stderr)
        return 1
    except ValueError as exc:
        # published key material that cryptography cannot parse
        print(f"Token rejected: {exc}", file=sys.stderr)
        return 1

    summary = _describe(token)
    summary["verified"] = bool(args.keys_url)
    summary["authorized"] = validate(token, args.scope, args.audience)
    print(json.dumps(summary, indent=2))

    return 0 if summary["authorized"] else 2


if __name__ == "__main__":
    raise SystemExit(main())
