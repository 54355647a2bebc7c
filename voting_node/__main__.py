# voting_node/__main__.py
"""
Entry point for running the Voting Node as a module:
    python -m voting_node serve  [--host 127.0.0.1] [--port 8000] [--config voting_config.yaml]
    python -m voting_node keygen --out owner.json
    python -m voting_node derive config
    python -m voting_node derive proposal 0
    python -m voting_node derive vote 0 <voter-hex>
Env toggles (see config.py):
  VOTING_DATA_DIR, VOTING_PERSISTENCE, VOTING_CHAIN_ID, VOTING_PROGRAM_ID,
  VOTING_HOST, VOTING_PORT, VOTING_LOG_LEVEL, VOTING_FAUCET
"""

from __future__ import annotations

import argparse
import json
import sys

from .config import ConfigError, configure_logging, get_bind_host, get_bind_port, load_config
from .crypto_utils import Keypair
from .voting_runtime.addresses import (
    CONFIG_TAG,
    PROPOSAL_TAG,
    VOTE_TAG,
    AddressDerivationError,
    DEFAULT_PROGRAM_ID,
    derive,
    from_hex,
    u32_le,
)


def parse_args(argv=None):
    p = argparse.ArgumentParser(prog="voting-node", description="Proposal voting node")
    p.add_argument("--config", default=None, help="Path to voting_config.yaml")
    sub = p.add_subparsers(dest="cmd", required=True)

    s = sub.add_parser("serve", help="Run the HTTP API")
    s.add_argument("--host", default=None, help="Bind address (default: config server.host)")
    s.add_argument("--port", type=int, default=None, help="Port (default: config server.port)")

    k = sub.add_parser("keygen", help="Write a new Ed25519 keypair file")
    k.add_argument("--out", required=True, help="Output JSON key file")

    d = sub.add_parser("derive", help="Print a derived account address")
    d.add_argument("kind", choices=["config", "proposal", "vote"])
    d.add_argument("proposal_id", nargs="?", type=int)
    d.add_argument("voter", nargs="?", help="Voter public key (hex)")
    return p.parse_args(argv)


def _program_id(cfg) -> bytes:
    pid = str(cfg.get("program", {}).get("id") or "")
    return bytes.fromhex(pid) if pid else DEFAULT_PROGRAM_ID


def _derive(args, program_id: bytes) -> dict:
    if args.kind == "config":
        addr, bump = derive(CONFIG_TAG, program_id=program_id)
        return {"kind": "config", "address": addr.hex(), "bump": bump}

    if args.proposal_id is None:
        raise AddressDerivationError(f"{args.kind} needs a proposal id")

    if args.kind == "proposal":
        addr, bump = derive(PROPOSAL_TAG, u32_le(args.proposal_id), program_id=program_id)
        return {"kind": "proposal", "proposal_id": args.proposal_id, "address": addr.hex(), "bump": bump}

    if not args.voter:
        raise AddressDerivationError("vote needs a voter public key")
    voter = from_hex(args.voter)
    addr, bump = derive(VOTE_TAG, u32_le(args.proposal_id), voter, program_id=program_id)
    return {"kind": "vote", "proposal_id": args.proposal_id, "voter": voter.hex(), "address": addr.hex(), "bump": bump}


def main(argv=None) -> int:
    args = parse_args(argv)

    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        print(f"config error: {e}", file=sys.stderr)
        return 2

    if args.cmd == "keygen":
        kp = Keypair.generate()
        path = kp.save(args.out)
        print(json.dumps({"public_key": kp.public_key_hex, "path": str(path)}))
        return 0

    if args.cmd == "derive":
        try:
            print(json.dumps(_derive(args, _program_id(cfg))))
        except AddressDerivationError as e:
            print(f"error: {e}", file=sys.stderr)
            return 2
        return 0

    import uvicorn

    from .voting_api import create_app

    configure_logging(cfg)
    app = create_app(cfg)
    try:
        uvicorn.run(
            app,
            host=args.host or get_bind_host(cfg),
            port=args.port or get_bind_port(cfg),
        )
    finally:
        app.state.executor.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
