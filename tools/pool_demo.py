#!/usr/bin/env python3

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional, Sequence

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from tidepool import Chain, Factory, Token, config_from_env, load_config


def _parse_args(argv: Optional[Sequence[str]]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Offline pool demo: seed a pair, swap, and read the oracle.")
    p.add_argument("--curve", choices=("constant_product", "stable"), default="constant_product")
    p.add_argument("--reserve", type=int, default=1_000_000, help="initial reserve of each token")
    p.add_argument("--amount-in", type=int, default=70_000, help="token0 paid into the exact-in swap")
    p.add_argument("--config", type=Path, default=None, help="YAML config file")
    return p.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(argv)
    config = config_from_env(load_config(args.config) if args.config else None)

    owner = "0x" + "0a" * 20
    user = "0x" + "0b" * 20
    chain = Chain(timestamp=1_700_000_000)
    factory = Factory(chain, owner=owner, config=config)
    token_a = Token("0x" + "11" * 20, chain=chain)
    token_b = Token("0x" + "22" * 20, chain=chain)
    pair = factory.create_pair(token_a, token_b, args.curve.upper())
    print(f"[pool-demo] pair={pair.address} curve={pair.state.curve_tag} swap_fee={pair.swap_fee}")

    for token in (pair.token0, pair.token1):
        token.mint(user, args.reserve + args.amount_in)
        token.transfer(user, pair.address, args.reserve)
    liquidity = pair.mint(user)
    r0, r1, _, _ = pair.get_reserves()
    print(f"[pool-demo] minted {liquidity} LP shares; reserves=({r0}, {r1})")

    chain.advance(12)
    pair.token0.transfer(user, pair.address, args.amount_in)
    result = pair.swap(args.amount_in, True, user)
    r0, r1, _, index = pair.get_reserves()
    print(f"[pool-demo] swapped {result.amount_in} token0 -> {result.amount_out} token1; reserves=({r0}, {r1})")

    obs = pair.observation(index)
    print(
        f"[pool-demo] oracle slot={index} log_raw={obs.log_instant_raw_price} "
        f"log_clamped={obs.log_instant_clamped_price}"
    )
    print("[pool-demo] OK")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
