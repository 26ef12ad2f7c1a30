#!/usr/bin/env python3
import argparse
import os
from typing import List, NamedTuple, Optional

import constants
from reports.daily_report import is_valid_address


class AppConfig(NamedTuple):
    """Typed configuration object."""
    address: str
    etherscan_api_key: str
    explorer_url: str
    chain_id: int
    rpc_url: str
    onchain_fallback: bool
    quote_stagger: float
    extra_alpha: List[str]
    show_all_trades: bool
    verbose: bool


def _env_flag(name: str) -> Optional[bool]:
    value = os.environ.get(name)
    if value is None:
        return None
    return value.lower() not in {"0", "false", "no", "off", ""}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Score today's alpha trading and compute token PNL for a BSC address.",
        epilog="Example: ./main.py 0x1234...abcd --onchain-fallback",
    )
    parser.add_argument('address', help='Wallet address to analyse (0x + 40 hex chars).')
    parser.add_argument('--api-key', help=f'Explorer API key (default: ${constants.ETHERSCAN_API_KEY_ENV_VAR}).')
    parser.add_argument('--explorer-url', default=constants.ETHERSCAN_API_BASE_URL, help='Explorer API base URL.')
    parser.add_argument('--chain-id', type=int, default=constants.BSC_CHAIN_ID, help='Explorer chain id (default: 56).')
    parser.add_argument('--rpc-url', help=f'BSC JSON-RPC endpoint for on-chain quotes (default: ${constants.BSC_RPC_URL_ENV_VAR} or a public node).')
    parser.add_argument('--onchain-fallback', action='store_true', help='Quote tokens missing from the alpha list on PancakeSwap V3.')
    parser.add_argument('--quote-stagger', type=float, default=constants.QUOTE_STAGGER_DELAY, help='Seconds between staggered on-chain quotes (default: 0.1).')
    parser.add_argument('--extra-alpha', nargs='*', default=[], help='Additional token addresses to treat as alpha tokens.')
    parser.add_argument('--show-all-trades', action='store_true', help='Also list trades that do not count towards the score.')
    parser.add_argument('--verbose', action='store_true', help='Enable debug logging.')
    return parser


def load_config(argv: Optional[List[str]] = None) -> AppConfig:
    """
    Parses command-line arguments and loads environment variables to create a configuration object.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if not is_valid_address(args.address):
        parser.error(f"Invalid address: {args.address}")
    for extra in args.extra_alpha or []:
        if not is_valid_address(extra):
            parser.error(f"Invalid --extra-alpha address: {extra}")
    if args.quote_stagger < 0:
        parser.error('--quote-stagger must not be negative.')

    api_key = args.api_key or os.environ.get(constants.ETHERSCAN_API_KEY_ENV_VAR)
    if not api_key:
        parser.error(f"An explorer API key is required (--api-key or {constants.ETHERSCAN_API_KEY_ENV_VAR}).")

    rpc_url = args.rpc_url or os.environ.get(constants.BSC_RPC_URL_ENV_VAR) or constants.DEFAULT_BSC_RPC_URL

    onchain_fallback = args.onchain_fallback
    env_fallback = _env_flag(constants.ONCHAIN_FALLBACK_ENABLED_ENV_VAR)
    if not onchain_fallback and env_fallback is not None:
        onchain_fallback = env_fallback

    return AppConfig(
        address=args.address.lower(),
        etherscan_api_key=api_key,
        explorer_url=args.explorer_url,
        chain_id=args.chain_id,
        rpc_url=rpc_url,
        onchain_fallback=onchain_fallback,
        quote_stagger=args.quote_stagger,
        extra_alpha=[a.lower() for a in args.extra_alpha or []],
        show_all_trades=args.show_all_trades,
        verbose=args.verbose,
    )
