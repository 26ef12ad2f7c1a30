"""Plain-text rendering of a daily alpha analysis for the console."""
from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from analysis.models import AnalysisReport, TokenBalance, TradeInfo
from constants import C_GREEN, C_RED, C_RESET, C_YELLOW

_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")
_PROGRESS_BAR_WIDTH = 30


def is_valid_address(address: Optional[str]) -> bool:
    return bool(address) and bool(_ADDRESS_RE.match(address))


def shorten_address(address: str, chars: int = 4) -> str:
    if not address:
        return ""
    return f"{address[:chars + 2]}...{address[-chars:]}"


def format_number(num: float, decimals: int = 2) -> str:
    if num == 0:
        return "0"
    if abs(num) < 0.01:
        return f"{num:.6f}"
    return f"{num:.{decimals}f}"


def format_usd(amount: float) -> str:
    if amount == 0:
        return "$0.00"
    if abs(amount) < 0.01:
        return f"${amount:.6f}"
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def format_large_number(num: float) -> str:
    if num >= 1e9:
        return f"{num / 1e9:.2f}B"
    if num >= 1e6:
        return f"{num / 1e6:.2f}M"
    if num >= 1e3:
        return f"{num / 1e3:.2f}K"
    return format_number(num)


def format_timestamp(timestamp: int) -> str:
    """UTC ``YYYY-MM-DD HH:MM`` for a unix timestamp."""
    return datetime.fromtimestamp(int(timestamp), tz=timezone.utc).strftime("%Y-%m-%d %H:%M")


def _colour_usd(amount: float) -> str:
    colour = C_GREEN if amount > 0 else C_RED if amount < 0 else ""
    return f"{colour}{format_usd(amount)}{C_RESET if colour else ''}"


def _progress_bar(percent: float) -> str:
    filled = int(round(_PROGRESS_BAR_WIDTH * max(0.0, min(percent, 100.0)) / 100))
    return "[" + "#" * filled + "-" * (_PROGRESS_BAR_WIDTH - filled) + f"] {percent:.1f}%"


def _table(headers: Sequence[str], rows: List[List[str]]) -> List[str]:
    widths = [len(h) for h in headers]
    for row in rows:
        for idx, cell in enumerate(row):
            widths[idx] = max(widths[idx], len(cell))

    def _format_line(row: Sequence[str]) -> str:
        return "  ".join(cell.ljust(widths[idx]) for idx, cell in enumerate(row))

    lines = [_format_line(headers), "  ".join("-" * w for w in widths)]
    lines.extend(_format_line(row) for row in rows)
    return lines


def _trade_rows(trades: Sequence[TradeInfo]) -> List[List[str]]:
    rows = []
    for trade in trades:
        rows.append([
            format_timestamp(trade.timestamp),
            f"{format_large_number(trade.sell_amount)} {trade.sell_leg.symbol or '?'}",
            f"{format_large_number(trade.buy_amount)} {trade.buy_leg.symbol or '?'}",
            format_usd(trade.usd_value),
            "Yes" if trade.is_qualifying else "No",
            shorten_address(trade.hash, 6),
        ])
    return rows


def _balance_rows(balances: Sequence[TokenBalance]) -> List[List[str]]:
    rows = []
    for balance in sorted(balances, key=lambda b: b.pnl, reverse=True):
        rows.append([
            balance.symbol or shorten_address(balance.contract_address),
            format_large_number(balance.total_in),
            format_large_number(balance.total_out),
            format_number(balance.net_amount, 4),
            format_usd(balance.current_price) if balance.current_price else "n/a",
            format_usd(balance.pnl),
        ])
    return rows


_TRADE_HEADERS = ["Time (UTC)", "Sold", "Bought", "Value", "Alpha", "Tx"]
_BALANCE_HEADERS = ["Token", "In", "Out", "Net", "Price", "PNL"]


def build_daily_report(report: AnalysisReport, show_all_trades: bool = False) -> str:
    alpha = report.alpha
    pnl = report.pnl
    heading = f"Daily alpha report for {shorten_address(report.address, 6)}"
    lines = [heading, "=" * len(heading)]
    lines.append(
        f"Transactions: {report.transaction_count} | Token transfers: {report.transfer_count} "
        f"| From block: {report.start_block}"
    )
    lines.append("")

    lines.append(f"Score: {alpha.score}")
    lines.append(f"Alpha volume: {format_usd(alpha.actual_value)} (counted x2: {format_usd(alpha.total_value)})")
    if alpha.level_info is not None:
        info = alpha.level_info
        lines.append(f"Level: {format_usd(info.current_level)} -> {format_usd(info.next_level)}")
        lines.append(_progress_bar(info.progress))
    lines.append(f"{C_YELLOW}Trade {format_usd(alpha.next_level_amount)} more to reach the next level.{C_RESET}")
    lines.append("")

    lines.append(f"Qualifying trades ({len(alpha.trades)})")
    if alpha.trades:
        lines.extend(_table(_TRADE_HEADERS, _trade_rows(alpha.trades)))
    else:
        lines.append("No qualifying alpha trades today.")

    if show_all_trades:
        lines.append("")
        lines.append(f"All trades ({len(pnl.all_trades)})")
        if pnl.all_trades:
            lines.extend(_table(_TRADE_HEADERS, _trade_rows(pnl.all_trades)))
        else:
            lines.append("No trades today.")

    lines.append("")
    lines.append(f"Token balances ({len(pnl.token_balances)})")
    if pnl.token_balances:
        lines.extend(_table(_BALANCE_HEADERS, _balance_rows(pnl.token_balances)))
    else:
        lines.append("No router-mediated token flow today.")

    lines.append("")
    lines.append(f"Total PNL: {_colour_usd(pnl.total_pnl)}")
    lines.append(f"Gas cost: {format_usd(pnl.total_gas_cost)}")
    lines.append(f"Net: {_colour_usd(pnl.total_pnl - pnl.total_gas_cost)}")
    return "\n".join(lines)
