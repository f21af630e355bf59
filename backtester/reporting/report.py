"""
Report generation utilities.

This module turns backtest results into human‑readable artefacts:
a text table of the trade log for the terminal, CSV files of trades,
equity curve and indicators, a JSON summary of performance metrics and
a PNG chart of the equity curve.
"""

from __future__ import annotations

import os
import json
from typing import List, Optional
import pandas as pd
import matplotlib

# Use non‑interactive backend for environments without display
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from ..data.models import CurrencyAmount
from ..execution.models import Trade
from ..execution.backtest_exec import EquityPoint
from .metrics import compute_metrics

TIME_FORMAT = "%d-%b-%Y %H:%M"


def trades_dataframe(trades: List[Trade]) -> pd.DataFrame:
    """One row per trade with every field of the trade log."""
    columns = [
        'id', 'status', 'direction', 'entry_time', 'entry_price', 'exit_time',
        'exit_price', 'stop', 'size', 'risk', 'outcome', 'price_diff',
        'profit', 'risk_reward', 'currency',
    ]
    rows = [
        {
            'id': t.id,
            'status': str(t.status),
            'direction': str(t.direction),
            'entry_time': t.entry_time.isoformat(),
            'entry_price': t.entry_price,
            'exit_time': t.exit_time.isoformat() if t.exit_time else None,
            'exit_price': t.exit_price,
            'stop': t.stop,
            'size': t.size.amount,
            'risk': t.risk.amount,
            'outcome': str(t.outcome),
            'price_diff': t.price_diff,
            'profit': t.profit.amount,
            'risk_reward': t.risk_reward,
            'currency': t.size.currency,
        }
        for t in trades
    ]
    return pd.DataFrame(rows, columns=columns)


def format_trade_log(trades: List[Trade], opening_balance: CurrencyAmount) -> str:
    """Render the trade log as a text table with a running balance."""
    if not trades:
        return "No trades."

    balance = opening_balance
    rows = []
    for t in trades:
        balance += t.profit
        rows.append({
            'ID': t.id,
            'Status': str(t.status),
            'Entry': t.entry_time.strftime(TIME_FORMAT),
            'Price': t.entry_price,
            'Dir': str(t.direction),
            'Exit': t.exit_time.strftime(TIME_FORMAT) if t.exit_time else "-",
            'Exit price': t.exit_price if t.exit_price is not None else "-",
            'Stop': t.stop,
            'Change': t.price_diff,
            'Size': t.size.amount,
            'Risk': t.risk.amount,
            'Outcome': str(t.outcome),
            'Profit': t.profit.amount,
            'RR': round(t.risk_reward, 2),
            'Balance': balance.amount,
        })
    return pd.DataFrame(rows).to_string(index=False)


def generate_backtest_report(
    trades: List[Trade],
    equity_curve: List[EquityPoint],
    out_dir: str = "results",
    indicators: Optional[pd.DataFrame] = None,
) -> dict:
    """Generate report files for a backtest run.

    Creates the output directory if it does not exist and writes the
    following files:

    - `trades.csv` – detailed list of trades
    - `equity_curve.csv` – account balance after each closed trade
    - `summary.json` – performance metrics
    - `equity_curve.png` – line chart of the equity curve
    - `indicators.csv` – per-frame indicator values, when given

    Returns the metrics written to `summary.json`.
    """
    os.makedirs(out_dir, exist_ok=True)

    # Trades CSV
    df_trades = trades_dataframe(trades)
    trades_path = os.path.join(out_dir, 'trades.csv')
    df_trades.to_csv(trades_path, index=False)

    # Equity curve CSV
    eq_data = [
        {
            'timestamp': pt.timestamp.isoformat(),
            'equity': float(pt.equity.amount),
        }
        for pt in equity_curve
    ]
    df_eq = pd.DataFrame(eq_data, columns=['timestamp', 'equity'])
    eq_path = os.path.join(out_dir, 'equity_curve.csv')
    df_eq.to_csv(eq_path, index=False)

    if indicators is not None:
        indicators.to_csv(os.path.join(out_dir, 'indicators.csv'), index=False)

    # Summary JSON
    metrics = compute_metrics(trades, equity_curve)
    summary_path = os.path.join(out_dir, 'summary.json')
    with open(summary_path, 'w', encoding='utf-8') as fh:
        json.dump(metrics, fh, indent=2, ensure_ascii=False)

    # Equity curve plot
    fig, ax = plt.subplots(figsize=(10, 4))
    if not df_eq.empty:
        ax.step(pd.to_datetime(df_eq['timestamp']), df_eq['equity'], where='post', linewidth=1.5)
        ax.set_title('Equity Curve')
        ax.set_xlabel('Time')
        ax.set_ylabel('Balance')
        fig.autofmt_xdate()
    fig.tight_layout()
    plot_path = os.path.join(out_dir, 'equity_curve.png')
    fig.savefig(plot_path)
    plt.close(fig)

    return metrics
