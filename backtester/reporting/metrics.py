"""
Performance metrics calculations.

This module provides helpers to compute summary statistics from a
trade log and an equity curve.  Values are returned as plain floats
and ints so the result can be written straight to JSON.
"""

from __future__ import annotations

from typing import List
import math

from ..execution.models import Trade, TradeOutcome, TradeStatus
from ..execution.backtest_exec import EquityPoint


def compute_metrics(trades: List[Trade], equity_curve: List[EquityPoint]) -> dict:
    """Compute a set of summary statistics for the backtest.

    Parameters
    ----------
    trades : list of Trade
        Trade log; only closed trades count towards the statistics,
        open trades are reported as unrealised profit.
    equity_curve : list of EquityPoint
        Timestamped balance values after each closed trade.

    Returns
    -------
    dict
        Dictionary of performance metrics.
    """
    closed = [t for t in trades if t.status == TradeStatus.CLOSED]
    unrealised = sum(float(t.profit.amount) for t in trades if t.status == TradeStatus.OPEN)

    if not equity_curve:
        return {
            'total_return': 0.0,
            'max_drawdown': 0.0,
            'sharpe': 0.0,
            'win_rate': 0.0,
            'profit_factor': 0.0,
            'avg_trade': 0.0,
            'avg_risk_reward': 0.0,
            'unrealised_profit': unrealised,
            'num_trades': len(closed),
        }

    starting_equity = float(equity_curve[0].equity.amount)
    ending_equity = float(equity_curve[-1].equity.amount)
    total_return = (ending_equity - starting_equity) / starting_equity if starting_equity else 0.0

    # Compute drawdown
    max_equity = starting_equity
    max_drawdown = 0.0
    for point in equity_curve:
        equity = float(point.equity.amount)
        if equity > max_equity:
            max_equity = equity
        drawdown = (max_equity - equity) / max_equity if max_equity else 0.0
        if drawdown > max_drawdown:
            max_drawdown = drawdown

    # Sharpe ratio over per-trade R multiples
    returns: List[float] = [float(t.risk_reward) for t in closed if t.risk.amount != 0]
    if returns:
        mean_ret = sum(returns) / len(returns)
        variance = sum((r - mean_ret) ** 2 for r in returns) / len(returns)
        std_dev = math.sqrt(variance)
        sharpe = (mean_ret / std_dev) * math.sqrt(len(returns)) if std_dev > 0 else 0.0
        avg_risk_reward = mean_ret
    else:
        sharpe = 0.0
        avg_risk_reward = 0.0

    # Win rate and profit factor
    profits = [float(t.profit.amount) for t in closed]
    wins = [float(t.profit.amount) for t in closed if t.outcome == TradeOutcome.PROFIT]
    losses = [p for p in profits if p < 0]
    win_rate = len(wins) / len(closed) if closed else 0.0
    gross_profit = sum(wins)
    gross_loss = -sum(losses) if losses else 0.0
    profit_factor = gross_profit / gross_loss if gross_loss > 0 else 0.0

    avg_trade = sum(profits) / len(profits) if profits else 0.0

    return {
        'total_return': total_return,
        'max_drawdown': max_drawdown,
        'sharpe': sharpe,
        'win_rate': win_rate,
        'profit_factor': profit_factor,
        'avg_trade': avg_trade,
        'avg_risk_reward': avg_risk_reward,
        'unrealised_profit': unrealised,
        'num_trades': len(closed),
    }
