"""
Application entry point.

This module defines a simple command‑line interface for running a
backtest.  It loads the YAML configuration and a price CSV, replays
the prices through a MACD/Donchian account, prints the trade log and
writes report files.
"""

from __future__ import annotations

import argparse
import logging
from typing import List, Optional

from .config.schema import load_config
from .execution.backtest_exec import BacktestEngine
from .reporting.indicators import compute_indicators
from .reporting.report import format_trade_log, generate_backtest_report


def _setup_logging(verbose: bool) -> None:
    """Configure logging for the application."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
    )


def main(argv: Optional[List[str]] = None) -> None:
    """Parse command‑line arguments and run the backtest."""
    parser = argparse.ArgumentParser(description="MACD/Donchian strategy backtester")
    parser.add_argument('--config', default='config.yaml', help="Path to configuration YAML file")
    parser.add_argument('--prices', help="Price CSV file, '-' for stdin (overrides data.csv_path)")
    parser.add_argument('--out', help="Output directory (overrides output_dir)")
    parser.add_argument('-v', '--verbose', action='store_true', help="Enable debug logging")
    args = parser.parse_args(argv)

    _setup_logging(args.verbose)

    config = load_config(args.config)
    if args.prices:
        config.data.csv_path = args.prices
    if args.out:
        config.output_dir = args.out

    logging.info("Running backtest...")
    engine = BacktestEngine(config)
    result = engine.run()

    print(format_trade_log(result.trades, result.opening_balance))

    indicators = compute_indicators(result.frames, engine.trading_strategy, engine.risk_strategy)
    generate_backtest_report(result.trades, result.equity_curve, out_dir=config.output_dir, indicators=indicators)
    logging.info("Backtest complete. Results saved to the '%s' directory.", config.output_dir)


if __name__ == '__main__':
    main()
