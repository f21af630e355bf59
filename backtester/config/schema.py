"""
Configuration schema and loader.

This module defines dataclasses that mirror the expected structure of
the YAML configuration file (`config.yaml`).  A helper function
`load_config()` reads a YAML file from disk and returns an instance
of `Config` populated with defaults for any missing fields.

Monetary and price values are held as `Decimal`.  YAML numbers are
converted through their string form so that ``0.05`` stays exactly
``0.05`` rather than the nearest binary float.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Optional
import yaml


def to_decimal(value: Any) -> Decimal:
    """Convert a YAML scalar to `Decimal` without float rounding noise."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass
class MarketConfig:
    """Dealing rules of the traded instrument.

    Attributes
    ----------
    code : str
        Instrument code (e.g. ``GDAXI``).
    currency : str
        Currency of the account and of deal sizes (e.g. ``GBP``).
    margin_factor : Decimal
        Fraction of the notional exposure held as margin (0.05 = 5 %).
    min_deal_size : Decimal
        Minimum size per point, in `currency`.
    min_stop_distance : Decimal
        Minimum distance in points between entry and stop-loss.
    """

    code: str = "GDAXI"
    currency: str = "GBP"
    margin_factor: Decimal = Decimal("0.05")
    min_deal_size: Decimal = Decimal("0.50")
    min_stop_distance: Decimal = Decimal("12")


@dataclass
class MACDConfig:
    """Trend strategy parameters; thresholds are in MACD points."""

    short: int = 12
    long: int = 42
    signal: int = 10
    entry_threshold: Decimal = Decimal("40")
    exit_threshold: Decimal = Decimal("40")


@dataclass
class DonchianConfig:
    """Stop-loss channel length in frames."""

    channel_length: int = 20


@dataclass
class AccountConfig:
    """Account parameters.

    Attributes
    ----------
    opening_balance : Decimal
        Starting balance in the market currency.
    risk_per_trade : Decimal
        Fraction of the balance risked on each new position (0.03 = 3 %).
    """

    opening_balance: Decimal = Decimal("20000.00")
    risk_per_trade: Decimal = Decimal("0.03")


@dataclass
class DataConfig:
    """Price data configuration.

    Attributes
    ----------
    csv_path : str
        CSV file of mid-price candles.  ``-`` reads from standard input.
    spread : Decimal
        Spread in points applied around every mid price.
    timezone : str
        IANA timezone used for naive timestamps in the CSV.
    """

    csv_path: str = "data/prices.csv"
    spread: Decimal = Decimal("5")
    timezone: str = "UTC"


@dataclass
class Config:
    """Root configuration for a backtest run."""

    timeframe: str = "D1"
    market: MarketConfig = field(default_factory=MarketConfig)
    macd: MACDConfig = field(default_factory=MACDConfig)
    donchian: DonchianConfig = field(default_factory=DonchianConfig)
    account: AccountConfig = field(default_factory=AccountConfig)
    data: DataConfig = field(default_factory=DataConfig)
    output_dir: str = "results"


def _merge_dict(defaults: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge two dictionaries.

    The values in `override` take precedence over those in `defaults`.
    This helper is used when loading YAML into nested dataclasses.
    """
    result: Dict[str, Any] = defaults.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _merge_dict(result[key], value)
        else:
            result[key] = value
    return result


def config_from_dict(raw: Optional[Dict[str, Any]]) -> Config:
    """Build a `Config` from a plain dictionary, filling in defaults."""
    defaults: Dict[str, Any] = {
        'timeframe': "D1",
        'market': {
            'code': "GDAXI",
            'currency': "GBP",
            'margin_factor': "0.05",
            'min_deal_size': "0.50",
            'min_stop_distance': "12",
        },
        'macd': {
            'short': 12,
            'long': 42,
            'signal': 10,
            'entry_threshold': "40",
            'exit_threshold': "40",
        },
        'donchian': {
            'channel_length': 20,
        },
        'account': {
            'opening_balance': "20000.00",
            'risk_per_trade': "0.03",
        },
        'data': {
            'csv_path': "data/prices.csv",
            'spread': "5",
            'timezone': "UTC",
        },
        'output_dir': "results",
    }

    merged = _merge_dict(defaults, raw or {})

    market = merged['market']
    market_cfg = MarketConfig(
        code=str(market['code']),
        currency=str(market['currency']).upper(),
        margin_factor=to_decimal(market['margin_factor']),
        min_deal_size=to_decimal(market['min_deal_size']),
        min_stop_distance=to_decimal(market['min_stop_distance']),
    )
    macd = merged['macd']
    macd_cfg = MACDConfig(
        short=int(macd['short']),
        long=int(macd['long']),
        signal=int(macd['signal']),
        entry_threshold=to_decimal(macd['entry_threshold']),
        exit_threshold=to_decimal(macd['exit_threshold']),
    )
    donchian_cfg = DonchianConfig(channel_length=int(merged['donchian']['channel_length']))
    account = merged['account']
    account_cfg = AccountConfig(
        opening_balance=to_decimal(account['opening_balance']),
        risk_per_trade=to_decimal(account['risk_per_trade']),
    )
    data = merged['data']
    data_cfg = DataConfig(
        csv_path=str(data['csv_path']),
        spread=to_decimal(data['spread']),
        timezone=str(data['timezone']),
    )

    return Config(
        timeframe=str(merged['timeframe']).upper(),
        market=market_cfg,
        macd=macd_cfg,
        donchian=donchian_cfg,
        account=account_cfg,
        data=data_cfg,
        output_dir=str(merged['output_dir']),
    )


def load_config(path: str) -> Config:
    """Load a configuration file from the given YAML path.

    Parameters
    ----------
    path : str
        Path to the YAML file.

    Returns
    -------
    Config
        A populated configuration object.  Missing fields are filled with
        the defaults defined in the dataclasses.
    """
    with open(path, "r", encoding="utf-8") as fh:
        raw: Dict[str, Any] = yaml.safe_load(fh) or {}
    return config_from_dict(raw)
