"""
Test configuration and fixtures
"""

import json

import pytest

from currency_annotator.annotation.engine import ConversionEngine
from currency_annotator.annotation.text_annotator import TextAnnotator
from currency_annotator.conversion.models import ConversionConfig
from currency_annotator.conversion.rates import ExchangeRateTable
from currency_annotator.config import settings
from currency_annotator.detection.registry import load, load_from_files


SAMPLE_SYMBOLS = {"$": "USD", "€": "EUR", "£": "GBP", "¥": "JPY"}
SAMPLE_FEES = {"none": 0, "visa": 2.0, "JPY": {"visa": 1.0}}
SAMPLE_RATES = {"USD": 1, "JPY": 150, "EUR": 0.9, "GBP": 0.8}


@pytest.fixture
def registry():
    """Small registry matching the sample rate table"""
    return load(SAMPLE_SYMBOLS, SAMPLE_FEES)


@pytest.fixture
def packaged_registry():
    """Registry built from the bundled data documents"""
    return load_from_files(settings.symbols_path, settings.card_fees_path)


@pytest.fixture
def rates():
    """Rate table against USD"""
    return ExchangeRateTable(base="USD", rates=SAMPLE_RATES, fetched_at=1700000000.0)


@pytest.fixture
def make_config():
    """Factory for active conversion configs"""
    def _make(target="JPY", source="auto", issuer="none", custom_fee=0.0, active=True):
        return ConversionConfig(
            active=active,
            source_mode=source,
            target_code=target,
            fee_selector=issuer,
            custom_fee_percent=custom_fee
        )
    return _make


@pytest.fixture
def config(make_config):
    """Active auto-detect config converting to JPY"""
    return make_config()


@pytest.fixture
def annotator():
    """Fresh annotator with an empty fragment store"""
    return TextAnnotator()


@pytest.fixture
def engine(registry, rates, config):
    """Active engine over the sample registry and rates"""
    return ConversionEngine(registry=registry, config=config, rates=rates)


@pytest.fixture
def rate_payload():
    """Payload in the shape returned by the rate provider"""
    return {
        "result": "success",
        "base_code": "USD",
        "time_last_update_unix": 1700000000,
        "rates": SAMPLE_RATES
    }


@pytest.fixture
def data_files(tmp_path):
    """Registry source documents written to disk"""
    symbols_path = tmp_path / "currency_symbols.json"
    fees_path = tmp_path / "card_fees.json"
    symbols_path.write_text(json.dumps(SAMPLE_SYMBOLS), encoding="utf-8")
    fees_path.write_text(json.dumps(SAMPLE_FEES), encoding="utf-8")
    return symbols_path, fees_path
