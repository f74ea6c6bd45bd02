"""
Tests for rate tables, the rate converter and the rate fetcher
"""

import json
from decimal import Decimal

import httpx
import pytest

from currency_annotator.conversion.models import ConversionConfig, SettingsUpdate, default_config
from currency_annotator.conversion.rate_converter import (
    NOT_AVAILABLE, convert, format_amount, resolve_fee_percent
)
from currency_annotator.conversion.rate_fetcher import RateFetcher
from currency_annotator.conversion.rates import ExchangeRateTable
from currency_annotator.exceptions import RateFetchError


class TestConversionConfig:

    def test_settings_aliases(self):
        """Test configs accept the settings-store field names"""
        config = ConversionConfig.model_validate({
            "isActive": True,
            "fromCurrency": "eur",
            "toCurrency": "usd",
            "cardIssuer": "visa",
            "customFee": 1.5
        })

        assert config.active is True
        assert config.source_mode == "EUR"
        assert config.target_code == "USD"
        assert config.fee_selector == "visa"
        assert config.custom_fee_percent == 1.5
        assert config.to_settings()["toCurrency"] == "USD"

    def test_auto_mode_normalized(self):
        assert ConversionConfig(source_mode="AUTO").auto_detect
        assert ConversionConfig(source_mode="").source_mode == "auto"

    def test_config_is_immutable(self):
        config = ConversionConfig()
        with pytest.raises(Exception):
            config.active = True

    def test_negative_custom_fee_rejected(self):
        with pytest.raises(Exception):
            ConversionConfig(custom_fee_percent=-1)

    def test_install_defaults(self):
        config = default_config()

        assert config.active is False
        assert config.source_mode == "auto"
        assert config.target_code == "JPY"
        assert config.fee_selector == "none"

    def test_settings_update_splits_presets(self):
        update = SettingsUpdate.model_validate({
            "isActive": True,
            "toCurrency": "JPY",
            "feePresets": {"myBank": 1.25}
        })

        assert update.fee_presets == {"myBank": 1.25}
        assert type(update.to_config()) is ConversionConfig
        assert update.to_config().active is True


class TestExchangeRateTable:

    def test_pivot_rate_added(self):
        table = ExchangeRateTable(base="usd", rates={"JPY": 150})

        assert table.base == "USD"
        assert table.rates["USD"] == 1.0
        assert table.rate("JPY") == Decimal("150.0")
        assert table.rate("XYZ") is None

    @pytest.mark.parametrize("bad_rate", [0, -1.5, "1.2", None, True])
    def test_non_positive_rates_rejected(self, bad_rate):
        with pytest.raises(RateFetchError):
            ExchangeRateTable(base="USD", rates={"EUR": bad_rate})

    def test_rates_are_read_only(self, rates):
        with pytest.raises(TypeError):
            rates.rates["EUR"] = 2.0

    def test_dict_round_trip(self, rates):
        restored = ExchangeRateTable.from_dict(json.loads(json.dumps(rates.to_dict())))

        assert restored.base == rates.base
        assert restored.fetched_at == rates.fetched_at
        assert dict(restored.rates) == dict(rates.rates)

    def test_from_malformed_dict(self):
        with pytest.raises(RateFetchError):
            ExchangeRateTable.from_dict({"rates": {"EUR": 0.9}})


class TestRateConverter:

    def test_convert_through_pivot(self, registry, rates, make_config):
        config = make_config(target="JPY")
        assert convert(Decimal("10"), "USD", "JPY", rates, config, registry) == "¥1,500"

    def test_convert_into_pivot(self, registry, rates, make_config):
        """50 / 0.9 = 55.56 rounds to 56"""
        config = make_config(target="USD")
        assert convert(Decimal("50.00"), "EUR", "USD", rates, config, registry) == "$56"

    def test_convert_between_non_pivot(self, registry, rates, make_config):
        """1000 GBP -> 1250 USD -> 1125 EUR"""
        config = make_config(target="EUR")
        assert convert(Decimal("1000"), "GBP", "EUR", rates, config, registry) == "€1,125"

    def test_missing_rate(self, registry, make_config):
        rates = ExchangeRateTable(base="USD", rates={"JPY": 150})
        config = make_config(target="JPY")

        assert convert(Decimal("5"), "GBP", "JPY", rates, config, registry) == NOT_AVAILABLE
        assert convert(Decimal("5"), "USD", "JPY", None, config, registry) == NOT_AVAILABLE

    def test_target_without_symbol_uses_code(self, registry, make_config):
        rates = ExchangeRateTable(base="USD", rates={"CHF": 0.88})
        config = make_config(target="CHF")

        assert convert(Decimal("100"), "USD", "CHF", rates, config, registry) == "CHF88"

    def test_fee_applied(self, registry, rates, make_config):
        """2% visa fee: 100 USD -> 90 EUR -> 91.8 EUR"""
        config = make_config(target="EUR", issuer="visa")
        assert convert(Decimal("100"), "USD", "EUR", rates, config, registry) == "€92"

    def test_rounding_half_up(self, registry, rates, make_config):
        config = make_config(target="USD")
        assert convert(Decimal("2.5"), "USD", "USD", rates, config, registry) == "$3"

    def test_fee_monotonicity(self, registry, rates, make_config):
        """Test a higher fee never lowers the displayed amount"""
        previous = -1
        for fee in [0, 0.1, 0.5, 1, 1.8, 2.5, 3, 5, 10, 25]:
            config = make_config(target="JPY", issuer="custom", custom_fee=fee)
            display = convert(Decimal("19.99"), "EUR", "JPY", rates, config, registry)
            value = int(display.lstrip("¥").replace(",", ""))

            assert value >= previous
            previous = value

    def test_format_amount_groups_thousands(self):
        assert format_amount(Decimal("1234567.5")) == "1,234,568"
        assert format_amount(Decimal("0.4")) == "0"


class TestFeeResolution:

    def test_custom_fee(self, registry, make_config):
        config = make_config(issuer="custom", custom_fee=4.2)
        assert resolve_fee_percent(config, registry) == 4.2

    def test_per_target_override_first(self, registry, make_config):
        assert resolve_fee_percent(make_config(target="JPY", issuer="visa"), registry) == 1.0
        assert resolve_fee_percent(make_config(target="EUR", issuer="visa"), registry) == 2.0

    def test_preset_after_issuers(self, registry, make_config):
        registry = registry.with_presets({"myBank": 1.5, "visa": 9.9})

        assert resolve_fee_percent(make_config(target="EUR", issuer="myBank"), registry) == 1.5
        assert resolve_fee_percent(make_config(target="EUR", issuer="visa"), registry) == 2.0

    def test_unknown_selector_is_free(self, registry, make_config):
        assert resolve_fee_percent(make_config(issuer="unknown"), registry) == 0.0


def _transport(handler):
    return httpx.MockTransport(handler)


class TestRateFetcher:

    @pytest.mark.asyncio
    async def test_refresh_success_writes_cache(self, tmp_path, rate_payload):
        cache_path = tmp_path / "rates.json"
        requested = []

        def handler(request):
            requested.append(str(request.url))
            return httpx.Response(200, json=rate_payload)

        fetcher = RateFetcher(
            base="USD",
            url_template="https://rates.test/latest/{base}",
            cache_path=str(cache_path),
            transport=_transport(handler)
        )
        table = await fetcher.refresh()

        assert requested == ["https://rates.test/latest/USD"]
        assert table.base == "USD"
        assert table.rates["JPY"] == 150.0
        assert fetcher.current is table
        assert fetcher.last_error is None
        assert json.loads(cache_path.read_text(encoding="utf-8"))["rates"]["EUR"] == 0.9

    @pytest.mark.asyncio
    async def test_failure_keeps_previous_table(self, tmp_path, rate_payload):
        responses = [httpx.Response(200, json=rate_payload), httpx.Response(503)]

        fetcher = RateFetcher(
            url_template="https://rates.test/latest/{base}",
            cache_path=str(tmp_path / "rates.json"),
            transport=_transport(lambda request: responses.pop(0))
        )
        first = await fetcher.refresh()
        second = await fetcher.refresh()

        assert second is first
        assert second.fetched_at == first.fetched_at
        assert "503" in fetcher.last_error

    @pytest.mark.asyncio
    async def test_failure_falls_back_to_cache(self, tmp_path, rates):
        cache_path = tmp_path / "rates.json"
        cache_path.write_text(json.dumps(rates.to_dict()), encoding="utf-8")

        def handler(request):
            raise httpx.ConnectError("network down", request=request)

        fetcher = RateFetcher(
            url_template="https://rates.test/latest/{base}",
            cache_path=str(cache_path),
            transport=_transport(handler)
        )
        table = await fetcher.refresh()

        assert table is not None
        assert table.fetched_at == rates.fetched_at
        assert table.rates["GBP"] == 0.8

    @pytest.mark.asyncio
    async def test_failure_without_any_rates(self, tmp_path):
        fetcher = RateFetcher(
            url_template="https://rates.test/latest/{base}",
            cache_path=str(tmp_path / "missing" / "rates.json"),
            transport=_transport(lambda request: httpx.Response(500))
        )

        assert await fetcher.refresh() is None
        assert fetcher.last_error

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [
        {"result": "error", "error-type": "unsupported-code"},
        {"result": "success", "base_code": "EUR", "rates": {"USD": 1.1}},
        {"result": "success", "base_code": "USD", "rates": {"EUR": -0.9}},
        ["not", "an", "object"],
    ])
    async def test_invalid_payload_rejected(self, tmp_path, payload):
        fetcher = RateFetcher(
            url_template="https://rates.test/latest/{base}",
            cache_path=str(tmp_path / "rates.json"),
            transport=_transport(lambda request: httpx.Response(200, json=payload))
        )

        with pytest.raises(RateFetchError):
            await fetcher.fetch()
