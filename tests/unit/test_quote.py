import asyncio

import pytest

from courier_rates.aggregator import RateAggregator, build_aggregator
from courier_rates.models import BillingMode, EnvCfg, PaymentType, ProviderResult
from courier_rates.quote import (
    NoRatesFoundError,
    RateRequestError,
    calculate_rates,
    parse_quote_body,
)


def _body(**overrides):
    body = {
        "origin": {"pincode": "110001"},
        "destination": {"pincode": "400001"},
        "packages": [{"weight": 1.0, "length": 20, "width": 15, "height": 0}],
    }
    body.update(overrides)
    return body


@pytest.mark.parametrize("body", [
    {},
    {"origin": {"pincode": "110001"}, "destination": {"pincode": "400001"}},
    {"origin": {"pincode": "110001"}, "destination": {}, "packages": [{"weight": 1}]},
    {"origin": {"pincode": ""}, "destination": {"pincode": "400001"}, "packages": [{"weight": 1}]},
    {"origin": {"pincode": "110001"}, "destination": {"pincode": "400001"}, "packages": []},
])
def test_missing_fields_rejected(body):
    with pytest.raises(RateRequestError, match="Missing required fields"):
        parse_quote_body(body)


def test_zero_total_weight_rejected():
    with pytest.raises(RateRequestError, match="greater than zero"):
        parse_quote_body(_body(packages=[{"weight": 0}, {"weight": "abc"}]))


def test_unknown_payment_type_rejected():
    with pytest.raises(RateRequestError):
        parse_quote_body(_body(paymentType="Cheque"))


def test_packages_are_collapsed_into_one_request():
    body = _body(packages=[
        {"weight": 1.0, "length": 20, "width": 15, "height": 0},
        {"weight": "0.5", "length": 99, "width": 99, "height": 99},
    ])
    request, detailed = parse_quote_body(body)

    assert request.weight == 1.5
    assert (request.length, request.width, request.height) == (20, 15, 10)
    assert request.payment_type is PaymentType.PREPAID
    assert request.declared_value == 1000
    assert detailed.weight == 1.5
    assert detailed.pieces == 1
    assert detailed.billing_mode is BillingMode.EXPRESS
    assert detailed.shipment_status == ""


def test_optional_fields_are_carried_through():
    request, detailed = parse_quote_body(_body(
        paymentType="Pre-paid", declaredValue=2500, pieces=3, billingMode="S", status="RTO"))

    assert request.payment_type is PaymentType.PREPAID
    assert request.declared_value == 2500
    assert detailed.pieces == 3
    assert detailed.billing_mode is BillingMode.SURFACE
    assert detailed.shipment_status == "RTO"


class _Fixed:
    def __init__(self, name, rates=(), detailed=()):
        self.name = name
        self._rates = list(rates)
        self._detailed = list(detailed)

    def fetch_rates(self, request):
        return ProviderResult.success(self.name, self._rates)

    def fetch_detailed_rates(self, request):
        return ProviderResult.success(self.name, self._detailed)


def test_no_rates_anywhere_raises():
    aggregator = RateAggregator([_Fixed("fedex")], [_Fixed("delhivery")])
    with pytest.raises(NoRatesFoundError, match="No rates found from any courier"):
        asyncio.run(calculate_rates(aggregator, _body()))


def test_bad_body_never_reaches_providers():
    class Exploding(_Fixed):
        def fetch_rates(self, request):
            raise AssertionError("provider called")

    with pytest.raises(RateRequestError):
        asyncio.run(calculate_rates(RateAggregator([Exploding("fedex")]), {}))


def _env():
    return EnvCfg(
        FEDEX_CLIENT_ID="id",
        FEDEX_CLIENT_SECRET="secret",
        FEDEX_ACCOUNT_NUMBER="740561073",
        DELHIVERY_API_TOKEN="dl-token",
        SHIPROCKET_AUTH_TOKEN="sr-token",
    )


def test_three_providers_end_to_end(transport, response):
    transport.add("POST", "oauth/token", response(200, {"access_token": "tok", "expires_in": 3600}))
    transport.add("POST", "rates/quotes", response(200, {"output": {"rateReplyDetails": [{
        "serviceType": "STANDARD_OVERNIGHT",
        "ratedShipmentDetails": [{"totalNetCharge": 250, "currency": "INR"}],
    }]}}))
    transport.add("GET", "rate_calculator", response(200, {"rate": 180}))
    transport.add("GET", "serviceability", response(200, {"status": 200, "data": {
        "available_courier_companies": [
            {"courier_company_id": 43, "courier_name": "Ekart", "rate": 150, "etd": "Oct 22, 2026"},
        ]}}))

    aggregator = build_aggregator(_env(), transport_factory=lambda: transport)
    result = asyncio.run(calculate_rates(aggregator, _body()))

    assert [(r["courierName"], r["rate"]) for r in result["rates"]] == [
        ("Ekart", 150.0), ("Delhivery", 180.0), ("FedEx", 250.0)]
    assert result["rates"][0]["serviceName"] == "Standard"
    assert result["rates"][2]["serviceName"] == "STANDARD_OVERNIGHT"

    # no shipment status: the invoice/charges endpoint is not called
    assert transport.calls_to("invoice/charges") == []
    assert [(r["courier_name"], r["_provider"]) for r in result["detailedRates"]] == [
        ("Ekart", "shiprocket")]


@pytest.mark.parametrize("bad", ["nan", "inf", float("inf")])
def test_non_finite_weight_is_rejected(bad):
    with pytest.raises(RateRequestError, match="greater than zero"):
        parse_quote_body(_body(packages=[{"weight": bad}]))


@pytest.mark.parametrize("bad", ["nan", "inf", 1e400])
def test_non_finite_numbers_fall_back_to_defaults(bad):
    request, detailed = parse_quote_body(_body(pieces=bad, declaredValue=bad))
    assert detailed.pieces == 1
    assert request.declared_value == 1000
