import requests

from courier_rates.api.fedex import FedExAuth, FedExClient, FedExConfig
from courier_rates.models import RateRequest

TOKEN_URL = "https://fedex.test/oauth/token"
RATE_URL = "https://fedex.test/rate/v1/rates/quotes"


def _client(transport, **auth):
    return FedExClient(
        FedExAuth(client_id=auth.get("client_id", "id"),
                  client_secret=auth.get("client_secret", "secret"),
                  token_url=TOKEN_URL),
        FedExConfig(rate_url=RATE_URL, account_number="740561073"),
        transport=transport,
    )


def _request(**kw):
    base = dict(origin_pincode="110001", destination_pincode="400001",
                weight=1.2, declared_value=1000)
    base.update(kw)
    return RateRequest(**base)


def _reply(*details):
    return {"output": {"rateReplyDetails": list(details)}}


def test_token_request_uses_form_body(transport, response):
    transport.add("POST", "oauth", response(200, {"access_token": "tok", "expires_in": 3600}))
    client = _client(transport)

    assert client.authenticate() == "tok"
    call = transport.calls[0]
    assert call["data"] == {"grant_type": "client_credentials",
                            "client_id": "id", "client_secret": "secret"}
    assert call["headers"]["Content-Type"] == "application/x-www-form-urlencoded"


def test_token_is_cached_between_calls(transport, response):
    transport.add("POST", "oauth", response(200, {"access_token": "tok", "expires_in": 3600}))
    transport.add("POST", "rates", response(200, _reply()))
    client = _client(transport)

    client.fetch_rates(_request())
    client.fetch_rates(_request())
    assert len(transport.calls_to("oauth")) == 1
    assert len(transport.calls_to("rates")) == 2


def test_token_failure_yields_no_rates_and_no_quote_call(transport, response):
    transport.add("POST", "oauth", response(401, {"errors": [{"code": "NOT.AUTHORIZED.ERROR"}]}))
    client = _client(transport)

    result = client.fetch_rates(_request())
    assert result.rates == []
    assert result.error
    assert transport.calls_to("rates") == []


def test_token_exception_returns_none(transport):
    transport.add("POST", "oauth", requests.ConnectionError("boom"))
    assert _client(transport).authenticate() is None


def test_missing_dimensions_default_to_ten(transport, response):
    transport.add("POST", "oauth", response(200, {"access_token": "tok"}))
    transport.add("POST", "rates", response(200, _reply()))
    _client(transport).fetch_rates(_request())

    body = transport.calls_to("rates")[0]["json"]
    item = body["requestedShipment"]["requestedPackageLineItems"][0]
    assert item["dimensions"] == {"length": 10, "width": 10, "height": 10, "units": "CM"}
    assert item["weight"] == {"units": "KG", "value": 1.2}
    assert body["requestedShipment"]["shipper"]["address"] == {
        "postalCode": "110001", "countryCode": "IN"}
    assert body["accountNumber"] == {"value": "740561073"}


def test_quote_uses_bearer_token(transport, response):
    transport.add("POST", "oauth", response(200, {"access_token": "tok"}))
    transport.add("POST", "rates", response(200, _reply()))
    _client(transport).fetch_rates(_request(length=30, width=20, height=15))

    call = transport.calls_to("rates")[0]
    assert call["headers"]["Authorization"] == "Bearer tok"
    dims = call["json"]["requestedShipment"]["requestedPackageLineItems"][0]["dimensions"]
    assert (dims["length"], dims["width"], dims["height"]) == (30, 20, 15)


def test_reply_mapping_skips_details_without_charge(transport, response):
    transport.add("POST", "oauth", response(200, {"access_token": "tok"}))
    transport.add("POST", "rates", response(200, _reply(
        {"serviceType": "PRIORITY_OVERNIGHT",
         "ratedShipmentDetails": [{"totalNetCharge": 250, "currency": "INR"}]},
        {"serviceType": "STANDARD_OVERNIGHT", "ratedShipmentDetails": [{}]},
        {"serviceType": "FEDEX_EXPRESS_SAVER",
         "ratedShipmentDetails": [{"totalNetCharge": 199.5, "currency": "INR"}]},
    )))

    result = _client(transport).fetch_rates(_request())
    assert result.ok
    assert [(r.courier_name, r.service_name, r.rate, r.currency) for r in result.rates] == [
        ("FedEx", "PRIORITY_OVERNIGHT", 250.0, "INR"),
        ("FedEx", "FEDEX_EXPRESS_SAVER", 199.5, "INR"),
    ]


def test_quote_http_error_is_contained(transport, response):
    transport.add("POST", "oauth", response(200, {"access_token": "tok"}))
    transport.add("POST", "rates", response(500, text="<html>oops</html>"))

    result = _client(transport).fetch_rates(_request())
    assert result.rates == []
    assert "500" in result.error


def test_unconfigured_client_is_skipped(transport):
    result = _client(transport, client_id="").fetch_rates(_request())
    assert result.skipped
    assert transport.calls == []
