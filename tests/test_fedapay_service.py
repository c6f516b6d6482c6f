"""FedaPay adapter against a mocked HTTP session."""
import uuid
from types import SimpleNamespace
from unittest import mock

import pytest
import requests

from storefront.domain.enums import CallbackOutcome
from storefront.domain.exceptions import ConfigurationError, GatewayError
from storefront.services.fedapay_service import API_URLS, FedaPayClient, FedaPayGateway


def response(payload, status_code=200):
    resp = mock.Mock()
    resp.status_code = status_code
    resp.json.return_value = payload
    if status_code >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status_code} error")
    return resp


@pytest.fixture
def http():
    return mock.Mock(spec=requests.Session)


@pytest.fixture
def payment_and_order():
    order = SimpleNamespace(
        id=uuid.uuid4(),
        order_number="ORD-20240131-3FA85F",
        customer_email="buyer@mailbox.org",
        customer_phone="+22990000000",
        shipping_address={"first_name": "Ada", "last_name": "Lovelace", "country": "BJ"},
    )
    payment = SimpleNamespace(id=uuid.uuid4(), amount=11500, currency="XOF")
    return payment, order


def test_create_transaction_opens_checkout(http, payment_and_order):
    payment, order = payment_and_order
    http.request.side_effect = [
        response({"v1/transaction": {"id": 4242, "status": "pending"}}),
        response({"token": "tok_abc", "url": "https://sandbox-checkout.fedapay.com/tok_abc"}),
    ]
    gateway = FedaPayGateway(
        client=FedaPayClient(secret_key="sk_test", environment="sandbox", session=http),
        callback_url="https://shop.test/webhooks/fedapay",
    )

    session = gateway.create_transaction(payment, order)

    assert session.reference == "4242"
    assert session.token == "tok_abc"
    assert session.payment_url == "https://sandbox-checkout.fedapay.com/tok_abc"

    create_call, token_call = http.request.call_args_list
    assert create_call.args == ("POST", f"{API_URLS['sandbox']}/transactions")
    body = create_call.kwargs["json"]
    assert body["amount"] == 11500
    assert body["currency"] == {"iso": "XOF"}
    assert body["callback_url"] == "https://shop.test/webhooks/fedapay"
    assert body["customer"]["phone_number"]["country"] == "bj"
    assert body["custom_metadata"] == {"payment_id": str(payment.id), "order_id": str(order.id)}
    assert create_call.kwargs["headers"]["Authorization"] == "Bearer sk_test"
    assert token_call.args == ("POST", f"{API_URLS['sandbox']}/transactions/4242/token")


def test_http_error_becomes_gateway_error(http, payment_and_order):
    http.request.return_value = response({"message": "invalid"}, status_code=422)
    gateway = FedaPayGateway(client=FedaPayClient(secret_key="sk_test", session=http))

    with pytest.raises(GatewayError):
        gateway.create_transaction(*payment_and_order)

    assert http.request.call_count == 1


def test_connection_errors_are_retried(http, payment_and_order):
    http.request.side_effect = requests.ConnectionError("connection refused")
    gateway = FedaPayGateway(client=FedaPayClient(secret_key="sk_test", session=http))

    with pytest.raises(GatewayError):
        gateway.create_transaction(*payment_and_order)

    assert http.request.call_count == 3


def test_missing_secret_key(http, payment_and_order):
    client = FedaPayClient(secret_key="sk_test", session=http)
    client.secret_key = None

    with pytest.raises(ConfigurationError):
        FedaPayGateway(client=client).create_transaction(*payment_and_order)

    http.request.assert_not_called()


def test_live_environment_url(http):
    client = FedaPayClient(secret_key="sk_live", environment="live", session=http)

    assert client.base_url == API_URLS["live"]


def test_parse_approved_callback():
    payment_id = uuid.uuid4()
    event = FedaPayGateway(client=FedaPayClient(secret_key="sk_test")).parse_callback(
        {
            "id": 77,
            "name": "transaction.approved",
            "entity": {"id": 4242, "status": "approved", "custom_metadata": {"payment_id": str(payment_id)}},
        }
    )

    assert event.event_id == "77"
    assert event.payment_id == payment_id
    assert event.transaction_id == "4242"
    assert event.outcome == CallbackOutcome.APPROVED


@pytest.mark.parametrize(
    "payload, outcome",
    [
        ({"type": "transaction.declined", "entity": {"id": 1}}, CallbackOutcome.DECLINED),
        ({"entity": {"id": 1, "status": "canceled"}}, CallbackOutcome.DECLINED),
        ({"entity": {"id": 1, "status": "pending"}}, CallbackOutcome.IGNORED),
        ({}, CallbackOutcome.IGNORED),
    ],
)
def test_parse_callback_outcomes(payload, outcome):
    event = FedaPayGateway(client=FedaPayClient(secret_key="sk_test")).parse_callback(payload)

    assert event.outcome == outcome


def test_malformed_payment_id_is_ignored():
    event = FedaPayGateway(client=FedaPayClient(secret_key="sk_test")).parse_callback(
        {"entity": {"id": 5, "status": "approved", "custom_metadata": {"payment_id": "not-a-uuid"}}}
    )

    assert event.payment_id is None
    assert event.transaction_id == "5"
