from dataclasses import replace
from types import SimpleNamespace

import pytest
from openai import OpenAI

from ai_estimator import AIEstimator, SYSTEM_PROMPT, build_client
from conftest import FakeClient, ai_reply, make_completion
from models import (
    CourierType,
    Distance,
    EstimationTransportError,
    MalformedResponseError,
    ServiceUnavailableError,
)


def test_estimate_sends_prompt_and_parses_reply(settings, manila_to_lipa):
    client = FakeClient(ai_reply())
    estimator = AIEstimator(client, settings)

    result = estimator.estimate(manila_to_lipa)

    assert result.shipping_fee == 58
    assert result.estimated_days == 2
    assert result.courier_type is CourierType.STANDARD
    assert result.distance is Distance.SHORT
    assert result.explanation == "Short distance within Luzon region"
    assert result.success is True

    (call,) = client.calls
    assert call["model"] == "gpt-4"
    assert call["temperature"] == 0.3
    assert call["max_tokens"] == 300
    assert call["timeout"] == 10.0
    system, user = call["messages"]
    assert system == {"role": "system", "content": SYSTEM_PROMPT}
    assert "Seller Location: Manila" in user["content"]
    assert "Buyer Location: Lipa, Batangas" in user["content"]
    assert "Package Weight: 1 kg" in user["content"]


def test_prompt_uses_default_seller_for_blank_location(settings, manila_to_lipa):
    estimator = AIEstimator(FakeClient(ai_reply()), settings)

    prompt = estimator.build_prompt(replace(manila_to_lipa, seller_location=""))

    assert "Seller Location: Metro Manila" in prompt


def test_missing_client_is_service_unavailable(settings, manila_to_lipa):
    estimator = AIEstimator(None, settings)

    assert not estimator.available
    with pytest.raises(ServiceUnavailableError):
        estimator.estimate(manila_to_lipa)


def test_call_failure_is_transport_error(settings, manila_to_lipa):
    estimator = AIEstimator(FakeClient(TimeoutError("read timed out")), settings)

    with pytest.raises(EstimationTransportError, match="TimeoutError"):
        estimator.estimate(manila_to_lipa)


@pytest.mark.parametrize(
    "completion",
    [make_completion(None), make_completion("   "), make_completion("Sure! Here it is")],
)
def test_unusable_completion_is_malformed(settings, manila_to_lipa, completion):
    estimator = AIEstimator(FakeClient(completion), settings)

    with pytest.raises(MalformedResponseError):
        estimator.estimate(manila_to_lipa)


def test_completion_without_choices_is_malformed(settings, manila_to_lipa):
    estimator = AIEstimator(FakeClient(SimpleNamespace(choices=[])), settings)

    with pytest.raises(MalformedResponseError):
        estimator.estimate(manila_to_lipa)


@pytest.mark.parametrize(
    "text",
    [
        "not json",
        "[58, 2]",
        "{}",
        '{"shippingFee": "58"}',
        '{"shippingFee": null}',
        '{"shippingFee": true}',
        '{"shippingFee": 0}',
        '{"shippingFee": -20}',
        '{"shippingFee": NaN}',
        '{"shippingFee": 1e30}',
        '{"shippingFee": 100000.01}',
        '{"shippingFee": 1' + '0' * 400 + '}',
    ],
)
def test_parse_reply_rejects_bad_fee(text):
    with pytest.raises(MalformedResponseError):
        AIEstimator.parse_reply(text)


def test_parse_reply_clamps_and_rounds_fee():
    assert AIEstimator.parse_reply(ai_reply(shippingFee=35)).shipping_fee == 40
    assert AIEstimator.parse_reply(ai_reply(shippingFee=58.456)).shipping_fee == 58.46


def test_parse_reply_fills_defaults():
    result = AIEstimator.parse_reply('{"shippingFee": 95}')

    assert result.shipping_fee == 95
    assert result.estimated_days == 3
    assert result.courier_type is CourierType.STANDARD
    assert result.distance is Distance.MEDIUM
    assert result.explanation == "Standard shipping within Philippines"


@pytest.mark.parametrize(
    "overrides, days, courier, distance",
    [
        ({"estimatedDays": 0}, 3, CourierType.STANDARD, Distance.SHORT),
        ({"estimatedDays": 2.5}, 3, CourierType.STANDARD, Distance.SHORT),
        ({"estimatedDays": "two"}, 3, CourierType.STANDARD, Distance.SHORT),
        ({"courierType": "EXPRESS"}, 2, CourierType.EXPRESS, Distance.SHORT),
        ({"courierType": "drone"}, 2, CourierType.STANDARD, Distance.SHORT),
        ({"distance": "far"}, 2, CourierType.STANDARD, Distance.MEDIUM),
        ({"distance": " Long "}, 2, CourierType.STANDARD, Distance.LONG),
    ],
)
def test_parse_reply_normalises_optional_fields(overrides, days, courier, distance):
    result = AIEstimator.parse_reply(ai_reply(**overrides))

    assert result.estimated_days == days
    assert result.courier_type is courier
    assert result.distance is distance


def test_build_client_requires_key_and_enabled(settings):
    assert build_client(replace(settings, api_key=None)) is None
    assert build_client(replace(settings, ai_enabled=False)) is None


def test_build_client_disables_retries(settings):
    client = build_client(settings)

    assert isinstance(client, OpenAI)
    assert client.max_retries == 0
