from __future__ import annotations

import json
from types import SimpleNamespace
from typing import List, Optional

import pytest

from config import EstimatorSettings
from models import EstimateRequest


def make_completion(content: Optional[str]):
    message = SimpleNamespace(content=content)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeCompletions:
    def __init__(self, replies: List[object]):
        self.replies = list(replies)
        self.calls: List[dict] = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, BaseException):
            raise reply
        if isinstance(reply, SimpleNamespace):
            return reply
        return make_completion(reply)


class FakeClient:
    """Stands in for openai.OpenAI; replies are strings, completions or exceptions."""

    def __init__(self, *replies: object):
        self.completions = FakeCompletions(replies)
        self.chat = SimpleNamespace(completions=self.completions)

    @property
    def calls(self) -> List[dict]:
        return self.completions.calls


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def ai_reply(**overrides) -> str:
    payload = {
        "shippingFee": 58,
        "estimatedDays": 2,
        "courierType": "standard",
        "distance": "short",
        "explanation": "Short distance within Luzon region",
    }
    payload.update(overrides)
    return json.dumps(payload)


@pytest.fixture
def settings() -> EstimatorSettings:
    return EstimatorSettings(api_key="sk-test")


@pytest.fixture
def manila_to_lipa() -> EstimateRequest:
    return EstimateRequest("Manila", "Lipa", "Batangas", 1.0)
