from __future__ import annotations

from typing import Callable, List, Sequence

import pytest

from babeljson.configuration import BabelJsonConfig, _load_config_instance
from babeljson.providers import TranslationProvider


class ScriptedProvider(TranslationProvider):
    """Replays queued answers, then falls back to ``transform`` per string.

    A queued answer may be a list, an exception to raise, or a callable that
    receives the batch.
    """

    def __init__(self, responses: Sequence = (), transform: Callable[[str], str] = lambda s: s):
        self.responses = list(responses)
        self.transform = transform
        self.calls: List[List[str]] = []

    def translate(self, texts, *, target_language, tone, model=None):
        self.calls.append(list(texts))
        if self.responses:
            answer = self.responses.pop(0)
            if isinstance(answer, Exception):
                raise answer
            if callable(answer):
                return answer(list(texts))
            return answer
        return [self.transform(text) for text in texts]


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, tmp_path_factory, monkeypatch):
    home = tmp_path_factory.mktemp("home")
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(tmp_path)
    for name in BabelJsonConfig.model_fields:
        monkeypatch.delenv(name, raising=False)
    _load_config_instance.cache_clear()
    yield
    _load_config_instance.cache_clear()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def record_sleep(sleeps):
    return sleeps.append


@pytest.fixture
def scripted():
    return ScriptedProvider
