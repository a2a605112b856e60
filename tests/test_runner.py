from __future__ import annotations

import httpx
import pytest

from ai_reviewer.config import ReviewerConfig
from ai_reviewer.errors import ConfigurationError
from ai_reviewer.github.provider import GitHubSourceProvider
from ai_reviewer.llm.ollama_client import OllamaModelClient
from ai_reviewer.local.provider import LocalSourceProvider
from ai_reviewer.platforms import SourceProvider
from ai_reviewer.platforms import SupportsBatchComments
from ai_reviewer.platforms import SupportsLineComments
from ai_reviewer.platforms import create_source_provider
from ai_reviewer.review.models import ReviewTarget
from ai_reviewer.runner import build_review_engine


def test_build_review_engine_for_local_ollama() -> None:
    config = ReviewerConfig.model_validate({"ai": {"provider": "ollama"}, "review": {"include_patterns": ["*.py"]}})

    engine = build_review_engine(config, ReviewTarget(path="."), httpx.AsyncClient())

    assert isinstance(engine.source, LocalSourceProvider)
    assert isinstance(engine.model, OllamaModelClient)
    assert engine.filter_policy.include_patterns == ("*.py",)


def test_build_review_engine_fails_before_network_without_credentials() -> None:
    with pytest.raises(ConfigurationError):
        build_review_engine(ReviewerConfig(), ReviewTarget(), httpx.AsyncClient())


def test_platform_capabilities() -> None:
    config = ReviewerConfig.model_validate({"platform": {"type": "github", "token": "t"}}).platform
    github = create_source_provider(config, ReviewTarget(owner="o", repo="r", pull_id=1), httpx.AsyncClient())
    local = create_source_provider(ReviewerConfig().platform, ReviewTarget(), httpx.AsyncClient())

    assert isinstance(github, GitHubSourceProvider)
    assert isinstance(github, SourceProvider)
    assert isinstance(github, SupportsBatchComments)
    assert isinstance(local, SupportsLineComments)
    assert not isinstance(local, SupportsBatchComments)
