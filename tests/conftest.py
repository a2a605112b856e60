from __future__ import annotations

from collections.abc import Callable

import pytest

from ai_reviewer.review.models import FileChange


@pytest.fixture
def make_change() -> Callable[..., FileChange]:
    def _make(path: str, diff: str = "@@ -1 +1 @@\n-old\n+new\n", language: str | None = None) -> FileChange:
        return FileChange(old_path=path, new_path=path, diff=diff, language=language)

    return _make
