from __future__ import annotations

import pytest

from ai_reviewer.review.language import infer_language_from_path


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("src/app.py", "python"),
        ("web/App.TSX", "typescript"),
        ("scripts/deploy.sh", "shell"),
        ("Makefile", None),
        ("archive.tar.unknown", None),
        (".gitignore", None),
    ],
)
def test_infer_language_from_path(path: str, expected: str | None) -> None:
    assert infer_language_from_path(path) == expected
