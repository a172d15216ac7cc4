import sys
from pathlib import Path
from typing import Any

import pytest

# Add the sources to the path, so that tests run without installing
sys.path.insert(0, str(Path(__file__).parent.parent / "src" / "py"))

from devserve.http.model import HTTPRequest  # NOQA: E402


def request(
	path: str,
	method: str = "GET",
	headers: dict[str, str] | None = None,
	body: bytes | None = None,
) -> HTTPRequest:
	return HTTPRequest.Make(method, path, headers, body)


def call(handler: Any, path: str, method: str = "GET", **kwargs: Any) -> Any:
	"""Calls the handler with a request for `path`."""
	return handler(request(path, method, **kwargs))


@pytest.fixture
def site(tmp_path: Path) -> Path:
	"""A served directory with a file, a sub-directory and a directory with an
	index file."""
	root = tmp_path / "site"
	root.mkdir()
	(root / "a.txt").write_text("hello")
	(root / "style.css").write_text("body{}")
	(root / "sub").mkdir()
	(root / "sub" / "b.json").write_text("{}")
	(root / "docs").mkdir()
	(root / "docs" / "INDEX.HTM").write_text("<p>docs</p>")
	(root / "home").mkdir()
	(root / "home" / "index.html").write_text("<p>hi</p>")
	(root / "empty").mkdir()
	return root


@pytest.fixture
def resources(tmp_path: Path) -> Path:
	"""A resources search path, with resources under the `public` root."""
	base = tmp_path / "res"
	public = base / "public"
	(public / "foo").mkdir(parents=True)
	(public / "foo" / "index.html").write_text("<p>foo</p>")
	(public / "app.js").write_text("console.log(1)")
	(public / "lib").mkdir()
	(base / "secret.txt").write_text("secret")
	return base


# EOF
