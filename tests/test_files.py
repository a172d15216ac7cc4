from pathlib import Path

import pytest

from conftest import call
from devserve.config import ServeConfig
from devserve.errors import FilesystemError
from devserve.handlers import handlerFor
from devserve.handlers.files import (
	dirHandler,
	ensureDirectory,
	fileFor,
	indexFile,
	indexFor,
	pathDiff,
	renderListing,
)
from devserve.server import wrapDefaults
from devserve.utils.files import DirectoryEntry


def test_listing_root(site: Path):
	res = call(dirHandler(site), "/")
	assert res.status == 200
	assert res.contentType == "text/html"
	body = res.read().decode("utf8")
	assert body.startswith("<!DOCTYPE html>")
	assert "<h1>Directory listing</h1><hr>" in body
	assert '<li><a href="/a.txt">a.txt</a></li>' in body
	assert '<li><a href="/sub">sub</a></li>' in body
	# Entries are sorted by name
	assert body.index("a.txt") < body.index("style.css") < body.index("sub")


def test_listing_subdirectory(site: Path):
	body = call(dirHandler(site), "/sub").read().decode("utf8")
	assert '<a href="/sub/b.json">b.json</a>' in body


def test_listing_empty(site: Path):
	body = call(dirHandler(site), "/empty").read().decode("utf8")
	assert "<ul></ul>" in body


def test_listing_relative_root(site: Path, monkeypatch: pytest.MonkeyPatch):
	monkeypatch.chdir(site)
	body = call(dirHandler("."), "/").read().decode("utf8")
	assert '<a href="/a.txt">a.txt</a>' in body


def test_index_file(site: Path):
	res = call(dirHandler(site), "/home")
	assert res.status == 200
	assert res.contentType == "text/html"
	assert res.read() == b"<p>hi</p>"
	assert res.getHeader("Last-Modified")


def test_index_file_ignores_case(site: Path):
	res = call(dirHandler(site), "/docs/")
	assert res.contentType == "text/html"
	assert res.read() == b"<p>docs</p>"


def test_index_any_method(site: Path):
	assert call(indexFor(site), "/home", "POST").status == 200
	assert call(indexFor(site), "/a.txt") is None


def test_file(site: Path):
	res = call(dirHandler(site), "/a.txt")
	assert res.status == 200
	assert res.contentType == "text/plain"
	assert res.getHeader("Content-Length") == "5"
	assert res.read() == b"hello"


def test_file_methods(site: Path):
	stage = fileFor(site)
	assert call(stage, "/a.txt", "HEAD") is not None
	assert call(stage, "/a.txt", "POST") is None
	assert call(stage, "/sub") is None


def test_file_percent_encoded(site: Path):
	(site / "with space.txt").write_text("spaced")
	assert call(dirHandler(site), "/with%20space.txt").read() == b"spaced"


def test_not_found(site: Path):
	handler = dirHandler(site)
	res = call(handler, "/missing.txt")
	assert res.status == 404
	assert res.contentType == "text/plain; charset=utf-8"
	assert res.read() == b"Not found"
	assert call(handler, "/a.txt", "POST").status == 404


def test_parent_segments(site: Path):
	(site.parent / "outside.txt").write_text("outside")
	handler = dirHandler(site)
	assert call(handler, "/../outside.txt").status == 404
	assert call(handler, "/%2e%2e/outside.txt").status == 404


def test_relative_paths(site: Path):
	# A sibling directory sharing the root as prefix
	private = site.parent / f"{site.name}-private"
	private.mkdir()
	(private / "index.html").write_text("<p>private</p>")
	(private / "a.txt").write_text("private")
	handler = dirHandler(site)
	for path in ("-private/", "-private", "-private/a.txt", "a.txt"):
		assert call(indexFor(site), path) is None, path
		assert call(fileFor(site), path) is None, path
		assert call(handler, path).status == 404, path


def test_unknown_content_type(site: Path):
	(site / "blob.unknownext").write_bytes(b"\x00\x01")
	(site / "LICENSE").write_text("MIT")
	handler = wrapDefaults(handlerFor(ServeConfig.Make(dir=str(site))))
	res = call(handler, "/blob.unknownext")
	assert res.status == 200
	assert res.contentType == "application/octet-stream"
	assert call(handler, "/LICENSE").contentType == "application/octet-stream"
	assert call(handler, "/a.txt").contentType == "text/plain"


def test_listing_links_encoded(site: Path):
	(site / "a#b?c%d.txt").write_text("odd")
	handler = dirHandler(site)
	body = call(handler, "/").read().decode("utf8")
	assert '<a href="/a%23b%3Fc%25d.txt">a#b?c%d.txt</a>' in body
	assert call(handler, "/a%23b%3Fc%25d.txt").read() == b"odd"


def test_resources_fallback(site: Path, resources: Path):
	handler = dirHandler(site, resourceRoot="public", resourcePaths=[str(resources)])
	res = call(handler, "/app.js")
	assert res.status == 200
	assert res.read() == b"console.log(1)"
	# The directory wins over the resources
	assert call(handler, "/a.txt").read() == b"hello"


def test_custom_not_found(site: Path):
	handler = dirHandler(
		site, notFound=lambda request: request.notFound("Gone", status=410)
	)
	res = call(handler, "/missing")
	assert res.status == 410
	assert res.read() == b"Gone"


def test_no_directory():
	assert dirHandler(None) is None
	assert dirHandler("") is None


def test_ensure_directory(tmp_path: Path):
	path = tmp_path / "new" / "deep"
	handler = dirHandler(path)
	assert path.is_dir()
	assert call(handler, "/").status == 200
	# Existing directories are left as-is
	assert ensureDirectory(path) == path


def test_ensure_directory_failure(tmp_path: Path):
	(tmp_path / "file").write_text("")
	with pytest.raises(FilesystemError) as e:
		ensureDirectory(tmp_path / "file" / "dir")
	assert e.value.path == str(tmp_path / "file" / "dir")
	assert isinstance(e.value, OSError)


def test_helpers():
	assert pathDiff("/srv", "/srv/a.txt") == "/a.txt"
	assert pathDiff("/srv", "/srv") == ""
	assert pathDiff("/srv", "/other") == "/other"
	entries = [
		DirectoryEntry("a.txt", "/srv/a.txt", False),
		DirectoryEntry("Index.html", "/srv/Index.html", False),
	]
	assert indexFile(entries) == entries[1]
	assert indexFile(entries[:1]) is None
	listing = renderListing("/srv", [DirectoryEntry("<b>", "/srv/<b>", False)])
	assert '<a href="/%3Cb%3E">&lt;b&gt;</a>' in listing


# EOF
