import asyncio
import os
from email.utils import formatdate
from pathlib import Path

from conftest import request
from devserve.http.middleware import (
	DEFAULT_CONTENT_TYPE,
	etagMatches,
	isNotModified,
	withContentType,
	withNotModified,
)
from devserve.http.model import HTTPRequest, HTTPResponse
from devserve.server import wrapDefaults


def test_content_type_from_path():
	handler = withContentType(lambda r: r.respond(b"{}"))
	assert handler(request("/data.json")).contentType == "application/json"
	assert handler(request("/app.mjs")).contentType == "text/javascript"
	assert handler(request("/blob")).contentType == DEFAULT_CONTENT_TYPE


def test_content_type_kept():
	handler = withContentType(lambda r: r.respondText("x", contentType="text/csv"))
	assert handler(request("/data.json")).contentType == "text/csv"


def test_content_type_from_file(tmp_path: Path):
	path = tmp_path / "page.html"
	path.write_text("<p>")
	handler = withContentType(lambda r: r.respond(path))
	assert handler(request("/whatever")).contentType == "text/html"


def test_content_type_without_body():
	handler = withContentType(lambda r: r.respondEmpty(204))
	assert handler(request("/a.json")).contentType is None


def test_declined_passes_through():
	assert withContentType(lambda r: None)(request("/")) is None
	assert withNotModified(lambda r: None)(request("/")) is None


def test_async_handler():
	async def handler(request: HTTPRequest) -> HTTPResponse:
		return request.respond(b"{}")

	res = withContentType(handler)(request("/a.json"))
	assert asyncio.run(res).contentType == "application/json"


def test_not_modified_since(tmp_path: Path):
	path = tmp_path / "a.txt"
	path.write_text("hello")
	mtime = os.stat(path).st_mtime
	handler = wrapDefaults(lambda r: r.respondFile(path))
	res = handler(
		request("/a.txt", headers={"If-Modified-Since": formatdate(mtime + 60, usegmt=True)})
	)
	assert res.status == 304
	assert res.body is None
	assert res.read() == b""
	assert res.getHeader("Content-Length") == "0"
	res = handler(
		request("/a.txt", headers={"If-Modified-Since": formatdate(mtime - 60, usegmt=True)})
	)
	assert res.status == 200
	assert res.read() == b"hello"
	# Only safe methods get a 304
	res = handler(
		request(
			"/a.txt",
			"POST",
			headers={"If-Modified-Since": formatdate(mtime + 60, usegmt=True)},
		)
	)
	assert res.status == 200


def test_not_modified_etag():
	handler = withNotModified(
		lambda r: r.respond(b"x", headers={"ETag": '"v1"'})
	)
	assert handler(request("/", headers={"If-None-Match": '"v1"'})).status == 304
	assert handler(request("/", headers={"If-None-Match": 'W/"v1"'})).status == 304
	assert handler(request("/", headers={"If-None-Match": '"v0", "v1"'})).status == 304
	assert handler(request("/", headers={"If-None-Match": '"v2"'})).status == 200
	assert handler(request("/")).status == 200


def test_etag_precedence():
	res = HTTPResponse.Create(
		b"x",
		headers={"ETag": '"v1"', "Last-Modified": formatdate(0, usegmt=True)},
	)
	req = request(
		"/",
		headers={
			"If-None-Match": '"v2"',
			"If-Modified-Since": formatdate(60, usegmt=True),
		},
	)
	assert not isNotModified(req, res)


def test_etag_matches():
	assert etagMatches("*", '"a"')
	assert etagMatches('"a"', 'W/"a"')
	assert not etagMatches('"b"', '"a"')


def test_invalid_dates():
	res = HTTPResponse.Create(b"x", headers={"Last-Modified": "garbage"})
	req = request("/", headers={"If-Modified-Since": "also garbage"})
	assert not isNotModified(req, res)


def test_errors_untouched():
	handler = wrapDefaults(lambda r: r.notFound())
	res = handler(request("/missing.json", headers={"If-None-Match": "*"}))
	assert res.status == 404
	assert res.contentType == "text/plain; charset=utf-8"


# EOF
