import http.client
import shutil
import socket
import ssl
import subprocess  # nosec: B404
from pathlib import Path
from typing import Iterator

import pytest

from devserve.config import EngineType, ServeConfig, SSLProps
from devserve.engines import ServerHandle
from devserve.errors import EngineStartError
from devserve.http.model import HTTPRequest
from devserve.server import launch, server


def serve(**options) -> ServerHandle:
	return server(
		ServeConfig.Make(
			host="127.0.0.1",
			port=0,
			engine=EngineType.AIO,
			logRequests=False,
			**options,
		)
	)


@pytest.fixture
def handle(site: Path) -> Iterator[ServerHandle]:
	h = serve(dir=str(site))
	yield h
	h.stopServer()


def connect(handle: ServerHandle) -> http.client.HTTPConnection:
	assert handle.localPort
	return http.client.HTTPConnection("127.0.0.1", handle.localPort, timeout=5)


def test_get(handle: ServerHandle):
	assert handle.humanName == "AIO"
	conn = connect(handle)
	conn.request("GET", "/a.txt")
	res = conn.getresponse()
	assert res.status == 200
	assert res.getheader("Content-Type") == "text/plain"
	assert res.read() == b"hello"
	# The connection is kept alive
	conn.request("GET", "/")
	res = conn.getresponse()
	assert res.status == 200
	assert b'<a href="/a.txt">a.txt</a>' in res.read()
	conn.close()


def test_head_and_not_found(handle: ServerHandle):
	conn = connect(handle)
	conn.request("HEAD", "/a.txt")
	res = conn.getresponse()
	assert res.status == 200
	assert res.getheader("Content-Length") == "5"
	assert res.read() == b""
	conn.request("GET", "/missing")
	res = conn.getresponse()
	assert res.status == 404
	assert res.getheader("Content-Type") == "text/plain; charset=utf-8"
	assert res.read() == b"Not found"
	conn.close()


def test_not_modified(handle: ServerHandle):
	conn = connect(handle)
	conn.request("GET", "/style.css")
	res = conn.getresponse()
	res.read()
	assert res.getheader("Content-Type") == "text/css"
	last_modified = res.getheader("Last-Modified")
	assert last_modified
	conn.request("GET", "/style.css", headers={"If-Modified-Since": last_modified})
	res = conn.getresponse()
	assert res.status == 304
	assert res.read() == b""
	conn.close()


def test_post_body():
	def echo(request: HTTPRequest):
		return request.respondText(request.body[::-1])

	h = serve(handler=echo)
	try:
		conn = connect(h)
		conn.request("POST", "/echo", body=b"abc")
		res = conn.getresponse()
		assert res.read() == b"cba"
		assert res.getheader("Content-Type") == "text/plain"
	finally:
		h.stopServer()


def test_async_handler():
	async def handler(request: HTTPRequest):
		return request.respondText("async")

	h = serve(handler=handler)
	try:
		conn = connect(h)
		conn.request("GET", "/")
		assert conn.getresponse().read() == b"async"
	finally:
		h.stopServer()


def test_handler_failure():
	def failing(request: HTTPRequest):
		raise RuntimeError("Expected failure")

	h = serve(handler=failing)
	try:
		conn = connect(h)
		conn.request("GET", "/")
		res = conn.getresponse()
		assert res.status == 500
		assert res.read() == b"Internal server error"
		# The server survives
		conn = connect(h)
		conn.request("GET", "/")
		assert conn.getresponse().status == 500
	finally:
		h.stopServer()


def test_bad_request(handle: ServerHandle):
	with socket.create_connection(("127.0.0.1", handle.localPort), timeout=5) as s:
		s.sendall(b"NONSENSE\r\n\r\n")
		assert s.recv(1024).startswith(b"HTTP/1.1 400 Bad Request")


def test_relative_target(site: Path):
	private = site.parent / f"{site.name}-private"
	private.mkdir()
	(private / "index.html").write_text("<p>private</p>")
	h = serve(dir=str(site))
	try:
		with socket.create_connection(("127.0.0.1", h.localPort), timeout=5) as s:
			s.sendall(b"GET -private/ HTTP/1.0\r\n\r\n")
			data = b""
			while chunk := s.recv(1024):
				data += chunk
		assert data.startswith(b"HTTP/1.1 400 Bad Request")
		assert b"private" not in data
	finally:
		h.stopServer()


def test_tls(site: Path, tmp_path: Path):
	openssl = shutil.which("openssl")
	if not openssl:
		pytest.skip("The openssl command is required to create a certificate")
	key, cert = tmp_path / "key.pem", tmp_path / "cert.pem"
	subprocess.run(
		[
			openssl,
			"req",
			"-x509",
			"-newkey",
			"rsa:2048",
			"-nodes",
			"-keyout",
			str(key),
			"-out",
			str(cert),
			"-days",
			"1",
			"-subj",
			"/CN=localhost",
		],
		check=True,
		capture_output=True,
	)
	keystore = tmp_path / "keystore.pem"
	keystore.write_text(cert.read_text() + key.read_text())
	h = serve(dir=str(site), sslProps=SSLProps(0, str(keystore)))
	try:
		context = ssl.create_default_context()
		context.check_hostname = False
		context.verify_mode = ssl.CERT_NONE
		conn = http.client.HTTPSConnection(
			"127.0.0.1", h.localPort, timeout=5, context=context
		)
		conn.request("GET", "/a.txt")
		res = conn.getresponse()
		assert res.status == 200
		assert res.read() == b"hello"
		conn.close()
	finally:
		h.stopServer()


def test_port_in_use(handle: ServerHandle):
	with pytest.raises(EngineStartError) as e:
		launch(
			lambda request: None,
			ServeConfig.Make(
				host="127.0.0.1",
				port=handle.localPort,
				engine=EngineType.AIO,
				logRequests=False,
			),
		)
	assert e.value.port == handle.localPort


def test_stop_with_open_connection(site: Path):
	h = serve(dir=str(site))
	conn = connect(h)
	conn.request("GET", "/a.txt")
	conn.getresponse().read()
	h.stopServer()
	assert h.thread is not None
	assert not h.thread.is_alive()
	conn.close()


# EOF
