from typing import NamedTuple

from .model import HTTPHeaders, HTTPRequest, headername

EOL: bytes = b"\r\n"
END_OF_HEAD: bytes = b"\r\n\r\n"


class HTTPRequestLine(NamedTuple):
	"""Represents a request status line"""

	method: str
	path: str
	query: str
	protocol: str


class HTTPParseError(ValueError):
	"""The request head is malformed."""


def parseRequestLine(line: str) -> HTTPRequestLine:
	"""Parses a line like `GET /path?query HTTP/1.1`."""
	i = line.find(" ")
	j = line.rfind(" ")
	if i <= 0 or j <= i:
		raise HTTPParseError(f"Malformed request line: {line!r}")
	protocol = line[j + 1 :]
	if not protocol.startswith("HTTP/"):
		raise HTTPParseError(f"Unsupported protocol: {protocol!r}")
	path, _, query = line[i + 1 : j].partition("?")
	# Origin-form targets are absolute paths, other forms are `*` and URLs
	if not (path.startswith("/") or path == "*" or "://" in path):
		raise HTTPParseError(f"Malformed request target: {path!r}")
	return HTTPRequestLine(line[:i].upper(), path, query, protocol)


def parseHeaders(lines: list[str]) -> HTTPHeaders:
	headers: dict[str, str] = {}
	for line in lines:
		if not line:
			continue
		name, sep, value = line.partition(":")
		if not sep:
			raise HTTPParseError(f"Malformed header line: {line!r}")
		headers[headername(name.strip())] = value.strip()
	return HTTPHeaders.Make(headers)


def parseRequest(head: bytes) -> HTTPRequest:
	"""Parses the head of an HTTP request, that is the request line and
	headers up to (and possibly including) the empty line. The body, if any,
	is to be read separately, as given by the `Content-Length`."""
	# NOTE: Header values are ISO-8859-1, which also never fails to decode
	lines = head.decode("latin-1").split(EOL.decode("ascii"))
	# Clients may send empty lines before the request line
	while lines and not lines[0]:
		lines.pop(0)
	if not lines:
		raise HTTPParseError("Empty request")
	line = parseRequestLine(lines[0])
	request = HTTPRequest.Make(
		line.method,
		f"{line.path}?{line.query}" if line.query else line.path,
		protocol=line.protocol,
	)
	request._headers = parseHeaders(lines[1:])
	return request


# EOF
