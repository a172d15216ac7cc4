import asyncio
import inspect
from pathlib import Path
from typing import (
	Any,
	AsyncGenerator,
	Callable,
	Generator,
	Iterator,
	NamedTuple,
	TypeAlias,
	TypeVar,
	Union,
)
from urllib.parse import parse_qsl

from ..utils.io import CHUNK_SIZE, asBytes, iterFile
from .api import ResponseFactory
from .status import HTTP_NO_BODY, HTTP_STATUS

T = TypeVar("T")

# -----------------------------------------------------------------------------
#
# HELPERS
#
# -----------------------------------------------------------------------------


def headername(name: str, *, headers: dict[str, str] = {}) -> str:
	"""Normalizes the header name as `Kebab-Case`."""
	if name in headers:
		return headers[name]
	key: str = name.lower()
	if key in headers:
		return headers[key]
	else:
		normalized: str = "-".join(_.capitalize() for _ in key.split("-"))
		headers[key] = normalized
		return normalized


# -----------------------------------------------------------------------------
#
# DATA MODEL
#
# -----------------------------------------------------------------------------


class HTTPHeaders(NamedTuple):
	"""Wraps HTTP headers, keeping key information for response/request processing."""

	headers: dict[str, str]
	contentType: str | None = None
	contentLength: int | None = None

	@staticmethod
	def Make(headers: dict[str, str] | None = None) -> "HTTPHeaders":
		"""Creates headers from the given mapping, normalizing the names."""
		normalized = {headername(k): v for k, v in (headers or {}).items()}
		length = normalized.get("Content-Length")
		return HTTPHeaders(
			normalized,
			contentType=normalized.get("Content-Type"),
			contentLength=int(length) if length and length.isdigit() else None,
		)


# -----------------------------------------------------------------------------
#
# BODY
#
# -----------------------------------------------------------------------------


class HTTPBodyBlob(NamedTuple):
	"""Represents a body as bytes."""

	payload: bytes = b""
	length: int = 0

	@staticmethod
	def FromBytes(data: bytes) -> "HTTPBodyBlob":
		return HTTPBodyBlob(payload=data, length=len(data))


class HTTPBodyFile(NamedTuple):
	"""Represents an HTTP body streamed from a file."""

	path: Path

	@property
	def length(self) -> int:
		return self.path.stat().st_size


class HTTPBodyStream(NamedTuple):
	"""An HTTP body that is generated from a stream."""

	stream: Generator[str | bytes, Any, Any]


class HTTPBodyAsyncStream(NamedTuple):
	"""An HTTP body that is generated from an asynchronous stream."""

	stream: AsyncGenerator[str | bytes, Any]


# The different types of bodies that are managed
THTTPBody: TypeAlias = (
	HTTPBodyBlob | HTTPBodyFile | HTTPBodyStream | HTTPBodyAsyncStream
)


class HTTPBody:
	"""Contains helpers to work with bodies."""

	@staticmethod
	def Iter(body: THTTPBody | None) -> Iterator[bytes]:
		"""Iterates on the chunks of a synchronous body."""
		if body is None:
			pass
		elif isinstance(body, HTTPBodyBlob):
			if body.payload:
				yield body.payload
		elif isinstance(body, HTTPBodyFile):
			yield from iterFile(body.path)
		elif isinstance(body, HTTPBodyStream):
			for _ in body.stream:
				yield asBytes(_)
		else:
			raise ValueError(f"Body can only be iterated asynchronously: {body}")

	@staticmethod
	async def AsyncIter(body: THTTPBody | None) -> AsyncGenerator[bytes, None]:
		"""Iterates on the chunks of any body. Files are opened and read in
		worker threads, and closed when the iteration is closed."""
		if isinstance(body, HTTPBodyAsyncStream):
			async for _ in body.stream:
				yield asBytes(_)
		elif isinstance(body, HTTPBodyFile):
			f = await asyncio.to_thread(open, body.path, "rb")
			try:
				while chunk := await asyncio.to_thread(f.read, CHUNK_SIZE):
					yield chunk
			finally:
				f.close()
		else:
			for chunk in HTTPBody.Iter(body):
				yield chunk

	@staticmethod
	def Read(body: THTTPBody | None) -> bytes:
		"""Reads the whole body, which must be synchronous."""
		return b"".join(HTTPBody.Iter(body))


# -----------------------------------------------------------------------------
#
# REQUESTS
#
# -----------------------------------------------------------------------------


class HTTPRequest(ResponseFactory):
	"""Represents an HTTP requests, which also acts as a factory for
	responses. The `path` is kept as received, percent-encoded."""

	__slots__ = ["protocol", "method", "path", "query", "_headers", "_body"]

	@staticmethod
	def Make(
		method: str,
		uri: str,
		headers: dict[str, str] | None = None,
		body: bytes | None = None,
		protocol: str = "HTTP/1.1",
	) -> "HTTPRequest":
		"""Creates a request from a method and a (possibly query-bearing) URI."""
		path, _, query = uri.partition("?")
		return HTTPRequest(
			method=method.upper(),
			path=path or "/",
			query=dict(parse_qsl(query, keep_blank_values=True)) if query else None,
			headers=HTTPHeaders.Make(headers),
			body=HTTPBodyBlob.FromBytes(body) if body else None,
			protocol=protocol,
		)

	def __init__(
		self,
		method: str,
		path: str,
		query: dict[str, str] | None,
		headers: HTTPHeaders,
		body: HTTPBodyBlob | None = None,
		protocol: str = "HTTP/1.1",
	):
		super().__init__()
		self.method: str = method
		self.path: str = path
		self.query: dict[str, str] | None = query
		self.protocol: str = protocol
		self._headers: HTTPHeaders = headers
		self._body: HTTPBodyBlob | None = body

	@property
	def uri(self) -> str:
		return self.path

	@property
	def headers(self) -> dict[str, str]:
		return self._headers.headers

	def header(self, name: str) -> str | None:
		return self._headers.headers.get(headername(name))

	def param(self, name: str, default: T | None = None) -> str | T | None:
		return self.query.get(name, default) if self.query else default

	@property
	def contentType(self) -> str | None:
		return self._headers.contentType

	@property
	def contentLength(self) -> int | None:
		return self._headers.contentLength

	@property
	def body(self) -> bytes:
		return self._body.payload if self._body else b""

	@property
	def keepAlive(self) -> bool:
		connection = (self.header("Connection") or "").lower()
		if self.protocol == "HTTP/1.0":
			return connection == "keep-alive"
		else:
			return connection != "close"

	def respond(
		self,
		content: Any = None,
		contentType: str | None = None,
		contentLength: int | None = None,
		status: int = 200,
		headers: dict[str, str] | None = None,
		message: str | None = None,
	) -> "HTTPResponse":
		return HTTPResponse.Create(
			status=status,
			message=message,
			content=content,
			contentType=contentType,
			contentLength=contentLength,
			protocol=self.protocol,
			headers=headers,
		)

	def __str__(self) -> str:
		return f"Request({self.method} {self.path}{f'?{self.query}' if self.query else ''} {self.headers})"


# -----------------------------------------------------------------------------
#
# RESPONSE
#
# -----------------------------------------------------------------------------


class HTTPResponse:
	"""An HTTP response."""

	__slots__ = ["protocol", "status", "message", "headers", "body", "shouldClose"]

	@staticmethod
	def Create(
		content: Any = None,
		contentType: str | None = None,
		contentLength: int | None = None,
		headers: dict[str, str] | None = None,
		status: int = 200,
		message: str | None = None,
		protocol: str = "HTTP/1.1",
	) -> "HTTPResponse":
		"""Factory method to create HTTP response objects."""
		body: THTTPBody | None = None
		should_close: bool = False
		if content is None:
			pass
		elif isinstance(content, (str, bytes)):
			payload: bytes = asBytes(content)
			body = HTTPBodyBlob.FromBytes(payload)
			contentLength = len(payload)
		elif isinstance(content, Path):
			body = HTTPBodyFile(content.absolute())
			contentLength = body.length
		elif inspect.isgenerator(content):
			# Streams have no length, so they close the connection
			body = HTTPBodyStream(content)
			should_close = True
		elif inspect.isasyncgen(content):
			body = HTTPBodyAsyncStream(content)
			should_close = True
		else:
			raise ValueError(f"Unsupported content {type(content)}:{content}")
		res_headers: dict[str, str] = {
			headername(k): v for k, v in (headers or {}).items()
		}
		if contentType is not None:
			res_headers["Content-Type"] = contentType
		if contentLength is not None:
			res_headers["Content-Length"] = str(contentLength)
		return HTTPResponse(
			status=status,
			message=message or HTTP_STATUS.get(status, "Unknown status"),
			headers=res_headers,
			body=body,
			protocol=protocol,
			shouldClose=should_close,
		)

	def __init__(
		self,
		protocol: str,
		status: int,
		message: str | None,
		headers: dict[str, str],
		body: THTTPBody | None = None,
		shouldClose: bool = False,
	):
		self.protocol: str = protocol
		self.status: int = status
		self.message: str | None = message
		self.headers: dict[str, str] = headers
		self.body: THTTPBody | None = body
		self.shouldClose: bool = shouldClose

	@property
	def contentType(self) -> str | None:
		return self.headers.get("Content-Type")

	def getHeader(self, name: str) -> str | None:
		return self.headers.get(headername(name))

	def setHeader(self, name: str, value: str | int | None) -> "HTTPResponse":
		if value is None:
			self.headers.pop(headername(name), None)
		else:
			self.headers[headername(name)] = str(value)
		return self

	def read(self) -> bytes:
		"""Returns the body as bytes, which consumes stream bodies."""
		return HTTPBody.Read(self.body)

	def head(self) -> bytes:
		"""Serializes the status line and headers as a payload."""
		headers = dict(self.headers)
		if (
			self.body is None
			and self.status not in HTTP_NO_BODY
			and "Content-Length" not in headers
		):
			headers["Content-Length"] = "0"
		if self.shouldClose:
			headers["Connection"] = "close"
		lines: list[str] = [
			f"{self.protocol} {self.status} {self.message or HTTP_STATUS.get(self.status, 'Unknown status')}"
		]
		lines += [f"{k}: {v}" for k, v in headers.items()]
		lines += ["", ""]
		return "\r\n".join(lines).encode("latin-1")

	def __str__(self) -> str:
		return f"Response({self.protocol} {self.status} {self.message} {self.headers} {self.body})"


# A handler maps a request to a response, or declines with `None`. Handlers
# may also return an awaitable of those.
THandler: TypeAlias = Callable[[HTTPRequest], Union[HTTPResponse, None, Any]]

# EOF
