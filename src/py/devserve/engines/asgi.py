import asyncio
import inspect
import threading
import time
from typing import Any, Awaitable, Callable
from urllib.parse import quote

from ..errors import EngineStartError
from ..http.model import HTTPBody, HTTPRequest, HTTPResponse, THandler, headername
from ..http.status import HTTP_NO_BODY
from ..utils.logging import event, exception, info, logged, warning
from . import Engine, EngineOptions, ServerHandle, sslContext

# --
# ## ASGI Bridge
#
# Exposes a handler through the ASGI gateway, so that it can be run by any
# ASGI server. The ASGI engine runs it with uvicorn.

# SEE: https://asgi.readthedocs.io/en/latest/specs/main.html

TScope = dict[str, Any]
TReceive = Callable[[], Awaitable[dict[str, Any]]]
TSend = Callable[[dict[str, Any]], Awaitable[None]]


class ASGIBridge:
	"""An ASGI application that creates `HTTPRequest` objects from the ASGI
	interface, and writes out the handler's `HTTPResponse` to it."""

	def __init__(self, handler: THandler, *, logRequests: bool = True):
		self.handler: THandler = handler
		self.logRequests: bool = logRequests

	async def __call__(self, scope: TScope, receive: TReceive, send: TSend) -> None:
		protocol = scope["type"]
		if protocol == "lifespan":
			await self.lifespan(receive, send)
		elif protocol == "http":
			request = await self.read(scope, receive)
			if self.logRequests and logged(event):
				event(request.method, request.path)
			response = await self.process(request)
			await self.write(request, response, send)
		else:
			raise ValueError(f"Unsupported ASGI protocol: {protocol}")

	async def lifespan(self, receive: TReceive, send: TSend) -> None:
		# SEE: https://asgi.readthedocs.io/en/latest/specs/lifespan.html
		while True:
			message = await receive()
			if message["type"] == "lifespan.startup":
				await send({"type": "lifespan.startup.complete"})
			elif message["type"] == "lifespan.shutdown":
				await send({"type": "lifespan.shutdown.complete"})
				return

	async def read(self, scope: TScope, receive: TReceive) -> HTTPRequest:
		"""Reads the request from the scope, loading its whole body."""
		# SEE: https://asgi.readthedocs.io/en/latest/specs/www.html
		body = bytearray()
		while True:
			message = await receive()
			if message["type"] == "http.request":
				body += message.get("body", b"")
				if not message.get("more_body"):
					break
			elif message["type"] == "http.disconnect":
				break
		headers: dict[str, str] = {}
		for name, value in scope.get("headers", ()):
			key = headername(name.decode("latin-1"))
			v = value.decode("latin-1")
			headers[key] = f"{headers[key]}, {v}" if key in headers else v
		# Handlers expect the path as sent, percent-encoded
		raw_path: bytes | None = scope.get("raw_path")
		path = raw_path.decode("latin-1") if raw_path else quote(scope["path"])
		query = scope.get("query_string", b"").decode("latin-1")
		return HTTPRequest.Make(
			scope["method"],
			f"{path}?{query}" if query else path,
			headers,
			bytes(body),
			protocol=f"HTTP/{scope.get('http_version', '1.1')}",
		)

	async def process(self, request: HTTPRequest) -> HTTPResponse:
		"""Runs the handler in a worker thread, awaiting its result if needed."""
		try:
			r = await asyncio.to_thread(self.handler, request)
			res = (await r) if inspect.isawaitable(r) else r
		except Exception as e:
			exception(e, f"Handler failed on {request.method} {request.path}")
			return request.fail("Internal server error")
		if res is None:
			warning(
				"Handler did not return a response",
				Method=request.method,
				Path=request.path,
			)
			return request.respondEmpty(204)
		return res

	async def write(
		self, request: HTTPRequest, response: HTTPResponse, send: TSend
	) -> None:
		await send(
			{
				"type": "http.response.start",
				"status": response.status,
				"headers": [
					(k.lower().encode("latin-1"), v.encode("latin-1"))
					for k, v in response.headers.items()
				],
			}
		)
		# Servers are responsible for the chunked encoding of bodies without
		# a content length.
		if request.method != "HEAD" and response.status not in HTTP_NO_BODY:
			chunks = HTTPBody.AsyncIter(response.body)
			try:
				async for chunk in chunks:
					await send(
						{"type": "http.response.body", "body": chunk, "more_body": True}
					)
			finally:
				await chunks.aclose()
		await send({"type": "http.response.body", "body": b"", "more_body": False})


class ASGIEngine(Engine):
	"""Runs the handler through the ASGI bridge with uvicorn, in a background
	thread."""

	NAME = "Uvicorn"

	@staticmethod
	def Configure(options: EngineOptions) -> dict[str, Any]:
		"""Returns the uvicorn configuration for the options."""
		config: dict[str, Any] = dict(
			host=options.host,
			port=options.listenPort,
			lifespan="off",
			access_log=False,
			log_level="warning",
			timeout_keep_alive=int(options.keepalive),
		)
		if options.sslEnabled:
			# The keystore holds both the certificate chain and the key
			config.update(
				ssl_certfile=options.keystorePath,
				ssl_keyfile_password=options.keyPassword,
			)
		return config

	def start(self, handler: THandler, options: EngineOptions) -> ServerHandle:
		try:
			import uvicorn
		except ImportError as e:
			raise EngineStartError(
				"The ASGI engine requires uvicorn, install it with `pip install devserve[asgi]`",
				self.NAME,
			) from e
		port = options.listenPort
		# Fails early on a bad keystore, uvicorn would fail in its thread
		sslContext(options)
		server = uvicorn.Server(
			uvicorn.Config(
				ASGIBridge(handler, logRequests=options.logRequests),
				**self.Configure(options),
			)
		)
		thread = threading.Thread(target=server.run, name="devserve-asgi", daemon=True)
		thread.start()
		while not server.started and thread.is_alive():
			time.sleep(0.01)
		if not server.started:
			thread.join()
			raise EngineStartError(
				f"Could not listen on {options.host}:{port}", self.NAME, port
			)
		local_port: int | None = (
			server.servers[0].sockets[0].getsockname()[1] if server.servers else port
		)
		info(
			"Uvicorn server listening",
			icon="🚀",
			Host=options.host,
			Port=local_port,
			TLS=options.sslEnabled,
		)

		def stop() -> None:
			server.should_exit = True
			thread.join()
			info("Uvicorn server stopped", Port=local_port)

		handle = ServerHandle(
			humanName=self.NAME,
			stopServer=stop,
			localPort=local_port,
			server=server,
			thread=thread,
		)
		if options.join:
			handle.wait()
		return handle


# EOF
