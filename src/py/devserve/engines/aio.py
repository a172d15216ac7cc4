import asyncio
import inspect
import ssl
import threading
from functools import partial
from typing import Any

from ..errors import EngineStartError
from ..http.model import HTTPBody, HTTPBodyBlob, HTTPRequest, HTTPResponse, THandler
from ..http.parser import END_OF_HEAD, HTTPParseError, parseRequest
from ..http.status import HTTP_NO_BODY
from ..utils.logging import event, exception, info, logged, warning
from . import Engine, EngineOptions, ServerHandle, sslContext

SERVER_CONTINUE: bytes = b"HTTP/1.1 100 Continue\r\n\r\n"
SERVER_NOCONTENT: bytes = b"HTTP/1.1 204 No Content\r\nConnection: close\r\n\r\n"
SERVER_ERROR: bytes = (
	b"HTTP/1.1 500 Internal Server Error\r\n"
	b"Content-Type: text/plain\r\n"
	b"Content-Length: 21\r\n"
	b"Connection: close\r\n"
	b"\r\n"
	b"Internal server error"
)
BAD_REQUEST: bytes = (
	b"HTTP/1.1 400 Bad Request\r\n"
	b"Content-Type: text/plain\r\n"
	b"Content-Length: 11\r\n"
	b"Connection: close\r\n"
	b"\r\n"
	b"Bad request"
)


class AIOServerState:
	"""Shared between the thread that starts the server and the thread that
	runs its event loop."""

	def __init__(self) -> None:
		self.ready = threading.Event()
		self.loop: asyncio.AbstractEventLoop | None = None
		self.stopped: asyncio.Event | None = None
		self.clients: set[asyncio.StreamWriter] = set()
		self.port: int | None = None
		self.error: BaseException | None = None

	def stop(self) -> None:
		if self.loop and self.stopped and not self.loop.is_closed():
			self.loop.call_soon_threadsafe(self.stopped.set)

	def onException(
		self, loop: asyncio.AbstractEventLoop, context: dict[str, Any]
	) -> None:
		e = context.get("exception")
		if isinstance(e, (ConnectionError, ssl.SSLError)):
			# Clients going away or failing the TLS handshake
			pass
		elif e:
			exception(e)
		else:
			warning(context.get("message", "Event loop error"))


class AIOEngine(Engine):
	"""AsyncIO engine using streams, running its own event loop in a
	background thread. Handlers run in the loop's default executor."""

	NAME = "AIO"

	def start(self, handler: THandler, options: EngineOptions) -> ServerHandle:
		port = options.listenPort
		context = sslContext(options)
		state = AIOServerState()
		thread = threading.Thread(
			target=self.Run,
			args=(handler, options, state, context),
			name="devserve-aio",
			daemon=True,
		)
		thread.start()
		state.ready.wait()
		if state.error:
			thread.join()
			raise EngineStartError(
				f"Could not listen on {options.host}:{port}: {state.error}",
				self.NAME,
				port,
			) from state.error

		def stop() -> None:
			state.stop()
			thread.join()

		handle = ServerHandle(
			humanName=self.NAME,
			stopServer=stop,
			localPort=state.port,
			server=state,
			thread=thread,
		)
		if options.join:
			handle.wait()
		return handle

	@classmethod
	def Run(
		cls,
		handler: THandler,
		options: EngineOptions,
		state: AIOServerState,
		context: ssl.SSLContext | None,
	) -> None:
		try:
			asyncio.run(cls.Serve(handler, options, state, context))
		except Exception as e:
			if state.ready.is_set():
				exception(e)
			else:
				state.error = e
		finally:
			state.ready.set()

	@classmethod
	async def Serve(
		cls,
		handler: THandler,
		options: EngineOptions,
		state: AIOServerState,
		context: ssl.SSLContext | None,
	) -> None:
		"""Main server coroutine, returning once the state is stopped."""
		loop = asyncio.get_running_loop()
		loop.set_exception_handler(state.onException)
		state.loop = loop
		state.stopped = asyncio.Event()
		try:
			server = await asyncio.start_server(
				partial(cls.OnConnection, handler, options=options, state=state),
				options.host,
				options.listenPort,
				ssl=context,
				reuse_address=True,
			)
		except OSError as e:
			state.error = e
			state.ready.set()
			return
		state.port = server.sockets[0].getsockname()[1]
		state.ready.set()
		info(
			"AIO server listening",
			icon="🚀",
			Host=options.host,
			Port=state.port,
			TLS=context is not None,
		)
		try:
			await state.stopped.wait()
		finally:
			server.close()
			# Kept-alive connections would otherwise hold the server open
			for writer in list(state.clients):
				writer.close()
			try:
				await asyncio.wait_for(server.wait_closed(), timeout=5.0)
			except asyncio.TimeoutError:
				warning("Connections still open on shutdown", Count=len(state.clients))
			info("AIO server stopped", Port=state.port)

	@classmethod
	async def OnConnection(
		cls,
		handler: THandler,
		reader: asyncio.StreamReader,
		writer: asyncio.StreamWriter,
		*,
		options: EngineOptions,
		state: AIOServerState,
	) -> None:
		"""Processes the requests of a client connection, for as long as it
		is kept alive."""
		state.clients.add(writer)
		loop = asyncio.get_running_loop()
		try:
			keep_alive: bool = True
			while keep_alive:
				try:
					head = await asyncio.wait_for(
						reader.readuntil(END_OF_HEAD), timeout=options.keepalive
					)
				except (asyncio.IncompleteReadError, asyncio.TimeoutError):
					break
				except asyncio.LimitOverrunError:
					writer.write(BAD_REQUEST)
					break
				try:
					request = parseRequest(head)
				except HTTPParseError as e:
					warning("Malformed request", Error=str(e))
					writer.write(BAD_REQUEST)
					break
				if request.header("Expect") == "100-continue":
					writer.write(SERVER_CONTINUE)
				if length := request.contentLength:
					request._body = HTTPBodyBlob.FromBytes(
						await reader.readexactly(length)
					)
				if options.logRequests and logged(event):
					event(request.method, request.path)
				res = await cls.SendResponse(handler, request, writer, loop)
				keep_alive = (
					res is not None and request.keepAlive and not res.shouldClose
				)
			await writer.drain()
		except (ConnectionError, asyncio.IncompleteReadError):
			# Client did an early close
			pass
		except Exception as e:
			exception(e)
		finally:
			state.clients.discard(writer)
			writer.close()

	@staticmethod
	async def SendResponse(
		handler: THandler,
		request: HTTPRequest,
		writer: asyncio.StreamWriter,
		loop: asyncio.AbstractEventLoop,
	) -> HTTPResponse | None:
		"""Processes the request with the handler and sends the response,
		returning it. Returns `None` when no proper response was sent, in
		which case the connection is to be closed."""
		try:
			r = await loop.run_in_executor(None, handler, request)
			res = (await r) if inspect.isawaitable(r) else r
		except Exception as e:
			exception(e, f"Handler failed on {request.method} {request.path}")
			writer.write(SERVER_ERROR)
			await writer.drain()
			return None
		if res is None:
			warning(
				"Handler did not return a response",
				Method=request.method,
				Path=request.path,
			)
			writer.write(SERVER_NOCONTENT)
			await writer.drain()
			return None
		writer.write(res.head())
		if request.method != "HEAD" and res.status not in HTTP_NO_BODY:
			chunks = HTTPBody.AsyncIter(res.body)
			try:
				async for chunk in chunks:
					writer.write(chunk)
					await writer.drain()
			finally:
				# Releases the file of clients that go away mid-stream
				await chunks.aclose()
		await writer.drain()
		return res


# EOF
