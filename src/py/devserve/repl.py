import asyncio
import atexit
import code
import io
import os
import threading
from contextlib import redirect_stdout
from pathlib import Path
from typing import Any

from .config import ReplOptions
from .errors import EngineStartError
from .utils.logging import exception, info

# --
# == Remote evaluation
#
# A line-oriented Python console served over TCP, so that editors and tools
# can evaluate code within the running server. It is bound to the loopback
# interface unless told otherwise, as it evaluates anything it's sent.

PROMPT: bytes = b">>> "
PROMPT_MORE: bytes = b"... "


class RemoteConsole(code.InteractiveConsole):
	"""A console whose output, including tracebacks, is collected so that it
	can be sent back to the client."""

	def __init__(self, namespace: dict[str, Any] | None = None):
		super().__init__(namespace, filename="<repl>")
		self.output = io.StringIO()

	def write(self, data: str) -> None:
		self.output.write(data)

	def feed(self, line: str) -> tuple[bool, str]:
		"""Feeds a line of source, returning whether more input is expected
		and the output produced."""
		# NOTE: This captures the output of the whole process while the line
		# is evaluated.
		with redirect_stdout(self.output):
			more = self.push(line)
		out = self.output.getvalue()
		self.output.seek(0)
		self.output.truncate()
		return more, out


class ReplServer:
	def __init__(self, options: ReplOptions):
		self.options: ReplOptions = options
		self.ready = threading.Event()
		self.thread: threading.Thread | None = None
		self.loop: asyncio.AbstractEventLoop | None = None
		self.stopped: asyncio.Event | None = None
		self.port: int | None = None
		self.error: BaseException | None = None

	@property
	def portFile(self) -> Path:
		return Path(self.options.portFile)

	def start(self) -> "ReplServer":
		self.thread = threading.Thread(
			target=self.run, name="devserve-repl", daemon=True
		)
		self.thread.start()
		self.ready.wait()
		if self.error:
			raise EngineStartError(
				f"Could not start REPL on {self.options.bind}:{self.options.port}: {self.error}",
				"REPL",
				self.options.port,
			) from self.error
		self.portFile.write_text(str(self.port))
		atexit.register(self.removePortFile)
		info(
			f"Started REPL on repl://{self.options.bind}:{self.port}",
			PortFile=str(self.portFile),
		)
		return self

	def removePortFile(self) -> None:
		try:
			os.unlink(self.portFile)
		except FileNotFoundError:
			pass

	def stop(self) -> None:
		if self.loop and self.stopped and not self.loop.is_closed():
			self.loop.call_soon_threadsafe(self.stopped.set)
		if self.thread:
			self.thread.join()
		self.removePortFile()

	def run(self) -> None:
		try:
			asyncio.run(self.serve())
		except Exception as e:
			if self.ready.is_set():
				exception(e)
			else:
				self.error = e
		finally:
			self.ready.set()

	async def serve(self) -> None:
		self.loop = asyncio.get_running_loop()
		self.stopped = asyncio.Event()
		try:
			server = await asyncio.start_server(
				self.onConnection, self.options.bind, self.options.port
			)
		except OSError as e:
			self.error = e
			self.ready.set()
			return
		self.port = server.sockets[0].getsockname()[1]
		self.ready.set()
		try:
			await self.stopped.wait()
		finally:
			server.close()

	async def onConnection(
		self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
	) -> None:
		console = RemoteConsole({"__name__": "__repl__"})
		try:
			writer.write(PROMPT)
			await writer.drain()
			while line := await reader.readline():
				more, out = console.feed(line.decode("utf8").rstrip("\r\n"))
				writer.write(out.encode("utf8"))
				writer.write(PROMPT_MORE if more else PROMPT)
				await writer.drain()
		except ConnectionError:
			pass
		finally:
			writer.close()


def startRepl(options: ReplOptions | None = None) -> ReplServer:
	"""Starts the remote evaluation server, writing its port to the port file,
	which is removed when the process exits."""
	return ReplServer(options or ReplOptions()).start()


# EOF
