import importlib
import ssl
import threading
from abc import ABC, abstractmethod
from typing import Any, Callable, ClassVar, NamedTuple

from ..config import HOST, LOG_REQUESTS, PORT, EngineType
from ..errors import EngineStartError
from ..http.model import THandler

# --
# == Engines
#
# Engines run a handler behind an HTTP listener. They start in the background
# and return a `ServerHandle` to stop them. Each engine is loaded only when
# selected, so that its dependencies are only needed then.


class EngineOptions(NamedTuple):
	port: int = PORT
	host: str = HOST
	# Blocks the `start` call until the server stops
	join: bool = False
	httpEnabled: bool = True
	sslEnabled: bool = False
	sslPort: int | None = None
	keystorePath: str | None = None
	keyPassword: str | None = None
	logRequests: bool = LOG_REQUESTS
	# Idle time after which a kept-alive connection is closed
	keepalive: float = 60.0

	@property
	def listenPort(self) -> int:
		"""The port to listen on, which is the SSL port when TLS is on."""
		if self.sslEnabled:
			if self.sslPort is None:
				raise ValueError("SSL is enabled but no SSL port is given")
			return self.sslPort
		elif self.httpEnabled:
			return self.port
		else:
			raise ValueError("Both HTTP and SSL are disabled, nothing to listen to")


class ServerHandle(NamedTuple):
	"""Describes a running server, which the owner stops with `stopServer`,
	only once."""

	humanName: str
	stopServer: Callable[[], None]
	localPort: int | None = None
	server: Any = None
	thread: threading.Thread | None = None

	def wait(self, timeout: float | None = None) -> None:
		"""Waits for the server thread to end."""
		if self.thread:
			self.thread.join(timeout)


class Engine(ABC):
	NAME: ClassVar[str] = "Engine"

	@abstractmethod
	def start(self, handler: THandler, options: EngineOptions) -> ServerHandle:
		"""Starts serving `handler` according to `options`. Returns once the
		server listens, or once it stops when `options.join` is set. Raises
		an `EngineStartError` when the server can't start."""
		...


def sslContext(options: EngineOptions) -> ssl.SSLContext | None:
	"""Returns the server-side TLS context for the options, if TLS is on."""
	if not options.sslEnabled:
		return None
	if not options.keystorePath:
		raise EngineStartError(
			"SSL is enabled but no keystore is given", "TLS", options.sslPort
		)
	context = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH)
	context.minimum_version = ssl.TLSVersion.TLSv1_2
	try:
		context.load_cert_chain(options.keystorePath, password=options.keyPassword)
	except (OSError, ssl.SSLError) as e:
		raise EngineStartError(
			f"Could not load keystore '{options.keystorePath}': {e}",
			"TLS",
			options.sslPort,
		) from e
	return context


ENGINES: dict[EngineType, str] = {
	EngineType.AIO: "devserve.engines.aio:AIOEngine",
	EngineType.ASGI: "devserve.engines.asgi:ASGIEngine",
}


def load(engine: EngineType) -> Engine:
	"""Imports and instantiates the given engine."""
	module_name, _, class_name = ENGINES[engine].partition(":")
	try:
		module = importlib.import_module(module_name)
	except ImportError as e:
		raise EngineStartError(
			f"Engine '{engine.value}' is not available, its dependencies may be missing: {e}",
			engine.value,
		) from e
	return getattr(module, class_name)()


# EOF
