from enum import Enum
from os import getenv
from typing import Any, Callable, NamedTuple

PORT: int = int(getenv("PORT", 8000))

# A development server is only reachable locally, unless told otherwise
HOST: str = getenv("HOST", "127.0.0.1")

LOG_REQUESTS: bool = getenv("DEVSERVE_LOG_REQUESTS", "1") == "1"

# Directories watched for changes when reloading a custom handler
WATCH_DIRS: tuple[str, ...] = ("src",)

REPL_BIND: str = "127.0.0.1"
REPL_PORT_FILE: str = ".repl-port"


class EngineType(Enum):
	"""The backend engines that can run the handler."""

	AIO = "aio"
	ASGI = "asgi"

	@staticmethod
	def Get(value: "EngineType | str | bool | None") -> "EngineType":
		"""Returns the engine type for the given value. `True` and `False`
		select the alternative and default engine respectively."""
		if isinstance(value, EngineType):
			return value
		elif value is True:
			return EngineType.ASGI
		elif value is False or value is None:
			return EngineType.AIO
		else:
			try:
				return EngineType(value.lower())
			except ValueError:
				raise ValueError(
					f"Unknown engine '{value}', pick one of {','.join(_.value for _ in EngineType)}"
				) from None


ENGINE: EngineType = EngineType.Get(getenv("DEVSERVE_ENGINE", EngineType.AIO.value))


class SSLProps(NamedTuple):
	"""TLS settings. The keystore is a PEM file holding the certificate chain
	and the private key, which may be protected by `keyPassword`."""

	port: int
	keystorePath: str
	keyPassword: str | None = None


class ReplOptions(NamedTuple):
	bind: str = REPL_BIND
	port: int = 0
	portFile: str = REPL_PORT_FILE


class ServeConfig(NamedTuple):
	"""The configuration of a server. Only one of `handler`, `dir` and the
	resources ends up serving requests, picked in that order."""

	handler: str | Callable[..., Any] | None = None
	reload: bool = False
	watchDirs: tuple[str, ...] = WATCH_DIRS
	dir: str | None = None
	resourceRoot: str = ""
	resourcePaths: tuple[str, ...] | None = None
	notFound: str | Callable[..., Any] | None = None
	host: str = HOST
	port: int = PORT
	engine: EngineType = ENGINE
	sslProps: SSLProps | None = None
	logRequests: bool = LOG_REQUESTS
	repl: ReplOptions | None = None

	@staticmethod
	def Make(**options: Any) -> "ServeConfig":
		"""Creates a configuration from loosely typed options, as given by a
		command line or a build tool."""
		if "engine" in options:
			options["engine"] = EngineType.Get(options["engine"])
		if options.get("watchDirs") is not None:
			options["watchDirs"] = tuple(options["watchDirs"]) or WATCH_DIRS
		if options.get("resourcePaths") is not None:
			options["resourcePaths"] = tuple(str(_) for _ in options["resourcePaths"])
		ssl = options.get("sslProps")
		if isinstance(ssl, dict):
			options["sslProps"] = SSLProps(**ssl) if ssl else None
		repl = options.get("repl")
		if isinstance(repl, dict):
			options["repl"] = ReplOptions(**repl)
		elif repl is True:
			options["repl"] = ReplOptions()
		elif repl is False:
			options["repl"] = None
		# `None` stands for the default value
		return ServeConfig(**{k: v for k, v in options.items() if v is not None})


# EOF
