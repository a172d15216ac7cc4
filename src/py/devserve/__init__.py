from .http.model import HTTPRequest, HTTPResponse  # NOQA: F401
from .config import ServeConfig, SSLProps, ReplOptions, EngineType  # NOQA: F401
from .errors import (  # NOQA: F401
	DevServeError,
	ResolutionError,
	FilesystemError,
	EngineStartError,
)
from .handlers import handlerFor  # NOQA: F401
from .server import server, launch  # NOQA: F401
from .repl import startRepl  # NOQA: F401

# EOF
