from .config import ServeConfig
from .engines import EngineOptions, ServerHandle, load
from .handlers import handlerFor
from .http.middleware import withContentType, withNotModified
from .http.model import THandler
from .utils.logging import info


def wrapDefaults(handler: THandler) -> THandler:
	"""Adds the content type inference and not-modified responses."""
	return withNotModified(withContentType(handler))


def engineOptions(config: ServeConfig, *, join: bool = False) -> EngineOptions:
	"""Returns the engine options for the configuration. With SSL properties,
	plain HTTP is disabled and the server only listens on the SSL port."""
	options = EngineOptions(
		port=config.port,
		host=config.host,
		join=join,
		logRequests=config.logRequests,
	)
	if ssl := config.sslProps:
		options = options._replace(
			httpEnabled=False,
			sslEnabled=True,
			sslPort=ssl.port,
			keystorePath=ssl.keystorePath,
			keyPassword=ssl.keyPassword,
		)
	return options


def launch(
	handler: THandler, config: ServeConfig, *, join: bool = False
) -> ServerHandle:
	"""Starts the configured engine with the handler, returning once the
	server is listening."""
	options = engineOptions(config, join=join)
	engine = load(config.engine)
	info(
		"Starting server",
		Engine=engine.NAME,
		Port=options.listenPort,
		TLS=options.sslEnabled,
	)
	return engine.start(wrapDefaults(handler), options)


def server(config: ServeConfig, *, join: bool = False) -> ServerHandle:
	"""High level function to start serving according to the configuration."""
	return launch(handlerFor(config), config, join=join)


# EOF
