from ..config import ServeConfig
from ..http.model import THandler
from ..resolve import provider
from .base import TStage, chain, first, notFoundHandler  # NOQA: F401
from .files import dirHandler, indexFor, fileFor  # NOQA: F401
from .resources import resourcesHandler, resourceFor, indexResourceFor  # NOQA: F401


def customHandler(config: ServeConfig) -> THandler | None:
	"""Returns the user handler, reloaded on changes when `reload` is set."""
	if not config.handler:
		return None
	return provider(
		config.handler, reload=config.reload, dirs=config.watchDirs
	).handler()


def handlerFor(config: ServeConfig) -> THandler:
	"""Returns the handler for the configuration, which is the custom handler
	if any, the directory handler when a `dir` is given, or the resources
	handler. Only the selected handler is created."""
	return (
		customHandler(config)
		or dirHandler(
			config.dir,
			resourceRoot=config.resourceRoot,
			resourcePaths=config.resourcePaths,
			notFound=config.notFound,
		)
		or resourcesHandler(
			config.resourceRoot,
			resourcePaths=config.resourcePaths,
			notFound=config.notFound,
		)
	)


# EOF
