# -----------------------------------------------------------------------------
#
# ERRORS
#
# -----------------------------------------------------------------------------


class DevServeError(Exception):
	"""Base class for the errors raised when setting up or starting a server."""


class ResolutionError(DevServeError):
	"""A handler reference could not be resolved to a callable."""

	def __init__(self, message: str, reference: str | None = None):
		super().__init__(message)
		self.reference: str | None = reference


class FilesystemError(DevServeError, OSError):
	"""A filesystem operation required to serve a directory failed."""

	def __init__(self, message: str, path: str):
		super().__init__(message)
		self.path: str = path


class EngineStartError(DevServeError):
	"""The backend engine could not start listening."""

	def __init__(self, message: str, engine: str, port: int | None = None):
		super().__init__(message)
		self.engine: str = engine
		self.port: int | None = port


# EOF
