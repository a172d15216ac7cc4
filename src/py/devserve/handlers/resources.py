import sys
from pathlib import Path
from typing import Any, Callable, Iterable

from ..http.model import HTTPRequest, HTTPResponse, THandler
from .base import TStage, chain, decodeURI, notFoundHandler

# --
# == Resource serving
#
# Resources are the read-only assets bundled along the code. They are looked
# up under a root, along a search path, the same way modules are found along
# `sys.path`.


class Resources:
	"""Resolves resource names under `root` along the search `paths`, which
	default to `sys.path` at the time of the lookup."""

	def __init__(self, root: str = "", paths: Iterable[str] | None = None):
		self.root: str = root.strip("/")
		self._paths: tuple[str, ...] | None = (
			None if paths is None else tuple(str(_) for _ in paths)
		)

	@property
	def paths(self) -> list[str]:
		# An empty `sys.path` entry stands for the current directory
		return list(self._paths) if self._paths is not None else [_ or "." for _ in sys.path]

	def resolve(self, name: str) -> Path | None:
		"""Returns the path of the resource file `name`, or `None` when it
		can't be found. Directories are not resources."""
		relpath = "/".join(_ for _ in (self.root, name.lstrip("/")) if _)
		if not relpath or "\0" in relpath or ".." in relpath.split("/"):
			return None
		for base in self.paths:
			path = Path(base, relpath)
			if path.is_file():
				return path
		return None

	def __repr__(self) -> str:
		return f"(Resources root={self.root!r})"


def resourceFor(root: str = "", paths: Iterable[str] | None = None) -> TStage:
	"""Returns a stage serving the resource at the request path to `GET` and
	`HEAD` requests."""
	resources = Resources(root, paths)

	def stage(request: HTTPRequest) -> HTTPResponse | None:
		if request.method not in ("GET", "HEAD"):
			return None
		name = decodeURI(request.path)
		path = resources.resolve(name) if name else None
		return request.respondFile(path) if path else None

	return stage


def indexResourceFor(root: str = "", paths: Iterable[str] | None = None) -> TStage:
	"""Returns a stage serving the `index.html` resource of the requested
	directory to `GET` requests, so that `/docs` and `/docs/` both serve
	`docs/index.html`."""
	resources = Resources(root, paths)

	def stage(request: HTTPRequest) -> HTTPResponse | None:
		if request.method != "GET":
			return None
		uri = decodeURI(request.path)
		if uri is None:
			return None
		uri = uri.removeprefix("/")
		uri = uri if uri.endswith("/") else f"{uri}/"
		path = resources.resolve(f"{uri}index.html")
		return request.respondFile(path, contentType="text/html") if path else None

	return stage


def resourcesHandler(
	resourceRoot: str = "",
	*,
	resourcePaths: Iterable[str] | None = None,
	notFound: str | Callable[..., Any] | None = None,
) -> THandler:
	"""Returns the handler serving the resources under `resourceRoot`."""
	return chain(
		resourceFor(resourceRoot, resourcePaths),
		indexResourceFor(resourceRoot, resourcePaths),
		fallback=notFoundHandler(notFound),
	)


# EOF
