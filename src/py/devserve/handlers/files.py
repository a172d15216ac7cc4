import os
from pathlib import Path
from typing import Any, Callable, Iterable
from urllib.parse import quote

from ..errors import FilesystemError
from ..http.model import HTTPRequest, HTTPResponse, THandler
from ..utils.files import DirectoryEntry, listDirectory
from ..utils.htmpl import H, html
from ..utils.logging import warning
from .base import TStage, chain, decodeURI, notFoundHandler
from .resources import resourceFor

# --
# == Directory serving
#
# Directories are served with their index file when there's one, and with a
# generated listing otherwise. Files are served as-is.

INDEX_FILES: frozenset[str] = frozenset(("index.html", "index.htm"))


def rootPathOf(dir: str | Path) -> str:
	"""Returns the root path as it prefixes the paths of the listed entries,
	`.` for the current directory."""
	return str(Path(dir))


def indexFile(entries: Iterable[DirectoryEntry]) -> DirectoryEntry | None:
	"""Returns the first entry named `index.html` or `index.htm`, ignoring case."""
	for _ in entries:
		if _.name.lower() in INDEX_FILES:
			return _
	return None


def pathDiff(rootPath: str, path: str) -> str:
	"""Strips the root path prefix from the given path."""
	return path[len(rootPath) :] if path.startswith(rootPath) else path


def filepathFromURI(rootPath: str, uri: str) -> str | None:
	"""Maps the URI onto the root path, without normalization."""
	path = decodeURI(uri)
	return None if path is None else rootPath + path


def renderListing(rootPath: str, entries: Iterable[DirectoryEntry]) -> str:
	return "".join(
		html(
			H.meta(charset="utf-8"),
			H.body(
				H.h1("Directory listing"),
				H.hr(),
				H.ul(
					*(
						H.li(H.a(_.name, href=quote(pathDiff(rootPath, _.path))))
						for _ in entries
					)
				),
			),
			doctype="html",
		)
	)


def indexFor(dir: str | Path) -> TStage:
	"""Returns a stage that answers requests for directories with their index
	file, or their listing, declining anything else."""
	root_path: str = rootPathOf(dir)

	def stage(request: HTTPRequest) -> HTTPResponse | None:
		directory = filepathFromURI(root_path, request.path)
		if directory is None or not os.path.isdir(directory):
			return None
		entries = listDirectory(directory)
		if index := indexFile(entries):
			return request.respondFile(Path(index.path), contentType="text/html")
		else:
			return request.respondHTML(renderListing(root_path, entries))

	return stage


def fileFor(dir: str | Path) -> TStage:
	"""Returns a stage that serves the files within `dir` to `GET` and `HEAD`
	requests. Directories are declined, index files are left to `indexFor`."""
	root: Path = Path(dir).resolve()

	def stage(request: HTTPRequest) -> HTTPResponse | None:
		if request.method not in ("GET", "HEAD"):
			return None
		name = decodeURI(request.path)
		if name is None:
			return None
		path = root.joinpath(name.lstrip("/")).resolve()
		if not (path.is_relative_to(root) and path.is_file()):
			return None
		return request.respondFile(path)

	return stage


def ensureDirectory(dir: str | Path) -> Path:
	"""Creates the directory, and its parents, when it does not exist."""
	path = Path(dir)
	if not path.exists():
		warning(f"Directory '{dir}' was not found. Creating it…")
		try:
			path.mkdir(parents=True, exist_ok=True)
		except OSError as e:
			raise FilesystemError(f"Could not create directory '{dir}': {e}", str(dir)) from e
	return path


def dirHandler(
	dir: str | Path | None,
	*,
	resourceRoot: str = "",
	resourcePaths: Iterable[str] | None = None,
	notFound: str | Callable[..., Any] | None = None,
) -> THandler | None:
	"""Returns the handler serving `dir`, or `None` when there's no `dir`."""
	if not dir:
		return None
	ensureDirectory(dir)
	return chain(
		indexFor(dir),
		fileFor(dir),
		resourceFor(resourceRoot, resourcePaths),
		fallback=notFoundHandler(notFound),
	)


# EOF
