import mimetypes
import os
from email.utils import formatdate
from pathlib import Path
from typing import NamedTuple

mimetypes.init()

# Extensions that `mimetypes` gets wrong or does not know about.
MIME_TYPES: dict[str, str] = dict(
	bz2="application/x-bzip",
	gz="application/x-gzip",
	js="text/javascript",
	mjs="text/javascript",
	md="text/markdown",
	wasm="application/wasm",
)


class DirectoryEntry(NamedTuple):
	"""An entry of a directory listing."""

	name: str
	path: str
	isDirectory: bool

	@staticmethod
	def FromPath(path: str) -> "DirectoryEntry":
		return DirectoryEntry(
			name=os.path.basename(path),
			path=path,
			isDirectory=os.path.isdir(path),
		)


def listDirectory(path: str) -> list[DirectoryEntry]:
	"""Lists the entries of the directory at `path`, sorted by name. The entry
	paths are joined onto `path` as given, without normalization."""
	return [
		DirectoryEntry.FromPath(os.path.join(path, _)) for _ in sorted(os.listdir(path))
	]


def contentType(path: Path | str, default: str | None = "text/plain") -> str | None:
	"""Guesses the content type from the given path's extension"""
	name = str(path)
	ext = name.rsplit(".", 1)[-1].lower() if "." in os.path.basename(name) else ""
	return (
		res
		if (res := MIME_TYPES.get(ext))
		else mimetypes.guess_type(name)[0] or default
	)


def lastModified(path: Path | str) -> str:
	"""Returns the modification time of `path` as an HTTP date."""
	return formatdate(os.stat(path).st_mtime, usegmt=True)


# EOF
