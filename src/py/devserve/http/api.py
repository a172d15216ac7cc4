from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Any, Iterator, TypeAlias

from ..utils.files import contentType as guessContentType
from ..utils.files import lastModified
from .status import HTTP_STATUS

if TYPE_CHECKING:
	from .model import HTTPResponse

# --
# == Responding
#
# Requests create their own responses, so that handlers only ever deal with
# the request they are given, as in `request.respondText("Hello")`.

TEXT_PLAIN: str = "text/plain"
TEXT_HTML: str = "text/html"
NOT_FOUND_CONTENT_TYPE: str = "text/plain; charset=utf-8"

TContent: TypeAlias = str | bytes | Iterator[str | bytes]


class ResponseFactory(ABC):
	@abstractmethod
	def respond(
		self,
		content: Any = None,
		contentType: str | None = None,
		contentLength: int | None = None,
		status: int = 200,
		headers: dict[str, str] | None = None,
		message: str | None = None,
	) -> "HTTPResponse": ...

	def respondStatus(
		self, status: int, content: str | None = None, *, contentType: str = TEXT_PLAIN
	) -> "HTTPResponse":
		"""Responds with the status, and its reason phrase as body unless
		`content` is given."""
		reason = HTTP_STATUS.get(status, "Unknown status")
		return self.respond(
			reason if content is None else content,
			contentType,
			status=status,
			message=reason,
		)

	def notFound(
		self,
		content: str = "Not found",
		*,
		contentType: str = NOT_FOUND_CONTENT_TYPE,
		status: int = 404,
	) -> "HTTPResponse":
		return self.respondStatus(status, content, contentType=contentType)

	def fail(self, content: str | None = None, *, status: int = 500) -> "HTTPResponse":
		return self.respondStatus(status, content)

	def respondText(
		self, content: TContent, contentType: str = TEXT_PLAIN, status: int = 200
	) -> "HTTPResponse":
		return self.respond(content, contentType, status=status)

	def respondHTML(self, html: TContent, status: int = 200) -> "HTTPResponse":
		return self.respondText(html, TEXT_HTML, status)

	def respondFile(
		self, path: Path | str, *, contentType: str | None = None, status: int = 200
	) -> "HTTPResponse":
		"""Responds with the file at `path`, streamed by the engine, along with
		its modification time. The content type is guessed from the extension
		unless given, and left unset for unknown extensions."""
		file = Path(path)
		return self.respond(
			file,
			contentType or guessContentType(file, None),
			status=status,
			headers={"Last-Modified": lastModified(file)},
		)

	def respondEmpty(
		self, status: int = 204, headers: dict[str, str] | None = None
	) -> "HTTPResponse":
		return self.respond(None, status=status, headers=headers)


# EOF
