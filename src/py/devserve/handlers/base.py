from typing import Any, Callable, TypeAlias
from urllib.parse import unquote

from ..http.model import HTTPRequest, HTTPResponse, THandler
from ..resolve import resolveHandler

# A stage answers a request with a response, or declines it with `None`
TStage: TypeAlias = Callable[[HTTPRequest], HTTPResponse | None]


def first(*stages: TStage) -> TStage:
	"""Composes the stages so that the first response wins. Stages are tried
	in the given order."""

	def stage(request: HTTPRequest) -> HTTPResponse | None:
		for _ in stages:
			if (res := _(request)) is not None:
				return res
		return None

	return stage


def chain(*stages: TStage, fallback: THandler) -> THandler:
	"""Like `first`, falling back to `fallback` when all stages decline."""
	match = first(*stages)

	def handler(request: HTTPRequest) -> Any:
		res = match(request)
		return fallback(request) if res is None else res

	return handler


def notFound(request: HTTPRequest) -> HTTPResponse:
	return request.notFound()


def notFoundHandler(reference: str | Callable[..., Any] | None = None) -> THandler:
	"""Returns the handler for the given not-found reference, or the default
	one, which responds with a plain text 404."""
	return resolveHandler(reference) if reference else notFound


def decodeURI(uri: str) -> str | None:
	"""Percent-decodes the URI path as UTF-8, returning `None` for paths that
	can't map to a file: relative paths, and paths with a parent segment or a
	null byte."""
	path = unquote(uri, encoding="utf-8")
	if not path.startswith("/"):
		return None
	if "\0" in path or ".." in path.replace("\\", "/").split("/"):
		return None
	return path


# EOF
