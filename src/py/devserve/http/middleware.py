import inspect
from datetime import datetime
from email.utils import parsedate_to_datetime
from functools import wraps
from typing import Any, Callable

from ..utils.files import contentType
from .model import HTTPBodyFile, HTTPRequest, HTTPResponse, THandler

DEFAULT_CONTENT_TYPE: str = "application/octet-stream"


def post(
	handler: THandler, transform: Callable[[HTTPRequest, HTTPResponse], HTTPResponse]
) -> THandler:
	"""Wraps the handler so that `transform` is applied to each response it
	produces, including the ones it returns as awaitables. Declined requests
	are passed through."""

	@wraps(handler)
	def wrapper(request: HTTPRequest) -> Any:
		res = handler(request)
		if inspect.isawaitable(res):

			async def deferred() -> HTTPResponse | None:
				r = await res
				return None if r is None else transform(request, r)

			return deferred()
		else:
			return None if res is None else transform(request, res)

	return wrapper


# -----------------------------------------------------------------------------
#
# CONTENT TYPE
#
# -----------------------------------------------------------------------------


def setContentType(request: HTTPRequest, response: HTTPResponse) -> HTTPResponse:
	"""Sets the `Content-Type` of responses that have a body but no type,
	guessing it from the served file or the request path extension."""
	if response.body is not None and not response.contentType:
		response.setHeader(
			"Content-Type",
			contentType(
				response.body.path
				if isinstance(response.body, HTTPBodyFile)
				else request.path,
				None,
			)
			or DEFAULT_CONTENT_TYPE,
		)
	return response


def withContentType(handler: THandler) -> THandler:
	return post(handler, setContentType)


# -----------------------------------------------------------------------------
#
# NOT MODIFIED
#
# -----------------------------------------------------------------------------


def httpdate(value: str | None) -> datetime | None:
	if not value:
		return None
	try:
		return parsedate_to_datetime(value)
	except (TypeError, ValueError):
		return None


def etagMatches(ifNoneMatch: str, etag: str) -> bool:
	candidates = [_.strip() for _ in ifNoneMatch.split(",")]
	# Weak comparison, as required for `If-None-Match`
	weak = etag.removeprefix("W/")
	return "*" in candidates or any(_.removeprefix("W/") == weak for _ in candidates)


def isNotModified(request: HTTPRequest, response: HTTPResponse) -> bool:
	"""Tells if the client's cached copy is current. `If-None-Match` takes
	precedence over `If-Modified-Since`."""
	if_none_match = request.header("If-None-Match")
	if if_none_match is not None:
		etag = response.getHeader("ETag")
		return bool(etag and etagMatches(if_none_match, etag))
	modified_since = httpdate(request.header("If-Modified-Since"))
	last_modified = httpdate(response.getHeader("Last-Modified"))
	if modified_since and last_modified:
		try:
			return last_modified <= modified_since
		except TypeError:
			# Naive and aware datetimes can't be compared
			return False
	return False


def setNotModified(request: HTTPRequest, response: HTTPResponse) -> HTTPResponse:
	"""Downgrades a 200 response to a 304 when the client's copy is current."""
	if (
		request.method in ("GET", "HEAD")
		and response.status == 200
		and isNotModified(request, response)
	):
		response.status = 304
		response.message = "Not Modified"
		response.body = None
		response.setHeader("Content-Length", 0)
	return response


def withNotModified(handler: THandler) -> THandler:
	return post(handler, setNotModified)


# EOF
