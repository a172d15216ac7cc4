"""
Custom Handler Example

This serves a handler that is reloaded whenever a Python source in the
`examples` directory changes. Edit the message and reload the page.

Usage:
    cd examples && devserve -H handler:handler -R -w .

Test with:
    curl http://localhost:8000/anything
    curl http://localhost:8000/anything?name=World
"""

from devserve import HTTPRequest, HTTPResponse

MESSAGE = "Hello"


def handler(request: HTTPRequest) -> HTTPResponse:
	if request.path == "/favicon.ico":
		return request.notFound()
	return request.respondText(
		f"{MESSAGE}, {request.param('name', 'there')}! You asked for {request.path}\n"
	)


# EOF
