from http import HTTPStatus

# Maps status codes to their reason phrase, as in `404: "Not Found"`
HTTP_STATUS: dict[int, str] = {_.value: _.phrase for _ in HTTPStatus}

# Responses with these status never carry a body
HTTP_NO_BODY: frozenset[int] = frozenset((204, 304))

# EOF
