from .model import HTTPRequest, HTTPResponse, HTTPHeaders, headername  # NOQA: F401

# EOF
