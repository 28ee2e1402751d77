"""HTTP middleware for the comments API."""

from spotcomments.middleware.cors import CORSMiddleware
from spotcomments.middleware.request_id import REQUEST_ID_HEADER, RequestIDMiddleware

__all__ = ["CORSMiddleware", "RequestIDMiddleware", "REQUEST_ID_HEADER"]
