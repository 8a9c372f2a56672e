"""
Application exceptions and their JSON rendering.
"""
from flask import jsonify


class AppError(Exception):
    """Base class for errors that map to an HTTP status."""

    status_code = 500

    def __init__(self, message, status_code=None, detail=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.detail = detail

    def to_dict(self):
        d = {"error": self.message}
        if self.detail:
            d["detail"] = self.detail
        return d


class ValidationError(AppError):
    status_code = 400


class NotFoundError(AppError):
    status_code = 404


class UpstreamServiceError(AppError):
    """
    A third-party provider returned a bad status or a malformed body.

    Rate limiting and oversized requests surface as 429 unless an explicit
    status_code is given.
    """

    status_code = 502

    RATE_LIMIT_MARKERS = ("rate_limit_exceeded", "Request too large")

    def __init__(self, message, status_code=None, detail=None, upstream_status=None):
        super().__init__(message, status_code=status_code, detail=detail)
        self.upstream_status = upstream_status
        if status_code is None and self.is_rate_limited:
            self.status_code = 429

    @property
    def is_rate_limited(self):
        if self.upstream_status in (413, 429):
            return True
        text = f"{self.message} {self.detail or ''}"
        return any(marker in text for marker in self.RATE_LIMIT_MARKERS)

    @classmethod
    def from_response(cls, service, resp):
        body = resp.text[:500] if resp.text else ""
        return cls(
            f"{service} API error: {resp.status_code} {body}".strip(),
            upstream_status=resp.status_code,
        )


class EmbeddingError(UpstreamServiceError):
    pass


def register_error_handlers(app):
    @app.errorhandler(AppError)
    def handle_app_error(err):
        if err.status_code >= 500:
            app.logger.error(f"{type(err).__name__}: {err.message}")
        return jsonify(err.to_dict()), err.status_code
