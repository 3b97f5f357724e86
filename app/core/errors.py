# app/core/errors.py

"""
Domain errors raised by the service layer.

Services never raise HTTPException; the routers translate these into
responses with `raise_http`. Permission problems and upstream failures are
kept apart so the client can tell "contact an admin" from "try again".
"""

from fastapi import HTTPException, status


class AppError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailed(AppError):
    status_code = status.HTTP_400_BAD_REQUEST


class SessionExpired(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED


class PermissionDenied(AppError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND


class ReferentialConflict(AppError):
    status_code = status.HTTP_409_CONFLICT


class UpstreamError(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


def raise_http(exc: AppError):
    raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc
