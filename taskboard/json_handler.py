"""Shared base for the Vercel serverless JSON endpoints."""

import asyncio
import json
from http.server import BaseHTTPRequestHandler
from typing import Awaitable, Callable, Optional, TypeVar
from urllib.parse import parse_qs, urlsplit

from pydantic import BaseModel, ValidationError

from taskboard.models.user import UserRef
from taskboard.services.session_verifier import verify_session_headers
from taskboard.services.user_directory import UserDirectory
from taskboard.utils.errors import (
    AuthenticationError,
    ConfigurationError,
    StoreError,
    TaskboardError,
    TaskValidationError,
)
from taskboard.utils.logging import correlation_context, get_structured_logger, mask_user_id
from taskboard.utils.logging_config import LoggingConfig

LoggingConfig.setup_logging()
logger = get_structured_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)
Operation = Callable[[], Awaitable[tuple[int, dict]]]


def parse_body(model: type[ModelT], body: dict) -> ModelT:
    """Validate a request body, turning pydantic errors into validation messages."""
    try:
        return model.model_validate(body)
    except ValidationError as e:
        errors = [
            f"{'.'.join(str(part) for part in err['loc']) or 'body'}: {err['msg']}"
            for err in e.errors()
        ]
        raise TaskValidationError(errors)


class JsonRequestHandler(BaseHTTPRequestHandler):
    """Request handler with JSON in/out, caller authentication and error mapping."""

    def log_message(self, format, *args):
        logger.debug(format % args, client=self.address_string())

    @property
    def route_path(self) -> str:
        return urlsplit(self.path).path

    @property
    def query(self) -> dict[str, str]:
        """Query parameters, last value wins."""
        params = parse_qs(urlsplit(self.path).query)
        return {key: values[-1] for key, values in params.items()}

    def read_json(self) -> dict:
        try:
            content_length = int(self.headers.get("Content-Length", 0) or 0)
        except ValueError:
            raise TaskValidationError(["Content-Length must be an integer."])
        raw_body = self.rfile.read(content_length) if content_length > 0 else b""
        if not raw_body:
            return {}
        try:
            body = json.loads(raw_body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            raise TaskValidationError(["Request body must be valid JSON."])
        if not isinstance(body, dict):
            raise TaskValidationError(["Request body must be a JSON object."])
        return body

    def send_json(self, status: int, payload: dict, headers: Optional[dict] = None) -> None:
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        for name, value in (headers or {}).items():
            self.send_header(name, value)
        self.end_headers()
        self.wfile.write(json.dumps(payload).encode("utf-8"))

    async def authenticate(self, directory: UserDirectory) -> UserRef:
        """Verified caller as a directory user."""
        user_id = verify_session_headers(self.headers)
        user = await directory.get_user(user_id)
        if user is None:
            logger.warning("Authenticated id not in directory", user_id=mask_user_id(user_id))
            raise AuthenticationError("Unknown user")
        return user

    def dispatch(self, operation: Operation) -> None:
        """Run an async operation and send its (status, payload) or the mapped error."""
        correlation_id = self.headers.get(LoggingConfig.LOG_CORRELATION_ID_HEADER)
        with correlation_context(correlation_id) as cid:
            try:
                status, payload = asyncio.run(operation())
            except TaskValidationError as e:
                status, payload = 400, {"status": "error", "errors": e.errors}
            except StoreError as e:
                logger.error(f"Store failure: {e}", exc_info=True, path=self.route_path)
                status, payload = 500, {"error": "Task store request failed, please retry.", "retryable": True}
            except ConfigurationError as e:
                logger.error(f"Configuration error: {e}", path=self.route_path)
                status, payload = 500, {"error": "internal server error"}
            except TaskboardError as e:
                status, payload = e.status_code, {"error": str(e)}
            except Exception as e:
                logger.exception(f"Unhandled error: {e}", path=self.route_path)
                status, payload = 500, {"error": "internal server error"}

            logger.info(
                "Request handled",
                method=self.command,
                path=self.route_path,
                status=status
            )
            self.send_json(status, payload, {LoggingConfig.LOG_CORRELATION_ID_HEADER: cid})
