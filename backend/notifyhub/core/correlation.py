import uuid
from typing import Any

from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from notifyhub.core.logging import correlation_id_context, request_metadata_context


class CorrelationContext:
    @staticmethod
    def generate_correlation_id() -> str:
        return f"req_{uuid.uuid4()}"

    @staticmethod
    def set_correlation_id(correlation_id: str) -> str:
        correlation_id_context.set(correlation_id)
        return correlation_id

    @staticmethod
    def get_correlation_id() -> str:
        return correlation_id_context.get() or ""

    @staticmethod
    def set_request_metadata(metadata: dict[str, Any]) -> None:
        request_metadata_context.set(metadata)

    @staticmethod
    def clear() -> None:
        correlation_id_context.set(None)
        request_metadata_context.set(None)


class CorrelationMiddleware:
    CORRELATION_HEADER = "X-Correlation-ID"

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = dict(scope["headers"])
        correlation_id = None
        for header_name in (b"x-correlation-id", b"x-request-id"):
            if header_name in headers:
                correlation_id = headers[header_name].decode("latin-1")
                break

        correlation_id = CorrelationContext.set_correlation_id(
            correlation_id or CorrelationContext.generate_correlation_id()
        )
        CorrelationContext.set_request_metadata({"method": scope["method"], "path": scope["path"]})

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                response_headers = MutableHeaders(scope=message)
                response_headers[self.CORRELATION_HEADER] = correlation_id
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            CorrelationContext.clear()
