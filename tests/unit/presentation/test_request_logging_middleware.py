"""
Unit tests for RequestLoggingMiddleware.

Usage:
    pytest tests/unit/presentation/test_request_logging_middleware.py
"""

from unittest.mock import MagicMock

import httpx
from fastapi import FastAPI

from shared.reporter import SystemReporter
from shared.tests import LaborantTest

from concierge.presentation.api.middleware import RequestLoggingMiddleware


class TestRequestLoggingMiddleware(LaborantTest):
    """Unit tests for per-request log lines."""

    component_name = "concierge"
    test_category = "unit"

    def setup_method(self, method=None) -> None:
        super().setup_method(method)
        self.request_reporter = MagicMock(spec=SystemReporter)

        app = FastAPI()
        app.add_middleware(RequestLoggingMiddleware, reporter=self.request_reporter)

        @app.get("/items/{item_id}")
        async def read_item(item_id: int):
            return {"id": item_id}

        @app.get("/broken")
        async def broken():
            raise RuntimeError("handler failed")

        self.app = app

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=httpx.ASGITransport(app=self.app, raise_app_exceptions=False),
            base_url="http://test",
        )

    async def test_logs_method_route_status_duration(self):
        """Test a successful request logs one info line with the template."""
        self.reporter.info("Testing request line", context="Test")

        async with self.client() as client:
            response = await client.get("/items/7")

        assert response.status_code == 200
        assert self.request_reporter.info.call_count == 1
        call = self.request_reporter.info.call_args
        message = call.args[0]
        assert message.startswith("GET /items/{item_id} 200 ")
        assert message.endswith("ms")
        assert call.kwargs["context"] == "HTTP"

        self.reporter.info("Request line logged", context="Test")

    async def test_unmatched_route_logged(self):
        """Test a 404 is logged under the unmatched label."""
        self.reporter.info("Testing unmatched request", context="Test")

        async with self.client() as client:
            response = await client.get("/nowhere")

        assert response.status_code == 404
        message = self.request_reporter.info.call_args.args[0]
        assert message.startswith("GET <unmatched> 404 ")

        self.reporter.info("Unmatched request logged", context="Test")

    async def test_handler_error_logged_as_500(self):
        """Test a crashing handler is logged as an error line."""
        self.reporter.info("Testing failing request", context="Test")

        async with self.client() as client:
            response = await client.get("/broken")

        assert response.status_code == 500
        assert self.request_reporter.error.call_count == 1
        message = self.request_reporter.error.call_args.args[0]
        assert message.startswith("GET /broken 500 ")

        self.reporter.info("Failing request logged", context="Test")


if __name__ == "__main__":
    TestRequestLoggingMiddleware.run_as_main()
