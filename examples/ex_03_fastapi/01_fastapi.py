"""Focused example: serving GET /api/hello with hand-wired handlers."""

from __future__ import annotations

from fastapi.testclient import TestClient

from puredi import CompositionRoot
from puredi.app import create_app
from puredi.handlers import GREETING_HEADER
from puredi.settings import PureDISettings


def main() -> None:
    root = CompositionRoot()
    app = create_app(root, PureDISettings())

    with TestClient(app) as client:
        response = client.get("/api/hello")
        print(response.status_code)  # => 200
        print(response.text)  # => Hello from controller with DisposableDependency1 and DisposableDependency2!
        print(response.headers[GREETING_HEADER])  # => Also, hello from middleware with DisposableDependency1 and DisposableDependency2!

    print(f"singleton_closed={root.singleton_dependency.closed}")  # => singleton_closed=True


if __name__ == "__main__":
    main()
