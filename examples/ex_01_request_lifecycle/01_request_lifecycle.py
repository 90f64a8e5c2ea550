"""Focused example: one request, two handlers, one scoped dependency."""

from __future__ import annotations

from puredi import CompositionRoot, HandlerKind


def main() -> None:
    with CompositionRoot() as root:
        scope = root.begin_request()
        try:
            middleware = root.create(HandlerKind.GREETING_MIDDLEWARE, scope)
            controller = root.create(HandlerKind.HELLO_CONTROLLER, scope)

            print(controller.index())  # => Hello from controller with DisposableDependency1 and DisposableDependency2!
            print(middleware.greeting)  # => Also, hello from middleware with DisposableDependency1 and DisposableDependency2!
            shared = middleware.scoped_dependency is controller.scoped_dependency
        finally:
            root.release(HandlerKind.HELLO_CONTROLLER, controller)
            root.release(HandlerKind.GREETING_MIDDLEWARE, middleware)
            root.end_request(scope)

        print(f"shared={shared}")  # => shared=True
        print(f"scoped_closed={controller.scoped_dependency.closed}")  # => scoped_closed=True
        print(f"singleton_closed={root.singleton_dependency.closed}")  # => singleton_closed=False

    print(f"singleton_closed={root.singleton_dependency.closed}")  # => singleton_closed=True


if __name__ == "__main__":
    main()
