"""Focused example: idempotent disposal and requests cut off by shutdown."""

from __future__ import annotations

from puredi import CompositionRoot, HandlerKind, PureDIRegistryClosedError


class Connection:
    def __init__(self, name: str) -> None:
        self.name = name
        self.close_calls = 0

    def close(self) -> None:
        self.close_calls += 1

    def __str__(self) -> str:
        return self.name


def main() -> None:
    connections: list[Connection] = []

    def open_connection() -> Connection:
        connection = Connection(f"connection{len(connections) + 1}")
        connections.append(connection)
        return connection

    root = CompositionRoot(singleton_factory=open_connection, scoped_factory=open_connection)

    unfinished = root.begin_request()
    root.create(HandlerKind.HELLO_CONTROLLER, unfinished)

    root.close()
    root.close()

    print([c.close_calls for c in connections])  # => [1, 1]

    try:
        root.begin_request()
    except PureDIRegistryClosedError:
        print("closed root rejects new requests")  # => closed root rejects new requests


if __name__ == "__main__":
    main()
