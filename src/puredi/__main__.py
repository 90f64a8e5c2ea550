from __future__ import annotations

import uvicorn

from puredi.app import create_app
from puredi.composition_root import CompositionRoot
from puredi.settings import PureDISettings, configure_logging


def main() -> None:
    """Run the application under uvicorn until interrupted."""
    settings = PureDISettings()
    configure_logging(settings.logging)

    root = CompositionRoot(share_scoped_dependencies=settings.share_scoped_dependencies)
    try:
        uvicorn.run(
            create_app(root, settings),
            host=settings.host,
            port=settings.port,
            log_config=None,
        )
    finally:
        # No-op when the lifespan already closed it.
        root.close()


if __name__ == "__main__":
    main()
