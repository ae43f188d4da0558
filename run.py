"""Project root entry point for launching the translation proxy."""

from __future__ import annotations

import sys

from pagetranslate.ai.exceptions import ConfigurationError
from pagetranslate.config import load_config
from pagetranslate.logger import get_logger

logger = get_logger(__name__)


def main():
    try:
        config = load_config()
        from pagetranslate.web import create_app

        app = create_app(config)
    except ConfigurationError as e:
        logger.error(str(e))
        sys.exit(1)

    logger.info(f"{config['APP_NAME']} v{config['APP_VERSION']} starting...")
    logger.info(f"Server listening on http://localhost:{config['PORT']}")
    app.run(host=config["HOST"], port=config["PORT"], threaded=True)


if __name__ == "__main__":
    main()
