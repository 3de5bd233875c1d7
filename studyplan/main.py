"""
Entry point — start the study-plan engine.

Usage:
    python -m studyplan.main
    uvicorn studyplan.api.app:app --host 127.0.0.1 --port 8765 --reload
"""

import uvicorn

from .config import config
from .logging_setup import configure_logging


def main():
    configure_logging(config.log_level)
    uvicorn.run(
        "studyplan.api.app:app",
        host=config.api_host,
        port=config.api_port,
        reload=False,
        log_level=config.log_level.lower(),
    )


if __name__ == "__main__":
    main()
