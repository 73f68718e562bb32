import uvicorn

from .config import settings
from .logging_utils import configure_logging


def main():
    configure_logging(settings.log_level)
    uvicorn.run("cookbook.app:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
