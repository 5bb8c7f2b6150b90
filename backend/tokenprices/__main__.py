"""Run the service with uvicorn: python -m tokenprices"""

import uvicorn

from .main import create_app, load_settings_or_exit


def main() -> None:
    settings = load_settings_or_exit()
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
