"""Main entry point for the support chat relay."""

from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from relay.api import create_fastapi_app
from relay.api.app import get_app
from relay.logging_config import setup_logging
from sim import Sim


def main():
    """Run the application."""
    project_root = Path(__file__).resolve().parent.parent
    load_dotenv(project_root / ".env")
    setup_logging()

    application = get_app()
    settings = application.settings
    api_url = f"http://{settings.api_host}:{settings.api_port}"

    # SIM drives the running server over HTTP
    from relay.api.routes import control
    control.set_sim_instance(Sim(api_url=api_url))

    app = create_fastapi_app(application)

    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
