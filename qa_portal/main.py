import uvicorn

from qa_portal.api.api_app import create_app
from qa_portal.config.settings import Settings
from qa_portal.logging.logger import Log


def main() -> None:
    """Entry point: load settings -> build app -> serve."""
    settings = Settings()
    Log.configure(settings.log_level)
    Log.info(f"Starting QA portal ({settings.app_env}) on {settings.http_host}:{settings.http_port}")
    uvicorn.run(create_app(settings), host=settings.http_host, port=settings.http_port)


if __name__ == "__main__":
    main()
