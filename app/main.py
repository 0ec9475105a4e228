import os

import uvicorn

from app.core.app_factory import create_app

app = create_app()


def run() -> None:
    """Serve the app with uvicorn (``HOST``/``PORT`` env, default 0.0.0.0:8000)."""
    uvicorn.run(
        "app.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        log_config=None,
    )


if __name__ == "__main__":
    run()
